"""Small shared helpers: timestamps and input fingerprints."""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from pathlib import Path


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def sha256_file(path: Path) -> str:
    """Hex SHA-256 digest of *path*, read in 8 KiB chunks."""
    digest = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(8192), b""):
            digest.update(chunk)
    return digest.hexdigest()


def describe_input(path: Path) -> dict[str, str]:
    """Manifest entry for one input file; the digest is blank if unreadable."""
    path = Path(path)
    try:
        sha256 = sha256_file(path)
    except OSError:
        sha256 = ""
    return {"name": path.name, "path": str(path.resolve()), "sha256": sha256}
