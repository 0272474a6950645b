"""Exception types raised by the unification engine and its collaborators."""

from __future__ import annotations


class SheetUnifyError(Exception):
    """Base class for every error this package raises on purpose."""


class ValidationError(SheetUnifyError, ValueError):
    """Bad field-registry input (empty or duplicate field name)."""


class DecodeError(SheetUnifyError, ValueError):
    """A source file could not be read as a spreadsheet."""

    def __init__(self, filename: str, message: str) -> None:
        super().__init__(f"Could not read {filename}: {message}")
        self.filename = filename


class PersistenceError(SheetUnifyError):
    """A single record could not be written to the candidate store."""


class AuthorizationError(SheetUnifyError, PermissionError):
    """The acting user lacks the elevated privilege an operation needs."""


class PreconditionError(SheetUnifyError, ValueError):
    """An operation was requested in a state where it cannot run."""
