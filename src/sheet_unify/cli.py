"""CLI entry point for sheet-unify."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import replace
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table as RichTable

from sheet_unify import DEFAULT_FIELDS, __version__
from sheet_unify.auth import ActorContext
from sheet_unify.config import MANIFEST_NAME, UnifyConfig, load_keyword_profile
from sheet_unify.errors import PreconditionError, ValidationError
from sheet_unify.export import write_run_report
from sheet_unify.io import SourceFile, write_json
from sheet_unify.models import ROW_KEY, SOURCE_KEY, CellValue, MappedRow, RunManifest
from sheet_unify.persistence import JsonLinesCandidateStore
from sheet_unify.utils import describe_input, utcnow_iso
from sheet_unify.workspace import Workspace

app = typer.Typer(
    name="sunify",
    help="sheet-unify — Reconcile spreadsheet headers into one unified record set.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()

DEFAULT_STORE = Path("candidates.jsonl")


def _noop(*_args: object, **_kwargs: object) -> None:
    return None


def _printer(quiet: bool) -> Callable[..., None]:
    return _noop if quiet else console.print


def _err(msg: str) -> None:
    console.print(f"[red]x[/red] {msg}")


# ── Helpers ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"sheet-unify v{__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False, show_time=False)],
        force=True,
    )


def _parse_field_map(raw: list[str] | None) -> list[tuple[str, str]]:
    """Parse ``--map field=header`` pairs, keeping their order."""
    pairs: list[tuple[str, str]] = []
    for item in raw or []:
        if "=" not in item:
            raise ValueError(f"Invalid --map value: {item!r}  (expected field=header)")
        target, header = item.split("=", 1)
        target, header = target.strip(), header.strip()
        if not target or not header:
            raise ValueError("--map entries must have non-empty field and header (field=header)")
        pairs.append((target, header))
    return pairs


def _apply_field_map(
    workspace: Workspace, ctx: ActorContext, pairs: list[tuple[str, str]]
) -> int:
    """Apply manual mappings to every file that has a matching header."""
    applied = 0
    for name, file_mapping in workspace.mappings.items():
        for target, wanted in pairs:
            for header in file_mapping.headers:
                if header == wanted or header.strip().lower() == wanted.lower():
                    workspace.update_mapping(ctx, name, header, target)
                    applied += 1
    return applied


def _cell_text(value: CellValue, limit: int = 30) -> str:
    if value is None:
        return ""
    text = str(value)
    return text if len(text) <= limit else text[: limit - 1] + "…"


def _build_workspace(
    *,
    inputs: Sequence[Path],
    fields: list[str] | None,
    add_fields: list[str] | None,
    col_map: list[str] | None,
    keywords: Path | None,
    suggest: bool,
    actor: str | None,
    quiet: bool,
) -> tuple[Workspace, ActorContext, list[str]]:
    config = UnifyConfig(
        fields=list(fields) if fields else list(DEFAULT_FIELDS),
        keyword_rules=load_keyword_profile(keywords),
    )
    pairs = _parse_field_map(col_map)
    workspace = Workspace(config)
    ctx = ActorContext(actor_id=actor, is_admin=True)
    for name in add_fields or []:
        workspace.add_field(ctx, name)

    added, failed = workspace.add_files(ctx, [SourceFile(path) for path in inputs])
    echo = _printer(quiet)
    echo(f"  {len(added)} file(s) loaded, {len(failed)} unreadable")
    for name in failed:
        console.print(f"  [yellow]![/yellow] Could not read {name}")

    if pairs:
        applied = _apply_field_map(workspace, ctx, pairs)
        echo(f"  {applied} manual mapping(s) applied")
    if suggest:
        filled = workspace.suggest_mappings(ctx)
        echo(f"  {filled} mapping(s) auto-suggested")
    return workspace, ctx, failed


def _rows_table(title: str, rows: list[MappedRow], fields: list[str]) -> RichTable:
    tbl = RichTable(title=title, show_lines=False)
    tbl.add_column("Source", style="bold")
    tbl.add_column("Row", justify="right")
    for name in fields:
        tbl.add_column(name)
    for row in rows:
        tbl.add_row(
            str(row[SOURCE_KEY]),
            str(row[ROW_KEY]),
            *[_cell_text(row.get(name)) for name in fields],
        )
    return tbl


_INPUT_HELP = "Spreadsheet to unify (CSV or XLSX). Repeat for several files."
_FIELD_HELP = "Standard field (repeatable). Replaces the default candidate fields."
_ADD_FIELD_HELP = "Extra standard field appended to the field list (repeatable)."
_MAP_HELP = "Manual mapping field=header, applied to every file. E.g. --map email='E-mail'"
_KEYWORDS_HELP = "Keyword profile for suggestions (field=kw1,kw2 lines, in priority order)."


# ── Callbacks ────────────────────────────────────────────────────


@app.callback()
def main(
    version: bool | None = typer.Option(
        None, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Show debug logging.",
    ),
) -> None:
    """sheet-unify CLI."""
    _configure_logging(verbose)


# ── inspect command ──────────────────────────────────────────────


@app.command()
def inspect(
    inputs: list[Path] = typer.Option(
        ..., "--input", "-i", help=_INPUT_HELP, exists=True, readable=True,
    ),
    fields: list[str] | None = typer.Option(None, "--field", "-f", help=_FIELD_HELP),
    add_fields: list[str] | None = typer.Option(None, "--add-field", help=_ADD_FIELD_HELP),
    col_map: list[str] | None = typer.Option(None, "--map", "-m", help=_MAP_HELP),
    keywords: Path | None = typer.Option(None, "--keywords", help=_KEYWORDS_HELP),
    suggest: bool = typer.Option(
        True, "--suggest/--no-suggest", help="Auto-suggest mappings from header names.",
    ),
) -> None:
    """Show detected headers, their mapping and sample values per file."""
    try:
        workspace, _ctx, failed = _build_workspace(
            inputs=inputs, fields=fields, add_fields=add_fields, col_map=col_map,
            keywords=keywords, suggest=suggest, actor=None, quiet=False,
        )
    except ValueError as exc:
        _err(str(exc))
        raise typer.Exit(code=2)

    registered = set(workspace.registry.fields)
    for name, file_mapping in workspace.mappings.items():
        tbl = RichTable(
            title=f"{name} — {len(file_mapping.headers)} columns, "
            f"{file_mapping.percent_mapped()}% mapped",
            show_lines=True,
        )
        tbl.add_column("Original header", style="bold")
        tbl.add_column("Maps to")
        tbl.add_column("Sample values")
        for index, header in enumerate(file_mapping.headers):
            target = file_mapping.target(header)
            if target is None:
                shown = "[dim]-- unmapped --[/dim]"
            elif target not in registered:
                shown = f"[yellow]{target}[/yellow] [dim](not a standard field)[/dim]"
            else:
                shown = f"[green]{target}[/green]"
            samples = "\n".join(_cell_text(v) for v in file_mapping.sample_values(index))
            tbl.add_row(header, shown, samples)
        console.print(tbl)

    if failed:
        raise typer.Exit(code=2)


# ── preview command ──────────────────────────────────────────────


@app.command()
def preview(
    inputs: list[Path] = typer.Option(
        ..., "--input", "-i", help=_INPUT_HELP, exists=True, readable=True,
    ),
    fields: list[str] | None = typer.Option(None, "--field", "-f", help=_FIELD_HELP),
    add_fields: list[str] | None = typer.Option(None, "--add-field", help=_ADD_FIELD_HELP),
    col_map: list[str] | None = typer.Option(None, "--map", "-m", help=_MAP_HELP),
    keywords: Path | None = typer.Option(None, "--keywords", help=_KEYWORDS_HELP),
    suggest: bool = typer.Option(
        True, "--suggest/--no-suggest", help="Auto-suggest mappings from header names.",
    ),
) -> None:
    """Unify the first few data rows of each file and print them."""
    try:
        workspace, ctx, failed = _build_workspace(
            inputs=inputs, fields=fields, add_fields=add_fields, col_map=col_map,
            keywords=keywords, suggest=suggest, actor=None, quiet=False,
        )
    except ValueError as exc:
        _err(str(exc))
        raise typer.Exit(code=2)

    rows = workspace.generate_preview(ctx)
    console.print(_rows_table("Unified preview", rows, workspace.registry.fields))
    if failed:
        raise typer.Exit(code=2)


# ── run command ──────────────────────────────────────────────────


@app.command()
def run(
    inputs: list[Path] = typer.Option(
        ..., "--input", "-i", help=_INPUT_HELP, exists=True, readable=True,
    ),
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Output directory for the unified workbook, report and manifest.",
    ),
    fields: list[str] | None = typer.Option(None, "--field", "-f", help=_FIELD_HELP),
    add_fields: list[str] | None = typer.Option(None, "--add-field", help=_ADD_FIELD_HELP),
    col_map: list[str] | None = typer.Option(None, "--map", "-m", help=_MAP_HELP),
    keywords: Path | None = typer.Option(None, "--keywords", help=_KEYWORDS_HELP),
    suggest: bool = typer.Option(
        True, "--suggest/--no-suggest", help="Auto-suggest mappings from header names.",
    ),
    save: bool = typer.Option(
        False, "--save", help="Also insert every unified row into the candidate store.",
    ),
    store_path: Path = typer.Option(
        DEFAULT_STORE, "--store", help="JSON Lines candidate store used by --save.",
    ),
    actor: str | None = typer.Option(
        None, "--actor", envvar="SUNIFY_ACTOR",
        help="Identity recorded as created_by on saved records.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output; still writes all artifacts.",
    ),
) -> None:
    """Unify every row of every input file and export the result."""
    echo = _printer(quiet)
    created_at = utcnow_iso()
    if not quiet:
        console.print(Panel(
            f"[bold]sheet-unify[/bold] v{__version__}\n"
            f"Inputs: {', '.join(p.name for p in inputs)}\nOutput: {out_dir}",
            title="Unify Start", border_style="blue",
        ))

    echo("[blue]>[/blue] Reading headers …")
    try:
        workspace, ctx, ingest_failed = _build_workspace(
            inputs=inputs, fields=fields, add_fields=add_fields, col_map=col_map,
            keywords=keywords, suggest=suggest, actor=actor, quiet=quiet,
        )
    except (ValueError, ValidationError) as exc:
        _err(str(exc))
        raise typer.Exit(code=2)

    echo("[blue]>[/blue] Unifying rows …")
    report = asyncio.run(workspace.process_all(ctx))
    if ingest_failed:
        report = replace(
            report,
            files_in=report.files_in + len(ingest_failed),
            failed_files=[*ingest_failed, *report.failed_files],
        )
    dataset = workspace.unified
    echo(f"  {report.rows_out} rows from {report.files_ok} file(s)")
    if not quiet:
        for warning in report.warnings:
            console.print(f"  [yellow]![/yellow] {warning}")

    out_dir.mkdir(parents=True, exist_ok=True)
    report_path = write_run_report(out_dir, report, dataset)
    echo(f"  Report   -> {report_path}")

    status = "success"
    exit_code = 0
    if report.files_failed or not dataset.rows:
        status = "failed" if not dataset.rows else "partial"
        exit_code = 2

    if dataset.rows:
        export_path = workspace.export(ctx, out_dir / workspace.config.export_name)
        echo(f"  Workbook -> {export_path}")
    else:
        _err("No rows were unified; nothing to export.")

    if save:
        try:
            result = workspace.save(ctx, JsonLinesCandidateStore(store_path))
        except PreconditionError as exc:
            _err(str(exc))
        else:
            echo(f"  Saved {result.success} candidate(s) -> {store_path}")
            if result.error:
                console.print(f"  [yellow]![/yellow] Failed to save {result.error} candidate(s)")
                if not ctx.is_authenticated:
                    console.print("  Hint: pass --actor or set SUNIFY_ACTOR")
                if status == "success":
                    status = "partial"
                exit_code = 2

    manifest = RunManifest(
        version=__version__,
        inputs=[describe_input(path) for path in inputs],
        output_dir=str(out_dir.resolve()),
        created_at_utc=created_at,
        fields=workspace.registry.fields,
        rows_out=report.rows_out,
        status=status,
    )
    manifest_path = write_json(out_dir / MANIFEST_NAME, manifest.to_dict())
    echo(f"  Manifest -> {manifest_path}")

    if not quiet:
        console.print(Panel(
            f"[green]Done[/green] — {report.rows_out} rows, "
            f"{dataset.completion_rate()}% complete, {report.files_failed} file(s) failed",
            title="Unify Complete", border_style="green" if exit_code == 0 else "yellow",
        ))
    if exit_code:
        raise typer.Exit(code=exit_code)


# ── saved command ────────────────────────────────────────────────


@app.command()
def saved(
    store_path: Path = typer.Option(
        DEFAULT_STORE, "--store", help="JSON Lines candidate store to list.",
    ),
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Show at most this many records."),
) -> None:
    """List saved candidate records, newest first."""
    records = JsonLinesCandidateStore(store_path).list_records()
    if not records:
        console.print("No saved candidates.")
        return

    columns = ["first_name", "last_name", "email", "phone", "source_file", "created_at"]
    tbl = RichTable(title=f"Saved candidates ({len(records)})")
    for name in columns:
        tbl.add_column(name)
    for record in records[:limit]:
        tbl.add_row(*[_cell_text(record.get(name)) for name in columns])
    console.print(tbl)
