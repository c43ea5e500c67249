"""Command-line entry points for the review desk backend."""

import csv
import json
import logging
import os
from pathlib import Path
from typing import List, Optional

import httpx
import typer
from rich import print as rprint
from rich.table import Table

from .config import get_settings
from .errors import ConfigurationError, FileNotFoundInStore, ReviewConflictError, UpstreamError
from .models import FileRecord, ReviewStatus
from .naming import display_file_name, normalize_file_name
from .sheet_lookup import lookup
from .sheets import SheetSnapshot, SheetsClient
from .store import FileStore

app = typer.Typer(help="Sheet lookups and file review records for the review desk.")
files_app = typer.Typer(help="Inspect and update the local file record store.")
app.add_typer(files_app, name="files")


@app.callback()
def main_callback(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log lookup and HTTP details to stderr."
    ),
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def load_snapshot(path: Path) -> SheetSnapshot:
    """
    Read a sheet snapshot from disk.

    ``.json`` files use the Sheets API response shape (``{"values": [...]}``) or a
    bare list of rows; anything else is read as CSV. The first row is the header.
    """
    if path.suffix.lower() == ".json":
        data = json.loads(path.read_text(encoding="utf-8"))
        values = data.get("values") if isinstance(data, dict) else data
        return SheetSnapshot.from_values(values)
    with path.open(newline="", encoding="utf-8") as f:
        return SheetSnapshot.from_values([row for row in csv.reader(f)])


def _store(data_dir: Optional[Path]) -> FileStore:
    if data_dir:
        return FileStore(data_dir)
    return FileStore(get_settings().store_dir())


def _records_table(title: str, records: List[FileRecord]) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="dim")
    table.add_column("File")
    table.add_column("Created")
    table.add_column("Status")
    for record in records:
        table.add_row(
            record.id,
            record.display_name,
            record.created_at.isoformat(timespec="seconds"),
            record.status.value if record.status else "pending",
        )
    return table


@app.command("normalize")
def normalize_command(
    names: List[str] = typer.Argument(..., help="Raw file names to normalize."),
):
    """Print the lookup key (and display name) for each raw file name."""
    for name in names:
        rprint(
            f"{name} -> [green]{normalize_file_name(name)}[/green] "
            f"[dim](display: {display_file_name(name)})[/dim]"
        )


@app.command("lookup")
def lookup_command(
    file_name: str = typer.Argument(..., help="Raw file name as stored by ingestion."),
    snapshot: Optional[Path] = typer.Option(
        None,
        "--snapshot",
        "-s",
        help="Local JSON/CSV sheet snapshot. Defaults to the live Google Sheet.",
    ),
    key_column: Optional[int] = typer.Option(
        None, "--key-column", help="Override FILE_NAME_COLUMN_INDEX."
    ),
    start_column: Optional[int] = typer.Option(
        None, "--start-column", help="Override DISPLAY_START_COLUMN_INDEX."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the raw lookup result."),
):
    """Find the sheet row for FILE_NAME and show its non-empty display columns."""
    settings = get_settings()
    key_index = settings.file_name_column_index if key_column is None else key_column
    start_index = (
        settings.display_start_column_index if start_column is None else start_column
    )

    if snapshot:
        sheet = load_snapshot(snapshot)
    else:
        try:
            sheet = SheetsClient(settings).fetch()
        except (ConfigurationError, UpstreamError, httpx.HTTPError) as exc:
            rprint(f"[red]{exc}[/red]")
            raise typer.Exit(code=2)

    try:
        result = lookup(file_name, sheet.header, sheet.rows, key_index, start_index)
    except ValueError as exc:
        raise typer.BadParameter(str(exc))

    if as_json:
        typer.echo(json.dumps(result.to_payload(), ensure_ascii=False, indent=2))
    elif not result.found:
        rprint(f"[yellow]No sheet row for {result.key!r}.[/yellow]")
    elif not result.matched_columns:
        rprint(f"[cyan]Row found for {result.key!r}, but it has no data to show.[/cyan]")
    else:
        table = Table(title=f"Sheet data for {result.key}")
        table.add_column("Column")
        table.add_column("Value")
        for name, value in result.matched_columns:
            table.add_row(name, value)
        rprint(table)

    if not result.found:
        raise typer.Exit(code=1)


_DATA_DIR_OPTION = typer.Option(
    None, "--data-dir", help="Record store directory (overrides REVIEW_DATA_DIR)."
)


@files_app.command("list")
def files_list(data_dir: Optional[Path] = _DATA_DIR_OPTION):
    """Show files waiting for review."""
    rprint(_records_table("Pending files", _store(data_dir).list_pending()))


@files_app.command("history")
def files_history(data_dir: Optional[Path] = _DATA_DIR_OPTION):
    """Show files already confirmed or denied."""
    rprint(_records_table("Review history", _store(data_dir).list_reviewed()))


@files_app.command("add")
def files_add(
    name: str = typer.Argument(..., help="Raw file name."),
    minio_path: str = typer.Argument(..., help="Object-storage URL of the file."),
    data_dir: Optional[Path] = _DATA_DIR_OPTION,
):
    """Register a file as pending review."""
    record = _store(data_dir).add(name, minio_path)
    rprint(f"[green]Stored {record.id}[/green]")


@files_app.command("review")
def files_review(
    file_id: str = typer.Argument(...),
    decision: str = typer.Argument(..., help="confirmed or denied"),
    data_dir: Optional[Path] = _DATA_DIR_OPTION,
):
    """Mark a pending file as confirmed or denied."""
    try:
        status = ReviewStatus(decision.lower())
    except ValueError:
        raise typer.BadParameter("decision must be 'confirmed' or 'denied'.")
    try:
        record = _store(data_dir).mark_reviewed(file_id, status)
    except (FileNotFoundInStore, ReviewConflictError) as exc:
        rprint(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)
    rprint(f"[green]{record.display_name} marked as {status.value}[/green]")


@app.command("serve")
def serve_command(
    host: str = typer.Option(os.getenv("REVIEW_HOST", "0.0.0.0"), help="Bind address."),
    port: int = typer.Option(int(os.getenv("REVIEW_PORT", "8000")), help="Bind port."),
    reload: bool = typer.Option(False, help="Reload on code changes."),
):
    """Run the HTTP service with uvicorn."""
    import uvicorn

    uvicorn.run("review_desk.server:app", host=host, port=port, reload=reload)


def main():
    app()


if __name__ == "__main__":
    main()
