"""Record commands -- manage stored authentication records.

Records written by ``azidentity login`` live in the ``records``
sub-directory of the data directory, one JSON file per name.
"""

from __future__ import annotations

import typer

from azidentity.commands._shared import load_record, record_path
from azidentity.config import get_records_dir
from azidentity.exit_codes import EXIT_INVALID_USAGE
from azidentity.output import error, format_response, info, print_table, success
from azidentity.record import deserialize_authentication_record

record_app = typer.Typer(no_args_is_help=True)


@record_app.command("list")
def record_list() -> None:
    """List stored records."""
    rows: list[list[str]] = []
    for path in sorted(get_records_dir().glob("*.json")):
        try:
            record = deserialize_authentication_record(path.read_text(encoding="utf-8"))
        except ValueError:
            rows.append([path.stem, "<invalid>", "", ""])
            continue
        rows.append([path.stem, record.username, record.tenant_id, record.client_id])
    if not rows:
        info("No stored records. Run: azidentity login <scope>")
        return
    print_table(["name", "username", "tenantId", "clientId"], rows, title="Stored records")


@record_app.command("show")
def record_show(
    name: str = typer.Argument(help="Record name."),
) -> None:
    """Print a stored record.

    Example::

        azidentity record show default --json
    """
    record = load_record(name)
    format_response(record.model_dump(by_alias=True))


@record_app.command("delete")
def record_delete(
    name: str = typer.Argument(help="Record name."),
) -> None:
    """Delete a stored record."""
    path = record_path(name)
    if not path.is_file():
        error(f"No stored record named '{name}'.")
        raise typer.Exit(code=EXIT_INVALID_USAGE)
    path.unlink()
    success(f"Record '{name}' deleted.")
