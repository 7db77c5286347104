"""Helpers shared by the command modules."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

import typer

from azidentity.config import get_records_dir
from azidentity.engine.flows.device_code import DeviceCodeInfo
from azidentity.exit_codes import EXIT_INVALID_USAGE
from azidentity.models import (
    AuthenticationRecord,
    CredentialOptions,
    IdentityPlugins,
    TokenCachePersistenceOptions,
)
from azidentity.output import error, info
from azidentity.persistence import file_cache_persistence
from azidentity.record import deserialize_authentication_record

_RECORD_NAME = re.compile(r"^[A-Za-z0-9_.-]+$")


def record_path(name: str) -> Path:
    """Return the file of the stored record *name*.

    Raises:
        typer.Exit: With ``EXIT_INVALID_USAGE`` if *name* is not a plain
            file name.
    """
    if not _RECORD_NAME.match(name) or name in (".", ".."):
        error(f"Invalid record name: {name!r}")
        raise typer.Exit(code=EXIT_INVALID_USAGE)
    return get_records_dir() / f"{name}.json"


def load_record(name: str) -> AuthenticationRecord:
    """Load the stored record *name*.

    Raises:
        typer.Exit: With ``EXIT_INVALID_USAGE`` if the record does not exist
            or is invalid.
    """
    path = record_path(name)
    if not path.is_file():
        error(f"No stored record named '{name}'.")
        raise typer.Exit(code=EXIT_INVALID_USAGE)
    try:
        return deserialize_authentication_record(path.read_text(encoding="utf-8"))
    except ValueError as exc:
        error(f"Record '{name}' is invalid: {exc}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None


def user_options(
    persist: bool,
    record: Optional[AuthenticationRecord] = None,
) -> CredentialOptions:
    """Options for the user credentials, optionally with the file token cache."""
    if not persist:
        return CredentialOptions(authentication_record=record)
    return CredentialOptions(
        authentication_record=record,
        token_cache_persistence=TokenCachePersistenceOptions(
            enabled=True, unsafe_allow_unencrypted_storage=True
        ),
        plugins=IdentityPlugins(persistence=file_cache_persistence),
    )


def show_device_code(device_code: DeviceCodeInfo) -> None:
    """Print the device code instructions on stderr."""
    info(device_code.message)
