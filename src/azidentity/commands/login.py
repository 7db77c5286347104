"""Login command -- sign a user in and store the account record.

``azidentity login SCOPE...`` runs ``authenticate()`` on the interactive
browser credential (or the device code credential with
``--device-code``), stores the resulting
:class:`~azidentity.models.AuthenticationRecord` under the data
directory and keeps the tokens in the on-disk cache, so that later
``azidentity token --record-name NAME`` calls succeed silently.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import typer

from azidentity.commands._shared import record_path, show_device_code, user_options
from azidentity.config import atomic_write
from azidentity.credentials import DeviceCodeCredential, InteractiveBrowserCredential
from azidentity.credentials.base import InteractiveCredential
from azidentity.exceptions import AuthenticationRequiredError
from azidentity.models import AuthenticationRecord
from azidentity.output import info, success
from azidentity.record import serialize_authentication_record


async def _authenticate(
    credential: InteractiveCredential, scopes: list[str]
) -> Optional[AuthenticationRecord]:
    async with credential:
        return await credential.authenticate(scopes)


def login_command(
    scopes: list[str] = typer.Argument(help="Scopes to consent to while signing in."),
    device_code: bool = typer.Option(False, "--device-code", help="Use the device code flow."),
    tenant_id: Optional[str] = typer.Option(None, "--tenant-id", "-t", help="Tenant to sign in to."),
    client_id: Optional[str] = typer.Option(None, "--client-id", help="Application client ID."),
    record_name: str = typer.Option("default", "--record-name", help="Name to store the record under."),
) -> None:
    """Sign in interactively and store the authentication record.

    Example::

        azidentity login https://graph.microsoft.com/.default --device-code
    """
    path = record_path(record_name)
    options = user_options(persist=True)
    credential: InteractiveCredential
    if device_code:
        credential = DeviceCodeCredential(tenant_id, client_id, show_device_code, options)
    else:
        info("Opening a browser window to sign in...")
        credential = InteractiveBrowserCredential(tenant_id, client_id, options=options)

    record = asyncio.run(_authenticate(credential, scopes))
    if record is None:
        raise AuthenticationRequiredError(
            "Sign-in completed but no account was returned.", scopes=scopes
        )
    atomic_write(path, serialize_authentication_record(record))
    success(f"Signed in as {record.username}. Record stored as '{record_name}'.")
