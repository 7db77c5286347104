"""Token command -- acquire an access token with any credential.

``azidentity token SCOPE...`` builds the selected credential from the
environment and flags, requests a token and prints it as JSON on stdout::

    azidentity token https://vault.azure.net/.default
    azidentity token https://graph.microsoft.com/.default --credential cli --json
    azidentity token api://my-app/.default --credential device-code --record-name work

Failures raised by the credential propagate to :func:`azidentity.app.main`,
which prints them and exits with the error's exit code.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Optional

import typer

from azidentity.credentials import (
    AzureCliCredential,
    AzureDeveloperCliCredential,
    AzurePowerShellCredential,
    DefaultAzureCredential,
    DeviceCodeCredential,
    EnvironmentCredential,
    InteractiveBrowserCredential,
    ManagedIdentityCredential,
    TokenCredential,
    WorkloadIdentityCredential,
)
from azidentity.commands._shared import load_record, show_device_code, user_options
from azidentity.models import (
    AccessToken,
    AuthenticationRecord,
    DefaultAzureCredentialOptions,
    GetTokenOptions,
)
from azidentity.output import debug, print_token


class CredentialKind(str, Enum):
    """Credentials selectable with ``--credential``."""

    DEFAULT = "default"
    ENVIRONMENT = "environment"
    CLI = "cli"
    POWERSHELL = "powershell"
    DEVELOPER_CLI = "developer-cli"
    MANAGED_IDENTITY = "managed-identity"
    WORKLOAD_IDENTITY = "workload-identity"
    DEVICE_CODE = "device-code"
    BROWSER = "browser"


def build_credential(
    kind: CredentialKind,
    tenant_id: Optional[str] = None,
    client_id: Optional[str] = None,
    persist: bool = False,
    record: Optional[AuthenticationRecord] = None,
) -> TokenCredential:
    """Construct the credential named by *kind*.

    *client_id* selects a user-assigned identity for the managed and
    workload identity credentials and the application for the user
    credentials. *persist* and *record* only apply to the user
    credentials.
    """
    if kind == CredentialKind.DEFAULT:
        return DefaultAzureCredential(
            DefaultAzureCredentialOptions(
                tenant_id=tenant_id, managed_identity_client_id=client_id
            )
        )
    if kind == CredentialKind.ENVIRONMENT:
        return EnvironmentCredential()
    if kind == CredentialKind.CLI:
        return AzureCliCredential(tenant_id)
    if kind == CredentialKind.POWERSHELL:
        return AzurePowerShellCredential(tenant_id)
    if kind == CredentialKind.DEVELOPER_CLI:
        return AzureDeveloperCliCredential(tenant_id)
    if kind == CredentialKind.MANAGED_IDENTITY:
        return ManagedIdentityCredential(client_id)
    if kind == CredentialKind.WORKLOAD_IDENTITY:
        return WorkloadIdentityCredential(tenant_id, client_id)
    if kind == CredentialKind.DEVICE_CODE:
        return DeviceCodeCredential(
            tenant_id, client_id, show_device_code, user_options(persist, record)
        )
    return InteractiveBrowserCredential(
        tenant_id, client_id, options=user_options(persist, record)
    )


async def acquire_token(
    credential: TokenCredential, scopes: list[str], options: GetTokenOptions
) -> AccessToken:
    """Request one token and close the credential."""
    async with credential:
        return await credential.get_token(scopes, options)


def token_command(
    scopes: list[str] = typer.Argument(help="Scopes to request, e.g. https://vault.azure.net/.default."),
    credential: CredentialKind = typer.Option(
        CredentialKind.DEFAULT, "--credential", "-c", help="Credential to use."
    ),
    tenant_id: Optional[str] = typer.Option(None, "--tenant-id", "-t", help="Tenant to request the token from."),
    client_id: Optional[str] = typer.Option(None, "--client-id", help="Application or user-assigned identity client ID."),
    cae: bool = typer.Option(False, "--cae", help="Request a Continuous Access Evaluation token."),
    claims: Optional[str] = typer.Option(None, "--claims", help="Claims challenge to satisfy."),
    record_name: Optional[str] = typer.Option(
        None, "--record-name", help="Stored record to authenticate silently as (user credentials)."
    ),
    persist: bool = typer.Option(
        False, "--persist", help="Use the on-disk token cache (user credentials)."
    ),
) -> None:
    """Acquire an access token and print it.

    Prints ``{"token": ..., "expiresOnTimestamp": ...}`` on stdout.

    Example::

        azidentity token https://management.azure.com/.default --credential cli
    """
    record = load_record(record_name) if record_name else None
    built = build_credential(credential, tenant_id, client_id, persist or record is not None, record)
    debug(f"Using {type(built).__name__}")
    options = GetTokenOptions(tenant_id=tenant_id, claims=claims, enable_cae=cae)
    token = asyncio.run(acquire_token(built, scopes, options))
    print_token(token)
