"""Borrow the account signed in to Azure PowerShell (``Connect-AzAccount``)."""

from __future__ import annotations

import json
from typing import Optional, Sequence

from azidentity.config import is_windows
from azidentity.credentials._developer import DeveloperToolCredential
from azidentity.exceptions import CredentialUnavailableError
from azidentity.logger import credential_logger, format_error, format_success
from azidentity.models import AccessToken, CredentialOptions, GetTokenOptions
from azidentity.process import parse_expires_on, run_process
from azidentity.scopes import Scopes, ensure_valid_scope_for_dev_time_creds, get_scope_resource

POWERSHELL_LOGIN_ERROR = "Run Connect-AzAccount to login"

POWERSHELL_NOT_INSTALLED_ERROR = (
    "The specified module 'Az.Accounts' with version '2.2.0' was not loaded because no valid "
    "module file was found in any module directory"
)

LOGIN_MESSAGE = (
    "Please run 'Connect-AzAccount' from PowerShell to authenticate before using this credential."
)

NOT_INSTALLED_MESSAGE = (
    "The 'Az.Account' module >= 2.2.0 is not installed. Install the Azure Az PowerShell module "
    'with: "Install-Module -Name Az -Scope CurrentUser -Repository PSGallery -Force".'
)

TROUBLESHOOT_MESSAGE = (
    "To troubleshoot, visit https://aka.ms/azsdk/js/identity/powershellcredential/troubleshoot."
)

logger = credential_logger("AzurePowerShellCredential")


def format_command(name: str) -> str:
    """Append ``.exe`` on Windows."""
    return f"{name}.exe" if is_windows() else name


class AzurePowerShellCredential(DeveloperToolCredential):
    """Gets tokens from ``Get-AzAccessToken``.

    Tries ``pwsh`` and, on Windows, Windows PowerShell. A shell that cannot
    even print its help is remembered as unusable by this instance and not
    tried again.
    """

    logger = logger

    def __init__(
        self, tenant_id: Optional[str] = None, options: Optional[CredentialOptions] = None
    ) -> None:
        super().__init__(tenant_id, options)
        self.unusable_commands: set[str] = set()

    def command_candidates(self) -> list[str]:
        """Return the shells to try for this call, in order."""
        names = ["pwsh"]
        if is_windows():
            names.append("powershell")
        return [cmd for cmd in map(format_command, names) if cmd not in self.unusable_commands]

    async def _run(self, args: Sequence[str]) -> str:
        result = await run_process(args, timeout=self.timeout)
        if result.stderr or result.returncode != 0:
            raise CredentialUnavailableError(
                result.stderr.strip() or f"{args[0]} exited with status {result.returncode}"
            )
        return result.stdout

    async def _is_usable(self, command: str) -> bool:
        try:
            await self._run([command, "/?"])
        except (OSError, TimeoutError, CredentialUnavailableError):
            return False
        return True

    async def get_azure_powershell_access_token(
        self, resource: str, tenant_id: Optional[str]
    ) -> dict:
        """Run ``Get-AzAccessToken`` in the first usable shell and return its JSON output."""
        for command in self.command_candidates():
            if not await self._is_usable(command):
                self.unusable_commands.add(command)
                continue
            tenant_section = f'-TenantId "{tenant_id}"' if tenant_id else ""
            await self._run(
                [command, "-Command", "Import-Module Az.Accounts -MinimumVersion 2.2.0 -PassThru"]
            )
            output = await self._run(
                [
                    command,
                    "-Command",
                    f'Get-AzAccessToken {tenant_section} -ResourceUrl "{resource}" | ConvertTo-Json',
                ]
            )
            try:
                return json.loads(output)
            except ValueError as exc:
                raise CredentialUnavailableError(
                    f"Unable to parse the output of PowerShell. Received output: {output}"
                ) from exc
        raise CredentialUnavailableError(
            "Unable to execute PowerShell. Ensure that it is installed in your system"
        )

    async def get_token(
        self, scopes: Scopes, options: Optional[GetTokenOptions] = None
    ) -> AccessToken:
        tenant_id = self._request_tenant(options)
        scope = scopes if isinstance(scopes, str) else scopes[0]
        try:
            ensure_valid_scope_for_dev_time_creds(scope, logger)
            logger.get_token.info(f"Using the scope {scope}")
            response = await self.get_azure_powershell_access_token(
                get_scope_resource(scope), tenant_id
            )
            token = AccessToken(
                token=response["Token"],
                expires_on_timestamp=parse_expires_on(response["ExpiresOn"]),
            )
        except Exception as exc:
            message = str(exc)
            if POWERSHELL_NOT_INSTALLED_ERROR in message:
                error = CredentialUnavailableError(NOT_INSTALLED_MESSAGE)
            elif POWERSHELL_LOGIN_ERROR in message:
                error = CredentialUnavailableError(LOGIN_MESSAGE)
            else:
                error = CredentialUnavailableError(f"{message}. {TROUBLESHOOT_MESSAGE}")
            logger.get_token.info(format_error(scope, error))
            raise error from exc
        logger.get_token.info(format_success(scopes))
        return token
