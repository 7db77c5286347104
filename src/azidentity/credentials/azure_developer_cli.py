"""Borrow the account signed in to the Azure Developer CLI (``azd``)."""

from __future__ import annotations

import json
import re
from typing import Optional

from azidentity.config import is_windows
from azidentity.credentials._developer import DeveloperToolCredential
from azidentity.exceptions import CredentialUnavailableError
from azidentity.logger import credential_logger, format_error, format_success
from azidentity.models import AccessToken, GetTokenOptions
from azidentity.process import ProcessResult, get_safe_working_dir, parse_expires_on, run_process
from azidentity.scopes import Scopes, ensure_scopes

NOT_INSTALLED_MESSAGE = (
    "Azure Developer CLI couldn't be found. To mitigate this issue, see the troubleshooting "
    "guidelines at https://aka.ms/azsdk/js/identity/azdevclicredential/troubleshoot."
)

LOGIN_MESSAGE = (
    "Please run 'azd auth login' from a command prompt to authenticate before using this "
    "credential. For more information, see the troubleshooting guidelines at "
    "https://aka.ms/azsdk/js/identity/azdevclicredential/troubleshoot."
)

logger = credential_logger("AzureDeveloperCliCredential")


class AzureDeveloperCliCredential(DeveloperToolCredential):
    """Gets tokens from ``azd auth token``.

    Sign in first with ``azd auth login``. Unlike the Azure CLI, every
    requested scope is passed to the tool.
    """

    logger = logger

    async def get_access_token(self, scopes: list[str], tenant_id: Optional[str]) -> ProcessResult:
        """Run the Azure Developer CLI and return its raw output.

        Raises:
            CredentialUnavailableError: If ``azd`` is not installed.
        """
        args = ["azd", "auth", "token", "--output", "json"]
        for scope in scopes:
            args += ["--scope", scope]
        if tenant_id:
            args += ["--tenant-id", tenant_id]
        if is_windows():
            args = ["cmd", "/c", *args]
        cwd = get_safe_working_dir(self.env, "Azure Developer CLI")
        try:
            return await run_process(args, cwd=cwd, timeout=self.timeout)
        except FileNotFoundError as exc:
            raise CredentialUnavailableError(NOT_INSTALLED_MESSAGE) from exc

    async def get_token(
        self, scopes: Scopes, options: Optional[GetTokenOptions] = None
    ) -> AccessToken:
        tenant_id = self._request_tenant(options)
        scope_list = ensure_scopes(scopes)
        logger.get_token.info(f"Using the scopes {', '.join(scope_list)}")
        try:
            result = await self.get_access_token(scope_list, tenant_id)
            stderr = result.stderr
            is_not_logged_in = "not logged in, run `azd login` to login" in stderr or (
                "not logged in, run `azd auth login` to login" in stderr
            )
            is_not_installed = re.search(r"azd:(.*)not found", stderr) or stderr.startswith(
                "'azd' is not recognized"
            )
            if is_not_installed:
                raise CredentialUnavailableError(NOT_INSTALLED_MESSAGE)
            if is_not_logged_in:
                raise CredentialUnavailableError(LOGIN_MESSAGE)
            try:
                response = json.loads(result.stdout)
                token = AccessToken(
                    token=response["token"],
                    expires_on_timestamp=parse_expires_on(response["expiresOn"]),
                )
            except (ValueError, KeyError, TypeError) as exc:
                if stderr:
                    raise CredentialUnavailableError(stderr) from exc
                raise
            logger.get_token.info(format_success(scopes))
            return token
        except CredentialUnavailableError as exc:
            logger.get_token.info(format_error(scopes, exc))
            raise
        except Exception as exc:
            error = CredentialUnavailableError(
                str(exc) or "Unknown error while trying to retrieve the access token"
            )
            logger.get_token.info(format_error(scopes, error))
            raise error from exc
