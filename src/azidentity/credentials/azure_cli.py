"""Borrow the account signed in to the Azure CLI (``az``)."""

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
from azidentity.scopes import Scopes, ensure_valid_scope_for_dev_time_creds, get_scope_resource

NOT_INSTALLED_MESSAGE = (
    "Azure CLI could not be found. Please visit https://aka.ms/azure-cli for installation "
    "instructions and then, once installed, authenticate to your Azure account using 'az login'."
)

LOGIN_MESSAGE = (
    "Please run 'az login' from a command prompt to authenticate before using this credential."
)

logger = credential_logger("AzureCliCredential")


class AzureCliCredential(DeveloperToolCredential):
    """Gets tokens from ``az account get-access-token``.

    Sign in first with ``az login``. Only single-scope requests are
    meaningful; the first scope is used.
    """

    logger = logger

    async def get_access_token(self, resource: str, tenant_id: Optional[str]) -> ProcessResult:
        """Run the Azure CLI and return its raw output.

        Raises:
            CredentialUnavailableError: If ``az`` is not installed.
        """
        args = ["az", "account", "get-access-token", "--output", "json", "--resource", resource]
        if tenant_id:
            args += ["--tenant", tenant_id]
        if is_windows():
            args = ["cmd", "/c", *args]
        cwd = get_safe_working_dir(self.env, "Azure CLI")
        try:
            return await run_process(args, cwd=cwd, timeout=self.timeout)
        except FileNotFoundError as exc:
            raise CredentialUnavailableError(NOT_INSTALLED_MESSAGE) from exc

    async def get_token(
        self, scopes: Scopes, options: Optional[GetTokenOptions] = None
    ) -> AccessToken:
        tenant_id = self._request_tenant(options)
        scope = scopes if isinstance(scopes, str) else scopes[0]
        logger.get_token.info(f"Using the scope {scope}")
        try:
            ensure_valid_scope_for_dev_time_creds(scope, logger)
            result = await self.get_access_token(get_scope_resource(scope), tenant_id)
            stderr = result.stderr
            specific_scope = re.search(r"(.*)az login --scope(.*)", stderr)
            is_login_error = re.search(r"(.*)az login(.*)", stderr) and not specific_scope
            is_not_installed = re.search(r"az:(.*)not found", stderr) or stderr.startswith(
                "'az' is not recognized"
            )
            if is_not_installed:
                raise CredentialUnavailableError(NOT_INSTALLED_MESSAGE)
            if is_login_error:
                raise CredentialUnavailableError(LOGIN_MESSAGE)
            try:
                response = json.loads(result.stdout)
                token = AccessToken(
                    token=response["accessToken"],
                    expires_on_timestamp=parse_expires_on(
                        response.get("expires_on", response.get("expiresOn"))
                    ),
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
