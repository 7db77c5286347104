"""Workload identity federation (Kubernetes service account tokens)."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Optional

from azidentity.config import resolve_env
from azidentity.credentials.base import TokenCredential
from azidentity.credentials.client_assertion import ClientAssertionCredential
from azidentity.exceptions import CredentialUnavailableError
from azidentity.logger import credential_logger, process_env_vars
from azidentity.models import AccessToken, CredentialOptions, GetTokenOptions
from azidentity.scopes import Scopes
from azidentity.tenant import check_tenant_id

CREDENTIAL_NAME = "WorkloadIdentityCredential"

SUPPORTED_WORKLOAD_ENV_VARS = (
    "AZURE_TENANT_ID",
    "AZURE_CLIENT_ID",
    "AZURE_FEDERATED_TOKEN_FILE",
)

FILE_CACHE_SECONDS = 5 * 60

logger = credential_logger(CREDENTIAL_NAME)


class WorkloadIdentityCredential(TokenCredential):
    """Authenticates with a federated token read from a file.

    On Azure Kubernetes Service the workload identity webhook injects
    ``AZURE_TENANT_ID``, ``AZURE_CLIENT_ID`` and
    ``AZURE_FEDERATED_TOKEN_FILE``; explicit arguments take precedence over
    them. The file is read at most once every five minutes and its content
    is used as the client assertion of a
    :class:`~azidentity.credentials.client_assertion.ClientAssertionCredential`.

    Args:
        tenant_id: Tenant of the app registration.
        client_id: Client ID of the app registration.
        token_file_path: File holding the federated token.
        options: Shared credential options.

    Raises:
        ValueError: If the tenant ID is malformed.
    """

    def __init__(
        self,
        tenant_id: Optional[str] = None,
        client_id: Optional[str] = None,
        token_file_path: Optional[str] = None,
        options: Optional[CredentialOptions] = None,
    ) -> None:
        options = options or CredentialOptions()
        env = resolve_env(options.env)
        assigned, _ = process_env_vars(SUPPORTED_WORKLOAD_ENV_VARS, env)
        logger.info(f"Found the following environment variables: {', '.join(assigned)}")

        tenant_id = tenant_id or env.get("AZURE_TENANT_ID")
        client_id = client_id or env.get("AZURE_CLIENT_ID")
        self.federated_token_file_path = token_file_path or env.get("AZURE_FEDERATED_TOKEN_FILE")
        if tenant_id:
            check_tenant_id(tenant_id, logger)

        self._file_content: Optional[str] = None
        self._cache_time: Optional[float] = None
        self._client: Optional[ClientAssertionCredential] = None
        if tenant_id and client_id and self.federated_token_file_path:
            logger.info(
                f"Invoking ClientAssertionCredential with tenant ID: {tenant_id}, "
                f"clientId: {client_id} and federated token path: [REDACTED]"
            )
            self._client = ClientAssertionCredential(
                tenant_id, client_id, self._read_file_contents, options
            )

    async def get_token(
        self, scopes: Scopes, options: Optional[GetTokenOptions] = None
    ) -> AccessToken:
        if self._client is None:
            message = (
                f"{CREDENTIAL_NAME}: is unavailable. tenantId, clientId, and federatedTokenFilePath "
                "are required parameters. In DefaultAzureCredential and ManagedIdentityCredential, "
                'these can be provided as environment variables - "AZURE_TENANT_ID", '
                '"AZURE_CLIENT_ID", "AZURE_FEDERATED_TOKEN_FILE". See the troubleshooting guide '
                "for more information: "
                "https://aka.ms/azsdk/js/identity/workloadidentitycredential/troubleshoot"
            )
            logger.info(message)
            raise CredentialUnavailableError(message)
        logger.info("Invoking getToken() of Client Assertion Credential")
        return await self._client.get_token(scopes, options)

    def _read_file_contents(self) -> str:
        if self._cache_time is not None and time.time() - self._cache_time >= FILE_CACHE_SECONDS:
            self._file_content = None
        if not self.federated_token_file_path:
            raise CredentialUnavailableError(
                f"{CREDENTIAL_NAME}: is unavailable. Invalid file path provided "
                f"{self.federated_token_file_path}."
            )
        if not self._file_content:
            value = Path(self.federated_token_file_path).read_text(encoding="utf-8").strip()
            if not value:
                raise CredentialUnavailableError(
                    f"{CREDENTIAL_NAME}: is unavailable. No content on the file "
                    f"{self.federated_token_file_path}."
                )
            self._file_content = value
            self._cache_time = time.time()
        return self._file_content

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
