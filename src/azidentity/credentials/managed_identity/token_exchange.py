"""Workload identity federation as a managed identity source.

Lets :class:`ManagedIdentityCredential` run on AKS pods configured for
workload identity by delegating to
:class:`~azidentity.credentials.workload_identity.WorkloadIdentityCredential`.
"""

from __future__ import annotations

from typing import Optional

from azidentity.client.identity_client import IdentityClient
from azidentity.config import EnvironmentSnapshot
from azidentity.credentials.managed_identity.base import MSI, MSIConfiguration
from azidentity.credentials.workload_identity import WorkloadIdentityCredential
from azidentity.models import AccessToken, CredentialOptions, GetTokenOptions


class TokenExchangeMsi(MSI):
    """Token exchange source.

    Args:
        options: Credential options forwarded to the workload identity
            credential; instance discovery is always disabled.
    """

    name = "tokenExchangeMsi"
    title = "ManagedIdentityCredential - Token Exchange"

    def __init__(self, options: Optional[CredentialOptions] = None) -> None:
        super().__init__()
        self._options = options or CredentialOptions()
        self._credential: Optional[WorkloadIdentityCredential] = None

    async def is_available(
        self,
        scopes: list[str],
        identity_client: IdentityClient,
        env: EnvironmentSnapshot,
        client_id: Optional[str] = None,
        resource_id: Optional[str] = None,
        options: Optional[GetTokenOptions] = None,
    ) -> bool:
        available = bool(
            (client_id or env.get("AZURE_CLIENT_ID"))
            and env.get("AZURE_TENANT_ID")
            and env.get("AZURE_FEDERATED_TOKEN_FILE")
        )
        if not available:
            self.logger.info(
                f"{self.title}: Unavailable. The environment variables needed are: "
                "AZURE_CLIENT_ID (or the client ID sent through the parameters), "
                "AZURE_TENANT_ID and AZURE_FEDERATED_TOKEN_FILE"
            )
        return available

    async def get_token(
        self, configuration: MSIConfiguration, options: GetTokenOptions
    ) -> Optional[AccessToken]:
        env = configuration.env
        self.logger.info(
            f"{self.title}: Using the client assertion coming from environment variables."
        )
        if self._credential is None:
            self._credential = WorkloadIdentityCredential(
                tenant_id=env.get("AZURE_TENANT_ID"),
                client_id=configuration.client_id or env.get("AZURE_CLIENT_ID"),
                token_file_path=env.get("AZURE_FEDERATED_TOKEN_FILE"),
                options=self._options.model_copy(
                    update={"env": env, "disable_instance_discovery": True}
                ),
            )
        return await self._credential.get_token(configuration.scopes, options)

    async def close(self) -> None:
        if self._credential is not None:
            await self._credential.close()
            self._credential = None
