"""Azure Service Fabric.

Service Fabric serves its identity endpoint with a self-signed
certificate, so this source alone sends its requests without TLS
verification.
"""

from __future__ import annotations

from typing import Optional

from azidentity.client.identity_client import IdentityClient
from azidentity.constants import AZURE_FABRIC_API_VERSION
from azidentity.credentials.managed_identity.base import MSI, MSIConfiguration
from azidentity.models import AccessToken, GetTokenOptions


class FabricMsi(MSI):
    name = "fabricMsi"
    title = "ManagedIdentityCredential - Fabric MSI"
    required_env = ("IDENTITY_ENDPOINT", "IDENTITY_HEADER", "IDENTITY_SERVER_THUMBPRINT")
    missing_env_message = (
        "Unavailable. The environment variables needed are: "
        "IDENTITY_ENDPOINT, IDENTITY_HEADER and IDENTITY_SERVER_THUMBPRINT"
    )

    def __init__(self) -> None:
        super().__init__()
        self._insecure_client: Optional[IdentityClient] = None

    async def get_token(
        self, configuration: MSIConfiguration, options: GetTokenOptions
    ) -> Optional[AccessToken]:
        env = configuration.env
        if configuration.resource_id:
            self.logger.warning(
                f"{self.title}: user defined managed Identity by resource Id is not supported. "
                "Argument resourceId might be ignored by the service."
            )
        self.logger.info(
            f"{self.title}: Using the endpoint and the secret coming from the environment "
            f"variables: IDENTITY_ENDPOINT={env.get('IDENTITY_ENDPOINT')}, "
            "IDENTITY_HEADER=[REDACTED] and IDENTITY_SERVER_THUMBPRINT=[REDACTED]."
        )
        params = {
            "resource": configuration.resource(self.title),
            "api-version": AZURE_FABRIC_API_VERSION,
        }
        if configuration.client_id:
            params["client_id"] = configuration.client_id
        if configuration.resource_id:
            params["msi_res_id"] = configuration.resource_id
        if self._insecure_client is None:
            self._insecure_client = configuration.identity_client.with_options(verify=False)
        response = await self._insecure_client.send_token_request(
            "GET",
            env.get("IDENTITY_ENDPOINT", ""),
            params=params,
            headers={"Accept": "application/json", "secret": env.get("IDENTITY_HEADER", "")},
            abort_signal=options.abort_signal,
            correlation_id=options.correlation_id,
        )
        return response.access_token if response else None

    async def close(self) -> None:
        if self._insecure_client is not None:
            await self._insecure_client.close()
            self._insecure_client = None
