"""App Service and Azure Functions, 2019-08-01 protocol (``IDENTITY_ENDPOINT``)."""

from __future__ import annotations

from typing import Optional

from azidentity.constants import APP_SERVICE_2019_API_VERSION
from azidentity.credentials.managed_identity.base import MSI, MSIConfiguration
from azidentity.models import AccessToken, GetTokenOptions


class AppServiceMsi2019(MSI):
    name = "appServiceMsi2019"
    title = "ManagedIdentityCredential - AppServiceMSI 2019"
    required_env = ("IDENTITY_ENDPOINT", "IDENTITY_HEADER")
    missing_env_message = (
        "Unavailable. The environment variables needed are: IDENTITY_ENDPOINT and IDENTITY_HEADER."
    )

    async def get_token(
        self, configuration: MSIConfiguration, options: GetTokenOptions
    ) -> Optional[AccessToken]:
        env = configuration.env
        self.logger.info(
            f"{self.title}: Using the endpoint and the secret coming form the environment "
            f"variables: IDENTITY_ENDPOINT={env.get('IDENTITY_ENDPOINT')} and IDENTITY_HEADER=[REDACTED]."
        )
        params = {
            "resource": configuration.resource(self.title),
            "api-version": APP_SERVICE_2019_API_VERSION,
        }
        if configuration.client_id:
            params["client_id"] = configuration.client_id
        if configuration.resource_id:
            params["mi_res_id"] = configuration.resource_id
        response = await configuration.identity_client.send_token_request(
            "GET",
            env.get("IDENTITY_ENDPOINT", ""),
            params=params,
            headers={
                "Accept": "application/json",
                "X-IDENTITY-HEADER": env.get("IDENTITY_HEADER", ""),
            },
            abort_signal=options.abort_signal,
            correlation_id=options.correlation_id,
        )
        return response.access_token if response else None
