"""App Service and Azure Functions, 2017-09-01 protocol (``MSI_ENDPOINT``)."""

from __future__ import annotations

from typing import Optional

from azidentity.constants import APP_SERVICE_2017_API_VERSION
from azidentity.credentials.managed_identity.base import MSI, MSIConfiguration
from azidentity.models import AccessToken, GetTokenOptions


class AppServiceMsi2017(MSI):
    name = "appServiceMsi2017"
    title = "ManagedIdentityCredential - AppServiceMSI 2017"
    required_env = ("MSI_ENDPOINT", "MSI_SECRET")
    missing_env_message = "Unavailable. The environment variables needed are: MSI_ENDPOINT and MSI_SECRET."

    async def get_token(
        self, configuration: MSIConfiguration, options: GetTokenOptions
    ) -> Optional[AccessToken]:
        env = configuration.env
        if configuration.resource_id:
            self.logger.warning(
                f"{self.title}: managed Identity by resource Id is not supported. "
                "Argument resourceId might be ignored by the service."
            )
        self.logger.info(
            f"{self.title}: Using the endpoint and the secret coming form the environment "
            f"variables: MSI_ENDPOINT={env.get('MSI_ENDPOINT')} and MSI_SECRET=[REDACTED]."
        )
        params = {
            "resource": configuration.resource(self.title),
            "api-version": APP_SERVICE_2017_API_VERSION,
        }
        if configuration.client_id:
            params["clientid"] = configuration.client_id
        response = await configuration.identity_client.send_token_request(
            "GET",
            env.get("MSI_ENDPOINT", ""),
            params=params,
            headers={"Accept": "application/json", "secret": env.get("MSI_SECRET", "")},
            abort_signal=options.abort_signal,
            correlation_id=options.correlation_id,
        )
        return response.access_token if response else None
