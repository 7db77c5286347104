"""Azure Cloud Shell."""

from __future__ import annotations

from typing import Optional

from azidentity.credentials.managed_identity.base import MSI, MSIConfiguration
from azidentity.models import AccessToken, GetTokenOptions


class CloudShellMsi(MSI):
    name = "cloudShellMsi"
    title = "ManagedIdentityCredential - CloudShellMSI"
    required_env = ("MSI_ENDPOINT",)
    missing_env_message = "Unavailable. The environment variable MSI_ENDPOINT is needed."

    async def get_token(
        self, configuration: MSIConfiguration, options: GetTokenOptions
    ) -> Optional[AccessToken]:
        env = configuration.env
        if configuration.client_id:
            self.logger.warning(
                f"{self.title}: user-assigned identities not supported. "
                "The argument clientId might be ignored by the service."
            )
        if configuration.resource_id:
            self.logger.warning(
                f"{self.title}: user defined managed Identity by resource Id not supported. "
                "The argument resourceId might be ignored by the service."
            )
        self.logger.info(
            f"{self.title}: Using the endpoint coming form the environment variable "
            f"MSI_ENDPOINT = {env.get('MSI_ENDPOINT')}."
        )
        data = {"resource": configuration.resource(self.title)}
        if configuration.client_id:
            data["client_id"] = configuration.client_id
        if configuration.resource_id:
            data["msi_res_id"] = configuration.resource_id
        response = await configuration.identity_client.send_token_request(
            "POST",
            env.get("MSI_ENDPOINT", ""),
            data=data,
            headers={"Accept": "application/json", "Metadata": "true"},
            abort_signal=options.abort_signal,
            correlation_id=options.correlation_id,
        )
        return response.access_token if response else None
