"""Azure Arc enabled servers.

Arc uses a challenge: the first, unauthenticated request must fail with
401 and a ``WWW-Authenticate`` header naming a key file readable only by
privileged local users. The key is then sent as ``Basic`` authorization
on a second request.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from azidentity.constants import AZURE_ARC_API_VERSION
from azidentity.credentials.managed_identity.base import MSI, MSIConfiguration
from azidentity.exceptions import AuthenticationError, IdentityError
from azidentity.models import AccessToken, GetTokenOptions


class ArcMsi(MSI):
    name = "arc"
    title = "ManagedIdentityCredential - Azure Arc MSI"
    required_env = ("IMDS_ENDPOINT", "IDENTITY_ENDPOINT")
    missing_env_message = "The environment variables needed are: IMDS_ENDPOINT and IDENTITY_ENDPOINT"

    async def _key_file_path(
        self,
        configuration: MSIConfiguration,
        params: dict[str, str],
        options: GetTokenOptions,
    ) -> Optional[str]:
        response = await configuration.identity_client.send_request(
            "GET",
            configuration.env.get("IDENTITY_ENDPOINT", ""),
            params=params,
            headers={"Accept": "application/json", "Metadata": "true"},
            abort_signal=options.abort_signal,
            correlation_id=options.correlation_id,
        )
        if response.status_code != 401:
            message = f" Response: {response.text}" if response.text else ""
            raise AuthenticationError(
                response.status_code,
                f"{self.title}: To authenticate with Azure Arc MSI, status code 401 is "
                f"expected on the first request. {message}",
            )
        auth_header = response.headers.get("www-authenticate", "")
        parts = auth_header.split("=")[1:]
        return parts[0] if parts else None

    async def get_token(
        self, configuration: MSIConfiguration, options: GetTokenOptions
    ) -> Optional[AccessToken]:
        if configuration.client_id:
            self.logger.warning(
                f"{self.title}: user-assigned identities not supported. "
                "The argument clientId might be ignored by the service."
            )
        if configuration.resource_id:
            self.logger.warning(
                f"{self.title}: user defined managed Identity by resource Id is not supported. "
                "Argument resourceId will be ignored."
            )
        self.logger.info(f"{self.title}: Authenticating.")
        params = {
            "resource": configuration.resource(self.title),
            "api-version": AZURE_ARC_API_VERSION,
        }
        if configuration.client_id:
            params["client_id"] = configuration.client_id
        if configuration.resource_id:
            params["msi_res_id"] = configuration.resource_id

        file_path = await self._key_file_path(configuration, params, options)
        if not file_path:
            raise IdentityError(f"{self.title}: Failed to find the token file.")
        key = Path(file_path).read_text(encoding="utf-8")

        response = await configuration.identity_client.send_token_request(
            "GET",
            configuration.env.get("IDENTITY_ENDPOINT", ""),
            params=params,
            headers={
                "Accept": "application/json",
                "Metadata": "true",
                "Authorization": f"Basic {key}",
            },
            abort_signal=options.abort_signal,
            correlation_id=options.correlation_id,
        )
        return response.access_token if response else None
