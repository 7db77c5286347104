"""Azure Instance Metadata Service (virtual machines, scale sets, AKS pods).

IMDS has no environment variable announcing it, so availability is
decided by a short ping: any HTTP answer means the endpoint is there,
except a 403 whose body says the endpoint is unreachable (the answer
Docker Desktop's network proxy gives). Token requests are retried on 404,
which IMDS returns while an identity is still being assigned.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import httpx

from azidentity.client.identity_client import IdentityClient
from azidentity.config import EnvironmentSnapshot
from azidentity.constants import (
    IMDS_API_VERSION,
    IMDS_DELAY_MULTIPLIER,
    IMDS_ENDPOINT_PATH,
    IMDS_HOST,
    IMDS_MAX_RETRIES,
    IMDS_PING_TIMEOUT,
    IMDS_START_DELAY,
)
from azidentity.credentials.managed_identity.base import MSI, MSIConfiguration
from azidentity.exceptions import AuthenticationError
from azidentity.models import AccessToken, GetTokenOptions


def imds_endpoint(env: EnvironmentSnapshot) -> str:
    """Return the token endpoint, honouring ``AZURE_POD_IDENTITY_AUTHORITY_HOST``."""
    host = env.get("AZURE_POD_IDENTITY_AUTHORITY_HOST") or IMDS_HOST
    return host.rstrip("/") + IMDS_ENDPOINT_PATH


class ImdsMsi(MSI):
    """IMDS source.

    Args:
        max_retries: Attempts before giving up on repeated 404 answers.
        start_delay: Seconds to wait after the first 404; multiplied by
            *delay_multiplier* after each further one.
        delay_multiplier: Backoff factor.
    """

    name = "imdsMsi"
    title = "ManagedIdentityCredential - IMDS"

    def __init__(
        self,
        max_retries: int = IMDS_MAX_RETRIES,
        start_delay: float = IMDS_START_DELAY,
        delay_multiplier: float = IMDS_DELAY_MULTIPLIER,
    ) -> None:
        super().__init__()
        self.max_retries = max_retries
        self.start_delay = start_delay
        self.delay_multiplier = delay_multiplier

    async def is_available(
        self,
        scopes: list[str],
        identity_client: IdentityClient,
        env: EnvironmentSnapshot,
        client_id: Optional[str] = None,
        resource_id: Optional[str] = None,
        options: Optional[GetTokenOptions] = None,
    ) -> bool:
        if not self._supports_scopes(scopes):
            return False
        # Pod identity answers like IMDS but may be slow to respond to pings.
        if env.has("AZURE_POD_IDENTITY_AUTHORITY_HOST"):
            return True

        options = options or GetTokenOptions()
        try:
            response = await identity_client.send_request(
                "GET",
                imds_endpoint(env),
                timeout=options.timeout or IMDS_PING_TIMEOUT,
                abort_signal=options.abort_signal,
                correlation_id=options.correlation_id,
            )
        except httpx.HTTPError as exc:
            self.logger.verbose(f"{self.title}: Caught error {type(exc).__name__}: {exc}")
            self.logger.info(f"{self.title}: The Azure IMDS endpoint is unavailable")
            return False

        if response.status_code == 403 and "unreachable" in response.text:
            self.logger.info(f"{self.title}: The Azure IMDS endpoint is unavailable")
            self.logger.info(f"{self.title}: {response.text}")
            return False
        self.logger.info(f"{self.title}: The Azure IMDS endpoint is available")
        return True

    async def get_token(
        self, configuration: MSIConfiguration, options: GetTokenOptions
    ) -> Optional[AccessToken]:
        env = configuration.env
        self.logger.info(
            f"{self.title}: Using the Azure IMDS endpoint coming from the environment "
            f"variable MSI_ENDPOINT={env.get('MSI_ENDPOINT')}, and using the cloud shell "
            "to proceed with the authentication."
        )
        params = {
            "resource": configuration.resource(self.title),
            "api-version": IMDS_API_VERSION,
        }
        if configuration.client_id:
            params["client_id"] = configuration.client_id
        if configuration.resource_id:
            params["msi_res_id"] = configuration.resource_id

        delay = self.start_delay
        for _ in range(self.max_retries):
            try:
                response = await configuration.identity_client.send_token_request(
                    "GET",
                    imds_endpoint(env),
                    params=params,
                    headers={"Accept": "application/json", "Metadata": "true"},
                    abort_signal=options.abort_signal,
                    correlation_id=options.correlation_id,
                )
            except AuthenticationError as exc:
                if exc.status_code != 404:
                    raise
                await asyncio.sleep(delay)
                delay *= self.delay_multiplier
                continue
            return response.access_token if response else None

        raise AuthenticationError(
            404, f"{self.title}: Failed to retrieve IMDS token after {self.max_retries} retries."
        )
