"""Managed identity credential.

Probes the managed identity sources in priority order, remembers the
first one available in this environment and requests tokens from it.
Errors are normalized so that a missing or unreachable endpoint surfaces
as :class:`~azidentity.exceptions.CredentialUnavailableError` and lets a
:class:`~azidentity.credentials.chained.ChainedTokenCredential` move on,
while a real rejection from a reachable endpoint surfaces as
:class:`~azidentity.exceptions.AuthenticationError`.
"""

from __future__ import annotations

import errno
import time
from typing import Optional

from azidentity.client.identity_client import IdentityClient
from azidentity.config import resolve_env
from azidentity.credentials.base import TokenCredential
from azidentity.credentials.managed_identity.app_service_2017 import AppServiceMsi2017
from azidentity.credentials.managed_identity.app_service_2019 import AppServiceMsi2019
from azidentity.credentials.managed_identity.arc import ArcMsi
from azidentity.credentials.managed_identity.base import MSI, MSIConfiguration
from azidentity.credentials.managed_identity.cloud_shell import CloudShellMsi
from azidentity.credentials.managed_identity.fabric import FabricMsi
from azidentity.credentials.managed_identity.imds import ImdsMsi
from azidentity.credentials.managed_identity.token_exchange import TokenExchangeMsi
from azidentity.exceptions import (
    AbortError,
    AuthenticationError,
    AuthenticationRequiredError,
    CredentialUnavailableError,
)
from azidentity.logger import credential_logger, format_error, format_success
from azidentity.models import AccessToken, CredentialOptions, GetTokenOptions
from azidentity.scopes import Scopes, ensure_scopes

CREDENTIAL_NAME = "ManagedIdentityCredential"

TOKEN_REFRESH_MARGIN_MS = 5 * 60 * 1000
"""Cached tokens are replaced this long before they expire."""

logger = credential_logger(CREDENTIAL_NAME)


def _network_errno(exc: BaseException) -> Optional[int]:
    """Return the ``errno`` of the first :class:`OSError` in *exc*'s cause chain."""
    current: Optional[BaseException] = exc
    seen: set[int] = set()
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, OSError) and current.errno is not None:
            return current.errno
        current = current.__cause__ or current.__context__
    return None


class ManagedIdentityCredential(TokenCredential):
    """Authenticates as the managed identity of the hosting Azure resource.

    Args:
        client_id: Client ID of a user-assigned identity.
        resource_id: Resource ID of a user-assigned identity.
        options: Shared credential options.

    Raises:
        ValueError: If both *client_id* and *resource_id* are given.

    Example::

        async with ManagedIdentityCredential() as credential:
            token = await credential.get_token("https://vault.azure.net/.default")
    """

    def __init__(
        self,
        client_id: Optional[str] = None,
        resource_id: Optional[str] = None,
        options: Optional[CredentialOptions] = None,
    ) -> None:
        if client_id and resource_id:
            raise ValueError(
                f"{CREDENTIAL_NAME} - Client Id and Resource Id can't be provided at the same time."
            )
        options = options or CredentialOptions()
        self.client_id = client_id
        self.resource_id = resource_id
        self.env = resolve_env(options.env)
        self.identity_client = IdentityClient(
            options.authority_host,
            env=self.env,
            transport=options.transport,
            log_identifiers=options.log_identifiers,
        )
        self.sources: list[MSI] = [
            ArcMsi(),
            FabricMsi(),
            AppServiceMsi2019(),
            AppServiceMsi2017(),
            CloudShellMsi(),
            TokenExchangeMsi(options),
            ImdsMsi(),
        ]
        self.cached_source: Optional[MSI] = None
        self.is_endpoint_unavailable: Optional[bool] = None
        self._token_cache: dict[tuple[str, ...], AccessToken] = {}

    async def cached_available_msi(
        self, scopes: list[str], options: Optional[GetTokenOptions] = None
    ) -> MSI:
        """Return the memoized source, probing for one on the first call.

        Raises:
            CredentialUnavailableError: If no source is available.
        """
        if self.cached_source is not None:
            return self.cached_source
        for source in self.sources:
            if await source.is_available(
                scopes,
                self.identity_client,
                self.env,
                client_id=self.client_id,
                resource_id=self.resource_id,
                options=options,
            ):
                self.cached_source = source
                return source
        raise CredentialUnavailableError(f"{CREDENTIAL_NAME} - No MSI credential available")

    def _cached_token(self, scopes: list[str], options: GetTokenOptions) -> Optional[AccessToken]:
        if options.claims:
            return None
        token = self._token_cache.get(tuple(scopes))
        now_ms = int(time.time() * 1000)
        if token is not None and token.expires_on_timestamp - TOKEN_REFRESH_MARGIN_MS > now_ms:
            return token
        return None

    async def _authenticate(
        self, scopes: list[str], options: GetTokenOptions
    ) -> Optional[AccessToken]:
        source = await self.cached_available_msi(scopes, options)
        if source.name == "tokenExchangeMsi":
            return await source.get_token(self._configuration(scopes), options)

        cached = self._cached_token(scopes, options)
        if cached is not None:
            logger.get_token.info("Returning a cached token.")
            return cached
        token = await source.get_token(self._configuration(scopes), options)
        if token is not None:
            self._token_cache[tuple(scopes)] = token
        return token

    def _configuration(self, scopes: list[str]) -> MSIConfiguration:
        return MSIConfiguration(
            self.identity_client,
            scopes,
            self.env,
            client_id=self.client_id,
            resource_id=self.resource_id,
        )

    async def get_token(
        self, scopes: Scopes, options: Optional[GetTokenOptions] = None
    ) -> AccessToken:
        scopes = ensure_scopes(scopes)
        options = options or GetTokenOptions()
        try:
            if self.is_endpoint_unavailable is True:
                error = CredentialUnavailableError(
                    "The managed identity endpoint is not currently available"
                )
                logger.get_token.info(format_error(scopes, error))
                raise error

            result = await self._authenticate(scopes, options)
            if result is None:
                self.is_endpoint_unavailable = True
                error = CredentialUnavailableError(
                    "The managed identity endpoint was reached, yet no tokens were received."
                )
                logger.get_token.info(format_error(scopes, error))
                raise error
            self.is_endpoint_unavailable = False
            logger.get_token.info(format_success(scopes))
            return result
        except (AuthenticationRequiredError, CredentialUnavailableError, AbortError):
            raise
        except AuthenticationError as exc:
            if exc.status_code == 400:
                raise CredentialUnavailableError(
                    f"{CREDENTIAL_NAME}: The managed identity endpoint is indicating "
                    f"there's no available identity. Message: {exc.message}"
                ) from exc
            raise AuthenticationError(
                exc.status_code,
                {
                    "error": f"{CREDENTIAL_NAME} authentication failed.",
                    "error_description": exc.message,
                },
            ) from exc
        except Exception as exc:
            code = _network_errno(exc)
            if code == errno.ENETUNREACH:
                error = CredentialUnavailableError(
                    f"{CREDENTIAL_NAME}: Unavailable. Network unreachable. Message: {exc}"
                )
                logger.get_token.info(format_error(scopes, error))
                raise error from exc
            if code == errno.EHOSTUNREACH:
                error = CredentialUnavailableError(
                    f"{CREDENTIAL_NAME}: Unavailable. No managed identity endpoint found. "
                    f"Message: {exc}"
                )
                logger.get_token.info(format_error(scopes, error))
                raise error from exc
            raise CredentialUnavailableError(
                f"{CREDENTIAL_NAME}: Authentication failed. Message {exc}"
            ) from exc

    async def close(self) -> None:
        for source in self.sources:
            await source.close()
        await self.identity_client.close()
