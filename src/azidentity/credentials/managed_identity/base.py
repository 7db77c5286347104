"""Abstract base class for managed identity sources.

A managed identity *source* is one hosting environment that can issue
tokens for the identity assigned to the workload: App Service, Azure Arc,
Service Fabric, Cloud Shell, the VM metadata service (IMDS) or workload
identity federation. Each source answers two questions:

1. :meth:`MSI.is_available` -- does this environment look like mine?
   Usually decided from environment variables alone; IMDS pings.
2. :meth:`MSI.get_token` -- fetch a token for the requested resource.

:class:`~azidentity.credentials.managed_identity.credential.ManagedIdentityCredential`
probes the sources in a fixed priority order and remembers the first
available one.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from azidentity.client.identity_client import IdentityClient
from azidentity.config import EnvironmentSnapshot
from azidentity.logger import CredentialLoggerWithGetToken, credential_logger
from azidentity.models import AccessToken, GetTokenOptions
from azidentity.scopes import map_scopes_to_resource


class MSIConfiguration:
    """Everything a source needs to issue one token request.

    Args:
        identity_client: Client used for the token request.
        scopes: The requested scopes.
        env: Environment snapshot holding the endpoint variables.
        client_id: Client ID of a user-assigned identity.
        resource_id: Resource ID of a user-assigned identity.
    """

    def __init__(
        self,
        identity_client: IdentityClient,
        scopes: list[str],
        env: EnvironmentSnapshot,
        client_id: Optional[str] = None,
        resource_id: Optional[str] = None,
    ):
        self.identity_client = identity_client
        self.scopes = scopes
        self.env = env
        self.client_id = client_id
        self.resource_id = resource_id

    def resource(self, msi_name: str) -> str:
        """Return the single resource of :attr:`scopes`.

        Raises:
            ValueError: If more than one scope was requested.
        """
        resource = map_scopes_to_resource(self.scopes)
        if not resource:
            raise ValueError(f"{msi_name}: Multiple scopes are not supported.")
        return resource


class MSI(ABC):
    """Base class for a managed identity source.

    Subclasses set :attr:`name` to a short identifier and :attr:`title` to
    the log prefix, and declare the environment variables they need in
    :attr:`required_env`. The default :meth:`is_available` rejects
    multi-scope requests and checks those variables.
    """

    name: str
    title: str
    required_env: tuple[str, ...] = ()
    missing_env_message: str = ""

    def __init__(self) -> None:
        self.logger: CredentialLoggerWithGetToken = credential_logger(self.title)

    def _supports_scopes(self, scopes: list[str]) -> bool:
        if not map_scopes_to_resource(scopes):
            self.logger.info(f"{self.title}: Unavailable. Multiple scopes are not supported.")
            return False
        return True

    async def is_available(
        self,
        scopes: list[str],
        identity_client: IdentityClient,
        env: EnvironmentSnapshot,
        client_id: Optional[str] = None,
        resource_id: Optional[str] = None,
        options: Optional[GetTokenOptions] = None,
    ) -> bool:
        """Return ``True`` when this source can serve *scopes* here."""
        if not self._supports_scopes(scopes):
            return False
        available = all(env.has(name) for name in self.required_env)
        if not available:
            self.logger.info(f"{self.title}: {self.missing_env_message}")
        return available

    @abstractmethod
    async def get_token(
        self, configuration: MSIConfiguration, options: GetTokenOptions
    ) -> Optional[AccessToken]:
        """Request a token.

        Returns:
            The token, or ``None`` when the endpoint answered without one.

        Raises:
            AuthenticationError: If the endpoint rejected the request.
        """
        ...

    async def close(self) -> None:
        """Release resources held by the source."""
