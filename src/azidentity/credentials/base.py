"""Base classes for credentials.

Every credential implements :class:`TokenCredential`: an async
``get_token(scopes, options)`` returning an
:class:`~azidentity.models.AccessToken`, plus ``close()`` and async
context manager support for releasing HTTP clients.

Credentials backed by the token engine derive from
:class:`EngineCredential`, which owns an
:class:`~azidentity.engine.client.EngineClient` and forwards requests to
it. Interactive ones add :meth:`InteractiveCredential.authenticate`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from azidentity.engine.client import EngineClient
from azidentity.models import AccessToken, AuthenticationRecord, GetTokenOptions
from azidentity.scopes import Scopes, ensure_scopes


class TokenCredential(ABC):
    """A source of access tokens."""

    @abstractmethod
    async def get_token(
        self, scopes: Scopes, options: Optional[GetTokenOptions] = None
    ) -> AccessToken:
        """Return an access token for *scopes*.

        Raises:
            CredentialUnavailableError: If the credential cannot be used in
                this environment.
            AuthenticationError: If the identity provider rejected the
                request.
        """
        ...

    async def close(self) -> None:
        """Release network resources held by the credential."""

    async def __aenter__(self) -> TokenCredential:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()


class EngineCredential(TokenCredential):
    """A credential whose tokens come from an :class:`EngineClient`."""

    def __init__(self, engine: EngineClient) -> None:
        self._engine = engine

    async def get_token(
        self, scopes: Scopes, options: Optional[GetTokenOptions] = None
    ) -> AccessToken:
        return await self._engine.get_token(ensure_scopes(scopes), options)

    async def close(self) -> None:
        await self._engine.close()


class InteractiveCredential(EngineCredential):
    """An engine credential that signs a user in.

    Args:
        engine: The owning engine client.
        disable_automatic_authentication: Make ``get_token`` raise
            :class:`~azidentity.exceptions.AuthenticationRequiredError`
            instead of prompting when the cache has no token; call
            :meth:`authenticate` to prompt explicitly.
    """

    def __init__(self, engine: EngineClient, disable_automatic_authentication: bool = False) -> None:
        super().__init__(engine)
        self.disable_automatic_authentication = disable_automatic_authentication

    async def get_token(
        self, scopes: Scopes, options: Optional[GetTokenOptions] = None
    ) -> AccessToken:
        options = options or GetTokenOptions()
        if self.disable_automatic_authentication:
            options = options.model_copy(update={"disable_automatic_authentication": True})
        return await self._engine.get_token(ensure_scopes(scopes), options)

    async def authenticate(
        self, scopes: Scopes, options: Optional[GetTokenOptions] = None
    ) -> Optional[AuthenticationRecord]:
        """Sign the user in and return their :class:`AuthenticationRecord`.

        Prompts regardless of ``disable_automatic_authentication`` when the
        cache cannot satisfy the request.
        """
        options = (options or GetTokenOptions()).model_copy(
            update={"disable_automatic_authentication": False}
        )
        await self._engine.get_token(ensure_scopes(scopes), options)
        return await self._engine.get_active_account(options)
