"""Redeem an authorization code obtained by the application."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from azidentity.engine.base import ClientCredential, EngineApps, EngineResult, TokenFlow
from azidentity.models import GetTokenOptions

if TYPE_CHECKING:
    from azidentity.engine.client import EngineClient


class AuthorizationCodeFlow(TokenFlow):
    """Redeem a code on the confidential application when a secret is set, else the public one."""

    def __init__(
        self,
        authorization_code: str,
        redirect_uri: str,
        client_secret: Optional[str] = None,
    ) -> None:
        self._authorization_code = authorization_code
        self._redirect_uri = redirect_uri
        self._client_secret = client_secret

    def client_credential(self) -> Optional[ClientCredential]:
        return self._client_secret

    async def acquire(
        self,
        engine: EngineClient,
        apps: EngineApps,
        scopes: list[str],
        options: GetTokenOptions,
    ) -> EngineResult:
        app = apps.pick("confidential_first")
        return await engine.run(
            options,
            app.acquire_token_by_authorization_code,
            self._authorization_code,
            scopes,
            redirect_uri=self._redirect_uri,
            claims_challenge=options.claims,
        )
