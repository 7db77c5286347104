"""Client credentials grant with a client secret."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from azidentity.engine.base import ClientCredential, EngineApps, EngineResult, TokenFlow
from azidentity.models import GetTokenOptions

if TYPE_CHECKING:
    from azidentity.engine.client import EngineClient


class ClientSecretFlow(TokenFlow):
    """Acquire app-only tokens with a client secret."""

    requires_confidential = True

    def __init__(self, client_secret: str) -> None:
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
        app = apps.pick("confidential")
        return await engine.run(
            options, app.acquire_token_for_client, scopes, claims_challenge=options.claims
        )
