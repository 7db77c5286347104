"""Resource owner password credentials grant."""

from __future__ import annotations

from typing import TYPE_CHECKING

from azidentity.engine.base import EngineApps, EngineResult, TokenFlow
from azidentity.models import GetTokenOptions

if TYPE_CHECKING:
    from azidentity.engine.client import EngineClient


class UsernamePasswordFlow(TokenFlow):
    def __init__(self, username: str, password: str) -> None:
        self._username = username
        self._password = password

    async def acquire(
        self,
        engine: EngineClient,
        apps: EngineApps,
        scopes: list[str],
        options: GetTokenOptions,
    ) -> EngineResult:
        return await engine.run(
            options,
            apps.pick("public").acquire_token_by_username_password,
            self._username,
            self._password,
            scopes,
            claims_challenge=options.claims,
        )
