"""Client credentials grant with a caller-supplied assertion."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Union

from azidentity.engine.base import (
    ClientCredential,
    EngineApps,
    EngineResult,
    TokenFlow,
    resolve_maybe_awaitable,
)
from azidentity.models import GetTokenOptions

if TYPE_CHECKING:
    from azidentity.engine.client import EngineClient

AssertionCallback = Callable[[], Union[str, Awaitable[str]]]


class ClientAssertionFlow(TokenFlow):
    """Acquire app-only tokens with a signed client assertion (JWT).

    The callback may be sync or async. It is called before every token
    request so short-lived assertions (federated tokens) are never reused
    after they expire.
    """

    requires_confidential = True

    def __init__(self, get_assertion: AssertionCallback) -> None:
        self._get_assertion = get_assertion
        self._assertion = ""

    def _current_assertion(self) -> str:
        return self._assertion

    def client_credential(self) -> Optional[ClientCredential]:
        return {"client_assertion": self._current_assertion}

    async def acquire(
        self,
        engine: EngineClient,
        apps: EngineApps,
        scopes: list[str],
        options: GetTokenOptions,
    ) -> EngineResult:
        assertion: Any = await resolve_maybe_awaitable(self._get_assertion())
        self._assertion = str(assertion)
        app = apps.pick("confidential")
        return await engine.run(
            options, app.acquire_token_for_client, scopes, claims_challenge=options.claims
        )
