"""On-behalf-of grant: exchange a user's token for a downstream token."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from azidentity.engine.base import ClientCredential, EngineApps, EngineResult, TokenFlow
from azidentity.engine.flows.client_certificate import (
    certificate_credential,
    read_certificate_contents,
)
from azidentity.models import GetTokenOptions

if TYPE_CHECKING:
    from azidentity.engine.client import EngineClient


class OnBehalfOfFlow(TokenFlow):
    """Redeem a user assertion with either a client secret or a certificate."""

    requires_confidential = True

    def __init__(
        self,
        user_assertion_token: str,
        client_secret: Optional[str] = None,
        certificate_path: Optional[str] = None,
        certificate_password: Optional[str] = None,
        send_certificate_chain: bool = False,
    ) -> None:
        self._user_assertion_token = user_assertion_token
        self._client_secret = client_secret
        self._certificate_path = certificate_path
        self._certificate_password = certificate_password
        self._send_certificate_chain = send_certificate_chain
        self._certificate: Optional[dict[str, Any]] = None

    async def prepare(self, options: GetTokenOptions) -> None:
        if self._client_secret is None and self._certificate is None and self._certificate_path:
            contents = read_certificate_contents(certificate_path=self._certificate_path)
            self._certificate = certificate_credential(
                contents, self._certificate_password, self._send_certificate_chain
            )

    def client_credential(self) -> Optional[ClientCredential]:
        if self._client_secret is not None:
            return self._client_secret
        return self._certificate

    async def acquire(
        self,
        engine: EngineClient,
        apps: EngineApps,
        scopes: list[str],
        options: GetTokenOptions,
    ) -> EngineResult:
        app = apps.pick("confidential")
        return await engine.run(
            options,
            app.acquire_token_on_behalf_of,
            self._user_assertion_token,
            scopes,
            claims_challenge=options.claims,
        )
