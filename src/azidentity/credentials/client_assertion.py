"""Service principal authentication with a caller-supplied assertion."""

from __future__ import annotations

from typing import Optional

from azidentity.credentials.base import EngineCredential
from azidentity.engine.client import EngineClient
from azidentity.engine.flows.client_assertion import AssertionCallback, ClientAssertionFlow
from azidentity.logger import credential_logger
from azidentity.models import CredentialOptions

logger = credential_logger("ClientAssertionCredential")


class ClientAssertionCredential(EngineCredential):
    """Authenticates a service principal with a signed JWT assertion.

    Args:
        tenant_id: The Microsoft Entra tenant (directory) ID.
        client_id: The client (application) ID of an app registration.
        get_assertion: Returns the assertion, sync or async. Called before
            every token request.
        options: Shared credential options.
    """

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        get_assertion: AssertionCallback,
        options: Optional[CredentialOptions] = None,
    ) -> None:
        if not tenant_id or not client_id or not get_assertion:
            raise ValueError(
                "ClientAssertionCredential: tenantId, clientId, and clientAssertion are required parameters."
            )
        super().__init__(
            EngineClient(
                ClientAssertionFlow(get_assertion),
                client_id=client_id,
                tenant_id=tenant_id,
                options=options or CredentialOptions(),
                logger=logger,
            )
        )
