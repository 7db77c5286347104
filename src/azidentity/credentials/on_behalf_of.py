"""On-behalf-of authentication for middle-tier services."""

from __future__ import annotations

from typing import Optional

from azidentity.credentials.base import EngineCredential
from azidentity.engine.client import EngineClient
from azidentity.engine.flows.on_behalf_of import OnBehalfOfFlow
from azidentity.logger import credential_logger
from azidentity.models import CredentialOptions

logger = credential_logger("OnBehalfOfCredential")


class OnBehalfOfCredential(EngineCredential):
    """Exchanges a user's access token for a token to a downstream API.

    The service authenticates itself with either *client_secret* or the
    certificate at *certificate_path*.

    Args:
        tenant_id: The Microsoft Entra tenant (directory) ID.
        client_id: The client (application) ID of the middle-tier service.
        user_assertion_token: The access token the service received.
        client_secret: The service's client secret.
        certificate_path: Path to the service's PEM certificate.
        certificate_password: Password of an encrypted private key.
        send_certificate_chain: Send the ``x5c`` header.
        options: Shared credential options.
    """

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        user_assertion_token: str,
        *,
        client_secret: Optional[str] = None,
        certificate_path: Optional[str] = None,
        certificate_password: Optional[str] = None,
        send_certificate_chain: bool = False,
        options: Optional[CredentialOptions] = None,
    ) -> None:
        if (
            not tenant_id
            or not client_id
            or not (client_secret or certificate_path)
            or not user_assertion_token
        ):
            raise ValueError(
                "OnBehalfOfCredential: tenantId, clientId, clientSecret (or certificatePath) "
                "and userAssertionToken are required parameters."
            )
        logger.info("Initialized the On-Behalf-Of flow")
        super().__init__(
            EngineClient(
                OnBehalfOfFlow(
                    user_assertion_token,
                    client_secret=client_secret,
                    certificate_path=certificate_path,
                    certificate_password=certificate_password,
                    send_certificate_chain=send_certificate_chain,
                ),
                client_id=client_id,
                tenant_id=tenant_id,
                options=options or CredentialOptions(),
                logger=logger,
            )
        )
