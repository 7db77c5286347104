"""Service principal authentication with a client secret."""

from __future__ import annotations

from typing import Optional

from azidentity.credentials.base import EngineCredential
from azidentity.engine.client import EngineClient
from azidentity.engine.flows.client_secret import ClientSecretFlow
from azidentity.logger import credential_logger
from azidentity.models import CredentialOptions

logger = credential_logger("ClientSecretCredential")


class ClientSecretCredential(EngineCredential):
    """Authenticates a service principal with a client secret.

    Args:
        tenant_id: The Microsoft Entra tenant (directory) ID.
        client_id: The client (application) ID of an app registration.
        client_secret: A secret generated for the app registration.
        options: Shared credential options.

    Raises:
        ValueError: If any of the three identifiers is missing, or the
            tenant ID is malformed.
    """

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        options: Optional[CredentialOptions] = None,
    ) -> None:
        if not tenant_id or not client_id or not client_secret:
            raise ValueError(
                "ClientSecretCredential: tenantId, clientId, and clientSecret are required parameters. "
                "To troubleshoot, visit https://aka.ms/azsdk/js/identity/serviceprincipalauthentication/troubleshoot."
            )
        super().__init__(
            EngineClient(
                ClientSecretFlow(client_secret),
                client_id=client_id,
                tenant_id=tenant_id,
                options=options or CredentialOptions(),
                logger=logger,
            )
        )
