"""User authentication with a username and password."""

from __future__ import annotations

from typing import Optional

from azidentity.credentials.base import InteractiveCredential
from azidentity.engine.client import EngineClient
from azidentity.engine.flows.username_password import UsernamePasswordFlow
from azidentity.logger import credential_logger
from azidentity.models import CredentialOptions

logger = credential_logger("UsernamePasswordCredential")


class UsernamePasswordCredential(InteractiveCredential):
    """Authenticates a user with the resource owner password grant.

    Does not work for accounts with multi-factor authentication.
    """

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        username: str,
        password: str,
        options: Optional[CredentialOptions] = None,
    ) -> None:
        if not tenant_id or not client_id or not username or not password:
            raise ValueError(
                "UsernamePasswordCredential: tenantId, clientId, username and password are "
                "required parameters. To troubleshoot, visit "
                "https://aka.ms/azsdk/js/identity/usernamepasswordcredential/troubleshoot."
            )
        options = options or CredentialOptions()
        super().__init__(
            EngineClient(
                UsernamePasswordFlow(username, password),
                client_id=client_id,
                tenant_id=tenant_id,
                options=options,
                logger=logger,
            ),
            options.disable_automatic_authentication,
        )
