"""Redeem an authorization code the application obtained itself."""

from __future__ import annotations

from typing import Optional

from azidentity.credentials.base import EngineCredential
from azidentity.engine.client import EngineClient
from azidentity.engine.flows.authorization_code import AuthorizationCodeFlow
from azidentity.logger import credential_logger
from azidentity.models import CredentialOptions
from azidentity.tenant import check_tenant_id

logger = credential_logger("AuthorizationCodeCredential")


class AuthorizationCodeCredential(EngineCredential):
    """Authenticates a user with an authorization code.

    The code is redeemed on the first ``get_token``; later requests are
    served from the cache or the refresh token.

    Args:
        tenant_id: The Microsoft Entra tenant (directory) ID.
        client_id: The client (application) ID of an app registration.
        authorization_code: The code received on the redirect URI.
        redirect_uri: The redirect URI used to obtain the code.
        client_secret: Secret of a confidential (web) application.
        options: Shared credential options.
    """

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        authorization_code: str,
        redirect_uri: str,
        client_secret: Optional[str] = None,
        options: Optional[CredentialOptions] = None,
    ) -> None:
        check_tenant_id(tenant_id, logger)
        super().__init__(
            EngineClient(
                AuthorizationCodeFlow(authorization_code, redirect_uri, client_secret),
                client_id=client_id,
                tenant_id=tenant_id,
                options=options or CredentialOptions(),
                logger=logger,
            )
        )
