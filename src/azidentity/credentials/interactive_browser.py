"""User authentication through the system browser."""

from __future__ import annotations

from typing import Callable, Optional

from azidentity.credentials.base import InteractiveCredential
from azidentity.engine.client import EngineClient
from azidentity.engine.flows.interactive_browser import InteractiveBrowserFlow
from azidentity.logger import credential_logger
from azidentity.models import CredentialOptions

logger = credential_logger("InteractiveBrowserCredential")


class InteractiveBrowserCredential(InteractiveCredential):
    """Signs a user in through the default browser.

    A local server on the redirect URI receives the authorization code, so
    the redirect URI must be a loopback address registered for the
    application.

    Args:
        tenant_id: The tenant to sign in to; ``organizations`` by default.
        client_id: The application; the developer sign-on client by default.
        redirect_uri: Loopback redirect URI; ``http://localhost`` by default.
        login_hint: Pre-selects the account on the sign-in page.
        open_browser: Replaces :func:`webbrowser.open`.
        options: Shared credential options.
    """

    def __init__(
        self,
        tenant_id: Optional[str] = None,
        client_id: Optional[str] = None,
        redirect_uri: Optional[str] = None,
        login_hint: Optional[str] = None,
        open_browser: Optional[Callable[[str], bool]] = None,
        options: Optional[CredentialOptions] = None,
    ) -> None:
        options = options or CredentialOptions()
        super().__init__(
            EngineClient(
                InteractiveBrowserFlow(redirect_uri, login_hint, open_browser),
                client_id=client_id,
                tenant_id=tenant_id,
                options=options,
                logger=logger,
            ),
            options.disable_automatic_authentication,
        )
