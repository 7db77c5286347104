"""User authentication with the device code flow."""

from __future__ import annotations

from typing import Optional

from azidentity.credentials.base import InteractiveCredential
from azidentity.engine.client import EngineClient
from azidentity.engine.flows.device_code import DeviceCodeFlow, DeviceCodePromptCallback
from azidentity.logger import credential_logger
from azidentity.models import CredentialOptions

logger = credential_logger("DeviceCodeCredential")


class DeviceCodeCredential(InteractiveCredential):
    """Signs a user in on another device.

    The user opens the verification page on any device and enters the code
    shown by *user_prompt_callback*. Suited to terminals and machines
    without a browser.

    Args:
        tenant_id: The tenant to sign in to; ``organizations`` by default.
        client_id: The application; the developer sign-on client by default.
        user_prompt_callback: Shows the code to the user; prints the
            message by default.
        options: Shared credential options.

    Example::

        credential = DeviceCodeCredential()
        record = await credential.authenticate("https://graph.microsoft.com/.default")
    """

    def __init__(
        self,
        tenant_id: Optional[str] = None,
        client_id: Optional[str] = None,
        user_prompt_callback: Optional[DeviceCodePromptCallback] = None,
        options: Optional[CredentialOptions] = None,
    ) -> None:
        options = options or CredentialOptions()
        super().__init__(
            EngineClient(
                DeviceCodeFlow(user_prompt_callback),
                client_id=client_id,
                tenant_id=tenant_id,
                options=options,
                logger=logger,
            ),
            options.disable_automatic_authentication,
        )
