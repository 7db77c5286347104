"""Bundled :class:`~azidentity.engine.base.TokenFlow` implementations."""

from azidentity.engine.flows.authorization_code import AuthorizationCodeFlow
from azidentity.engine.flows.client_assertion import ClientAssertionFlow
from azidentity.engine.flows.client_certificate import ClientCertificateFlow, parse_certificate
from azidentity.engine.flows.client_secret import ClientSecretFlow
from azidentity.engine.flows.device_code import DeviceCodeFlow, DeviceCodeInfo
from azidentity.engine.flows.interactive_browser import InteractiveBrowserFlow
from azidentity.engine.flows.on_behalf_of import OnBehalfOfFlow
from azidentity.engine.flows.username_password import UsernamePasswordFlow

__all__ = [
    "AuthorizationCodeFlow",
    "ClientAssertionFlow",
    "ClientCertificateFlow",
    "ClientSecretFlow",
    "DeviceCodeFlow",
    "DeviceCodeInfo",
    "InteractiveBrowserFlow",
    "OnBehalfOfFlow",
    "UsernamePasswordFlow",
    "parse_certificate",
]
