"""Credential implementations.

Every credential is a :class:`~azidentity.credentials.base.TokenCredential`.
Most applications want :class:`DefaultAzureCredential`; the others cover a
single authentication mechanism each.
"""

from azidentity.credentials.authorization_code import AuthorizationCodeCredential
from azidentity.credentials.azure_cli import AzureCliCredential
from azidentity.credentials.azure_developer_cli import AzureDeveloperCliCredential
from azidentity.credentials.azure_powershell import AzurePowerShellCredential
from azidentity.credentials.base import EngineCredential, InteractiveCredential, TokenCredential
from azidentity.credentials.chained import ChainedTokenCredential
from azidentity.credentials.client_assertion import ClientAssertionCredential
from azidentity.credentials.client_certificate import ClientCertificateCredential
from azidentity.credentials.client_secret import ClientSecretCredential
from azidentity.credentials.default import DefaultAzureCredential
from azidentity.credentials.device_code import DeviceCodeCredential
from azidentity.credentials.environment import EnvironmentCredential
from azidentity.credentials.interactive_browser import InteractiveBrowserCredential
from azidentity.credentials.managed_identity import ManagedIdentityCredential
from azidentity.credentials.on_behalf_of import OnBehalfOfCredential
from azidentity.credentials.username_password import UsernamePasswordCredential
from azidentity.credentials.workload_identity import WorkloadIdentityCredential

__all__ = [
    "AuthorizationCodeCredential",
    "AzureCliCredential",
    "AzureDeveloperCliCredential",
    "AzurePowerShellCredential",
    "ChainedTokenCredential",
    "ClientAssertionCredential",
    "ClientCertificateCredential",
    "ClientSecretCredential",
    "DefaultAzureCredential",
    "DeviceCodeCredential",
    "EngineCredential",
    "EnvironmentCredential",
    "InteractiveBrowserCredential",
    "InteractiveCredential",
    "ManagedIdentityCredential",
    "OnBehalfOfCredential",
    "TokenCredential",
    "UsernamePasswordCredential",
    "WorkloadIdentityCredential",
]
