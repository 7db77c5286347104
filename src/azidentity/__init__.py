"""azidentity -- token credentials for the Microsoft identity platform.

The package provides credentials that acquire OAuth 2.0 access tokens
from Microsoft Entra ID: service principals (secret, certificate,
assertion), user flows (device code, interactive browser,
username/password, authorization code, on-behalf-of), managed identity on
Azure hosts, workload identity federation, and the signed-in accounts of
the Azure CLI, Azure PowerShell and the Azure Developer CLI.
:class:`DefaultAzureCredential` chains the ones that need no code changes
between environments.

Typical usage::

    import asyncio
    from azidentity import DefaultAzureCredential

    async def main():
        async with DefaultAzureCredential() as credential:
            token = await credential.get_token("https://vault.azure.net/.default")

    asyncio.run(main())

Modules:
    credentials: The credential classes.
    engine: Adapter around the MSAL token engine.
    client: Asynchronous HTTP client for identity endpoints.
    models: Pydantic models for tokens, records and options.
    exceptions: Exception hierarchy with exit-code mapping.
    app: Command line entry point.
"""

__version__ = "0.4.0"

from azidentity.credentials import (  # noqa: E402
    AuthorizationCodeCredential,
    AzureCliCredential,
    AzureDeveloperCliCredential,
    AzurePowerShellCredential,
    ChainedTokenCredential,
    ClientAssertionCredential,
    ClientCertificateCredential,
    ClientSecretCredential,
    DefaultAzureCredential,
    DeviceCodeCredential,
    EnvironmentCredential,
    InteractiveBrowserCredential,
    ManagedIdentityCredential,
    OnBehalfOfCredential,
    TokenCredential,
    UsernamePasswordCredential,
    WorkloadIdentityCredential,
)
from azidentity.engine.flows.device_code import DeviceCodeInfo  # noqa: E402
from azidentity.exceptions import (  # noqa: E402
    AggregateAuthenticationError,
    AuthenticationError,
    AuthenticationRequiredError,
    CredentialUnavailableError,
    IdentityError,
)
from azidentity.models import (  # noqa: E402
    AccessToken,
    AuthenticationRecord,
    CredentialOptions,
    DefaultAzureCredentialOptions,
    GetTokenOptions,
    IdentityPlugins,
    TokenCachePersistenceOptions,
)
from azidentity.record import (  # noqa: E402
    deserialize_authentication_record,
    serialize_authentication_record,
)
from azidentity.scopes import get_scope_resource  # noqa: E402

__all__ = [
    "AccessToken",
    "AggregateAuthenticationError",
    "AuthenticationError",
    "AuthenticationRecord",
    "AuthenticationRequiredError",
    "AuthorizationCodeCredential",
    "AzureCliCredential",
    "AzureDeveloperCliCredential",
    "AzurePowerShellCredential",
    "ChainedTokenCredential",
    "ClientAssertionCredential",
    "ClientCertificateCredential",
    "ClientSecretCredential",
    "CredentialOptions",
    "CredentialUnavailableError",
    "DefaultAzureCredential",
    "DefaultAzureCredentialOptions",
    "DeviceCodeCredential",
    "DeviceCodeInfo",
    "EnvironmentCredential",
    "GetTokenOptions",
    "IdentityError",
    "IdentityPlugins",
    "InteractiveBrowserCredential",
    "ManagedIdentityCredential",
    "OnBehalfOfCredential",
    "TokenCachePersistenceOptions",
    "TokenCredential",
    "UsernamePasswordCredential",
    "WorkloadIdentityCredential",
    "__version__",
    "deserialize_authentication_record",
    "get_scope_resource",
    "serialize_authentication_record",
]
