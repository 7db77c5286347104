"""The default credential chain.

:class:`DefaultAzureCredential` chains the credentials that work without
code changes across the usual places an application runs: deployed
services configured through environment variables or managed identity,
Kubernetes pods with workload identity, and developer machines signed in
to the Azure CLI, Azure PowerShell or the Azure Developer CLI.

All members are built from the same options and read the same
:class:`~azidentity.config.EnvironmentSnapshot`, captured once when the
chain is constructed.
"""

from __future__ import annotations

from typing import Optional

from azidentity.config import resolve_env
from azidentity.credentials.azure_cli import AzureCliCredential
from azidentity.credentials.azure_developer_cli import AzureDeveloperCliCredential
from azidentity.credentials.azure_powershell import AzurePowerShellCredential
from azidentity.credentials.base import TokenCredential
from azidentity.credentials.chained import ChainedTokenCredential
from azidentity.credentials.environment import EnvironmentCredential
from azidentity.credentials.managed_identity import ManagedIdentityCredential
from azidentity.credentials.workload_identity import WorkloadIdentityCredential
from azidentity.models import CredentialOptions, DefaultAzureCredentialOptions


def _shared_options(options: DefaultAzureCredentialOptions) -> CredentialOptions:
    """Strip the chain-only fields so members receive plain credential options."""
    return CredentialOptions.model_validate(
        {name: getattr(options, name) for name in CredentialOptions.model_fields}
    )


def default_managed_identity_credential(
    options: DefaultAzureCredentialOptions,
) -> ManagedIdentityCredential:
    """Build the chain's managed identity member.

    A resource ID wins; then, when a federated token file is present, the
    workload identity client ID; then the managed identity client ID or
    ``AZURE_CLIENT_ID``.
    """
    env = resolve_env(options.env)
    managed_identity_client_id = options.managed_identity_client_id or env.get("AZURE_CLIENT_ID")
    workload_identity_client_id = options.workload_identity_client_id or managed_identity_client_id
    shared = _shared_options(options)
    if options.managed_identity_resource_id:
        return ManagedIdentityCredential(
            resource_id=options.managed_identity_resource_id, options=shared
        )
    if env.get("AZURE_FEDERATED_TOKEN_FILE") and workload_identity_client_id:
        return ManagedIdentityCredential(client_id=workload_identity_client_id, options=shared)
    if managed_identity_client_id:
        return ManagedIdentityCredential(client_id=managed_identity_client_id, options=shared)
    return ManagedIdentityCredential(options=shared)


def default_workload_identity_credential(
    options: DefaultAzureCredentialOptions,
) -> WorkloadIdentityCredential:
    """Build the chain's workload identity member."""
    env = resolve_env(options.env)
    managed_identity_client_id = options.managed_identity_client_id or env.get("AZURE_CLIENT_ID")
    workload_identity_client_id = options.workload_identity_client_id or managed_identity_client_id
    tenant_id = options.tenant_id or env.get("AZURE_TENANT_ID")
    token_file = env.get("AZURE_FEDERATED_TOKEN_FILE")
    shared = _shared_options(options)
    if token_file and workload_identity_client_id:
        return WorkloadIdentityCredential(
            tenant_id=tenant_id,
            client_id=workload_identity_client_id,
            token_file_path=token_file,
            options=shared,
        )
    return WorkloadIdentityCredential(tenant_id=tenant_id, options=shared)


class DefaultAzureCredential(ChainedTokenCredential):
    """A ready-made chain suitable for most applications.

    Members, in order: :class:`EnvironmentCredential`,
    :class:`WorkloadIdentityCredential`, :class:`ManagedIdentityCredential`,
    :class:`AzureCliCredential`, :class:`AzurePowerShellCredential` and
    :class:`AzureDeveloperCliCredential`.

    Args:
        options: Chain options; see
            :class:`~azidentity.models.DefaultAzureCredentialOptions`.

    Example::

        async with DefaultAzureCredential() as credential:
            token = await credential.get_token("https://management.azure.com/.default")
    """

    def __init__(self, options: Optional[DefaultAzureCredentialOptions] = None) -> None:
        options = options or DefaultAzureCredentialOptions()
        options = options.model_copy(update={"env": resolve_env(options.env)})
        shared = _shared_options(options)
        sources: list[TokenCredential] = [
            EnvironmentCredential(shared),
            default_workload_identity_credential(options),
            default_managed_identity_credential(options),
            AzureCliCredential(options.tenant_id, shared),
            AzurePowerShellCredential(options.tenant_id, shared),
            AzureDeveloperCliCredential(options.tenant_id, shared),
        ]
        super().__init__(*sources)
