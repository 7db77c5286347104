"""Pydantic models shared across azidentity.

These models define the data exchanged between credentials, the token
engine adapter and callers:

* :class:`AccessToken` -- the result of every ``get_token`` call.
* :class:`AuthenticationRecord` -- the non-secret account description
  returned by ``authenticate()`` and accepted back by interactive
  credentials to enable silent authentication.
* :class:`GetTokenOptions` -- per-request options (tenant, claims, CAE,
  cancellation).
* :class:`CredentialOptions` / :class:`DefaultAzureCredentialOptions` --
  constructor options shared by the credential classes.
* :class:`TokenCachePersistenceOptions` / :class:`IdentityPlugins` --
  opt-in persistent caching and the injected provider that implements it.

See Also:
    :mod:`azidentity.record` for (de)serialization of authentication
    records.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from azidentity.config import EnvironmentSnapshot
from azidentity.constants import LATEST_AUTHENTICATION_RECORD_VERSION


class AccessToken(BaseModel):
    """An access token and its absolute expiry.

    Attributes:
        token: The bearer token.
        expires_on_timestamp: Expiry as milliseconds since the Unix epoch.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    token: str = Field(description="The access token")
    expires_on_timestamp: int = Field(
        alias="expiresOnTimestamp",
        description="Expiry in milliseconds since the Unix epoch",
    )

    def __repr__(self) -> str:
        return f"AccessToken(token='[REDACTED]', expires_on_timestamp={self.expires_on_timestamp})"

    __str__ = __repr__


class AuthenticationRecord(BaseModel):
    """Non-secret information about an authenticated account.

    Serialized with camelCase keys in this exact order: ``authority``,
    ``homeAccountId``, ``tenantId``, ``username``, ``clientId``,
    ``version``.
    """

    model_config = ConfigDict(populate_by_name=True)

    authority: str = Field(description="Authority the account authenticated against")
    home_account_id: str = Field(alias="homeAccountId", description="Engine home account ID")
    tenant_id: str = Field(alias="tenantId", description="Tenant of the account")
    username: str = Field(description="User principal name")
    client_id: str = Field(alias="clientId", description="Application the record belongs to")
    version: str = Field(
        default=LATEST_AUTHENTICATION_RECORD_VERSION,
        description="Record format version",
    )


class GetTokenOptions(BaseModel):
    """Options for a single ``get_token`` request.

    Attributes:
        tenant_id: Tenant override for multi-tenant applications.
        claims: Additional claims (a claims challenge) to request.
        enable_cae: Request a Continuous Access Evaluation capable token.
        correlation_id: Correlation ID for the request; generated when
            absent.
        abort_signal: Event that cancels the request when set.
        timeout: Request timeout in seconds for probes that honour it.
        authority: Authority resolved for this request by the engine
            adapter.
        disable_automatic_authentication: Fail instead of falling back to
            interactive authentication.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    tenant_id: Optional[str] = Field(default=None)
    claims: Optional[str] = Field(default=None)
    enable_cae: bool = Field(default=False)
    correlation_id: Optional[str] = Field(default=None)
    abort_signal: Optional[asyncio.Event] = Field(default=None)
    timeout: Optional[float] = Field(default=None)
    authority: Optional[str] = Field(default=None)
    disable_automatic_authentication: bool = Field(default=False)

    @property
    def is_aborted(self) -> bool:
        return self.abort_signal is not None and self.abort_signal.is_set()


class TokenCachePersistenceOptions(BaseModel):
    """Opt-in persistent token caching.

    Attributes:
        enabled: Persist the engine's token cache.
        name: Base name of the cache; ``.cae`` / ``.nocae`` suffixes are
            appended per mode.
        unsafe_allow_unencrypted_storage: Allow a provider to store the
            cache in plain text when no encryption is available.
    """

    enabled: bool = Field(default=False)
    name: Optional[str] = Field(default=None)
    unsafe_allow_unencrypted_storage: bool = Field(default=False)


PersistenceProvider = Callable[[TokenCachePersistenceOptions], Any]
"""Builds an engine token cache (``msal.TokenCache``) for the given options."""


class IdentityPlugins(BaseModel):
    """Providers injected into credentials at construction.

    Attributes:
        persistence: Factory for a persistent engine token cache. Required
            when ``token_cache_persistence.enabled`` is set.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    persistence: Optional[PersistenceProvider] = Field(default=None)


class CredentialOptions(BaseModel):
    """Constructor options shared by the credential classes.

    Unknown keys are rejected so that a misspelt option fails loudly.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    authority_host: Optional[str] = Field(
        default=None,
        description="Authority host; defaults to AZURE_AUTHORITY_HOST or the public cloud",
    )
    additionally_allowed_tenants: list[str] = Field(
        default_factory=list,
        description="Tenants a request may target besides the configured one, or '*'",
    )
    disable_instance_discovery: bool = Field(
        default=False,
        description="Skip authority metadata discovery (private clouds, Azure Stack)",
    )
    env: Optional[EnvironmentSnapshot] = Field(
        default=None,
        description="Environment snapshot; captured from the process when omitted",
    )
    transport: Optional[Any] = Field(
        default=None,
        description="httpx transport used for identity requests",
    )
    log_identifiers: bool = Field(
        default=False,
        description="Log appid/upn/tid/oid of received tokens",
    )
    token_cache_persistence: Optional[TokenCachePersistenceOptions] = Field(default=None)
    plugins: Optional[IdentityPlugins] = Field(default=None)
    regional_authority: Optional[str] = Field(
        default=None,
        description="Azure region for regional token endpoints, or 'AutoDiscoverRegion'",
    )
    authentication_record: Optional[AuthenticationRecord] = Field(
        default=None,
        description="Previously authenticated account to use for silent authentication",
    )
    disable_automatic_authentication: bool = Field(
        default=False,
        description="Raise AuthenticationRequiredError instead of prompting",
    )
    process_timeout: Optional[float] = Field(
        default=None,
        description="Seconds a developer tool subprocess may run",
    )


class DefaultAzureCredentialOptions(CredentialOptions):
    """Options for :class:`~azidentity.credentials.default.DefaultAzureCredential`."""

    tenant_id: Optional[str] = Field(default=None)
    managed_identity_client_id: Optional[str] = Field(default=None)
    managed_identity_resource_id: Optional[str] = Field(default=None)
    workload_identity_client_id: Optional[str] = Field(default=None)
