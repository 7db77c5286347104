"""Tenant resolution and authority helpers.

Decides which tenant a request targets and which authority URL the token
engine talks to. The rules:

* An explicit tenant must match ``^[0-9a-zA-Z-.:/]+$``
  (:func:`check_tenant_id`); violations are configuration errors and
  raise :class:`ValueError`.
* Without a tenant, public clients default to ``organizations`` and
  confidential clients with a custom client ID to ``common``
  (:func:`resolve_tenant_id`).
* A per-request tenant may override the configured one only when it is
  listed in ``additionally_allowed_tenants`` (or ``"*"`` is), unless
  multi-tenant authentication is disabled or the tenant is ``adfs``
  (:func:`process_multi_tenant_request`).
"""

from __future__ import annotations

import re
from typing import Optional, Sequence

from azidentity.config import EnvironmentSnapshot
from azidentity.constants import (
    ADFS_TENANT,
    ALL_TENANTS,
    DEFAULT_AUTHORITY_HOST,
    DEVELOPER_SIGN_ON_CLIENT_ID,
)
from azidentity.exceptions import CredentialUnavailableError
from azidentity.logger import CredentialLogger, format_error
from azidentity.models import GetTokenOptions

_TENANT_ID_PATTERN = re.compile(r"^[0-9a-zA-Z\-.:/]+$")

INVALID_TENANT_MESSAGE = (
    "Invalid tenant id provided. You can locate your tenant id by following the "
    "instructions listed here: https://docs.microsoft.com/partner-center/find-ids-and-domain-names."
)


def check_tenant_id(tenant_id: str, logger: Optional[CredentialLogger] = None) -> None:
    """Raise :class:`ValueError` if *tenant_id* has characters outside the allowed set."""
    if not _TENANT_ID_PATTERN.match(tenant_id):
        error = ValueError(INVALID_TENANT_MESSAGE)
        if logger is not None:
            logger.info(format_error("", error))
        raise error


def resolve_tenant_id(
    tenant_id: Optional[str],
    client_id: Optional[str] = None,
    logger: Optional[CredentialLogger] = None,
) -> str:
    """Return the tenant a credential should be configured with.

    Args:
        tenant_id: The explicitly configured tenant, if any. Validated.
        client_id: The configured client ID, if any.
        logger: Logger used to report an invalid tenant.

    Returns:
        *tenant_id* when given; ``"organizations"`` when no client ID (or
        the developer sign-on client ID) is configured; ``"common"``
        otherwise.
    """
    if tenant_id:
        check_tenant_id(tenant_id, logger)
        return tenant_id
    if not client_id:
        client_id = DEVELOPER_SIGN_ON_CLIENT_ID
    if client_id != DEVELOPER_SIGN_ON_CLIENT_ID:
        return "common"
    return "organizations"


def resolve_additionally_allowed_tenant_ids(
    additionally_allowed_tenants: Optional[Sequence[str]],
) -> list[str]:
    """Normalize the allow-list: empty stays empty, any ``"*"`` collapses to ``["*"]``."""
    if not additionally_allowed_tenants:
        return []
    if "*" in additionally_allowed_tenants:
        return list(ALL_TENANTS)
    return list(additionally_allowed_tenants)


def _configuration_error_message(tenant_id: str) -> str:
    return (
        f"The current credential is not configured to acquire tokens for tenant {tenant_id}. "
        "To enable acquiring tokens for this tenant add it to the AdditionallyAllowedTenants "
        'on the credential options, or add "*" to AdditionallyAllowedTenants to allow '
        "acquiring tokens for any tenant."
    )


def process_multi_tenant_request(
    tenant_id: Optional[str],
    options: Optional[GetTokenOptions],
    additionally_allowed_tenant_ids: Sequence[str] = (),
    env: Optional[EnvironmentSnapshot] = None,
    logger: Optional[CredentialLogger] = None,
) -> Optional[str]:
    """Return the tenant a single request should use.

    Args:
        tenant_id: The tenant the credential was configured with.
        options: The request options; ``options.tenant_id`` is the
            requested override.
        additionally_allowed_tenant_ids: Normalized allow-list.
        env: Environment snapshot checked for
            ``AZURE_IDENTITY_DISABLE_MULTITENANTAUTH``.
        logger: Logger used to report a rejected override.

    Returns:
        The resolved tenant, which may be ``None`` when neither a
        configured nor a requested tenant exists.

    Raises:
        CredentialUnavailableError: If the request targets a tenant the
            credential is not allowed to use.
        ValueError: If the resolved tenant is not a well-formed tenant ID.
    """
    if env is not None and env.has("AZURE_IDENTITY_DISABLE_MULTITENANTAUTH"):
        resolved = tenant_id
    elif tenant_id == ADFS_TENANT:
        resolved = tenant_id
    else:
        requested = options.tenant_id if options is not None else None
        resolved = requested if requested is not None else tenant_id

    if (
        tenant_id
        and resolved != tenant_id
        and "*" not in additionally_allowed_tenant_ids
        and resolved not in additionally_allowed_tenant_ids
    ):
        message = _configuration_error_message(tenant_id)
        if logger is not None:
            logger.info(message)
        raise CredentialUnavailableError(message)
    if resolved is not None:
        check_tenant_id(resolved, logger)
    return resolved


def get_identity_token_endpoint_suffix(tenant_id: str) -> str:
    """Return the token endpoint path for *tenant_id* (ADFS has no v2.0 endpoint)."""
    if tenant_id == ADFS_TENANT:
        return "oauth2/token"
    return "oauth2/v2.0/token"


def get_authority(tenant_id: str, host: Optional[str] = None) -> str:
    """Join *host* and *tenant_id* into an authority URL.

    A host that already ends with the tenant (optionally followed by a
    slash) is returned unchanged.
    """
    if not host:
        host = DEFAULT_AUTHORITY_HOST
    if re.search(rf"{re.escape(tenant_id)}/?$", host):
        return host
    if host.endswith("/"):
        return host + tenant_id
    return f"{host}/{tenant_id}"


def get_known_authorities(
    tenant_id: str, authority_host: Optional[str], disable_instance_discovery: bool = False
) -> list[str]:
    """Return the authorities the engine must trust without validation.

    ADFS authorities cannot be validated against the cloud's metadata, and
    disabling instance discovery means the given authority is trusted as is.
    """
    if (tenant_id == ADFS_TENANT and authority_host) or disable_instance_discovery:
        return [authority_host] if authority_host else []
    return []
