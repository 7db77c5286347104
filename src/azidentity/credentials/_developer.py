"""Shared configuration of the developer tool credentials."""

from __future__ import annotations

from typing import Optional

from azidentity.config import resolve_env
from azidentity.credentials.base import TokenCredential
from azidentity.logger import CredentialLoggerWithGetToken
from azidentity.models import CredentialOptions, GetTokenOptions
from azidentity.tenant import (
    check_tenant_id,
    process_multi_tenant_request,
    resolve_additionally_allowed_tenant_ids,
)


class DeveloperToolCredential(TokenCredential):
    """Base for credentials that borrow a developer tool's signed-in account.

    Args:
        tenant_id: Tenant passed to the tool; the tool's default otherwise.
        options: Shared credential options; ``process_timeout``,
            ``additionally_allowed_tenants`` and ``env`` are used.
    """

    logger: CredentialLoggerWithGetToken

    def __init__(
        self, tenant_id: Optional[str] = None, options: Optional[CredentialOptions] = None
    ) -> None:
        options = options or CredentialOptions()
        if tenant_id:
            check_tenant_id(tenant_id, self.logger)
        self.tenant_id = tenant_id
        self.env = resolve_env(options.env)
        self.additionally_allowed_tenant_ids = resolve_additionally_allowed_tenant_ids(
            options.additionally_allowed_tenants
        )
        self.timeout = options.process_timeout

    def _request_tenant(self, options: Optional[GetTokenOptions]) -> Optional[str]:
        return process_multi_tenant_request(
            self.tenant_id,
            options,
            self.additionally_allowed_tenant_ids,
            self.env,
            self.logger.get_token,
        )
