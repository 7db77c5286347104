"""Tests for azidentity.tenant -- tenant validation, resolution and authorities."""

from __future__ import annotations

import pytest

from azidentity.config import EnvironmentSnapshot
from azidentity.constants import DEVELOPER_SIGN_ON_CLIENT_ID
from azidentity.exceptions import CredentialUnavailableError
from azidentity.models import GetTokenOptions
from azidentity.tenant import (
    check_tenant_id,
    get_authority,
    get_identity_token_endpoint_suffix,
    get_known_authorities,
    process_multi_tenant_request,
    resolve_additionally_allowed_tenant_ids,
    resolve_tenant_id,
)


class TestCheckTenantId:
    @pytest.mark.parametrize("tenant", ["common", "72f988bf-86f1-41af-91ab-2d7cd011db47", "contoso.onmicrosoft.com"])
    def test_valid(self, tenant: str) -> None:
        check_tenant_id(tenant)

    @pytest.mark.parametrize("tenant", ["bad tenant", "tenant;rm -rf", "tenant?x=1"])
    def test_invalid(self, tenant: str) -> None:
        with pytest.raises(ValueError, match="Invalid tenant id provided"):
            check_tenant_id(tenant)


class TestResolveTenantId:
    def test_explicit_tenant_wins(self) -> None:
        assert resolve_tenant_id("contoso", "client") == "contoso"

    def test_no_client_defaults_to_organizations(self) -> None:
        assert resolve_tenant_id(None) == "organizations"

    def test_developer_client_defaults_to_organizations(self) -> None:
        assert resolve_tenant_id(None, DEVELOPER_SIGN_ON_CLIENT_ID) == "organizations"

    def test_custom_client_defaults_to_common(self) -> None:
        assert resolve_tenant_id(None, "my-app") == "common"


class TestAllowedTenants:
    def test_empty(self) -> None:
        assert resolve_additionally_allowed_tenant_ids(None) == []

    def test_wildcard_collapses(self) -> None:
        assert resolve_additionally_allowed_tenant_ids(["a", "*"]) == ["*"]

    def test_list_kept(self) -> None:
        assert resolve_additionally_allowed_tenant_ids(["a", "b"]) == ["a", "b"]


# ---------------------------------------------------------------------------
# Multi-tenant requests
# ---------------------------------------------------------------------------


class TestProcessMultiTenantRequest:
    def test_no_override_keeps_configured(self) -> None:
        assert process_multi_tenant_request("home", GetTokenOptions()) == "home"

    def test_same_tenant_allowed(self) -> None:
        assert process_multi_tenant_request("home", GetTokenOptions(tenant_id="home")) == "home"

    def test_disallowed_override_is_unavailable(self) -> None:
        with pytest.raises(CredentialUnavailableError, match="not configured to acquire tokens for tenant home"):
            process_multi_tenant_request("home", GetTokenOptions(tenant_id="other"))

    def test_allow_listed_override(self) -> None:
        assert process_multi_tenant_request("home", GetTokenOptions(tenant_id="other"), ["other"]) == "other"

    def test_wildcard_allows_any(self) -> None:
        assert process_multi_tenant_request("home", GetTokenOptions(tenant_id="x"), ["*"]) == "x"

    def test_adfs_always_resolves_to_adfs(self) -> None:
        assert process_multi_tenant_request("adfs", GetTokenOptions(tenant_id="other")) == "adfs"

    def test_disabled_multitenant_ignores_override(self) -> None:
        env = EnvironmentSnapshot(values={"AZURE_IDENTITY_DISABLE_MULTITENANTAUTH": "true"})
        assert process_multi_tenant_request("home", GetTokenOptions(tenant_id="other"), env=env) == "home"

    def test_unconfigured_takes_request_tenant(self) -> None:
        assert process_multi_tenant_request(None, GetTokenOptions(tenant_id="other")) == "other"

    def test_malformed_request_tenant_is_rejected(self) -> None:
        with pytest.raises(ValueError, match="Invalid tenant id provided"):
            process_multi_tenant_request(None, GetTokenOptions(tenant_id='x"; Remove-Item ~; "'))

    def test_malformed_tenant_rejected_even_when_allow_listed(self) -> None:
        with pytest.raises(ValueError):
            process_multi_tenant_request("home", GetTokenOptions(tenant_id="a b"), ["*"])

    def test_no_tenant_at_all(self) -> None:
        assert process_multi_tenant_request(None, GetTokenOptions()) is None


# ---------------------------------------------------------------------------
# Authorities
# ---------------------------------------------------------------------------


class TestAuthorities:
    def test_default_host(self) -> None:
        assert get_authority("contoso") == "https://login.microsoftonline.com/contoso"

    def test_host_with_trailing_slash(self) -> None:
        assert get_authority("t", "https://login.microsoftonline.us/") == "https://login.microsoftonline.us/t"

    def test_host_already_ending_with_tenant(self) -> None:
        assert get_authority("adfs", "https://adfs.contoso.com/adfs") == "https://adfs.contoso.com/adfs"

    def test_token_endpoint_suffix(self) -> None:
        assert get_identity_token_endpoint_suffix("adfs") == "oauth2/token"
        assert get_identity_token_endpoint_suffix("common") == "oauth2/v2.0/token"

    def test_known_authorities_for_adfs(self) -> None:
        assert get_known_authorities("adfs", "https://adfs.contoso.com") == ["https://adfs.contoso.com"]

    def test_known_authorities_without_discovery(self) -> None:
        assert get_known_authorities("t", "https://private.cloud", True) == ["https://private.cloud"]

    def test_no_known_authorities_by_default(self) -> None:
        assert get_known_authorities("t", "https://login.microsoftonline.com") == []
