"""Tests for azidentity.scopes."""

from __future__ import annotations

import pytest

from azidentity.scopes import (
    ensure_scopes,
    ensure_valid_scope_for_dev_time_creds,
    get_scope_resource,
    map_scopes_to_resource,
)


class TestScopes:
    def test_string_becomes_list(self) -> None:
        assert ensure_scopes("https://vault.azure.net/.default") == ["https://vault.azure.net/.default"]

    def test_tuple_becomes_list(self) -> None:
        assert ensure_scopes(("a", "b")) == ["a", "b"]

    def test_single_scope_maps_to_resource(self) -> None:
        assert map_scopes_to_resource(["https://vault.azure.net/.default"]) == "https://vault.azure.net"

    def test_scope_without_suffix_is_unchanged(self) -> None:
        assert map_scopes_to_resource("https://vault.azure.net") == "https://vault.azure.net"

    def test_two_scopes_map_to_none(self) -> None:
        assert map_scopes_to_resource(["a/.default", "b/.default"]) is None

    def test_get_scope_resource(self) -> None:
        assert get_scope_resource("https://management.azure.com/.default") == "https://management.azure.com"
        assert get_scope_resource("https://management.azure.com") == "https://management.azure.com"

    @pytest.mark.parametrize("scope", ["https://vault.azure.net/.default", "api://app-id/.default"])
    def test_valid_dev_scope(self, scope: str) -> None:
        ensure_valid_scope_for_dev_time_creds(scope)

    @pytest.mark.parametrize("scope", ["https://x\" --query", "scope with space", "a;b"])
    def test_invalid_dev_scope(self, scope: str) -> None:
        with pytest.raises(ValueError, match="Invalid scope"):
            ensure_valid_scope_for_dev_time_creds(scope)
