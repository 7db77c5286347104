"""Tests for the file-backed token cache provider."""

from __future__ import annotations

import stat
import sys
from pathlib import Path

import msal
import pytest

from azidentity.models import TokenCachePersistenceOptions
from azidentity.persistence import FileTokenCache, file_cache_persistence

TOKEN_ENDPOINT = "https://login.microsoftonline.com/tenant/oauth2/v2.0/token"


def _token_event(access_token: str = "cached-token") -> dict:
    return {
        "client_id": "client",
        "scope": ["https://vault.azure.net/.default"],
        "token_endpoint": TOKEN_ENDPOINT,
        "grant_type": "client_credentials",
        "response": {"access_token": access_token, "expires_in": 3600, "token_type": "Bearer"},
        "data": {},
    }


def _access_tokens(cache: msal.TokenCache) -> list[dict]:
    return list(cache.find(msal.TokenCache.CredentialType.ACCESS_TOKEN))


class TestFileCachePersistence:
    def test_requires_unencrypted_opt_in(self, isolated_data_dir: Path) -> None:
        with pytest.raises(ValueError, match="unsafe_allow_unencrypted_storage"):
            file_cache_persistence(TokenCachePersistenceOptions(enabled=True))

    def test_cache_file_is_named_after_options(self, isolated_data_dir: Path) -> None:
        cache = file_cache_persistence(
            TokenCachePersistenceOptions(
                enabled=True, name="app.cae", unsafe_allow_unencrypted_storage=True
            )
        )
        assert cache.path == isolated_data_dir / "token_cache" / "app.cae.json"

    def test_default_name(self, isolated_data_dir: Path) -> None:
        cache = file_cache_persistence(
            TokenCachePersistenceOptions(enabled=True, unsafe_allow_unencrypted_storage=True)
        )
        assert cache.path.name == "msal.cache.json"


class TestFileTokenCache:
    def test_changes_are_written(self, tmp_path: Path) -> None:
        path = tmp_path / "cache.json"
        cache = FileTokenCache(path)
        assert not path.exists()

        cache.add(_token_event())

        assert path.is_file()
        assert "cached-token" in path.read_text()
        assert cache.has_state_changed is False

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_file_is_private(self, tmp_path: Path) -> None:
        path = tmp_path / "cache.json"
        FileTokenCache(path).add(_token_event())
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_reloads_existing_file(self, tmp_path: Path) -> None:
        path = tmp_path / "cache.json"
        FileTokenCache(path).add(_token_event("persisted"))

        reloaded = FileTokenCache(path)

        tokens = _access_tokens(reloaded)
        assert [token["secret"] for token in tokens] == ["persisted"]
