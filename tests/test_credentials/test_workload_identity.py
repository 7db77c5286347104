"""Tests for WorkloadIdentityCredential."""

from __future__ import annotations

from pathlib import Path

import pytest

from azidentity.credentials import workload_identity
from azidentity.credentials.workload_identity import WorkloadIdentityCredential
from azidentity.exceptions import CredentialUnavailableError
from azidentity.models import CredentialOptions


@pytest.fixture
def token_file(tmp_path: Path) -> Path:
    path = tmp_path / "federated-token"
    path.write_text("first-token\n")
    return path


def _credential(make_env, token_file: Path, **values) -> WorkloadIdentityCredential:
    env = make_env(
        AZURE_TENANT_ID="tenant",
        AZURE_CLIENT_ID="client",
        AZURE_FEDERATED_TOKEN_FILE=str(token_file),
    )
    return WorkloadIdentityCredential(options=CredentialOptions(env=env), **values)


class TestConfiguration:
    def test_reads_environment(self, make_env, token_file: Path) -> None:
        credential = _credential(make_env, token_file)
        assert credential.federated_token_file_path == str(token_file)
        assert credential._client is not None

    def test_arguments_win(self, make_env, token_file: Path, tmp_path: Path) -> None:
        other = tmp_path / "other"
        credential = _credential(make_env, token_file, token_file_path=str(other))
        assert credential.federated_token_file_path == str(other)

    async def test_unavailable_without_configuration(self, empty_env) -> None:
        credential = WorkloadIdentityCredential(options=CredentialOptions(env=empty_env))
        with pytest.raises(CredentialUnavailableError, match="AZURE_FEDERATED_TOKEN_FILE"):
            await credential.get_token("scope")


class TestTokenFile:
    def test_content_is_stripped(self, make_env, token_file: Path) -> None:
        credential = _credential(make_env, token_file)
        assert credential._read_file_contents() == "first-token"

    def test_content_is_cached(self, make_env, token_file: Path) -> None:
        credential = _credential(make_env, token_file)
        assert credential._read_file_contents() == "first-token"
        token_file.write_text("second-token")
        assert credential._read_file_contents() == "first-token"

    def test_cache_expires_after_five_minutes(
        self, make_env, token_file: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        now = [1000.0]
        monkeypatch.setattr(workload_identity.time, "time", lambda: now[0])
        credential = _credential(make_env, token_file)
        assert credential._read_file_contents() == "first-token"

        token_file.write_text("second-token")
        now[0] += workload_identity.FILE_CACHE_SECONDS
        assert credential._read_file_contents() == "second-token"

    def test_empty_file(self, make_env, token_file: Path) -> None:
        token_file.write_text("   \n")
        credential = _credential(make_env, token_file)
        with pytest.raises(CredentialUnavailableError, match="No content on the file"):
            credential._read_file_contents()
