"""Tests for the command line interface."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional
from unittest.mock import MagicMock

import pytest

from azidentity import __version__
from azidentity.app import app, main
from azidentity.commands.token import CredentialKind
from azidentity.credentials.base import TokenCredential
from azidentity.exceptions import CredentialUnavailableError
from azidentity.models import AccessToken, AuthenticationRecord, GetTokenOptions
from azidentity.record import serialize_authentication_record

RECORD = AuthenticationRecord(
    authority="https://login.microsoftonline.com/tenant",
    home_account_id="oid.tenant",
    tenant_id="tenant",
    username="user@example.com",
    client_id="client",
)


class _StubCredential(TokenCredential):
    def __init__(self, error: Optional[BaseException] = None) -> None:
        self.error = error
        self.requests: list[tuple[list[str], Optional[GetTokenOptions]]] = []
        self.closed = False

    async def get_token(self, scopes, options=None) -> AccessToken:
        self.requests.append((list(scopes), options))
        if self.error is not None:
            raise self.error
        return AccessToken(token="cli-token", expires_on_timestamp=1700000000000)

    async def close(self) -> None:
        self.closed = True


class _StubInteractive:
    def __init__(self, record: Optional[AuthenticationRecord]) -> None:
        self.record = record
        self.scopes: list[str] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args) -> None:
        return None

    async def authenticate(self, scopes, options=None):
        self.scopes = list(scopes)
        return self.record


def _store_record(data_dir: Path, name: str = "default") -> Path:
    records = data_dir / "records"
    records.mkdir(parents=True, exist_ok=True)
    path = records / f"{name}.json"
    path.write_text(serialize_authentication_record(RECORD))
    return path


# ---------------------------------------------------------------------------
# Root options
# ---------------------------------------------------------------------------


class TestRoot:
    def test_version(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"azidentity {__version__}" in result.output

    def test_no_arguments_shows_help(self, cli_runner) -> None:
        result = cli_runner.invoke(app, [])
        assert "token" in result.output
        assert "login" in result.output


# ---------------------------------------------------------------------------
# token
# ---------------------------------------------------------------------------


class TestTokenCommand:
    def test_prints_token_json(self, cli_runner, monkeypatch: pytest.MonkeyPatch) -> None:
        stub = _StubCredential()
        build = MagicMock(return_value=stub)
        monkeypatch.setattr("azidentity.commands.token.build_credential", build)

        result = cli_runner.invoke(
            app,
            ["--json", "token", "https://vault.azure.net/.default", "-c", "cli", "-t", "tenant"],
        )

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == {
            "token": "cli-token",
            "expiresOnTimestamp": 1700000000000,
        }
        build.assert_called_once_with(CredentialKind.CLI, "tenant", None, False, None)
        scopes, options = stub.requests[0]
        assert scopes == ["https://vault.azure.net/.default"]
        assert options.tenant_id == "tenant"
        assert stub.closed

    def test_cae_and_claims(self, cli_runner, monkeypatch: pytest.MonkeyPatch) -> None:
        stub = _StubCredential()
        monkeypatch.setattr(
            "azidentity.commands.token.build_credential", MagicMock(return_value=stub)
        )

        result = cli_runner.invoke(
            app, ["--json", "token", "scope", "--cae", "--claims", "challenge"]
        )

        assert result.exit_code == 0, result.output
        _, options = stub.requests[0]
        assert options.enable_cae is True
        assert options.claims == "challenge"

    def test_stored_record_enables_persistence(
        self, cli_runner, monkeypatch: pytest.MonkeyPatch, isolated_data_dir: Path
    ) -> None:
        _store_record(isolated_data_dir, "work")
        build = MagicMock(return_value=_StubCredential())
        monkeypatch.setattr("azidentity.commands.token.build_credential", build)

        result = cli_runner.invoke(
            app, ["--json", "token", "scope", "-c", "device-code", "--record-name", "work"]
        )

        assert result.exit_code == 0, result.output
        kind, tenant_id, client_id, persist, record = build.call_args.args
        assert kind == CredentialKind.DEVICE_CODE
        assert persist is True
        assert record == RECORD

    def test_missing_record(self, cli_runner, isolated_data_dir: Path) -> None:
        result = cli_runner.invoke(app, ["token", "scope", "--record-name", "nope"])
        assert result.exit_code == 2
        assert "No stored record named 'nope'" in result.output

    def test_invalid_credential_name(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["token", "scope", "-c", "carrier-pigeon"])
        assert result.exit_code == 2

    def test_credential_errors_propagate(self, cli_runner, monkeypatch: pytest.MonkeyPatch) -> None:
        stub = _StubCredential(error=CredentialUnavailableError("no identity here"))
        monkeypatch.setattr(
            "azidentity.commands.token.build_credential", MagicMock(return_value=stub)
        )

        result = cli_runner.invoke(app, ["token", "scope"])

        assert isinstance(result.exception, CredentialUnavailableError)
        assert stub.closed


# ---------------------------------------------------------------------------
# login
# ---------------------------------------------------------------------------


class TestLoginCommand:
    def test_device_code_login_stores_record(
        self, cli_runner, monkeypatch: pytest.MonkeyPatch, isolated_data_dir: Path
    ) -> None:
        stub = _StubInteractive(RECORD)
        factory = MagicMock(return_value=stub)
        monkeypatch.setattr("azidentity.commands.login.DeviceCodeCredential", factory)

        result = cli_runner.invoke(
            app, ["login", "https://graph.microsoft.com/.default", "--device-code", "--record-name", "work"]
        )

        assert result.exit_code == 0, result.output
        assert "Signed in as user@example.com" in result.output
        stored = json.loads((isolated_data_dir / "records" / "work.json").read_text())
        assert stored["homeAccountId"] == "oid.tenant"
        assert stub.scopes == ["https://graph.microsoft.com/.default"]
        options = factory.call_args.args[3]
        assert options.token_cache_persistence.enabled is True
        assert options.plugins.persistence is not None

    def test_browser_login_is_default(
        self, cli_runner, monkeypatch: pytest.MonkeyPatch, isolated_data_dir: Path
    ) -> None:
        factory = MagicMock(return_value=_StubInteractive(RECORD))
        monkeypatch.setattr("azidentity.commands.login.InteractiveBrowserCredential", factory)

        result = cli_runner.invoke(app, ["login", "scope"])

        assert result.exit_code == 0, result.output
        assert factory.called
        assert (isolated_data_dir / "records" / "default.json").is_file()

    def test_invalid_record_name(self, cli_runner, isolated_data_dir: Path) -> None:
        result = cli_runner.invoke(app, ["login", "scope", "--record-name", "../escape"])
        assert result.exit_code == 2
        assert "Invalid record name" in result.output


# ---------------------------------------------------------------------------
# record
# ---------------------------------------------------------------------------


class TestRecordCommands:
    def test_show(self, cli_runner, isolated_data_dir: Path) -> None:
        _store_record(isolated_data_dir)
        result = cli_runner.invoke(app, ["--json", "record", "show", "default"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["username"] == "user@example.com"
        assert data["clientId"] == "client"

    def test_list(self, cli_runner, isolated_data_dir: Path) -> None:
        _store_record(isolated_data_dir, "alpha")
        (isolated_data_dir / "records" / "broken.json").write_text("{not json")

        result = cli_runner.invoke(app, ["--json", "record", "list"])

        assert result.exit_code == 0, result.output
        rows = json.loads(result.stdout)
        assert [row["name"] for row in rows] == ["alpha", "broken"]
        assert rows[0]["tenantId"] == "tenant"
        assert rows[1]["username"] == "<invalid>"

    def test_list_empty(self, cli_runner, isolated_data_dir: Path) -> None:
        result = cli_runner.invoke(app, ["record", "list"])
        assert result.exit_code == 0
        assert "No stored records" in result.output

    def test_delete(self, cli_runner, isolated_data_dir: Path) -> None:
        path = _store_record(isolated_data_dir)
        result = cli_runner.invoke(app, ["record", "delete", "default"])
        assert result.exit_code == 0, result.output
        assert not path.exists()

    def test_delete_missing(self, cli_runner, isolated_data_dir: Path) -> None:
        result = cli_runner.invoke(app, ["record", "delete", "default"])
        assert result.exit_code == 2


# ---------------------------------------------------------------------------
# main()
# ---------------------------------------------------------------------------


class TestMain:
    def _run_main(self, monkeypatch: pytest.MonkeyPatch, exc: BaseException) -> int:
        def fake_app() -> None:
            raise exc

        monkeypatch.setattr("azidentity.app.app", fake_app)
        monkeypatch.setattr("azidentity.app._setup_signal_handlers", lambda: None)
        with pytest.raises(SystemExit) as exc_info:
            main()
        return exc_info.value.code

    def test_identity_errors_use_their_exit_code(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture
    ) -> None:
        code = self._run_main(monkeypatch, CredentialUnavailableError("nothing configured"))
        assert code == 3
        assert "nothing configured" in capsys.readouterr().err

    def test_keyboard_interrupt(self, monkeypatch: pytest.MonkeyPatch) -> None:
        assert self._run_main(monkeypatch, KeyboardInterrupt()) == 130

    def test_system_exit_passes_through(self, monkeypatch: pytest.MonkeyPatch) -> None:
        assert self._run_main(monkeypatch, SystemExit(4)) == 4

    def test_unexpected_errors_write_crash_log(
        self, monkeypatch: pytest.MonkeyPatch, isolated_data_dir: Path
    ) -> None:
        assert self._run_main(monkeypatch, RuntimeError("kaboom")) == 1
        logs = list((isolated_data_dir / "logs").glob("crash-*.log"))
        assert len(logs) == 1
        assert "kaboom" in logs[0].read_text()
