"""Tests for subprocess execution and developer tool helpers."""

from __future__ import annotations

import shutil

import pytest

from azidentity import process
from azidentity.exceptions import CredentialUnavailableError
from azidentity.process import get_safe_working_dir, parse_expires_on, run_process

needs_sh = pytest.mark.skipif(shutil.which("sh") is None, reason="requires a POSIX shell")


class TestRunProcess:
    @needs_sh
    async def test_captures_both_streams(self) -> None:
        result = await run_process(["sh", "-c", "echo out; echo err >&2; exit 3"])
        assert result.returncode == 3
        assert result.stdout == "out\n"
        assert result.stderr == "err\n"

    @needs_sh
    async def test_working_directory(self, tmp_path) -> None:
        result = await run_process(["sh", "-c", "pwd"], cwd=str(tmp_path))
        assert result.stdout.strip() == str(tmp_path.resolve())

    @needs_sh
    async def test_timeout_kills_the_process(self) -> None:
        with pytest.raises(TimeoutError, match="did not finish within 0.2 seconds"):
            await run_process(["sh", "-c", "sleep 10"], timeout=0.2)

    async def test_missing_executable(self) -> None:
        with pytest.raises(FileNotFoundError):
            await run_process(["definitely-not-an-installed-tool-xyz"])


class TestSafeWorkingDir:
    def test_posix(self, empty_env, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(process, "is_windows", lambda: False)
        assert get_safe_working_dir(empty_env, "Azure CLI") == "/bin"

    def test_windows_system_root(self, make_env, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(process, "is_windows", lambda: True)
        env = make_env(SystemRoot="C:\\Windows")
        assert get_safe_working_dir(env, "Azure CLI") == "C:\\Windows"

    def test_windows_without_system_root(self, empty_env, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(process, "is_windows", lambda: True)
        with pytest.raises(CredentialUnavailableError, match="SystemRoot"):
            get_safe_working_dir(empty_env, "Azure CLI")


class TestParseExpiresOn:
    def test_epoch_seconds(self) -> None:
        assert parse_expires_on(1700000000) == 1700000000000

    def test_iso(self) -> None:
        assert parse_expires_on("2023-11-14T22:13:20+00:00") == 1700000000000

    def test_dotnet_date(self) -> None:
        assert parse_expires_on("/Date(1700000000000)/") == 1700000000000

    def test_cli_local_time(self) -> None:
        assert parse_expires_on("2023-11-14 22:13:20.000000") > 0

    @pytest.mark.parametrize("value", [None, "tomorrow", True, {"at": 1}])
    def test_rejects_garbage(self, value) -> None:
        with pytest.raises(ValueError, match="Unable to parse the token expiration"):
            parse_expires_on(value)
