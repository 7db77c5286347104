"""Shared test fixtures for azidentity.

Provides fixtures for injecting an environment snapshot, isolating the
data directory, minting test certificates, and running CLI commands.
These fixtures are discovered by pytest and available to every test
module without explicit imports.
"""

from __future__ import annotations

import datetime
from pathlib import Path
from typing import Any, Callable

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from azidentity.config import EnvironmentSnapshot
from azidentity.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When CliRunner redirects those streams and the test
    finishes, the cached references become stale. Resetting forces a
    fresh manager on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------


@pytest.fixture
def make_env() -> Callable[..., EnvironmentSnapshot]:
    """Factory for environment snapshots: ``make_env(AZURE_TENANT_ID="t")``."""

    def _make(**values: str) -> EnvironmentSnapshot:
        return EnvironmentSnapshot(values=values)

    return _make


@pytest.fixture
def empty_env() -> EnvironmentSnapshot:
    """A snapshot with no identity variables set."""
    return EnvironmentSnapshot(values={})


# ---------------------------------------------------------------------------
# Data directory isolation
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the data directory at ``tmp_path`` so tests never touch real user files.

    Returns:
        The azidentity data directory inside ``tmp_path``.
    """
    data_home = tmp_path / "data"
    monkeypatch.setenv("XDG_DATA_HOME", str(data_home))
    monkeypatch.setattr("azidentity.config._is_xdg_platform", lambda: True)
    return data_home / "azidentity"


# ---------------------------------------------------------------------------
# Certificates
# ---------------------------------------------------------------------------


def _self_signed(common_name: str, key: rsa.RSAPrivateKey) -> x509.Certificate:
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.datetime.now(datetime.timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=1))
        .sign(key, hashes.SHA256())
    )


@pytest.fixture(scope="session")
def certificate_material() -> dict[str, Any]:
    """A private key and two self-signed certificates, PEM-encoded.

    Keys: ``key_pem`` (unencrypted PKCS8), ``encrypted_key_pem`` (password
    ``"secret"``), ``leaf_pem``, ``second_pem``, ``leaf_der`` and
    ``second_der``.
    """
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    leaf = _self_signed("leaf", key)
    second = _self_signed("issuer", key)
    return {
        "key_pem": key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        ).decode("ascii"),
        "encrypted_key_pem": key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.BestAvailableEncryption(b"secret"),
        ).decode("ascii"),
        "leaf_pem": leaf.public_bytes(serialization.Encoding.PEM).decode("ascii"),
        "second_pem": second.public_bytes(serialization.Encoding.PEM).decode("ascii"),
        "leaf_der": leaf.public_bytes(serialization.Encoding.DER),
        "second_der": second.public_bytes(serialization.Encoding.DER),
    }


@pytest.fixture
def certificate_file(tmp_path: Path, certificate_material: dict[str, Any]) -> Path:
    """A PEM file holding the private key followed by the leaf certificate."""
    path = tmp_path / "cert.pem"
    path.write_text(certificate_material["key_pem"] + certificate_material["leaf_pem"])
    return path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager for tests that don't check output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
