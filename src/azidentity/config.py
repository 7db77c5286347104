"""Environment snapshot, XDG paths and atomic writes.

This module holds the configuration plumbing shared by every credential:

* **Environment snapshot** -- :class:`EnvironmentSnapshot` captures the
  supported environment variables once, and the snapshot is handed to
  each credential at construction. Credentials never read
  :data:`os.environ` themselves, so a chain built from one snapshot sees
  one consistent view of the environment and tests can inject any
  environment without patching the process.
* **Data directory** -- ``$XDG_DATA_HOME/azidentity`` on Linux and BSD,
  ``~/.azidentity/`` on macOS and Windows. Used by the file token cache,
  stored authentication records and crash logs.
* **Atomic writes** -- :func:`atomic_write` writes through a temporary
  file and ``os.replace`` with ``0o600`` permissions.
"""

from __future__ import annotations

import contextlib
import os
import platform
import tempfile
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

_APP_NAME = "azidentity"

SUPPORTED_ENV_VARS: tuple[str, ...] = (
    "AZURE_TENANT_ID",
    "AZURE_CLIENT_ID",
    "AZURE_CLIENT_SECRET",
    "AZURE_CLIENT_CERTIFICATE_PATH",
    "AZURE_CLIENT_CERTIFICATE_PASSWORD",
    "AZURE_USERNAME",
    "AZURE_PASSWORD",
    "AZURE_ADDITIONALLY_ALLOWED_TENANTS",
    "AZURE_AUTHORITY_HOST",
    "AZURE_IDENTITY_DISABLE_MULTITENANTAUTH",
    "AZURE_FEDERATED_TOKEN_FILE",
    "AZURE_REGIONAL_AUTHORITY_NAME",
    "AZURE_POD_IDENTITY_AUTHORITY_HOST",
    "IDENTITY_ENDPOINT",
    "IDENTITY_HEADER",
    "IDENTITY_SERVER_THUMBPRINT",
    "IMDS_ENDPOINT",
    "MSI_ENDPOINT",
    "MSI_SECRET",
    "SystemRoot",
)


class EnvironmentSnapshot(BaseModel):
    """An immutable view of the identity-related environment variables.

    Empty values are treated as unset, so ``AZURE_CLIENT_ID=""`` behaves
    exactly like a missing variable.

    Example::

        env = EnvironmentSnapshot.from_environ()
        env.get("AZURE_TENANT_ID")

        # in tests
        env = EnvironmentSnapshot(values={"MSI_ENDPOINT": "http://localhost"})
    """

    model_config = ConfigDict(frozen=True)

    values: dict[str, str] = Field(
        default_factory=dict,
        description="Captured variable values keyed by name",
    )

    @classmethod
    def from_environ(cls, environ: Optional[Mapping[str, str]] = None) -> EnvironmentSnapshot:
        """Capture the supported variables from *environ* (default ``os.environ``)."""
        source = os.environ if environ is None else environ
        return cls(
            values={name: source[name] for name in SUPPORTED_ENV_VARS if source.get(name)}
        )

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Return the value of *name*, or *default* when unset or empty."""
        value = self.values.get(name)
        return value if value else default

    def has(self, name: str) -> bool:
        return bool(self.values.get(name))


def resolve_env(env: Optional[EnvironmentSnapshot]) -> EnvironmentSnapshot:
    """Return *env*, or a fresh snapshot of the process environment."""
    return env if env is not None else EnvironmentSnapshot.from_environ()


def is_windows() -> bool:
    return platform.system() == "Windows"


# Data directory


def _is_xdg_platform() -> bool:
    """Return True if the platform follows the XDG Base Directory layout (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def get_data_dir() -> Path:
    """Return the data directory (token caches, records, crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/azidentity/`` (default
    ``~/.local/share/azidentity/``). On macOS/Windows: ``~/.azidentity/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_DATA_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".local" / "share"
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_records_dir() -> Path:
    """Return the directory holding stored authentication records."""
    path = get_data_dir() / "records"
    path.mkdir(parents=True, exist_ok=True)
    return path


def atomic_write(path: Path, data: str) -> None:
    """Replace *path* with *data*, readable by the owner only.

    Token caches and records hold refresh tokens and account identifiers,
    so the content is written to a ``mkstemp`` file (created ``0o600``) in
    the target directory and renamed over *path*. The temporary file is
    removed if anything fails.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    handle, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(handle, "w", encoding="utf-8") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp_name)
        raise
