"""Persistent token caches.

Persistence is opt-in and injected: credential options that set
``token_cache_persistence=TokenCachePersistenceOptions(enabled=True)``
must also carry ``plugins=IdentityPlugins(persistence=provider)``. The
provider is called once per cache mode with the options (the cache name
already carries the ``.cae`` / ``.nocae`` suffix) and returns an MSAL
token cache.

:func:`file_cache_persistence` is the bundled provider. It stores the
serialized MSAL cache as a JSON file under the data directory, written
atomically with ``0o600`` permissions. It performs no encryption, so it
refuses to run unless ``unsafe_allow_unencrypted_storage`` is set.

Example::

    from azidentity import (
        CredentialOptions,
        DeviceCodeCredential,
        IdentityPlugins,
        TokenCachePersistenceOptions,
    )
    from azidentity.persistence import file_cache_persistence

    credential = DeviceCodeCredential(
        options=CredentialOptions(
            token_cache_persistence=TokenCachePersistenceOptions(
                enabled=True, unsafe_allow_unencrypted_storage=True
            ),
            plugins=IdentityPlugins(persistence=file_cache_persistence),
        )
    )
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any

import msal

from azidentity.config import atomic_write, get_data_dir
from azidentity.constants import DEFAULT_CACHE_NAME
from azidentity.models import TokenCachePersistenceOptions

logger = logging.getLogger(__name__)


def _cache_dir() -> Path:
    path = get_data_dir() / "token_cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


class FileTokenCache(msal.SerializableTokenCache):
    """An MSAL token cache mirrored to a JSON file.

    The file is read once at construction and rewritten after every
    change MSAL makes to the cache.

    Args:
        path: The cache file.
    """

    def __init__(self, path: Path) -> None:
        super().__init__()
        self._path = path
        self._write_lock = threading.Lock()
        if path.is_file():
            self.deserialize(path.read_text(encoding="utf-8"))

    @property
    def path(self) -> Path:
        return self._path

    def add(self, event: dict[str, Any], **kwargs: Any) -> None:
        super().add(event, **kwargs)
        self._save()

    def modify(self, credential_type: Any, old_entry: Any, new_key_value_pairs: Any = None) -> None:
        super().modify(credential_type, old_entry, new_key_value_pairs)
        self._save()

    def _save(self) -> None:
        with self._write_lock:
            if not self.has_state_changed:
                return
            atomic_write(self._path, self.serialize())
            self.has_state_changed = False
            logger.debug("Token cache written to %s", self._path)


def file_cache_persistence(options: TokenCachePersistenceOptions) -> FileTokenCache:
    """Persistence provider storing the token cache in the data directory.

    Raises:
        ValueError: If ``unsafe_allow_unencrypted_storage`` is not set.
    """
    if not options.unsafe_allow_unencrypted_storage:
        raise ValueError(
            "The file token cache stores tokens unencrypted. "
            "Set unsafe_allow_unencrypted_storage=True to allow it."
        )
    name = options.name or DEFAULT_CACHE_NAME
    return FileTokenCache(_cache_dir() / f"{name}.json")
