"""Credential-scoped logging helpers.

Every credential logs through the stdlib :mod:`logging` hierarchy rooted at
the ``azidentity`` logger. :func:`credential_logger` returns a small
wrapper that prefixes each message with the credential's title, so a
single log stream from a :class:`~azidentity.credentials.default.DefaultAzureCredential`
reads as a trace of which source did what::

    EnvironmentCredential => Found the following environment variables: AZURE_TENANT_ID
    ManagedIdentityCredential => getToken() => SUCCESS. Scopes: https://vault.azure.net/.default.

Applications enable output the usual way, e.g.
``logging.getLogger("azidentity").setLevel(logging.INFO)``. Secrets are
never passed to these loggers; callers write ``[REDACTED]`` instead.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence, Union

from azidentity.config import EnvironmentSnapshot

logger = logging.getLogger("azidentity")

Scopes = Union[str, Sequence[str]]


class CredentialLogger:
    """A title-prefixed facade over a stdlib logger.

    Args:
        title: Prefix written before every message.
        parent: Optional parent whose title is prepended to this one.
    """

    def __init__(self, title: str, parent: Optional[CredentialLogger] = None) -> None:
        self.title = f"{parent.title} {title}" if parent else title
        self._logger = parent._logger if parent else logger

    def _format(self, message: str) -> str:
        return f"{self.title} => {message}"

    def info(self, message: str) -> None:
        self._logger.info(self._format(message))

    def warning(self, message: str) -> None:
        self._logger.warning(self._format(message))

    def verbose(self, message: str) -> None:
        self._logger.debug(self._format(message))

    def error(self, message: str) -> None:
        self._logger.error(self._format(message))


class CredentialLoggerWithGetToken(CredentialLogger):
    """A :class:`CredentialLogger` with a ``get_token`` child logger."""

    def __init__(self, title: str) -> None:
        super().__init__(title)
        self.get_token = CredentialLogger("=> getToken()", parent=self)


def credential_logger(title: str) -> CredentialLoggerWithGetToken:
    """Return a logger whose messages start with ``"{title} =>"``."""
    return CredentialLoggerWithGetToken(title)


def _join_scopes(scopes: Scopes) -> str:
    if isinstance(scopes, str):
        return scopes
    return ", ".join(scopes)


def format_success(scopes: Scopes) -> str:
    """Format the message logged when a credential returns a token."""
    return f"SUCCESS. Scopes: {_join_scopes(scopes)}."


def format_error(scopes: Optional[Scopes], error: Union[str, BaseException]) -> str:
    """Format the message logged when a credential fails."""
    message = "ERROR."
    if scopes:
        message += f" Scopes: {_join_scopes(scopes)}."
    return f"{message} Error message: {error}."


def process_env_vars(
    names: Iterable[str], env: EnvironmentSnapshot
) -> tuple[list[str], list[str]]:
    """Split *names* into ``(assigned, missing)`` according to *env*."""
    assigned: list[str] = []
    missing: list[str] = []
    for name in names:
        (assigned if env.has(name) else missing).append(name)
    return assigned, missing
