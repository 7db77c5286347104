"""Scope helpers."""

from __future__ import annotations

import re
from typing import Optional, Sequence, Union

from azidentity.constants import DEFAULT_SCOPE_SUFFIX
from azidentity.logger import CredentialLoggerWithGetToken, format_error

Scopes = Union[str, Sequence[str]]

_SCOPE_PATTERN = re.compile(r"^[0-9a-zA-Z\-.:/]+$")


def ensure_scopes(scopes: Scopes) -> list[str]:
    """Normalize a bare scope string into a one-element list."""
    if isinstance(scopes, str):
        return [scopes]
    return list(scopes)


def map_scopes_to_resource(scopes: Scopes) -> Optional[str]:
    """Return the resource for a single scope, or ``None`` for several.

    ``https://vault.azure.net/.default`` maps to ``https://vault.azure.net``;
    a scope without the ``/.default`` suffix is returned unchanged.
    """
    if isinstance(scopes, str):
        scope = scopes
    else:
        if len(scopes) != 1:
            return None
        scope = scopes[0]
    if not scope.endswith(DEFAULT_SCOPE_SUFFIX):
        return scope
    return scope[: scope.rfind(DEFAULT_SCOPE_SUFFIX)]


def ensure_valid_scope_for_dev_time_creds(
    scope: str, logger: Optional[CredentialLoggerWithGetToken] = None
) -> None:
    """Reject scopes that could smuggle arguments into a developer tool command line."""
    if not _SCOPE_PATTERN.match(scope):
        error = ValueError("Invalid scope was specified by the user or calling client")
        if logger is not None:
            logger.get_token.info(format_error(scope, error))
        raise error


def get_scope_resource(scope: str) -> str:
    """Strip a trailing ``/.default`` from *scope*."""
    return re.sub(r"/\.default$", "", scope)
