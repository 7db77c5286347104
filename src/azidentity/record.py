"""Serialization of :class:`~azidentity.models.AuthenticationRecord`.

A serialized record is a compact JSON object with exactly six keys::

    {"authority":"https://login.microsoftonline.com/<tenant>","homeAccountId":"...",
     "tenantId":"...","username":"...","clientId":"...","version":"1.0"}

Records carry no secrets. They are meant to be stored by the application
and passed back to interactive credentials through the
``authentication_record`` option, so that a restarted process can
authenticate silently from the (persistent) token cache.
"""

from __future__ import annotations

import json

from azidentity.constants import LATEST_AUTHENTICATION_RECORD_VERSION
from azidentity.models import AuthenticationRecord


def serialize_authentication_record(record: AuthenticationRecord) -> str:
    """Return the compact JSON form of *record*."""
    return record.model_dump_json(by_alias=True)


def deserialize_authentication_record(serialized: str) -> AuthenticationRecord:
    """Parse a record previously produced by :func:`serialize_authentication_record`.

    Args:
        serialized: The JSON text.

    Returns:
        The parsed :class:`~azidentity.models.AuthenticationRecord`.

    Raises:
        ValueError: If the text is not valid JSON, a required key is
            missing, or ``version`` is present with a value other than
            ``"1.0"``.
    """
    parsed = json.loads(serialized)
    if not isinstance(parsed, dict):
        raise ValueError("An AuthenticationRecord must be a JSON object")
    version = parsed.get("version")
    if version and version != LATEST_AUTHENTICATION_RECORD_VERSION:
        raise ValueError("Unsupported AuthenticationRecord version")
    return AuthenticationRecord.model_validate(parsed)
