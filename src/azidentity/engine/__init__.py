"""Token engine adapter: MSAL applications driven by pluggable token flows."""

from azidentity.engine.base import EngineApps, TokenFlow
from azidentity.engine.client import EngineClient

__all__ = ["EngineApps", "EngineClient", "TokenFlow"]
