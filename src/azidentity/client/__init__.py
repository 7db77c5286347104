"""HTTP client used by credentials to reach identity endpoints.

Exports:
    IdentityClient: Async client with token parsing and correlated cancellation.
    TokenResponse: Parsed token endpoint response.
"""

from azidentity.client.identity_client import (
    IdentityClient,
    TokenResponse,
    parse_expiration_timestamp,
)

__all__ = ["IdentityClient", "TokenResponse", "parse_expiration_timestamp"]
