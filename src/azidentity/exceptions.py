"""Exception hierarchy for azidentity.

All exceptions inherit from :class:`IdentityError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`azidentity.exit_codes`. The command line entry point catches
``IdentityError`` and exits with that code.

The three kinds a :class:`~azidentity.credentials.chained.ChainedTokenCredential`
cares about are kept apart on purpose:

* :class:`CredentialUnavailableError` -- the credential cannot be used in
  this environment (missing variables, tool not installed, endpoint not
  reachable). Chains move on to the next source.
* :class:`AuthenticationRequiredError` -- a silent attempt failed and user
  interaction is needed. Chains also move on.
* :class:`AuthenticationError` -- the identity provider rejected the
  request. Chains stop immediately.

Subclass hierarchy::

    IdentityError (exit 1)
    +-- CredentialUnavailableError     (exit 3)
    +-- AuthenticationRequiredError    (exit 3)
    +-- AuthenticationError            (exit 3)
    +-- AggregateAuthenticationError   (exit 3)
    +-- AbortError                     (exit 130)
    +-- TokenEngineError               (exit 1)

Configuration mistakes (bad tenant IDs, conflicting arguments) are raised
as plain :class:`ValueError` since they are programming errors rather
than authentication outcomes.
"""

from __future__ import annotations

import json
from typing import Any, Optional, Sequence

from pydantic import BaseModel, Field

from azidentity.exit_codes import EXIT_ABORTED, EXIT_AUTH_FAILURE, EXIT_GENERIC_FAILURE


class ErrorResponse(BaseModel):
    """Normalized OAuth error body returned by the identity provider.

    Attributes:
        error: Short machine-readable error code (``invalid_client``, ...).
        error_description: Human-readable explanation.
        correlation_id: Service correlation ID, when provided.
        error_codes: Numeric AADSTS codes, when provided.
        timestamp: Service timestamp of the failure.
        trace_id: Service trace ID.
    """

    error: str = Field(description="OAuth error code")
    error_description: str = Field(description="Human-readable error description")
    correlation_id: Optional[str] = Field(default=None)
    error_codes: Optional[list[int]] = Field(default=None)
    timestamp: Optional[str] = Field(default=None)
    trace_id: Optional[str] = Field(default=None)


class IdentityError(Exception):
    """Base exception for all azidentity errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code

    @property
    def message(self) -> str:
        return str(self)


class CredentialUnavailableError(IdentityError):
    """Raised when a credential cannot be used in the current environment."""

    exit_code = EXIT_AUTH_FAILURE


class AuthenticationRequiredError(IdentityError):
    """Raised when a token could not be obtained without user interaction.

    Args:
        message: Human-readable error description.
        scopes: The scopes of the failed request.
        get_token_options: The options of the failed request, so callers can
            retry with the same parameters after calling ``authenticate()``.
    """

    exit_code = EXIT_AUTH_FAILURE

    def __init__(
        self,
        message: str,
        scopes: Optional[Sequence[str]] = None,
        get_token_options: Any = None,
    ) -> None:
        super().__init__(message)
        self.scopes = list(scopes or [])
        self.get_token_options = get_token_options


def _is_error_response(body: Any) -> bool:
    return (
        isinstance(body, dict)
        and isinstance(body.get("error"), str)
        and isinstance(body.get("error_description"), str)
    )


def _to_error_response(body: dict[str, Any]) -> ErrorResponse:
    return ErrorResponse(
        error=str(body.get("error", "unknown_error")),
        error_description=str(body.get("error_description", "")),
        correlation_id=body.get("correlation_id"),
        error_codes=body.get("error_codes"),
        timestamp=body.get("timestamp"),
        trace_id=body.get("trace_id"),
    )


class AuthenticationError(IdentityError):
    """Raised when the identity provider rejects an authentication request.

    The ``error_body`` may be an OAuth error dict, a raw response body
    string (parsed as JSON when possible), or ``None``.

    Attributes:
        status_code: HTTP status code of the failed response.
        error_response: The normalized :class:`ErrorResponse`.
    """

    exit_code = EXIT_AUTH_FAILURE

    def __init__(self, status_code: int, error_body: Any = None) -> None:
        error_response = ErrorResponse(
            error="unknown",
            error_description="An unknown error occurred and no additional details are available.",
        )
        if _is_error_response(error_body):
            error_response = _to_error_response(error_body)
        elif isinstance(error_body, str):
            try:
                parsed = json.loads(error_body)
                if not isinstance(parsed, dict):
                    raise ValueError("Error body is not an object")
                error_response = _to_error_response(parsed)
            except ValueError:
                if status_code == 400:
                    error_response = ErrorResponse(
                        error="authority_not_found",
                        error_description="The specified authority URL was not found.",
                    )
                else:
                    error_response = ErrorResponse(
                        error="unknown_error",
                        error_description=(
                            f"An unknown error has occurred. Response body:\n\n{error_body}"
                        ),
                    )
        else:
            error_response = ErrorResponse(
                error="unknown_error",
                error_description="An unknown error occurred and no additional details are available.",
            )

        super().__init__(
            f"{error_response.error} Status code: {status_code}\n"
            f"More details:\n{error_response.error_description}"
        )
        self.status_code = status_code
        self.error_response = error_response


class AggregateAuthenticationError(IdentityError):
    """Raised by chained credentials when every source failed.

    Attributes:
        errors: The errors collected from each source, in order.
    """

    exit_code = EXIT_AUTH_FAILURE

    def __init__(self, errors: Sequence[BaseException], message: str) -> None:
        detail = "\n".join(str(err) for err in errors)
        super().__init__(f"{message}\n{detail}")
        self.errors = list(errors)


class AbortError(IdentityError):
    """Raised when the caller cancels an in-flight operation."""

    exit_code = EXIT_ABORTED


class TokenEngineError(IdentityError):
    """An error reported by the token engine (MSAL) as an error dict.

    MSAL returns ``{"error": ..., "error_description": ...}`` instead of
    raising; the engine adapter converts those dicts into this exception
    so that one normalization step can map them to public errors.

    Attributes:
        error_code: The engine's error code.
        error_description: The engine's description, if any.
    """

    def __init__(self, error_code: str, error_description: str = "") -> None:
        message = f"{error_code}: {error_description}" if error_description else error_code
        super().__init__(message)
        self.error_code = error_code
        self.error_description = error_description

    @classmethod
    def from_result(cls, result: dict[str, Any]) -> TokenEngineError:
        """Build an error from an MSAL result dict carrying an ``error`` key."""
        return cls(str(result.get("error")), str(result.get("error_description") or ""))
