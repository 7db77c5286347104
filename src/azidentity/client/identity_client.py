"""The network client shared by credentials that talk to identity endpoints.

:class:`IdentityClient` wraps :class:`httpx.AsyncClient` and adds what the
credentials need on top of plain HTTP:

* **Token responses** -- :meth:`IdentityClient.send_token_request` turns a
  2xx body into a :class:`TokenResponse` and any other status into an
  :class:`~azidentity.exceptions.AuthenticationError`.
* **Expiry parsing** -- :func:`parse_expiration_timestamp` accepts the
  ``expires_on`` / ``expires_in`` variants returned by the different
  managed identity endpoints.
* **Correlated cancellation** -- every request is registered under its
  correlation ID, and :meth:`IdentityClient.abort_requests` cancels the
  in-flight requests of one correlation ID. Requests made by the token
  engine on a worker thread go through :class:`EngineHttpClient`, which
  checks the same abort state before each call.
* **Identifier logging** -- with ``log_identifiers`` enabled, the
  ``appid``, ``upn``, ``tid`` and ``oid`` claims of received tokens are
  logged at INFO level.

See Also:
    :mod:`azidentity.credentials.managed_identity` for the main user of
    the raw request methods.
"""

from __future__ import annotations

import asyncio
import base64
import contextvars
import json
import logging
import time
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any, Optional

import httpx
from pydantic import BaseModel, Field

from azidentity.config import EnvironmentSnapshot, resolve_env
from azidentity.constants import DEFAULT_AUTHORITY_HOST, SDK_VERSION
from azidentity.exceptions import AbortError, AuthenticationError
from azidentity.models import AccessToken, GetTokenOptions
from azidentity.tenant import get_identity_token_endpoint_suffix

logger = logging.getLogger(__name__)

NO_CORRELATION_ID = "noCorrelationId"

USER_AGENT = f"azidentity-python/{SDK_VERSION}"

current_correlation_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "current_correlation_id", default=None
)
"""Correlation ID of the engine call running in the current context.

Set by the engine adapter before it offloads a blocking engine call to a
worker thread; :func:`asyncio.to_thread` copies the context, so
:class:`EngineHttpClient` sees the value on the worker thread.
"""


class TokenResponse(BaseModel):
    """A parsed token endpoint response."""

    access_token: AccessToken = Field(description="The issued access token")
    refresh_token: Optional[str] = Field(default=None)


_DATE_FORMATS = (
    "%m/%d/%Y %I:%M:%S %p %z",
    "%m/%d/%Y %H:%M:%S %z",
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y %H:%M:%S",
)


def parse_date(value: str) -> Optional[datetime]:
    """Parse the date formats used by identity endpoints and developer tools.

    Accepts ISO 8601 (with or without offset, ``Z`` suffix included),
    RFC 2822 and the ``M/D/YYYY h:mm:ss AM +00:00`` form used by App
    Service. Naive values are interpreted as local time.

    Returns:
        The parsed datetime, or ``None`` if no format matched.
    """
    text = value.strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        return parsedate_to_datetime(text)
    except (TypeError, ValueError):
        return None


def parse_expiration_timestamp(body: dict[str, Any]) -> int:
    """Return the expiry of a token response in milliseconds since the epoch.

    Precedence: numeric ``expires_on`` (seconds), numeric string
    ``expires_on``, date string ``expires_on``, then ``expires_in``
    relative to now.

    Raises:
        ValueError: If none of the forms is present or parseable.
    """
    expires_on = body.get("expires_on")
    expires_in = body.get("expires_in")
    if isinstance(expires_on, (int, float)) and not isinstance(expires_on, bool):
        return int(expires_on * 1000)
    if isinstance(expires_on, str):
        try:
            return int(float(expires_on) * 1000)
        except ValueError:
            parsed = parse_date(expires_on)
            if parsed is not None:
                return int(parsed.timestamp() * 1000)
    if isinstance(expires_in, (int, float)) and not isinstance(expires_in, bool):
        return int(time.time() * 1000 + expires_in * 1000)
    raise ValueError(
        f'Failed to parse token expiration from body. expires_in="{expires_in}", '
        f'expires_on="{expires_on}"'
    )


class IdentityClient:
    """Asynchronous HTTP client for identity endpoints.

    Args:
        authority_host: Authority host; defaults to ``AZURE_AUTHORITY_HOST``
            from *env*, then the public cloud. Must use https.
        env: Environment snapshot.
        transport: Optional httpx transport (tests pass
            :class:`httpx.MockTransport`).
        verify: TLS verification; only Service Fabric disables it.
        log_identifiers: Log account identifiers of received tokens.
        timeout: Default request timeout in seconds.

    Raises:
        ValueError: If the authority host does not use https.

    Example::

        async with IdentityClient() as client:
            response = await client.send_token_request(
                "POST", "https://login.microsoftonline.com/common/oauth2/v2.0/token",
                data={"grant_type": "client_credentials", ...},
            )
    """

    def __init__(
        self,
        authority_host: Optional[str] = None,
        *,
        env: Optional[EnvironmentSnapshot] = None,
        transport: Optional[Any] = None,
        verify: bool = True,
        log_identifiers: bool = False,
        timeout: float = 30.0,
    ) -> None:
        self._env = resolve_env(env)
        host = authority_host or self._env.get("AZURE_AUTHORITY_HOST") or DEFAULT_AUTHORITY_HOST
        if not host.startswith("https:"):
            raise ValueError("The authorityHost address must use the 'https' protocol.")
        self.authority_host = host
        self._transport = transport
        self._verify = verify
        self._log_identifiers = log_identifiers
        self._timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None
        self._engine_client: Optional[EngineHttpClient] = None
        self._pending: dict[str, set[asyncio.Future[Any]]] = {}
        self._aborted: set[str] = set()

    def with_options(self, *, verify: bool) -> IdentityClient:
        """Return a new client with the same configuration but different TLS verification."""
        return IdentityClient(
            self.authority_host,
            env=self._env,
            transport=self._transport,
            verify=verify,
            log_identifiers=self._log_identifiers,
            timeout=self._timeout,
        )

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            kwargs: dict[str, Any] = {
                "timeout": self._timeout,
                "verify": self._verify,
                "headers": {"User-Agent": USER_AGENT},
            }
            if self._transport is not None:
                kwargs["transport"] = self._transport
            self._client = httpx.AsyncClient(**kwargs)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        if self._engine_client is not None:
            self._engine_client.close()
            self._engine_client = None

    async def __aenter__(self) -> IdentityClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    async def send_request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[dict[str, str]] = None,
        headers: Optional[dict[str, str]] = None,
        data: Optional[dict[str, str]] = None,
        timeout: Optional[float] = None,
        abort_signal: Optional[asyncio.Event] = None,
        correlation_id: Optional[str] = None,
    ) -> httpx.Response:
        """Send a request and return the raw response.

        The request is registered under *correlation_id* so that
        :meth:`abort_requests` can cancel it, and it is cancelled when
        *abort_signal* is set.

        Raises:
            AbortError: If the request was cancelled.
            httpx.HTTPError: On transport failures.
        """
        if abort_signal is not None and abort_signal.is_set():
            raise AbortError("The operation was aborted.")

        key = correlation_id or NO_CORRELATION_ID
        request_kwargs: dict[str, Any] = {"params": params, "headers": headers, "data": data}
        if timeout is not None:
            request_kwargs["timeout"] = timeout
        task = asyncio.ensure_future(self._get_client().request(method, url, **request_kwargs))
        self._pending.setdefault(key, set()).add(task)
        watcher = asyncio.ensure_future(abort_signal.wait()) if abort_signal is not None else None
        try:
            if watcher is not None:
                await asyncio.wait({task, watcher}, return_when=asyncio.FIRST_COMPLETED)
                if not task.done():
                    task.cancel()
            return await task
        except asyncio.CancelledError:
            if not task.done():
                task.cancel()
                raise
            if task.cancelled():
                raise AbortError("The operation was aborted.") from None
            raise
        finally:
            if watcher is not None:
                watcher.cancel()
            pending = self._pending.get(key)
            if pending is not None:
                pending.discard(task)
                if not pending:
                    del self._pending[key]

    async def send_get_request(self, url: str, **kwargs: Any) -> httpx.Response:
        """``GET`` *url*; keyword arguments as for :meth:`send_request`."""
        return await self.send_request("GET", url, **kwargs)

    async def send_token_request(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> Optional[TokenResponse]:
        """Send a token request and parse the response.

        Accepts the same keyword arguments as :meth:`send_request`.

        Returns:
            The parsed :class:`TokenResponse`, or ``None`` when a 2xx body
            carries no ``access_token``.

        Raises:
            AuthenticationError: On any status other than 200 or 201, or an
                empty body.
        """
        logger.info("IdentityClient: sending token request to [%s]", url)
        response = await self.send_request(method, url, **kwargs)
        if response.text and response.status_code in (200, 201):
            body = json.loads(response.text)
            if not body.get("access_token"):
                return None
            self._log_identifiers_from(body)
            token = TokenResponse(
                access_token=AccessToken(
                    token=body["access_token"],
                    expires_on_timestamp=parse_expiration_timestamp(body),
                ),
                refresh_token=body.get("refresh_token"),
            )
            logger.info(
                "IdentityClient: [%s] token acquired, expires on %s",
                url,
                token.access_token.expires_on_timestamp,
            )
            return token

        error = AuthenticationError(response.status_code, response.text or None)
        logger.warning(
            "IdentityClient: authentication error. HTTP status: %s, %s",
            response.status_code,
            error.error_response.error_description,
        )
        raise error

    async def refresh_access_token(
        self,
        tenant_id: str,
        client_id: str,
        scopes: str,
        refresh_token: Optional[str],
        client_secret: Optional[str] = None,
        options: Optional[GetTokenOptions] = None,
    ) -> Optional[TokenResponse]:
        """Redeem a refresh token.

        Returns:
            The new token, or ``None`` when there is no refresh token or the
            service demands interaction.
        """
        if refresh_token is None:
            return None
        logger.info(
            "IdentityClient: refreshing access token with client ID: %s, scopes: %s started",
            client_id,
            scopes,
        )
        data = {
            "grant_type": "refresh_token",
            "client_id": client_id,
            "refresh_token": refresh_token,
            "scope": scopes,
        }
        if client_secret is not None:
            data["client_secret"] = client_secret
        suffix = get_identity_token_endpoint_suffix(tenant_id)
        try:
            response = await self.send_token_request(
                "POST",
                f"{self.authority_host}/{tenant_id}/{suffix}",
                data=data,
                headers={"Accept": "application/json"},
                abort_signal=options.abort_signal if options else None,
                correlation_id=options.correlation_id if options else None,
            )
        except AuthenticationError as exc:
            if exc.error_response.error == "interaction_required":
                logger.info("IdentityClient: interaction required for client ID: %s", client_id)
                return None
            logger.warning(
                "IdentityClient: failed refreshing token for client ID: %s: %s", client_id, exc
            )
            raise
        logger.info("IdentityClient: refreshed token for client ID: %s", client_id)
        return response

    # ------------------------------------------------------------------ #
    # Cancellation
    # ------------------------------------------------------------------ #

    def abort_requests(self, correlation_id: Optional[str] = None) -> None:
        """Cancel the in-flight requests of *correlation_id*.

        Requests registered under other correlation IDs, including
        uncorrelated ones, keep running.
        """
        key = correlation_id or NO_CORRELATION_ID
        self._aborted.add(key)
        for task in self._pending.pop(key, set()):
            task.cancel()

    def is_aborted(self, correlation_id: Optional[str]) -> bool:
        return (correlation_id or NO_CORRELATION_ID) in self._aborted

    def release(self, correlation_id: Optional[str]) -> None:
        """Forget the abort state of a finished correlation ID."""
        self._aborted.discard(correlation_id or NO_CORRELATION_ID)

    def engine_http_client(self) -> EngineHttpClient:
        """Return the blocking HTTP client handed to the token engine."""
        if self._engine_client is None:
            self._engine_client = EngineHttpClient(self)
        return self._engine_client

    # ------------------------------------------------------------------ #
    # Identifier logging
    # ------------------------------------------------------------------ #

    def _log_identifiers_from(self, body: dict[str, Any]) -> None:
        if not self._log_identifiers:
            return
        unavailable_upn = "No User Principal Name available"
        access_token = body.get("access_token")
        if not access_token:
            return
        try:
            payload = access_token.split(".")[1]
            payload += "=" * (-len(payload) % 4)
            claims = json.loads(base64.urlsafe_b64decode(payload).decode("utf-8"))
        except (IndexError, ValueError) as exc:
            logger.warning(
                "log_identifiers was set, but we couldn't log the account information. Error: %s",
                exc,
            )
            return
        logger.info(
            "[Authenticated account] Client ID: %s. Tenant ID: %s. User Principal Name: %s. "
            "Object ID (user): %s",
            claims.get("appid"),
            claims.get("tid"),
            claims.get("upn") or unavailable_upn,
            claims.get("oid"),
        )


class EngineHttpClient:
    """A blocking, requests-compatible HTTP client for the token engine.

    MSAL accepts any object with ``get``/``post`` methods returning a
    response with ``status_code``, ``text`` and ``headers``. The engine
    adapter runs MSAL on worker threads, so this client is synchronous.
    Before each request it checks whether the correlation ID of the
    current engine call (:data:`current_correlation_id`) was aborted.

    Args:
        identity_client: The owning client; supplies transport, TLS
            settings and abort state.
    """

    def __init__(self, identity_client: IdentityClient) -> None:
        self._owner = identity_client
        kwargs: dict[str, Any] = {
            "timeout": identity_client._timeout,
            "verify": identity_client._verify,
            "headers": {"User-Agent": USER_AGENT},
        }
        if isinstance(identity_client._transport, httpx.BaseTransport):
            kwargs["transport"] = identity_client._transport
        self._client = httpx.Client(**kwargs)

    def _check_aborted(self) -> None:
        if self._owner.is_aborted(current_correlation_id.get()):
            raise AbortError("The operation was aborted.")

    def get(self, url: str, params: Any = None, headers: Any = None, **kwargs: Any) -> httpx.Response:
        self._check_aborted()
        return self._client.get(
            url,
            params=params,
            headers=headers,
            timeout=kwargs.get("timeout", httpx.USE_CLIENT_DEFAULT),
        )

    def post(
        self,
        url: str,
        params: Any = None,
        data: Any = None,
        headers: Any = None,
        **kwargs: Any,
    ) -> httpx.Response:
        self._check_aborted()
        return self._client.post(
            url,
            params=params,
            data=data,
            headers=headers,
            timeout=kwargs.get("timeout", httpx.USE_CLIENT_DEFAULT),
        )

    def close(self) -> None:
        self._client.close()
