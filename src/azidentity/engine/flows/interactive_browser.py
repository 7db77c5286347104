"""Authorization code flow with PKCE through the system browser.

The flow:

1. Starts a local HTTP server on the redirect URI's host and port.
2. Builds the authorization URL with a PKCE (:rfc:`7636`) S256 challenge
   and opens it in the user's browser.
3. Redeems the code received on the redirect with the code verifier,
   answering the browser with a success or error page.
4. Shuts the server down on success, error or abort.

The server runs ``serve_forever`` on a worker thread so the event loop
stays free to watch the abort signal.
"""

from __future__ import annotations

import asyncio
import base64
import errno
import hashlib
import secrets
import webbrowser
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import TYPE_CHECKING, Any, Callable, Optional
from urllib.parse import parse_qs, urlparse

from azidentity.client.identity_client import current_correlation_id
from azidentity.engine.base import EngineApps, EngineResult, TokenFlow
from azidentity.exceptions import AbortError, CredentialUnavailableError, IdentityError
from azidentity.logger import format_error
from azidentity.models import GetTokenOptions

if TYPE_CHECKING:
    from azidentity.engine.client import EngineClient

DEFAULT_REDIRECT_URI = "http://localhost"

SUCCESS_MESSAGE = (
    "Authentication Complete. You can close the browser and return to the application."
)

RedirectOutcome = tuple[int, str]


def generate_pkce_pair() -> tuple[str, str]:
    """Generate a PKCE code_verifier and code_challenge (S256).

    Returns:
        A tuple of ``(code_verifier, code_challenge)``.
    """
    # 43-128 characters from the unreserved set
    code_verifier = secrets.token_urlsafe(64)[:128]
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    code_challenge = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
    return code_verifier, code_challenge


def _make_handler(
    on_redirect: Callable[[dict[str, list[str]]], Optional[RedirectOutcome]],
) -> type[BaseHTTPRequestHandler]:
    class RedirectHandler(BaseHTTPRequestHandler):
        def do_GET(self) -> None:
            params = parse_qs(urlparse(self.path).query)
            outcome = on_redirect(params)
            status, body = outcome if outcome is not None else (404, "")
            payload = body.encode("utf-8")
            self.send_response(status)
            self.send_header("Content-Type", "text/plain; charset=utf-8")
            self.send_header("Content-Length", str(len(payload)))
            self.end_headers()
            self.wfile.write(payload)

        def log_message(self, format: str, *args: Any) -> None:
            pass

    return RedirectHandler


class InteractiveBrowserFlow(TokenFlow):
    """Acquire user tokens by signing in through the system browser.

    Args:
        redirect_uri: Loopback redirect URI registered for the
            application; port 80 when it names none.
        login_hint: Pre-selects the account on the sign-in page.
        open_browser: Opens a URL and returns ``False`` when no browser
            could be launched. Defaults to :func:`webbrowser.open`.
    """

    def __init__(
        self,
        redirect_uri: Optional[str] = None,
        login_hint: Optional[str] = None,
        open_browser: Optional[Callable[[str], bool]] = None,
    ) -> None:
        self.redirect_uri = redirect_uri or DEFAULT_REDIRECT_URI
        self.login_hint = login_hint
        self._open_browser = open_browser or webbrowser.open

    def _start_server(
        self, handler: type[BaseHTTPRequestHandler]
    ) -> tuple[HTTPServer, int]:
        parsed = urlparse(self.redirect_uri)
        host = parsed.hostname or "localhost"
        port = parsed.port or 80
        try:
            return HTTPServer((host, port), handler), port
        except OSError as exc:
            if exc.errno in (errno.EACCES, errno.EADDRINUSE):
                raise CredentialUnavailableError(
                    f"InteractiveBrowserCredential: Access denied to port {port}. "
                    "Try sending a redirect URI with a different port, as follows: "
                    '`new InteractiveBrowserCredential({ redirectUri: "http://localhost:1337" })`'
                ) from exc
            raise CredentialUnavailableError(
                "InteractiveBrowserCredential: Failed to start the necessary web server. "
                f"Error: {exc}"
            ) from exc

    async def acquire(
        self,
        engine: EngineClient,
        apps: EngineApps,
        scopes: list[str],
        options: GetTokenOptions,
    ) -> EngineResult:
        app = apps.pick("public")
        code_verifier, code_challenge = generate_pkce_pair()
        loop = asyncio.get_running_loop()
        outcome: asyncio.Future[EngineResult] = loop.create_future()

        def _settle(result: EngineResult = None, error: Optional[BaseException] = None) -> None:
            if outcome.done():
                return
            if error is not None:
                outcome.set_exception(error)
            else:
                outcome.set_result(result)

        def _on_redirect(params: dict[str, list[str]]) -> Optional[RedirectOutcome]:
            if "code" not in params and "error" not in params:
                return None
            if "error" in params:
                error = params["error"][0]
                description = params.get("error_description", [""])[0]
                loop.call_soon_threadsafe(
                    _settle, {"error": error, "error_description": description}
                )
                return 500, format_error(scopes, f"{error}. {description}")

            token = current_correlation_id.set(options.correlation_id)
            try:
                result = app.acquire_token_by_authorization_code(
                    params["code"][0],
                    scopes,
                    redirect_uri=self.redirect_uri,
                    claims_challenge=options.claims,
                    data={"code_verifier": code_verifier},
                )
            except Exception as exc:
                loop.call_soon_threadsafe(_settle, None, exc)
                return 500, format_error(scopes, str(exc))
            finally:
                current_correlation_id.reset(token)

            if result and "error" in result:
                loop.call_soon_threadsafe(_settle, result)
                return 500, format_error(
                    scopes, f"{result['error']}. {result.get('error_description', '')}"
                )
            if not result or result.get("expires_in") is None:
                loop.call_soon_threadsafe(
                    _settle,
                    None,
                    IdentityError(
                        'Interactive Browser Authentication Error "Did not receive token with a valid expiration"'
                    ),
                )
                return 500, format_error(scopes, "Did not receive token with a valid expiration")
            loop.call_soon_threadsafe(_settle, result)
            return 200, SUCCESS_MESSAGE

        server, port = self._start_server(_make_handler(_on_redirect))
        serving = asyncio.ensure_future(asyncio.to_thread(server.serve_forever, 0.1))
        engine.logger.info(f"InteractiveBrowserCredential listening on port {port}!")
        aborted: Optional[asyncio.Future[Any]] = None
        try:
            auth_url = await engine.run(
                options,
                app.get_authorization_request_url,
                scopes,
                login_hint=self.login_hint,
                redirect_uri=self.redirect_uri,
                prompt="select_account",
                claims_challenge=options.claims,
                code_challenge=code_challenge,
                code_challenge_method="S256",
            )
            try:
                opened = await asyncio.to_thread(self._open_browser, auth_url)
            except (webbrowser.Error, OSError) as exc:
                raise CredentialUnavailableError(
                    f"InteractiveBrowserCredential: Could not open a browser window. Error: {exc}"
                ) from exc
            if opened is False:
                raise CredentialUnavailableError(
                    "InteractiveBrowserCredential: Could not open a browser window. "
                    "Error: no runnable browser was found"
                )

            waiters: set[asyncio.Future[Any]] = {outcome}
            if options.abort_signal is not None:
                aborted = asyncio.ensure_future(options.abort_signal.wait())
                waiters.add(aborted)
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
            if not outcome.done():
                raise AbortError("Aborted")
            return outcome.result()
        finally:
            if aborted is not None:
                aborted.cancel()
            await asyncio.to_thread(server.shutdown)
            server.server_close()
            await serving
