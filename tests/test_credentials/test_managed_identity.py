"""Tests for ManagedIdentityCredential and its sources.

Every endpoint is served by an :class:`httpx.MockTransport`; IMDS is
recognized by its ping, which carries no ``Metadata`` header.
"""

from __future__ import annotations

import errno
import time
from pathlib import Path
from typing import Any, Callable
from unittest.mock import MagicMock, patch

import httpx
import pytest

from azidentity.config import EnvironmentSnapshot
from azidentity.credentials.managed_identity import (
    ManagedIdentityCredential,
    MSIConfiguration,
)
from azidentity.credentials.managed_identity.app_service_2017 import AppServiceMsi2017
from azidentity.credentials.managed_identity.app_service_2019 import AppServiceMsi2019
from azidentity.credentials.managed_identity.arc import ArcMsi
from azidentity.credentials.managed_identity.cloud_shell import CloudShellMsi
from azidentity.credentials.managed_identity.fabric import FabricMsi
from azidentity.credentials.managed_identity.imds import ImdsMsi, imds_endpoint
from azidentity.credentials.managed_identity.token_exchange import TokenExchangeMsi
from azidentity.exceptions import AuthenticationError, CredentialUnavailableError
from azidentity.models import CredentialOptions, GetTokenOptions

SCOPE = "https://vault.azure.net/.default"
RESOURCE = "https://vault.azure.net"
IMDS_URL = "http://169.254.169.254/metadata/identity/oauth2/token"

Handler = Callable[[httpx.Request], httpx.Response]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _expires_on() -> int:
    return int(time.time()) + 3600


def _token_response(token: str = "mi-token", **extra: Any) -> httpx.Response:
    return httpx.Response(
        200, json={"access_token": token, "expires_on": str(_expires_on()), **extra}
    )


def _credential(
    env: dict[str, str], handler: Handler, **kwargs: Any
) -> ManagedIdentityCredential:
    options = CredentialOptions(
        env=EnvironmentSnapshot(values=env),
        transport=httpx.MockTransport(handler),
    )
    return ManagedIdentityCredential(options=options, **kwargs)


def _is_imds_ping(request: httpx.Request) -> bool:
    return "Metadata" not in request.headers


class _Recorder:
    """A handler that records requests and replays *responses* in order."""

    def __init__(self, *responses: httpx.Response) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


# ---------------------------------------------------------------------------
# Construction and source selection
# ---------------------------------------------------------------------------


class TestConstruction:
    def test_client_id_and_resource_id_are_exclusive(self) -> None:
        with pytest.raises(ValueError, match="can't be provided at the same time"):
            ManagedIdentityCredential(client_id="a", resource_id="b")

    def test_source_priority(self, empty_env) -> None:
        credential = ManagedIdentityCredential(options=CredentialOptions(env=empty_env))
        assert [type(source) for source in credential.sources] == [
            ArcMsi,
            FabricMsi,
            AppServiceMsi2019,
            AppServiceMsi2017,
            CloudShellMsi,
            TokenExchangeMsi,
            ImdsMsi,
        ]

    def test_configuration_rejects_multiple_scopes(self, empty_env) -> None:
        configuration = MSIConfiguration(MagicMock(), ["a", "b"], empty_env)
        with pytest.raises(ValueError, match="Multiple scopes are not supported"):
            configuration.resource("Source")

    def test_imds_endpoint_honours_pod_identity(self, make_env) -> None:
        assert imds_endpoint(make_env()) == IMDS_URL
        env = make_env(AZURE_POD_IDENTITY_AUTHORITY_HOST="http://pod-identity:8080/")
        assert imds_endpoint(env) == "http://pod-identity:8080/metadata/identity/oauth2/token"


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


class TestAppService:
    async def test_2019_protocol(self) -> None:
        handler = _Recorder(_token_response())
        credential = _credential(
            {"IDENTITY_ENDPOINT": "http://localhost:42/msi/token", "IDENTITY_HEADER": "hdr"},
            handler,
            client_id="user-assigned",
        )

        token = await credential.get_token(SCOPE)

        assert token.token == "mi-token"
        assert isinstance(credential.cached_source, AppServiceMsi2019)
        request = handler.requests[0]
        assert request.method == "GET"
        assert request.headers["X-IDENTITY-HEADER"] == "hdr"
        assert request.url.params["resource"] == RESOURCE
        assert request.url.params["api-version"] == "2019-08-01"
        assert request.url.params["client_id"] == "user-assigned"

    async def test_2019_resource_id(self) -> None:
        handler = _Recorder(_token_response())
        credential = _credential(
            {"IDENTITY_ENDPOINT": "http://localhost:42/msi/token", "IDENTITY_HEADER": "hdr"},
            handler,
            resource_id="/subscriptions/x/identity",
        )
        await credential.get_token(SCOPE)
        assert handler.requests[0].url.params["mi_res_id"] == "/subscriptions/x/identity"

    async def test_2017_protocol(self) -> None:
        handler = _Recorder(_token_response())
        credential = _credential(
            {"MSI_ENDPOINT": "http://localhost:42/msi/token", "MSI_SECRET": "shh"},
            handler,
            client_id="user-assigned",
        )

        await credential.get_token(SCOPE)

        assert isinstance(credential.cached_source, AppServiceMsi2017)
        request = handler.requests[0]
        assert request.headers["secret"] == "shh"
        assert request.url.params["api-version"] == "2017-09-01"
        assert request.url.params["clientid"] == "user-assigned"

    async def test_app_service_date_format(self) -> None:
        handler = _Recorder(
            httpx.Response(
                200,
                json={"access_token": "tok", "expires_on": "11/14/2023 10:13:20 PM +00:00"},
            )
        )
        credential = _credential(
            {"IDENTITY_ENDPOINT": "http://localhost:42/msi/token", "IDENTITY_HEADER": "hdr"},
            handler,
        )
        token = await credential.get_token(SCOPE)
        assert token.expires_on_timestamp == 1700000000000


class TestCloudShell:
    async def test_posts_form(self) -> None:
        handler = _Recorder(_token_response())
        credential = _credential({"MSI_ENDPOINT": "http://localhost:50342/oauth2/token"}, handler)

        await credential.get_token(SCOPE)

        assert isinstance(credential.cached_source, CloudShellMsi)
        request = handler.requests[0]
        assert request.method == "POST"
        assert request.headers["Metadata"] == "true"
        assert request.content.decode() == "resource=https%3A%2F%2Fvault.azure.net"


class TestFabric:
    async def test_uses_unverified_client(self) -> None:
        handler = _Recorder(_token_response())
        credential = _credential(
            {
                "IDENTITY_ENDPOINT": "https://localhost:2377/metadata/identity/oauth2/token",
                "IDENTITY_HEADER": "hdr",
                "IDENTITY_SERVER_THUMBPRINT": "thumb",
            },
            handler,
        )

        await credential.get_token(SCOPE)

        source = credential.cached_source
        assert isinstance(source, FabricMsi)
        assert source._insecure_client is not None
        assert source._insecure_client._verify is False
        assert handler.requests[0].headers["secret"] == "hdr"
        assert handler.requests[0].url.params["api-version"] == "2019-07-01-preview"

        await credential.close()
        assert source._insecure_client is None


class TestArc:
    @pytest.fixture
    def arc_env(self) -> dict[str, str]:
        return {
            "IDENTITY_ENDPOINT": "http://localhost:40342/metadata/identity/oauth2/token",
            "IMDS_ENDPOINT": "http://localhost:40342",
        }

    async def test_challenge_then_token(self, arc_env, tmp_path: Path) -> None:
        key_file = tmp_path / "challenge.key"
        key_file.write_text("challenge-secret")
        handler = _Recorder(
            httpx.Response(401, headers={"WWW-Authenticate": f"Basic realm={key_file}"}),
            _token_response("arc-token"),
        )
        credential = _credential(arc_env, handler)

        token = await credential.get_token(SCOPE)

        assert token.token == "arc-token"
        assert "Authorization" not in handler.requests[0].headers
        assert handler.requests[1].headers["Authorization"] == "Basic challenge-secret"
        assert handler.requests[1].url.params["api-version"] == "2019-11-01"

    async def test_first_request_must_be_challenged(self, arc_env) -> None:
        credential = _credential(arc_env, _Recorder(httpx.Response(500, text="oops")))

        with pytest.raises(AuthenticationError) as exc_info:
            await credential.get_token(SCOPE)

        assert exc_info.value.status_code == 500
        assert "ManagedIdentityCredential authentication failed." in str(exc_info.value)
        assert "status code 401 is expected" in str(exc_info.value)

    async def test_missing_key_file_header(self, arc_env) -> None:
        credential = _credential(arc_env, _Recorder(httpx.Response(401)))
        with pytest.raises(CredentialUnavailableError, match="Failed to find the token file"):
            await credential.get_token(SCOPE)


class TestImds:
    async def test_ping_then_token(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if _is_imds_ping(request):
                return httpx.Response(400, text="missing Metadata header")
            return _token_response("imds-token")

        credential = _credential({}, handler, client_id="user-assigned")
        token = await credential.get_token(SCOPE)

        assert token.token == "imds-token"
        assert isinstance(credential.cached_source, ImdsMsi)
        ping, token_request = requests
        assert str(ping.url) == IMDS_URL
        assert token_request.url.params["api-version"] == "2018-02-01"
        assert token_request.url.params["client_id"] == "user-assigned"

    async def test_unreachable_ping(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, text="A socket operation was attempted to an unreachable network")

        with pytest.raises(CredentialUnavailableError, match="No MSI credential available"):
            await _credential({}, handler).get_token(SCOPE)

    async def test_ping_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        with pytest.raises(CredentialUnavailableError, match="No MSI credential available"):
            await _credential({}, handler).get_token(SCOPE)

    async def test_pod_identity_skips_ping(self) -> None:
        handler = _Recorder(_token_response())
        credential = _credential(
            {"AZURE_POD_IDENTITY_AUTHORITY_HOST": "http://pod-identity:8080"}, handler
        )

        await credential.get_token(SCOPE)

        assert len(handler.requests) == 1
        assert handler.requests[0].url.host == "pod-identity"

    async def test_retries_on_404(self, monkeypatch: pytest.MonkeyPatch) -> None:
        delays: list[float] = []

        async def fake_sleep(delay: float) -> None:
            delays.append(delay)

        monkeypatch.setattr("azidentity.credentials.managed_identity.imds.asyncio.sleep", fake_sleep)
        attempts: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if _is_imds_ping(request):
                return httpx.Response(400)
            attempts.append(request)
            return httpx.Response(404, text="identity not found")

        with pytest.raises(AuthenticationError) as exc_info:
            await _credential({}, handler).get_token(SCOPE)

        assert len(attempts) == 3
        assert delays == [0.8, 1.6, 3.2]
        assert exc_info.value.status_code == 404
        assert "Failed to retrieve IMDS token after 3 retries." in str(exc_info.value)

    async def test_recovers_after_404(self, monkeypatch: pytest.MonkeyPatch) -> None:
        async def fake_sleep(delay: float) -> None:
            return None

        monkeypatch.setattr("azidentity.credentials.managed_identity.imds.asyncio.sleep", fake_sleep)
        answers = [httpx.Response(404), _token_response("late-token")]

        def handler(request: httpx.Request) -> httpx.Response:
            if _is_imds_ping(request):
                return httpx.Response(400)
            return answers.pop(0)

        token = await _credential({}, handler).get_token(SCOPE)
        assert token.token == "late-token"

    async def test_multiple_scopes_unavailable(self) -> None:
        credential = _credential({}, _Recorder(_token_response()))
        with pytest.raises(CredentialUnavailableError, match="No MSI credential available"):
            await credential.get_token(["a/.default", "b/.default"])


class TestTokenExchange:
    async def test_delegates_to_workload_identity(self, tmp_path: Path) -> None:
        token_file = tmp_path / "token"
        token_file.write_text("federated")
        confidential = MagicMock()
        confidential.get_accounts.return_value = []
        confidential.acquire_token_for_client.return_value = {
            "access_token": "exchange-token",
            "expires_in": 3600,
        }
        public = MagicMock()
        public.get_accounts.return_value = []
        credential = _credential(
            {
                "AZURE_CLIENT_ID": "client",
                "AZURE_TENANT_ID": "tenant",
                "AZURE_FEDERATED_TOKEN_FILE": str(token_file),
            },
            _Recorder(httpx.Response(500)),
        )

        with patch(
            "azidentity.engine.client.msal.PublicClientApplication", return_value=public
        ), patch(
            "azidentity.engine.client.msal.ConfidentialClientApplication", return_value=confidential
        ) as confidential_cls:
            first = await credential.get_token(SCOPE)
            await credential.get_token(SCOPE)

        assert first.token == "exchange-token"
        source = credential.cached_source
        assert isinstance(source, TokenExchangeMsi)
        assert confidential_cls.call_args.kwargs["instance_discovery"] is False
        assert confidential.acquire_token_for_client.call_count == 2
        await credential.close()


# ---------------------------------------------------------------------------
# Credential behaviour
# ---------------------------------------------------------------------------

APP_SERVICE_ENV = {"IDENTITY_ENDPOINT": "http://localhost:42/msi/token", "IDENTITY_HEADER": "hdr"}


class TestCaching:
    async def test_token_is_reused(self) -> None:
        handler = _Recorder(_token_response("first"), _token_response("second"))
        credential = _credential(APP_SERVICE_ENV, handler)

        assert (await credential.get_token(SCOPE)).token == "first"
        assert (await credential.get_token(SCOPE)).token == "first"
        assert len(handler.requests) == 1

    async def test_claims_bypass_cache(self) -> None:
        handler = _Recorder(_token_response("first"), _token_response("second"))
        credential = _credential(APP_SERVICE_ENV, handler)

        await credential.get_token(SCOPE)
        token = await credential.get_token(SCOPE, GetTokenOptions(claims="challenge"))
        assert token.token == "second"

    async def test_near_expiry_is_refreshed(self) -> None:
        soon = int(time.time()) + 60
        handler = _Recorder(
            httpx.Response(200, json={"access_token": "first", "expires_on": soon}),
            _token_response("second"),
        )
        credential = _credential(APP_SERVICE_ENV, handler)

        await credential.get_token(SCOPE)
        assert (await credential.get_token(SCOPE)).token == "second"

    async def test_source_is_probed_once(self) -> None:
        pings: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if _is_imds_ping(request):
                pings.append(request)
                return httpx.Response(400)
            return _token_response()

        credential = _credential({}, handler)
        await credential.get_token(SCOPE)
        await credential.get_token("https://storage.azure.com/.default")
        assert len(pings) == 1


class TestErrors:
    async def test_no_token_marks_endpoint_unavailable(self) -> None:
        handler = _Recorder(httpx.Response(200, json={"expires_in": 60}))
        credential = _credential(APP_SERVICE_ENV, handler)

        with pytest.raises(CredentialUnavailableError, match="yet no tokens were received"):
            await credential.get_token(SCOPE)
        with pytest.raises(CredentialUnavailableError, match="not currently available"):
            await credential.get_token(SCOPE)
        assert len(handler.requests) == 1

    async def test_400_means_no_identity(self) -> None:
        handler = _Recorder(
            httpx.Response(
                400,
                json={"error": "invalid_request", "error_description": "Identity not found"},
            )
        )
        with pytest.raises(CredentialUnavailableError, match="no available identity"):
            await _credential(APP_SERVICE_ENV, handler).get_token(SCOPE)

    async def test_other_statuses_are_authentication_errors(self) -> None:
        handler = _Recorder(
            httpx.Response(
                500,
                json={"error": "server_error", "error_description": "Try later"},
            )
        )
        with pytest.raises(AuthenticationError) as exc_info:
            await _credential(APP_SERVICE_ENV, handler).get_token(SCOPE)

        assert exc_info.value.status_code == 500
        assert exc_info.value.error_response.error == "ManagedIdentityCredential authentication failed."
        assert "Try later" in exc_info.value.error_response.error_description

    @pytest.mark.parametrize(
        ("code", "message"),
        [
            (errno.ENETUNREACH, "Network unreachable"),
            (errno.EHOSTUNREACH, "No managed identity endpoint found"),
        ],
    )
    async def test_network_errors(self, code: int, message: str) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            try:
                raise OSError(code, "unreachable")
            except OSError as exc:
                raise httpx.ConnectError("connect failed", request=request) from exc

        with pytest.raises(CredentialUnavailableError, match=message):
            await _credential(APP_SERVICE_ENV, handler).get_token(SCOPE)

    async def test_unexpected_errors_are_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="not json")

        with pytest.raises(CredentialUnavailableError, match="Authentication failed. Message"):
            await _credential(APP_SERVICE_ENV, handler).get_token(SCOPE)
