"""Tests for ChainedTokenCredential."""

from __future__ import annotations

from typing import Optional

import pytest

from azidentity.credentials.base import TokenCredential
from azidentity.credentials.chained import ChainedTokenCredential
from azidentity.exceptions import (
    AggregateAuthenticationError,
    AuthenticationError,
    AuthenticationRequiredError,
    CredentialUnavailableError,
)
from azidentity.models import AccessToken, GetTokenOptions


class _StubCredential(TokenCredential):
    """Returns a fixed token or raises a fixed error."""

    def __init__(
        self,
        token: Optional[str] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        self.token = token
        self.error = error
        self.calls = 0
        self.closed = False

    async def get_token(self, scopes, options: Optional[GetTokenOptions] = None) -> AccessToken:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return AccessToken(token=self.token or "", expires_on_timestamp=1)

    async def close(self) -> None:
        self.closed = True


class _OtherStub(_StubCredential):
    pass


class TestChainedTokenCredential:
    async def test_first_success_wins(self) -> None:
        first = _StubCredential(token="first")
        second = _StubCredential(token="second")
        chain = ChainedTokenCredential(first, second)

        token = await chain.get_token("scope")

        assert token.token == "first"
        assert chain.selected_credential is first
        assert second.calls == 0

    async def test_unavailable_sources_are_skipped(self) -> None:
        unavailable = _StubCredential(error=CredentialUnavailableError("not here"))
        needs_login = _StubCredential(error=AuthenticationRequiredError("log in"))
        working = _OtherStub(token="third")
        chain = ChainedTokenCredential(unavailable, needs_login, working)

        token = await chain.get_token(["scope"])

        assert token.token == "third"
        assert chain.selected_credential is working

    async def test_every_source_unavailable(self) -> None:
        first_error = CredentialUnavailableError("first missing")
        second_error = AuthenticationRequiredError("second needs login")
        chain = ChainedTokenCredential(
            _StubCredential(error=first_error), _StubCredential(error=second_error)
        )

        with pytest.raises(AggregateAuthenticationError) as exc_info:
            await chain.get_token("scope")

        assert exc_info.value.errors == [first_error, second_error]
        message = str(exc_info.value)
        assert "ChainedTokenCredential authentication failed." in message
        assert "first missing" in message
        assert "second needs login" in message

    async def test_other_errors_stop_the_chain(self) -> None:
        failure = AuthenticationError(
            401, {"error": "invalid_client", "error_description": "Bad secret"}
        )
        after = _StubCredential(token="never")
        chain = ChainedTokenCredential(_StubCredential(error=failure), after)

        with pytest.raises(AuthenticationError) as exc_info:
            await chain.get_token("scope")

        assert exc_info.value is failure
        assert after.calls == 0
        assert chain.selected_credential is None

    async def test_no_sources(self) -> None:
        with pytest.raises(CredentialUnavailableError, match="Failed to retrieve a valid token"):
            await ChainedTokenCredential().get_token("scope")

    async def test_sources_is_a_copy(self) -> None:
        source = _StubCredential(token="t")
        chain = ChainedTokenCredential(source)
        chain.sources.clear()
        assert chain.sources == [source]

    async def test_close_closes_every_source(self) -> None:
        sources = [_StubCredential(token="a"), _StubCredential(token="b")]
        async with ChainedTokenCredential(*sources):
            pass
        assert all(source.closed for source in sources)
