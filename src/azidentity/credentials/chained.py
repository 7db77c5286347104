"""Credential chaining.

:class:`ChainedTokenCredential` tries a list of credentials in order and
returns the first token obtained. A credential that is unavailable in the
current environment, or that needs user interaction, is skipped; any
other failure stops the chain and propagates, so that a misconfigured
credential is not silently masked by the next one.
"""

from __future__ import annotations

from typing import Optional

from azidentity.credentials.base import TokenCredential
from azidentity.exceptions import (
    AggregateAuthenticationError,
    AuthenticationRequiredError,
    CredentialUnavailableError,
)
from azidentity.logger import credential_logger, format_error, format_success
from azidentity.models import AccessToken, GetTokenOptions
from azidentity.scopes import Scopes

logger = credential_logger("ChainedTokenCredential")


class ChainedTokenCredential(TokenCredential):
    """Returns the first token produced by one of *sources*.

    Args:
        *sources: Credentials to try, in order.

    Attributes:
        selected_credential: The credential that produced the last token.

    Example::

        credential = ChainedTokenCredential(
            EnvironmentCredential(),
            AzureCliCredential(),
        )
        token = await credential.get_token("https://storage.azure.com/.default")
    """

    def __init__(self, *sources: TokenCredential) -> None:
        self._sources: list[TokenCredential] = list(sources)
        self.selected_credential: Optional[TokenCredential] = None

    @property
    def sources(self) -> list[TokenCredential]:
        return list(self._sources)

    async def get_token(
        self, scopes: Scopes, options: Optional[GetTokenOptions] = None
    ) -> AccessToken:
        """Try every source until one returns a token.

        Raises:
            AggregateAuthenticationError: If every source was unavailable.
            CredentialUnavailableError: If there are no sources.
            Exception: Whatever a source raised other than
                CredentialUnavailableError or AuthenticationRequiredError.
        """
        token: Optional[AccessToken] = None
        successful: Optional[TokenCredential] = None
        errors: list[BaseException] = []

        for source in self._sources:
            try:
                token = await source.get_token(scopes, options)
            except (CredentialUnavailableError, AuthenticationRequiredError) as exc:
                errors.append(exc)
                continue
            except Exception as exc:
                logger.get_token.info(format_error(scopes, exc))
                raise
            successful = source
            break

        if token is None and errors:
            error = AggregateAuthenticationError(
                errors, "ChainedTokenCredential authentication failed."
            )
            logger.get_token.info(format_error(scopes, error))
            raise error
        if token is None or successful is None:
            raise CredentialUnavailableError("Failed to retrieve a valid token")

        self.selected_credential = successful
        logger.get_token.info(
            f"Result for {type(successful).__name__}: {format_success(scopes)}"
        )
        return token

    async def close(self) -> None:
        for source in self._sources:
            await source.close()
