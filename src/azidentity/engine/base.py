"""Abstract base class for token acquisition flows.

A :class:`TokenFlow` encapsulates how one authentication mechanism
obtains a token from the engine once the silent (cache) attempt has
failed: client credentials, device code, interactive browser, and so on.
Flows do not manage engine applications, caches, accounts or error
normalization; the :class:`~azidentity.engine.client.EngineClient` that
owns the flow does all of that and calls :meth:`TokenFlow.acquire` with
ready-made applications.

Subclasses must implement :meth:`TokenFlow.acquire`. Flows that need a
confidential application override :meth:`TokenFlow.client_credential`
and set :attr:`TokenFlow.requires_confidential`.

See Also:
    :mod:`azidentity.engine.flows` for the bundled implementations.
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Literal, Optional, TypeVar, Union

from azidentity.models import GetTokenOptions

if TYPE_CHECKING:
    from azidentity.engine.client import EngineClient

AppKind = Literal["public", "confidential", "public_first", "confidential_first"]

ClientCredential = Union[str, dict[str, Any]]
"""MSAL ``client_credential``: a secret, a certificate dict or an assertion dict."""

EngineResult = Optional[dict[str, Any]]
"""Raw MSAL result: a token dict, an error dict, or ``None``."""

T = TypeVar("T")


async def resolve_maybe_awaitable(value: Union[T, Awaitable[T]]) -> T:
    """Await *value* if a user callback returned an awaitable."""
    if inspect.isawaitable(value):
        return await value
    return value


@dataclass
class EngineApps:
    """The engine applications built for one cache mode and authority.

    Attributes:
        public: The ``msal.PublicClientApplication``.
        confidential: The ``msal.ConfidentialClientApplication``, when the
            flow supplies client credential material.
        authority: The authority both applications were built for.
        enable_cae: Whether the applications request CAE-capable tokens.
    """

    public: Any
    confidential: Any
    authority: str
    enable_cae: bool

    def pick(self, kind: AppKind) -> Any:
        """Return the application of *kind*.

        Raises:
            ValueError: If a confidential application is required but was
                not built.
        """
        if kind == "public":
            return self.public
        if kind == "public_first":
            return self.public or self.confidential
        if kind == "confidential_first":
            return self.confidential or self.public
        if self.confidential is None:
            raise ValueError(
                "Unable to generate the MSAL confidential client. "
                "Missing either the client's secret, certificate or assertion."
            )
        return self.confidential


class TokenFlow(ABC):
    """Base class for a single token acquisition mechanism.

    Attributes:
        requires_confidential: ``True`` when :meth:`acquire` cannot work
            without a confidential application.
    """

    requires_confidential: bool = False

    def client_credential(self) -> Optional[ClientCredential]:
        """Return the client credential for the confidential application, if any."""
        return None

    async def prepare(self, options: GetTokenOptions) -> None:
        """Refresh per-request material before the engine is used.

        Called on every ``get_token`` before the silent attempt. The default
        does nothing.
        """

    @abstractmethod
    async def acquire(
        self,
        engine: EngineClient,
        apps: EngineApps,
        scopes: list[str],
        options: GetTokenOptions,
    ) -> EngineResult:
        """Obtain a token without the cache.

        Args:
            engine: The owning client; use :meth:`EngineClient.run` to call
                blocking engine methods.
            apps: The applications for this request's authority and mode.
            scopes: The requested scopes.
            options: The request options, with ``tenant_id``,
                ``authority`` and ``correlation_id`` already resolved.

        Returns:
            The raw engine result.
        """
        ...
