"""The token engine adapter shared by every MSAL-backed credential.

:class:`EngineClient` runs the acquisition state machine around MSAL:

1. **Resolve** the request tenant (multi-tenant rules), the authority and
   a correlation ID.
2. **Initialize** the engine applications for the request's cache mode
   (standard or CAE) and authority. Applications are built once and
   reused; a public application always, a confidential one whenever the
   flow supplies client credential material.
3. **Claims** from the request are remembered and replayed on later
   requests that carry none.
4. **Silent** acquisition from the cache for the active account.
5. **Fallback** to the owning :class:`~azidentity.engine.base.TokenFlow`
   when the silent attempt raises
   :class:`~azidentity.exceptions.AuthenticationRequiredError`, unless
   automatic authentication is disabled.

MSAL reports failures as ``{"error": ..., "error_description": ...}``
dicts; they are converted to
:class:`~azidentity.exceptions.TokenEngineError` and then normalized by
:meth:`EngineClient.handle_error`. MSAL is blocking, so every engine call
runs on a worker thread through :meth:`EngineClient.run`.
"""

from __future__ import annotations

import asyncio
import re
import time
import uuid
from typing import Any, Callable, Optional, Sequence, TypeVar

import httpx
import msal

from azidentity.client.identity_client import IdentityClient, current_correlation_id
from azidentity.config import resolve_env
from azidentity.constants import (
    AUTO_DISCOVER_REGION,
    CACHE_CAE_SUFFIX,
    CACHE_NON_CAE_SUFFIX,
    DEFAULT_CACHE_NAME,
    DEFAULT_TENANT_ID,
    DEVELOPER_SIGN_ON_CLIENT_ID,
)
from azidentity.engine.base import EngineApps, EngineResult, TokenFlow
from azidentity.exceptions import (
    AbortError,
    AuthenticationRequiredError,
    CredentialUnavailableError,
    TokenEngineError,
)
from azidentity.logger import CredentialLoggerWithGetToken, format_error, format_success
from azidentity.models import (
    AccessToken,
    AuthenticationRecord,
    CredentialOptions,
    GetTokenOptions,
    TokenCachePersistenceOptions,
)
from azidentity.tenant import (
    get_authority,
    get_known_authorities,
    process_multi_tenant_request,
    resolve_additionally_allowed_tenant_ids,
    resolve_tenant_id,
)

T = TypeVar("T")

NO_PERSISTENCE_MESSAGE = (
    "Persistent token caching was requested, but no persistence provider was configured."
)

MULTIPLE_ACCOUNTS_MESSAGE = (
    "More than one account was found authenticated for this Client ID and Tenant ID. "
    'However, no "authenticationRecord" has been provided for this credential, '
    "therefore we're unable to pick between these accounts. "
    "A new login attempt will be requested, to ensure the correct account is picked. "
    "To work with multiple accounts for the same Client ID and Tenant ID, please provide "
    'an "authenticationRecord" when initializing a credential to prevent this from happening.'
)

_ENVIRONMENT_PATTERN = re.compile(r"([a-z]*\.[a-z]*\.[a-z]*)")


def msal_to_public(client_id: str, account: dict[str, Any]) -> AuthenticationRecord:
    """Convert an MSAL account dict into an :class:`AuthenticationRecord`."""
    tenant_id = account.get("realm") or DEFAULT_TENANT_ID
    host = account.get("environment")
    # MSAL stores the bare host name
    if host and "://" not in host:
        host = f"https://{host}"
    return AuthenticationRecord(
        authority=get_authority(tenant_id, host),
        home_account_id=account.get("home_account_id", ""),
        tenant_id=tenant_id,
        username=account.get("username", ""),
        client_id=client_id,
    )


def public_to_msal(record: AuthenticationRecord) -> dict[str, Any]:
    """Convert an :class:`AuthenticationRecord` into an MSAL account dict."""
    match = _ENVIRONMENT_PATTERN.search(record.authority)
    return {
        "home_account_id": record.home_account_id,
        "local_account_id": record.home_account_id,
        "environment": match.group(1) if match else "",
        "realm": record.tenant_id,
        "username": record.username,
    }


def ensure_valid_engine_token(
    scopes: Sequence[str],
    logger: CredentialLoggerWithGetToken,
    result: EngineResult,
    options: Optional[GetTokenOptions] = None,
) -> dict[str, Any]:
    """Raise :class:`AuthenticationRequiredError` unless *result* holds a usable token."""

    def _error(message: str) -> AuthenticationRequiredError:
        logger.get_token.info(message)
        return AuthenticationRequiredError(message, scopes=scopes, get_token_options=options)

    if not result:
        raise _error("No response")
    if result.get("expires_in") is None:
        raise _error('Response had no "expiresOn" property.')
    if not result.get("access_token"):
        raise _error('Response had no "accessToken" property.')
    return result


class EngineClient:
    """Owns one :class:`TokenFlow` and the MSAL applications it runs on.

    Args:
        flow: The acquisition mechanism.
        client_id: Application (client) ID; the developer sign-on client
            when omitted.
        tenant_id: Configured tenant; resolved per
            :func:`~azidentity.tenant.resolve_tenant_id`.
        options: Shared credential options.
        logger: The owning credential's logger.

    Raises:
        ValueError: If the tenant is invalid, or persistent caching is
            enabled without a persistence provider.
    """

    def __init__(
        self,
        flow: TokenFlow,
        *,
        client_id: Optional[str],
        tenant_id: Optional[str],
        options: CredentialOptions,
        logger: CredentialLoggerWithGetToken,
    ) -> None:
        self.flow = flow
        self.logger = logger
        self.env = resolve_env(options.env)
        self.client_id = client_id or DEVELOPER_SIGN_ON_CLIENT_ID
        self.tenant_id = resolve_tenant_id(tenant_id, client_id, logger)
        self.additionally_allowed_tenant_ids = resolve_additionally_allowed_tenant_ids(
            options.additionally_allowed_tenants
        )
        self.authority_host = options.authority_host or self.env.get("AZURE_AUTHORITY_HOST")
        self.disable_instance_discovery = options.disable_instance_discovery
        self.identity_client = IdentityClient(
            self.authority_host,
            env=self.env,
            transport=options.transport,
            log_identifiers=options.log_identifiers,
        )
        self.account: Optional[AuthenticationRecord] = options.authentication_record

        persistence = options.token_cache_persistence
        provider = options.plugins.persistence if options.plugins else None
        if persistence is not None and persistence.enabled and provider is None:
            raise ValueError(NO_PERSISTENCE_MESSAGE)
        self._persistence = persistence if persistence is not None and persistence.enabled else None
        self._persistence_provider = provider

        region = options.regional_authority or self.env.get("AZURE_REGIONAL_AUTHORITY_NAME")
        if region == AUTO_DISCOVER_REGION:
            region = msal.ConfidentialClientApplication.ATTEMPT_REGION_DISCOVERY
        self.azure_region: Any = region

        self._caches: dict[bool, Any] = {}
        self._apps: dict[tuple[bool, str], EngineApps] = {}
        self.cached_claims: Optional[str] = None

    # ------------------------------------------------------------------ #
    # Initialization
    # ------------------------------------------------------------------ #

    def _token_cache(self, enable_cae: bool) -> Any:
        cache = self._caches.get(enable_cae)
        if cache is None:
            if self._persistence is not None and self._persistence_provider is not None:
                suffix = CACHE_CAE_SUFFIX if enable_cae else CACHE_NON_CAE_SUFFIX
                name = self._persistence.name or DEFAULT_CACHE_NAME
                cache = self._persistence_provider(
                    TokenCachePersistenceOptions(
                        enabled=True,
                        name=f"{name}{suffix}",
                        unsafe_allow_unencrypted_storage=(
                            self._persistence.unsafe_allow_unencrypted_storage
                        ),
                    )
                )
            else:
                cache = msal.TokenCache()
            self._caches[enable_cae] = cache
        return cache

    def _build_apps(self, authority: str, enable_cae: bool) -> EngineApps:
        tenant = authority.rstrip("/").rsplit("/", 1)[-1]
        known_authorities = get_known_authorities(
            tenant, self.authority_host, self.disable_instance_discovery
        )
        common: dict[str, Any] = {
            "authority": authority,
            "token_cache": self._token_cache(enable_cae),
            "http_client": self.identity_client.engine_http_client(),
            "client_capabilities": ["cp1"] if enable_cae else None,
        }
        if known_authorities:
            common["validate_authority"] = False
        if self.disable_instance_discovery:
            common["instance_discovery"] = False

        try:
            public = msal.PublicClientApplication(self.client_id, **common)
            confidential = None
            credential = self.flow.client_credential()
            if credential is not None:
                confidential = msal.ConfidentialClientApplication(
                    self.client_id,
                    client_credential=credential,
                    azure_region=self.azure_region,
                    **common,
                )
        except httpx.HTTPError as exc:
            raise TokenEngineError("endpoints_resolution_error", str(exc)) from exc
        except ValueError as exc:
            if str(exc).startswith("Unable to get authority configuration"):
                raise TokenEngineError("endpoints_resolution_error", str(exc)) from exc
            raise

        if confidential is None and self.flow.requires_confidential:
            raise ValueError(
                "Unable to generate the MSAL confidential client. "
                "Missing either the client's secret, certificate or assertion."
            )
        return EngineApps(
            public=public, confidential=confidential, authority=authority, enable_cae=enable_cae
        )

    async def init(self, options: GetTokenOptions) -> EngineApps:
        """Return the applications for the request's mode and authority, building them once."""
        authority = options.authority or get_authority(self.tenant_id, self.authority_host)
        key = (options.enable_cae, authority)
        apps = self._apps.get(key)
        if apps is not None:
            return apps
        self.logger.get_token.info(
            f"Initializing the engine applications for {authority}"
            + (" (CAE)" if options.enable_cae else "")
        )
        apps = await self.run(options, self._build_apps, authority, options.enable_cae)
        self._apps[key] = apps
        return apps

    async def run(
        self, options: GetTokenOptions, fn: Callable[..., T], *args: Any, **kwargs: Any
    ) -> T:
        """Run a blocking engine call on a worker thread under the request's correlation ID.

        Raises:
            AbortError: If the request was aborted before or during the call.
        """
        if options.is_aborted:
            raise AbortError("The authentication has been aborted by the caller.")
        token = current_correlation_id.set(options.correlation_id)
        try:
            result = await asyncio.to_thread(fn, *args, **kwargs)
        finally:
            current_correlation_id.reset(token)
        if options.is_aborted:
            raise AbortError("The authentication has been aborted by the caller.")
        return result

    # ------------------------------------------------------------------ #
    # Accounts
    # ------------------------------------------------------------------ #

    async def get_active_account(
        self, options: Optional[GetTokenOptions] = None
    ) -> Optional[AuthenticationRecord]:
        """Return the account silent authentication should use.

        The account set by a previous acquisition (or passed as
        ``authentication_record``) wins. Otherwise a cache holding exactly
        one account supplies it.
        """
        if self.account is not None:
            return self.account
        options = options or GetTokenOptions()
        apps = self._apps.get((options.enable_cae, options.authority or "")) or next(
            iter(self._apps.values()), None
        )
        if apps is None:
            return None
        accounts = await self.run(options, apps.pick("public_first").get_accounts)
        if len(accounts) == 1:
            self.account = msal_to_public(self.client_id, accounts[0])
        elif len(accounts) > 1:
            self.logger.info(MULTIPLE_ACCOUNTS_MESSAGE)
        return self.account

    def _find_engine_account(self, app: Any, record: AuthenticationRecord) -> dict[str, Any]:
        for account in app.get_accounts(username=record.username or None):
            if account.get("home_account_id") == record.home_account_id:
                return account
        return public_to_msal(record)

    def _update_account(self, apps: EngineApps, result: dict[str, Any]) -> None:
        claims = result.get("id_token_claims")
        if not claims:
            return
        app = apps.pick("public_first") if apps.confidential is None else apps.confidential
        username = claims.get("preferred_username")
        accounts = app.get_accounts(username=username) if username else app.get_accounts()
        if not accounts and apps.public is not app:
            accounts = apps.public.get_accounts(username=username) if username else []
        if accounts:
            self.account = msal_to_public(self.client_id, accounts[0])

    # ------------------------------------------------------------------ #
    # Result and error normalization
    # ------------------------------------------------------------------ #

    def handle_result(
        self, scopes: Sequence[str], result: EngineResult, options: Optional[GetTokenOptions] = None
    ) -> AccessToken:
        """Convert a successful engine result into an :class:`AccessToken`.

        Raises:
            AuthenticationRequiredError: If the result is missing, or has
                no expiry or access token.
        """
        valid = ensure_valid_engine_token(scopes, self.logger, result, options)
        self.logger.get_token.info(format_success(scopes))
        return AccessToken(
            token=valid["access_token"],
            expires_on_timestamp=int((time.time() + float(valid["expires_in"])) * 1000),
        )

    def handle_error(
        self,
        scopes: Sequence[str],
        error: BaseException,
        options: Optional[GetTokenOptions] = None,
    ) -> BaseException:
        """Map an engine failure onto the public error taxonomy.

        Returns:
            The exception the caller should raise.
        """
        if isinstance(error, TokenEngineError):
            code = error.error_code
            if code == "endpoints_resolution_error":
                self.logger.info(format_error(scopes, str(error)))
                return CredentialUnavailableError(str(error))
            if code == "device_code_polling_cancelled":
                return AbortError("The authentication has been aborted by the caller.")
            if code in ("consent_required", "interaction_required", "login_required"):
                self.logger.info(
                    format_error(scopes, f"Authentication returned errorCode {code}")
                )
            else:
                self.logger.info(format_error(scopes, f"Failed to acquire token: {error}"))
        if isinstance(
            error,
            (ValueError, AbortError, CredentialUnavailableError, AuthenticationRequiredError),
        ):
            return error
        return AuthenticationRequiredError(str(error), scopes=scopes, get_token_options=options)

    def _raise_for_result(self, result: EngineResult) -> None:
        if result and "error" in result:
            raise TokenEngineError.from_result(result)

    # ------------------------------------------------------------------ #
    # Acquisition
    # ------------------------------------------------------------------ #

    async def get_token_silent(
        self, apps: EngineApps, scopes: list[str], options: GetTokenOptions
    ) -> AccessToken:
        """Acquire a token from the cache for the active account.

        Raises:
            AuthenticationRequiredError: If there is no active account or
                the cache cannot satisfy the request.
        """
        account = await self.get_active_account(options)
        if account is None:
            raise AuthenticationRequiredError(
                "Silent authentication failed. We couldn't retrieve an active account from the cache.",
                scopes=scopes,
                get_token_options=options,
            )
        self.logger.get_token.info("Attempting to acquire token silently")
        try:
            result: EngineResult = None
            for app in (apps.confidential, apps.public):
                if app is None:
                    continue
                engine_account = await self.run(options, self._find_engine_account, app, account)
                result = await self.run(
                    options,
                    app.acquire_token_silent_with_error,
                    scopes,
                    engine_account,
                    claims_challenge=options.claims,
                )
                if result:
                    break
            self._raise_for_result(result)
            if result:
                await self.run(options, self._update_account, apps, result)
        except Exception as exc:
            handled = self.handle_error(scopes, exc, options)
            if handled is exc:
                raise
            raise handled from exc
        return self.handle_result(scopes, result, options)

    async def do_get_token(
        self, apps: EngineApps, scopes: list[str], options: GetTokenOptions
    ) -> AccessToken:
        """Acquire a token through the flow, bypassing the cache."""
        try:
            result = await self.flow.acquire(self, apps, scopes, options)
            self._raise_for_result(result)
            if result:
                await self.run(options, self._update_account, apps, result)
        except Exception as exc:
            handled = self.handle_error(scopes, exc, options)
            if handled is exc:
                raise
            raise handled from exc
        return self.handle_result(scopes, result, options)

    def _watch_abort(self, options: GetTokenOptions) -> Optional[asyncio.Future[None]]:
        signal = options.abort_signal
        if signal is None:
            return None

        async def _abort_when_set() -> None:
            await signal.wait()
            self.identity_client.abort_requests(options.correlation_id)

        return asyncio.ensure_future(_abort_when_set())

    async def get_token(
        self, scopes: Sequence[str], options: Optional[GetTokenOptions] = None
    ) -> AccessToken:
        """Acquire a token: silently when possible, through the flow otherwise.

        Args:
            scopes: The requested scopes.
            options: Request options.

        Returns:
            The access token.

        Raises:
            CredentialUnavailableError: If the request targets a tenant the
                credential may not use, or the authority cannot be resolved.
            AuthenticationRequiredError: If the flow failed, or automatic
                authentication is disabled and the cache had no token.
            AbortError: If the request was aborted.
        """
        scopes = list(scopes)
        options = options or GetTokenOptions()
        tenant_id = (
            process_multi_tenant_request(
                self.tenant_id,
                options,
                self.additionally_allowed_tenant_ids,
                self.env,
                self.logger.get_token,
            )
            or self.tenant_id
        )
        options = options.model_copy(
            update={
                "tenant_id": tenant_id,
                "authority": get_authority(tenant_id, self.authority_host),
                "correlation_id": options.correlation_id or str(uuid.uuid4()),
            }
        )
        watcher = self._watch_abort(options)
        try:
            await self.flow.prepare(options)
            try:
                apps = await self.init(options)
            except TokenEngineError as exc:
                raise self.handle_error(scopes, exc, options) from exc

            if options.claims:
                self.cached_claims = options.claims
            elif self.cached_claims:
                options = options.model_copy(update={"claims": self.cached_claims})

            try:
                return await self.get_token_silent(apps, scopes, options)
            except AuthenticationRequiredError as exc:
                if options.disable_automatic_authentication:
                    raise AuthenticationRequiredError(
                        "Automatic authentication has been disabled. "
                        "You may call the authentication() method.",
                        scopes=scopes,
                        get_token_options=options,
                    ) from exc
                self.logger.info("Silent authentication failed, falling back to interactive method.")
                return await self.do_get_token(apps, scopes, options)
        finally:
            if watcher is not None:
                watcher.cancel()
            self.identity_client.release(options.correlation_id)

    async def close(self) -> None:
        await self.identity_client.close()
