"""Credential configured entirely from environment variables."""

from __future__ import annotations

from typing import Optional

from azidentity.config import resolve_env
from azidentity.credentials.base import TokenCredential
from azidentity.credentials.client_certificate import ClientCertificateCredential
from azidentity.credentials.client_secret import ClientSecretCredential
from azidentity.credentials.username_password import UsernamePasswordCredential
from azidentity.exceptions import AuthenticationError, CredentialUnavailableError
from azidentity.logger import credential_logger, format_error, format_success, process_env_vars
from azidentity.models import AccessToken, CredentialOptions, GetTokenOptions
from azidentity.scopes import Scopes
from azidentity.tenant import check_tenant_id

CREDENTIAL_NAME = "EnvironmentCredential"

ALL_SUPPORTED_ENV_VARS = (
    "AZURE_TENANT_ID",
    "AZURE_CLIENT_ID",
    "AZURE_CLIENT_SECRET",
    "AZURE_CLIENT_CERTIFICATE_PATH",
    "AZURE_CLIENT_CERTIFICATE_PASSWORD",
    "AZURE_USERNAME",
    "AZURE_PASSWORD",
    "AZURE_ADDITIONALLY_ALLOWED_TENANTS",
)

_TROUBLESHOOT = "To troubleshoot, visit https://aka.ms/azsdk/js/identity/environmentcredential/troubleshoot."

logger = credential_logger(CREDENTIAL_NAME)


def get_additionally_allowed_tenants(value: Optional[str]) -> list[str]:
    """Split ``AZURE_ADDITIONALLY_ALLOWED_TENANTS`` on ``;``."""
    return value.split(";") if value else []


class EnvironmentCredential(TokenCredential):
    """Picks a service principal or user credential from the environment.

    ``AZURE_TENANT_ID`` and ``AZURE_CLIENT_ID`` are always required. Then,
    in order:

    1. ``AZURE_CLIENT_SECRET`` -> :class:`ClientSecretCredential`.
    2. ``AZURE_CLIENT_CERTIFICATE_PATH`` (and optionally
       ``AZURE_CLIENT_CERTIFICATE_PASSWORD``) ->
       :class:`ClientCertificateCredential`.
    3. ``AZURE_USERNAME`` and ``AZURE_PASSWORD`` ->
       :class:`UsernamePasswordCredential`.

    ``AZURE_ADDITIONALLY_ALLOWED_TENANTS`` is a ``;`` separated allow-list.
    """

    def __init__(self, options: Optional[CredentialOptions] = None) -> None:
        options = options or CredentialOptions()
        env = resolve_env(options.env)
        assigned, _ = process_env_vars(ALL_SUPPORTED_ENV_VARS, env)
        logger.info(f"Found the following environment variables: {', '.join(assigned)}")

        tenant_id = env.get("AZURE_TENANT_ID")
        client_id = env.get("AZURE_CLIENT_ID")
        client_secret = env.get("AZURE_CLIENT_SECRET")
        allowed = get_additionally_allowed_tenants(env.get("AZURE_ADDITIONALLY_ALLOWED_TENANTS"))
        new_options = options.model_copy(update={"env": env, "additionally_allowed_tenants": allowed})
        if tenant_id:
            check_tenant_id(tenant_id, logger)

        self._credential: Optional[TokenCredential] = None
        if tenant_id and client_id and client_secret:
            logger.info(
                f"Invoking ClientSecretCredential with tenant ID: {tenant_id}, "
                f"clientId: {client_id} and clientSecret: [REDACTED]"
            )
            self._credential = ClientSecretCredential(tenant_id, client_id, client_secret, new_options)
            return

        certificate_path = env.get("AZURE_CLIENT_CERTIFICATE_PATH")
        if tenant_id and client_id and certificate_path:
            logger.info(
                f"Invoking ClientCertificateCredential with tenant ID: {tenant_id}, "
                f"clientId: {client_id} and certificatePath: {certificate_path}"
            )
            self._credential = ClientCertificateCredential(
                tenant_id,
                client_id,
                certificate_path,
                certificate_password=env.get("AZURE_CLIENT_CERTIFICATE_PASSWORD"),
                options=new_options,
            )
            return

        username = env.get("AZURE_USERNAME")
        password = env.get("AZURE_PASSWORD")
        if tenant_id and client_id and username and password:
            logger.info(
                f"Invoking UsernamePasswordCredential with tenant ID: {tenant_id}, "
                f"clientId: {client_id} and username: {username}"
            )
            self._credential = UsernamePasswordCredential(
                tenant_id, client_id, username, password, new_options
            )

    async def get_token(
        self, scopes: Scopes, options: Optional[GetTokenOptions] = None
    ) -> AccessToken:
        if self._credential is None:
            raise CredentialUnavailableError(
                f"{CREDENTIAL_NAME} is unavailable. No underlying credential could be used. "
                f"{_TROUBLESHOOT}"
            )
        try:
            token = await self._credential.get_token(scopes, options)
        except Exception as exc:
            error = AuthenticationError(
                400,
                {
                    "error": f"{CREDENTIAL_NAME} authentication failed. {_TROUBLESHOOT}",
                    "error_description": "".join(str(exc).split("More details:")),
                },
            )
            logger.get_token.info(format_error(scopes, error))
            raise error from exc
        logger.get_token.info(format_success(scopes))
        return token

    async def close(self) -> None:
        if self._credential is not None:
            await self._credential.close()
