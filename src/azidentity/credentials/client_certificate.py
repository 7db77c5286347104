"""Service principal authentication with a PEM certificate."""

from __future__ import annotations

from typing import Optional

from azidentity.credentials.base import EngineCredential
from azidentity.engine.client import EngineClient
from azidentity.engine.flows.client_certificate import ClientCertificateFlow
from azidentity.logger import credential_logger
from azidentity.models import CredentialOptions

logger = credential_logger("ClientCertificateCredential")

_TROUBLESHOOT = (
    "To troubleshoot, visit "
    "https://aka.ms/azsdk/js/identity/serviceprincipalauthentication/troubleshoot."
)


class ClientCertificateCredential(EngineCredential):
    """Authenticates a service principal with a certificate.

    Exactly one of *certificate* (PEM text) and *certificate_path* must be
    given. The PEM must hold the private key and at least one certificate.

    Args:
        tenant_id: The Microsoft Entra tenant (directory) ID.
        client_id: The client (application) ID of an app registration.
        certificate_path: Path to a PEM file.
        certificate: PEM text.
        certificate_password: Password of an encrypted private key.
        send_certificate_chain: Send the ``x5c`` header to enable subject
            name / issuer authentication.
        options: Shared credential options.

    Raises:
        ValueError: On missing identifiers or when both or neither
            certificate source is given.
    """

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        certificate_path: Optional[str] = None,
        *,
        certificate: Optional[str] = None,
        certificate_password: Optional[str] = None,
        send_certificate_chain: bool = False,
        options: Optional[CredentialOptions] = None,
    ) -> None:
        if not tenant_id or not client_id:
            raise ValueError(
                "ClientCertificateCredential: tenantId and clientId are required parameters."
            )
        if not certificate and not certificate_path:
            raise ValueError(
                "ClientCertificateCredential: Provide either a PEM certificate in string form, "
                f"or the path to that certificate in the filesystem. {_TROUBLESHOOT}"
            )
        if certificate and certificate_path:
            raise ValueError(
                "ClientCertificateCredential: To avoid unexpected behaviors, providing both the "
                "contents of a PEM certificate and the path to a PEM certificate is forbidden. "
                f"{_TROUBLESHOOT}"
            )
        super().__init__(
            EngineClient(
                ClientCertificateFlow(
                    certificate=certificate,
                    certificate_path=certificate_path,
                    certificate_password=certificate_password,
                    send_certificate_chain=send_certificate_chain,
                ),
                client_id=client_id,
                tenant_id=tenant_id,
                options=options or CredentialOptions(),
                logger=logger,
            )
        )
