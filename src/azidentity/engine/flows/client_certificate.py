"""Client credentials grant with a certificate.

The certificate is a PEM file (or PEM text) holding the private key and
one or more certificates. :func:`parse_certificate` extracts what the
engine needs:

* ``thumbprint`` -- uppercase hex SHA-1 of the DER bytes of the *first*
  certificate block in the file.
* ``x5c`` -- the full PEM text, sent as the certificate chain when
  ``send_certificate_chain`` is enabled (subject name / issuer
  authentication).

The private key is loaded with :mod:`cryptography`, decrypted with the
optional password, and handed to the engine as unencrypted PKCS8 PEM.
"""

from __future__ import annotations

import base64
import hashlib
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from cryptography.hazmat.primitives import serialization
from pydantic import BaseModel, Field

from azidentity.engine.base import ClientCredential, EngineApps, EngineResult, TokenFlow
from azidentity.models import GetTokenOptions

if TYPE_CHECKING:
    from azidentity.engine.client import EngineClient

CERTIFICATE_PATTERN = re.compile(
    r"(-+BEGIN CERTIFICATE-+)(\n\r?|\r\n?)([A-Za-z0-9+/\n\r]+=*)(\n\r?|\r\n?)(-+END CERTIFICATE-+)"
)


class CertificateParts(BaseModel):
    """The parts of a PEM certificate used to build a client assertion."""

    thumbprint: str = Field(description="Uppercase hex SHA-1 of the first certificate")
    certificate_contents: str = Field(description="The full PEM text")
    x5c: Optional[str] = Field(default=None, description="Certificate chain to send, if enabled")


def read_certificate_contents(
    certificate: Optional[str] = None, certificate_path: Optional[str] = None
) -> str:
    """Return the PEM text, reading *certificate_path* when no inline PEM is given."""
    if certificate:
        return certificate
    if not certificate_path:
        raise ValueError("Either a PEM certificate or a certificate path is required")
    return Path(certificate_path).read_text(encoding="utf-8")


def parse_certificate(contents: str, send_certificate_chain: bool = False) -> CertificateParts:
    """Compute the thumbprint (and optional chain) of a PEM certificate.

    Args:
        contents: PEM text holding at least one certificate block.
        send_certificate_chain: Keep the full PEM as ``x5c``.

    Raises:
        ValueError: If *contents* holds no certificate block.
    """
    blocks = [match.group(3) for match in CERTIFICATE_PATTERN.finditer(contents)]
    if not blocks:
        raise ValueError("The file at the specified path does not contain a PEM-encoded certificate.")
    der = base64.b64decode("".join(blocks[0].split()))
    return CertificateParts(
        thumbprint=hashlib.sha1(der).hexdigest().upper(),
        certificate_contents=contents,
        x5c=contents if send_certificate_chain else None,
    )


def load_private_key(contents: str, password: Optional[str] = None) -> str:
    """Return the private key of *contents* as unencrypted PKCS8 PEM.

    Raises:
        ValueError: If no private key is found or the password is wrong.
    """
    key = serialization.load_pem_private_key(
        contents.encode("utf-8"),
        password=password.encode("utf-8") if password else None,
    )
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")


def certificate_credential(
    contents: str, password: Optional[str], send_certificate_chain: bool
) -> dict[str, Any]:
    """Build the engine's certificate ``client_credential`` dict from PEM text."""
    parts = parse_certificate(contents, send_certificate_chain)
    credential: dict[str, Any] = {
        "private_key": load_private_key(contents, password),
        "thumbprint": parts.thumbprint,
    }
    if parts.x5c:
        credential["public_certificate"] = parts.x5c
    return credential


class ClientCertificateFlow(TokenFlow):
    """Acquire app-only tokens with a certificate.

    The certificate is read and parsed on first use and kept for the
    lifetime of the flow.
    """

    requires_confidential = True

    def __init__(
        self,
        certificate: Optional[str] = None,
        certificate_path: Optional[str] = None,
        certificate_password: Optional[str] = None,
        send_certificate_chain: bool = False,
    ) -> None:
        self._certificate = certificate
        self._certificate_path = certificate_path
        self._certificate_password = certificate_password
        self._send_certificate_chain = send_certificate_chain
        self._credential: Optional[dict[str, Any]] = None

    async def prepare(self, options: GetTokenOptions) -> None:
        if self._credential is None:
            contents = read_certificate_contents(self._certificate, self._certificate_path)
            self._credential = certificate_credential(
                contents, self._certificate_password, self._send_certificate_chain
            )

    def client_credential(self) -> Optional[ClientCredential]:
        return self._credential

    async def acquire(
        self,
        engine: EngineClient,
        apps: EngineApps,
        scopes: list[str],
        options: GetTokenOptions,
    ) -> EngineResult:
        app = apps.pick("confidential")
        return await engine.run(
            options, app.acquire_token_for_client, scopes, claims_challenge=options.claims
        )
