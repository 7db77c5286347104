"""Managed identity: one source per Azure hosting environment."""

from azidentity.credentials.managed_identity.base import MSI, MSIConfiguration
from azidentity.credentials.managed_identity.credential import ManagedIdentityCredential

__all__ = ["MSI", "MSIConfiguration", "ManagedIdentityCredential"]
