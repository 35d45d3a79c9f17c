"""
Interface definitions for certificate storage and store authentication
"""
from abc import ABC, abstractmethod
from typing import List, Optional
from .models import CertificatePolicy


class ICredentialProvider(ABC):
    """Opaque authenticator a store uses to sign its requests"""

    @abstractmethod
    def create_session(self):
        """Return an authenticated session object understood by the store backend"""
        pass


class ICertificateStore(ABC):
    """Interface for certificate stores (AWS Secrets Manager, in-memory, etc.)"""

    @abstractmethod
    async def get_certificate(self, name: str, version: Optional[str] = None) -> bytes:
        """Get the DER encoding of a stored certificate"""
        pass

    @abstractmethod
    async def list_certificates(self) -> List[str]:
        """List names of stored certificates"""
        pass

    @abstractmethod
    async def import_certificate(
        self,
        name: str,
        bundle: bytes,
        policy: Optional[CertificatePolicy] = None
    ) -> str:
        """Import a PKCS#12 bundle under a name, returning the confirmed name"""
        pass

    @abstractmethod
    async def delete_certificate(self, name: str) -> bool:
        """Delete a stored certificate"""
        pass

    @abstractmethod
    async def get_secret(self, name: str, version: Optional[str] = None) -> str:
        """Get the base64-encoded key bundle stored with a certificate"""
        pass
