"""
Base adapter class and factory for certificate stores
"""
from abc import abstractmethod
from typing import Optional, List, Dict, Any
from ...shared.interfaces import ICertificateStore, ICredentialProvider
from ...shared.models import CertificatePolicy


class BaseCertificateStore(ICertificateStore):
    """Base class for certificate store adapters"""

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        credential_provider: Optional[ICredentialProvider] = None
    ):
        self.config = config or {}
        self.credential_provider = credential_provider

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
        """Import a PKCS#12 bundle under a name"""
        pass

    @abstractmethod
    async def delete_certificate(self, name: str) -> bool:
        """Delete a stored certificate"""
        pass

    @abstractmethod
    async def get_secret(self, name: str, version: Optional[str] = None) -> str:
        """Get the base64-encoded key bundle stored with a certificate"""
        pass


class CertificateStoreFactory:
    """Factory for creating certificate store adapters"""

    @staticmethod
    def create_store(
        store_type: str,
        config: Optional[Dict[str, Any]] = None,
        credential_provider: Optional[ICredentialProvider] = None
    ) -> ICertificateStore:
        """Create certificate store based on type"""

        if store_type.lower() == "aws":
            from .aws_adapter import AwsSecretsCertificateStore
            return AwsSecretsCertificateStore(config, credential_provider)

        elif store_type.lower() == "memory":
            from .memory_adapter import InMemoryCertificateStore
            return InMemoryCertificateStore(config)

        else:
            raise ValueError(f"Unsupported certificate store type: {store_type}")

    @staticmethod
    def get_supported_stores() -> List[str]:
        """Get list of supported store types"""
        return ["aws", "memory"]
