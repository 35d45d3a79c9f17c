"""
In-memory certificate store with per-name version history
"""
import base64
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any
from cryptography.hazmat.primitives import serialization

from .base_adapter import BaseCertificateStore
from .. import pem_codec
from ...shared.exceptions import CertificateNotFoundError, StoreOperationError, ParseError
from ...shared.models import CertificatePolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredVersion:
    version: str
    bundle: bytes
    certificate_der: bytes
    policy: CertificatePolicy
    created_at: datetime


class InMemoryCertificateStore(BaseCertificateStore):
    """Keeps imported bundles in process memory; imports of an existing name add a new version"""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self.certificates: Dict[str, List[StoredVersion]] = {}

    def _resolve(self, name: str, version: Optional[str]) -> StoredVersion:
        versions = self.certificates.get(name)
        if not versions:
            raise CertificateNotFoundError(f"Certificate {name} not found")
        if version is None:
            return versions[-1]
        for stored in versions:
            if stored.version == version:
                return stored
        raise CertificateNotFoundError(f"Certificate {name} has no version {version}")

    async def get_certificate(self, name: str, version: Optional[str] = None) -> bytes:
        return self._resolve(name, version).certificate_der

    async def list_certificates(self) -> List[str]:
        return list(self.certificates)

    async def import_certificate(
        self,
        name: str,
        bundle: bytes,
        policy: Optional[CertificatePolicy] = None
    ) -> str:
        try:
            certificate = pem_codec.load_certificate_from_bundle(bundle)
        except ParseError as e:
            raise StoreOperationError(f"Import of {name} rejected: {str(e)}")

        stored = StoredVersion(
            version=uuid.uuid4().hex,
            bundle=bundle,
            certificate_der=certificate.public_bytes(serialization.Encoding.DER),
            policy=policy or CertificatePolicy(),
            created_at=datetime.now(timezone.utc),
        )
        self.certificates.setdefault(name, []).append(stored)
        logger.info(f"Imported certificate {name} version {stored.version}")
        return name

    async def delete_certificate(self, name: str) -> bool:
        if name not in self.certificates:
            raise CertificateNotFoundError(f"Certificate {name} not found")
        del self.certificates[name]
        logger.info(f"Deleted certificate {name}")
        return True

    async def get_secret(self, name: str, version: Optional[str] = None) -> str:
        return base64.b64encode(self._resolve(name, version).bundle).decode("ascii")

    def versions(self, name: str) -> List[str]:
        return [stored.version for stored in self.certificates.get(name, [])]
