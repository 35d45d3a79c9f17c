"""
Root, intermediate and end-entity issuance against a certificate store
"""
import logging
from typing import Optional, Tuple, List

from . import pem_codec
from .certificate_builder import CertificateBuilder
from .extensions import KeyUsage
from .records import CertificateRecord, KeyPair
from ..shared.exceptions import (
    CertificateNotFoundError,
    IssuerNotFoundError,
    PkiError,
    PrivateKeyUnavailableError,
)
from ..shared.interfaces import ICertificateStore
from ..shared.models import (
    CertificateCreationResult,
    CertificateData,
    CertificatePolicy,
    CertificateRequest,
    CertificateRole,
    EndEntityCertConfig,
    IntermediateCAConfig,
    RootCAConfig,
)

logger = logging.getLogger(__name__)


class CAHierarchyService:
    """
    Orchestrates issuance of a CA hierarchy

    The store handle is owned by the caller and shared by reference. Repeated
    calls with the same name simply import again; the store's own versioning
    decides what "latest" means.
    """

    def __init__(self, store: ICertificateStore, builder: Optional[CertificateBuilder] = None):
        self.store = store
        self.builder = builder or CertificateBuilder()

    async def create_root_ca(self, config: RootCAConfig) -> CertificateCreationResult:
        """Create a self-signed root CA and import it under config.name"""
        try:
            logger.info(f"Creating root CA {config.name} ({config.subject})")
            request = CertificateRequest(
                role=CertificateRole.ROOT,
                subject=config.subject,
                key_size=config.key_size,
                validity_days=config.validity_days,
                path_length=config.path_length,
            )
            record, key_pair = self.builder.build_self_signed(request)
            return await self._persist(config.name, record, key_pair, [], "Self", request)

        except PkiError as e:
            return self._failure(config.name, "root CA", e)

    async def create_intermediate_ca(self, config: IntermediateCAConfig) -> CertificateCreationResult:
        """Create an intermediate CA signed by the CA stored as config.issuer_ca"""
        try:
            logger.info(f"Creating intermediate CA {config.name} issued by {config.issuer_ca}")
            issuer_record, issuer_key = await self._load_issuer(config.issuer_ca)
            request = CertificateRequest(
                role=CertificateRole.INTERMEDIATE,
                subject=config.subject,
                issuer=config.issuer_ca,
                key_size=config.key_size,
                validity_days=config.validity_days,
                path_length=config.path_length,
            )
            record, key_pair = self.builder.build_signed(request, issuer_record, issuer_key)
            return await self._persist(config.name, record, key_pair, [issuer_record], config.issuer_ca, request)

        except PkiError as e:
            return self._failure(config.name, "intermediate CA", e)

    async def create_end_entity_certificate(self, config: EndEntityCertConfig) -> CertificateCreationResult:
        """Create an end-entity certificate signed by the intermediate stored as config.issuer_ca"""
        try:
            logger.info(f"Creating end-entity certificate {config.name} issued by {config.issuer_ca}")
            issuer_record, issuer_key = await self._load_issuer(config.issuer_ca)
            request = CertificateRequest(
                role=CertificateRole.END_ENTITY,
                subject=config.subject,
                issuer=config.issuer_ca,
                key_size=config.key_size,
                validity_days=config.validity_days,
                extended_key_usage=config.extended_key_usage,
                san=config.san,
            )
            record, key_pair = self.builder.build_signed(request, issuer_record, issuer_key)
            return await self._persist(config.name, record, key_pair, [issuer_record], config.issuer_ca, request)

        except PkiError as e:
            return self._failure(config.name, "end-entity certificate", e)

    async def _load_issuer(self, issuer_name: str) -> Tuple[CertificateRecord, object]:
        """Fetch the issuing CA's certificate and private key from the store"""
        try:
            issuer_der = await self.store.get_certificate(issuer_name)
        except CertificateNotFoundError:
            raise IssuerNotFoundError(f"Issuer CA {issuer_name} not found in store")
        issuer_record = CertificateRecord.from_der(issuer_der)

        try:
            bundle = await self.store.get_secret(issuer_name)
        except CertificateNotFoundError:
            bundle = None
        key_pem = pem_codec.extract_private_key_from_bundle(bundle) if bundle else None
        if key_pem is None:
            raise PrivateKeyUnavailableError(f"Private key for issuer CA {issuer_name} is not available")

        return issuer_record, pem_codec.load_private_key_pem(key_pem)

    async def _persist(
        self,
        name: str,
        record: CertificateRecord,
        key_pair: KeyPair,
        issuers: List[CertificateRecord],
        issuer_name: str,
        request: CertificateRequest
    ) -> CertificateCreationResult:
        bundle = pem_codec.build_pkcs12_bundle(
            name,
            record.certificate,
            key_pair.private_key,
            [issuer.certificate for issuer in issuers]
        )
        policy = CertificatePolicy(
            issuer_name=issuer_name,
            subject=str(record.subject),
            key_size=request.key_size,
            key_usage=list(_key_usage_names(record)),
            validity_in_months=max(1, request.validity_days // 30),
        )
        confirmed_name = await self.store.import_certificate(name, bundle, policy)
        logger.info(f"Stored {request.role.value} certificate {confirmed_name} (thumbprint {record.thumbprint})")

        return CertificateCreationResult(
            success=True,
            message=f"Certificate {confirmed_name} created successfully",
            certificate_name=confirmed_name,
            certificate_data=CertificateData(
                certificate=record.pem,
                private_key=key_pair.private_key_pem(),
                chain=[record.pem] + [issuer.pem for issuer in issuers],
            ),
            thumbprint=record.thumbprint,
            record=record,
        )

    def _failure(self, name: str, kind: str, error: PkiError) -> CertificateCreationResult:
        logger.error(f"Failed to create {kind} {name}: {str(error)}")
        return CertificateCreationResult(
            success=False,
            message=f"Failed to create {kind} {name}: {str(error)}",
            certificate_name=name,
            error=error,
        )


def _key_usage_names(record: CertificateRecord):
    usage = record.get_extension(KeyUsage)
    return usage.names() if usage else ()
