"""
Certificate tool: download, inspect, chain and upload certificates in a store
"""
import logging
from typing import Optional, List

from . import pem_codec
from .chain_assembler import ChainAssembler
from .extensions import ExtendedKeyUsage, KeyUsage, SubjectAltName
from .records import CertificateRecord
from ..shared.exceptions import PkiError, ParseError, PrivateKeyUnavailableError
from ..shared.interfaces import ICertificateStore
from ..shared.models import (
    CertificateData,
    CertificateInfo,
    CertificatePolicy,
    ChainConfig,
    OperationResult,
)

logger = logging.getLogger(__name__)


class CertificateTool:
    """
    Store-facing certificate operations

    process_certificate_chain is the main workflow: download the source
    certificate with its private key, re-issue it under the target name with
    the supplied CA certificates appended, validate the result and upload it.
    """

    def __init__(
        self,
        store: ICertificateStore,
        assembler: Optional[ChainAssembler] = None,
        default_validity_days: int = 365
    ):
        self.store = store
        self.assembler = assembler or ChainAssembler()
        self.default_validity_days = default_validity_days

    async def download_certificate(
        self,
        name: str,
        version: Optional[str] = None,
        include_private_key: bool = False
    ) -> CertificateData:
        """Download a certificate as PEM, optionally with its private key"""
        logger.info(f"Downloading certificate: {name}")
        certificate_der = await self.store.get_certificate(name, version)
        certificate_pem = pem_codec.der_to_pem(certificate_der, "CERTIFICATE")

        private_key_pem = None
        if include_private_key:
            bundle = await self.store.get_secret(name, version)
            private_key_pem = pem_codec.extract_private_key_from_bundle(bundle)
            if private_key_pem is None:
                logger.warning(f"Certificate {name} was downloaded without a private key")

        logger.info(f"Successfully downloaded certificate: {name}")
        return CertificateData(certificate=certificate_pem, private_key=private_key_pem)

    async def get_certificate_info(self, name: str, version: Optional[str] = None) -> CertificateInfo:
        """Describe a stored certificate from its parsed contents"""
        record = CertificateRecord.from_der(await self.store.get_certificate(name, version))
        key_usage = record.get_extension(KeyUsage)
        extended_key_usage = record.get_extension(ExtendedKeyUsage)
        san = record.get_extension(SubjectAltName)

        return CertificateInfo(
            name=name,
            version=version or "latest",
            thumbprint=record.thumbprint,
            fingerprint_sha256=record.fingerprint_sha256,
            serial_number=format(record.serial_number, "x"),
            not_before=record.not_before,
            not_after=record.not_after,
            subject=str(record.subject),
            issuer=str(record.issuer),
            key_usage=list(key_usage.names()) if key_usage else [],
            extended_key_usage=list(extended_key_usage.names()) if extended_key_usage else [],
            san_list=list(san.names()) if san else [],
            is_ca=record.is_ca,
        )

    async def list_certificates(self) -> List[str]:
        return await self.store.list_certificates()

    async def delete_certificate(self, name: str) -> OperationResult:
        try:
            await self.store.delete_certificate(name)
        except PkiError as e:
            logger.error(f"Failed to delete certificate {name}: {str(e)}")
            return OperationResult(
                success=False,
                message=f"Failed to delete certificate {name}: {str(e)}",
                certificate_name=name,
                error=e,
            )
        return OperationResult(
            success=True,
            message=f"Certificate {name} deleted",
            certificate_name=name,
        )

    async def upload_certificate(
        self,
        name: str,
        certificate_data: CertificateData,
        policy: Optional[CertificatePolicy] = None
    ) -> OperationResult:
        """
        Package certificate data as PKCS#12 and import it under name

        The first PEM is the main certificate; the rest of the chain (or of
        the joined PEM blob when no chain list is given) travels along as CA
        certificates.
        """
        try:
            pems = certificate_data.chain or pem_codec.split_pem_chain(certificate_data.certificate)
            if not pems:
                raise ParseError("No certificate found in upload data")

            certificate = pem_codec.parse_certificate_pem(pems[0])
            additional = [pem_codec.parse_certificate_pem(pem) for pem in pems[1:]]
            private_key = None
            if certificate_data.private_key:
                private_key = pem_codec.load_private_key_pem(certificate_data.private_key)

            bundle = pem_codec.build_pkcs12_bundle(name, certificate, private_key, additional)
            confirmed_name = await self.store.import_certificate(name, bundle, policy)

        except PkiError as e:
            logger.error(f"Failed to upload certificate {name}: {str(e)}")
            return OperationResult(
                success=False,
                message=f"Failed to upload certificate {name}: {str(e)}",
                certificate_name=name,
                error=e,
            )

        logger.info(f"Successfully uploaded certificate: {confirmed_name}")
        return OperationResult(
            success=True,
            message=f"Certificate {confirmed_name} uploaded",
            certificate_name=confirmed_name,
        )

    async def _load_issuer_key(self, issuer_ca_name: Optional[str]) -> Optional[str]:
        if not issuer_ca_name:
            return None
        bundle = await self.store.get_secret(issuer_ca_name)
        key_pem = pem_codec.extract_private_key_from_bundle(bundle)
        if key_pem is None:
            raise PrivateKeyUnavailableError(f"Private key for issuer CA {issuer_ca_name} is not available")
        return key_pem

    async def process_certificate_chain(self, chain_config: ChainConfig) -> OperationResult:
        """Re-issue the source certificate as a chained certificate under the target name"""
        if "validity_period_days" not in chain_config.model_fields_set:
            chain_config = chain_config.model_copy(update={"validity_period_days": self.default_validity_days})
        source = chain_config.source_certificate_name
        target = chain_config.target_certificate_name
        try:
            logger.info(f"Processing certificate chain: {source} -> {target}")

            base_certificate = await self.download_certificate(source, include_private_key=True)
            info = await self.get_certificate_info(source)
            logger.info(f"Source certificate {info.subject} expires {info.not_after.isoformat()}")

            issuer_key_pem = await self._load_issuer_key(chain_config.issuer_ca_name)
            chained = self.assembler.create_certificate_chain(base_certificate, chain_config, issuer_key_pem)

            if not self.assembler.validate_pem_chain(chained.chain):
                logger.error(f"Assembled chain for {target} failed validation")
                return OperationResult(
                    success=False,
                    message=f"Certificate chain validation failed for {target}",
                    certificate_name=target,
                )

            policy = CertificatePolicy(
                issuer_name=chain_config.issuer_ca_name or info.issuer,
                subject=f"CN={target}",
                key_usage=["digitalSignature", "keyEncipherment", "dataEncipherment"],
                validity_in_months=max(1, chain_config.validity_period_days // 30),
            )
            result = await self.upload_certificate(target, chained, policy)

        except PkiError as e:
            logger.error(f"Failed to process certificate chain {source} -> {target}: {str(e)}")
            return OperationResult(
                success=False,
                message=f"Failed to process certificate chain: {str(e)}",
                certificate_name=target,
                error=e,
            )

        if result.success:
            logger.info(f"Certificate chain {target} created with {len(chained.chain)} certificates")
        return result

    async def test_connection(self) -> bool:
        """Check the store answers a listing request"""
        try:
            await self.store.list_certificates()
        except PkiError as e:
            logger.error(f"Store connection test failed: {str(e)}")
            return False
        logger.info("Store connection test succeeded")
        return True
