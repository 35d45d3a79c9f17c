"""
Certificate chain assembly and structural chain validation
"""
import logging
from datetime import datetime, timezone, timedelta
from typing import Optional, List, Sequence

from .certificate_builder import sign_certificate
from .crypto_utils import CryptoAlgorithm
from .distinguished_name import DistinguishedName
from .extensions import (
    AuthorityKeyId,
    BasicConstraints,
    ExtendedKeyUsage,
    KeyUsage,
    SubjectAltName,
    SubjectKeyId,
)
from .records import CertificateFields, CertificateRecord
from . import pem_codec
from ..shared.exceptions import IssuerKeyUnavailableError, ParseError
from ..shared.models import CertificateData, ChainConfig, ChainedCertificateData

logger = logging.getLogger(__name__)


class ChainAssembler:
    """Builds leaf-first certificate chains from a base certificate and supplied CA certificates"""

    def __init__(self, hash_algorithm: str = "SHA256", clock_skew: timedelta = timedelta(minutes=5)):
        self.hash_algorithm = hash_algorithm
        self.clock_skew = clock_skew

    def create_certificate_chain(
        self,
        base_certificate: CertificateData,
        chain_config: ChainConfig,
        issuer_private_key_pem: Optional[str] = None
    ) -> ChainedCertificateData:
        """
        Re-issue the base certificate under the target name and append the supplied CAs

        The new leaf keeps the base certificate's issuer and public key, so the
        private key carried with the base certificate still matches it, and it
        is signed with the issuing CA's private key. Supplied intermediates and
        roots are appended in the order given; malformed ones are skipped.

        Raises:
            ParseError: the base certificate is not a readable PEM certificate
            IssuerKeyUnavailableError: no issuing CA key was supplied
        """
        source = CertificateRecord.from_pem(base_certificate.certificate)

        if not issuer_private_key_pem:
            raise IssuerKeyUnavailableError(
                f"Re-issuing {chain_config.target_certificate_name} requires the private key "
                f"of its issuing CA {source.issuer}"
            )
        issuer_key = pem_codec.load_private_key_pem(issuer_private_key_pem)

        leaf = self._reissue_leaf(source, chain_config, issuer_key)
        chain = [leaf] + self._parse_supplied(chain_config.intermediate_certificates, "intermediate")
        chain += self._parse_supplied(chain_config.root_certificates, "root")

        pems = [record.pem for record in chain]
        return ChainedCertificateData(
            certificate="\n".join(pems),
            private_key=base_certificate.private_key,
            chain=pems,
        )

    def _reissue_leaf(self, source: CertificateRecord, chain_config: ChainConfig, issuer_key) -> CertificateRecord:
        target_name = chain_config.target_certificate_name
        now = datetime.now(timezone.utc)
        not_before = now - self.clock_skew

        issuer_ski = SubjectKeyId.from_public_key(issuer_key.public_key())
        source_aki = source.get_extension(AuthorityKeyId)
        if source_aki is not None and source_aki.key_identifier != issuer_ski.key_identifier:
            logger.warning(
                f"Supplied issuer key does not match the authority key identifier of {source.subject}"
            )

        fields = CertificateFields(
            subject=DistinguishedName((("CN", target_name),)),
            issuer=source.issuer,
            issuer_name=source.issuer_name,
            public_key=source.public_key,
            serial_number=CryptoAlgorithm.generate_serial_number(),
            not_before=not_before,
            not_after=not_before + timedelta(days=chain_config.validity_period_days),
            extensions=(
                BasicConstraints(ca=False),
                KeyUsage(digital_signature=True, key_encipherment=True, data_encipherment=True),
                ExtendedKeyUsage(server_auth=True, client_auth=True),
                SubjectAltName.from_names([target_name]),
                SubjectKeyId.from_public_key(source.public_key),
                AuthorityKeyId(key_identifier=issuer_ski.key_identifier),
            ),
        )
        leaf = sign_certificate(fields, issuer_key, self.hash_algorithm)
        logger.info(f"Re-issued {source.subject} as {leaf.subject} (serial {leaf.serial_number:x})")
        return leaf

    def _parse_supplied(self, pems: Sequence[str], kind: str) -> List[CertificateRecord]:
        records = []
        for index, pem in enumerate(pems):
            try:
                records.append(CertificateRecord.from_pem(pem))
            except ParseError as e:
                logger.warning(f"Failed to parse {kind} certificate #{index}: {str(e)}")
        return records

    def validate_certificate_chain(
        self,
        chain: Sequence[CertificateRecord],
        now: Optional[datetime] = None
    ) -> bool:
        """
        Structurally validate a leaf-first chain

        Every certificate must be inside its validity window and each
        certificate's issuer name must equal the next certificate's subject
        name. Signatures are NOT verified; a chain passing this check is only
        continuous by name, not cryptographically.
        A naive now is taken as UTC.
        """
        if not chain:
            logger.warning("Cannot validate an empty certificate chain")
            return False

        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        for index, record in enumerate(chain):
            if not record.is_valid_at(now):
                logger.warning(f"Certificate at index {index} is not valid at current time")
                return False

            if index < len(chain) - 1 and record.issuer != chain[index + 1].subject:
                logger.warning(f"Certificate chain broken at index {index}")
                return False

        return True

    def validate_pem_chain(self, pems: Sequence[str], now: Optional[datetime] = None) -> bool:
        """Parse then validate; any unreadable certificate fails the chain"""
        try:
            chain = [CertificateRecord.from_pem(pem) for pem in pems]
        except ParseError as e:
            logger.error(f"Certificate chain validation error: {str(e)}")
            return False
        return self.validate_certificate_chain(chain, now)
