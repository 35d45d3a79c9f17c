"""
X.509 certificate construction per role (root, intermediate, end-entity)
"""
import logging
from datetime import datetime, timezone, timedelta
from typing import Optional, Tuple
from cryptography import x509

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
from .records import CertificateFields, CertificateRecord, KeyPair
from ..shared.exceptions import IssuerKeyUnavailableError, IssuerNotCAError
from ..shared.models import CertificateRequest, CertificateRole

logger = logging.getLogger(__name__)


def sign_certificate(fields: CertificateFields, signing_key, hash_name: str = "SHA256") -> CertificateRecord:
    """Turn a complete field set into a signed, immutable record"""
    builder = x509.CertificateBuilder().subject_name(
        fields.subject.to_x509_name()
    ).issuer_name(
        fields.issuer.to_x509_name() if fields.issuer_name is None else fields.issuer_name
    ).public_key(
        fields.public_key
    ).serial_number(
        fields.serial_number
    ).not_valid_before(
        fields.not_before
    ).not_valid_after(
        fields.not_after
    )

    for extension in fields.extensions:
        value, critical = extension.to_x509()
        builder = builder.add_extension(value, critical=critical)

    certificate = builder.sign(signing_key, CryptoAlgorithm.get_hash_algorithm(hash_name))
    return CertificateRecord.from_certificate(certificate)


def authority_key_id_for(issuer_record: CertificateRecord) -> AuthorityKeyId:
    """Reference the issuer by its key identifier plus its own issuer name and serial"""
    issuer_ski = issuer_record.get_extension(SubjectKeyId)
    if issuer_ski is None:
        issuer_ski = SubjectKeyId.from_public_key(issuer_record.public_key)
    return AuthorityKeyId(
        key_identifier=issuer_ski.key_identifier,
        authority_cert_issuer=issuer_record.issuer,
        authority_cert_serial_number=issuer_record.serial_number,
        authority_cert_issuer_name=issuer_record.issuer_name
    )


class CertificateBuilder:
    """Builds and signs certificates for each role in the hierarchy"""

    def __init__(
        self,
        hash_algorithm: str = "SHA256",
        min_key_size: int = CryptoAlgorithm.DEFAULT_MIN_KEY_SIZE,
        clock_skew: timedelta = timedelta(minutes=5)
    ):
        CryptoAlgorithm.get_hash_algorithm(hash_algorithm)
        self.hash_algorithm = hash_algorithm
        self.min_key_size = min_key_size
        self.clock_skew = clock_skew

    def validity_window(self, validity_days: int, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
        """notBefore is backdated by the clock skew; notAfter counts from notBefore"""
        now = now or datetime.now(timezone.utc)
        not_before = now - self.clock_skew
        return not_before, not_before + timedelta(days=validity_days)

    def generate_key_pair(self, key_size: int) -> KeyPair:
        return KeyPair(CryptoAlgorithm.generate_private_key(key_size, self.min_key_size))

    def build_self_signed(self, request: CertificateRequest) -> Tuple[CertificateRecord, KeyPair]:
        """Issue a self-signed root CA certificate"""
        if request.role != CertificateRole.ROOT:
            raise ValueError(f"Self-signed certificates must use the root role, got {request.role.value}")

        subject = DistinguishedName.parse(request.subject)
        key_pair = self.generate_key_pair(request.key_size)
        not_before, not_after = self.validity_window(request.validity_days)
        subject_key_id = SubjectKeyId.from_public_key(key_pair.public_key)

        fields = CertificateFields(
            subject=subject,
            issuer=subject,
            public_key=key_pair.public_key,
            serial_number=CryptoAlgorithm.generate_serial_number(),
            not_before=not_before,
            not_after=not_after,
            extensions=(
                BasicConstraints(ca=True, path_length=request.path_length),
                KeyUsage(key_cert_sign=True, crl_sign=True),
                subject_key_id,
                AuthorityKeyId(key_identifier=subject_key_id.key_identifier),
            ),
        )

        record = sign_certificate(fields, key_pair.private_key, self.hash_algorithm)
        logger.info(f"Built self-signed root certificate {record.subject} (serial {record.serial_number:x})")
        return record, key_pair

    def build_signed(
        self,
        request: CertificateRequest,
        issuer_record: CertificateRecord,
        issuer_private_key
    ) -> Tuple[CertificateRecord, KeyPair]:
        """Issue an intermediate CA or end-entity certificate signed by issuer_private_key"""
        if issuer_private_key is None:
            raise IssuerKeyUnavailableError(
                f"No private key supplied for issuer {issuer_record.subject}"
            )
        if request.role == CertificateRole.ROOT:
            raise ValueError("Root certificates are self-signed; use build_self_signed")
        if not issuer_record.is_ca:
            raise IssuerNotCAError(f"Issuer {issuer_record.subject} is not a CA certificate")

        subject = DistinguishedName.parse(request.subject)
        key_pair = self.generate_key_pair(request.key_size)
        not_before, not_after = self.validity_window(request.validity_days)

        if request.role == CertificateRole.INTERMEDIATE:
            extensions = (
                BasicConstraints(ca=True, path_length=request.path_length),
                KeyUsage(key_cert_sign=True, crl_sign=True),
            )
        else:
            extensions = (
                BasicConstraints(ca=False),
                KeyUsage(digital_signature=True, key_encipherment=True),
            )
            if request.extended_key_usage:
                extensions += (ExtendedKeyUsage.from_names(request.extended_key_usage),)
            if request.san:
                extensions += (SubjectAltName.from_names(request.san),)

        extensions += (
            SubjectKeyId.from_public_key(key_pair.public_key),
            authority_key_id_for(issuer_record),
        )

        fields = CertificateFields(
            subject=subject,
            issuer=issuer_record.subject,
            issuer_name=issuer_record.subject_name,
            public_key=key_pair.public_key,
            serial_number=CryptoAlgorithm.generate_serial_number(),
            not_before=not_before,
            not_after=not_after,
            extensions=extensions,
        )

        record = sign_certificate(fields, issuer_private_key, self.hash_algorithm)
        logger.info(
            f"Built {request.role.value} certificate {record.subject} "
            f"issued by {record.issuer} (serial {record.serial_number:x})"
        )
        return record, key_pair
