"""
Immutable value types for key pairs, unsigned field sets and signed certificates
"""
import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple, Type, TypeVar
from cryptography import x509
from cryptography.hazmat.primitives import serialization

from .distinguished_name import DistinguishedName
from .extensions import Extension, BasicConstraints, from_x509_extension
from . import pem_codec

E = TypeVar("E")


@dataclass(frozen=True)
class KeyPair:
    """Freshly generated key material, handed to the caller and never cached"""
    private_key: object = field(repr=False)

    @property
    def public_key(self):
        return self.private_key.public_key()

    def private_key_pem(self) -> str:
        return pem_codec.private_key_to_pem(self.private_key)


@dataclass(frozen=True)
class CertificateFields:
    """Complete set of to-be-signed fields, assembled before signing"""
    subject: DistinguishedName
    issuer: DistinguishedName
    public_key: object = field(repr=False)
    serial_number: int
    not_before: datetime
    not_after: datetime
    extensions: Tuple[Extension, ...] = ()
    # exact issuer encoding to sign with; issuer is re-encoded when unset
    issuer_name: Optional[x509.Name] = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        if self.serial_number <= 0:
            raise ValueError("serial number must be positive")
        if self.not_after <= self.not_before:
            raise ValueError("not_after must be later than not_before")


@dataclass(frozen=True)
class CertificateRecord:
    """A signed X.509 certificate and its decoded fields"""
    certificate: x509.Certificate = field(repr=False)
    serial_number: int
    subject: DistinguishedName
    issuer: DistinguishedName
    not_before: datetime
    not_after: datetime
    extensions: Tuple[Extension, ...]

    @classmethod
    def from_certificate(cls, certificate: x509.Certificate) -> "CertificateRecord":
        extensions = []
        for extension in certificate.extensions:
            variant = from_x509_extension(extension)
            if variant is not None:
                extensions.append(variant)
        return cls(
            certificate=certificate,
            serial_number=certificate.serial_number,
            subject=DistinguishedName.from_x509_name(certificate.subject),
            issuer=DistinguishedName.from_x509_name(certificate.issuer),
            not_before=certificate.not_valid_before_utc,
            not_after=certificate.not_valid_after_utc,
            extensions=tuple(extensions),
        )

    @classmethod
    def from_pem(cls, pem: str) -> "CertificateRecord":
        return cls.from_certificate(pem_codec.parse_certificate_pem(pem))

    @classmethod
    def from_der(cls, data: bytes) -> "CertificateRecord":
        return cls.from_certificate(pem_codec.parse_certificate_der(data))

    @property
    def public_key(self):
        return self.certificate.public_key()

    @property
    def subject_name(self) -> x509.Name:
        """Subject exactly as encoded in the certificate"""
        return self.certificate.subject

    @property
    def issuer_name(self) -> x509.Name:
        return self.certificate.issuer

    @property
    def signature(self) -> bytes:
        return self.certificate.signature

    @property
    def der(self) -> bytes:
        return self.certificate.public_bytes(serialization.Encoding.DER)

    @property
    def pem(self) -> str:
        return pem_codec.der_to_pem(self.der, "CERTIFICATE")

    @property
    def thumbprint(self) -> str:
        """SHA-1 over the DER encoding; an identifier for display, not a security property"""
        return hashlib.sha1(self.der).hexdigest().upper()

    @property
    def fingerprint_sha256(self) -> str:
        return hashlib.sha256(self.der).hexdigest().upper()

    def get_extension(self, kind: Type[E]) -> Optional[E]:
        for extension in self.extensions:
            if isinstance(extension, kind):
                return extension
        return None

    @property
    def is_ca(self) -> bool:
        constraints = self.get_extension(BasicConstraints)
        return bool(constraints and constraints.ca)

    @property
    def is_self_issued(self) -> bool:
        return self.subject == self.issuer

    def is_valid_at(self, moment: datetime) -> bool:
        return self.not_before <= moment <= self.not_after
