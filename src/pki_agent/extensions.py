"""
Tagged extension variants carried by certificate records

Each variant holds only its own fields, validates them on construction and
knows how to render itself as a cryptography extension value.
"""
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union, Iterable
from cryptography import x509
from cryptography.x509.oid import ExtendedKeyUsageOID

from .distinguished_name import DistinguishedName
from ..shared.exceptions import InvalidSubjectError


EKU_OIDS = {
    "serverAuth": ExtendedKeyUsageOID.SERVER_AUTH,
    "clientAuth": ExtendedKeyUsageOID.CLIENT_AUTH,
    "codeSigning": ExtendedKeyUsageOID.CODE_SIGNING,
    "emailProtection": ExtendedKeyUsageOID.EMAIL_PROTECTION,
    "timeStamping": ExtendedKeyUsageOID.TIME_STAMPING,
}


@dataclass(frozen=True)
class BasicConstraints:
    ca: bool
    path_length: Optional[int] = None

    def __post_init__(self):
        if not self.ca and self.path_length is not None:
            raise ValueError("path_length is only allowed on CA certificates")
        if self.path_length is not None and self.path_length < 0:
            raise ValueError("path_length must be non-negative")

    def to_x509(self):
        return x509.BasicConstraints(ca=self.ca, path_length=self.path_length), True


@dataclass(frozen=True)
class KeyUsage:
    digital_signature: bool = False
    key_encipherment: bool = False
    data_encipherment: bool = False
    key_cert_sign: bool = False
    crl_sign: bool = False

    def __post_init__(self):
        if not any((self.digital_signature, self.key_encipherment, self.data_encipherment,
                    self.key_cert_sign, self.crl_sign)):
            raise ValueError("KeyUsage needs at least one usage bit")

    def to_x509(self):
        return x509.KeyUsage(
            digital_signature=self.digital_signature,
            content_commitment=False,
            key_encipherment=self.key_encipherment,
            data_encipherment=self.data_encipherment,
            key_agreement=False,
            key_cert_sign=self.key_cert_sign,
            crl_sign=self.crl_sign,
            encipher_only=False,
            decipher_only=False
        ), True

    def names(self) -> Tuple[str, ...]:
        flags = (
            ("digitalSignature", self.digital_signature),
            ("keyEncipherment", self.key_encipherment),
            ("dataEncipherment", self.data_encipherment),
            ("keyCertSign", self.key_cert_sign),
            ("cRLSign", self.crl_sign),
        )
        return tuple(name for name, enabled in flags if enabled)


@dataclass(frozen=True)
class ExtendedKeyUsage:
    server_auth: bool = False
    client_auth: bool = False
    code_signing: bool = False
    email_protection: bool = False
    time_stamping: bool = False

    def __post_init__(self):
        if not self.names():
            raise ValueError("ExtendedKeyUsage needs at least one purpose")

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "ExtendedKeyUsage":
        names = set(names)
        unknown = names - set(EKU_OIDS)
        if unknown:
            raise ValueError(f"Unsupported extended key usage: {', '.join(sorted(unknown))}")
        return cls(
            server_auth="serverAuth" in names,
            client_auth="clientAuth" in names,
            code_signing="codeSigning" in names,
            email_protection="emailProtection" in names,
            time_stamping="timeStamping" in names,
        )

    def names(self) -> Tuple[str, ...]:
        flags = (
            ("serverAuth", self.server_auth),
            ("clientAuth", self.client_auth),
            ("codeSigning", self.code_signing),
            ("emailProtection", self.email_protection),
            ("timeStamping", self.time_stamping),
        )
        return tuple(name for name, enabled in flags if enabled)

    def to_x509(self):
        return x509.ExtendedKeyUsage([EKU_OIDS[name] for name in self.names()]), False


@dataclass(frozen=True)
class SubjectAltName:
    dns_names: Tuple[str, ...] = ()
    emails: Tuple[str, ...] = ()

    def __post_init__(self):
        if not self.dns_names and not self.emails:
            raise ValueError("SubjectAltName needs at least one name")
        for name in self.dns_names + self.emails:
            # IDNA names must arrive as A-labels
            if not name.isascii():
                raise InvalidSubjectError(f"Subject alternative name {name!r} is not ASCII")

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "SubjectAltName":
        """Classify each name: anything containing '@' is an email, the rest DNS"""
        names = list(names)
        return cls(
            dns_names=tuple(n for n in names if "@" not in n),
            emails=tuple(n for n in names if "@" in n),
        )

    def names(self) -> Tuple[str, ...]:
        return self.dns_names + self.emails

    def to_x509(self):
        general_names = [x509.DNSName(n) for n in self.dns_names]
        general_names += [x509.RFC822Name(n) for n in self.emails]
        return x509.SubjectAlternativeName(general_names), False


@dataclass(frozen=True)
class SubjectKeyId:
    key_identifier: bytes

    @classmethod
    def from_public_key(cls, public_key) -> "SubjectKeyId":
        return cls(x509.SubjectKeyIdentifier.from_public_key(public_key).digest)

    def to_x509(self):
        return x509.SubjectKeyIdentifier(self.key_identifier), False


@dataclass(frozen=True)
class AuthorityKeyId:
    key_identifier: bytes
    authority_cert_issuer: Optional[DistinguishedName] = None
    authority_cert_serial_number: Optional[int] = None
    authority_cert_issuer_name: Optional[x509.Name] = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        if (self.authority_cert_issuer is None) != (self.authority_cert_serial_number is None):
            raise ValueError("authority issuer and serial number must be set together")

    def to_x509(self):
        issuer = None
        if self.authority_cert_issuer is not None:
            name = self.authority_cert_issuer_name
            if name is None:
                name = self.authority_cert_issuer.to_x509_name()
            issuer = [x509.DirectoryName(name)]
        return x509.AuthorityKeyIdentifier(
            key_identifier=self.key_identifier,
            authority_cert_issuer=issuer,
            authority_cert_serial_number=self.authority_cert_serial_number
        ), False


Extension = Union[BasicConstraints, KeyUsage, ExtendedKeyUsage, SubjectAltName, SubjectKeyId, AuthorityKeyId]


def from_x509_extension(extension: x509.Extension) -> Optional[Extension]:
    """Map a parsed certificate extension onto its variant, or None if unhandled"""
    value = extension.value
    if isinstance(value, x509.BasicConstraints):
        # tolerate foreign certificates that set pathLen without cA
        return BasicConstraints(ca=value.ca, path_length=value.path_length if value.ca else None)
    if isinstance(value, x509.KeyUsage):
        flags = dict(
            digital_signature=value.digital_signature,
            key_encipherment=value.key_encipherment,
            data_encipherment=value.data_encipherment,
            key_cert_sign=value.key_cert_sign,
            crl_sign=value.crl_sign,
        )
        return KeyUsage(**flags) if any(flags.values()) else None
    if isinstance(value, x509.ExtendedKeyUsage):
        known = [name for name, oid in EKU_OIDS.items() if oid in list(value)]
        return ExtendedKeyUsage.from_names(known) if known else None
    if isinstance(value, x509.SubjectAlternativeName):
        dns_names = tuple(value.get_values_for_type(x509.DNSName))
        emails = tuple(value.get_values_for_type(x509.RFC822Name))
        if not dns_names and not emails:
            return None
        return SubjectAltName(dns_names=dns_names, emails=emails)
    if isinstance(value, x509.SubjectKeyIdentifier):
        return SubjectKeyId(value.digest)
    if isinstance(value, x509.AuthorityKeyIdentifier):
        if value.key_identifier is None:
            return None
        serial = value.authority_cert_serial_number
        directory_names = [
            n.value for n in (value.authority_cert_issuer or []) if isinstance(n, x509.DirectoryName)
        ]
        if directory_names and serial is not None:
            issuer = DistinguishedName.from_x509_name(directory_names[0])
            return AuthorityKeyId(value.key_identifier, issuer, serial, directory_names[0])
        return AuthorityKeyId(value.key_identifier)
    return None

