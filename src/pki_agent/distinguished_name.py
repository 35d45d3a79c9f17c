"""
Distinguished name parsing, formatting and conversion to x509 names

External form is a comma-joined ``TYPE=value`` list, for example
``CN=Root,O=Org,C=US``. Attribute order is significant and preserved in both
directions, including in the encoded certificate.
"""
from dataclasses import dataclass
from typing import Tuple, List
from cryptography import x509
from cryptography.x509.oid import NameOID

from ..shared.exceptions import InvalidSubjectError


ATTRIBUTE_OIDS = {
    "CN": NameOID.COMMON_NAME,
    "O": NameOID.ORGANIZATION_NAME,
    "OU": NameOID.ORGANIZATIONAL_UNIT_NAME,
    "C": NameOID.COUNTRY_NAME,
    "ST": NameOID.STATE_OR_PROVINCE_NAME,
    "L": NameOID.LOCALITY_NAME,
    "E": NameOID.EMAIL_ADDRESS,
}

OID_ATTRIBUTES = {oid: name for name, oid in ATTRIBUTE_OIDS.items()}


def _split_unescaped(text: str, separator: str) -> List[str]:
    """Split on separator, honouring backslash escapes"""
    parts = []
    current = []
    escaped = False
    for char in text:
        if escaped:
            current.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == separator:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    if escaped:
        raise InvalidSubjectError(f"Dangling escape in distinguished name: {text!r}")
    parts.append("".join(current))
    return parts


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace(",", "\\,")


@dataclass(frozen=True)
class DistinguishedName:
    """Ordered sequence of (attribute type, value) pairs"""

    attributes: Tuple[Tuple[str, str], ...]

    @classmethod
    def parse(cls, text: str, require_common_name: bool = True) -> "DistinguishedName":
        """
        Parse a ``TYPE=value,TYPE=value`` string

        Raises:
            InvalidSubjectError: empty input, malformed pair, unknown type,
                empty value, bad country code or (by default) no CN
        """
        if not text or not text.strip():
            raise InvalidSubjectError("Distinguished name is empty")

        attributes = []
        for pair in _split_unescaped(text, ","):
            pair = pair.strip()
            if "=" not in pair:
                raise InvalidSubjectError(f"Malformed attribute {pair!r} in {text!r}")
            attr_type, value = pair.split("=", 1)
            attr_type = attr_type.strip().upper()
            value = value.strip()
            if attr_type not in ATTRIBUTE_OIDS:
                raise InvalidSubjectError(f"Unsupported attribute type {attr_type!r} in {text!r}")
            if not value:
                raise InvalidSubjectError(f"Empty value for {attr_type} in {text!r}")
            if attr_type == "C" and len(value) != 2:
                raise InvalidSubjectError(f"Country must be a two-letter code, got {value!r}")
            attributes.append((attr_type, value))

        name = cls(tuple(attributes))
        if require_common_name and name.common_name is None:
            raise InvalidSubjectError(f"Distinguished name {text!r} has no common name")
        return name

    @classmethod
    def from_x509_name(cls, name: x509.Name) -> "DistinguishedName":
        """Read a certificate name, keeping unknown attributes under their dotted OID"""
        attributes = []
        for attribute in name:
            attr_type = OID_ATTRIBUTES.get(attribute.oid, attribute.oid.dotted_string)
            value = attribute.value
            if isinstance(value, bytes):
                value = value.hex()
            attributes.append((attr_type, value))
        return cls(tuple(attributes))

    def to_x509_name(self) -> x509.Name:
        """Build an x509 name from recognized types or dotted OIDs"""
        name_attributes = []
        for attr_type, value in self.attributes:
            try:
                oid = ATTRIBUTE_OIDS.get(attr_type) or x509.ObjectIdentifier(attr_type)
            except ValueError:
                raise InvalidSubjectError(f"Cannot encode attribute type {attr_type!r}")
            try:
                name_attributes.append(x509.NameAttribute(oid, value))
            except ValueError as e:
                raise InvalidSubjectError(f"Invalid value for {attr_type}: {str(e)}")
        return x509.Name(name_attributes)

    @property
    def common_name(self):
        for attr_type, value in self.attributes:
            if attr_type == "CN":
                return value
        return None

    def __str__(self) -> str:
        return ",".join(f"{attr_type}={_escape(value)}" for attr_type, value in self.attributes)
