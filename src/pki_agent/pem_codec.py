"""
PEM/DER conversion and PKCS#12 key bundle handling
"""
import re
import base64
import binascii
import logging
from typing import Optional, List, Iterable
from asn1crypto import pkcs12 as asn1_pkcs12
from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from ..shared.exceptions import ParseError

logger = logging.getLogger(__name__)

PEM_LINE_LENGTH = 64

_PEM_BLOCK = re.compile(
    r"-----BEGIN ([A-Z0-9 ]+)-----(.*?)-----END \1-----",
    re.DOTALL
)


def der_to_pem(data: bytes, label: str = "CERTIFICATE") -> str:
    """Base64-encode binary data, wrap at 64 columns and add BEGIN/END framing"""
    encoded = base64.b64encode(data).decode("ascii")
    lines = [encoded[i:i + PEM_LINE_LENGTH] for i in range(0, len(encoded), PEM_LINE_LENGTH)]
    body = "".join(line + "\n" for line in lines)
    return f"-----BEGIN {label}-----\n{body}-----END {label}-----\n"


def pem_to_der(pem: str) -> bytes:
    """
    Strip PEM framing and whitespace, then base64-decode

    Only the first framed block is decoded. Text without framing is treated
    as a bare base64 body.
    """
    match = _PEM_BLOCK.search(pem)
    body = match.group(2) if match else pem
    body = re.sub(r"\s", "", body)
    try:
        return base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ParseError(f"Invalid base64 in PEM data: {str(e)}")


def split_pem_chain(pem_blob: str) -> List[str]:
    """Split a concatenated PEM blob into its individual blocks"""
    return [match.group(0) + "\n" for match in _PEM_BLOCK.finditer(pem_blob)]


def parse_certificate_der(data: bytes) -> x509.Certificate:
    try:
        return x509.load_der_x509_certificate(data)
    except ValueError as e:
        raise ParseError(f"Failed to parse DER certificate: {str(e)}")


def parse_certificate_pem(pem: str) -> x509.Certificate:
    """Parse a PEM certificate string"""
    if not pem or "-----BEGIN CERTIFICATE-----" not in pem:
        raise ParseError("Data is not a PEM certificate")
    return parse_certificate_der(pem_to_der(pem))


def certificate_to_pem(certificate: x509.Certificate) -> str:
    return der_to_pem(certificate.public_bytes(serialization.Encoding.DER), "CERTIFICATE")


def private_key_to_pem(private_key) -> str:
    """Serialize a private key as unencrypted PKCS#8 PEM"""
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    ).decode()


def load_private_key_pem(pem: str, password: Optional[bytes] = None):
    try:
        return serialization.load_pem_private_key(pem.encode(), password=password)
    except (ValueError, TypeError) as e:
        raise ParseError(f"Failed to load private key: {str(e)}")


def build_pkcs12_bundle(
    name: str,
    certificate: x509.Certificate,
    private_key=None,
    additional_certificates: Optional[Iterable[x509.Certificate]] = None
) -> bytes:
    """Package a certificate, its key and any chain certificates as an unencrypted PKCS#12 blob"""
    return pkcs12.serialize_key_and_certificates(
        name=name.encode(),
        key=private_key,
        cert=certificate,
        cas=list(additional_certificates) if additional_certificates else None,
        encryption_algorithm=serialization.NoEncryption()
    )


def load_certificate_from_bundle(bundle: bytes, password: Optional[bytes] = None) -> x509.Certificate:
    """Return the main certificate of a PKCS#12 blob"""
    try:
        _, certificate, _ = pkcs12.load_key_and_certificates(bundle, password)
    except ValueError as e:
        raise ParseError(f"Failed to parse PKCS#12 bundle: {str(e)}")
    if certificate is None:
        raise ParseError("PKCS#12 bundle contains no certificate")
    return certificate


def _collect_key_bags(pfx: asn1_pkcs12.Pfx):
    """Walk the unencrypted safe contents, grouping key bags by type"""
    bags = {"pkcs8_shrouded_key_bag": [], "key_bag": []}
    for content_info in pfx.authenticated_safe:
        content_type = content_info["content_type"].native
        if content_type != "data":
            logger.debug(f"Skipping {content_type} safe contents while scanning for key bags")
            continue
        safe_contents = asn1_pkcs12.SafeContents.load(content_info["content"].native)
        for safe_bag in safe_contents:
            bag_id = safe_bag["bag_id"].native
            if bag_id in bags:
                bags[bag_id].append(safe_bag["bag_value"])
    return bags


def _load_bag_key(bag_id: str, bag_value, password: Optional[bytes]):
    der = bag_value.untag().dump()
    if bag_id == "key_bag":
        return serialization.load_der_private_key(der, password=None)
    # shrouded bags exported without a password are encrypted under the empty one
    return serialization.load_der_private_key(der, password=password or b"")


def extract_private_key_from_bundle(base64_bundle: str, password: Optional[bytes] = None) -> Optional[str]:
    """
    Extract the private key of a PKCS#12 bundle as PEM

    An encrypted (shrouded) key bag is preferred over a plain key bag when
    both are present. Bundles whose keys sit in encrypted safe contents are
    handed to the generic PKCS#12 loader. A missing key is an expected
    outcome, so every failure is logged and reported as None.
    """
    try:
        data = base64.b64decode(base64_bundle, validate=True)
        pfx = asn1_pkcs12.Pfx.load(data)
        bags = _collect_key_bags(pfx)

        private_key = None
        for bag_id in ("pkcs8_shrouded_key_bag", "key_bag"):
            if not bags[bag_id]:
                continue
            try:
                private_key = _load_bag_key(bag_id, bags[bag_id][0], password)
                break
            except (ValueError, TypeError) as e:
                logger.debug(f"Could not decode {bag_id}: {str(e)}")

        if private_key is None:
            private_key, _, _ = pkcs12.load_key_and_certificates(data, password)

        if private_key is None:
            logger.warning("No private key found in the certificate bundle")
            return None

        logger.info("Successfully extracted private key in PEM format")
        return private_key_to_pem(private_key)

    except Exception as e:
        logger.error(f"Error extracting private key from bundle: {str(e)}")
        return None
