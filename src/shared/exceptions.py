"""
Error taxonomy for certificate issuance, chain assembly and store access
"""


class PkiError(Exception):
    """Base class for all PKI agent errors"""


class InvalidSubjectError(PkiError):
    """Subject name or subject alternative name is malformed or lacks a common name"""


class KeySizeError(PkiError):
    """Requested key size is below the configured minimum"""


class IssuerNotFoundError(PkiError):
    """Issuing CA certificate is not present in the store"""


class IssuerKeyUnavailableError(PkiError):
    """No private key was supplied for the issuing CA"""


class PrivateKeyUnavailableError(IssuerKeyUnavailableError):
    """Issuing CA exists in the store but its private key could not be retrieved"""


class IssuerNotCAError(PkiError):
    """Named issuer certificate is not a CA (basicConstraints cA is false or absent)"""


class ParseError(PkiError):
    """PEM, DER or key bundle data could not be decoded"""


class CertificateNotFoundError(PkiError):
    """Store has no certificate (or secret) under the requested name"""


class StoreOperationError(PkiError):
    """Store transport or authentication failure"""
