"""
Cryptographic utilities for key generation and signature hash selection
"""
import os
from typing import Literal
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives import hashes

from ..shared.exceptions import KeySizeError


class CryptoAlgorithm:
    """Manage key generation and hash algorithm selection"""

    DEFAULT_MIN_KEY_SIZE = 2048
    PUBLIC_EXPONENT = 65537

    HASH_ALGORITHMS = {
        "SHA256": hashes.SHA256,
        "SHA384": hashes.SHA384,
        "SHA512": hashes.SHA512,
    }

    @staticmethod
    def generate_private_key(key_size: int, min_key_size: int = DEFAULT_MIN_KEY_SIZE) -> rsa.RSAPrivateKey:
        """
        Generate an RSA private key

        Args:
            key_size: Modulus size in bits
            min_key_size: Smallest size accepted

        Returns:
            Private key object

        Raises:
            KeySizeError: key_size is below min_key_size
        """
        if key_size < min_key_size:
            raise KeySizeError(
                f"Key size must be at least {min_key_size} bits, got {key_size}"
            )
        return rsa.generate_private_key(
            public_exponent=CryptoAlgorithm.PUBLIC_EXPONENT,
            key_size=key_size
        )

    @staticmethod
    def get_hash_algorithm(hash_name: Literal["SHA256", "SHA384", "SHA512"] = "SHA256") -> hashes.HashAlgorithm:
        """Get hash algorithm instance by name"""
        if hash_name not in CryptoAlgorithm.HASH_ALGORITHMS:
            raise ValueError(f"Unsupported hash algorithm: {hash_name}")
        return CryptoAlgorithm.HASH_ALGORITHMS[hash_name]()

    @staticmethod
    def generate_serial_number() -> int:
        """Random, non-zero 128-bit certificate serial number"""
        return int.from_bytes(os.urandom(16), "big") | 1
