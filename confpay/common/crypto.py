"""Common cryptographic utilities.
"""

import re

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_HEX_RE = re.compile(r"^0x(?:[0-9a-fA-F]{2})+$")


class CryptoUtils:
    """Utility class for cryptographic operations."""

    @staticmethod
    def generate_session_keypair() -> tuple[str, str]:
        """Generate an X25519 session keypair as (public hex, private hex)."""
        private_key = X25519PrivateKey.generate()
        private_hex = private_key.private_bytes(
            serialization.Encoding.Raw,
            serialization.PrivateFormat.Raw,
            serialization.NoEncryption(),
        ).hex()
        public_hex = (
            private_key.public_key()
            .public_bytes(serialization.Encoding.Raw, serialization.PublicFormat.Raw)
            .hex()
        )
        return public_hex, private_hex

    @staticmethod
    def is_address(value: object) -> bool:
        return isinstance(value, str) and bool(_ADDRESS_RE.match(value))

    @staticmethod
    def is_hex_signature(value: object) -> bool:
        return isinstance(value, str) and bool(_HEX_RE.match(value))

    @staticmethod
    def address_from_public_bytes(public_bytes: bytes) -> str:
        """Derive a 20-byte account identifier from an uncompressed public key."""
        digest = hashes.Hash(hashes.SHA3_256())
        digest.update(public_bytes[1:])
        return "0x" + digest.finalize()[-20:].hex()
