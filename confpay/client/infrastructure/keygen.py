"""
Key generator for the local development wallet.
"""

from __future__ import annotations

import logging
from pathlib import Path

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from confpay.common.config import Config

logger = logging.getLogger(__name__)


class KeyGenerator:
    """Key generator for creating secp256k1 wallet keys."""

    def __init__(self, key_path: Path | None = None):
        config = Config()
        self.key_path = key_path or config.WALLET_KEY_PATH

    def generate_key(self) -> Path:
        """Generate and save a wallet private key in PEM format."""
        logger.info("Generating secp256k1 wallet key...")

        private_key = ec.generate_private_key(ec.SECP256K1())
        private_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )

        self.key_path.parent.mkdir(parents=True, exist_ok=True)
        with self.key_path.open("wb") as f:
            f.write(private_pem)

        logger.info("Wallet key saved: %s", self.key_path)
        logger.info("Keep the private key secure!")
        return self.key_path
