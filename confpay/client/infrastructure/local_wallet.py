"""Infrastructure layer: Local development wallet.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from confpay.common.crypto import CryptoUtils

logger = logging.getLogger(__name__)


class LocalWallet:
    """Wallet backed by a secp256k1 key file, for development and scripting.

    Account and network can be switched at runtime; subscribers are notified
    on every change, the same way a browser wallet reports account switches.
    """

    def __init__(self, private_key: ec.EllipticCurvePrivateKey, chain_id: int | None):
        self._private_key = private_key
        self._chain_id = chain_id
        self._connected = True
        self._subscribers: list[Callable[[], None]] = []
        public_bytes = private_key.public_key().public_bytes(
            serialization.Encoding.X962,
            serialization.PublicFormat.UncompressedPoint,
        )
        self._address = CryptoUtils.address_from_public_bytes(public_bytes)

    @classmethod
    def from_file(cls, key_path: Path, chain_id: int | None = None) -> LocalWallet:
        """Load the wallet private key from a PEM file."""
        if not key_path.exists():
            msg = f"Wallet key file not found: {key_path}"
            raise FileNotFoundError(msg)
        with key_path.open("rb") as f:
            key = serialization.load_pem_private_key(f.read(), None)
        if not isinstance(key, ec.EllipticCurvePrivateKey) or not isinstance(
            key.curve, ec.SECP256K1
        ):
            msg = f"Wallet key in {key_path} is not a secp256k1 key"
            raise ValueError(msg)
        return cls(key, chain_id)

    @property
    def account(self) -> str | None:
        return self._address if self._connected else None

    @property
    def chain_id(self) -> int | None:
        return self._chain_id if self._connected else None

    async def sign(self, message: bytes) -> str:
        if not self._connected:
            msg = "Wallet is disconnected"
            raise ConnectionError(msg)
        signature = self._private_key.sign(message, ec.ECDSA(hashes.SHA256()))
        return "0x" + signature.hex()

    def verify(self, message: bytes, signature: str) -> bool:
        try:
            self._private_key.public_key().verify(
                bytes.fromhex(signature.removeprefix("0x")),
                message,
                ec.ECDSA(hashes.SHA256()),
            )
        except (InvalidSignature, ValueError):
            return False
        return True

    def subscribe(self, callback: Callable[[], None]) -> None:
        self._subscribers.append(callback)

    def switch_chain(self, chain_id: int) -> None:
        logger.info("Switching wallet to chain %s", chain_id)
        self._chain_id = chain_id
        self._notify()

    def disconnect(self) -> None:
        self._connected = False
        self._notify()

    def connect(self) -> None:
        self._connected = True
        self._notify()

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            callback()
