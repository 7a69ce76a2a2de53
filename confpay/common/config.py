"""
Configuration settings for the payroll session client.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

ZERO_ADDRESS = "0x" + "0" * 40
ZERO_HANDLE = "0x" + "0" * 64


class Config:
    """Central configuration class for all client settings."""

    def __init__(self) -> None:
        # Authorization grants
        self.GRANT_DURATION_DAYS: int = 365  # Validity window of a decryption grant

        # Session behaviour
        self.REFRESH_INTERVAL: int = 10  # Seconds between background refreshes
        self.MAX_SUBMIT_VALUE: int = 2**32 - 1  # Values are encrypted as euint32

        # Ledger gateway
        self.GATEWAY_URL: str = os.getenv("CONFPAY_GATEWAY_URL", "http://127.0.0.1:8545")
        self.HTTP_TIMEOUT: int = 10

        # File paths
        self.BASE_DIR: Path = Path(__file__).parent.parent
        self.DATA_DIR: Path = Path(
            os.getenv("CONFPAY_DATA_DIR", str(Path.home() / ".confpay"))
        )
        self.GRANT_STORE_PATH: Path = self.DATA_DIR / "grants.json"
        self.DEPLOYMENTS_PATH: Path = self.DATA_DIR / "deployments.json"
        self.WALLET_KEY_PATH: Path = Path(
            os.getenv("CONFPAY_WALLET_KEY", str(self.DATA_DIR / "wallet.key"))
        )

        # Logging
        self.LOG_LEVEL: int = logging.getLevelName(
            os.getenv("CONFPAY_LOG_LEVEL", "INFO").upper()
        )
        log_file = os.getenv("CONFPAY_LOG_FILE")
        self.LOG_FILE: Path | None = Path(log_file) if log_file else None
