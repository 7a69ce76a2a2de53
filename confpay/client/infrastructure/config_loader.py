"""Infrastructure layer: Configuration loading and file operations.
"""

from __future__ import annotations

import logging
from pathlib import Path

from confpay.client.infrastructure.deployments import Deployments
from confpay.client.infrastructure.grant_store import FileGrantStore
from confpay.client.infrastructure.local_wallet import LocalWallet
from confpay.common import Configurable, setup_logger
from confpay.common.config import Config
from confpay.common.models import ClientConfig

SETTINGS = [
    "gateway_url",
    "log_level",
    "refresh_interval",
    "grant_duration_days",
    "max_submit_value",
    "http_timeout",
]


class ConfigLoader(Configurable):
    """Merges client overrides with defaults and loads files they point at."""

    gateway_url: str
    log_level: int
    refresh_interval: int
    grant_duration_days: int
    max_submit_value: int
    http_timeout: int

    def __init__(self, client_config: ClientConfig):
        self.config: Config = Config()
        self.on_error_callback = client_config.on_error_callback

        self.apply_overrides(client_config.model_dump(), self.config, SETTINGS)

        # Configurable paths
        self.data_dir: Path = client_config.data_dir or self.config.DATA_DIR
        self.grant_store_path: Path = (
            client_config.grant_store_path or self.data_dir / "grants.json"
        )
        self.deployments_path: Path = (
            client_config.deployments_path or self.data_dir / "deployments.json"
        )
        if client_config.wallet_key_path:
            self.wallet_key_path: Path = client_config.wallet_key_path
        elif client_config.data_dir:
            self.wallet_key_path = client_config.data_dir / "wallet.key"
        else:
            self.wallet_key_path = self.config.WALLET_KEY_PATH

        # Setup logging
        self.logger = logging.getLogger("confpay")
        self.log_file: Path | None = client_config.log_file or self.config.LOG_FILE
        setup_logger(self.logger, self.log_level, self.log_file)

    def load_deployments(self) -> Deployments:
        """Load the chain id to contract address registry."""
        return Deployments.from_file(self.deployments_path)

    def load_grant_store(self) -> FileGrantStore:
        return FileGrantStore(self.grant_store_path)

    def load_wallet(self, chain_id: int | None = None) -> LocalWallet:
        """Load the development wallet key from file."""
        return LocalWallet.from_file(self.wallet_key_path, chain_id)
