"""
Payroll session client.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from confpay.client.application.coordinator import PayrollSession
from confpay.client.application.runner import Runner
from confpay.client.application.signature_manager import SignatureManager
from confpay.client.infrastructure.config_loader import ConfigLoader
from confpay.client.infrastructure.http_ledger import HttpLedger
from confpay.common.models import ClientConfig

if TYPE_CHECKING:
    from confpay.client.infrastructure.deployments import Deployments
    from confpay.common.interfaces import (
        ConfidentialEngine,
        GrantStore,
        Ledger,
        Wallet,
    )

logger = logging.getLogger(__name__)


class PayrollClient:
    """Wires a wallet, ledger and engine into a ready-to-use PayrollSession.

    Collaborators that are not passed in are built from configuration: the
    grant cache from the JSON grant store, deployments from the registry
    file, the ledger from the HTTP gateway and the wallet from the key file.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        wallet: Wallet | None = None,
        ledger: Ledger | None = None,
        engine: ConfidentialEngine | None = None,
        grant_store: GrantStore | None = None,
        deployments: Deployments | None = None,
        chain_id: int | None = None,
    ):
        self.config_loader = ConfigLoader(config or ClientConfig())
        loader = self.config_loader

        self.wallet: Wallet = wallet or loader.load_wallet(chain_id)
        self.ledger: Ledger = ledger or HttpLedger(
            loader.gateway_url, timeout=loader.http_timeout
        )
        self.grant_store: GrantStore = grant_store or loader.load_grant_store()
        self.deployments = deployments or loader.load_deployments()

        self.signatures = SignatureManager(
            self.wallet, self.grant_store, loader.grant_duration_days
        )
        self.session = PayrollSession(
            wallet=self.wallet,
            ledger=self.ledger,
            signatures=self.signatures,
            deployments=self.deployments,
            engine=engine,
            max_submit_value=loader.max_submit_value,
            on_error_callback=loader.on_error_callback,
        )
        self.runner = Runner(
            self.session,
            loader.refresh_interval,
            on_error_callback=loader.on_error_callback,
        )

    def start_in_thread(self) -> None:
        """Start background refreshing and accept operations from any thread."""
        self.runner.start_in_thread()

    def stop_thread(self) -> None:
        self.runner.stop_thread()
