"""
Application layer: Confidential payroll session coordination.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, TypeVar

from confpay.client.application.field_tracker import FieldStateTracker
from confpay.client.domain.entities import (
    FieldName,
    Identity,
    OperationFlags,
    OperationKind,
    OperationOutcome,
    PeerView,
    SessionView,
    is_decryptable,
)
from confpay.common.crypto import CryptoUtils
from confpay.common.decorators import single_flight
from confpay.common.exceptions import (
    ExternalCallFailure,
    InvalidInput,
    OperationNotReady,
    PayrollError,
    StaleOperation,
)
from confpay.common.models import DecryptionRequest, LedgerSnapshot

if TYPE_CHECKING:
    from confpay.client.application.signature_manager import SignatureManager
    from confpay.client.infrastructure.deployments import Deployments
    from confpay.common.interfaces import ConfidentialEngine, Ledger, Wallet

logger = logging.getLogger(__name__)

T = TypeVar("T")

TX_SUCCESS = 1


class PayrollSession:
    """Owns all session state and runs every user-triggered operation.

    Each operation snapshots the identity it starts under and re-checks it
    after every await. Results that arrive after the account, network,
    contract or target handle moved on are discarded, never applied.
    """

    def __init__(
        self,
        wallet: Wallet,
        ledger: Ledger,
        signatures: SignatureManager,
        deployments: Deployments,
        engine: ConfidentialEngine | None = None,
        max_submit_value: int = 2**32 - 1,
        on_error_callback: Callable[[Exception], None] | None = None,
    ):
        self.wallet = wallet
        self.ledger = ledger
        self.signatures = signatures
        self.deployments = deployments
        self.engine = engine
        self.max_submit_value = max_submit_value
        self.on_error_callback = on_error_callback

        self.tracker = FieldStateTracker()
        self.flags = OperationFlags()
        self.peer = PeerView()
        self.entry_count: int | None = None
        self.authority: str | None = None

        self._message = ""
        self._listeners: list[Callable[[str], None]] = []
        self._refresh_pending = False
        self._tasks: set[asyncio.Task[Any]] = set()

    # Status

    @property
    def message(self) -> str:
        return self._message

    def set_message(self, message: str) -> None:
        self._message = message
        logger.info("%s", message)
        for listener in list(self._listeners):
            listener(message)

    def on_status(self, callback: Callable[[str], None]) -> None:
        """Register a callback invoked with every new status message."""
        self._listeners.append(callback)

    def report_error(self, error: Exception) -> None:
        if self.on_error_callback:
            self.on_error_callback(error)

    # Identity

    def current_identity(self) -> Identity | None:
        account = self.wallet.account
        chain_id = self.wallet.chain_id
        resource = self.deployments.address_for(chain_id)
        if account is None or chain_id is None or resource is None:
            return None
        return Identity.of(chain_id, account, resource)

    @property
    def is_deployed(self) -> bool:
        return self.deployments.address_for(self.wallet.chain_id) is not None

    def handle_identity_change(self) -> None:
        """React to an account or network switch reported by the wallet."""
        identity = self.current_identity()
        logger.info("Identity changed: %s", identity)
        self.peer = PeerView()
        for name in FieldName:
            self.tracker.reset(name)
        self.entry_count = None
        self.authority = None
        if identity is None:
            self.set_message(self._missing_identity_reason())
            return
        if self.flags.is_running(OperationKind.REFRESH):
            self._refresh_pending = True
            return
        self._schedule_refresh()

    def _schedule_refresh(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop, refresh deferred to the caller")
            return
        task = loop.create_task(self.refresh())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _missing_identity_reason(self) -> str:
        chain_id = self.wallet.chain_id
        if self.wallet.account is None or chain_id is None:
            return "Wallet not connected"
        return f"Payroll deployment not found for chainId={chain_id}."

    def _require_identity(self) -> Identity:
        identity = self.current_identity()
        if identity is None:
            raise OperationNotReady(self._missing_identity_reason())
        return identity

    def _require_engine(self) -> ConfidentialEngine:
        if self.engine is None:
            msg = "Confidential engine is not initialized"
            raise OperationNotReady(msg)
        return self.engine

    def _check_fresh(
        self,
        kind: OperationKind,
        identity: Identity,
        field: FieldName | None = None,
        handle: str | None = None,
        peer: str | None = None,
    ) -> None:
        """Raise StaleOperation if the world moved on since ``identity`` was taken."""
        if self.current_identity() != identity:
            msg = f"Ignoring {kind.value} result, account or network changed"
            raise StaleOperation(msg)
        if field is not None and self.tracker.current_handle(field) != handle:
            msg = f"Ignoring {kind.value} result, {field.value} handle changed"
            raise StaleOperation(msg)
        if peer is not None and self.peer.address != peer:
            msg = f"Ignoring {kind.value} result, inspected peer changed"
            raise StaleOperation(msg)

    @staticmethod
    async def _external(what: str, call: Awaitable[T]) -> T:
        try:
            return await call
        except PayrollError:
            raise
        except Exception as e:
            msg = f"{what} failed: {e}"
            raise ExternalCallFailure(msg) from e

    async def _confirm(self, tx_hash: str) -> int:
        self.set_message(f"Wait for tx:{tx_hash}...")
        status = await self._external(
            "Transaction confirmation", self.ledger.await_confirmation(tx_hash)
        )
        if status != TX_SUCCESS:
            msg = f"Transaction {tx_hash} reverted (status={status})"
            raise ExternalCallFailure(msg)
        return status

    # Refresh

    @single_flight(OperationKind.REFRESH)
    async def refresh(self) -> OperationOutcome:
        """Read every field handle and the public counters in one batch."""
        while True:
            self._refresh_pending = False
            identity = self._require_identity()
            try:
                snapshot = await self._external(
                    "Fetching payroll data", self.ledger.read_fields(identity)
                )
            except PayrollError:
                if self._refresh_pending:
                    self._refresh_pending = False
                    self._schedule_refresh()
                raise
            try:
                self._check_fresh(OperationKind.REFRESH, identity)
            except StaleOperation:
                if not self._refresh_pending:
                    raise
                logger.info("Dropped stale read, refreshing for the new identity")
                continue
            self._apply_snapshot(snapshot)
            if not self._refresh_pending:
                break
            logger.debug("Running queued refresh")
        return OperationOutcome.COMMITTED

    def _apply_snapshot(self, snapshot: LedgerSnapshot) -> None:
        for name in (FieldName.SELF, FieldName.AGGREGATE):
            if name.value in snapshot.handles:
                self.tracker.record_handle(name, snapshot.handles[name.value])
        self.entry_count = snapshot.entry_count
        self.authority = snapshot.authority.lower() if snapshot.authority else None

    async def _request_refresh(self) -> None:
        """Refresh now, or queue a follow-up read if a refresh is in flight."""
        if self.flags.is_running(OperationKind.REFRESH):
            self._refresh_pending = True
            return
        await self.refresh()

    # Submit

    @single_flight(OperationKind.SUBMIT_VALUE)
    async def submit_value(self, amount: int) -> OperationOutcome:
        """Encrypt ``amount`` and store it as the caller's value."""
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            msg = "Amount must be a positive integer"
            raise InvalidInput(msg)
        if amount > self.max_submit_value:
            msg = f"Amount must not exceed {self.max_submit_value}"
            raise InvalidInput(msg)
        identity = self._require_identity()
        engine = self._require_engine()
        kind = OperationKind.SUBMIT_VALUE

        self.set_message(f"Start submitting value {amount}...")
        encrypted = await self._external(
            "Encryption", engine.encrypt(identity.resource, identity.account, amount)
        )
        self._check_fresh(kind, identity)

        self.set_message("Submitting encrypted value...")
        tx_hash = await self._external(
            "Submitting value",
            self.ledger.submit_encrypted_value(identity, encrypted),
        )
        await self._confirm(tx_hash)
        self._check_fresh(kind, identity)

        await self._request_refresh()
        self.set_message(f"Value {amount} submitted")
        return OperationOutcome.COMMITTED

    # Decryption

    async def _decrypt_field(
        self,
        kind: OperationKind,
        name: FieldName,
        identity: Identity,
        peer: str | None = None,
    ) -> int | None:
        handle = self.tracker.current_handle(name)
        if handle is None or not is_decryptable(handle):
            msg = f"No {name.value} value to decrypt"
            raise OperationNotReady(msg)
        if self.tracker.is_decrypted_for(name, handle):
            return None
        engine = self._require_engine()

        self.set_message(f"Start decrypting {name.value} value...")
        grant = await self.signatures.obtain_grant([identity.resource], identity)
        self._check_fresh(kind, identity, name, handle, peer)

        self.set_message(f"Call decryption for {name.value} value...")
        result = await self._external(
            "Decryption",
            engine.decrypt(
                [DecryptionRequest(handle=handle, resource=identity.resource)], grant
            ),
        )
        self._check_fresh(kind, identity, name, handle, peer)

        if handle not in result:
            msg = f"Decryption result is missing handle {handle}"
            raise ExternalCallFailure(msg)
        clear = int(result[handle])
        self.tracker.record_decryption(name, handle, clear)
        return clear

    @single_flight(OperationKind.DECRYPT_SELF)
    async def decrypt_self(self) -> OperationOutcome:
        identity = self._require_identity()
        clear = await self._decrypt_field(
            OperationKind.DECRYPT_SELF, FieldName.SELF, identity
        )
        if clear is None:
            return OperationOutcome.SKIPPED
        self.set_message(f"Value decrypted: {clear}")
        return OperationOutcome.COMMITTED

    @single_flight(OperationKind.DECRYPT_AGGREGATE)
    async def decrypt_aggregate(self) -> OperationOutcome:
        """Decrypt the total. The average is derived from it, not decrypted."""
        identity = self._require_identity()
        if not self.is_authority:
            msg = "Only the deployer can decrypt statistics"
            raise OperationNotReady(msg)
        clear = await self._decrypt_field(
            OperationKind.DECRYPT_AGGREGATE, FieldName.AGGREGATE, identity
        )
        if clear is None:
            return OperationOutcome.SKIPPED
        self.set_message("Statistics decrypted successfully!")
        return OperationOutcome.COMMITTED

    @single_flight(OperationKind.DECRYPT_PEER)
    async def decrypt_peer(self) -> OperationOutcome:
        identity = self._require_identity()
        peer = self.peer.address
        if peer is None or self.peer.has_access is not True:
            msg = "No accessible peer value to decrypt"
            raise OperationNotReady(msg)
        clear = await self._decrypt_field(
            OperationKind.DECRYPT_PEER, FieldName.PEER, identity, peer
        )
        if clear is None:
            return OperationOutcome.SKIPPED
        self.set_message(f"Value decrypted for {peer}: {clear}")
        return OperationOutcome.COMMITTED

    # Access control

    @single_flight(OperationKind.GRANT_ACCESS)
    async def grant_access(self, grantee: str) -> OperationOutcome:
        """Allow ``grantee`` to decrypt the caller's value."""
        if not CryptoUtils.is_address(grantee):
            msg = "Invalid viewer address"
            raise InvalidInput(msg)
        identity = self._require_identity()
        grantee = grantee.lower()

        self.set_message(f"Granting access to {grantee}...")
        tx_hash = await self._external(
            "Granting access", self.ledger.grant_access(identity, grantee)
        )
        await self._confirm(tx_hash)
        self._check_fresh(OperationKind.GRANT_ACCESS, identity)

        await self._request_refresh()
        self.set_message(f"Access granted to {grantee}")
        return OperationOutcome.COMMITTED

    @single_flight(OperationKind.INSPECT_PEER)
    async def inspect_peer(self, peer: str) -> OperationOutcome:
        """Check whether the caller may view ``peer``'s value and fetch its handle."""
        if not CryptoUtils.is_address(peer):
            msg = "Invalid employee address"
            raise InvalidInput(msg)
        identity = self._require_identity()
        peer = peer.lower()
        if peer == identity.account:
            msg = "Use decrypt_self to view your own value"
            raise InvalidInput(msg)
        kind = OperationKind.INSPECT_PEER

        self.set_message("Checking access and fetching value...")
        allowed = await self._external(
            "Checking access",
            self.ledger.check_access(identity, peer, identity.account),
        )
        self._check_fresh(kind, identity)
        if not allowed:
            self._select_peer(peer, has_access=False)
            self.set_message("You don't have access to view this employee's value")
            return OperationOutcome.COMMITTED

        handle = await self._external(
            "Fetching peer value", self.ledger.read_handle(identity, peer)
        )
        self._check_fresh(kind, identity)
        self._select_peer(peer, has_access=True)
        self.tracker.record_handle(FieldName.PEER, handle)
        if is_decryptable(handle):
            self.set_message("Value handle fetched. You can decrypt it now.")
        else:
            self.set_message("This employee has not added their value yet")
        return OperationOutcome.COMMITTED

    def _select_peer(self, peer: str, *, has_access: bool) -> None:
        if self.peer.address != peer or not has_access:
            self.tracker.reset(FieldName.PEER)
        self.peer = PeerView(address=peer, has_access=has_access)

    # Derived state

    @property
    def is_authority(self) -> bool:
        account = self.wallet.account
        return (
            account is not None
            and self.authority is not None
            and account.lower() == self.authority
        )

    @property
    def average_value(self) -> int | None:
        """Average derived from the decrypted total and the public entry count."""
        total = self.tracker.clear_value(FieldName.AGGREGATE)
        if total is None or not self.entry_count:
            return None
        return total // self.entry_count

    def _ready(self, *, needs_engine: bool = False) -> bool:
        if self.current_identity() is None:
            return False
        return self.engine is not None or not needs_engine

    def _can_decrypt(self, kind: OperationKind, name: FieldName) -> bool:
        return (
            self._ready(needs_engine=True)
            and not self.flags.is_running(kind)
            and self.tracker.needs_decryption(name)
        )

    @property
    def can_decrypt_self(self) -> bool:
        return self._can_decrypt(OperationKind.DECRYPT_SELF, FieldName.SELF)

    @property
    def can_decrypt_aggregate(self) -> bool:
        return self.is_authority and self._can_decrypt(
            OperationKind.DECRYPT_AGGREGATE, FieldName.AGGREGATE
        )

    @property
    def can_decrypt_peer(self) -> bool:
        return (
            self.peer.has_access is True
            and not self.flags.is_running(OperationKind.INSPECT_PEER)
            and self._can_decrypt(OperationKind.DECRYPT_PEER, FieldName.PEER)
        )

    @property
    def can_submit(self) -> bool:
        return self._ready(needs_engine=True) and not self.flags.is_running(
            OperationKind.SUBMIT_VALUE
        )

    @property
    def can_grant(self) -> bool:
        return self._ready() and not self.flags.is_running(OperationKind.GRANT_ACCESS)

    @property
    def can_inspect_peer(self) -> bool:
        return self._ready() and not self.flags.is_running(OperationKind.INSPECT_PEER)

    def is_running(self, kind: OperationKind) -> bool:
        return self.flags.is_running(kind)

    def snapshot(self) -> SessionView:
        """Copy of every presented value, safe to read at any time."""
        return SessionView(
            identity=self.current_identity(),
            is_deployed=self.is_deployed,
            handles={name.value: self.tracker.current_handle(name) for name in FieldName},
            clear_values={name.value: self.tracker.clear_value(name) for name in FieldName},
            average_value=self.average_value,
            entry_count=self.entry_count,
            authority=self.authority,
            peer_address=self.peer.address,
            has_access_to_peer=self.peer.has_access,
            running=self.flags.as_dict(),
            can_decrypt_self=self.can_decrypt_self,
            can_decrypt_aggregate=self.can_decrypt_aggregate,
            can_decrypt_peer=self.can_decrypt_peer,
            can_submit=self.can_submit,
            can_grant=self.can_grant,
            can_inspect_peer=self.can_inspect_peer,
            message=self.message,
        )
