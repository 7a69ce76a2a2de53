from __future__ import annotations

import asyncio
from typing import Callable

import pytest

from confpay.client.application.coordinator import PayrollSession
from confpay.client.application.signature_manager import SignatureManager
from confpay.client.domain.entities import Identity
from confpay.client.infrastructure.deployments import Deployments
from confpay.client.infrastructure.grant_store import InMemoryGrantStore
from confpay.common.config import ZERO_HANDLE
from confpay.common.models import (
    AuthorizationGrant,
    DecryptionRequest,
    DeploymentEntry,
    EncryptedInput,
    LedgerSnapshot,
)

ACCOUNT = "0x" + "a" * 40
PEER = "0x" + "b" * 40
OTHER = "0x" + "d" * 40
CONTRACT = "0x" + "c" * 40
CHAIN_ID = 31337


class Gate:
    """Lets a test hold a fake call at its suspension point."""

    def __init__(self) -> None:
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def wait(self) -> None:
        self.entered.set()
        await self.release.wait()


class FakeWallet:
    def __init__(self, account: str | None = ACCOUNT, chain_id: int | None = CHAIN_ID):
        self.account = account
        self.chain_id = chain_id
        self.sign_calls = 0
        self.refuse = False
        self.malformed = False
        self.gate: Gate | None = None
        self.subscribers: list[Callable[[], None]] = []

    async def sign(self, message: bytes) -> str:
        self.sign_calls += 1
        if self.gate:
            await self.gate.wait()
        if self.refuse:
            msg = "User rejected the request"
            raise PermissionError(msg)
        if self.malformed:
            return "not-a-signature"
        return "0x" + "ab" * 65

    def subscribe(self, callback: Callable[[], None]) -> None:
        self.subscribers.append(callback)

    def switch_account(self, account: str) -> None:
        self.account = account
        for callback in self.subscribers:
            callback()


class FakeEngine:
    def __init__(self) -> None:
        self.values: dict[str, int] = {}
        self.counter = 0
        self.decrypt_calls: list[list[str]] = []
        self.encrypt_calls = 0
        self.decrypt_gate: Gate | None = None
        self.fail_decrypt = False

    def new_handle(self, value: int) -> str:
        self.counter += 1
        handle = f"0x{self.counter:064x}"
        self.values[handle] = value
        return handle

    async def encrypt(self, resource: str, account: str, value: int) -> EncryptedInput:
        self.encrypt_calls += 1
        await asyncio.sleep(0)
        return EncryptedInput(handle=self.new_handle(value), proof="0x01")

    async def decrypt(
        self, requests: list[DecryptionRequest], grant: AuthorizationGrant
    ) -> dict[str, int]:
        self.decrypt_calls.append([r.handle for r in requests])
        if self.decrypt_gate:
            await self.decrypt_gate.wait()
        if self.fail_decrypt:
            msg = "relayer unavailable"
            raise ConnectionError(msg)
        return {r.handle: self.values[r.handle] for r in requests}


class FakeLedger:
    def __init__(self, engine: FakeEngine, authority: str = ACCOUNT) -> None:
        self.engine = engine
        self.authority = authority
        self.salaries: dict[str, int] = {}
        self.handles: dict[str, str] = {}
        self.total_handle = ZERO_HANDLE
        self.access: set[tuple[str, str]] = set()
        self.read_gate: Gate | None = None
        self.read_calls = 0
        self.read_handle_calls: list[str] = []
        self.submitted: list[str] = []
        self.granted: list[str] = []
        self.tx_status = 1
        self.fail_reads = False
        self.fail_next_reads = 0

    def store_value(self, account: str, value: int) -> str:
        handle = self.engine.new_handle(value)
        self.salaries[account] = value
        self.handles[account] = handle
        self.total_handle = self.engine.new_handle(sum(self.salaries.values()))
        return handle

    async def read_fields(self, identity: Identity) -> LedgerSnapshot:
        self.read_calls += 1
        if self.fail_reads:
            msg = "rpc timeout"
            raise TimeoutError(msg)
        snapshot = LedgerSnapshot(
            handles={
                "self": self.handles.get(identity.account, ZERO_HANDLE),
                "aggregate": self.total_handle,
            },
            entry_count=len(self.salaries),
            authority=self.authority,
        )
        if self.read_gate:
            await self.read_gate.wait()
        if self.fail_next_reads:
            self.fail_next_reads -= 1
            msg = "gateway reset"
            raise ConnectionError(msg)
        return snapshot

    async def read_handle(self, identity: Identity, owner: str) -> str | None:
        self.read_handle_calls.append(owner)
        await asyncio.sleep(0)
        return self.handles.get(owner, ZERO_HANDLE)

    async def submit_encrypted_value(
        self, identity: Identity, encrypted: EncryptedInput
    ) -> str:
        self.submitted.append(encrypted.handle)
        await asyncio.sleep(0)
        value = self.engine.values[encrypted.handle]
        self.salaries[identity.account] = value
        self.handles[identity.account] = encrypted.handle
        self.total_handle = self.engine.new_handle(sum(self.salaries.values()))
        return f"0xtx{len(self.submitted)}"

    async def grant_access(self, identity: Identity, grantee: str) -> str:
        self.granted.append(grantee)
        self.access.add((identity.account, grantee))
        await asyncio.sleep(0)
        return f"0xgrant{len(self.granted)}"

    async def check_access(self, identity: Identity, owner: str, grantee: str) -> bool:
        await asyncio.sleep(0)
        return (owner, grantee) in self.access

    async def await_confirmation(self, tx_hash: str) -> int:
        await asyncio.sleep(0)
        return self.tx_status


@pytest.fixture
def wallet() -> FakeWallet:
    return FakeWallet()


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def ledger(engine: FakeEngine) -> FakeLedger:
    return FakeLedger(engine)


@pytest.fixture
def deployments() -> Deployments:
    return Deployments(
        {
            CHAIN_ID: DeploymentEntry(
                address=CONTRACT, chain_id=CHAIN_ID, chain_name="hardhat"
            )
        }
    )


@pytest.fixture
def store() -> InMemoryGrantStore:
    return InMemoryGrantStore()


@pytest.fixture
def signatures(wallet: FakeWallet, store: InMemoryGrantStore) -> SignatureManager:
    return SignatureManager(wallet, store, duration_days=365)


@pytest.fixture
def session(
    wallet: FakeWallet,
    ledger: FakeLedger,
    engine: FakeEngine,
    signatures: SignatureManager,
    deployments: Deployments,
) -> PayrollSession:
    return PayrollSession(
        wallet=wallet,
        ledger=ledger,
        signatures=signatures,
        deployments=deployments,
        engine=engine,
    )


@pytest.fixture
def identity() -> Identity:
    return Identity.of(CHAIN_ID, ACCOUNT, CONTRACT)
