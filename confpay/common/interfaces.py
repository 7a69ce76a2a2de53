"""
Interfaces and protocols for the collaborators the session consumes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Protocol

if TYPE_CHECKING:
    from confpay.client.domain.entities import Identity
    from confpay.common.models import (
        AuthorizationGrant,
        DecryptionRequest,
        EncryptedInput,
        LedgerSnapshot,
    )


class Wallet(Protocol):
    """Protocol for the connected wallet."""

    @property
    def account(self) -> str | None: ...

    @property
    def chain_id(self) -> int | None: ...

    async def sign(self, message: bytes) -> str: ...

    def subscribe(self, callback: Callable[[], None]) -> None: ...


class Ledger(Protocol):
    """Protocol for reads and writes against the payroll contract."""

    async def read_fields(self, identity: Identity) -> LedgerSnapshot: ...

    async def read_handle(self, identity: Identity, owner: str) -> str | None: ...

    async def submit_encrypted_value(
        self, identity: Identity, encrypted: EncryptedInput
    ) -> str: ...

    async def grant_access(self, identity: Identity, grantee: str) -> str: ...

    async def check_access(
        self, identity: Identity, owner: str, grantee: str
    ) -> bool: ...

    async def await_confirmation(self, tx_hash: str) -> int: ...


class ConfidentialEngine(Protocol):
    """Protocol for the confidential-computation engine."""

    async def encrypt(
        self, resource: str, account: str, value: int
    ) -> EncryptedInput: ...

    async def decrypt(
        self, requests: list[DecryptionRequest], grant: AuthorizationGrant
    ) -> dict[str, int]: ...


class GrantStore(Protocol):
    """Protocol for authorization grant persistence."""

    def load(self, chain_id: int, holder: str) -> list[AuthorizationGrant]: ...

    def save(self, grant: AuthorizationGrant) -> None: ...

    def remove(self, grant: AuthorizationGrant) -> None: ...

    def purge(self, chain_id: int, holder: str) -> int: ...

    def all(self) -> list[AuthorizationGrant]: ...
