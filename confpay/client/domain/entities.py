"""Domain layer: Core business entities and rules.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from confpay.common.config import ZERO_HANDLE


class FieldName(str, enum.Enum):
    """Logical confidential fields tracked by a session."""

    SELF = "self"
    AGGREGATE = "aggregate"
    PEER = "peer"


class OperationKind(str, enum.Enum):
    REFRESH = "refresh"
    DECRYPT_SELF = "decrypt-self"
    DECRYPT_AGGREGATE = "decrypt-aggregate"
    SUBMIT_VALUE = "submit-value"
    GRANT_ACCESS = "grant-access"
    INSPECT_PEER = "inspect-peer"
    DECRYPT_PEER = "decrypt-peer"


class OperationOutcome(str, enum.Enum):
    """How an operation invocation ended."""

    COMMITTED = "committed"
    DISCARDED = "discarded"
    SKIPPED = "skipped"
    REJECTED = "rejected"
    FAILED = "failed"


def is_decryptable(handle: str | None) -> bool:
    """A handle can be decrypted only if a value was ever stored behind it."""
    return bool(handle) and handle != ZERO_HANDLE


@dataclass(frozen=True)
class Identity:
    """Domain entity scoping every operation: (network, account, resource)."""

    chain_id: int
    account: str
    resource: str

    @classmethod
    def of(cls, chain_id: int, account: str, resource: str) -> Identity:
        return cls(chain_id, account.lower(), resource.lower())


@dataclass(frozen=True)
class ClearValue:
    """A decrypted value tagged with the handle it was decrypted from."""

    handle: str
    clear: int


@dataclass
class FieldState:
    """Domain entity holding the latest handle and clear value of one field."""

    handle: str | None = None
    decrypted: ClearValue | None = None

    @property
    def is_decrypted(self) -> bool:
        return self.decrypted is not None and self.decrypted.handle == self.handle


@dataclass
class PeerView:
    """The peer currently being inspected and the access verdict for it."""

    address: str | None = None
    has_access: bool | None = None


@dataclass
class OperationFlags:
    """One in-progress flag per operation kind."""

    _running: dict[OperationKind, bool] = field(
        default_factory=lambda: dict.fromkeys(OperationKind, False)
    )

    def is_running(self, kind: OperationKind) -> bool:
        return self._running[kind]

    def try_acquire(self, kind: OperationKind) -> bool:
        """Set the flag if it is clear. Must not be split by an await."""
        if self._running[kind]:
            return False
        self._running[kind] = True
        return True

    def release(self, kind: OperationKind) -> None:
        self._running[kind] = False

    def as_dict(self) -> dict[str, bool]:
        return {kind.value: running for kind, running in self._running.items()}


@dataclass(frozen=True)
class SessionView:
    """Read-only snapshot of everything presented to the UI."""

    identity: Identity | None
    is_deployed: bool
    handles: dict[str, str | None]
    clear_values: dict[str, int | None]
    average_value: int | None
    entry_count: int | None
    authority: str | None
    peer_address: str | None
    has_access_to_peer: bool | None
    running: dict[str, bool]
    can_decrypt_self: bool
    can_decrypt_aggregate: bool
    can_decrypt_peer: bool
    can_submit: bool
    can_grant: bool
    can_inspect_peer: bool
    message: str
