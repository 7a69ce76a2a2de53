"""
Pydantic models for grants, ledger reads and client configuration.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable

from pydantic import BaseModel, ConfigDict, Field

SECONDS_PER_DAY = 86400


class AuthorizationMessage(BaseModel):
    """Message the wallet signs to authorize a decryption session key."""

    public_key: str
    resources: list[str]
    chain_id: int
    start_timestamp: int
    duration_days: int

    def to_bytes(self) -> bytes:
        return json.dumps(self.model_dump(), sort_keys=True).encode()


class AuthorizationGrant(BaseModel):
    """Signed, time-bounded credential permitting decryption for one holder."""

    model_config = ConfigDict(frozen=True)

    public_key: str
    private_key: str
    signature: str
    resources: tuple[str, ...]
    holder: str
    chain_id: int
    start_timestamp: int
    duration_days: int = Field(gt=0)

    @property
    def expires_at(self) -> int:
        return self.start_timestamp + self.duration_days * SECONDS_PER_DAY

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    def covers(self, resources: set[str]) -> bool:
        return resources.issubset(self.resources)

    def is_valid_for(
        self, chain_id: int, holder: str, resources: set[str], now: float
    ) -> bool:
        """Check expiry, holder and resource coverage in one go."""
        return (
            not self.is_expired(now)
            and self.chain_id == chain_id
            and self.holder == holder.lower()
            and self.covers({r.lower() for r in resources})
        )


class EncryptedInput(BaseModel):
    """Ciphertext handle and input proof produced by the engine."""

    handle: str
    proof: str


class DecryptionRequest(BaseModel):
    handle: str
    resource: str


class LedgerSnapshot(BaseModel):
    """Batched read of the ledger for one identity."""

    handles: dict[str, str | None] = Field(default_factory=dict)
    entry_count: int = Field(default=0, ge=0)
    authority: str | None = None


class DeploymentEntry(BaseModel):
    address: str
    chain_id: int
    chain_name: str | None = None


class ClientConfig(BaseModel):
    gateway_url: str | None = None
    log_level: int | None = None
    on_error_callback: Callable[[Exception], None] | None = None
    refresh_interval: int | None = None
    grant_duration_days: int | None = None
    max_submit_value: int | None = None
    http_timeout: int | None = None
    data_dir: Path | None = None
    grant_store_path: Path | None = None
    deployments_path: Path | None = None
    wallet_key_path: Path | None = None
    log_file: Path | None = None
