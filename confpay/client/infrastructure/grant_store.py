"""
Authorization grant persistence.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path  # noqa: TC003

from pydantic import ValidationError

from confpay.common.models import AuthorizationGrant

logger = logging.getLogger(__name__)


def _key(chain_id: int, holder: str) -> str:
    return f"{chain_id}:{holder.lower()}"


class InMemoryGrantStore:
    """Grant store that lives as long as the process."""

    def __init__(self) -> None:
        self.grants: dict[str, list[AuthorizationGrant]] = {}

    def load(self, chain_id: int, holder: str) -> list[AuthorizationGrant]:
        return list(self.grants.get(_key(chain_id, holder), []))

    def save(self, grant: AuthorizationGrant) -> None:
        key = _key(grant.chain_id, grant.holder)
        self.grants[key] = [
            g for g in self.grants.get(key, []) if g.resources != grant.resources
        ]
        self.grants[key].append(grant)

    def remove(self, grant: AuthorizationGrant) -> None:
        key = _key(grant.chain_id, grant.holder)
        remaining = [g for g in self.grants.get(key, []) if g != grant]
        if remaining:
            self.grants[key] = remaining
        else:
            self.grants.pop(key, None)

    def purge(self, chain_id: int, holder: str) -> int:
        return len(self.grants.pop(_key(chain_id, holder), []))

    def all(self) -> list[AuthorizationGrant]:
        return [g for grants in self.grants.values() for g in grants]


class FileGrantStore(InMemoryGrantStore):
    """Grant store persisted as JSON so grants survive a restart."""

    def __init__(self, file_path: Path):
        super().__init__()
        self.file_path = file_path
        self.grants = self._load_grants(file_path)

    @staticmethod
    def _load_grants(file_path: Path) -> dict[str, list[AuthorizationGrant]]:
        """Load grants from file, skipping records that no longer validate."""
        try:
            with file_path.open() as f:
                data = json.load(f)
        except (FileNotFoundError, json.JSONDecodeError):
            return {}

        grants: dict[str, list[AuthorizationGrant]] = {}
        for key, records in data.items():
            for record in records:
                try:
                    grants.setdefault(key, []).append(
                        AuthorizationGrant.model_validate(record)
                    )
                except ValidationError:
                    logger.warning("Skipping invalid grant record under %s", key)
        return grants

    def _save_grants(self) -> None:
        """Save grants to file."""
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        with self.file_path.open("w") as f:
            json.dump(
                {
                    k: [g.model_dump(mode="json") for g in v]
                    for k, v in self.grants.items()
                },
                f,
            )

    def save(self, grant: AuthorizationGrant) -> None:
        super().save(grant)
        self._save_grants()

    def remove(self, grant: AuthorizationGrant) -> None:
        super().remove(grant)
        self._save_grants()

    def purge(self, chain_id: int, holder: str) -> int:
        removed = super().purge(chain_id, holder)
        self._save_grants()
        return removed
