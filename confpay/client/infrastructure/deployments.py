"""Infrastructure layer: Contract deployment registry.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from confpay.common.config import ZERO_ADDRESS
from confpay.common.models import DeploymentEntry

logger = logging.getLogger(__name__)


class Deployments:
    """Maps chain ids to the payroll contract address deployed there."""

    def __init__(self, entries: dict[int, DeploymentEntry] | None = None):
        self.entries: dict[int, DeploymentEntry] = dict(entries or {})

    def address_for(self, chain_id: int | None) -> str | None:
        """Deployed address on ``chain_id``, or None if absent or zero."""
        if chain_id is None:
            return None
        entry = self.entries.get(chain_id)
        if entry is None or not entry.address or entry.address.lower() == ZERO_ADDRESS:
            return None
        return entry.address.lower()

    def chain_name(self, chain_id: int) -> str | None:
        entry = self.entries.get(chain_id)
        return entry.chain_name if entry else None

    @classmethod
    def from_file(cls, file_path: Path) -> Deployments:
        """Load a ``{"<chainId>": {"address": ..., "chainId": ..., "chainName": ...}}`` file."""
        if not file_path.exists():
            logger.warning("Deployments file not found: %s", file_path)
            return cls()
        try:
            with file_path.open() as f:
                raw = json.load(f)
            entries = {
                int(chain_id): DeploymentEntry(
                    address=item["address"],
                    chain_id=int(item.get("chainId", chain_id)),
                    chain_name=item.get("chainName"),
                )
                for chain_id, item in raw.items()
            }
        except (json.JSONDecodeError, KeyError, TypeError, ValueError, ValidationError) as e:
            msg = f"Invalid deployments file format in {file_path}: {e}"
            raise ValueError(msg) from e
        return cls(entries)
