"""
Ledger client for the payroll contract JSON gateway.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import requests
from pydantic import ValidationError

from confpay.common.exceptions import ExternalCallFailure
from confpay.common.models import LedgerSnapshot

if TYPE_CHECKING:
    from confpay.client.domain.entities import Identity
    from confpay.common.models import EncryptedInput

HTTP_OK = 200
HTTP_NOT_FOUND = 404

logger = logging.getLogger(__name__)


class HttpLedger:
    """Reads and writes the payroll contract through an HTTP gateway.

    Blocking ``requests`` calls run in a worker thread so the session's event
    loop keeps serving other operations while a call is outstanding.
    """

    def __init__(
        self,
        gateway_url: str,
        timeout: int = 10,
        poll_interval: float = 1.0,
        max_polls: int = 60,
        session: requests.Session | None = None,
    ):
        self.gateway_url = gateway_url.rstrip("/")
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self.http = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = f"{self.gateway_url}{path}"
        try:
            r = self.http.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            msg = f"{method} {path} failed: {e}"
            raise ExternalCallFailure(msg) from e
        if r.status_code != HTTP_OK and r.status_code != HTTP_NOT_FOUND:
            msg = f"{method} {path} returned HTTP {r.status_code}: {r.text}"
            raise ExternalCallFailure(msg)
        return r

    async def _json(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        r = await asyncio.to_thread(self._request, method, path, **kwargs)
        if r.status_code == HTTP_NOT_FOUND:
            msg = f"{method} {path} not found"
            raise ExternalCallFailure(msg)
        try:
            return r.json()
        except ValueError as e:
            msg = f"{method} {path} returned invalid JSON"
            raise ExternalCallFailure(msg) from e

    async def read_fields(self, identity: Identity) -> LedgerSnapshot:
        data = await self._json(
            "GET",
            f"/contracts/{identity.resource}/fields",
            params={"account": identity.account},
        )
        try:
            return LedgerSnapshot.model_validate(data)
        except ValidationError as e:
            msg = f"Malformed ledger snapshot: {e}"
            raise ExternalCallFailure(msg) from e

    async def read_handle(self, identity: Identity, owner: str) -> str | None:
        data = await self._json("GET", f"/contracts/{identity.resource}/handles/{owner}")
        return data.get("handle")

    async def submit_encrypted_value(
        self, identity: Identity, encrypted: EncryptedInput
    ) -> str:
        data = await self._json(
            "POST",
            f"/contracts/{identity.resource}/values",
            json={
                "account": identity.account,
                "handle": encrypted.handle,
                "proof": encrypted.proof,
            },
        )
        return self._tx_hash(data)

    async def grant_access(self, identity: Identity, grantee: str) -> str:
        data = await self._json(
            "POST",
            f"/contracts/{identity.resource}/access",
            json={"account": identity.account, "grantee": grantee},
        )
        return self._tx_hash(data)

    async def check_access(self, identity: Identity, owner: str, grantee: str) -> bool:
        data = await self._json(
            "GET", f"/contracts/{identity.resource}/access/{owner}/{grantee}"
        )
        return bool(data.get("allowed", False))

    async def await_confirmation(self, tx_hash: str) -> int:
        """Poll for the transaction receipt until it is mined."""
        path = f"/transactions/{tx_hash}/receipt"
        for attempt in range(self.max_polls):
            r = await asyncio.to_thread(self._request, "GET", path)
            if r.status_code == HTTP_OK:
                status = r.json().get("status")
                if status is not None:
                    logger.debug("Receipt for %s after %s polls", tx_hash, attempt + 1)
                    return int(status)
            await asyncio.sleep(self.poll_interval)
        msg = f"Transaction {tx_hash} not confirmed after {self.max_polls} polls"
        raise ExternalCallFailure(msg)

    @staticmethod
    def _tx_hash(data: dict[str, Any]) -> str:
        tx_hash = data.get("tx_hash")
        if not tx_hash:
            msg = "Gateway response is missing tx_hash"
            raise ExternalCallFailure(msg)
        return str(tx_hash)
