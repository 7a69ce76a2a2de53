import asyncio
from typing import Any

import pytest
import requests

from confpay.client.domain.entities import Identity
from confpay.client.infrastructure.http_ledger import HttpLedger
from confpay.common.exceptions import ExternalCallFailure
from confpay.common.models import EncryptedInput
from tests.conftest import ACCOUNT, CHAIN_ID, CONTRACT, PEER

IDENTITY = Identity.of(CHAIN_ID, ACCOUNT, CONTRACT)


class FakeResponse:
    def __init__(self, status_code: int, payload: Any = None):
        self.status_code = status_code
        self._payload = payload
        self.text = str(payload)

    def json(self) -> Any:
        if self._payload is None:
            msg = "no JSON"
            raise ValueError(msg)
        return self._payload


class FakeHttp:
    """Replays queued responses and records requests."""

    def __init__(self, *responses: FakeResponse | Exception):
        self.responses = list(responses)
        self.calls: list[tuple[str, str, dict[str, Any]]] = []

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append((method, url, kwargs))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_ledger(*responses: FakeResponse | Exception) -> tuple[HttpLedger, FakeHttp]:
    http = FakeHttp(*responses)
    ledger = HttpLedger(
        "http://gateway/", poll_interval=0, max_polls=3, session=http  # type: ignore[arg-type]
    )
    return ledger, http


def test_read_fields() -> None:
    payload = {
        "handles": {"self": "0x" + "1" * 64},
        "entry_count": 2,
        "authority": ACCOUNT,
    }
    ledger, http = make_ledger(FakeResponse(200, payload))

    snapshot = asyncio.run(ledger.read_fields(IDENTITY))

    assert snapshot.entry_count == 2  # noqa: PLR2004
    assert snapshot.handles["self"] == "0x" + "1" * 64
    method, url, kwargs = http.calls[0]
    assert method == "GET"
    assert url == f"http://gateway/contracts/{CONTRACT}/fields"
    assert kwargs["params"] == {"account": ACCOUNT}
    assert kwargs["timeout"] == 10  # noqa: PLR2004


def test_malformed_snapshot() -> None:
    ledger, _ = make_ledger(FakeResponse(200, {"entry_count": -1}))
    with pytest.raises(ExternalCallFailure, match="Malformed ledger snapshot"):
        asyncio.run(ledger.read_fields(IDENTITY))


def test_transport_and_http_errors() -> None:
    ledger, _ = make_ledger(
        requests.ConnectionError("refused"),
        FakeResponse(500, {"error": "boom"}),
        FakeResponse(404, {}),
        FakeResponse(200, None),
    )
    with pytest.raises(ExternalCallFailure, match="refused"):
        asyncio.run(ledger.read_handle(IDENTITY, PEER))
    with pytest.raises(ExternalCallFailure, match="HTTP 500"):
        asyncio.run(ledger.read_handle(IDENTITY, PEER))
    with pytest.raises(ExternalCallFailure, match="not found"):
        asyncio.run(ledger.read_handle(IDENTITY, PEER))
    with pytest.raises(ExternalCallFailure, match="invalid JSON"):
        asyncio.run(ledger.read_handle(IDENTITY, PEER))


def test_submit_and_grant_return_tx_hash() -> None:
    ledger, http = make_ledger(
        FakeResponse(200, {"tx_hash": "0x01"}),
        FakeResponse(200, {"tx_hash": "0x02"}),
        FakeResponse(200, {}),
    )
    encrypted = EncryptedInput(handle="0x" + "2" * 64, proof="0xbeef")

    assert asyncio.run(ledger.submit_encrypted_value(IDENTITY, encrypted)) == "0x01"
    assert asyncio.run(ledger.grant_access(IDENTITY, PEER)) == "0x02"
    with pytest.raises(ExternalCallFailure, match="tx_hash"):
        asyncio.run(ledger.grant_access(IDENTITY, PEER))

    assert http.calls[0][2]["json"]["proof"] == "0xbeef"
    assert http.calls[1][2]["json"] == {"account": ACCOUNT, "grantee": PEER}


def test_check_access() -> None:
    ledger, http = make_ledger(FakeResponse(200, {"allowed": True}), FakeResponse(200, {}))
    assert asyncio.run(ledger.check_access(IDENTITY, PEER, ACCOUNT))
    assert not asyncio.run(ledger.check_access(IDENTITY, PEER, ACCOUNT))
    assert http.calls[0][1].endswith(f"/access/{PEER}/{ACCOUNT}")


def test_await_confirmation_polls_until_mined() -> None:
    ledger, http = make_ledger(
        FakeResponse(404, {}),
        FakeResponse(200, {"status": None}),
        FakeResponse(200, {"status": 1}),
    )
    assert asyncio.run(ledger.await_confirmation("0xabc")) == 1
    assert len(http.calls) == 3  # noqa: PLR2004


def test_await_confirmation_gives_up() -> None:
    ledger, _ = make_ledger(*(FakeResponse(404, {}) for _ in range(3)))
    with pytest.raises(ExternalCallFailure, match="not confirmed"):
        asyncio.run(ledger.await_confirmation("0xabc"))
