from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from calls.errors import CarrierUnavailableError  # noqa: E402
from calls.orchestrator import CallOrchestrator  # noqa: E402
from calls.rate_limiter import RateLimiter  # noqa: E402
from integrations.carrier import BaseCarrierClient, CarrierAccount, CarrierCall  # noqa: E402

CALLER_ID = "+15550001111"
ACCOUNT_SID = "AC" + "0" * 32


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeCarrier(BaseCarrierClient):
    def __init__(self) -> None:
        self.created: list[dict] = []
        self.updated: list[tuple[str, str]] = []
        self.calls: dict[str, CarrierCall] = {}
        self.fail = False
        self._next_sid = 1

    async def create_call(self, *, to, from_, url, status_callback, status_callback_events):
        if self.fail:
            raise CarrierUnavailableError("carrier down")
        sid = f"CA{self._next_sid:032d}"
        self._next_sid += 1
        self.created.append(
            {
                "sid": sid,
                "to": to,
                "from_": from_,
                "url": url,
                "status_callback": status_callback,
                "events": list(status_callback_events),
            }
        )
        return CarrierCall(sid=sid, to=to, from_=from_, status="queued", direction="outbound-api")

    async def update_call_status(self, call_sid, status):
        if self.fail:
            raise CarrierUnavailableError("carrier down")
        self.updated.append((call_sid, status))

    async def fetch_call(self, call_sid):
        if self.fail or call_sid not in self.calls:
            raise CarrierUnavailableError(f"call {call_sid} not found")
        return self.calls[call_sid]

    async def fetch_account(self, account_sid):
        if self.fail:
            raise CarrierUnavailableError("carrier down")
        return CarrierAccount(friendly_name="Test Account", status="active")


class FakeTokenFactory:
    def create_token(self, identity: str) -> str:
        return f"token-for-{identity}"


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def carrier() -> FakeCarrier:
    return FakeCarrier()


@pytest.fixture()
def orchestrator(carrier, clock) -> CallOrchestrator:
    return CallOrchestrator(
        carrier,
        caller_id=CALLER_ID,
        account_sid=ACCOUNT_SID,
        rate_limiter=RateLimiter(5, 60.0, clock=clock),
        token_factory=FakeTokenFactory(),
    )


@pytest.fixture()
def app(orchestrator):
    from main import create_app

    return create_app(lambda: orchestrator)


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client
