from __future__ import annotations

from typing import Any, Callable

import pytest
from zkclear_desk.backend_client import FakeDeskBackend
from zkclear_desk.domain_types import PlainIntent, WalletSession
from zkclear_desk.session_store import MemorySessionBackend, SessionStore

WALLET = "0x" + "ab" * 20
NOW = 1_700_000_000


@pytest.fixture
def wallet() -> str:
    return WALLET


@pytest.fixture
def clock() -> Callable[[], float]:
    return lambda: float(NOW)


@pytest.fixture
def store() -> SessionStore:
    return SessionStore(MemorySessionBackend())


@pytest.fixture
def fake_backend(clock: Callable[[], float]) -> FakeDeskBackend:
    return FakeDeskBackend(clock=clock)


@pytest.fixture
def live_session(store: SessionStore, fake_backend: FakeDeskBackend) -> WalletSession:
    """A stored, unexpired session whose token the fake backend recognizes."""
    session = WalletSession(
        access_token=fake_backend.issue_token(WALLET),
        wallet_address=WALLET,
        role="dealer",
        expires_at=NOW + 3600,
    )
    store.save(session)
    return session


@pytest.fixture
def plain_intent() -> PlainIntent:
    return PlainIntent(
        side="buy",
        asset_pair="ETH/USDC",
        amount="100000",
        limit_price="2800",
        settlement_currency="USDC",
        counterparty_id="A",
    )


@pytest.fixture
def job_payload() -> Callable[..., dict[str, Any]]:
    def build(
        status: str,
        transitions: list[tuple[str | None, str, int]] | None = None,
        job_id: str = "job-1",
        run_id: str = "run-1",
        **extra: Any,
    ) -> dict[str, Any]:
        job = {
            "job_id": job_id,
            "workflow_run_id": run_id,
            "policy_version": "v1",
            "proof_type": "settlement",
            "status": status,
            "attempt_count": 1,
            "retry_count": 0,
            "retry_scheduled": False,
            "transitions": [
                {"from_status": f, "to_status": t, "transitioned_at": at}
                for f, t, at in (transitions or [])
            ],
        }
        job.update(extra)
        return job

    return build


@pytest.fixture
def runs_payload() -> Callable[..., dict[str, Any]]:
    def build(*jobs: dict[str, Any], run_id: str = "run-1") -> dict[str, Any]:
        return {"found": bool(jobs), "workflow_run_id": run_id, "jobs": list(jobs), "reason": "ok"}

    return build
