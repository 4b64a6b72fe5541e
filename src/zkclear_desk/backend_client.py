from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Protocol, TypeVar

from .domain_types import (
    DealerIntent,
    NonceChallenge,
    OrchestrationResult,
    ProofJobsByRun,
    VerifiedToken,
    WalletIdentity,
)
from .errors import DomainRejection, TransportError

PROOF_TYPE = "settlement"

T = TypeVar("T")


class DeskBackend(Protocol):
    async def request_nonce(self, wallet_address: str) -> NonceChallenge: ...

    async def verify_signature(self, wallet_address: str, signature: str) -> VerifiedToken: ...

    async def fetch_me(self, access_token: str) -> WalletIdentity: ...

    async def start_orchestration(
        self,
        access_token: str,
        left: DealerIntent,
        right: DealerIntent,
        proof_type: str = PROOF_TYPE,
    ) -> OrchestrationResult: ...

    async def fetch_proof_jobs(self, workflow_run_id: str, access_token: str | None = None) -> ProofJobsByRun: ...


def parse_response(parser: Callable[[Any], T], data: Any, operation: str) -> T:
    """Run a ``from_payload`` parser; a payload of the wrong shape is a TransportError."""
    try:
        return parser(data)
    except (TypeError, ValueError, AttributeError, KeyError) as exc:
        raise TransportError(f"{operation} returned malformed response: {exc}") from exc


def build_login_message(wallet: str, nonce: str, issued_at: int, chain_id: int = 1) -> str:
    return f"ZK-Clear Wallet Login\nwallet:{wallet}\nnonce:{nonce}\nissued_at:{issued_at}\nchain_id:{chain_id}"


_FAKE_PROGRESSION = ("QUEUED", "PROVING", "PUBLISHED")


@dataclass
class FakeDeskBackend:
    """In-memory backend. Proof jobs walk QUEUED -> PROVING -> PUBLISHED unless snapshots are scripted."""

    roles: dict[str, str] = field(default_factory=dict)
    default_role: str = "dealer"
    token_ttl_secs: int = 3600
    orchestration: Mapping[str, Any] | None = None
    proof_snapshots: list[Mapping[str, Any]] = field(default_factory=list)
    clock: Callable[[], float] = time.time
    calls: list[str] = field(default_factory=list)
    _pending: dict[str, str] = field(default_factory=dict)
    _tokens: dict[str, str] = field(default_factory=dict)
    _polls: int = 0

    def _now(self) -> int:
        return int(self.clock())

    async def request_nonce(self, wallet_address: str) -> NonceChallenge:
        self.calls.append("nonce")
        nonce = uuid.uuid4().hex
        message = build_login_message(wallet_address, nonce, self._now())
        self._pending[wallet_address] = message
        return NonceChallenge(
            accepted=True,
            wallet_address=wallet_address,
            nonce=nonce,
            message=message,
            expires_at=self._now() + 300,
        )

    async def verify_signature(self, wallet_address: str, signature: str) -> VerifiedToken:
        self.calls.append("verify")
        if self._pending.pop(wallet_address, None) is None or not signature:
            return VerifiedToken(
                accepted=False,
                access_token="",
                wallet_address=wallet_address,
                role="",
                expires_at=0,
                error_code="NONCE_NOT_FOUND",
                reason="nonce not found or already used",
            )
        token = f"fake-{uuid.uuid4().hex}"
        self._tokens[token] = wallet_address
        return VerifiedToken(
            accepted=True,
            access_token=token,
            wallet_address=wallet_address,
            role=self.roles.get(wallet_address, self.default_role),
            expires_at=self._now() + self.token_ttl_secs,
        )

    async def fetch_me(self, access_token: str) -> WalletIdentity:
        self.calls.append("me")
        address = self._tokens.get(access_token)
        if address is None:
            return WalletIdentity(
                authenticated=False,
                wallet_address="",
                role="",
                error_code="INVALID_TOKEN",
                reason="wallet session is not authenticated",
            )
        return WalletIdentity(
            authenticated=True,
            wallet_address=address,
            role=self.roles.get(address, self.default_role),
        )

    def issue_token(self, wallet_address: str) -> str:
        token = f"fake-{uuid.uuid4().hex}"
        self._tokens[token] = wallet_address
        return token

    async def start_orchestration(
        self,
        access_token: str,
        left: DealerIntent,
        right: DealerIntent,
        proof_type: str = PROOF_TYPE,
    ) -> OrchestrationResult:
        self.calls.append("orchestrate")
        if access_token not in self._tokens:
            raise DomainRejection("UNAUTHORIZED", "invalid bearer token", 401)
        if self.orchestration is not None:
            return parse_response(OrchestrationResult.from_payload, self.orchestration, "orchestration")

        run_id = f"run-{uuid.uuid4().hex[:12]}"
        submissions = [
            {
                "accepted": True,
                "workflow_run_id": run_id,
                "intent_ids": [f"intent-{party.counterparty_id}"],
                "commitment_hashes": [f"0x{uuid.uuid4().hex}"],
                "reason": "accepted",
            }
            for party in (left, right)
        ]
        compliance = [
            {"subject_id": party.counterparty_id, "passed": True, "decision": "ALLOW"}
            for party in (left, right)
        ]
        return OrchestrationResult.from_payload(
            {
                "accepted": True,
                "workflow_run_id": run_id,
                "policy_version": "v1",
                "intent_submissions": submissions,
                "compliance_results": compliance,
                "proof_job": {
                    "accepted": True,
                    "job_id": f"job-{run_id}",
                    "workflow_run_id": run_id,
                    "policy_version": "v1",
                    "proof_type": proof_type,
                    "reason": "queued",
                },
                "reason": "orchestration started",
            }
        )

    async def fetch_proof_jobs(self, workflow_run_id: str, access_token: str | None = None) -> ProofJobsByRun:
        self.calls.append("proof_jobs")
        if self.proof_snapshots:
            payload = self.proof_snapshots.pop(0) if len(self.proof_snapshots) > 1 else self.proof_snapshots[0]
            return parse_response(ProofJobsByRun.from_payload, payload, "proof-jobs fetch")

        step = min(self._polls, len(_FAKE_PROGRESSION) - 1)
        self._polls += 1
        now = self._now()
        transitions = [
            {"from_status": _FAKE_PROGRESSION[i - 1] if i else None, "to_status": s, "transitioned_at": now - (step - i)}
            for i, s in enumerate(_FAKE_PROGRESSION[: step + 1])
        ]
        job = {
            "job_id": f"job-{workflow_run_id}",
            "workflow_run_id": workflow_run_id,
            "policy_version": "v1",
            "proof_type": PROOF_TYPE,
            "status": _FAKE_PROGRESSION[step],
            "attempt_count": 1,
            "transitions": transitions,
        }
        return ProofJobsByRun.from_payload(
            {"found": True, "workflow_run_id": workflow_run_id, "jobs": [job], "reason": "ok"}
        )
