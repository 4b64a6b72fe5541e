from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Mapping, Sequence

Role = Literal["dealer", "ops", "compliance"]
PanelKey = Literal["dealer", "ops", "compliance"]
Side = Literal["buy", "sell"]

PROOF_STATUSES = ("QUEUED", "PROVING", "PROVED", "PUBLISHING", "PUBLISHED", "FAILED")
TERMINAL_STATUSES = frozenset({"PUBLISHED", "FAILED"})


def _opt_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _opt_int(value: Any) -> int | None:
    if value is None:
        return None
    return int(value)


@dataclass(frozen=True)
class WalletSession:
    access_token: str
    wallet_address: str
    role: Role
    expires_at: int

    def to_record(self) -> dict[str, Any]:
        return {
            "accessToken": self.access_token,
            "walletAddress": self.wallet_address,
            "role": self.role,
            "expiresAt": self.expires_at,
        }


@dataclass(frozen=True)
class RolePanels:
    dealer: bool
    ops: bool
    compliance: bool

    def visible(self) -> tuple[str, ...]:
        return tuple(k for k in ("dealer", "ops", "compliance") if getattr(self, k))


@dataclass(frozen=True)
class LoginResult:
    wallet_address: str
    role: Role
    panels: RolePanels


@dataclass(frozen=True)
class PlainIntent:
    side: Side
    asset_pair: str
    amount: str
    limit_price: str
    settlement_currency: str
    counterparty_id: str


@dataclass(frozen=True)
class BuiltIntent:
    encrypted_payload: str
    signature: str
    signer_public_key: str
    nonce: str
    timestamp: int

    def to_wire(self) -> dict[str, Any]:
        return {
            "encrypted_payload": self.encrypted_payload,
            "signature": self.signature,
            "signer_public_key": self.signer_public_key,
            "nonce": self.nonce,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class DealerIntent:
    """A built intent plus the identifying metadata of the party submitting it."""

    built: BuiltIntent
    counterparty_id: str
    country: str | None = None
    wallet_address: str | None = None

    def subject(self) -> dict[str, Any]:
        return {
            "counterparty": {
                "counterparty_id": self.counterparty_id,
                "country": self.country or None,
                "wallet_address": self.wallet_address or None,
            }
        }


@dataclass(frozen=True)
class NonceChallenge:
    accepted: bool
    wallet_address: str
    nonce: str
    message: str
    expires_at: int
    error_code: str | None = None
    reason: str = ""

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> NonceChallenge:
        return cls(
            accepted=bool(data.get("accepted", False)),
            wallet_address=str(data.get("wallet_address", "")),
            nonce=str(data.get("nonce", "")),
            message=str(data.get("message", "")),
            expires_at=int(data.get("expires_at") or 0),
            error_code=_opt_str(data.get("error_code")),
            reason=str(data.get("reason", "")),
        )


@dataclass(frozen=True)
class VerifiedToken:
    accepted: bool
    access_token: str
    wallet_address: str
    role: str
    expires_at: int
    error_code: str | None = None
    reason: str = ""

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> VerifiedToken:
        return cls(
            accepted=bool(data.get("accepted", False)),
            access_token=str(data.get("access_token", "")),
            wallet_address=str(data.get("wallet_address", "")),
            role=str(data.get("role", "")),
            expires_at=int(data.get("expires_at") or 0),
            error_code=_opt_str(data.get("error_code")),
            reason=str(data.get("reason", "")),
        )


@dataclass(frozen=True)
class WalletIdentity:
    authenticated: bool
    wallet_address: str
    role: str
    error_code: str | None = None
    reason: str = ""

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> WalletIdentity:
        return cls(
            authenticated=bool(data.get("authenticated", False)),
            wallet_address=str(data.get("wallet_address", "")),
            role=str(data.get("role", "")),
            error_code=_opt_str(data.get("error_code")),
            reason=str(data.get("reason", "")),
        )


@dataclass(frozen=True)
class IntentSubmission:
    accepted: bool
    workflow_run_id: str
    intent_ids: Sequence[str]
    commitment_hashes: Sequence[str]
    error_code: str | None
    reason: str

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> IntentSubmission:
        return cls(
            accepted=bool(data.get("accepted", False)),
            workflow_run_id=str(data.get("workflow_run_id", "")),
            intent_ids=tuple(data.get("intent_ids") or ()),
            commitment_hashes=tuple(data.get("commitment_hashes") or ()),
            error_code=_opt_str(data.get("error_code")),
            reason=str(data.get("reason", "")),
        )


@dataclass(frozen=True)
class ComplianceResult:
    subject_id: str
    passed: bool
    decision: str
    reason_code: str | None

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> ComplianceResult:
        return cls(
            subject_id=str(data.get("subject_id", "")),
            passed=bool(data.get("passed", False)),
            decision=str(data.get("decision", "")),
            reason_code=_opt_str(data.get("reason_code")),
        )


@dataclass(frozen=True)
class ProofJobAdmission:
    accepted: bool
    idempotent: bool
    replayed: bool
    job_id: str
    workflow_run_id: str
    policy_version: str
    proof_type: str
    error_code: str | None
    reason: str

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> ProofJobAdmission:
        return cls(
            accepted=bool(data.get("accepted", False)),
            idempotent=bool(data.get("idempotent", False)),
            replayed=bool(data.get("replayed", False)),
            job_id=str(data.get("job_id", "")),
            workflow_run_id=str(data.get("workflow_run_id", "")),
            policy_version=str(data.get("policy_version", "")),
            proof_type=str(data.get("proof_type", "")),
            error_code=_opt_str(data.get("error_code")),
            reason=str(data.get("reason", "")),
        )


@dataclass(frozen=True)
class OrchestrationResult:
    accepted: bool
    workflow_run_id: str
    policy_version: str
    policy_hash: str
    attestation_id: str
    attestation_hash: str
    intent_submissions: Sequence[IntentSubmission]
    compliance_results: Sequence[ComplianceResult]
    proof_job: ProofJobAdmission | None
    error_code: str | None
    reason: str
    raw: Mapping[str, Any]

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> OrchestrationResult:
        proof_job = data.get("proof_job")
        return cls(
            accepted=bool(data.get("accepted", False)),
            workflow_run_id=str(data.get("workflow_run_id", "")),
            policy_version=str(data.get("policy_version", "")),
            policy_hash=str(data.get("policy_hash", "")),
            attestation_id=str(data.get("attestation_id", "")),
            attestation_hash=str(data.get("attestation_hash", "")),
            intent_submissions=tuple(IntentSubmission.from_payload(i) for i in data.get("intent_submissions") or ()),
            compliance_results=tuple(ComplianceResult.from_payload(c) for c in data.get("compliance_results") or ()),
            proof_job=ProofJobAdmission.from_payload(proof_job) if isinstance(proof_job, Mapping) else None,
            error_code=_opt_str(data.get("error_code")),
            reason=str(data.get("reason", "")),
            raw=dict(data),
        )

    @property
    def should_track_proof(self) -> bool:
        return bool(self.workflow_run_id) and self.proof_job is not None and self.proof_job.accepted


@dataclass(frozen=True)
class Transition:
    from_status: str | None
    to_status: str
    transitioned_at: int
    error_code: str | None = None

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> Transition:
        return cls(
            from_status=_opt_str(data.get("from_status")),
            to_status=str(data.get("to_status", "")),
            transitioned_at=int(data.get("transitioned_at", 0)),
            error_code=_opt_str(data.get("error_code")),
        )


@dataclass(frozen=True)
class ProofJob:
    job_id: str
    workflow_run_id: str
    policy_version: str
    proof_type: str
    status: str
    attempt_count: int
    retry_count: int
    retry_scheduled: bool
    queue_latency_ms: int | None
    prove_duration_ms: int | None
    transitions: Sequence[Transition]
    last_error_code: str | None
    last_error_message: str | None

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> ProofJob:
        return cls(
            job_id=str(data.get("job_id", "")),
            workflow_run_id=str(data.get("workflow_run_id", "")),
            policy_version=str(data.get("policy_version", "")),
            proof_type=str(data.get("proof_type", "")),
            status=str(data.get("status", "")).upper(),
            attempt_count=int(data.get("attempt_count") or 0),
            retry_count=int(data.get("retry_count") or 0),
            retry_scheduled=bool(data.get("retry_scheduled", False)),
            queue_latency_ms=_opt_int(data.get("queue_latency_ms")),
            prove_duration_ms=_opt_int(data.get("prove_duration_ms")),
            transitions=tuple(Transition.from_payload(t) for t in data.get("transitions") or ()),
            last_error_code=_opt_str(data.get("last_error_code")),
            last_error_message=_opt_str(data.get("last_error_message")),
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass(frozen=True)
class ProofJobsByRun:
    found: bool
    workflow_run_id: str
    jobs: Sequence[ProofJob]
    error_code: str | None
    reason: str

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> ProofJobsByRun:
        return cls(
            found=bool(data.get("found", False)),
            workflow_run_id=str(data.get("workflow_run_id", "")),
            jobs=tuple(ProofJob.from_payload(j) for j in data.get("jobs") or ()),
            error_code=_opt_str(data.get("error_code")),
            reason=str(data.get("reason", "")),
        )
