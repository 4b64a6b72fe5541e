from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable

from .domain_types import LoginResult, OrchestrationResult, RolePanels, Transition
from .errors import DomainRejection
from .proof_tracker import TrackerView


def _ts(epoch: int) -> str:
    return datetime.fromtimestamp(epoch, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def render_panels(panels: RolePanels) -> str:
    return "\n".join(
        f"- {name:<11} {'visible' if getattr(panels, name) else 'hidden'}"
        for name in ("dealer", "ops", "compliance")
    )


def render_login(result: LoginResult | None) -> str:
    if result is None:
        return "No wallet session"
    return "\n".join(
        [
            f"Wallet: {result.wallet_address}",
            f"Role: {result.role}",
            "Panels:",
            render_panels(result.panels),
        ]
    )


def intake_summary(result: OrchestrationResult) -> str:
    accepted = sum(1 for s in result.intent_submissions if s.accepted)
    return f"{accepted}/{len(result.intent_submissions)} intents accepted"


def match_summary(result: OrchestrationResult) -> str:
    intents = sum(len(s.intent_ids) for s in result.intent_submissions)
    commitments = sum(len(s.commitment_hashes) for s in result.intent_submissions)
    return f"{intents} intent ids, {commitments} commitments"


def compliance_summary(result: OrchestrationResult) -> str | None:
    if not result.compliance_results:
        return None
    passed = sum(1 for r in result.compliance_results if r.passed)
    return f"{passed}/{len(result.compliance_results)} parties passed"


def render_orchestration(result: OrchestrationResult) -> str:
    lines = [
        f"Run: {result.workflow_run_id}",
        f"Accepted: {result.accepted}",
        f"Policy: {result.policy_version} {result.policy_hash}".rstrip(),
        f"Intake: {intake_summary(result)}",
        f"Match: {match_summary(result)}",
    ]
    compliance = compliance_summary(result)
    if compliance:
        lines.append(f"Compliance: {compliance}")
    for c in result.compliance_results:
        code = f" ({c.reason_code})" if c.reason_code else ""
        lines.append(f"- {c.subject_id}: {c.decision}{code}")
    job = result.proof_job
    if job is None:
        lines.append("Proof job: none")
    else:
        lines.append(f"Proof job: {job.job_id or '-'} accepted={job.accepted} {job.reason}".rstrip())
    if not result.accepted:
        lines.append(f"Error: {DomainRejection(result.error_code, result.reason or 'compliance gate blocked orchestration')}")
    return "\n".join(lines)


def render_timeline(transitions: Iterable[Transition]) -> str:
    lines = []
    for t in transitions:
        err = f" error={t.error_code}" if t.error_code else ""
        lines.append(f"{_ts(t.transitioned_at)}  {t.from_status or '-':>10} -> {t.to_status}{err}")
    return "\n".join(lines)


def render_tracker(view: TrackerView) -> str:
    if not view.started:
        return "Proof tracking not started"
    job = view.job
    if job is None:
        lines = [f"Run: {view.workflow_run_id}", "No proof job yet"]
    else:
        lines = [
            f"Run: {view.workflow_run_id}",
            f"Job: {job.job_id} ({job.proof_type}, policy {job.policy_version})",
            f"Status: {job.status}",
            f"Attempts: {job.attempt_count} retries={job.retry_count} retry_scheduled={job.retry_scheduled}",
        ]
        if job.queue_latency_ms is not None:
            lines.append(f"Queue latency: {job.queue_latency_ms} ms")
        if job.prove_duration_ms is not None:
            lines.append(f"Prove duration: {job.prove_duration_ms} ms")
        if job.last_error_code or job.last_error_message:
            lines.append(f"Last error: [{job.last_error_code or '-'}] {job.last_error_message or ''}".rstrip())
        if view.timeline:
            lines.append("Timeline:")
            lines.append(render_timeline(view.timeline))
    if view.error:
        lines.append(f"Fetch error: {view.error}")
    return "\n".join(lines)
