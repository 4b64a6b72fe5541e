from __future__ import annotations

import io
import os
from unittest.mock import patch

from zkclear_desk.domain_types import ProofJob
from zkclear_desk.proof_tracker import TrackerView
from zkclear_desk.track_presenter import ColorMode, detect_color_mode, render_status_line


class _Tty(io.StringIO):
    def isatty(self) -> bool:
        return True


def _job(status: str, **extra: object) -> ProofJob:
    return ProofJob.from_payload({"job_id": "job-1", "workflow_run_id": "run-1", "status": status, **extra})


def test_explicit_modes_ignore_stream() -> None:
    assert detect_color_mode("always", io.StringIO()).enabled
    assert not detect_color_mode("never", _Tty()).enabled


def test_auto_mode_follows_tty_and_no_color() -> None:
    with patch.dict(os.environ, {}, clear=True):
        assert detect_color_mode("auto", _Tty()).enabled
        assert not detect_color_mode("auto", io.StringIO()).enabled
    with patch.dict(os.environ, {"NO_COLOR": "1"}, clear=True):
        assert not detect_color_mode("auto", _Tty()).enabled


def test_status_line_plain_and_colored() -> None:
    view = TrackerView(workflow_run_id="run-1", started=True, job=_job("failed", last_error_code="PROVER_CRASH"), polls=2)

    plain = render_status_line(view, ColorMode(enabled=False))
    assert "FAILED" in plain and "error=PROVER_CRASH" in plain
    assert "\x1b[" not in plain

    colored = render_status_line(view, ColorMode(enabled=True))
    assert colored.startswith("\x1b[1;31m") and colored.endswith("\x1b[0m")


def test_fetch_error_line() -> None:
    view = TrackerView(workflow_run_id="run-1", started=True, error="proof-jobs fetch failed: boom", polls=1)
    assert "fetch error: proof-jobs fetch failed: boom" in render_status_line(view, ColorMode(enabled=False))
