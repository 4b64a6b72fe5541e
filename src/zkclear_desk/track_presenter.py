"""One-line, color-coded proof status rendering for live tracking."""
from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import TextIO

from .proof_tracker import TrackerView

__all__ = ["ColorMode", "detect_color_mode", "render_status_line"]

FG_RED = 31
FG_GREEN = 32
FG_YELLOW = 33
FG_BLUE = 34
FG_MAGENTA = 35
FG_CYAN = 36
FG_GRAY = 90

_STATUS_COLORS = {
    "QUEUED": FG_GRAY,
    "PROVING": FG_CYAN,
    "PROVED": FG_BLUE,
    "PUBLISHING": FG_MAGENTA,
    "PUBLISHED": FG_GREEN,
    "FAILED": FG_RED,
}


@dataclass(frozen=True)
class ColorMode:
    """Whether status lines for a tracked run carry ANSI styling."""

    enabled: bool


def detect_color_mode(mode: str, stream: TextIO | None = None) -> ColorMode:
    """
    Resolve the --color flag of the track and submit commands.

    Args:
        mode: "auto", "always", or "never"
        stream: Where status lines go; defaults to stdout. Only consulted in auto mode.

    Returns:
        ColorMode enabled only for an interactive stream without NO_COLOR set.
    """
    m = (mode or "auto").lower().strip()
    if m == "never":
        return ColorMode(enabled=False)
    if m == "always":
        return ColorMode(enabled=True)
    out = stream or sys.stdout
    if not out.isatty() or os.getenv("NO_COLOR"):
        return ColorMode(enabled=False)
    return ColorMode(enabled=True)


def _paint(text: str, mode: ColorMode, fg: int | None, bold: bool = False) -> str:
    if not mode.enabled or (fg is None and not bold):
        return text
    codes = ([1] if bold else []) + ([fg] if fg is not None else [])
    return f"\x1b[{';'.join(str(c) for c in codes)}m{text}\x1b[0m"


def render_status_line(view: TrackerView, mode: ColorMode) -> str:
    poll = f"#{view.polls:<3}"
    run = (view.workflow_run_id or "")[:16]
    if view.error:
        return _paint(f"{poll} run={run}  fetch error: {view.error}", mode, FG_YELLOW)
    job = view.job
    if job is None:
        return _paint(f"{poll} run={run}  waiting for proof job", mode, FG_GRAY)
    status = job.status
    base = f"{poll} run={run}  job={job.job_id[:16]}  {status:<10}  attempts={job.attempt_count}"
    if job.last_error_code:
        base += f"  error={job.last_error_code}"
    return _paint(base, mode, _STATUS_COLORS.get(status), bold=job.is_terminal)
