"""
Live view of the proof job behind a workflow run.

One polling task per tracker. Every activation bumps a generation counter;
a poll only writes to the view while its generation is still current, so a
late answer for a superseded run is dropped instead of applied.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Callable, Iterable

from .backend_client import DeskBackend
from .domain_types import OrchestrationResult, ProofJob, Transition
from .errors import DeskError
from .session_store import SessionStore

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECS = 3.0


def order_timeline(transitions: Iterable[Transition]) -> tuple[Transition, ...]:
    return tuple(sorted(transitions, key=lambda t: t.transitioned_at))


@dataclass(frozen=True)
class TrackerView:
    workflow_run_id: str | None = None
    started: bool = False
    loading: bool = False
    finished: bool = False
    job: ProofJob | None = None
    job_count: int = 0
    timeline: tuple[Transition, ...] = ()
    error: str | None = None
    polls: int = 0


IDLE_VIEW = TrackerView()


class ProofTracker:
    def __init__(
        self,
        backend: DeskBackend,
        store: SessionStore | None = None,
        interval_secs: float = DEFAULT_INTERVAL_SECS,
        on_update: Callable[[TrackerView], None] | None = None,
    ) -> None:
        self.backend = backend
        self.store = store
        self.interval_secs = interval_secs
        self.on_update = on_update
        self._view = IDLE_VIEW
        self._generation = 0
        self._task: asyncio.Task[None] | None = None

    @property
    def view(self) -> TrackerView:
        return self._view

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def track(self, result: OrchestrationResult) -> bool:
        """Start tracking when the orchestration admitted a proof job, otherwise go idle."""
        if not result.should_track_proof:
            self.cancel()
            self._set(self._generation, IDLE_VIEW)
            return False
        self.start(result.workflow_run_id)
        return True

    def start(self, workflow_run_id: str) -> None:
        self.cancel()
        generation = self._generation
        self._set(generation, TrackerView(workflow_run_id=workflow_run_id, started=True))
        logger.info("Tracking proof jobs for run %s", workflow_run_id)
        self._task = asyncio.get_running_loop().create_task(self._run(workflow_run_id, generation))

    def cancel(self) -> None:
        self._generation += 1
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    async def wait(self) -> TrackerView:
        """Block until the current polling loop ends on its own or is cancelled."""
        task = self._task
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
        return self._view

    def _current(self, generation: int) -> bool:
        return generation == self._generation

    def _set(self, generation: int, view: TrackerView) -> None:
        if not self._current(generation):
            return
        self._view = view
        if self.on_update is not None:
            self.on_update(view)

    async def _run(self, workflow_run_id: str, generation: int) -> None:
        loop = asyncio.get_running_loop()
        next_at = loop.time()
        while self._current(generation):
            await self._poll_once(workflow_run_id, generation)
            if not self._current(generation) or self._view.finished:
                return
            next_at += self.interval_secs
            await asyncio.sleep(max(0.0, next_at - loop.time()))

    async def _poll_once(self, workflow_run_id: str, generation: int) -> None:
        self._set(generation, replace(self._view, loading=True))
        session = self.store.load() if self.store is not None else None
        token = session.access_token if session is not None else None
        try:
            payload = await self.backend.fetch_proof_jobs(workflow_run_id, token)
        except DeskError as exc:
            self._poll_failed(workflow_run_id, generation, str(exc))
            return
        except (TypeError, ValueError, AttributeError, KeyError) as exc:
            self._poll_failed(workflow_run_id, generation, f"proof-jobs fetch returned malformed response: {exc}")
            return

        if not self._current(generation):
            return

        jobs = list(payload.jobs)
        if len(jobs) > 1:
            logger.warning(
                "Run %s has %d proof jobs; showing %s", workflow_run_id, len(jobs), jobs[0].job_id
            )
        job = jobs[0] if jobs else None
        finished = job is not None and job.is_terminal
        self._set(
            generation,
            replace(
                self._view,
                loading=False,
                finished=finished,
                job=job,
                job_count=len(jobs),
                timeline=order_timeline(job.transitions) if job is not None else (),
                error=None,
                polls=self._view.polls + 1,
            ),
        )
        if finished and job is not None:
            logger.info("Proof job %s reached %s; tracking stopped", job.job_id, job.status)

    def _poll_failed(self, workflow_run_id: str, generation: int, message: str) -> None:
        if not self._current(generation):
            return
        logger.warning("Proof job fetch for %s failed: %s", workflow_run_id, message)
        self._set(
            generation,
            replace(self._view, loading=False, error=message or "proof tracker fetch failed", polls=self._view.polls + 1),
        )
