from __future__ import annotations

import logging
import time
from typing import Callable

from .backend_client import PROOF_TYPE, DeskBackend
from .domain_types import DealerIntent, OrchestrationResult
from .errors import NoSessionError, OrchestrationRejected
from .session_store import SessionStore, is_session_expired

logger = logging.getLogger(__name__)


class OrchestrationClient:
    """Submits both sides of an OTC trade as one atomic request."""

    def __init__(
        self,
        backend: DeskBackend,
        store: SessionStore,
        proof_type: str = PROOF_TYPE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.backend = backend
        self.store = store
        self.proof_type = proof_type
        self.clock = clock

    async def submit(self, left: DealerIntent, right: DealerIntent) -> OrchestrationResult:
        session = self.store.load()
        if session is None or not session.access_token:
            raise NoSessionError()
        if is_session_expired(session.expires_at, self.clock()):
            raise NoSessionError("wallet session expired; verify access again")

        result = await self.backend.start_orchestration(session.access_token, left, right, self.proof_type)
        if not result.accepted:
            reason = result.reason or "compliance gate blocked orchestration"
            logger.info("Orchestration %s rejected: %s", result.workflow_run_id or "-", reason)
            raise OrchestrationRejected(result.error_code, reason, result=result)

        logger.info("Orchestration %s accepted", result.workflow_run_id)
        return result
