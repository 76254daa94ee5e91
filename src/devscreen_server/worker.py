"""Background analysis dispatch for the HTTP server.

``BackgroundAnalysisDispatcher`` holds the session ids handed to it during
a request and only queues :func:`run_analysis_job` on the request's
``BackgroundTasks`` when :meth:`release` is called.  Routes call
``release()`` after committing, so the job's own DB session always sees
the completed session row.  Depending on the FastAPI version, background
tasks may run before the ``get_db`` dependency exits, so that commit
cannot be relied on.

Ids held by a dispatcher that is never released (the action failed and
rolled back) are dropped.
"""

import logging

from fastapi import BackgroundTasks

from devscreen_db.engine import get_session_factory
from devscreen_rules.config import ScreeningSettings
from devscreen_rules.interfaces import AnalysisDispatcher
from devscreen_rules.jobs import run_analysis_job
from devscreen_rules.pipeline import ScreeningPipeline

logger = logging.getLogger(__name__)


class BackgroundAnalysisDispatcher(AnalysisDispatcher):
    """Runs analysis jobs as FastAPI background tasks once released."""

    def __init__(
        self,
        background_tasks: BackgroundTasks,
        pipeline: ScreeningPipeline,
        settings: ScreeningSettings,
    ) -> None:
        self._tasks = background_tasks
        self._pipeline = pipeline
        self._settings = settings
        self._pending: list[str] = []

    def dispatch(self, session_id: str) -> None:
        self._pending.append(session_id)

    def release(self) -> None:
        """Queue every held job; call only after the transaction committed."""
        pending, self._pending = self._pending, []
        for session_id in pending:
            logger.info("Queueing analysis job for session %s", session_id)
            self._tasks.add_task(self._run, session_id)

    async def _run(self, session_id: str) -> None:
        await run_analysis_job(
            self._pipeline,
            get_session_factory(),
            session_id,
            max_attempts=self._settings.analysis_max_attempts,
            retry_delay_seconds=self._settings.analysis_retry_delay_seconds,
        )
