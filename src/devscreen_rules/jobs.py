"""Analysis job runner with a bounded retry policy.

Each attempt runs in its own database session so a failed attempt never
leaves a half-written transaction behind for the next one.  Upstream and
database errors are retried with a linear back-off; state errors (session
missing, not completed, no responses) are not.  When all attempts fail the
session's ``analysis_status`` is set to ``FAILED``.
"""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from devscreen_rules.errors import ScreeningError, UpstreamError
from devscreen_rules.pipeline import ScreeningPipeline

logger = logging.getLogger(__name__)


async def run_analysis_job(
    pipeline: ScreeningPipeline,
    session_factory: async_sessionmaker[AsyncSession],
    session_id: str,
    *,
    max_attempts: int = 3,
    retry_delay_seconds: float = 2.0,
) -> str | None:
    """Generate the analysis for *session_id*; return its id or ``None``.

    Never raises for expected failures; they end in ``FAILED``.
    """
    attempts = max(1, max_attempts)
    for attempt in range(1, attempts + 1):
        async with session_factory() as db:
            try:
                analysis_id = await pipeline.generate_analysis(db, session_id=session_id)
                await db.commit()
                logger.info(
                    "Analysis job succeeded: session_id=%s, attempt=%d, analysis_id=%s",
                    session_id, attempt, analysis_id,
                )
                return analysis_id
            except (UpstreamError, SQLAlchemyError) as exc:
                await db.rollback()
                logger.warning(
                    "Analysis job attempt %d/%d failed for session %s: %s",
                    attempt, attempts, session_id, exc,
                )
            except ScreeningError as exc:
                await db.rollback()
                logger.warning(
                    "Analysis job for session %s cannot run: %s", session_id, exc,
                )
                break

        if attempt < attempts:
            await asyncio.sleep(retry_delay_seconds * attempt)

    await _record_failure(pipeline, session_factory, session_id)
    return None


async def _record_failure(
    pipeline: ScreeningPipeline,
    session_factory: async_sessionmaker[AsyncSession],
    session_id: str,
) -> None:
    async with session_factory() as db:
        try:
            await pipeline.mark_analysis_failed(db, session_id=session_id)
            await db.commit()
        except (ScreeningError, SQLAlchemyError) as exc:
            await db.rollback()
            logger.error(
                "Could not record analysis failure for session %s: %s",
                session_id, exc,
            )
            return
    logger.error("Analysis job gave up for session %s", session_id)
