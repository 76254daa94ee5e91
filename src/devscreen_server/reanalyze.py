"""Analysis sweep CLI — ``devscreen-reanalyze``.

Re-runs the analysis job for completed sessions whose analysis never
finished: ``FAILED`` jobs and ``PENDING`` jobs that were lost (for example
when the server restarted before its background task ran).  Intended for
cron jobs or one-off maintenance.

Examples::

    # Retry every FAILED analysis
    uv run devscreen-reanalyze

    # Also pick up PENDING jobs untouched for 30 minutes
    uv run devscreen-reanalyze --status FAILED --status PENDING --older-than-minutes 30
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

logger = logging.getLogger(__name__)


async def run_reanalyze(
    *,
    status_filter: list[str] | None = None,
    older_than_minutes: int = 0,
    limit: int = 100,
) -> int:
    """Run the analysis job for matching sessions; return how many succeeded.

    Each session gets its own job (and its own DB sessions), exactly as the
    server's background dispatcher runs it.
    """
    # Lazy imports to avoid loading DB machinery at module import time
    from devscreen_db.engine import dispose_engine, get_session_factory
    from devscreen_db.models.enums import AnalysisStatus
    from devscreen_db.repository import SessionRepository
    from devscreen_rules.analyzer import RiskAnalyzer
    from devscreen_rules.catalog import QuestionCatalog
    from devscreen_rules.jobs import run_analysis_job
    from devscreen_rules.llm import build_completion_client
    from devscreen_rules.payments import LedgerPaymentGateway
    from devscreen_rules.pipeline import ScreeningPipeline

    from devscreen_server.config import load_settings

    if status_filter is None:
        status_filter = [AnalysisStatus.FAILED.value]

    settings = load_settings()
    catalog = QuestionCatalog(settings.catalog_path).load()
    pipeline = ScreeningPipeline(
        catalog,
        settings=settings.screening,
        analyzer=RiskAnalyzer(build_completion_client(settings.llm)),
        payments=LedgerPaymentGateway(),
    )
    factory = get_session_factory()

    try:
        async with factory() as db:
            rows = await SessionRepository().list_by_analysis_status(
                db,
                status_filter,
                older_than_minutes=older_than_minutes,
                limit=limit,
            )
            session_ids = [str(row.session_id) for row in rows]

        succeeded = 0
        for session_id in session_ids:
            analysis_id = await run_analysis_job(
                pipeline,
                factory,
                session_id,
                max_attempts=settings.screening.analysis_max_attempts,
                retry_delay_seconds=settings.screening.analysis_retry_delay_seconds,
            )
            if analysis_id is not None:
                succeeded += 1

        logger.info(
            "Reanalysis complete: matched=%d, succeeded=%d, statuses=%s",
            len(session_ids), succeeded, ",".join(status_filter),
        )
        return succeeded
    finally:
        await dispose_engine()


def cli() -> None:
    """Console-script entry point: ``devscreen-reanalyze``.

    Parses command-line arguments and runs the async sweep.
    """
    parser = argparse.ArgumentParser(
        prog="devscreen-reanalyze",
        description="Re-run analysis for sessions whose analysis did not finish.",
    )
    parser.add_argument(
        "--status",
        action="append",
        default=None,
        choices=["PENDING", "FAILED"],
        help="Only target sessions with this analysis status (repeatable). Default: FAILED",
    )
    parser.add_argument(
        "--older-than-minutes",
        type=int,
        default=0,
        help="Skip sessions updated within this many minutes (default: 0, no filter)",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=100,
        help="Maximum number of sessions to process (default: 100)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    succeeded = asyncio.run(
        run_reanalyze(
            status_filter=args.status,
            older_than_minutes=args.older_than_minutes,
            limit=args.limit,
        )
    )

    print(f"Analyses generated: {succeeded}")
    sys.exit(0)
