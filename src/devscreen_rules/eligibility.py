"""Clinic eligibility — which screenings the clinic review queue shows.

A screening is visible if and only if it has at least one SETTLED payment
intent and no clinical review.  The default strategy queries the three
tables independently and joins them in memory, which keeps working when
relationship metadata between the tables is unavailable.  A single SQL join
can be enabled as the primary strategy; it degrades to the in-memory join
on any failure.

Failure policy of the in-memory join:

  - payment-intent query fails for a relationship/schema reason: retry once
    unfiltered and apply the SETTLED / non-null filter locally; any other
    failure, or a failed retry, is an upstream error.
  - review query fails: treated as "no reviews exist".  This errs toward
    showing more pending screenings, never fewer.
"""

from __future__ import annotations

import logging
import uuid
from typing import Iterable, Sequence, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from devscreen_db.models.enums import PaymentStatus
from devscreen_db.models.screening import Screening
from devscreen_db.repository import (
    ClinicalReviewRepository,
    PaymentIntentRepository,
    ScreeningRepository,
)

from devscreen_rules.errors import UpstreamError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Substrings (lower-cased) that identify a relationship / schema metadata failure
_RELATIONSHIP_ERROR_MARKERS = ("relationship", "schema cache", "undefinedcolumn")


def filter_eligible(
    screenings: Sequence[T],
    settled_ids: Iterable[uuid.UUID],
    reviewed_ids: Iterable[uuid.UUID],
) -> list[T]:
    """Keep screenings with a settled payment and no review, preserving order."""
    settled = set(settled_ids)
    reviewed = set(reviewed_ids)
    return [
        s for s in screenings
        if s.id in settled and s.id not in reviewed
    ]


def is_relationship_error(exc: BaseException) -> bool:
    """True if *exc* looks like missing relationship / schema metadata."""
    msg = str(exc).lower()
    return any(marker in msg for marker in _RELATIONSHIP_ERROR_MARKERS)


class ClinicQueue:
    """Computes the clinic review queue.

    Args:
        use_sql_join: try the single-query join first, degrading to the
            in-memory join if it fails.
    """

    def __init__(self, *, use_sql_join: bool = False) -> None:
        self._use_sql_join = use_sql_join
        self._screenings = ScreeningRepository()
        self._payments = PaymentIntentRepository()
        self._reviews = ClinicalReviewRepository()

    async def pending_screenings(self, db: AsyncSession) -> list[Screening]:
        """Screenings awaiting clinical review, newest first.

        Raises:
            UpstreamError: if screenings or payment intents cannot be read.
        """
        if self._use_sql_join:
            try:
                return await self._screenings.list_pending_review_joined(db)
            except SQLAlchemyError as exc:
                logger.warning(
                    "Clinic queue SQL join failed, using in-memory join: %s", exc,
                )

        try:
            screenings = await self._screenings.list_newest_first(db)
        except SQLAlchemyError as exc:
            raise UpstreamError(f"Failed to fetch screenings: {exc}") from exc

        settled = await self._settled_screening_ids(db)
        reviewed = await self._reviewed_screening_ids(db)

        eligible = filter_eligible(screenings, settled, reviewed)
        logger.info(
            "Clinic queue: %d screenings, %d settled, %d reviewed, %d eligible",
            len(screenings), len(settled), len(reviewed), len(eligible),
        )
        return eligible

    async def _settled_screening_ids(self, db: AsyncSession) -> set[uuid.UUID]:
        try:
            return await self._payments.list_settled_screening_ids(db)
        except SQLAlchemyError as exc:
            if not is_relationship_error(exc):
                raise UpstreamError(f"Failed to fetch payment intents: {exc}") from exc
            logger.warning(
                "Schema metadata issue on payment intents, retrying unfiltered: %s",
                exc,
            )

        try:
            intents = await self._payments.list_all(db)
        except SQLAlchemyError as exc:
            logger.error("Unfiltered payment intent query also failed: %s", exc)
            raise UpstreamError(f"Failed to fetch payment intents: {exc}") from exc

        return {
            i.screening_id
            for i in intents
            if i.status == PaymentStatus.SETTLED.value and i.screening_id is not None
        }

    async def _reviewed_screening_ids(self, db: AsyncSession) -> set[uuid.UUID]:
        try:
            return await self._reviews.list_reviewed_screening_ids(db)
        except SQLAlchemyError as exc:
            logger.warning(
                "Error fetching clinical reviews, assuming none exist: %s", exc,
            )
            return set()
