"""Single-submission screening model (``screenings``).

This is the simpler workflow: the whole answer set is submitted at once,
scored by the rule engine, and stored in one row with its answers embedded
as JSONB.  It is the representation the clinic review queue works from.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Float, Index, SmallInteger, String, Text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from devscreen_db.models.base import Base
from devscreen_db.models.enums import ScreeningStatus


class Screening(Base):
    """One row per submitted screening."""

    __tablename__ = "screenings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    family_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    child_name: Mapped[str] = mapped_column(Text, nullable=False)
    child_age_months: Mapped[int] = mapped_column(SmallInteger, nullable=False)

    # [{"question_id", "response", "category", "question_text",
    #   "milestone_age_months"}, ...]
    answers: Mapped[list] = mapped_column(JSONB, nullable=False)

    # --- Rule engine verdict ---
    ai_risk_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    ai_risk_level: Mapped[str | None] = mapped_column(String(10), nullable=True)
    ai_summary: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[ScreeningStatus] = mapped_column(
        String(20),
        nullable=False,
        default=ScreeningStatus.PENDING_REVIEW,
    )

    # --- Clinical review outcome (denormalised for the clinic list) ---
    clinical_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    clinical_risk_level: Mapped[str | None] = mapped_column(String(10), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint(
            "child_age_months BETWEEN 0 AND 36",
            name="ck_screening_child_age_range",
        ),
        Index("ix_screenings_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Screening(id={self.id!s}, family={self.family_id!r}, "
            f"risk={self.ai_risk_level!r}, status={self.status!r})>"
        )
