"""Questionnaire session ORM models — session, per-question responses, analysis.

A session is one questionnaire pass for a child.  Responses are stored one
row per question so they can be listed in answer order, and the analysis
verdict lives in its own table with a unique session reference so that at
most one analysis can exist per session even under concurrent generation.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Float,
    ForeignKey,
    Index,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from devscreen_db.models.base import Base
from devscreen_db.models.enums import SessionStatus


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ScreeningSession(Base):
    """One row per questionnaire session (``screening_sessions``)."""

    __tablename__ = "screening_sessions"

    session_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # --- Ownership ---
    family_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    child_name: Mapped[str] = mapped_column(Text, nullable=False)
    child_age_months: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    # Band label ("9-12") assigned at creation time
    age_group: Mapped[str] = mapped_column(String(8), nullable=False)

    # --- Lifecycle ---
    status: Mapped[SessionStatus] = mapped_column(
        String(20),
        nullable=False,
        default=SessionStatus.IN_PROGRESS,
        index=True,
    )
    # Set when the COMPLETED -> PAYMENT_PENDING transition happens
    payment_intent_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    # PENDING | READY | FAILED; null until the session is completed
    analysis_status: Mapped[str | None] = mapped_column(String(10), nullable=True)

    # --- Timestamps ---
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_now,
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_now, onupdate=_now,
    )

    __table_args__ = (
        CheckConstraint(
            "child_age_months BETWEEN 0 AND 36",
            name="ck_child_age_range",
        ),
        Index("ix_screening_sessions_payment_intent", "payment_intent_id"),
        Index(
            "ix_screening_sessions_analysis_status",
            "analysis_status",
            postgresql_where=text("analysis_status IS NOT NULL"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<ScreeningSession(id={self.session_id!s}, family={self.family_id!r}, "
            f"age={self.child_age_months}, status={self.status!r})>"
        )


class ScreeningResponse(Base):
    """One answer to one catalog question within a session.

    The question text, category and milestone age are snapshots of the
    catalog entry at save time.
    """

    __tablename__ = "screening_responses"

    response_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    session_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("screening_sessions.session_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_id: Mapped[str] = mapped_column(Text, nullable=False)
    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    response_value: Mapped[str] = mapped_column(String(20), nullable=False)
    milestone_age_months: Mapped[int | None] = mapped_column(
        SmallInteger, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_now,
    )

    __table_args__ = (
        # One answer per question per session
        UniqueConstraint("session_id", "question_id", name="uq_session_question"),
        CheckConstraint(
            "response_value IN ('yes', 'no', 'sometimes', 'not_applicable')",
            name="ck_response_value",
        ),
    )


class ScreeningAnalysis(Base):
    """Risk verdict for a session.  Written once, never updated."""

    __tablename__ = "screening_analysis"

    analysis_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    session_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("screening_sessions.session_id", ondelete="CASCADE"),
        nullable=False,
    )
    risk_level: Mapped[str] = mapped_column(String(10), nullable=False)
    risk_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    # ["recommendation", ...]
    recommendations: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    # Provenance
    ai_model: Mapped[str] = mapped_column(Text, nullable=False)
    ai_provider: Mapped[str] = mapped_column(Text, nullable=False)
    raw_response: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_now,
    )

    __table_args__ = (
        # At most one analysis per session; the generator relies on this
        # to resolve concurrent inserts.
        UniqueConstraint("session_id", name="uq_analysis_session"),
        CheckConstraint(
            "risk_level IN ('LOW', 'MODERATE', 'HIGH')",
            name="ck_analysis_risk_level",
        ),
        CheckConstraint(
            "risk_score IS NULL OR risk_score BETWEEN 0 AND 100",
            name="ck_analysis_risk_score",
        ),
    )
