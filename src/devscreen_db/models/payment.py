"""PaymentIntent ORM model.

The payment subsystem owns these rows; this service creates intents when a
screening needs paying for, and reads their status to decide clinic
visibility.  ``screening_id`` is only set for single-submission screenings;
questionnaire sessions link the other way via
``screening_sessions.payment_intent_id``.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from devscreen_db.models.base import Base
from devscreen_db.models.enums import PaymentStatus


class PaymentIntent(Base):
    """One row per payment intent (``payment_intents``)."""

    __tablename__ = "payment_intents"

    intent_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    family_id: Mapped[str] = mapped_column(Text, nullable=False)
    clinic_id: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    payment_method: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[PaymentStatus] = mapped_column(
        String(20),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    screening_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("screenings.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    settled_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    __table_args__ = (
        Index(
            "ix_payment_intents_settled_screening",
            "screening_id",
            postgresql_where=text("status = 'SETTLED' AND screening_id IS NOT NULL"),
        ),
    )
