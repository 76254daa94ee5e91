"""ClinicalReview ORM model — a pediatrician's judgment on a screening.

The existence of a row removes the screening from the clinic queue.  The
``result_hash`` column holds the digest that binds the review content to
its screening (see ``devscreen_rules.hashing``).
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Float, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from devscreen_db.models.base import Base


class ClinicalReview(Base):
    """One row per clinical review (``clinical_reviews``)."""

    __tablename__ = "clinical_reviews"

    review_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    screening_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("screenings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    reviewer_id: Mapped[str] = mapped_column(Text, nullable=False)
    final_diagnosis: Mapped[str | None] = mapped_column(Text, nullable=True)
    recommendations: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Per-domain clinical sub-scores
    social_score_clinical: Mapped[float | None] = mapped_column(Float, nullable=True)
    fine_motor_clinical: Mapped[float | None] = mapped_column(Float, nullable=True)
    language_clinical: Mapped[float | None] = mapped_column(Float, nullable=True)
    gross_motor_clinical: Mapped[float | None] = mapped_column(Float, nullable=True)

    clinical_risk_level: Mapped[str | None] = mapped_column(String(10), nullable=True)
    # ISO-8601 string exactly as hashed, so verification is reproducible
    reviewed_at: Mapped[str] = mapped_column(Text, nullable=False)
    result_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
