"""Create the screening, payment and review tables.

Initial migration.  Creates the questionnaire tables (screening_sessions,
screening_responses, screening_analysis), the single-submission
``screenings`` table, ``payment_intents`` and ``clinical_reviews``.

Revision ID: 20261001_initial
Revises:
Create Date: 2026-10-01
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID

# revision identifiers, used by Alembic.
revision = "20261001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(*names: str) -> list[sa.Column]:
    return [
        sa.Column(
            name,
            TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        )
        for name in names
    ]


def upgrade() -> None:
    # --- Questionnaire sessions ---
    op.create_table(
        "screening_sessions",
        sa.Column("session_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("family_id", sa.Text, nullable=False),
        sa.Column("child_name", sa.Text, nullable=False),
        sa.Column("child_age_months", sa.SmallInteger, nullable=False),
        sa.Column("age_group", sa.String(8), nullable=False),
        sa.Column(
            "status",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'IN_PROGRESS'"),
        ),
        sa.Column("payment_intent_id", sa.Text, nullable=True),
        sa.Column("analysis_status", sa.String(10), nullable=True),
        *_timestamps("created_at", "updated_at"),
        sa.CheckConstraint(
            "child_age_months BETWEEN 0 AND 36", name="ck_child_age_range"
        ),
    )
    op.create_index(
        "ix_screening_sessions_family_id", "screening_sessions", ["family_id"]
    )
    op.create_index("ix_screening_sessions_status", "screening_sessions", ["status"])
    op.create_index(
        "ix_screening_sessions_payment_intent",
        "screening_sessions",
        ["payment_intent_id"],
    )
    op.create_index(
        "ix_screening_sessions_analysis_status",
        "screening_sessions",
        ["analysis_status"],
        postgresql_where=sa.text("analysis_status IS NOT NULL"),
    )

    op.create_table(
        "screening_responses",
        sa.Column("response_id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "session_id",
            UUID(as_uuid=True),
            sa.ForeignKey("screening_sessions.session_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("question_id", sa.Text, nullable=False),
        sa.Column("question_text", sa.Text, nullable=False),
        sa.Column("category", sa.String(32), nullable=False),
        sa.Column("response_value", sa.String(20), nullable=False),
        sa.Column("milestone_age_months", sa.SmallInteger, nullable=True),
        *_timestamps("created_at"),
        sa.UniqueConstraint("session_id", "question_id", name="uq_session_question"),
        sa.CheckConstraint(
            "response_value IN ('yes', 'no', 'sometimes', 'not_applicable')",
            name="ck_response_value",
        ),
    )
    op.create_index(
        "ix_screening_responses_session_id", "screening_responses", ["session_id"]
    )

    op.create_table(
        "screening_analysis",
        sa.Column("analysis_id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "session_id",
            UUID(as_uuid=True),
            sa.ForeignKey("screening_sessions.session_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("risk_level", sa.String(10), nullable=False),
        sa.Column("risk_score", sa.Float, nullable=True),
        sa.Column("summary", sa.Text, nullable=False),
        sa.Column("recommendations", JSONB, nullable=True),
        sa.Column("ai_model", sa.Text, nullable=False),
        sa.Column("ai_provider", sa.Text, nullable=False),
        sa.Column("raw_response", JSONB, nullable=True),
        *_timestamps("created_at"),
        sa.UniqueConstraint("session_id", name="uq_analysis_session"),
        sa.CheckConstraint(
            "risk_level IN ('LOW', 'MODERATE', 'HIGH')",
            name="ck_analysis_risk_level",
        ),
        sa.CheckConstraint(
            "risk_score IS NULL OR risk_score BETWEEN 0 AND 100",
            name="ck_analysis_risk_score",
        ),
    )

    # --- Single-submission screenings ---
    op.create_table(
        "screenings",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("family_id", sa.Text, nullable=False),
        sa.Column("child_name", sa.Text, nullable=False),
        sa.Column("child_age_months", sa.SmallInteger, nullable=False),
        sa.Column("answers", JSONB, nullable=False),
        sa.Column("ai_risk_score", sa.Float, nullable=True),
        sa.Column("ai_risk_level", sa.String(10), nullable=True),
        sa.Column("ai_summary", sa.Text, nullable=True),
        sa.Column(
            "status",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'PENDING_REVIEW'"),
        ),
        sa.Column("clinical_notes", sa.Text, nullable=True),
        sa.Column("clinical_risk_level", sa.String(10), nullable=True),
        sa.Column("reviewed_at", TIMESTAMP(timezone=True), nullable=True),
        *_timestamps("created_at"),
        sa.CheckConstraint(
            "child_age_months BETWEEN 0 AND 36",
            name="ck_screening_child_age_range",
        ),
    )
    op.create_index("ix_screenings_family_id", "screenings", ["family_id"])
    op.create_index("ix_screenings_created_at", "screenings", ["created_at"])

    # --- Payment intents ---
    op.create_table(
        "payment_intents",
        sa.Column("intent_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("family_id", sa.Text, nullable=False),
        sa.Column("clinic_id", sa.Text, nullable=False),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("payment_method", sa.String(32), nullable=False),
        sa.Column(
            "status",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'PENDING'"),
        ),
        sa.Column(
            "screening_id",
            UUID(as_uuid=True),
            sa.ForeignKey("screenings.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps("created_at"),
        sa.Column("settled_at", TIMESTAMP(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_payment_intents_settled_screening",
        "payment_intents",
        ["screening_id"],
        postgresql_where=sa.text("status = 'SETTLED' AND screening_id IS NOT NULL"),
    )

    # --- Clinical reviews ---
    op.create_table(
        "clinical_reviews",
        sa.Column("review_id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "screening_id",
            UUID(as_uuid=True),
            sa.ForeignKey("screenings.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("reviewer_id", sa.Text, nullable=False),
        sa.Column("final_diagnosis", sa.Text, nullable=True),
        sa.Column("recommendations", sa.Text, nullable=True),
        sa.Column("social_score_clinical", sa.Float, nullable=True),
        sa.Column("fine_motor_clinical", sa.Float, nullable=True),
        sa.Column("language_clinical", sa.Float, nullable=True),
        sa.Column("gross_motor_clinical", sa.Float, nullable=True),
        sa.Column("clinical_risk_level", sa.String(10), nullable=True),
        sa.Column("reviewed_at", sa.Text, nullable=False),
        sa.Column("result_hash", sa.String(64), nullable=False),
        *_timestamps("created_at"),
    )
    op.create_index(
        "ix_clinical_reviews_screening_id", "clinical_reviews", ["screening_id"]
    )


def downgrade() -> None:
    op.drop_table("clinical_reviews")
    op.drop_table("payment_intents")
    op.drop_table("screenings")
    op.drop_table("screening_analysis")
    op.drop_table("screening_responses")
    op.drop_table("screening_sessions")
