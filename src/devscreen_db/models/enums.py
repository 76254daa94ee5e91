"""Database-level enumerations for screening sessions, analyses and payments."""

import enum


class SessionStatus(str, enum.Enum):
    """Lifecycle states for a questionnaire screening session.

    Transitions:
        IN_PROGRESS -> COMPLETED        (parent finished the questionnaire)
        COMPLETED -> PAYMENT_PENDING    (payment intent created and linked)
        PAYMENT_PENDING -> PAID         (payment settlement callback)

    The order of members is the order of the state machine; use
    :func:`status_rank` to compare two states.
    """

    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    PAYMENT_PENDING = "PAYMENT_PENDING"
    PAID = "PAID"


_STATUS_ORDER = [s.value for s in SessionStatus]


def status_rank(status: "SessionStatus | str") -> int:
    """Position of *status* in the session state machine (0-based)."""
    value = status.value if isinstance(status, SessionStatus) else str(status)
    return _STATUS_ORDER.index(value)


class AnalysisStatus(str, enum.Enum):
    """Progress of the background analysis job for a completed session."""

    PENDING = "PENDING"
    READY = "READY"
    FAILED = "FAILED"


class ResponseValue(str, enum.Enum):
    """Answer to a single milestone question."""

    YES = "yes"
    NO = "no"
    SOMETIMES = "sometimes"
    NOT_APPLICABLE = "not_applicable"


class RiskLevel(str, enum.Enum):
    """Three-value risk scale produced by the LLM analyzer."""

    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"


class ScreeningStatus(str, enum.Enum):
    """Status of a single-submission screening (``screenings`` table)."""

    PENDING_REVIEW = "PENDING_REVIEW"
    REVIEWED = "REVIEWED"


class PaymentStatus(str, enum.Enum):
    """Payment intent states; only SETTLED matters for clinic visibility."""

    PENDING = "PENDING"
    SETTLED = "SETTLED"
    FAILED = "FAILED"
