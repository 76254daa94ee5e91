"""Clinical-review hash linker.

Produces a SHA-256 digest over a canonical, ordered JSON rendering of a
review's content so that the review can later be checked against the value
stored alongside it.  The field order, key names and defaults below are
part of the contract: changing any of them breaks verification of every
stored digest.

Canonical form::

    {"screeningId":…,"reviewId":…,"finalDiagnosis":…,"recommendations":…,
     "socialScore":…,"fineMotorScore":…,"languageScore":…,
     "grossMotorScore":…,"reviewedAt":…}

Absent text fields become ``""``, absent scores become ``0``; integral
scores are rendered without a fractional part, and the JSON is compact
with non-ASCII characters left unescaped.
"""

from __future__ import annotations

import hashlib
import json

from devscreen_rules.models.review import ReviewHashData


def _score(value: float | None) -> int | float:
    """Render like a JSON number in JS: integral floats print as ints.

    This holds for magnitudes below 1e21, which ``ReviewInput`` guarantees
    by bounding scores to [0, 100].
    """
    if value is None:
        return 0
    if float(value).is_integer():
        return int(value)
    return value


def canonical_review_payload(data: ReviewHashData) -> str:
    """Deterministic string representation of the review fields."""
    ordered = {
        "screeningId": data.screening_id,
        "reviewId": data.review_id,
        "finalDiagnosis": data.final_diagnosis or "",
        "recommendations": data.recommendations or "",
        "socialScore": _score(data.social_score_clinical),
        "fineMotorScore": _score(data.fine_motor_clinical),
        "languageScore": _score(data.language_clinical),
        "grossMotorScore": _score(data.gross_motor_clinical),
        "reviewedAt": data.reviewed_at,
    }
    return json.dumps(ordered, separators=(",", ":"), ensure_ascii=False)


def generate_review_hash(data: ReviewHashData) -> str:
    """SHA-256 hex digest of :func:`canonical_review_payload`."""
    payload = canonical_review_payload(data)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def verify_review_hash(data: ReviewHashData, expected: str) -> bool:
    """Recompute the digest for *data* and compare it with *expected*.

    Plain equality is sufficient: this is an integrity check over public
    content, not a secret comparison.
    """
    return generate_review_hash(data) == expected
