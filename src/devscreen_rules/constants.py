"""Screening constants shared across the SDK.

These values are referenced by the catalog, the rule scorer and the LLM
analyzer.  The band layout mirrors the ``age_group`` labels used in
``data/denver_ii.yaml``.
"""

# Age bands as (label, start_month inclusive, end_month exclusive), ordered.
# Ages at or beyond the last band's end clamp to the last band.
AGE_BANDS: list[tuple[str, int, int]] = [
    ("0-3", 0, 3),
    ("3-6", 3, 6),
    ("6-9", 6, 9),
    ("9-12", 9, 12),
    ("12-15", 12, 15),
    ("15-18", 15, 18),
    ("18-24", 18, 24),
    ("24-30", 24, 30),
    ("30-36", 30, 36),
]

MIN_AGE_MONTHS = 0
MAX_AGE_MONTHS = 36

# Developmental domains and their human-readable names.
DOMAIN_NAMES: dict[str, str] = {
    "gross_motor": "Gross Motor",
    "fine_motor": "Fine Motor",
    "language": "Language",
    "personal_social": "Personal-Social",
}

# --- Rule scorer ---
# Binary verdict: strictly more than this share of not-achieved answers is High.
RULE_HIGH_RISK_PERCENT = 50.0
RULE_HIGH_RISK_SCORE = 85
RULE_LOW_RISK_SCORE = 10

# --- LLM analyzer ---
# Deterministic fallback thresholds on the concern rate (percent).
FALLBACK_HIGH_PERCENT = 50.0
FALLBACK_MODERATE_PERCENT = 25.0
MAX_RECOMMENDATIONS = 5
DEFAULT_LLM_RISK_LEVEL = "MODERATE"

PLACEHOLDER_SUMMARY = "Analysis completed. Please review individual responses."

FALLBACK_RECOMMENDATIONS: list[str] = [
    "Continue regular developmental monitoring",
    "Engage in age-appropriate activities",
    "Consult with pediatrician if concerns persist",
]

# Provenance recorded on analyses produced without the external model.
FALLBACK_MODEL = "concern-rate-fallback"
FALLBACK_PROVIDER = "local"

# --- Evidence storage ---
EVIDENCE_CACHE_CONTROL = "max-age=3600"
EVIDENCE_DEFAULT_CONTENT_TYPE = "video/webm"
