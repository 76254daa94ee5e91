"""devscreen_server — FastAPI REST API for the developmental screening SDK.

Exposes questionnaire sessions, single-submission screenings, the clinic
review queue, payment settlement and evidence uploads as a stateless HTTP
API, plus the ``devscreen-reanalyze`` maintenance command.
"""
