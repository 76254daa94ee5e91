"""Error taxonomy for screening operations.

Every failure raised by the SDK is a ``ScreeningError`` carrying a stable
``code`` and the HTTP status the server maps it to.  The base class is a
``ValueError`` so callers that only know about ``ValueError`` still catch it.
"""


class ScreeningError(ValueError):
    """Base class for all screening failures."""

    code = "screening_error"
    status_code = 400


class InvalidInputError(ScreeningError):
    """Bad caller input: missing identifiers, age out of range, empty answers."""

    code = "invalid_input"
    status_code = 400


class NotFoundError(ScreeningError):
    """A referenced session, screening, review or payment intent is absent."""

    code = "not_found"
    status_code = 404


class PreconditionFailedError(ScreeningError):
    """The record exists but is in the wrong state for the operation."""

    code = "precondition_failed"
    status_code = 409


class UpstreamError(ScreeningError):
    """Data store, payment subsystem, storage or model API failure."""

    code = "upstream_failure"
    status_code = 502


class ConfigurationError(ScreeningError):
    """A required credential or setting is missing."""

    code = "configuration_error"
    status_code = 503


_STATUS_BY_CODE: dict[str, int] = {
    cls.code: cls.status_code
    for cls in (
        InvalidInputError,
        NotFoundError,
        PreconditionFailedError,
        UpstreamError,
        ConfigurationError,
    )
}


def status_for_code(code: str) -> int:
    """HTTP status for an ``error_code`` (500 for unknown codes)."""
    return _STATUS_BY_CODE.get(code, 500)
