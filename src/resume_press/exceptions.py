"""Custom exception hierarchy for resume_press."""

from __future__ import annotations


class ResumePressError(Exception):
    """Base exception for all resume_press errors."""

    kind = "internal"


class RequestError(ResumePressError):
    """Caller input is malformed. Never retried."""

    kind = "invalid_request"


class MissingParameterError(RequestError):
    """A required request parameter is absent (or both alternatives given)."""

    kind = "missing_parameter"


class EngineLaunchError(ResumePressError):
    """The rendering engine could not be started within the retry budget.

    Surfaced as "service busy" so callers can back off on their own.
    """

    kind = "service_busy"

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts


class ConversionError(ResumePressError):
    """The engine accepted the job but the pipeline failed mid-way."""

    kind = "conversion_failed"


class LoadTimeoutError(ConversionError):
    """Loading markup into the page exceeded the load timeout."""

    kind = "load_timeout"


class ExportError(ConversionError):
    """PDF export timed out, errored, or produced no bytes."""

    kind = "export_failed"
