"""Error taxonomy for the ResumeFit service.

Each error carries a stable ``code`` and the HTTP status the API maps it to.
Retrieval failures have no class here: they are logged and swallowed.
"""

from __future__ import annotations


class ResumeFitError(Exception):
    """Base class for errors surfaced by the service."""

    code = "internal_error"
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = message or str(self.args[0])

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class InputValidationError(ResumeFitError, ValueError):
    """Missing or empty required text."""

    code = "invalid_input"
    status_code = 400


class ConcurrencyRejectedError(ResumeFitError):
    """Another analysis is already in progress."""

    code = "analysis_in_progress"
    status_code = 429

    def __init__(self, message: str = "", *, request_id: str | None = None, duration_seconds: int | None = None):
        super().__init__(message)
        self.request_id = request_id
        self.duration_seconds = duration_seconds


class ProviderError(ResumeFitError):
    """A generative backend failed."""

    code = "provider_error"
    status_code = 502


class BackendUnavailableError(ProviderError):
    """Generative backend unreachable or returned an error."""

    code = "backend_unavailable"
    status_code = 503


class BackendTimeoutError(ProviderError, TimeoutError):
    """Generative backend exceeded its time budget."""

    code = "backend_timeout"
    status_code = 504


class MalformedResponseError(ResumeFitError):
    """Generative backend returned unparsable or schema-less text."""

    code = "malformed_response"
    status_code = 502
