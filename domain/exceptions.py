"""Domain Exceptions

Every error raised by the domain and application layers carries the HTTP
status it maps to and a stable machine-readable key. The API layer renders
them through a single exception handler.
"""
from typing import Optional


class HotelError(Exception):
    """Base class for all domain errors"""
    status_code: int = 500
    error_key: str = "internal_error"

    def __init__(self, message: str, *, fields: Optional[list] = None):
        super().__init__(message)
        self.message = message
        self.fields = fields or []


class ValidationError(HotelError, ValueError):
    """Malformed or missing input"""
    status_code = 400
    error_key = "validation_error"


class NotFoundError(HotelError):
    """Referenced entity does not exist"""
    status_code = 404
    error_key = "not_found"


class ForbiddenError(HotelError):
    """Role or ownership check failed"""
    status_code = 403
    error_key = "forbidden"


class ConflictError(HotelError):
    """Unique constraint violated"""
    status_code = 409
    error_key = "conflict"


class InvalidTransitionError(HotelError, ValueError):
    """State machine precondition violated"""
    status_code = 400
    error_key = "invalid_transition"


class UnavailableError(HotelError, ValueError):
    """Room has no free units"""
    status_code = 400
    error_key = "unavailable"


class UpstreamError(HotelError):
    """Payment gateway or storage provider failed"""
    status_code = 502
    error_key = "upstream_failure"


class UpstreamTimeoutError(UpstreamError):
    """Upstream call did not answer in time; safe to retry"""
    status_code = 504
    error_key = "upstream_timeout"
    retryable = True
