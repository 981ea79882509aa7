"""
Video Domain Errors.

Stable error taxonomy for the streaming proxy. Each error knows the HTTP
status it maps to; the API layer renders it as a structured body.
"""

from enum import Enum
from typing import Optional


class UnavailableReason(Enum):
    """Typed sub-kinds for SourceUnavailable"""
    NOT_FOUND = "not_found"
    PRIVATE = "private"
    AGE_RESTRICTED = "age_restricted"
    REGION_BLOCKED = "region_blocked"
    FORBIDDEN = "forbidden"
    NO_CANDIDATES = "no_candidates"
    EXTRACTION_UNAVAILABLE = "extraction_unavailable"


_REASON_STATUS = {
    UnavailableReason.NOT_FOUND: 404,
    UnavailableReason.PRIVATE: 403,
    UnavailableReason.AGE_RESTRICTED: 403,
    UnavailableReason.REGION_BLOCKED: 403,
    UnavailableReason.FORBIDDEN: 403,
}


class StreamFlowError(Exception):
    """Base class for all errors surfaced to clients"""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None, reason: Optional[UnavailableReason] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason
        if status_code is not None:
            self.status_code = status_code

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {
            "error": self.kind,
            "reason": self.reason.value if self.reason else None,
            "message": self.message,
        }


class InvalidRequest(StreamFlowError):
    """Missing or unparsable URL or Range"""

    status_code = 400


class SourceUnavailable(StreamFlowError):
    """Extraction failed, content blocked, private or removed"""

    status_code = 502

    def __init__(self, message: str, reason: Optional[UnavailableReason] = None):
        super().__init__(message, status_code=_REASON_STATUS.get(reason, 502), reason=reason)


class UpstreamUnreachable(StreamFlowError):
    """DNS or connection failure towards the resolved stream URL"""

    status_code = 502


class RangeNotSatisfiable(StreamFlowError):
    """Client range lies outside the resource"""

    status_code = 416

    def __init__(self, message: str, total_size: Optional[int] = None):
        super().__init__(message)
        self.total_size = total_size


class InternalStreamingFailure(StreamFlowError):
    """I/O failure after response headers were sent; the connection is dropped"""

    status_code = 500


class ExtractionError(Exception):
    """Raised by extraction adapters; reason is passed through when known"""

    def __init__(self, message: str, reason: Optional[UnavailableReason] = None):
        super().__init__(message)
        self.reason = reason
