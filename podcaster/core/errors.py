"""Exception hierarchy for the podcast pipeline and the HTTP 500 helper."""
import logging
from typing import Optional

from fastapi import HTTPException

logger = logging.getLogger(__name__)


class PodcastError(Exception):
    """Base class for every error raised by the pipeline or its collaborators."""


class ScraperError(PodcastError):
    """Article extraction failed. type is one of INVALID_URL, FETCH_FAILED, TIMEOUT, NO_CONTENT, PARSE_FAILED, OTHER."""

    TYPES = ("INVALID_URL", "FETCH_FAILED", "TIMEOUT", "NO_CONTENT", "PARSE_FAILED", "OTHER")

    def __init__(self, message: str, type: str = "OTHER", status_code: Optional[int] = None):
        super().__init__(message)
        self.type = type if type in self.TYPES else "OTHER"
        self.status_code = status_code


class LlmError(PodcastError):
    """Text generation failed. type is one of API_ERROR, TIMEOUT, INVALID_CONFIG, QUOTA_EXCEEDED, RESPONSE_FORMAT, OTHER."""

    TYPES = ("API_ERROR", "TIMEOUT", "INVALID_CONFIG", "QUOTA_EXCEEDED", "RESPONSE_FORMAT", "OTHER")

    def __init__(self, message: str, type: str = "OTHER"):
        super().__init__(message)
        self.type = type if type in self.TYPES else "OTHER"


class TtsError(PodcastError):
    """Speech synthesis failed for one segment."""


class StitchError(PodcastError):
    """Combining segment audio into the final stream failed."""


class JobNotFoundError(PodcastError):
    """Job does not exist or is not visible to the caller (the two cases are not distinguished)."""


class InvalidTransitionError(PodcastError):
    """Requested status change would move a job backward or out of a terminal state."""


class JobPersistenceError(PodcastError):
    """Durable write of a job record failed; the in-memory record may be ahead of disk."""


class TrackerError(PodcastError):
    """Completion tracker has no entry, or is missing a segment, for the requested job."""


def describe(e: BaseException) -> str:
    """Render an exception for job error messages: '<TYPE>: message' for typed collaborator errors, else the message (or class name if empty)."""
    msg = str(e) or e.__class__.__name__
    kind = getattr(e, "type", None)
    if isinstance(kind, str):
        return f"{kind}: {msg}"
    return msg


def as_http_500(e: Exception) -> HTTPException:
    """Log exception and return a generic 500 HTTPException (no internal details leaked).
    Why available: Centralized error handling so API never leaks stack traces or internal state to clients."""
    logger.error("unhandled_api_error", exc_info=e)
    return HTTPException(status_code=500, detail="Internal server error")
