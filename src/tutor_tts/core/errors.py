"""
Error Codes and Exceptions for the read-aloud pipeline.

Every failure that can reach a caller is a SpeechError carrying a code
from ErrorCode. The synthesis collaborator classifies backend rejections
into typed subclasses so that the playback layer decides retry vs.
surface with isinstance checks rather than message matching.

Taxonomy:
    TextTooLongError     - backend rejected a chunk for its length (retryable
                           with a smaller byte budget)
    NotConfiguredError   - backend lacks credentials/configuration (never
                           retried, shown as "not configured")
    SynthesisError       - any other synthesis failure
    PlaybackError        - the audio primitive could not play a reference
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode:
    """
    Standardized error codes.

    Returned by SpeechError.to_dict() and logged with every failure.
    """
    TEXT_TOO_LONG = "TEXT_TOO_LONG"         # Chunk rejected for length
    NOT_CONFIGURED = "NOT_CONFIGURED"       # Backend credentials missing
    SYNTHESIS_FAILED = "SYNTHESIS_FAILED"   # Any other synthesis error
    PLAYBACK_FAILED = "PLAYBACK_FAILED"     # Audio primitive error
    INVALID_INPUT = "INVALID_INPUT"         # Bad arguments
    INTERNAL_ERROR = "INTERNAL_ERROR"       # Unexpected error


class SpeechError(Exception):
    """
    Base exception for read-aloud errors.

    Attributes:
        message: Human-readable error message.
        code: Error code from ErrorCode class.
        details: Optional dictionary with additional context.
    """
    def __init__(self, message: str, code: str = ErrorCode.INTERNAL_ERROR, details: Optional[Dict] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a standardized error payload."""
        result = {
            "ok": False,
            "error": self.code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class SynthesisError(SpeechError):
    """Raised when a synthesis call fails for a reason other than length or configuration."""
    def __init__(self, message: str, details: Optional[Dict] = None, code: str = ErrorCode.SYNTHESIS_FAILED):
        super().__init__(message, code, details)


class TextTooLongError(SynthesisError):
    """Raised when the backend rejects a chunk as too long."""
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, details, code=ErrorCode.TEXT_TOO_LONG)


class NotConfiguredError(SynthesisError):
    """Raised when the backend reports missing credentials or configuration."""
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, details, code=ErrorCode.NOT_CONFIGURED)


class MediaErrorCode(str, Enum):
    """Failure classes reported by an audio playback primitive."""
    ABORTED = "aborted"
    NETWORK = "network"
    DECODE = "decode"
    SRC_NOT_SUPPORTED = "src_not_supported"
    NOT_ALLOWED = "not_allowed"
    UNKNOWN = "unknown"


_MEDIA_MESSAGES = {
    MediaErrorCode.ABORTED: "Audio playback was aborted",
    MediaErrorCode.NETWORK: "Network error while loading audio",
    MediaErrorCode.DECODE: "Audio decoding error",
    MediaErrorCode.SRC_NOT_SUPPORTED: "Audio format not supported",
    MediaErrorCode.NOT_ALLOWED: "Playback needs a user interaction before audio can start",
}


def media_error_message(code: MediaErrorCode, detail: str = "") -> str:
    """
    Map a media failure class to a descriptive message.

    Unknown failures carry the primitive's own detail, if any.
    """
    if code in _MEDIA_MESSAGES:
        return _MEDIA_MESSAGES[code]
    return f"Audio error: {detail or 'Unknown error'}"


class PlaybackError(SpeechError):
    """
    Raised when an audio handle cannot play its reference.

    Attributes:
        media_code: MediaErrorCode describing the failure class.
    """
    def __init__(self, media_code: MediaErrorCode, detail: str = "", details: Optional[Dict] = None):
        self.media_code = media_code
        merged = {"media_code": media_code.value}
        if details:
            merged.update(details)
        super().__init__(media_error_message(media_code, detail), ErrorCode.PLAYBACK_FAILED, merged)


def classify_synthesis_failure(message: str, status_code: Optional[int] = None, details: Optional[Dict] = None) -> SynthesisError:
    """
    Turn a backend failure message into a typed SynthesisError.

    Length rejections are recognized by HTTP 413 or by the backend's
    "too long"/"sentence" wording; configuration failures by
    "not configured"/"credentials".
    """
    lowered = message.lower()
    if status_code == 413 or "too long" in lowered or "sentence" in lowered:
        return TextTooLongError(message, details)
    if "not configured" in lowered or "credentials" in lowered:
        return NotConfiguredError(message, details)
    return SynthesisError(message, details)
