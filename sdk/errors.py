"""
Error taxonomy shared by the clients and the pipeline.
Clients raise these; the pipeline catches them at its boundary and turns each into one
user-visible notice.
"""

from __future__ import annotations

from typing import Any


class AssistantError(Exception):
    """Base class for every failure the pipeline knows how to report."""


class ServiceUnavailable(AssistantError):
    """A required credential or service is not configured. Raised before any network call."""


class MalformedInput(AssistantError):
    """Input cannot be sent at all (empty text, no URL for extract/crawl, empty audio)."""


class TransportFailed(AssistantError):
    """Network error or a 4xx/5xx from a remote service."""

    def __init__(self, message: str, details: Any = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.details = details
        self.status_code = status_code


class TranscriptionFailed(TransportFailed):
    """Speech-to-text request failed."""


class ResearchFailed(TransportFailed):
    """Research (search / extract / crawl) request failed; details holds the remote error body."""


class ChatFailed(TransportFailed):
    """Chat completion request failed."""


class SpeechFailed(TransportFailed):
    """Speech synthesis (batch or stream) failed."""


class MicrophoneError(AssistantError):
    """Raised when the microphone is unavailable or disconnected."""


class PermissionDenied(MicrophoneError):
    """Access to the microphone was refused."""


class DeviceUnavailable(MicrophoneError):
    """No usable input device, or the device could not be opened."""


def error_detail(response: Any) -> Any:
    """
    Best-effort remote error body from a requests Response: parsed JSON when possible,
    otherwise the first 500 characters of text. Returns None when there is no response.
    """
    if response is None:
        return None
    try:
        return response.json()
    except ValueError:
        try:
            return (response.text or "")[:500] or None
        except Exception:
            return None


__all__ = [
    "AssistantError",
    "ChatFailed",
    "DeviceUnavailable",
    "MalformedInput",
    "MicrophoneError",
    "PermissionDenied",
    "ResearchFailed",
    "ServiceUnavailable",
    "SpeechFailed",
    "TranscriptionFailed",
    "TransportFailed",
    "error_detail",
]
