"""
Audio device abstractions: interfaces and no-op implementations.
Used by the pipeline; concrete implementations live in audio/.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

from sdk.errors import DeviceUnavailable


class AudioCapture(ABC):
    """
    Record one utterance from a microphone.
    start() acquires the device, stop() returns the recording as one encoded blob and
    releases the device, abort() releases it without producing anything.
    """

    @abstractmethod
    def start(self, on_level: Callable[[float], None] | None = None) -> None:
        """
        Acquire the microphone and start buffering. No-op while already recording.
        Raises PermissionDenied or DeviceUnavailable and leaves state unchanged on failure.
        """
        ...

    @abstractmethod
    def stop(self) -> bytes | None:
        """Finish the recording and release the device. Returns None if nothing was recording or captured."""
        ...

    @abstractmethod
    def abort(self) -> None:
        """Release the device and discard buffered audio."""
        ...

    @property
    @abstractmethod
    def is_recording(self) -> bool:
        ...


class AudioPlayer(ABC):
    """Play encoded audio blobs (batch synthesis output or streamed chunks)."""

    @abstractmethod
    def play(self, audio: bytes) -> None:
        """Play the blob and block until playback finishes."""
        ...

    def stop(self) -> None:
        """Abort current playback. No-op by default."""
        pass


# --- No-op implementations (used when the audio stack is not installed) ---


class NoOpCapture(AudioCapture):
    """Capture with no device behind it; start() always reports the device as unavailable."""

    def start(self, on_level: Callable[[float], None] | None = None) -> None:
        raise DeviceUnavailable("No audio input device available")

    def stop(self) -> bytes | None:
        return None

    def abort(self) -> None:
        pass

    @property
    def is_recording(self) -> bool:
        return False


class NoOpPlayer(AudioPlayer):
    """Player that discards audio."""

    def play(self, audio: bytes) -> None:
        pass


__all__ = [
    "AudioCapture",
    "AudioPlayer",
    "NoOpCapture",
    "NoOpPlayer",
]
