"""
Microphone capture via sounddevice. One recording at a time: start() opens an input
stream and buffers int16 frames from the PortAudio callback thread; stop() closes the
stream and returns the frames as one WAV blob.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

import numpy as np

from sdk import AudioCapture, DeviceUnavailable, PermissionDenied, chunk_rms_level, encode_wav

logger = logging.getLogger(__name__)

_PERMISSION_MARKERS = ("permission", "denied", "not authorized", "unauthorized")


def _classify_open_error(e: Exception) -> Exception:
    msg = str(e).lower()
    if any(m in msg for m in _PERMISSION_MARKERS):
        return PermissionDenied(f"Microphone access denied: {e}")
    return DeviceUnavailable(f"Microphone unavailable: {e}")


class SoundDeviceCapture(AudioCapture):
    """
    Record mono (or stereo) int16 audio from the default or configured input device.
    The device is released on stop(), abort(), and on any failure while opening.
    """

    def __init__(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        device: int | str | None = None,
    ) -> None:
        self._sample_rate = sample_rate
        self._channels = channels
        self._device = device
        self._stream: Any = None
        self._frames: list[np.ndarray] = []
        self._lock = threading.Lock()
        self._on_level: Callable[[float], None] | None = None
        self._starting = False

    @property
    def is_recording(self) -> bool:
        return self._stream is not None

    def start(self, on_level: Callable[[float], None] | None = None) -> None:
        with self._lock:
            if self._stream is not None or self._starting:
                logger.debug("start() while already recording; ignored")
                return
            self._starting = True
            self._frames = []
        try:
            self._open(on_level)
        finally:
            with self._lock:
                self._starting = False

    def _open(self, on_level: Callable[[float], None] | None) -> None:
        import sounddevice as sd

        stream = None
        try:
            stream = sd.InputStream(
                samplerate=self._sample_rate,
                channels=self._channels,
                dtype="int16",
                device=self._device,
                callback=self._callback,
            )
            stream.start()
        except (sd.PortAudioError, ValueError, OSError) as e:
            if stream is not None:
                try:
                    stream.close()
                except sd.PortAudioError:
                    pass
            logger.warning("Microphone open failed: %s", e)
            raise _classify_open_error(e) from e
        self._on_level = on_level
        self._stream = stream
        logger.info("Recording started (%d Hz, %d ch)", self._sample_rate, self._channels)

    def _callback(self, indata, frames, time_info, status) -> None:
        if status:
            logger.debug("Input stream status: %s", status)
        chunk = indata.copy()
        with self._lock:
            self._frames.append(chunk)
        if self._on_level is not None:
            try:
                self._on_level(chunk_rms_level(chunk.tobytes()))
            except Exception as e:
                logger.debug("on_level callback failed: %s", e)

    def _release(self) -> None:
        stream, self._stream = self._stream, None
        self._on_level = None
        if stream is None:
            return
        try:
            stream.stop()
        except Exception as e:
            logger.debug("Input stream stop failed: %s", e)
        finally:
            try:
                stream.close()
            except Exception as e:
                logger.debug("Input stream close failed: %s", e)

    def stop(self) -> bytes | None:
        if self._stream is None:
            return None
        self._release()
        with self._lock:
            frames, self._frames = self._frames, []
        if not frames:
            logger.info("Recording stopped with no audio")
            return None
        samples = np.concatenate(frames, axis=0)
        blob = encode_wav(samples, self._sample_rate)
        logger.info("Recording stopped: %d frames, %d bytes", len(samples), len(blob))
        return blob

    def abort(self) -> None:
        self._release()
        with self._lock:
            self._frames = []
