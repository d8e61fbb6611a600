"""
Playback via sounddevice. Blobs are decoded with soundfile; chunks that are not
self-contained files are played as raw int16 PCM at the configured rate.
"""

from __future__ import annotations

import logging

from sdk import AudioPlayer, decode_audio

logger = logging.getLogger(__name__)


class SoundDevicePlayer(AudioPlayer):
    """Blocking playback on the default (or configured) output device."""

    def __init__(self, fallback_sample_rate: int = 24000, device: int | str | None = None) -> None:
        self._fallback_sample_rate = fallback_sample_rate
        self._device = device

    def play(self, audio: bytes) -> None:
        if not audio:
            return
        import sounddevice as sd

        data, rate = decode_audio(audio, self._fallback_sample_rate)
        if len(data) == 0:
            return
        logger.debug("Playing %d samples at %d Hz", len(data), rate)
        sd.play(data, rate, device=self._device)
        sd.wait()

    def stop(self) -> None:
        import sounddevice as sd

        try:
            sd.stop()
        except sd.PortAudioError as e:
            logger.debug("Playback stop failed: %s", e)
