"""
Shared audio utilities: RMS level from int16 chunks, WAV encoding and decoding.
Used by audio capture, playback, and the pipeline's level callback.
"""

from __future__ import annotations

import io
import logging
import struct

import numpy as np
import soundfile as sf

logger = logging.getLogger(__name__)

INT16_MAX = 32767


def chunk_rms_level(chunk: bytes | None) -> float:
    """
    Return RMS level of chunk (int16 little-endian) normalized to 0.0--1.0.
    Returns 0.0 for None, empty, or too short chunk; never raises.
    """
    if chunk is None or len(chunk) < 2:
        return 0.0
    try:
        n = len(chunk) // 2
        samples = struct.unpack(f"<{n}h", chunk[: n * 2])
        total = sum(s * s for s in samples)
        rms = (total / n) ** 0.5 if n else 0.0
        return min(1.0, rms / INT16_MAX)
    except (struct.error, ZeroDivisionError, ValueError) as e:
        logger.debug("chunk_rms_level failed: %s", e)
        return 0.0


def encode_wav(samples: np.ndarray, sample_rate: int) -> bytes:
    """Encode int16 samples (frames x channels, or mono 1-D) as a 16-bit PCM WAV blob."""
    buf = io.BytesIO()
    sf.write(buf, samples, sample_rate, format="WAV", subtype="PCM_16")
    return buf.getvalue()


def decode_audio(blob: bytes, fallback_sample_rate: int) -> tuple[np.ndarray, int]:
    """
    Decode a blob to (float32 samples, sample_rate).
    Anything libsndfile cannot parse is treated as raw int16 LE mono PCM at fallback_sample_rate
    (streamed chunks are not always self-contained files).
    """
    try:
        data, rate = sf.read(io.BytesIO(blob), dtype="float32")
        return data, int(rate)
    except RuntimeError:
        usable = len(blob) - (len(blob) % 2)
        samples = np.frombuffer(blob[:usable], dtype=np.int16).astype(np.float32) / 32768.0
        return samples, fallback_sample_rate


__all__ = ["INT16_MAX", "chunk_rms_level", "decode_audio", "encode_wav"]
