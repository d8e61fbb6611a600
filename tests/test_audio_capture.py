"""Tests for audio.capture and audio.player with the PortAudio layer mocked."""

from __future__ import annotations

import threading
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

try:
    import sounddevice as sd
except (ImportError, OSError):
    pytest.skip("sounddevice / PortAudio not available", allow_module_level=True)

from audio.capture import SoundDeviceCapture
from audio.player import SoundDevicePlayer
from sdk import DeviceUnavailable, PermissionDenied, decode_audio, encode_wav


# ---- SoundDeviceCapture ----
def test_start_opens_int16_input_stream() -> None:
    cap = SoundDeviceCapture(sample_rate=16000, channels=1, device=3)
    with patch("sounddevice.InputStream") as input_stream:
        cap.start()
    kwargs = input_stream.call_args[1]
    assert kwargs["samplerate"] == 16000
    assert kwargs["channels"] == 1
    assert kwargs["dtype"] == "int16"
    assert kwargs["device"] == 3
    input_stream.return_value.start.assert_called_once()
    assert cap.is_recording is True


def test_stop_returns_wav_of_buffered_frames_and_releases() -> None:
    cap = SoundDeviceCapture(sample_rate=16000)
    levels: list[float] = []
    with patch("sounddevice.InputStream") as input_stream:
        cap.start(on_level=levels.append)
        cap._callback(np.full((160, 1), 1000, dtype=np.int16), 160, None, None)
        cap._callback(np.full((160, 1), 2000, dtype=np.int16), 160, None, None)
        blob = cap.stop()
    assert cap.is_recording is False
    input_stream.return_value.close.assert_called_once()
    assert len(levels) == 2
    assert 0.0 < levels[0] < levels[1] <= 1.0
    data, rate = decode_audio(blob, 24000)
    assert rate == 16000
    assert len(data) == 320


def test_stop_when_not_recording_returns_none() -> None:
    assert SoundDeviceCapture().stop() is None


def test_start_permission_error_maps_to_permission_denied() -> None:
    cap = SoundDeviceCapture()
    with patch("sounddevice.InputStream", side_effect=sd.PortAudioError("Permission denied")):
        with pytest.raises(PermissionDenied):
            cap.start()
    assert cap.is_recording is False


def test_start_missing_device_maps_to_device_unavailable() -> None:
    cap = SoundDeviceCapture()
    with patch("sounddevice.InputStream", side_effect=ValueError("No input device matching 'usb'")):
        with pytest.raises(DeviceUnavailable):
            cap.start()
    assert cap.is_recording is False


def test_start_failure_after_open_closes_stream() -> None:
    cap = SoundDeviceCapture()
    stream = MagicMock()
    stream.start.side_effect = sd.PortAudioError("Device unavailable")
    with patch("sounddevice.InputStream", return_value=stream):
        with pytest.raises(DeviceUnavailable):
            cap.start()
    stream.close.assert_called_once()
    assert cap.is_recording is False


def test_abort_discards_frames() -> None:
    cap = SoundDeviceCapture()
    with patch("sounddevice.InputStream"):
        cap.start()
        cap._callback(np.ones((10, 1), dtype=np.int16), 10, None, None)
        cap.abort()
    assert cap.is_recording is False
    assert cap._frames == []
    assert cap.stop() is None


# ---- SoundDevicePlayer ----
def test_player_plays_decoded_wav_at_file_rate() -> None:
    blob = encode_wav(np.zeros(480, dtype=np.int16), 22050)
    with patch("sounddevice.play") as play, patch("sounddevice.wait") as wait:
        SoundDevicePlayer(fallback_sample_rate=24000).play(blob)
    assert play.call_args[0][1] == 22050
    wait.assert_called_once()


def test_player_plays_raw_chunk_at_fallback_rate() -> None:
    raw = np.zeros(100, dtype=np.int16).tobytes() + b"\x00"
    with patch("sounddevice.play") as play, patch("sounddevice.wait"):
        SoundDevicePlayer(fallback_sample_rate=24000).play(raw)
    assert play.call_args[0][1] == 24000
    assert len(play.call_args[0][0]) == 100


def test_player_empty_blob_is_noop() -> None:
    with patch("sounddevice.play") as play:
        SoundDevicePlayer().play(b"")
    play.assert_not_called()


def test_stop_without_captured_frames_returns_none() -> None:
    cap = SoundDeviceCapture()
    with patch("sounddevice.InputStream") as input_stream:
        cap.start()
        assert cap.stop() is None
    input_stream.return_value.close.assert_called_once()
    assert cap.is_recording is False


def test_start_while_recording_is_ignored() -> None:
    cap = SoundDeviceCapture()
    with patch("sounddevice.InputStream") as input_stream:
        cap.start()
        cap.start()
    assert input_stream.call_count == 1
    assert cap.is_recording is True


def test_concurrent_start_opens_one_stream() -> None:
    cap = SoundDeviceCapture()
    opening = threading.Event()
    release = threading.Event()

    def slow_open(**kwargs):
        opening.set()
        release.wait(5)
        return MagicMock()

    with patch("sounddevice.InputStream", side_effect=slow_open) as input_stream:
        first = threading.Thread(target=cap.start)
        first.start()
        assert opening.wait(5)
        cap.start()
        release.set()
        first.join(5)
    assert input_stream.call_count == 1
    assert cap.is_recording is True
