"""Tests for tts.client: SpeechClient list_voices, upload_voice, synthesize, open_stream."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock, patch

import pytest
import requests

from sdk import MalformedInput, SpeechFailed
from tts import FALLBACK_VOICES, SpeechClient, SpeechStream


def _ok(json_data=None, content: bytes = b"") -> MagicMock:
    r = MagicMock()
    r.json.return_value = json_data
    r.content = content
    return r


# ---- list_voices ----
def test_list_voices_from_server() -> None:
    with patch("tts.client.requests.get", return_value=_ok({"voices": ["alba", "custom"]})) as get:
        voices = SpeechClient(base_url="http://tts:8000/api/").list_voices()
    assert voices == ["alba", "custom"]
    assert get.call_args[0][0] == "http://tts:8000/api/voices"


def test_list_voices_unreachable_returns_fallback() -> None:
    with patch("tts.client.requests.get", side_effect=requests.ConnectionError("refused")):
        voices = SpeechClient().list_voices()
    assert voices == FALLBACK_VOICES
    assert len(voices) == 8
    assert voices[0] == "alba"


def test_list_voices_empty_or_malformed_returns_fallback() -> None:
    with patch("tts.client.requests.get", return_value=_ok({"voices": []})):
        assert SpeechClient().list_voices() == FALLBACK_VOICES
    with patch("tts.client.requests.get", return_value=_ok(["alba"])):
        assert SpeechClient().list_voices() == FALLBACK_VOICES


def test_list_voices_returns_copy() -> None:
    with patch("tts.client.requests.get", side_effect=requests.Timeout()):
        voices = SpeechClient().list_voices()
    voices.append("x")
    assert "x" not in FALLBACK_VOICES


# ---- synthesize ----
def test_synthesize_posts_form_and_returns_bytes() -> None:
    with patch("tts.client.requests.post", return_value=_ok(content=b"RIFFwav")) as post:
        audio = SpeechClient().synthesize("Paris.", "jean")
    assert audio == b"RIFFwav"
    args, kwargs = post.call_args
    assert args[0] == "http://localhost:8000/api/generate"
    assert kwargs["data"] == {"text": "Paris.", "voice": "jean"}


def test_synthesize_blank_text_raises() -> None:
    with pytest.raises(MalformedInput):
        SpeechClient().synthesize("  ", "alba")


def test_synthesize_server_down_raises_speech_failed() -> None:
    with patch("tts.client.requests.post", side_effect=requests.ConnectionError("refused")):
        with pytest.raises(SpeechFailed):
            SpeechClient().synthesize("hi", "alba")


def test_synthesize_http_error_raises_speech_failed() -> None:
    r = MagicMock()
    r.json.side_effect = ValueError()
    r.text = "voice not found"
    r.raise_for_status.side_effect = requests.HTTPError("404", response=r)
    with patch("tts.client.requests.post", return_value=r):
        with pytest.raises(SpeechFailed) as exc_info:
            SpeechClient().synthesize("hi", "nobody")
    assert exc_info.value.details == "voice not found"


def test_synthesize_empty_body_raises_speech_failed() -> None:
    with patch("tts.client.requests.post", return_value=_ok(content=b"")):
        with pytest.raises(SpeechFailed, match="no audio"):
            SpeechClient().synthesize("hi", "alba")


# ---- upload_voice ----
def test_upload_voice_multipart() -> None:
    with patch("tts.client.requests.post", return_value=_ok({"voice": "mine"})) as post:
        ack = SpeechClient().upload_voice("mine.wav", b"RIFF", "audio/wav")
    assert ack == {"voice": "mine"}
    args, kwargs = post.call_args
    assert args[0].endswith("/upload-voice")
    assert kwargs["files"] == {"file": ("mine.wav", b"RIFF", "audio/wav")}


def test_upload_voice_empty_raises() -> None:
    with pytest.raises(MalformedInput):
        SpeechClient().upload_voice("x.wav", b"")


def test_upload_voice_non_json_ack() -> None:
    r = _ok()
    r.json.side_effect = ValueError()
    with patch("tts.client.requests.post", return_value=r):
        assert SpeechClient().upload_voice("x.wav", b"RIFF") == {"ok": True}


# ---- open_stream ----
def test_open_stream_returns_started_stream() -> None:
    client = SpeechClient(stream_url="ws://tts/ws/stream", stream_open_timeout_sec=3)

    async def run() -> SpeechStream:
        with patch("tts.stream.SpeechStream._run", new=_noop_run):
            stream = client.open_stream("hi", "alba", on_chunk=lambda c: None)
            await stream.wait()
            return stream

    stream = asyncio.run(run())
    assert isinstance(stream, SpeechStream)
    assert stream._url == "ws://tts/ws/stream"
    assert stream._open_timeout_sec == 3


async def _noop_run(self) -> None:
    return None
