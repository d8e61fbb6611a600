"""
HTTP client for the speech server: voice list, voice upload, one-shot synthesis.
Streaming synthesis lives in tts.stream; open_stream() here only wires it up.
"""

from __future__ import annotations

from typing import Any, Callable

import requests

from sdk import MalformedInput, SpeechFailed, error_detail, get_logger
from tts.stream import SpeechStream

logger = get_logger("tts")

# Voices the speech server ships with; used when /voices cannot be reached.
FALLBACK_VOICES = [
    "alba",
    "marius",
    "javert",
    "jean",
    "fantine",
    "cosette",
    "eponine",
    "azelma",
]


class SpeechClient:
    """
    Speech server client. Batch and streaming are independent paths; the pipeline
    uses one or the other for a given answer, never both.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000/api",
        stream_url: str = "ws://localhost:8000/ws/stream",
        timeout_sec: float = 60.0,
        stream_open_timeout_sec: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.stream_url = stream_url
        self.timeout_sec = timeout_sec
        self.stream_open_timeout_sec = stream_open_timeout_sec

    def list_voices(self) -> list[str]:
        """Voice ids from the server, or FALLBACK_VOICES when the server is unreachable."""
        try:
            r = requests.get(f"{self.base_url}/voices", timeout=5.0)
            r.raise_for_status()
            voices = r.json().get("voices")
        except (requests.RequestException, ValueError, AttributeError) as e:
            logger.warning("Failed to fetch voices, using fallback list: %s", e)
            return list(FALLBACK_VOICES)
        if not isinstance(voices, list) or not voices:
            return list(FALLBACK_VOICES)
        return [str(v) for v in voices]

    def upload_voice(
        self, filename: str, data: bytes, content_type: str | None = None
    ) -> Any:
        """Upload a reference voice sample; returns the server's acknowledgement."""
        if not data:
            raise MalformedInput("Voice file is empty")
        file_tuple = (filename, data, content_type) if content_type else (filename, data)
        try:
            r = requests.post(
                f"{self.base_url}/upload-voice",
                files={"file": file_tuple},
                timeout=self.timeout_sec,
            )
            r.raise_for_status()
        except requests.HTTPError as e:
            raise SpeechFailed(str(e), details=error_detail(e.response)) from e
        except requests.RequestException as e:
            raise SpeechFailed(str(e)) from e
        try:
            return r.json()
        except ValueError:
            return {"ok": True}

    def synthesize(self, text: str, voice: str) -> bytes:
        """Form-encoded POST /generate; returns the audio bytes."""
        if not text or not text.strip():
            raise MalformedInput("Nothing to speak")
        try:
            r = requests.post(
                f"{self.base_url}/generate",
                data={"text": text, "voice": voice},
                timeout=self.timeout_sec,
            )
            r.raise_for_status()
        except requests.HTTPError as e:
            details = error_detail(e.response)
            logger.warning("TTS generate failed: %s (%s)", e, details)
            raise SpeechFailed(str(e), details=details) from e
        except requests.RequestException as e:
            logger.warning("TTS server unreachable (%s): %s", self.base_url, e)
            raise SpeechFailed(str(e)) from e
        if not r.content:
            raise SpeechFailed("TTS server returned no audio")
        logger.info("TTS generated %d bytes (voice=%s)", len(r.content), voice)
        return r.content

    def open_stream(
        self,
        text: str,
        voice: str,
        on_chunk: Callable[[bytes], None],
        on_complete: Callable[[], None] | None = None,
        on_error: Callable[[BaseException], None] | None = None,
    ) -> SpeechStream:
        """Open a streaming session on the running event loop and return its handle."""
        stream = SpeechStream(
            self.stream_url,
            text,
            voice,
            on_chunk=on_chunk,
            on_complete=on_complete,
            on_error=on_error,
            open_timeout_sec=self.stream_open_timeout_sec,
        )
        return stream.start()
