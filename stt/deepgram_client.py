"""
Deepgram prerecorded transcription: one recorded blob in, plain text out.
A single attempt per call; the pipeline surfaces failures and returns to idle.
"""

from __future__ import annotations

import time

import requests

from sdk import (
    MalformedInput,
    ServiceUnavailable,
    TranscriptionFailed,
    error_detail,
    get_logger,
)

logger = get_logger("stt")


class TranscriptionClient:
    """
    Transcribe an audio blob via Deepgram's /listen endpoint.
    Raises ServiceUnavailable without a key (no request made), MalformedInput for an empty
    blob, and TranscriptionFailed on transport errors or 4xx/5xx.
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://api.deepgram.com/v1",
        model: str = "flux-general-en",
        timeout_sec: float = 30.0,
        content_type: str = "audio/wav",
    ) -> None:
        self._api_key = (api_key or "").strip() or None
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout_sec = timeout_sec
        self.content_type = content_type

    @property
    def available(self) -> bool:
        return self._api_key is not None

    def transcribe(self, audio: bytes, content_type: str | None = None) -> str:
        """Return the best-effort transcript; empty string when nothing was recognized."""
        if not self.available:
            raise ServiceUnavailable("DEEPGRAM_API_KEY not configured")
        if not audio:
            raise MalformedInput("No audio to transcribe")
        url = f"{self.base_url}/listen"
        start = time.perf_counter()
        try:
            r = requests.post(
                url,
                params={"model": self.model, "smart_format": "true"},
                headers={
                    "Authorization": f"Token {self._api_key}",
                    "Content-Type": content_type or self.content_type,
                },
                data=audio,
                timeout=self.timeout_sec,
            )
            r.raise_for_status()
            data = r.json()
        except requests.HTTPError as e:
            details = error_detail(e.response)
            logger.warning("Transcription failed: %s (%s)", e, details)
            raise TranscriptionFailed(str(e), details=details) from e
        except requests.RequestException as e:
            logger.warning("Transcription request failed: %s", e)
            raise TranscriptionFailed(str(e)) from e
        except ValueError as e:
            raise TranscriptionFailed("Transcription response was not valid JSON") from e
        text = _transcript_from_response(data)
        logger.info(
            "Transcribed %d bytes -> %d chars (%.2fs)",
            len(audio),
            len(text),
            time.perf_counter() - start,
        )
        return text


def _transcript_from_response(data: dict) -> str:
    """results.channels[0].alternatives[0].transcript, or "" when any level is missing."""
    try:
        channels = (data.get("results") or {}).get("channels") or []
        alternatives = channels[0].get("alternatives") or []
        transcript = alternatives[0].get("transcript")
    except (AttributeError, IndexError, TypeError):
        return ""
    return (transcript or "").strip()
