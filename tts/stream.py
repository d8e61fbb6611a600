"""
Streaming speech over WebSocket.

Protocol: after the connection opens the client sends one JSON text frame {text, voice};
the server answers with zero or more binary frames (one audio chunk each) and closes.
Each binary frame is handed to on_chunk as soon as it arrives, in arrival order.
A clean close from the server fires on_complete once; any transport error fires on_error
once and nothing is delivered after it. There is no reconnect.

States: CONNECTING -> STREAMING -> COMPLETED | FAILED. close() from the owner moves the
stream to CLOSED and fires neither callback.
"""

from __future__ import annotations

import asyncio
import enum
import json
from typing import Callable

import websockets
from websockets.exceptions import WebSocketException

from sdk import get_logger

logger = get_logger("tts.stream")


class StreamState(str, enum.Enum):
    CONNECTING = "connecting"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"
    CLOSED = "closed"


_TERMINAL = (StreamState.COMPLETED, StreamState.FAILED, StreamState.CLOSED)

_TRANSPORT_ERRORS = (
    WebSocketException,
    OSError,
    asyncio.TimeoutError,
)


class SpeechStream:
    """Single-owner handle for one streamed utterance."""

    def __init__(
        self,
        url: str,
        text: str,
        voice: str,
        on_chunk: Callable[[bytes], None],
        on_complete: Callable[[], None] | None = None,
        on_error: Callable[[BaseException], None] | None = None,
        open_timeout_sec: float = 10.0,
    ) -> None:
        self._url = url
        self._text = text
        self._voice = voice
        self._on_chunk = on_chunk
        self._on_complete = on_complete or (lambda: None)
        self._on_error = on_error or (lambda _e: None)
        self._open_timeout_sec = open_timeout_sec
        self._ws = None
        self._task: asyncio.Task | None = None
        self._closing = False
        self.state = StreamState.CONNECTING
        self.error: BaseException | None = None
        self.chunks_received = 0

    @property
    def done(self) -> bool:
        return self.state in _TERMINAL

    def start(self) -> SpeechStream:
        """Schedule the session on the running loop. Call once."""
        if self._task is not None:
            raise RuntimeError("Stream already started")
        self._task = asyncio.get_running_loop().create_task(self._run())
        return self

    async def wait(self) -> StreamState:
        """Wait until the stream reaches a terminal state and return it."""
        if self._task is not None:
            try:
                await asyncio.shield(self._task)
            except asyncio.CancelledError:
                if not self._task.cancelled():
                    raise
        return self.state

    async def close(self) -> None:
        """Abort the stream. No callbacks fire after this; a finished stream is left as is."""
        if self.done:
            return
        self._closing = True
        if self._ws is not None:
            try:
                await self._ws.close()
            except _TRANSPORT_ERRORS as e:
                logger.debug("Stream close failed: %s", e)
        elif self._task is not None:
            self._task.cancel()
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self.state = StreamState.CLOSED

    async def _run(self) -> None:
        try:
            async with websockets.connect(
                self._url, open_timeout=self._open_timeout_sec, max_size=None
            ) as ws:
                self._ws = ws
                await ws.send(json.dumps({"text": self._text, "voice": self._voice}))
                self.state = StreamState.STREAMING
                logger.debug("Stream open %s (voice=%s)", self._url, self._voice)
                async for message in ws:
                    if self._closing:
                        break
                    if isinstance(message, (bytes, bytearray)):
                        self.chunks_received += 1
                        self._on_chunk(bytes(message))
        except asyncio.CancelledError:
            self.state = StreamState.CLOSED
            raise
        except _TRANSPORT_ERRORS as e:
            if self._closing:
                self.state = StreamState.CLOSED
                return
            self.state = StreamState.FAILED
            self.error = e
            logger.warning("TTS stream error after %d chunk(s): %s", self.chunks_received, e)
            self._on_error(e)
            return
        finally:
            self._ws = None
        if self._closing:
            self.state = StreamState.CLOSED
            return
        self.state = StreamState.COMPLETED
        logger.debug("Stream complete (%d chunks)", self.chunks_received)
        self._on_complete()
