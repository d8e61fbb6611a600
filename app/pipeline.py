"""
Orchestrator: mic -> STT -> input buffer; send -> research -> chat -> history -> speech -> UI callbacks.
Runs on one asyncio event loop. Blocking client calls go to the loop's default executor so
the loop keeps serving the UI while a stage is in flight.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from datetime import datetime
from typing import Any, Callable

from research import build_request
from sdk import (
    AssistantError,
    AudioCapture,
    AudioPlayer,
    ChatFailed,
    LLMConfig,
    MalformedInput,
    Message,
    MessageMetadata,
    MicrophoneError,
    NoOpCapture,
    NoOpPlayer,
    OrchestratorState,
    PipelineStatus,
    ResearchFailed,
    ResearchSettings,
    ServiceUnavailable,
    SpeechFailed,
    SpeechMode,
    SpeechSettings,
    TranscriptionFailed,
)
from tts.stream import SpeechStream, StreamState

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUTS = {
    "stt_sec": 30.0,
    "research_sec": 60.0,
    "chat_sec": 60.0,
    "speech_sec": 60.0,
    "stream_sec": 120.0,
}

# Marks the end of a streamed utterance in the playback queue.
_END_OF_STREAM = object()

SPEECH_UNAVAILABLE = "Speech unavailable ({reason}). Displaying text only."

_ERROR_PREFIXES: dict[type, str] = {
    TranscriptionFailed: "Failed to transcribe audio",
    ResearchFailed: "Research failed",
    ChatFailed: "Chat failed",
    SpeechFailed: "Speech failed",
}


def describe_error(e: BaseException) -> str:
    """One user-visible line for a stage failure."""
    if isinstance(e, (ServiceUnavailable, MalformedInput, MicrophoneError)):
        return str(e)
    for cls, prefix in _ERROR_PREFIXES.items():
        if isinstance(e, cls):
            return f"{prefix}: {e}"
    return str(e) or "An error occurred."


def create_pipeline(config: Any, capture: AudioCapture | None = None, player: AudioPlayer | None = None) -> Pipeline:
    """
    Build the pipeline and its clients from an AppConfig. Credentials come from the
    environment; a missing key leaves that client in place so the stage fails with
    ServiceUnavailable instead of crashing at startup.
    Falls back to no-op audio devices when sounddevice/PortAudio cannot be loaded.
    """
    from llm.client import ChatClient
    from research.client import ResearchClient
    from stt.deepgram_client import TranscriptionClient
    from tts.client import SpeechClient

    services = config.get_services_config()
    timeouts = config.get_timeouts()
    creds = config.get_credentials()
    speech_cfg = config.get_speech_config()

    if capture is None or player is None:
        try:
            import sounddevice  # noqa: F401

            from audio.capture import SoundDeviceCapture
            from audio.player import SoundDevicePlayer

            audio_cfg = config.get_audio_config()
            capture = capture if capture is not None else SoundDeviceCapture(
                sample_rate=audio_cfg["sample_rate"],
                channels=audio_cfg["channels"],
                device=audio_cfg["device"],
            )
            player = player if player is not None else SoundDevicePlayer(
                fallback_sample_rate=speech_cfg["playback_sample_rate"]
            )
        except (ImportError, OSError) as e:
            logger.warning("Audio devices unavailable (%s); microphone and playback disabled", e)
            capture = capture if capture is not None else NoOpCapture()
            player = player if player is not None else NoOpPlayer()

    state = OrchestratorState(
        llm_config=config.get_llm_config(),
        research_settings=config.get_research_settings(),
        speech_settings=config.get_speech_settings(),
    )
    return Pipeline(
        capture=capture,
        transcriber=TranscriptionClient(
            creds.get("deepgram"),
            base_url=services["stt_base_url"],
            model=services["stt_model"],
            timeout_sec=timeouts["stt_sec"],
        ),
        research_client=ResearchClient(
            creds.get("tavily"),
            base_url=services["research_base_url"],
            timeout_sec=timeouts["research_sec"],
        ),
        chat_client=ChatClient(
            creds.get("groq"),
            base_url=services["chat_base_url"],
            timeout_sec=timeouts["chat_sec"],
        ),
        speech_client=SpeechClient(
            base_url=services["tts_base_url"],
            stream_url=services["tts_stream_url"],
            timeout_sec=timeouts["speech_sec"],
        ),
        player=player,
        state=state,
        timeouts=timeouts,
    )


class Pipeline:
    """
    Owns OrchestratorState and is the only thing that mutates it.
    At most one send() runs at a time: a run token is taken on entry and cleared on every exit.
    """

    def __init__(
        self,
        capture: AudioCapture,
        transcriber: Any,
        research_client: Any,
        chat_client: Any,
        speech_client: Any,
        player: AudioPlayer,
        state: OrchestratorState | None = None,
        timeouts: dict[str, float] | None = None,
    ) -> None:
        self._capture = capture
        self._stt = transcriber
        self._research = research_client
        self._chat = chat_client
        self._speech = speech_client
        self._player = player
        self.state = state if state is not None else OrchestratorState()
        self._timeouts = {**DEFAULT_TIMEOUTS, **(timeouts or {})}

        self._on_status: Callable[[PipelineStatus], None] = lambda _: None
        self._on_message: Callable[[Message], None] = lambda _: None
        self._on_error: Callable[[str], None] = lambda _: None
        self._on_notice: Callable[[str], None] = lambda _: None
        self._on_transcript: Callable[[str], None] = lambda _: None
        self._on_debug: Callable[[str], None] = lambda _: None
        self._on_volume: Callable[[float], None] | None = None

        self._run_counter = 0
        self._stream: SpeechStream | None = None
        self._chunk_queue: asyncio.Queue | None = None

    def set_ui_callbacks(
        self,
        on_status: Callable[[PipelineStatus], None],
        on_message: Callable[[Message], None],
        on_error: Callable[[str], None],
        on_notice: Callable[[str], None] | None = None,
        on_transcript: Callable[[str], None] | None = None,
        on_debug: Callable[[str], None] | None = None,
        on_volume: Callable[[float], None] | None = None,
    ) -> None:
        self._on_status = on_status
        self._on_message = on_message
        self._on_error = on_error
        if on_notice is not None:
            self._on_notice = on_notice
        if on_transcript is not None:
            self._on_transcript = on_transcript
        if on_debug is not None:
            self._on_debug = on_debug
            if hasattr(self._chat, "set_debug_log"):
                self._chat.set_debug_log(lambda m: self._debug(m))
        if on_volume is not None:
            self._on_volume = on_volume

    # ---- state accessors ----

    @property
    def status(self) -> PipelineStatus:
        return self.state.status

    @property
    def history(self) -> tuple[Message, ...]:
        return tuple(self.state.history)

    @property
    def is_busy(self) -> bool:
        return self.state.active_run is not None or self.state.status is not PipelineStatus.IDLE

    def set_input(self, text: str) -> None:
        self.state.input_text = text or ""

    def set_llm_config(self, config: LLMConfig) -> None:
        """Takes effect on the next send; a run in flight keeps its snapshot."""
        self.state.llm_config = config

    def set_research_settings(self, settings: ResearchSettings) -> None:
        self.state.research_settings = settings

    def set_speech_settings(self, settings: SpeechSettings) -> None:
        self.state.speech_settings = settings

    def clear_error(self) -> None:
        self.state.error = None
        self.state.notice = None

    # ---- internals ----

    def _debug(self, msg: str) -> None:
        ts = datetime.now().strftime("%H:%M:%S.%f")[:-3]
        self._on_debug(f"[{ts}] {msg}")

    def _set_status(self, status: PipelineStatus) -> None:
        if self.state.status is status:
            return
        self._debug(f"Status {self.state.status.value} -> {status.value}")
        self.state.status = status
        self._emit("on_status", self._on_status, status)

    def _emit(self, name: str, callback: Callable[[Any], None], value: Any) -> None:
        """Invoke a UI callback; a failing callback is logged and never reaches the caller."""
        try:
            callback(value)
        except Exception as e:
            logger.warning("%s callback failed: %s", name, e)

    def _fail(self, message: str) -> None:
        self.state.error = message
        self._debug("Error: " + message)
        self._emit("on_error", self._on_error, message)

    def _warn(self, message: str) -> None:
        self.state.notice = message
        self._debug("Notice: " + message)
        self._emit("on_notice", self._on_notice, message)

    def _append(self, message: Message) -> None:
        self.state.history.append(message)
        self._emit("on_message", self._on_message, message)

    async def _call(self, error_cls: type[AssistantError], timeout: float, func: Callable, *args: Any) -> Any:
        """Run a blocking client call in the executor, bounded by timeout seconds."""
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(None, functools.partial(func, *args)),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            raise error_cls(f"timed out after {timeout:.0f}s") from e

    # ---- recording ----

    async def toggle_mic(self) -> str | None:
        """
        idle -> recording, or recording -> transcribing -> idle.
        On success the transcript fills the input buffer (not sent) and is returned.
        """
        if self.state.status is PipelineStatus.RECORDING:
            return await self._finish_recording()
        if self.is_busy:
            logger.info("Mic toggle ignored while %s", self.state.status.value)
            return None
        self.state.error = None
        # Run token is held while the device opens; send() and a second toggle are rejected meanwhile.
        self._run_counter += 1
        token = self._run_counter
        self.state.active_run = token
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None, functools.partial(self._capture.start, self._on_volume)
            )
        except MicrophoneError as e:
            logger.warning("Microphone start failed: %s", e)
            self._fail(describe_error(e))
            return None
        except Exception as e:
            logger.exception("Microphone start failed: %s", e)
            self._fail("Microphone disconnected or unavailable")
            return None
        else:
            self._set_status(PipelineStatus.RECORDING)
        finally:
            if self.state.active_run == token:
                self.state.active_run = None
        return None

    async def abort_recording(self) -> None:
        """Drop the current recording and release the microphone."""
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._capture.abort)
        finally:
            if self.state.status is PipelineStatus.RECORDING:
                self._set_status(PipelineStatus.IDLE)

    async def _finish_recording(self) -> str | None:
        self._set_status(PipelineStatus.TRANSCRIBING)
        loop = asyncio.get_running_loop()
        try:
            blob = await loop.run_in_executor(None, self._capture.stop)
            if not blob:
                raise MalformedInput("No audio recorded")
            text = await self._call(
                TranscriptionFailed, self._timeouts["stt_sec"], self._stt.transcribe, blob
            )
        except AssistantError as e:
            logger.warning("Transcription failed: %s", e)
            self._fail(describe_error(e))
            return None
        except Exception as e:
            logger.exception("Transcription failed: %s", e)
            self._fail("Failed to transcribe audio.")
            return None
        finally:
            if self._capture.is_recording:
                await loop.run_in_executor(None, self._capture.abort)
            self._set_status(PipelineStatus.IDLE)
        text = text or ""
        self.state.input_text = text
        self._debug("Transcription: " + text)
        self._emit("on_transcript", self._on_transcript, text)
        return text

    # ---- send ----

    async def send(self, text: str | None = None) -> Message | None:
        """
        Run one pipeline: research -> chat -> speech. Returns the assistant message, or None
        when the send was rejected or a stage before speech failed.
        Rejected (no network calls, history untouched) while busy or when the input is blank.
        """
        if self.is_busy:
            logger.info("Send rejected: pipeline is %s", self.state.status.value)
            return None
        if text is not None:
            self.state.input_text = text
        user_text = self.state.input_text
        if not user_text.strip():
            return None

        self._run_counter += 1
        self.state.active_run = self._run_counter
        try:
            return await self._run(user_text)
        finally:
            self.state.active_run = None
            self._set_status(PipelineStatus.IDLE)

    async def _run(self, user_text: str) -> Message | None:
        prior = list(self.state.history)
        llm_config = self.state.llm_config
        research_settings = self.state.research_settings
        speech_settings = self.state.speech_settings

        self.state.error = None
        self.state.notice = None
        self.state.input_text = ""
        self._append(Message(role="user", content=user_text))

        try:
            self._set_status(PipelineStatus.RESEARCHING)
            request = build_request(
                research_settings.mode,
                user_text,
                {
                    "search_depth": research_settings.search_depth,
                    "extract_depth": research_settings.extract_depth,
                },
            )
            result = await self._call(
                ResearchFailed, self._timeouts["research_sec"], self._research.research, request
            )
            self._debug(
                "Research %s: %d chars context, %d sources"
                % (result.mode.value, len(result.context), len(result.sources))
            )

            self._set_status(PipelineStatus.THINKING)
            reply = await self._call(
                ChatFailed,
                self._timeouts["chat_sec"],
                self._chat.chat,
                prior,
                user_text,
                result.context,
                llm_config,
                result.mode,
            )
        except AssistantError as e:
            logger.warning("Pipeline run failed: %s", e)
            self._fail(describe_error(e))
            return None
        except Exception as e:
            logger.exception("Pipeline run failed: %s", e)
            self._fail(str(e) or "An error occurred.")
            return None

        assistant = Message(
            role="assistant",
            content=reply.content,
            sources=result.sources,
            metadata=MessageMetadata(
                llm={
                    **llm_config.to_dict(),
                    "usage": reply.usage,
                    "model": reply.model or llm_config.model,
                },
                research={"type": result.mode.value, "result": result.raw},
                tts={"voice": speech_settings.voice, "mode": speech_settings.mode.value},
            ),
        )
        self._append(assistant)
        await self._speak(reply.content, speech_settings)
        return assistant

    # ---- speech ----

    async def _speak(self, text: str, settings: SpeechSettings) -> None:
        """Speak the answer. Failures only produce a notice; the text answer stays."""
        if settings.mode is SpeechMode.OFF or not (text or "").strip():
            return
        self._set_status(PipelineStatus.SPEAKING)
        try:
            if settings.mode is SpeechMode.STREAM:
                await self._speak_streaming(text, settings.voice)
            else:
                audio = await self._call(
                    SpeechFailed,
                    self._timeouts["speech_sec"],
                    self._speech.synthesize,
                    text,
                    settings.voice,
                )
                loop = asyncio.get_running_loop()
                await loop.run_in_executor(None, self._player.play, audio)
        except AssistantError as e:
            logger.warning("TTS failed: %s", e)
            self._warn(SPEECH_UNAVAILABLE.format(reason=e))
        except Exception as e:
            logger.exception("TTS playback failed: %s", e)
            self._warn(SPEECH_UNAVAILABLE.format(reason=str(e) or "playback error"))

    async def _speak_streaming(self, text: str, voice: str) -> None:
        if self._stream is not None and not self._stream.done:
            await self.stop_speaking()
        queue: asyncio.Queue = asyncio.Queue()
        stream = self._speech.open_stream(
            text,
            voice,
            on_chunk=queue.put_nowait,
            on_complete=lambda: queue.put_nowait(_END_OF_STREAM),
            on_error=lambda _e: queue.put_nowait(_END_OF_STREAM),
        )
        self._stream = stream
        self._chunk_queue = queue
        loop = asyncio.get_running_loop()

        async def play_in_order() -> None:
            while True:
                item = await queue.get()
                if item is _END_OF_STREAM:
                    return
                await loop.run_in_executor(None, self._player.play, item)

        try:
            await asyncio.wait_for(play_in_order(), timeout=self._timeouts["stream_sec"])
            await stream.wait()
        except asyncio.TimeoutError as e:
            await stream.close()
            raise SpeechFailed("speech stream timed out") from e
        finally:
            if self._stream is stream:
                self._stream = None
                self._chunk_queue = None
        if stream.state is StreamState.FAILED:
            raise SpeechFailed(str(stream.error) or "speech stream failed")

    async def stop_speaking(self) -> None:
        """Close an open speech stream and stop playback."""
        stream, queue = self._stream, self._chunk_queue
        if stream is not None:
            await stream.close()
        if queue is not None:
            queue.put_nowait(_END_OF_STREAM)
        try:
            self._player.stop()
        except Exception as e:
            logger.debug("Player stop failed: %s", e)

    # ---- voices ----

    async def refresh_voices(self) -> list[str]:
        loop = asyncio.get_running_loop()
        voices = await loop.run_in_executor(None, self._speech.list_voices)
        self.state.voices = list(voices)
        return self.state.voices

    async def upload_voice(self, filename: str, data: bytes) -> bool:
        """Upload a voice sample, then refresh the voice list. Failure sets a notice."""
        try:
            await self._call(
                SpeechFailed, self._timeouts["speech_sec"], self._speech.upload_voice, filename, data
            )
        except AssistantError as e:
            logger.warning("Voice upload failed: %s", e)
            self._warn(f"Failed to upload voice: {e}")
            return False
        await self.refresh_voices()
        return True


__all__ = ["Pipeline", "create_pipeline", "describe_error"]
