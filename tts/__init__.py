# Text-to-speech against the local speech server: batch synthesis and WebSocket streaming.
from tts.client import FALLBACK_VOICES, SpeechClient
from tts.stream import SpeechStream, StreamState

__all__ = ["FALLBACK_VOICES", "SpeechClient", "SpeechStream", "StreamState"]
