# Speech-to-text for recorded utterances.
from stt.deepgram_client import TranscriptionClient

__all__ = ["TranscriptionClient"]
