"""
Assistant SDK: shared library for the clients, the pipeline and the entry points.

Provides a single public surface for config section access, audio abstractions,
conversation types, the error taxonomy, audio utilities, and logging. Import from this
package only; do not depend on app or the client packages from within the SDK.

Example:
    from sdk import get_llm_section, get_research_section
    cfg = get_llm_section(raw_config)

    from sdk import AudioCapture, AudioPlayer
    from sdk import Message, PipelineStatus, ResearchMode
    from sdk import ServiceUnavailable, ResearchFailed
    from sdk import get_logger
"""

from __future__ import annotations

from sdk.abstractions import AudioCapture, AudioPlayer, NoOpCapture, NoOpPlayer
from sdk.audio_utils import INT16_MAX, chunk_rms_level, decode_audio, encode_wav
from sdk.config import (
    get_audio_section,
    get_llm_section,
    get_research_section,
    get_section,
    get_services_section,
    get_speech_section,
    get_timeouts_section,
)
from sdk.errors import (
    AssistantError,
    ChatFailed,
    DeviceUnavailable,
    MalformedInput,
    MicrophoneError,
    PermissionDenied,
    ResearchFailed,
    ServiceUnavailable,
    SpeechFailed,
    TranscriptionFailed,
    TransportFailed,
    error_detail,
)
from sdk.logging import get_logger
from sdk.models import (
    ChatResult,
    LLMConfig,
    Message,
    MessageMetadata,
    OrchestratorState,
    PipelineStatus,
    ResearchMode,
    ResearchResult,
    ResearchSettings,
    Source,
    SpeechMode,
    SpeechSettings,
)

__version__ = "0.1.0"

__all__ = [
    "INT16_MAX",
    "AssistantError",
    "AudioCapture",
    "AudioPlayer",
    "ChatFailed",
    "ChatResult",
    "DeviceUnavailable",
    "LLMConfig",
    "MalformedInput",
    "Message",
    "MessageMetadata",
    "MicrophoneError",
    "NoOpCapture",
    "NoOpPlayer",
    "OrchestratorState",
    "PermissionDenied",
    "PipelineStatus",
    "ResearchFailed",
    "ResearchMode",
    "ResearchResult",
    "ResearchSettings",
    "ServiceUnavailable",
    "Source",
    "SpeechFailed",
    "SpeechMode",
    "SpeechSettings",
    "TranscriptionFailed",
    "TransportFailed",
    "chunk_rms_level",
    "decode_audio",
    "encode_wav",
    "error_detail",
    "get_audio_section",
    "get_llm_section",
    "get_logger",
    "get_research_section",
    "get_section",
    "get_services_section",
    "get_speech_section",
    "get_timeouts_section",
]
