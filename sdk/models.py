"""
Conversation and configuration types shared by the clients and the pipeline.
"""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field
from typing import Any


class PipelineStatus(str, enum.Enum):
    IDLE = "idle"
    RECORDING = "recording"
    TRANSCRIBING = "transcribing"
    RESEARCHING = "researching"
    THINKING = "thinking"
    SPEAKING = "speaking"


class ResearchMode(str, enum.Enum):
    SEARCH = "search"
    EXTRACT = "extract"
    CRAWL = "crawl"


class SpeechMode(str, enum.Enum):
    BATCH = "batch"
    STREAM = "stream"
    OFF = "off"


@dataclass(frozen=True)
class Source:
    """A citation from a search result. Only url is required."""

    url: str
    title: str | None = None
    content: str | None = None

    @classmethod
    def from_result(cls, result: dict) -> Source | None:
        """Build from one remote search result dict; None when it has no url."""
        url = (result or {}).get("url")
        if not url:
            return None
        return cls(url=str(url), title=result.get("title"), content=result.get("content"))


@dataclass(frozen=True)
class LLMConfig:
    """Chat completion parameters. Ranges are enforced by sdk.config.get_llm_section."""

    model: str = "llama-3.3-70b-versatile"
    temperature: float = 1.0
    max_completion_tokens: int = 1024
    top_p: float = 1.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ResearchSettings:
    mode: ResearchMode = ResearchMode.SEARCH
    search_depth: str = "advanced"
    extract_depth: str = "advanced"


@dataclass(frozen=True)
class SpeechSettings:
    voice: str = "alba"
    mode: SpeechMode = SpeechMode.BATCH


@dataclass(frozen=True)
class MessageMetadata:
    """Diagnostics attached to assistant turns. Never sent back upstream."""

    llm: dict[str, Any]
    research: dict[str, Any]
    tts: dict[str, Any]


@dataclass(frozen=True)
class Message:
    role: str
    content: str
    sources: tuple[Source, ...] = ()
    metadata: MessageMetadata | None = None

    def to_chat_dict(self) -> dict[str, str]:
        """Role and content only: the shape sent to the chat endpoint."""
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class ResearchResult:
    mode: ResearchMode
    context: str
    sources: tuple[Source, ...]
    raw: Any


@dataclass(frozen=True)
class ChatResult:
    content: str
    usage: dict[str, Any] | None
    model: str | None


@dataclass
class OrchestratorState:
    """
    Everything the pipeline mutates. Owned by one Pipeline; UIs read it and call
    Pipeline methods, never assign to it directly.
    """

    llm_config: LLMConfig = field(default_factory=LLMConfig)
    research_settings: ResearchSettings = field(default_factory=ResearchSettings)
    speech_settings: SpeechSettings = field(default_factory=SpeechSettings)
    status: PipelineStatus = PipelineStatus.IDLE
    history: list[Message] = field(default_factory=list)
    input_text: str = ""
    error: str | None = None
    notice: str | None = None
    active_run: int | None = None
    voices: list[str] = field(default_factory=list)


__all__ = [
    "ChatResult",
    "LLMConfig",
    "Message",
    "MessageMetadata",
    "OrchestratorState",
    "PipelineStatus",
    "ResearchMode",
    "ResearchResult",
    "ResearchSettings",
    "Source",
    "SpeechMode",
    "SpeechSettings",
]
