"""
Normalized config section access.
Provides get_section() and section-specific getters (llm, research, speech, services, timeouts,
audio) so defaults and clamping live in one place; config.AppConfig and the entry points use
these instead of duplicating logic.
"""

from __future__ import annotations

from typing import Any, Callable

DEFAULT_TTS_BASE_URL = "http://localhost:8000/api"
DEFAULT_TTS_STREAM_URL = "ws://localhost:8000/ws/stream"
DEFAULT_RESEARCH_BASE_URL = "https://api.tavily.com"
DEFAULT_CHAT_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_STT_BASE_URL = "https://api.deepgram.com/v1"

_DEPTHS = ("basic", "advanced")


def _clamp_int(value: Any, low: int, high: int, default: int) -> int:
    """Parse value to int and clamp to [low, high]; return default if value is None or invalid."""
    if value is None:
        return default
    try:
        return max(low, min(high, int(value)))
    except (TypeError, ValueError):
        return default


def _parse_float(value: Any, low: float, high: float, default: float) -> float:
    """Parse value to float and clamp to [low, high]; return default if value is None or parsing fails."""
    if value is None:
        return default
    try:
        return max(low, min(high, float(value)))
    except (TypeError, ValueError):
        return default


def _choice(value: Any, choices: tuple[str, ...], default: str) -> str:
    v = str(value or "").strip().lower()
    return v if v in choices else default


def _url(value: Any, default: str) -> str:
    v = str(value or "").strip()
    return (v or default).rstrip("/")


def get_section(
    raw_config: dict,
    section: str,
    defaults: dict[str, Any],
    validators: dict[str, Callable[[Any], Any]] | None = None,
) -> dict[str, Any]:
    """
    Return a normalized config section by merging raw section with defaults and applying validators.

    Args:
        raw_config: Full merged config dict (e.g. from load_config()).
        section: Top-level key (e.g. "llm", "research").
        defaults: Default values for the section; merged with raw_config.get(section, {}).
        validators: Optional dict mapping section key -> callable(value) -> value (e.g. clamp int).

    Returns:
        New dict with all keys from defaults, overridden by raw section, then validated.
        Keys not present in defaults are dropped.
    """
    validators = validators or {}
    raw_section = dict(raw_config.get(section) or {})
    out = dict(defaults)
    for k, v in raw_section.items():
        if k in defaults:
            out[k] = v
    for k, validator in validators.items():
        if k in out:
            try:
                out[k] = validator(out[k])
            except (TypeError, ValueError):
                out[k] = defaults.get(k)
    return out


def get_llm_section(raw_config: dict) -> dict[str, Any]:
    """LLM parameters: temperature in [0, 2], top_p in [0, 1], max_completion_tokens >= 1."""
    return get_section(
        raw_config,
        "llm",
        {
            "model": "llama-3.3-70b-versatile",
            "temperature": 1.0,
            "max_completion_tokens": 1024,
            "top_p": 1.0,
        },
        {
            "model": lambda v: str(v).strip() or "llama-3.3-70b-versatile",
            "temperature": lambda v: _parse_float(v, 0.0, 2.0, 1.0),
            "max_completion_tokens": lambda v: _clamp_int(v, 1, 131072, 1024),
            "top_p": lambda v: _parse_float(v, 0.0, 1.0, 1.0),
        },
    )


def get_research_section(raw_config: dict) -> dict[str, Any]:
    """Research mode and depth hints. Unknown modes fall back to search."""
    return get_section(
        raw_config,
        "research",
        {"mode": "search", "search_depth": "advanced", "extract_depth": "advanced"},
        {
            "mode": lambda v: _choice(v, ("search", "extract", "crawl"), "search"),
            "search_depth": lambda v: _choice(v, _DEPTHS, "advanced"),
            "extract_depth": lambda v: _choice(v, _DEPTHS, "advanced"),
        },
    )


def get_speech_section(raw_config: dict) -> dict[str, Any]:
    """Speech voice, mode (batch | stream | off) and playback sample rate for raw PCM chunks."""
    return get_section(
        raw_config,
        "speech",
        {"voice": "alba", "mode": "batch", "playback_sample_rate": 24000},
        {
            "voice": lambda v: str(v).strip() or "alba",
            "mode": lambda v: _choice(v, ("batch", "stream", "off"), "batch"),
            "playback_sample_rate": lambda v: _clamp_int(v, 8000, 192000, 24000),
        },
    )


def get_services_section(raw_config: dict) -> dict[str, Any]:
    """Base URLs of the remote services, trailing slash stripped."""
    return get_section(
        raw_config,
        "services",
        {
            "stt_base_url": DEFAULT_STT_BASE_URL,
            "stt_model": "flux-general-en",
            "research_base_url": DEFAULT_RESEARCH_BASE_URL,
            "chat_base_url": DEFAULT_CHAT_BASE_URL,
            "tts_base_url": DEFAULT_TTS_BASE_URL,
            "tts_stream_url": DEFAULT_TTS_STREAM_URL,
        },
        {
            "stt_base_url": lambda v: _url(v, DEFAULT_STT_BASE_URL),
            "stt_model": lambda v: str(v).strip() or "flux-general-en",
            "research_base_url": lambda v: _url(v, DEFAULT_RESEARCH_BASE_URL),
            "chat_base_url": lambda v: _url(v, DEFAULT_CHAT_BASE_URL),
            "tts_base_url": lambda v: _url(v, DEFAULT_TTS_BASE_URL),
            "tts_stream_url": lambda v: _url(v, DEFAULT_TTS_STREAM_URL),
        },
    )


def get_timeouts_section(raw_config: dict) -> dict[str, float]:
    """Per-stage timeouts in seconds, clamped to [1, 600]."""
    defaults = {
        "stt_sec": 30.0,
        "research_sec": 60.0,
        "chat_sec": 60.0,
        "speech_sec": 60.0,
        "stream_sec": 120.0,
    }
    return get_section(
        raw_config,
        "timeouts",
        defaults,
        {k: (lambda v, d=d: _parse_float(v, 1.0, 600.0, d)) for k, d in defaults.items()},
    )


def get_audio_section(raw_config: dict) -> dict[str, Any]:
    """Microphone capture: sample rate, channels, optional device (index or name)."""
    return get_section(
        raw_config,
        "audio",
        {"sample_rate": 16000, "channels": 1, "device": None},
        {
            "sample_rate": lambda v: _clamp_int(v, 8000, 192000, 16000),
            "channels": lambda v: _clamp_int(v, 1, 2, 1),
        },
    )


__all__ = [
    "DEFAULT_CHAT_BASE_URL",
    "DEFAULT_RESEARCH_BASE_URL",
    "DEFAULT_STT_BASE_URL",
    "DEFAULT_TTS_BASE_URL",
    "DEFAULT_TTS_STREAM_URL",
    "get_audio_section",
    "get_llm_section",
    "get_research_section",
    "get_section",
    "get_services_section",
    "get_speech_section",
    "get_timeouts_section",
]
