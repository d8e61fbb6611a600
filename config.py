"""
Minimal config wrapper: single place for keys and defaults; dict-like access for existing callers.
Config is merged from the root config.yaml and optional config.user.yaml. API keys are read
from the environment only and never from YAML.
"""

from __future__ import annotations

import os
from pathlib import Path

import yaml

from sdk import (
    LLMConfig,
    ResearchMode,
    ResearchSettings,
    SpeechMode,
    SpeechSettings,
    get_audio_section,
    get_llm_section,
    get_research_section,
    get_services_section,
    get_speech_section,
    get_timeouts_section,
)

_CONFIG_ROOT = Path(__file__).resolve().parent

# Environment variable -> credential name. Presence toggles the matching stage.
CREDENTIAL_ENV = {
    "deepgram": "DEEPGRAM_API_KEY",
    "tavily": "TAVILY_API_KEY",
    "groq": "GROQ_API_KEY",
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base. override wins for conflicts. Returns new dict."""
    out = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def load_yaml_file(path: Path) -> dict:
    """Load a YAML file; return {} if missing or invalid. Single place for safe YAML loading."""
    if not path.exists():
        return {}
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return {}


def get_config_path() -> Path:
    """Root config path from ASSISTANT_CONFIG or project root/config.yaml."""
    return Path(os.environ.get("ASSISTANT_CONFIG", str(_CONFIG_ROOT / "config.yaml")))


def load_config() -> dict:
    """
    Load merged config: root config.yaml -> config.user.yaml (same directory).
    Raises FileNotFoundError when the root file is missing.
    """
    root_path = get_config_path()
    if not root_path.exists():
        raise FileNotFoundError(f"Config not found: {root_path}")
    merged = load_yaml_file(root_path)

    user_path = root_path.parent / "config.user.yaml"
    if user_path.exists():
        user_data = load_yaml_file(user_path)
        if user_data:
            merged = _deep_merge(merged, user_data)

    return merged


def get_credentials(environ: dict | None = None) -> dict[str, str | None]:
    """Credential name -> stripped value, or None when the variable is unset or blank."""
    env = os.environ if environ is None else environ
    out: dict[str, str | None] = {}
    for name, var in CREDENTIAL_ENV.items():
        value = (env.get(var) or "").strip()
        out[name] = value or None
    return out


class AppConfig:
    """
    Wraps the raw YAML config dict. Use get_* for typed access with defaults;
    use .get(section, default) for dict-like access.
    """

    def __init__(self, raw: dict) -> None:
        self._raw = raw if raw is not None else {}

    def __getitem__(self, key: str):
        return self._raw[key]

    def get(self, key: str, default=None):
        return self._raw.get(key, default)

    def get_log_level(self) -> str:
        return str(self.get("logging", {}).get("level", "INFO"))

    def get_log_path(self) -> str | None:
        """Path for log file (root logger). None or empty disables the file handler."""
        return self.get("logging", {}).get("file")

    def get_llm_config(self) -> LLMConfig:
        s = get_llm_section(self._raw)
        return LLMConfig(
            model=s["model"],
            temperature=s["temperature"],
            max_completion_tokens=s["max_completion_tokens"],
            top_p=s["top_p"],
        )

    def get_research_settings(self) -> ResearchSettings:
        s = get_research_section(self._raw)
        return ResearchSettings(
            mode=ResearchMode(s["mode"]),
            search_depth=s["search_depth"],
            extract_depth=s["extract_depth"],
        )

    def get_speech_config(self) -> dict:
        return get_speech_section(self._raw)

    def get_speech_settings(self) -> SpeechSettings:
        s = self.get_speech_config()
        return SpeechSettings(voice=s["voice"], mode=SpeechMode(s["mode"]))

    def get_services_config(self) -> dict:
        """Remote service base URLs (STT, research, chat, speech server)."""
        return get_services_section(self._raw)

    def get_timeouts(self) -> dict[str, float]:
        return get_timeouts_section(self._raw)

    def get_audio_config(self) -> dict:
        return get_audio_section(self._raw)

    def get_web_config(self) -> dict:
        web = self.get("web") or {}
        try:
            port = int(web.get("port", 3000))
        except (TypeError, ValueError):
            port = 3000
        return {"host": str(web.get("host", "0.0.0.0")), "port": port}

    def get_credentials(self) -> dict[str, str | None]:
        return get_credentials()
