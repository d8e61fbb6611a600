"""
Groq chat client (OpenAI-compatible chat completions API).
One non-streaming completion per call; no retries.
"""

from __future__ import annotations

import time
from typing import Any, Iterable

import requests

from llm.prompts import build_chat_messages, build_system_prompt
from sdk import (
    ChatFailed,
    ChatResult,
    LLMConfig,
    Message,
    ResearchMode,
    ServiceUnavailable,
    error_detail,
    get_logger,
)

logger = get_logger("llm")


class ChatClient:
    """
    Request a chat completion. Raises ServiceUnavailable without a key (no request made)
    and ChatFailed on transport errors, 4xx/5xx, or a malformed response.
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://api.groq.com/openai/v1",
        timeout_sec: float = 60.0,
    ) -> None:
        self._api_key = (api_key or "").strip() or None
        self.base_url = base_url.rstrip("/")
        self.timeout_sec = timeout_sec
        self._debug_log: None | object = None  # Callable[[str], None] set by pipeline

    @property
    def available(self) -> bool:
        return self._api_key is not None

    def set_debug_log(self, callback: object) -> None:
        """Optional: set a callable(str) to log debug lines (e.g. HTTP request/response)."""
        self._debug_log = callback

    def _debug(self, msg: str) -> None:
        if callable(self._debug_log):
            self._debug_log(msg)

    def complete(self, messages: list[dict[str, str]], config: LLMConfig) -> ChatResult:
        """Send ready-made messages; used directly by the HTTP surface."""
        if not self.available:
            raise ServiceUnavailable("GROQ_API_KEY not configured")
        url = f"{self.base_url}/chat/completions"
        payload: dict[str, Any] = {
            "messages": messages,
            "model": config.model,
            "temperature": config.temperature,
            "max_completion_tokens": config.max_completion_tokens,
            "top_p": config.top_p,
            "stream": False,
        }
        self._debug(f"Chat POST {url} model={config.model} messages={len(messages)}")
        start = time.perf_counter()
        try:
            r = requests.post(
                url,
                json=payload,
                headers={"Authorization": f"Bearer {self._api_key}"},
                timeout=self.timeout_sec,
            )
            elapsed = time.perf_counter() - start
            self._debug(f"Chat HTTP {r.status_code} ({elapsed:.2f}s)")
            r.raise_for_status()
            data = r.json()
        except requests.HTTPError as e:
            details = error_detail(e.response)
            logger.warning("Chat request failed: %s (%s)", e, details)
            raise ChatFailed(
                str(e),
                details=details,
                status_code=e.response.status_code if e.response is not None else None,
            ) from e
        except requests.RequestException as e:
            logger.warning("Chat request failed: %s", e)
            raise ChatFailed(str(e)) from e
        except ValueError as e:
            raise ChatFailed("Chat response was not valid JSON") from e

        try:
            choices = data.get("choices") or []
            content = (choices[0].get("message") or {}).get("content") if choices else ""
        except (AttributeError, IndexError, TypeError) as e:
            raise ChatFailed("Chat response had an unexpected shape", details=data) from e
        self._debug("Chat response OK (%d chars)" % len(content or ""))
        return ChatResult(
            content=content or "",
            usage=data.get("usage"),
            model=data.get("model"),
        )

    def chat(
        self,
        history: Iterable[Message],
        user_text: str,
        context: str,
        config: LLMConfig,
        method: ResearchMode = ResearchMode.SEARCH,
    ) -> ChatResult:
        """Assemble system prompt + prior turns + user_text and request one completion."""
        messages = build_chat_messages(history, user_text, build_system_prompt(method, context))
        return self.complete(messages, config)
