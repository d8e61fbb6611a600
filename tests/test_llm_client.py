"""Tests for llm.client: ChatClient.complete and chat."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests

from llm.client import ChatClient
from sdk import ChatFailed, LLMConfig, Message, ResearchMode, ServiceUnavailable


def _completion(content: str = "Paris.", model: str = "llama-3.3-70b-versatile") -> MagicMock:
    r = MagicMock()
    r.status_code = 200
    r.json.return_value = {
        "choices": [{"message": {"role": "assistant", "content": content}}],
        "usage": {"total_tokens": 42},
        "model": model,
    }
    return r


def test_complete_without_key_raises_and_makes_no_request() -> None:
    client = ChatClient("")
    assert client.available is False
    with patch("llm.client.requests.post") as post:
        with pytest.raises(ServiceUnavailable, match="GROQ_API_KEY"):
            client.complete([{"role": "user", "content": "hi"}], LLMConfig())
    post.assert_not_called()


def test_complete_sends_config_and_parses_result() -> None:
    client = ChatClient("gk", base_url="https://api.groq.com/openai/v1/")
    config = LLMConfig(model="m", temperature=0.2, max_completion_tokens=64, top_p=0.9)
    messages = [{"role": "user", "content": "hi"}]
    with patch("llm.client.requests.post", return_value=_completion("hello", "m")) as post:
        result = client.complete(messages, config)
    assert result.content == "hello"
    assert result.usage == {"total_tokens": 42}
    assert result.model == "m"
    args, kwargs = post.call_args
    assert args[0] == "https://api.groq.com/openai/v1/chat/completions"
    assert kwargs["headers"]["Authorization"] == "Bearer gk"
    assert kwargs["json"] == {
        "messages": messages,
        "model": "m",
        "temperature": 0.2,
        "max_completion_tokens": 64,
        "top_p": 0.9,
        "stream": False,
    }


def test_complete_http_error_raises_chat_failed() -> None:
    r = MagicMock()
    r.status_code = 429
    r.json.return_value = {"error": {"message": "rate limited"}}
    r.raise_for_status.side_effect = requests.HTTPError("429", response=r)
    with patch("llm.client.requests.post", return_value=r):
        with pytest.raises(ChatFailed) as exc_info:
            ChatClient("k").complete([], LLMConfig())
    assert exc_info.value.status_code == 429
    assert exc_info.value.details == {"error": {"message": "rate limited"}}


def test_complete_timeout_raises_chat_failed() -> None:
    with patch("llm.client.requests.post", side_effect=requests.Timeout("read timed out")):
        with pytest.raises(ChatFailed):
            ChatClient("k").complete([], LLMConfig())


def test_complete_no_choices_returns_empty_content() -> None:
    r = MagicMock()
    r.json.return_value = {"choices": [], "model": "m"}
    with patch("llm.client.requests.post", return_value=r):
        result = ChatClient("k").complete([], LLMConfig())
    assert result.content == ""
    assert result.usage is None


def test_chat_builds_system_history_user_messages() -> None:
    client = ChatClient("k")
    history = [Message(role="user", content="Q1"), Message(role="assistant", content="A1")]
    with patch("llm.client.requests.post", return_value=_completion()) as post:
        client.chat(history, "Q2", "CTX", LLMConfig(), ResearchMode.CRAWL)
    sent = post.call_args[1]["json"]["messages"]
    assert sent[0]["role"] == "system"
    assert "Research Method Used: CRAWL" in sent[0]["content"]
    assert "CTX" in sent[0]["content"]
    assert sent[1:] == [
        {"role": "user", "content": "Q1"},
        {"role": "assistant", "content": "A1"},
        {"role": "user", "content": "Q2"},
    ]


def test_debug_log_callback_receives_lines() -> None:
    client = ChatClient("k")
    lines: list[str] = []
    client.set_debug_log(lines.append)
    with patch("llm.client.requests.post", return_value=_completion()):
        client.complete([], LLMConfig())
    assert any("Chat POST" in line for line in lines)


def test_chat_context_beyond_20000_chars_never_sent() -> None:
    context = "a" * 20000 + "SECRET_TAIL"
    with patch("llm.client.requests.post", return_value=_completion()) as post:
        ChatClient("k").chat([], "q", context, LLMConfig())
    system = post.call_args[1]["json"]["messages"][0]["content"]
    assert "a" * 20000 in system
    assert "SECRET_TAIL" not in system
