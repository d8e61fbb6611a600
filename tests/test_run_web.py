"""Tests for run_web: the HTTP surface (/api/stt, /api/research, /api/chat, /api/health)."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from config import AppConfig
from research import CrawlRequest, ExtractRequest, SearchRequest
from run_web import create_app, llm_config_from_body, research_request_from_body
from sdk import (
    ChatFailed,
    ChatResult,
    LLMConfig,
    MalformedInput,
    ResearchFailed,
    ServiceUnavailable,
    TranscriptionFailed,
)


def _clients(available: bool = True):
    stt = MagicMock()
    stt.available = available
    stt.transcribe.return_value = "hello world"
    research = MagicMock()
    research.available = available
    research.fetch.return_value = {"answer": "Paris", "results": []}
    chat = MagicMock()
    chat.available = available
    chat.complete.return_value = ChatResult(content="Paris.", usage={"total_tokens": 7}, model="m")
    return stt, research, chat


def _client(available: bool = True):
    stt, research, chat = _clients(available)
    app = create_app(AppConfig({}), transcriber=stt, research_client=research, chat_client=chat)
    return TestClient(app), stt, research, chat


# ---- helpers ----
def test_research_request_from_body_variants() -> None:
    assert research_request_from_body("q", "search", {}) == SearchRequest(query="q")
    assert research_request_from_body("", "extract", {"urls": ["https://a.com", " "]}) == ExtractRequest(
        urls=("https://a.com",)
    )
    assert research_request_from_body("https://a.com, https://b.com", "extract", {}) == ExtractRequest(
        urls=("https://a.com", "https://b.com")
    )
    assert research_request_from_body("", "crawl", {"url": "https://a.com"}) == CrawlRequest(url="https://a.com")


def test_research_request_from_body_empty_urls_raises() -> None:
    with pytest.raises(MalformedInput):
        research_request_from_body("", "extract", {"urls": []})


def test_llm_config_from_body_merges_and_clamps() -> None:
    assert llm_config_from_body(None) == LLMConfig()
    cfg = llm_config_from_body({"model": "x", "temperature": 9})
    assert cfg.model == "x"
    assert cfg.temperature == 2.0


# ---- /api/health ----
def test_health_reports_configured_services() -> None:
    client, *_ = _client(available=False)
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "stt": False, "research": False, "chat": False}


# ---- /api/stt ----
def test_stt_transcribes_uploaded_file() -> None:
    client, stt, _, _ = _client()
    resp = client.post("/api/stt", files={"audio": ("rec.wav", b"RIFFdata", "audio/wav")})
    assert resp.status_code == 200
    assert resp.json() == {"text": "hello world"}
    stt.transcribe.assert_called_once_with(b"RIFFdata", "audio/wav")


def test_stt_missing_file_is_400() -> None:
    client, *_ = _client()
    resp = client.post("/api/stt")
    assert resp.status_code == 400
    assert resp.json() == {"error": "No audio file provided"}


def test_stt_without_key_is_503() -> None:
    client, stt, _, _ = _client(available=False)
    resp = client.post("/api/stt", files={"audio": ("rec.wav", b"x", "audio/wav")})
    assert resp.status_code == 503
    assert resp.json()["error"] == "DEEPGRAM_API_KEY not configured"
    stt.transcribe.assert_not_called()


def test_stt_upstream_failure_is_502() -> None:
    client, stt, _, _ = _client()
    stt.transcribe.side_effect = TranscriptionFailed("HTTP 401")
    resp = client.post("/api/stt", files={"audio": ("rec.wav", b"x", "audio/wav")})
    assert resp.status_code == 502
    assert resp.json() == {"error": "HTTP 401"}


# ---- /api/research ----
def test_research_returns_raw_response() -> None:
    client, _, research, _ = _client()
    resp = client.post("/api/research", json={"query": "capital of France", "type": "search"})
    assert resp.status_code == 200
    assert resp.json() == {"answer": "Paris", "results": []}
    assert research.fetch.call_args[0][0] == SearchRequest(query="capital of France")


def test_research_defaults_to_search() -> None:
    client, _, research, _ = _client()
    client.post("/api/research", json={"query": "q"})
    assert isinstance(research.fetch.call_args[0][0], SearchRequest)


def test_research_extract_with_url_list() -> None:
    client, _, research, _ = _client()
    resp = client.post(
        "/api/research",
        json={"query": "", "type": "extract", "options": {"urls": ["https://a.com", "https://b.com"]}},
    )
    assert resp.status_code == 200
    assert research.fetch.call_args[0][0] == ExtractRequest(urls=("https://a.com", "https://b.com"))


def test_research_unknown_type_is_400() -> None:
    client, _, research, _ = _client()
    resp = client.post("/api/research", json={"query": "q", "type": "scrape"})
    assert resp.status_code == 400
    research.fetch.assert_not_called()


def test_research_empty_query_is_400() -> None:
    client, _, research, _ = _client()
    resp = client.post("/api/research", json={"query": "  "})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Search needs a query"}


def test_research_upstream_failure_carries_details() -> None:
    client, _, research, _ = _client()
    research.fetch.side_effect = ResearchFailed("HTTP 432", details={"detail": "plan limit"})
    resp = client.post("/api/research", json={"query": "q"})
    assert resp.status_code == 502
    assert resp.json() == {"error": "HTTP 432", "details": {"detail": "plan limit"}}


def test_research_without_key_is_503() -> None:
    client, _, research, _ = _client(available=False)
    resp = client.post("/api/research", json={"query": "q"})
    assert resp.status_code == 503
    assert resp.json() == {"error": "TAVILY_API_KEY not configured"}


# ---- /api/chat ----
def test_chat_returns_content_usage_model() -> None:
    client, _, _, chat = _client()
    messages = [{"role": "system", "content": "S"}, {"role": "user", "content": "Q"}]
    resp = client.post("/api/chat", json={"messages": messages, "config": {"model": "m", "top_p": 0.5}})
    assert resp.status_code == 200
    assert resp.json() == {"content": "Paris.", "usage": {"total_tokens": 7}, "model": "m"}
    sent_messages, cfg = chat.complete.call_args[0]
    assert sent_messages == messages
    assert cfg == LLMConfig(model="m", top_p=0.5)


def test_chat_missing_messages_is_400() -> None:
    client, _, _, chat = _client()
    resp = client.post("/api/chat", json={"config": {}})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Messages required"}
    chat.complete.assert_not_called()


def test_chat_upstream_failure_is_502() -> None:
    client, _, _, chat = _client()
    chat.complete.side_effect = ChatFailed("HTTP 500")
    resp = client.post("/api/chat", json={"messages": [{"role": "user", "content": "q"}]})
    assert resp.status_code == 502


def test_chat_service_unavailable_from_client_is_503() -> None:
    client, _, _, chat = _client()
    chat.complete.side_effect = ServiceUnavailable("GROQ_API_KEY not configured")
    resp = client.post("/api/chat", json={"messages": [{"role": "user", "content": "q"}]})
    assert resp.status_code == 503
