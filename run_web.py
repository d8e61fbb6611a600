#!/usr/bin/env python3
"""
HTTP surface for browser front-ends: FastAPI server proxying speech-to-text, research and chat.
Run: python run_web.py   (or python run.py --web)
Routes: POST /api/stt, POST /api/research, POST /api/chat, GET /api/health.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Any

# Ensure project root is on path
_ROOT = Path(__file__).resolve().parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from config import AppConfig  # noqa: E402
from fastapi import FastAPI, File, UploadFile  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402
from starlette.requests import Request  # noqa: E402 module-level so FastAPI can resolve request: Request in route handlers

from research.client import CrawlRequest, ExtractRequest, build_request  # noqa: E402
from sdk import (  # noqa: E402
    LLMConfig,
    MalformedInput,
    ResearchMode,
    ServiceUnavailable,
    TransportFailed,
    get_llm_section,
)

logger = logging.getLogger(__name__)

WEB_HOST = os.environ.get("ASSISTANT_WEB_HOST")
WEB_PORT = os.environ.get("ASSISTANT_WEB_PORT")


def research_request_from_body(query: str, mode: str, options: dict[str, Any]):
    """
    Request variant from an /api/research body. extract takes options.urls (list) and
    crawl takes options.url; both fall back to parsing query when the option is absent.
    """
    research_mode = ResearchMode(mode)
    if research_mode is ResearchMode.EXTRACT and isinstance(options.get("urls"), list):
        urls = tuple(str(u).strip() for u in options["urls"] if str(u).strip())
        if not urls:
            raise MalformedInput("Extract needs at least one URL")
        return ExtractRequest(urls=urls)
    if research_mode is ResearchMode.CRAWL and options.get("url"):
        return CrawlRequest(
            url=str(options["url"]).strip(),
            extract_depth=options.get("extract_depth") or "advanced",
        )
    return build_request(research_mode, query, options)


def llm_config_from_body(body_config: dict | None) -> LLMConfig:
    """LLM parameters from a request body, normalized with the same rules as config.yaml."""
    s = get_llm_section({"llm": body_config or {}})
    return LLMConfig(
        model=s["model"],
        temperature=s["temperature"],
        max_completion_tokens=s["max_completion_tokens"],
        top_p=s["top_p"],
    )


def _error(status_code: int, message: str, details: Any = None) -> JSONResponse:
    content: dict[str, Any] = {"error": message}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def create_app(
    config: AppConfig,
    transcriber: Any = None,
    research_client: Any = None,
    chat_client: Any = None,
) -> FastAPI:
    """Build the FastAPI app. Clients are built from config unless injected."""
    services = config.get_services_config()
    timeouts = config.get_timeouts()
    creds = config.get_credentials()
    if transcriber is None:
        from stt.deepgram_client import TranscriptionClient

        transcriber = TranscriptionClient(
            creds.get("deepgram"),
            base_url=services["stt_base_url"],
            model=services["stt_model"],
            timeout_sec=timeouts["stt_sec"],
        )
    if research_client is None:
        from research.client import ResearchClient

        research_client = ResearchClient(
            creds.get("tavily"),
            base_url=services["research_base_url"],
            timeout_sec=timeouts["research_sec"],
        )
    if chat_client is None:
        from llm.client import ChatClient

        chat_client = ChatClient(
            creds.get("groq"),
            base_url=services["chat_base_url"],
            timeout_sec=timeouts["chat_sec"],
        )

    app = FastAPI(title="Research Assistant")

    async def _run_blocking(func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: func(*args))

    @app.get("/api/health")
    async def api_health():
        return {
            "ok": True,
            "stt": transcriber.available,
            "research": research_client.available,
            "chat": chat_client.available,
        }

    @app.post("/api/stt")
    async def api_stt(audio: UploadFile | None = File(None)):  # noqa: B008
        if not transcriber.available:
            return _error(503, "DEEPGRAM_API_KEY not configured")
        if audio is None:
            return _error(400, "No audio file provided")
        data = await audio.read()
        try:
            text = await _run_blocking(
                transcriber.transcribe, data, audio.content_type or None
            )
        except MalformedInput as e:
            return _error(400, str(e))
        except ServiceUnavailable as e:
            return _error(503, str(e))
        except TransportFailed as e:
            logger.warning("STT error: %s", e)
            return _error(502, str(e) or "STT failed")
        return {"text": text}

    @app.post("/api/research")
    async def api_research(request: Request):
        if not research_client.available:
            return _error(503, "TAVILY_API_KEY not configured")
        try:
            body = await request.json()
        except ValueError:
            return _error(400, "Invalid JSON body")
        if not isinstance(body, dict):
            return _error(400, "Invalid JSON body")
        options = body.get("options") or {}
        if not isinstance(options, dict):
            return _error(400, "options must be an object")
        try:
            req = research_request_from_body(
                str(body.get("query") or ""), body.get("type") or "search", options
            )
        except ValueError:
            # ResearchMode rejects unknown types with ValueError
            return _error(400, f"Unknown research type: {body.get('type')}")
        except MalformedInput as e:
            return _error(400, str(e))
        try:
            return await _run_blocking(research_client.fetch, req)
        except ServiceUnavailable as e:
            return _error(503, str(e))
        except TransportFailed as e:
            logger.warning("Research error: %s (%s)", e, e.details)
            return _error(502, str(e) or "Research failed", e.details)

    @app.post("/api/chat")
    async def api_chat(request: Request):
        if not chat_client.available:
            return _error(503, "GROQ_API_KEY not configured")
        try:
            body = await request.json()
        except ValueError:
            return _error(400, "Invalid JSON body")
        messages = body.get("messages") if isinstance(body, dict) else None
        if not messages or not isinstance(messages, list):
            return _error(400, "Messages required")
        llm_config = llm_config_from_body(body.get("config"))
        try:
            result = await _run_blocking(chat_client.complete, messages, llm_config)
        except ServiceUnavailable as e:
            return _error(503, str(e))
        except TransportFailed as e:
            logger.warning("Chat error: %s", e)
            return _error(502, str(e) or "Chat failed")
        return {"content": result.content, "usage": result.usage, "model": result.model}

    return app


def main() -> None:
    from run import bootstrap_config

    config = bootstrap_config(_ROOT)
    web = config.get_web_config()
    host = WEB_HOST or web["host"]
    port = int(WEB_PORT or web["port"])
    app = create_app(config)
    import uvicorn

    logger.info("Research assistant API: http://%s:%s", host, port)
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
