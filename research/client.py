"""
Tavily research client: one request per call for search, extract or crawl.
No retries, pagination or caching; each user turn researches from scratch.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Union

import requests

from research.context import build_context, extract_sources
from sdk import (
    MalformedInput,
    ResearchFailed,
    ResearchMode,
    ResearchResult,
    ServiceUnavailable,
    error_detail,
    get_logger,
)

logger = get_logger("research")

SEARCH_MAX_RESULTS = 5
DEFAULT_DEPTH = "advanced"


@dataclass(frozen=True)
class SearchRequest:
    query: str
    search_depth: str = DEFAULT_DEPTH

    mode = ResearchMode.SEARCH


@dataclass(frozen=True)
class ExtractRequest:
    urls: tuple[str, ...]

    mode = ResearchMode.EXTRACT


@dataclass(frozen=True)
class CrawlRequest:
    url: str
    extract_depth: str = DEFAULT_DEPTH

    mode = ResearchMode.CRAWL


ResearchRequest = Union[SearchRequest, ExtractRequest, CrawlRequest]

_ENDPOINTS = {
    ResearchMode.SEARCH: "/search",
    ResearchMode.EXTRACT: "/extract",
    ResearchMode.CRAWL: "/crawl",
}


def parse_urls(text: str) -> list[str]:
    """Split a comma-separated URL string, trim each entry and drop empty ones. Order is kept."""
    return [u.strip() for u in (text or "").split(",") if u.strip()]


def build_request(
    mode: ResearchMode | str, text: str, options: dict[str, Any] | None = None
) -> ResearchRequest:
    """
    Build the request variant for mode from the user's text.
    search: text is the query. extract: text is comma-separated URLs. crawl: text is one URL.
    Only search_depth (search) and extract_depth (crawl) are read from options.
    Raises MalformedInput when the text yields no query or URL.
    """
    mode = ResearchMode(mode)
    options = options or {}
    if mode is ResearchMode.EXTRACT:
        urls = parse_urls(text)
        if not urls:
            raise MalformedInput("Extract needs at least one URL")
        return ExtractRequest(urls=tuple(urls))
    if mode is ResearchMode.CRAWL:
        url = (text or "").strip()
        if not url:
            raise MalformedInput("Crawl needs a URL")
        return CrawlRequest(url=url, extract_depth=options.get("extract_depth") or DEFAULT_DEPTH)
    query = (text or "").strip()
    if not query:
        raise MalformedInput("Search needs a query")
    return SearchRequest(query=query, search_depth=options.get("search_depth") or DEFAULT_DEPTH)


def build_payload(request: ResearchRequest) -> dict[str, Any]:
    """
    Remote JSON body for request. Contains exactly the variant's fields; for search,
    include_answer and max_results are fixed and cannot be overridden.
    """
    if isinstance(request, ExtractRequest):
        return {"urls": list(request.urls)}
    if isinstance(request, CrawlRequest):
        return {"url": request.url, "extract_depth": request.extract_depth}
    return {
        "query": request.query,
        "search_depth": request.search_depth,
        "include_answer": True,
        "max_results": SEARCH_MAX_RESULTS,
    }


class ResearchClient:
    """
    POST one research request to Tavily and normalize the response.
    Raises ServiceUnavailable without a key (no request made) and ResearchFailed on
    transport errors or 4xx/5xx, with the remote error body in details.
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://api.tavily.com",
        timeout_sec: float = 60.0,
    ) -> None:
        self._api_key = (api_key or "").strip() or None
        self.base_url = base_url.rstrip("/")
        self.timeout_sec = timeout_sec

    @property
    def available(self) -> bool:
        return self._api_key is not None

    def fetch(self, request: ResearchRequest) -> Any:
        """Send the request and return the decoded JSON response unchanged."""
        if not self.available:
            raise ServiceUnavailable("TAVILY_API_KEY not configured")
        url = self.base_url + _ENDPOINTS[request.mode]
        payload = build_payload(request)
        logger.info("Research %s POST %s", request.mode.value, url)
        start = time.perf_counter()
        try:
            r = requests.post(
                url,
                json=payload,
                headers={"Authorization": f"Bearer {self._api_key}"},
                timeout=self.timeout_sec,
            )
            r.raise_for_status()
            data = r.json()
        except requests.HTTPError as e:
            details = error_detail(e.response)
            logger.warning(
                "Research %s failed (HTTP %s): %s",
                request.mode.value,
                e.response.status_code if e.response is not None else "?",
                details,
            )
            raise ResearchFailed(
                str(e),
                details=details,
                status_code=e.response.status_code if e.response is not None else None,
            ) from e
        except requests.RequestException as e:
            logger.warning("Research %s request failed: %s", request.mode.value, e)
            raise ResearchFailed(str(e)) from e
        except ValueError as e:
            logger.warning("Research %s returned invalid JSON: %s", request.mode.value, e)
            raise ResearchFailed("Research response was not valid JSON") from e
        logger.debug(
            "Research %s OK (%.2fs)", request.mode.value, time.perf_counter() - start
        )
        return data

    def research(self, request: ResearchRequest) -> ResearchResult:
        raw = self.fetch(request)
        return ResearchResult(
            mode=request.mode,
            context=build_context(request.mode, raw),
            sources=extract_sources(request.mode, raw),
            raw=raw,
        )
