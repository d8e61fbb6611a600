# Web research (search / extract / crawl) against the Tavily REST API.
from research.client import (
    CrawlRequest,
    ExtractRequest,
    ResearchClient,
    ResearchRequest,
    SearchRequest,
    build_payload,
    build_request,
    parse_urls,
)
from research.context import build_context, extract_sources

__all__ = [
    "CrawlRequest",
    "ExtractRequest",
    "ResearchClient",
    "ResearchRequest",
    "SearchRequest",
    "build_context",
    "build_payload",
    "build_request",
    "extract_sources",
    "parse_urls",
]
