"""
Turn a raw research response into the context string for the chat prompt and the
list of citable sources.
"""

from __future__ import annotations

import json
from typing import Any

from sdk import ResearchMode, Source


def _search_context(raw: Any) -> str:
    results = (raw or {}).get("results") or []
    parts = []
    for r in results:
        if not isinstance(r, dict):
            continue
        parts.append(f"[{r.get('title')}]({r.get('url')}): {r.get('content')}")
    return "\n\n".join(parts)


def build_context(mode: ResearchMode, raw: Any) -> str:
    """
    search: each result as "[title](url): content", joined by blank lines.
    extract: the "results" list serialized verbatim as indented JSON.
    crawl: the whole response serialized verbatim as indented JSON.
    """
    mode = ResearchMode(mode)
    if mode is ResearchMode.SEARCH:
        return _search_context(raw)
    if mode is ResearchMode.EXTRACT:
        return json.dumps((raw or {}).get("results"), indent=2, ensure_ascii=False)
    return json.dumps(raw, indent=2, ensure_ascii=False)


def extract_sources(mode: ResearchMode, raw: Any) -> tuple[Source, ...]:
    """Sources come from search results only; extract and crawl produce none."""
    if ResearchMode(mode) is not ResearchMode.SEARCH:
        return ()
    sources = []
    for r in (raw or {}).get("results") or []:
        if isinstance(r, dict):
            src = Source.from_result(r)
            if src is not None:
                sources.append(src)
    return tuple(sources)
