"""
Chat prompt assembly: a system prompt naming the research method and carrying the
research context, then prior conversation turns, then the new user message.
"""

from __future__ import annotations

from typing import Iterable

from sdk import Message, ResearchMode

# Context beyond this many characters is dropped, not summarized.
MAX_CONTEXT_CHARS = 20000

SYSTEM_PROMPT_TEMPLATE = """You are a helpful research assistant.
Research Method Used: {method}

Context:
{context}

Use the context above to answer the user's request."""


def truncate_context(context: str | None, max_chars: int = MAX_CONTEXT_CHARS) -> str:
    return (context or "")[:max_chars]


def build_system_prompt(method: ResearchMode | str, context: str | None) -> str:
    method_name = ResearchMode(method).value.upper()
    return SYSTEM_PROMPT_TEMPLATE.format(method=method_name, context=truncate_context(context))


def build_chat_messages(
    history: Iterable[Message],
    user_text: str,
    system_prompt: str,
) -> list[dict[str, str]]:
    """
    System prompt, then every non-system message from history in order (role and content
    only; sources and metadata stay local), then the new user message.
    """
    messages = [{"role": "system", "content": system_prompt}]
    messages.extend(m.to_chat_dict() for m in history if m.role != "system")
    messages.append({"role": "user", "content": user_text})
    return messages
