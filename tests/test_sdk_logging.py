"""Tests for sdk.logging: get_logger."""

from __future__ import annotations

import logging

from sdk import get_logger


def test_get_logger_returns_logger() -> None:
    logger = get_logger("research")
    assert isinstance(logger, logging.Logger)
    assert logger.name == "assistant.research"


def test_get_logger_dotted_name() -> None:
    assert get_logger("tts.stream").name == "assistant.tts.stream"


def test_get_logger_empty_falls_back_to_component() -> None:
    assert get_logger("").name == "assistant.component"
    assert get_logger(None).name == "assistant.component"


def test_get_logger_whitespace_strips() -> None:
    assert get_logger("  llm  ").name == "assistant.llm"
