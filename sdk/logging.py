"""
Logging helper: consistent logger names (assistant.<name>) for the clients and pipeline.
"""

from __future__ import annotations

import logging


def get_logger(component_name: str) -> logging.Logger:
    """
    Return a logger with a consistent name for the given component.

    Args:
        component_name: Short name (e.g. "research", "tts", "pipeline").

    Returns:
        logging.Logger with name "assistant." + component_name.
    """
    name = (component_name or "").strip() or "component"
    return logging.getLogger(f"assistant.{name}")


__all__ = ["get_logger"]
