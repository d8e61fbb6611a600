#!/usr/bin/env python3
"""
Voice research assistant entry point: load config, set up logging, run the console front-end.

Console commands:
  /mic                      start recording, or stop and transcribe into the input buffer
  /send                     send the input buffer (e.g. after /mic)
  /mode search|extract|crawl
  /speech batch|stream|off
  /voice <id>   /voices   /upload-voice <path>
  /history   /quit
Any other line is sent as a question (or URL list in extract/crawl mode).
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import os
import sys
from pathlib import Path

from config import AppConfig, get_config_path, load_config

logger = logging.getLogger(__name__)

# Ensure project root is on path
_ROOT = Path(__file__).resolve().parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))


def validate_config(config: dict) -> None:
    """Validate required config values. Raises ValueError with a clear message if invalid."""
    if not config:
        raise ValueError("Config is empty")
    llm = config.get("llm") or {}
    model = llm.get("model", "llama-3.3-70b-versatile")
    if not model or not str(model).strip():
        raise ValueError("config.llm.model must be non-empty")
    for key, low, high in (("temperature", 0.0, 2.0), ("top_p", 0.0, 1.0)):
        if key not in llm:
            continue
        try:
            value = float(llm[key])
        except (TypeError, ValueError):
            raise ValueError(f"config.llm.{key} must be a number") from None
        if not (low <= value <= high):
            raise ValueError(f"config.llm.{key} must be between {low} and {high}")
    if "max_completion_tokens" in llm:
        try:
            tokens = int(llm["max_completion_tokens"])
        except (TypeError, ValueError):
            raise ValueError(
                "config.llm.max_completion_tokens must be a positive integer"
            ) from None
        if tokens <= 0:
            raise ValueError("config.llm.max_completion_tokens must be positive")
    research = config.get("research") or {}
    mode = research.get("mode", "search")
    if str(mode).strip().lower() not in ("search", "extract", "crawl"):
        raise ValueError("config.research.mode must be search, extract or crawl")
    speech = config.get("speech") or {}
    speech_mode = speech.get("mode", "batch")
    if str(speech_mode).strip().lower() not in ("batch", "stream", "off"):
        raise ValueError("config.speech.mode must be batch, stream or off")


def bootstrap_config(root: Path) -> AppConfig:
    """
    Load and validate config, set up logging. Single place for entry-point startup.
    Missing API keys are logged, not fatal: the matching stage reports them when used.
    """
    raw = load_config()
    validate_config(raw)
    config = AppConfig(raw)
    log_level = config.get_log_level()
    level = getattr(logging, log_level.upper(), logging.INFO)
    log_fmt = "%(asctime)s %(levelname)s %(name)s %(message)s"
    logging.basicConfig(level=level, format=log_fmt)
    log_path = config.get_log_path()
    if log_path:
        path = Path(log_path) if os.path.isabs(log_path) else root / log_path
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(path, encoding="utf-8")
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(log_fmt))
        logging.getLogger().addHandler(fh)
    logger.info("Config path: %s", get_config_path())
    for name, value in config.get_credentials().items():
        if value is None:
            logger.warning("%s API key not set; that stage will be unavailable", name)
    return config


def _print_message(message) -> None:
    if message.role == "user":
        return
    print(f"\nassistant> {message.content}")
    for i, source in enumerate(message.sources[:3], start=1):
        print(f"  {i}. {source.title or source.url} <{source.url}>")


async def _console(config: AppConfig) -> None:
    from app.pipeline import create_pipeline
    from sdk import ResearchMode, SpeechMode

    pipeline = create_pipeline(config)
    pipeline.set_ui_callbacks(
        on_status=lambda s: logger.debug("status: %s", s.value),
        on_message=_print_message,
        on_error=lambda m: print(f"! {m}"),
        on_notice=lambda m: print(f"~ {m}"),
        on_transcript=lambda t: print(f"(transcript) {t}\n  /send to ask, or type a new line"),
    )
    voices = await pipeline.refresh_voices()
    state = pipeline.state
    print(
        "Research assistant: %s | %s | %s (voices: %s)"
        % (
            state.llm_config.model,
            state.research_settings.mode.value,
            state.speech_settings.voice,
            ", ".join(voices),
        )
    )
    loop = asyncio.get_running_loop()
    while True:
        try:
            line = await loop.run_in_executor(None, input, "> ")
        except EOFError:
            break
        line = line.strip()
        if not line:
            continue
        if not line.startswith("/"):
            await pipeline.send(line)
            continue
        cmd, _, arg = line.partition(" ")
        arg = arg.strip()
        if cmd == "/quit":
            break
        elif cmd == "/mic":
            await pipeline.toggle_mic()
            if pipeline.status.value == "recording":
                print("(recording; /mic again to stop)")
        elif cmd == "/send":
            await pipeline.send()
        elif cmd == "/mode" and arg in ("search", "extract", "crawl"):
            pipeline.set_research_settings(
                dataclasses.replace(state.research_settings, mode=ResearchMode(arg))
            )
        elif cmd == "/speech" and arg in ("batch", "stream", "off"):
            pipeline.set_speech_settings(
                dataclasses.replace(state.speech_settings, mode=SpeechMode(arg))
            )
        elif cmd == "/voice" and arg:
            pipeline.set_speech_settings(dataclasses.replace(state.speech_settings, voice=arg))
        elif cmd == "/voices":
            print(", ".join(await pipeline.refresh_voices()))
        elif cmd == "/upload-voice" and arg:
            path = Path(arg).expanduser()
            try:
                data = path.read_bytes()
            except OSError as e:
                print(f"! Cannot read {path}: {e}")
                continue
            if await pipeline.upload_voice(path.name, data):
                print("Voice uploaded.")
        elif cmd == "/history":
            for m in pipeline.history:
                print(f"{m.role}: {m.content}")
        else:
            print(__doc__)
    if pipeline.status.value == "recording":
        await pipeline.abort_recording()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Voice-driven web research assistant")
    parser.add_argument("--config", help="Path to config.yaml (default: ASSISTANT_CONFIG or ./config.yaml)")
    parser.add_argument("--web", action="store_true", help="Serve the HTTP API instead of the console")
    args = parser.parse_args(argv)
    if args.config:
        os.environ["ASSISTANT_CONFIG"] = args.config
    if args.web:
        from run_web import main as web_main

        web_main()
        return
    config = bootstrap_config(_ROOT)
    try:
        asyncio.run(_console(config))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
