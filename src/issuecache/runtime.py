"""Runtime helpers for issuecache CLI orchestration."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Coroutine
from typing import Any

from issuecache.config import CacheConfig, load_config
from issuecache.errors import IssueCacheError
from issuecache.logging import configure_logging, get_logger

CommandHandler = Callable[[], Coroutine[Any, Any, int]]


def prepare_config(
    args: Any, *, loader: Callable[..., CacheConfig] = load_config
) -> CacheConfig:
    """Load CacheConfig for the given argparse namespace and apply overrides."""
    if not hasattr(args, "config"):
        raise AttributeError("Command namespace is missing 'config' attribute")
    cfg = loader(args.config)
    repo_override = getattr(args, "repo", None)
    if repo_override:
        cfg.github_repo = repo_override
    if getattr(args, "json_logs", False):
        cfg.logging_json_enabled = True
    if getattr(args, "verbose", False):
        cfg.logging_level = "DEBUG"
    configure_logging(json_logging=cfg.logging_json_enabled, level=cfg.logging_level)
    return cfg


def execute_command(handler: CommandHandler, command: str) -> int:
    """Run an async command handler on a fresh event loop, timing it."""
    logger = get_logger()
    start = time.monotonic()
    try:
        exit_code = asyncio.run(handler())
    except IssueCacheError as exc:
        logger.log_error(f"command {command} failed", error=str(exc), command=command)
        exit_code = 1
    duration_ms = max(0.0, time.monotonic() - start) * 1000
    logger.log_performance(f"command_{command}", duration_ms, exit_code=exit_code)
    return int(exit_code)


__all__ = ["CommandHandler", "execute_command", "prepare_config"]
