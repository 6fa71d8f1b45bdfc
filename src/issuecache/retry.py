"""Centralized retry / backoff helpers.

``run_with_retries`` wraps a thunk that performs one HTTP request and returns
a ``requests.Response``. Responses with a transient status (rate limit,
bad gateway, unavailable) and transient transport errors (connection
failures, timeouts) are retried with exponential backoff and jitter; all
other outcomes return or propagate immediately.

Environment overrides:
  ISSUECACHE_RETRY_ATTEMPTS (default 3)
  ISSUECACHE_RETRY_BASE (seconds base, default 0.5)
  ISSUECACHE_RETRY_MAX_SLEEP (cap in seconds, unset = no cap)

The thunk runs on an executor thread, so sleeping here never blocks the
event loop.
"""

from __future__ import annotations

import os
import random
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field

import requests

from .logging import get_logger

TRANSIENT_TOKENS = (
    "rate limit",
    "abuse detection",
    "secondary rate",
)
TRANSIENT_STATUSES = frozenset({429, 502, 503, 504})

_RE_RETRY_AFTER = re.compile(r"retry[-\s]after:?\s*(\d+)", re.IGNORECASE)
_JITTER = random.SystemRandom()


def _env_int(name: str, default: str) -> int:
    return int(os.environ.get(name, default))


def _env_float(name: str, default: str) -> float:
    return float(os.environ.get(name, default))


@dataclass
class RetryConfig:
    attempts: int = field(default_factory=lambda: _env_int("ISSUECACHE_RETRY_ATTEMPTS", "3"))
    base_sleep: float = field(default_factory=lambda: _env_float("ISSUECACHE_RETRY_BASE", "0.5"))


def is_transient(output: str) -> bool:
    out_lower = output.lower()
    return any(tok in out_lower for tok in TRANSIENT_TOKENS)


def is_transient_response(response: requests.Response) -> bool:
    if response.status_code in TRANSIENT_STATUSES:
        return True
    # GitHub reports secondary rate limits as 403 with an explanatory body
    return response.status_code == 403 and is_transient(response.text or "")


def _explicit_backoff(response: requests.Response | None) -> float | None:
    if response is None:
        return None
    header = response.headers.get("Retry-After") if response.headers else None
    if header:
        try:
            val = float(header)
            return val if val > 0 else None
        except ValueError:
            return None
    m = _RE_RETRY_AFTER.search(response.text or "")
    if m:
        val = float(m.group(1))
        return val if val > 0 else None
    return None


def _compute_sleep(attempt: int, cfg: RetryConfig, response: requests.Response | None) -> float:
    explicit = _explicit_backoff(response)
    backoff = cfg.base_sleep * (2 ** (attempt - 1)) + _JITTER.uniform(0, 0.25)
    sleep_for: float = explicit if explicit is not None else backoff
    max_cap_env = os.environ.get("ISSUECACHE_RETRY_MAX_SLEEP")
    if max_cap_env:
        try:
            cap = float(max_cap_env)
            if cap >= 0:
                sleep_for = min(sleep_for, cap)
        except ValueError:  # pragma: no cover
            return sleep_for
    return sleep_for


def run_with_retries(
    fn: Callable[[], requests.Response], *, cfg: RetryConfig | None = None
) -> requests.Response:
    cfg = cfg or RetryConfig()
    attempts = max(1, cfg.attempts)
    logger = get_logger()
    for attempt in range(1, attempts + 1):
        try:
            response = fn()
        except (requests.ConnectionError, requests.Timeout) as exc:
            if attempt >= attempts:
                raise
            sleep_for = _compute_sleep(attempt, cfg, None)
            logger.warning(
                f"transient transport error, attempt {attempt}/{attempts}",
                error=str(exc),
                sleep_s=round(sleep_for, 2),
            )
            time.sleep(sleep_for)
            continue
        if attempt >= attempts or not is_transient_response(response):
            return response
        sleep_for = _compute_sleep(attempt, cfg, response)
        logger.warning(
            f"transient response {response.status_code}, attempt {attempt}/{attempts}",
            sleep_s=round(sleep_for, 2),
        )
        time.sleep(sleep_for)
    raise RuntimeError("retry logic exited unexpectedly")  # pragma: no cover


__all__ = ["RetryConfig", "run_with_retries", "is_transient", "is_transient_response"]
