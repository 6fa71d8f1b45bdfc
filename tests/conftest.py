"""Pytest configuration for issuecache tests.

Ensures the in-repo `src` directory is on `sys.path` so the package can be
imported without an editable install (`pip install -e .`).
"""

from __future__ import annotations

import os
import sys
import time
from pathlib import Path

import pytest

_TEST_START_TIMES: dict[str, float] = {}
_TEST_DURATIONS: list[tuple[str, float]] = []

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

# Keep retry loops from sleeping when a test queues transient responses
os.environ.setdefault("ISSUECACHE_RETRY_MAX_SLEEP", "0")


@pytest.fixture(autouse=True)
def _no_ambient_tokens(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ("GITHUB_TOKEN", "GH_TOKEN", "GITHUB_ACCESS_TOKEN", "GH_ACCESS_TOKEN", "GITHUB_PAT"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.delenv("ISSUECACHE_REPO", raising=False)
    monkeypatch.delenv("ISSUECACHE_CACHE_PATH", raising=False)


@pytest.fixture(autouse=True)
def _fresh_global_logger(monkeypatch: pytest.MonkeyPatch) -> None:
    from issuecache import logging as ic_logging

    # handlers bind to the sys.stderr current at construction; capsys swaps it per test
    monkeypatch.setattr(ic_logging, "_GLOBAL", None)


# --- Timing utilities to help identify slow/stalling tests ---


def pytest_runtest_setup(item):  # type: ignore
    _TEST_START_TIMES[item.nodeid] = time.perf_counter()


def pytest_runtest_teardown(item):  # type: ignore
    start = _TEST_START_TIMES.pop(item.nodeid, None)
    if start is not None:
        duration = time.perf_counter() - start
        _TEST_DURATIONS.append((item.nodeid, duration))


def pytest_sessionfinish(session, exitstatus):  # type: ignore
    if not _TEST_DURATIONS:
        return
    slow = sorted(_TEST_DURATIONS, key=lambda x: x[1], reverse=True)[:10]
    print("\n=== Slowest Tests (top 10) ===")
    for nodeid, secs in slow:
        print(f"{secs:0.3f}s  {nodeid}")
    total_time = sum(d for _, d in _TEST_DURATIONS)
    print(
        f"Total recorded test time: {total_time:0.3f}s over {len(_TEST_DURATIONS)} tests"
    )
