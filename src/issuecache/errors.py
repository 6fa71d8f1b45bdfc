"""Error taxonomy & redaction helpers.

Every failure the cache layer can surface derives from ``IssueCacheError`` so
front ends can catch one type. The subclasses mirror how each failure is
propagated:

- ``AuthenticationFailed`` / ``RepositoryUnresolvable``: terminal for the
  current operation, reported to the user, never crash the process.
- ``RemoteFetchFailed``: masked by the cached fallback on read paths.
- ``RemoteUpdateFailed``: raised to the caller of a write path.
- ``NotInitialized``: empty result on reads, raised on writes.
- ``CacheWriteFailed``: logged; the fetched data is served uncached.

``classify_error`` and ``redact`` prepare exceptions for safe logging.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

# Simple token patterns; can be expanded (e.g., GitHub App keys)
_SENSITIVE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"ghp_[A-Za-z0-9]{20,40}"),  # GitHub classic tokens
    re.compile(r"gho_[A-Za-z0-9]{20,40}"),  # OAuth tokens handed out by editors
    re.compile(r"gh[usr]_[A-Za-z0-9]{20,255}"),  # user-to-server, app installation, refresh
    re.compile(r"github_pat_\w{20,}"),  # GitHub fine-grained tokens
    re.compile(r"Bearer\s+[A-Za-z0-9_\-\.]{16,}"),
]

_REDACTION_PLACEHOLDER = "<redacted>"


class IssueCacheError(RuntimeError):
    """Base class for all issuecache failures."""


class ConfigError(IssueCacheError):
    pass


class AuthenticationFailed(IssueCacheError):
    pass


class RepositoryUnresolvable(IssueCacheError):
    """The workspace does not map to a GitHub repository."""

    NO_WORKSPACE = "no workspace"
    NO_REMOTE = "no remote"
    UNPARSEABLE_URL = "unparseable remote URL"

    def __init__(self, reason: str, detail: str | None = None):
        message = reason if not detail else f"{reason}: {detail}"
        super().__init__(message)
        self.reason = reason
        self.detail = detail


class RemoteFetchFailed(IssueCacheError):
    pass


class RemoteUpdateFailed(IssueCacheError):
    def __init__(self, message: str, *, number: int | str | None = None):
        super().__init__(message)
        self.number = number


class NotInitialized(IssueCacheError):
    """Remote call attempted before authentication completed."""


class CacheWriteFailed(IssueCacheError):
    """The cache file could not be written; fetched data is still usable."""


@dataclass
class ErrorInfo:
    category: str
    message: str
    original_type: str
    transient: bool = False
    details: dict[str, Any] | None = None


def redact(text: str) -> str:
    """Redact sensitive tokens in arbitrary text."""
    if not text:
        return text
    redacted = text
    for pat in _SENSITIVE_PATTERNS:
        redacted = pat.sub(_REDACTION_PLACEHOLDER, redacted)
    return redacted


def classify_error(exc: BaseException) -> ErrorInfo:
    """Best-effort classification of an exception.

    - Our own taxonomy maps to ``auth``, ``repository``, ``not_initialized``
    - Rate limit / abuse messages -> ``github.rate_limit`` / ``github.abuse``, transient
    - Network-y keywords -> ``network``, transient
    - Fallback -> ``generic``
    """
    msg = str(exc) if exc else ""
    low = msg.lower()
    name = exc.__class__.__name__

    if isinstance(exc, AuthenticationFailed):
        return ErrorInfo("auth", redact(msg), name)
    if isinstance(exc, RepositoryUnresolvable):
        return ErrorInfo("repository", redact(msg), name, details={"reason": exc.reason})
    if isinstance(exc, NotInitialized):
        return ErrorInfo("not_initialized", redact(msg), name)
    if isinstance(exc, CacheWriteFailed):
        return ErrorInfo("cache", redact(msg), name)
    if "rate limit" in low or "secondary rate" in low:
        return ErrorInfo("github.rate_limit", redact(msg), name, transient=True)
    if "abuse" in low:
        return ErrorInfo("github.abuse", redact(msg), name, transient=True)
    if any(k in low for k in ("timeout", "timed out", "connection reset", "temporarily unavailable")):
        return ErrorInfo("network", redact(msg), name, transient=True)
    return ErrorInfo("generic", redact(msg), name)


__all__ = [
    "AuthenticationFailed",
    "CacheWriteFailed",
    "ConfigError",
    "ErrorInfo",
    "IssueCacheError",
    "NotInitialized",
    "RemoteFetchFailed",
    "RemoteUpdateFailed",
    "RepositoryUnresolvable",
    "classify_error",
    "redact",
]
