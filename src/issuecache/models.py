from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

OPEN = "open"
CLOSED = "closed"

# Fields the cache layer reads; everything else rides along in ``extra``.
_CORE_FIELDS = ("number", "title", "body", "state")


class NodeKind(str, Enum):
    ISSUE = "issue"
    PULL_REQUEST = "pullRequest"
    PROGRESS = "progressIndicator"


@dataclass
class IssueRecord:
    """One issue or pull request as returned by the remote source.

    ``number`` is an ``int`` for real items and a composite ``"12.3"`` string
    for sub-items synthesized from a checklist. Fields the cache never
    interprets are preserved verbatim in ``extra`` so that ``to_dict`` gives
    back the original payload shape.
    """

    number: int | str
    title: str
    body: str = ""
    state: str = OPEN
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> IssueRecord:
        extra = {str(k): v for k, v in payload.items() if k not in _CORE_FIELDS}
        number = payload.get("number")
        if number is None:
            raise ValueError("issue payload is missing 'number'")
        return cls(
            number=number,
            title=str(payload.get("title") or ""),
            body=str(payload.get("body") or ""),
            state=CLOSED if payload.get("state") == CLOSED else OPEN,
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.extra,
            "number": self.number,
            "title": self.title,
            "body": self.body,
            "state": self.state,
        }

    @property
    def is_pull_request(self) -> bool:
        return "pull_request" in self.extra and self.extra["pull_request"] is not None

    @property
    def is_open(self) -> bool:
        return self.state == OPEN

    @property
    def author(self) -> str | None:
        user = self.extra.get("user")
        if isinstance(user, dict):
            login = user.get("login")
            return str(login) if login else None
        return None


@dataclass
class CacheEntry:
    repository_key: str
    fetched_at: datetime
    issues: list[IssueRecord]
    pull_requests: list[IssueRecord]

    def to_payload(self) -> dict[str, Any]:
        return {
            # epoch milliseconds; fractional part keeps microsecond precision
            "timestamp": round(self.fetched_at.timestamp() * 1000, 3),
            "issues": [r.to_dict() for r in self.issues],
            "pullRequests": [r.to_dict() for r in self.pull_requests],
        }

    @classmethod
    def from_payload(cls, repository_key: str, payload: dict[str, Any]) -> CacheEntry:
        timestamp = payload.get("timestamp")
        if not isinstance(timestamp, (int, float)):
            raise ValueError(f"cache entry {repository_key} has no timestamp")
        return cls(
            repository_key=repository_key,
            fetched_at=datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc),
            issues=[IssueRecord.from_dict(p) for p in payload.get("issues") or []],
            pull_requests=[IssueRecord.from_dict(p) for p in payload.get("pullRequests") or []],
        )

    def find(self, number: int | str) -> IssueRecord | None:
        for record in (*self.issues, *self.pull_requests):
            if str(record.number) == str(number):
                return record
        return None


@dataclass
class Snapshot:
    """What read paths hand to consumers: the two collections, possibly empty."""

    issues: list[IssueRecord] = field(default_factory=list)
    pull_requests: list[IssueRecord] = field(default_factory=list)
    fetched_at: datetime | None = None

    @classmethod
    def from_entry(cls, entry: CacheEntry | None) -> Snapshot:
        if entry is None:
            return cls()
        return cls(list(entry.issues), list(entry.pull_requests), entry.fetched_at)

    @property
    def is_empty(self) -> bool:
        return not self.issues and not self.pull_requests


__all__ = ["CLOSED", "OPEN", "CacheEntry", "IssueRecord", "NodeKind", "Snapshot"]
