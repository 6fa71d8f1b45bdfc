"""Keyed persistent storage backends for cache entries.

``JsonFileStorage`` keeps every key of a workspace in one JSON document,
written atomically via a temporary file. A missing or unreadable document
reads as empty rather than failing.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)

STORAGE_VERSION = 1


class KeyedStorage(Protocol):
    def read(self, key: str) -> dict[str, Any] | None: ...

    def write(self, key: str, value: dict[str, Any]) -> None: ...

    def erase(self, key: str) -> None: ...


class MemoryStorage:
    def __init__(self) -> None:
        self._data: dict[str, dict[str, Any]] = {}

    def read(self, key: str) -> dict[str, Any] | None:
        return self._data.get(key)

    def write(self, key: str, value: dict[str, Any]) -> None:
        self._data[key] = value

    def erase(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)


class JsonFileStorage:
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _load(self) -> dict[str, dict[str, Any]]:
        if not self.path.exists():
            return {}
        try:
            raw: Any = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Failed to read cache storage %s: %s", self.path, exc)
            return {}
        if not isinstance(raw, dict):
            return {}
        entries = raw.get("entries")
        if not isinstance(entries, dict):
            return {}
        return {str(k): v for k, v in entries.items() if isinstance(v, dict)}

    def _persist(self, entries: dict[str, dict[str, Any]]) -> None:
        payload = {"version": STORAGE_VERSION, "entries": entries}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
        tmp.replace(self.path)

    def read(self, key: str) -> dict[str, Any] | None:
        return self._load().get(key)

    def write(self, key: str, value: dict[str, Any]) -> None:
        entries = self._load()
        entries[key] = value
        self._persist(entries)

    def erase(self, key: str) -> None:
        entries = self._load()
        if entries.pop(key, None) is not None:
            self._persist(entries)

    def keys(self) -> list[str]:
        return sorted(self._load())


__all__ = ["JsonFileStorage", "KeyedStorage", "MemoryStorage"]
