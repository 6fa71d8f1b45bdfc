"""Publish/subscribe channel for "data updated" notifications."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from .logging import get_logger
from .models import IssueRecord

T = TypeVar("T")

Subscriber = Callable[[T], "Awaitable[None] | None"]


@dataclass(frozen=True)
class DataUpdated:
    repository: str
    issues: list[IssueRecord] = field(default_factory=list)
    pull_requests: list[IssueRecord] = field(default_factory=list)


class EventChannel(Generic[T]):
    """Fan-out to every subscriber, in subscription order.

    A failing subscriber is logged and does not stop delivery to the others.
    Coroutine subscribers are awaited before ``publish`` returns.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._subscribers: list[Subscriber[T]] = []

    def subscribe(self, callback: Subscriber[T]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def __call__(self, callback: Subscriber[T]) -> Callable[[], None]:
        return self.subscribe(callback)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self, event: T) -> None:
        for callback in list(self._subscribers):
            try:
                result = callback(event)
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                get_logger().log_error(
                    f"subscriber of {self.name} failed", error=str(exc), channel=self.name
                )


__all__ = ["DataUpdated", "EventChannel"]
