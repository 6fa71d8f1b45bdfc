"""Async remote issue source.

The coordinator only depends on the ``IssueSource`` protocol.
``GitHubIssueSource`` adapts the blocking REST client by running each call
on the default executor so the event loop keeps serving other tasks.
"""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Callable
from typing import Any, Protocol, TypeVar

from .errors import RemoteFetchFailed, RemoteUpdateFailed
from .github_rest import DEFAULT_PAGE_SIZE, GitHubAPIError, GitHubRestClient
from .models import IssueRecord

T = TypeVar("T")


class IssueSource(Protocol):
    async def list_items(
        self, owner: str, repo: str, state: str, page_size: int = DEFAULT_PAGE_SIZE
    ) -> list[IssueRecord]: ...

    async def update_item(
        self, owner: str, repo: str, number: int, patch: dict[str, Any]
    ) -> None: ...


async def run_blocking(fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(fn, *args, **kwargs))


class GitHubIssueSource:
    def __init__(self, client: GitHubRestClient) -> None:
        self.client = client

    async def list_items(
        self, owner: str, repo: str, state: str, page_size: int = DEFAULT_PAGE_SIZE
    ) -> list[IssueRecord]:
        try:
            payloads = await run_blocking(
                self.client.list_issues, owner, repo, state=state, per_page=page_size
            )
        except GitHubAPIError as exc:
            raise RemoteFetchFailed(f"listing {state} items of {owner}/{repo}: {exc}") from exc
        records: list[IssueRecord] = []
        for payload in payloads:
            try:
                records.append(IssueRecord.from_dict(payload))
            except ValueError as exc:
                raise RemoteFetchFailed(f"unexpected item in {owner}/{repo}: {exc}") from exc
        return records

    async def update_item(
        self, owner: str, repo: str, number: int, patch: dict[str, Any]
    ) -> None:
        try:
            await run_blocking(self.client.update_issue, owner, repo, number, patch)
        except GitHubAPIError as exc:
            raise RemoteUpdateFailed(
                f"updating #{number} of {owner}/{repo}: {exc}", number=number
            ) from exc

    async def authenticated_login(self) -> str | None:
        user = await run_blocking(self.client.get_authenticated_user)
        login = user.get("login")
        return str(login) if login else None


__all__ = ["GitHubIssueSource", "IssueSource", "run_blocking"]
