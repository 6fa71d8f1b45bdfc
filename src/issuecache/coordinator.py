"""Stale-while-revalidate coordination between the cache and GitHub.

``RefreshCoordinator`` is the surface consumers use:

- ``get_cached_or_fetch()`` serves fresh data directly, serves stale data while
  one background refresh runs, and fetches synchronously once data has
  expired (or is missing) and authentication has completed.
- ``load_cache_and_fetch()`` returns whatever is cached right away and always
  schedules a refresh ("render fast, update later").
- ``start()`` runs a periodic refresh independent of reads; ``stop()`` must be
  awaited on shutdown to cancel it.
- ``toggle(node)`` and ``update_title(...)`` write back to GitHub and raise
  ``RemoteUpdateFailed`` on failure, after reverting optimistic local state.
- ``on_data_updated`` notifies subscribers once per completed fetch.

Everything runs on one event loop. HTTP, git and cache file IO run on the
default executor. Checklist write-backs to one issue are serialised so each
one rewrites the body left by the previous one.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from datetime import timedelta
from enum import Enum
from pathlib import Path
from types import TracebackType
from typing import Any

from .auth import DEFAULT_SCOPES, AuthProvider, AuthSession, EnvAuthConfig, EnvironmentAuthProvider
from .cache_store import DEFAULT_USABLE_FOR, CacheStore, Freshness, repository_key
from .checklist import set_item_checked
from .config import CacheConfig
from .errors import (
    CacheWriteFailed,
    IssueCacheError,
    NotInitialized,
    RemoteUpdateFailed,
    RepositoryUnresolvable,
    classify_error,
)
from .events import DataUpdated, EventChannel
from .github_rest import DEFAULT_API_URL, DEFAULT_PAGE_SIZE, GitHubRestClient
from .logging import get_logger
from .models import CLOSED, OPEN, CacheEntry, Snapshot
from .nodes import IssueNode
from .repository import RepositoryInfo, resolve_repository
from .source import GitHubIssueSource, IssueSource, run_blocking
from .storage import JsonFileStorage

DEFAULT_REFRESH_INTERVAL = DEFAULT_USABLE_FOR

SourceFactory = Callable[[AuthSession], IssueSource]
Reporter = Callable[[str], None]


class CoordinatorState(str, Enum):
    UNINITIALIZED = "uninitialized"
    AUTHENTICATING = "authenticating"
    READY = "ready"


def github_source_factory(api_url: str = DEFAULT_API_URL) -> SourceFactory:
    def _factory(session: AuthSession) -> IssueSource:
        return GitHubIssueSource(GitHubRestClient(token=session.access_token, base_url=api_url))

    return _factory


class RefreshCoordinator:
    def __init__(
        self,
        store: CacheStore,
        *,
        workspace_root: str | Path | None = None,
        repo: str | None = None,
        auth: AuthProvider | None = None,
        source: IssueSource | None = None,
        source_factory: SourceFactory | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        refresh_interval: timedelta = DEFAULT_REFRESH_INTERVAL,
        reporter: Reporter | None = None,
    ) -> None:
        self.store = store
        self.workspace_root = workspace_root
        self.repo_override = repo
        self.auth = auth
        self.page_size = page_size
        self.refresh_interval = refresh_interval
        self.reporter = reporter
        self.logger = get_logger()
        self.on_data_updated: EventChannel[DataUpdated] = EventChannel("data_updated")
        self._source_factory = source_factory or github_source_factory()
        self._source: IssueSource | None = source
        self.state = CoordinatorState.READY if source is not None else CoordinatorState.UNINITIALIZED
        self._repo: RepositoryInfo | None = None
        self._auth_task: asyncio.Task[None] | None = None
        self._refresh_task: asyncio.Task[Snapshot] | None = None
        self._timer: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self._write_locks: dict[str, asyncio.Lock] = {}

    @classmethod
    def from_config(
        cls,
        cfg: CacheConfig,
        *,
        auth: AuthProvider | None = None,
        reporter: Reporter | None = None,
    ) -> RefreshCoordinator:
        store = CacheStore(
            JsonFileStorage(cfg.cache_path), fresh_for=cfg.fresh_for, usable_for=cfg.usable_for
        )
        provider = auth or EnvironmentAuthProvider(
            EnvAuthConfig(
                load_dotenv=cfg.env_auth_load_dotenv, dotenv_path=cfg.env_auth_dotenv_path
            )
        )
        return cls(
            store,
            workspace_root=cfg.workspace_root,
            repo=cfg.github_repo,
            auth=provider,
            source_factory=github_source_factory(cfg.github_api_url),
            page_size=cfg.page_size,
            refresh_interval=cfg.refresh_interval,
            reporter=reporter,
        )

    # ---- lifecycle ----------------------------------------------------
    @property
    def is_ready(self) -> bool:
        return self.state is CoordinatorState.READY and self._source is not None

    async def initialize(self, *, wait: bool = False, fetch: bool = True) -> None:
        """Authenticate in the background, then (unless ``fetch`` is off) fetch.

        Never blocks the caller unless ``wait`` is set. Calling it again while
        authenticating, or once ready, does nothing.
        """
        if self.state is CoordinatorState.UNINITIALIZED:
            if self.auth is None:
                raise NotInitialized("No authentication provider configured")
            self.state = CoordinatorState.AUTHENTICATING
            self._auth_task = self._spawn(self._authenticate(fetch), "authenticate")
        if wait and self._auth_task is not None:
            await asyncio.shield(self._auth_task)

    async def _authenticate(self, fetch: bool) -> None:
        assert self.auth is not None
        try:
            session = await self.auth.get_session(DEFAULT_SCOPES)
        except IssueCacheError as exc:
            self.state = CoordinatorState.UNINITIALIZED
            self._report("Failed to authenticate with GitHub", exc)
            return
        source = self._source_factory(session)
        self._source = source
        self.logger.log_operation(
            "authenticated", scopes=list(session.scopes), token_source=session.source
        )
        login_lookup = getattr(source, "authenticated_login", None)
        if login_lookup is not None:
            try:
                login = await login_lookup()
            except Exception as exc:  # noqa: BLE001 - informational lookup only
                self.logger.warning("could not look up authenticated user", error=str(exc))
            else:
                self.logger.info(f"Authenticated as: {login}", login=login)
        self.state = CoordinatorState.READY
        if fetch:
            await self._fetch_and_cache()

    def start(self) -> None:
        """Start the periodic refresh timer (idempotent)."""
        if self._timer is None or self._timer.done():
            self._timer = asyncio.get_running_loop().create_task(
                self._periodic_refresh(), name="issuecache-periodic-refresh"
            )

    async def _periodic_refresh(self) -> None:
        interval = self.refresh_interval.total_seconds()
        while True:
            await asyncio.sleep(interval)
            try:
                await self.refresh()
            except Exception as exc:  # noqa: BLE001 - keep the timer alive
                self.logger.log_error("periodic refresh failed", error=str(exc))

    async def stop(self) -> None:
        """Cancel the timer and any in-flight background work."""
        pending: list[asyncio.Task[Any]] = []
        if self._timer is not None:
            self._timer.cancel()
            pending.append(self._timer)
            self._timer = None
        for task in list(self._tasks):
            task.cancel()
            pending.append(task)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()
        self._refresh_task = None

    async def __aenter__(self) -> RefreshCoordinator:
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.stop()

    # ---- repository identity -----------------------------------------
    async def repository_info(self) -> RepositoryInfo:
        if self._repo is None:
            self._repo = await resolve_repository(self.workspace_root, override=self.repo_override)
        return self._repo

    async def cache_key(self) -> str:
        info = await self.repository_info()
        return repository_key(info.owner, info.repo)

    # ---- read paths ---------------------------------------------------
    async def get_cached(self) -> Snapshot:
        try:
            key = await self.cache_key()
        except RepositoryUnresolvable as exc:
            self._report("Unable to determine the GitHub repository", exc)
            return Snapshot()
        entry = await self._read_cache(key)
        if entry is not None:
            self.logger.debug("Using cached GitHub issues and pull requests", key=key)
        return Snapshot.from_entry(entry)

    async def get_cached_or_fetch(self) -> Snapshot:
        try:
            key = await self.cache_key()
        except RepositoryUnresolvable as exc:
            self._report("Unable to determine the GitHub repository", exc)
            return Snapshot()
        entry = await self._read_cache(key)
        freshness = self.store.freshness(entry)
        if freshness is Freshness.FRESH:
            self.logger.debug("Using cached GitHub issues and pull requests", key=key)
            return Snapshot.from_entry(entry)
        if freshness is Freshness.STALE:
            self.logger.info("Serving stale cache while refreshing", key=key)
            self.schedule_refresh()
            return Snapshot.from_entry(entry)
        if not self.is_ready:
            self.logger.info("Not authenticated yet, returning cached result", key=key)
            return Snapshot.from_entry(entry)
        return await self._fetch_and_cache()

    async def load_cache_and_fetch(self) -> Snapshot:
        snapshot = await self.get_cached()
        self.schedule_refresh()
        return snapshot

    def schedule_refresh(self) -> asyncio.Task[Snapshot]:
        """Start a background refresh unless one is already running."""
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = self._spawn(self.refresh(), "refresh")
        return self._refresh_task

    async def refresh(self) -> Snapshot:
        if not self.is_ready:
            self.logger.debug("Skipping refresh, not authenticated yet")
            return await self.get_cached()
        self.logger.info("Starting background refresh of GitHub issues")
        return await self._fetch_and_cache()

    async def clear_cache(self) -> bool:
        try:
            key = await self.cache_key()
        except RepositoryUnresolvable as exc:
            self._report("Unable to determine the GitHub repository", exc)
            return False
        try:
            await run_blocking(self.store.clear, key)
        except CacheWriteFailed as exc:
            self._report("Failed to clear the GitHub issues cache", exc)
            return False
        self.logger.log_operation("cache_cleared", key=key)
        return True

    async def _fetch_and_cache(self) -> Snapshot:
        started = self.store.now()
        key: str | None = None
        try:
            source = self._require_source()
            info = await self.repository_info()
            key = repository_key(info.owner, info.repo)
            log = self.logger.bind(repo=info.slug, key=key)
            with log.timed_operation("fetch"):
                open_items = await source.list_items(info.owner, info.repo, OPEN, self.page_size)
                closed_items = await source.list_items(
                    info.owner, info.repo, CLOSED, self.page_size
                )
        except IssueCacheError as exc:
            self._report("Error fetching GitHub issues and pull requests", exc)
            return await self._fallback(key)
        finally:
            if self._source is not None:
                self.state = CoordinatorState.READY

        key = repository_key(info.owner, info.repo)
        all_items = [*open_items, *closed_items]
        issues = [item for item in all_items if not item.is_pull_request]
        pull_requests = [item for item in all_items if item.is_pull_request]
        try:
            accepted = await run_blocking(
                self.store.put, key, issues, pull_requests, fetched_at=started
            )
        except CacheWriteFailed as exc:
            self._report("Failed to save GitHub issues to the cache", exc)
        else:
            if not accepted:
                return Snapshot.from_entry(await self._read_cache(key))
        log.log_operation(
            "fetched",
            issue_count=len(issues),
            pull_request_count=len(pull_requests),
        )
        await self.on_data_updated.publish(
            DataUpdated(repository=info.slug, issues=issues, pull_requests=pull_requests)
        )
        return Snapshot(issues, pull_requests, started)

    async def _fallback(self, key: str | None) -> Snapshot:
        entry = await self._read_cache(key) if key is not None else None
        if entry is not None:
            self.logger.info("Using fallback cached issues and pull requests due to fetch error")
        return Snapshot.from_entry(entry)

    # ---- write paths --------------------------------------------------
    async def toggle(self, node: IssueNode) -> bool:
        """Flip a checklist sub-item and write the parent's body back.

        Returns False for nodes that are not sub-items. The local checkbox
        flips at once; the body sent to GitHub is built under the parent's
        write lock from the body the previous write-back left. On failure the
        local checkbox (and the parent's progress) is restored before
        ``RemoteUpdateFailed`` propagates.
        """
        if not node.is_sub_item:
            return False
        parent = node.parent
        index = node.sub_item_index
        if parent is None or index is None:
            raise RemoteUpdateFailed("Checklist item is detached from its issue", number=node.number)
        source = self._require_source()
        previous = node.checked
        node.set_checked(not previous)
        wanted = node.checked
        async with self._write_lock(parent.number):
            new_body = set_item_checked(parent.record.body, index, wanted)
            try:
                info = await self.repository_info()
                await source.update_item(
                    info.owner, info.repo, _issue_number(parent.number), {"body": new_body}
                )
            except IssueCacheError as exc:
                node.set_checked(previous)
                self._report(f"Failed to update body of issue #{parent.number}", exc)
                if isinstance(exc, RemoteUpdateFailed):
                    raise
                raise RemoteUpdateFailed(str(exc), number=parent.number) from exc
            parent.record.body = new_body
            await self._patch_cached(parent.number, body=new_body)
        self.logger.log_operation(
            "checkbox_toggled", issue_number=parent.number, item=index + 1, checked=wanted
        )
        return True

    async def update_title(self, number: int | str, new_title: str) -> None:
        source = self._require_source()
        issue_number = _issue_number(number)
        info = await self.repository_info()
        try:
            await source.update_item(info.owner, info.repo, issue_number, {"title": new_title})
        except RemoteUpdateFailed as exc:
            self._report(f"Failed to update issue #{issue_number}", exc)
            raise
        await self._patch_cached(issue_number, title=new_title)
        self.logger.log_operation("title_updated", issue_number=issue_number)

    async def _patch_cached(self, number: int | str, **fields: Any) -> None:
        # GitHub already has the change, so a failed cache write is only reported
        key = await self.cache_key()
        try:
            await run_blocking(self.store.patch_record, key, number, **fields)
        except CacheWriteFailed as exc:
            self._report(f"Failed to update cached issue #{number}", exc)

    # ---- helpers ------------------------------------------------------
    async def _read_cache(self, key: str) -> CacheEntry | None:
        return await run_blocking(self.store.get, key)

    def _write_lock(self, number: int | str) -> asyncio.Lock:
        return self._write_locks.setdefault(str(number), asyncio.Lock())

    def _require_source(self) -> IssueSource:
        if self._source is None or self.state is CoordinatorState.UNINITIALIZED:
            raise NotInitialized("GitHub API is not initialized")
        return self._source

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro, name=f"issuecache-{name}")
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.logger.log_error(
                f"background task {task.get_name()} failed", error=str(exc)
            )

    def _report(self, message: str, exc: BaseException) -> None:
        info = classify_error(exc)
        self.logger.log_error(message, error=info.message, category=info.category)
        if self.reporter is not None:
            self.reporter(f"{message}. Check output for details.")

    async def wait_idle(self) -> None:
        """Wait until no background task (auth, refresh) is pending."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


def _issue_number(number: int | str) -> int:
    if isinstance(number, int):
        return number
    text = str(number)
    if not text.isdigit():
        raise ValueError(f"#{text} is a checklist item, not an issue")
    return int(text)


__all__ = [
    "CoordinatorState",
    "DEFAULT_REFRESH_INTERVAL",
    "RefreshCoordinator",
    "github_source_factory",
]
