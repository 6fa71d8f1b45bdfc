"""issuecache - cached GitHub issues with checklist progress.

High-level public API:

from issuecache import RefreshCoordinator, IssueTree, load_config

cfg = load_config('issuecache.config.yaml')
coordinator = RefreshCoordinator.from_config(cfg)
await coordinator.initialize()
snapshot = await coordinator.load_cache_and_fetch()
tree = IssueTree.from_snapshot(snapshot)
coordinator.on_data_updated.subscribe(lambda event: ...)

The CLI (``issuecache tree``) is a thin front end over the same objects.
"""

from __future__ import annotations

from .cache_store import CacheStore, Freshness
from .checklist import ChecklistItem, parse_checklist, set_item_checked
from .config import CacheConfig, load_config
from .coordinator import CoordinatorState, RefreshCoordinator
from .errors import (
    AuthenticationFailed,
    CacheWriteFailed,
    IssueCacheError,
    NotInitialized,
    RemoteFetchFailed,
    RemoteUpdateFailed,
    RepositoryUnresolvable,
)
from .events import DataUpdated
from .models import CacheEntry, IssueRecord, NodeKind, Snapshot
from .nodes import IssueNode, toggle
from .progress import recompute
from .tree import IssueTree

__version__ = "0.2.0"

__all__ = [
    "AuthenticationFailed",
    "CacheConfig",
    "CacheEntry",
    "CacheStore",
    "CacheWriteFailed",
    "ChecklistItem",
    "CoordinatorState",
    "DataUpdated",
    "Freshness",
    "IssueCacheError",
    "IssueNode",
    "IssueRecord",
    "IssueTree",
    "NodeKind",
    "NotInitialized",
    "RefreshCoordinator",
    "RemoteFetchFailed",
    "RemoteUpdateFailed",
    "RepositoryUnresolvable",
    "Snapshot",
    "load_config",
    "parse_checklist",
    "recompute",
    "set_item_checked",
    "toggle",
    "__version__",
]
