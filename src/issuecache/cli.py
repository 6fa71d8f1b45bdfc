"""issuecache CLI.

Subcommands:
  tree        -> issues and pull requests with checklist progress
  show        -> one issue or checklist item in detail
  refresh     -> drop the cache and fetch again
  clear       -> drop the cache for the current repository
  toggle      -> flip a checklist item (``12.3``) and write it back
  edit-title  -> rename an issue or pull request
"""

from __future__ import annotations

import argparse
import os
import sys
from typing import Any

from issuecache.config import CONFIG_DEFAULT, CacheConfig
from issuecache.coordinator import RefreshCoordinator
from issuecache.errors import RemoteUpdateFailed
from issuecache.models import Snapshot
from issuecache.progress import render_bar
from issuecache.runtime import CommandHandler, execute_command, prepare_config
from issuecache.tree import IssueTree
from issuecache.ux import (
    format_node,
    print_error,
    print_header,
    print_success,
    print_warning,
    render_section,
)

REPO_HELP = "Override target repository (owner/repo)"
_MAX_HELP_WIDTH = 100


class _HelpFormatter(argparse.HelpFormatter):
    def __init__(self, prog: str) -> None:
        super().__init__(prog, max_help_position=30, width=_MAX_HELP_WIDTH)


class _FormatterArgumentParser(argparse.ArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("formatter_class", _HelpFormatter)
        super().__init__(*args, **kwargs)


def _build_parser() -> argparse.ArgumentParser:
    p = _FormatterArgumentParser(
        prog="issuecache", description="Cached GitHub issues with checklist progress"
    )
    p.add_argument("--config", default=CONFIG_DEFAULT)
    p.add_argument("--repo", help=REPO_HELP)
    p.add_argument("--json-logs", action="store_true", help="Emit JSON log lines on stderr")
    p.add_argument("--verbose", action="store_true", help="Debug logging")
    sub = p.add_subparsers(
        dest="cmd",
        required=True,
        parser_class=_FormatterArgumentParser,
        metavar="<command>",
    )

    pt = sub.add_parser("tree", help="Show issues and pull requests")
    pt.add_argument("--search", default="", help="Only items whose title/body matches")
    pt.add_argument("--all", action="store_true", help="Expand collapsed sections")

    ps = sub.add_parser("show", help="Show one issue, pull request or checklist item")
    ps.add_argument("number")

    sub.add_parser("refresh", help="Clear the cache and fetch again")
    sub.add_parser("clear", help="Clear the cache for this repository")

    pg = sub.add_parser("toggle", help="Flip a checklist item, e.g. 12.3")
    pg.add_argument("item")

    pe = sub.add_parser("edit-title", help="Rename an issue or pull request")
    pe.add_argument("number", type=int)
    pe.add_argument("title")
    return p


async def _ready_coordinator(cfg: CacheConfig) -> RefreshCoordinator:
    coordinator = RefreshCoordinator.from_config(cfg, reporter=print_error)
    await coordinator.initialize(wait=True, fetch=False)
    return coordinator


async def _load_tree(coordinator: RefreshCoordinator) -> IssueTree:
    snapshot: Snapshot = await coordinator.get_cached_or_fetch()
    return IssueTree.from_snapshot(snapshot)


async def _cmd_tree(cfg: CacheConfig, args: argparse.Namespace) -> int:
    coordinator = await _ready_coordinator(cfg)
    try:
        tree = await _load_tree(coordinator)
        for section in tree.sections(args.search):
            for line in render_section(section, expand_all=args.all):
                print(line)
        # let a stale-cache refresh land before exiting
        await coordinator.wait_idle()
    finally:
        await coordinator.stop()
    return 0


async def _cmd_show(cfg: CacheConfig, args: argparse.Namespace) -> int:
    coordinator = await _ready_coordinator(cfg)
    try:
        tree = await _load_tree(coordinator)
    finally:
        await coordinator.stop()
    node = tree.find(args.number)
    if node is None:
        print_error(f"#{args.number} not found")
        return 1
    record = node.record
    print_header(f"#{record.number}: {record.title}")
    author = record.author or "unknown"
    created = record.extra.get("created_at") or "unknown date"
    print(f"{record.state} · opened by {author} on {created}")
    url = record.extra.get("html_url")
    if url:
        print(url)
    if node.progress_percent is not None:
        print(render_bar(node.progress_percent))
    print()
    print(record.body or "No description provided.")
    return 0


async def _cmd_refresh(cfg: CacheConfig, args: argparse.Namespace) -> int:
    coordinator = await _ready_coordinator(cfg)
    try:
        if not await coordinator.clear_cache():
            return 1
        snapshot = await coordinator.get_cached_or_fetch()
    finally:
        await coordinator.stop()
    if snapshot.fetched_at is None:
        print_warning("Nothing fetched; showing no data")
        return 1
    print_success(
        f"Fetched {len(snapshot.issues)} issues and {len(snapshot.pull_requests)} pull requests"
    )
    return 0


async def _cmd_clear(cfg: CacheConfig, args: argparse.Namespace) -> int:
    coordinator = RefreshCoordinator.from_config(cfg, reporter=print_error)
    if not await coordinator.clear_cache():
        return 1
    print_success("Cleared GitHub issues cache for the current workspace")
    return 0


async def _cmd_toggle(cfg: CacheConfig, args: argparse.Namespace) -> int:
    coordinator = await _ready_coordinator(cfg)
    try:
        tree = await _load_tree(coordinator)
        node = tree.find(args.item)
        if node is None or not node.is_sub_item:
            print_error(f"{args.item} is not a checklist item")
            return 1
        try:
            await coordinator.toggle(node)
        except RemoteUpdateFailed:
            return 1
    finally:
        await coordinator.stop()
    print(format_node(node))
    parent = node.parent
    if parent is not None:
        print(render_bar(parent.progress_percent))
    return 0


async def _cmd_edit_title(cfg: CacheConfig, args: argparse.Namespace) -> int:
    coordinator = await _ready_coordinator(cfg)
    try:
        await coordinator.update_title(args.number, args.title)
    except RemoteUpdateFailed:
        return 1
    finally:
        await coordinator.stop()
    print_success(f"Updated issue #{args.number}")
    return 0


def _build_handlers(args: argparse.Namespace, cfg: CacheConfig) -> dict[str, CommandHandler]:
    return {
        "tree": lambda: _cmd_tree(cfg, args),
        "show": lambda: _cmd_show(cfg, args),
        "refresh": lambda: _cmd_refresh(cfg, args),
        "clear": lambda: _cmd_clear(cfg, args),
        "toggle": lambda: _cmd_toggle(cfg, args),
        "edit-title": lambda: _cmd_edit_title(cfg, args),
    }


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if os.environ.get("ISSUECACHE_DEBUG") == "1":
        args.verbose = True
    cfg = prepare_config(args)
    handler = _build_handlers(args, cfg).get(args.cmd)
    if handler is None:  # pragma: no cover - argparse enforces valid choices
        parser.print_help(sys.stderr)
        return 1
    return execute_command(handler, args.cmd)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
