"""Completion progress for issues with checklist sub-items."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .models import NodeKind

if TYPE_CHECKING:
    from .nodes import IssueNode

BAR_WIDTH = 15
FILLED_CHAR = "█"
EMPTY_CHAR = " "


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


def recompute(node: IssueNode) -> float | None:
    """Recompute ``node.progress_percent`` and keep the progress child in sync.

    The progress child is always ``children[0]``; repeated calls never add a
    second one. A node whose sub-items have all gone loses its progress child.
    """
    sub_items = [c for c in node.children if c.kind is not NodeKind.PROGRESS]
    total = len(sub_items)
    if total == 0:
        node.progress_percent = None
        node.children = sub_items
        return None

    checked = sum(1 for c in sub_items if c.checked)
    percent = 100.0 * checked / total
    node.progress_percent = percent

    head = node.children[0]
    if head.kind is NodeKind.PROGRESS:
        head.progress_percent = percent
    else:
        indicator = type(node).progress_indicator(node)
        indicator.progress_percent = percent
        node.children.insert(0, indicator)
    return percent


def render_bar(percent: float | None, width: int = BAR_WIDTH) -> str:
    pct = max(0.0, min(100.0, percent or 0.0))
    filled = _round_half_up(pct / 100 * width)
    bar = FILLED_CHAR * filled + EMPTY_CHAR * (width - filled)
    return f"[{bar}] {_round_half_up(pct)}%"


__all__ = ["recompute", "render_bar"]
