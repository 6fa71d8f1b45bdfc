"""Tree nodes wrapping issues, pull requests and their checklist sub-items."""

from __future__ import annotations

import weakref
from typing import Any

from .checklist import parse_checklist
from .models import CLOSED, OPEN, IssueRecord, NodeKind
from .progress import recompute


class IssueNode:
    """One issue/PR, a checklist sub-item of one, or a progress indicator.

    Top-level nodes parse their body on construction and own one level of
    sub-item children. ``parent`` is held as a weak reference: children never
    keep their parent alive, they only use it to trigger recomputation.
    """

    def __init__(
        self,
        record: IssueRecord,
        kind: NodeKind | str,
        *,
        parent: IssueNode | None = None,
        is_sub_item: bool = False,
        checked: bool = False,
    ) -> None:
        self.record = record
        self.kind = NodeKind(kind)
        self.is_sub_item = is_sub_item
        self.checked = checked
        self.children: list[IssueNode] = []
        self.progress_percent: float | None = None
        self._parent: weakref.ReferenceType[IssueNode] | None = (
            weakref.ref(parent) if parent is not None else None
        )
        if self.kind is not NodeKind.PROGRESS and not is_sub_item:
            self.rebuild_children()

    @classmethod
    def progress_indicator(cls, parent: IssueNode) -> IssueNode:
        record = IssueRecord(number=f"{parent.number}.progress", title="Progress")
        return cls(record, NodeKind.PROGRESS, parent=parent)

    def __repr__(self) -> str:
        return f"IssueNode({self.kind.value} #{self.number} {self.title!r})"

    # ---- accessors ----------------------------------------------------
    @property
    def parent(self) -> IssueNode | None:
        return self._parent() if self._parent is not None else None

    @property
    def number(self) -> int | str:
        return self.record.number

    @property
    def title(self) -> str:
        return self.record.title

    @property
    def state(self) -> str:
        return self.record.state

    @property
    def sub_items(self) -> list[IssueNode]:
        return [c for c in self.children if c.kind is not NodeKind.PROGRESS]

    @property
    def progress_node(self) -> IssueNode | None:
        if self.children and self.children[0].kind is NodeKind.PROGRESS:
            return self.children[0]
        return None

    @property
    def sub_item_index(self) -> int | None:
        """0-based position among the parent's sub-items."""
        parent = self.parent
        if not self.is_sub_item or parent is None:
            return None
        for idx, child in enumerate(parent.sub_items):
            if child is self:
                return idx
        return None

    # ---- construction -------------------------------------------------
    def _make_sub_item(self, index: int, text: str, checked: bool) -> IssueNode:
        extra: dict[str, Any] = dict(self.record.extra)
        record = IssueRecord(
            number=f"{self.record.number}.{index + 1}",
            title=text,
            body="",
            state=CLOSED if checked else OPEN,
            extra=extra,
        )
        # checklist items are plain issues, even under a pull request
        return IssueNode(record, NodeKind.ISSUE, parent=self, is_sub_item=True, checked=checked)

    def rebuild_children(self) -> None:
        """(Re)derive sub-items from the record body and refresh progress."""
        self.children = [
            self._make_sub_item(idx, item.text, item.checked)
            for idx, item in enumerate(parse_checklist(self.record.body))
        ]
        if self.children:
            recompute(self)
        else:
            self.progress_percent = None

    # ---- behaviour ----------------------------------------------------
    def toggle(self) -> bool:
        if not self.is_sub_item:
            return False
        self.set_checked(not self.checked)
        return True

    def set_checked(self, checked: bool) -> None:
        self.checked = checked
        self.record.state = CLOSED if checked else OPEN
        parent = self.parent
        if parent is not None:
            recompute(parent)

    def matches_search(self, query: str) -> bool:
        if not query:
            return True
        needle = query.lower()
        if needle in self.title.lower():
            return True
        if self.record.body and needle in self.record.body.lower():
            return True
        return any(child.matches_search(query) for child in self.sub_items)


def toggle(node: IssueNode) -> bool:
    """Flip a sub-item's checkbox; returns False (no-op) for any other node."""
    return node.toggle()


def build_nodes(records: list[IssueRecord], kind: NodeKind | str) -> list[IssueNode]:
    return [IssueNode(record, kind) for record in records]


__all__ = ["IssueNode", "build_nodes", "toggle"]
