"""Group issue nodes into the sections a consumer displays.

Without a search query the tree has two top-level sections, ``Issues`` and
``Pull Requests``, each split into open and closed. With a query there is a
single ``Search Results`` section holding every matching node.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from .models import NodeKind, Snapshot
from .nodes import IssueNode, build_nodes


@dataclass
class Section:
    label: str
    nodes: list[IssueNode] = field(default_factory=list)
    sections: list[Section] = field(default_factory=list)
    expanded: bool = True

    @property
    def count(self) -> int:
        return len(self.nodes) + sum(s.count for s in self.sections)

    @property
    def title(self) -> str:
        return f"{self.label} ({self.count})"


class IssueTree:
    def __init__(self, issues: list[IssueNode], pull_requests: list[IssueNode]) -> None:
        self.issues = issues
        self.pull_requests = pull_requests

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> IssueTree:
        return cls(
            build_nodes(snapshot.issues, NodeKind.ISSUE),
            build_nodes(snapshot.pull_requests, NodeKind.PULL_REQUEST),
        )

    def __iter__(self) -> Iterator[IssueNode]:
        yield from self.issues
        yield from self.pull_requests

    def walk(self) -> Iterator[IssueNode]:
        """Every node, parents before their children."""
        for node in self:
            yield node
            yield from node.children

    def find(self, number: int | str) -> IssueNode | None:
        wanted = str(number)
        for node in self.walk():
            if str(node.number) == wanted:
                return node
        return None

    def sections(self, query: str = "") -> list[Section]:
        if query:
            matches = [node for node in self if node.matches_search(query)]
            return [Section(f'Search Results for "{query}"', nodes=matches)]
        open_issues = [n for n in self.issues if n.record.is_open]
        closed_issues = [n for n in self.issues if not n.record.is_open]
        open_prs = [n for n in self.pull_requests if n.record.is_open]
        closed_prs = [n for n in self.pull_requests if not n.record.is_open]
        return [
            Section(
                "Issues",
                sections=[
                    Section("Open Issues", nodes=open_issues),
                    Section("Closed Issues", nodes=closed_issues, expanded=False),
                ],
            ),
            Section(
                "Pull Requests",
                sections=[
                    Section("Open Pull Requests", nodes=open_prs, expanded=False),
                    Section("Closed Pull Requests", nodes=closed_prs, expanded=False),
                ],
                expanded=False,
            ),
        ]


__all__ = ["IssueTree", "Section"]
