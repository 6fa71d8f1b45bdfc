"""Tests for UX helpers module."""

from __future__ import annotations

import io

import pytest

from issuecache.models import IssueRecord, NodeKind
from issuecache.nodes import IssueNode
from issuecache.tree import Section
from issuecache.ux import (
    Colors,
    colorize,
    format_node,
    print_error,
    print_success,
    render_section,
)


def _tty() -> io.StringIO:
    stream = io.StringIO()
    stream.isatty = lambda: True  # type: ignore[method-assign]
    return stream


def test_colorize_with_tty_support(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test colorize adds colors when TTY is supported."""
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.setenv("TERM", "xterm-256color")

    result = colorize("test", Colors.RED, bold=True, stream=_tty())
    assert result == f"{Colors.BOLD}{Colors.RED}test{Colors.RESET}"


def test_colorize_respects_no_color_and_dumb_terminals(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NO_COLOR", "1")
    assert colorize("test", Colors.RED, stream=_tty()) == "test"

    monkeypatch.delenv("NO_COLOR")
    monkeypatch.setenv("TERM", "dumb")
    assert colorize("test", Colors.RED, stream=_tty()) == "test"


def test_colorize_no_tty() -> None:
    assert colorize("test", Colors.GREEN, stream=io.StringIO()) == "test"


def test_print_helpers_write_to_given_stream() -> None:
    out = io.StringIO()
    print_success("done", stream=out)
    print_error("failed", stream=out)
    assert out.getvalue() == "✓ done\n✗ failed\n"


def test_format_node_variants() -> None:
    issue = IssueNode(IssueRecord(number=4, title="Bug", body="- [x] fix"), NodeKind.ISSUE)
    pr = IssueNode(IssueRecord(number=5, title="Fix bug"), NodeKind.PULL_REQUEST)
    plain = io.StringIO()

    assert format_node(issue, plain) == "● Bug #4"
    assert format_node(pr, plain) == "PR Fix bug #5"
    assert format_node(issue.progress_node, plain) == "[███████████████] 100%"
    assert format_node(issue.sub_items[0], plain) == "[x] fix  4.1"


def test_render_section_collapsed_and_expanded() -> None:
    node = IssueNode(IssueRecord(number=1, title="Only"), NodeKind.ISSUE)
    section = Section("Closed Issues", nodes=[node], expanded=False)
    plain = io.StringIO()

    assert list(render_section(section, stream=plain)) == ["▸ Closed Issues (1)"]
    assert list(render_section(section, expand_all=True, stream=plain)) == [
        "▾ Closed Issues (1)",
        "  ● Only #1",
    ]
