"""Markdown checklist extraction and rewrite.

A checklist item is a single line of the form ``- [ ] text`` or
``- [x] text`` with optional leading indentation. Only a lowercase ``x``
counts as checked; anything else in the brackets means the line is not a
checklist item at all. Lines that do not match are ignored, so bodies
without a checklist simply produce an empty list.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_ITEM_RE = re.compile(r"^([ \t]*)-[ \t]*\[([ x])\][ \t]*(\S.*?)[ \t]*$")
CHECKED_MARK = "x"
UNCHECKED_MARK = " "


@dataclass(frozen=True)
class ChecklistItem:
    indent: int
    checked: bool
    text: str
    line: int


def _lines(body: str | None) -> list[str]:
    return (body or "").splitlines(keepends=True)


def _strip_eol(line: str) -> str:
    return line.rstrip("\r\n")


def parse_checklist(body: str | None) -> list[ChecklistItem]:
    items: list[ChecklistItem] = []
    for idx, raw in enumerate(_lines(body)):
        m = _ITEM_RE.match(_strip_eol(raw))
        if not m:
            continue
        indent, mark, text = m.groups()
        items.append(
            ChecklistItem(indent=len(indent), checked=mark == CHECKED_MARK, text=text, line=idx)
        )
    return items


def set_item_checked(body: str | None, index: int, checked: bool) -> str:
    """Return ``body`` with the ``index``-th checklist item set to ``checked``.

    Only the bracket character of that one line changes; duplicates of the
    same text elsewhere in the body are left alone.
    """
    if index < 0:
        raise IndexError(f"checklist index {index} out of range")
    lines = _lines(body)
    seen = 0
    for idx, raw in enumerate(lines):
        m = _ITEM_RE.match(_strip_eol(raw))
        if not m:
            continue
        if seen == index:
            mark = CHECKED_MARK if checked else UNCHECKED_MARK
            pos = m.start(2)
            lines[idx] = raw[:pos] + mark + raw[pos + 1 :]
            return "".join(lines)
        seen += 1
    raise IndexError(f"checklist index {index} out of range ({seen} items)")


__all__ = ["ChecklistItem", "parse_checklist", "set_item_checked"]
