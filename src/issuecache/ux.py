"""Plain-text rendering helpers for the CLI - no external dependencies."""

from __future__ import annotations

import os
import sys
from collections.abc import Iterator
from typing import TextIO

from .models import NodeKind
from .nodes import IssueNode
from .progress import render_bar
from .tree import Section


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"


def _supports_color(stream: TextIO | None = None) -> bool:
    stream = stream or sys.stdout
    if os.environ.get("NO_COLOR"):
        return False
    if not hasattr(stream, "isatty") or not stream.isatty():
        return False
    return os.environ.get("TERM") != "dumb"


def colorize(text: str, color: str, bold: bool = False, stream: TextIO | None = None) -> str:
    """Apply color to text if terminal supports it."""
    if not _supports_color(stream):
        return text
    prefix = (Colors.BOLD if bold else "") + color
    return f"{prefix}{text}{Colors.RESET}"


def print_success(message: str, stream: TextIO | None = None) -> None:
    stream = stream or sys.stdout
    print(colorize("✓", Colors.GREEN, bold=True, stream=stream) + " " + message, file=stream)


def print_error(message: str, stream: TextIO | None = None) -> None:
    stream = stream or sys.stderr
    print(colorize("✗", Colors.RED, bold=True, stream=stream) + " " + message, file=stream)


def print_warning(message: str, stream: TextIO | None = None) -> None:
    stream = stream or sys.stdout
    print(colorize("⚠", Colors.YELLOW, bold=True, stream=stream) + " " + message, file=stream)


def print_header(message: str, stream: TextIO | None = None) -> None:
    stream = stream or sys.stdout
    print(colorize(message, Colors.CYAN, bold=True, stream=stream), file=stream)


def _state_color(node: IssueNode) -> str:
    if node.kind is NodeKind.PULL_REQUEST:
        return Colors.GREEN if node.record.is_open else Colors.MAGENTA
    return Colors.GREEN if node.record.is_open else Colors.RED


def format_node(node: IssueNode, stream: TextIO | None = None) -> str:
    if node.kind is NodeKind.PROGRESS:
        return colorize(render_bar(node.progress_percent), Colors.DIM, stream=stream)
    if node.is_sub_item:
        box = "[x]" if node.checked else "[ ]"
        return f"{box} {node.title}  {colorize(str(node.number), Colors.DIM, stream=stream)}"
    marker = "PR" if node.kind is NodeKind.PULL_REQUEST else "●"
    icon = colorize(marker, _state_color(node), bold=True, stream=stream)
    number = colorize(f"#{node.number}", Colors.DIM, stream=stream)
    return f"{icon} {node.title} {number}"


def render_node(node: IssueNode, depth: int = 0, stream: TextIO | None = None) -> Iterator[str]:
    indent = "  " * depth
    yield indent + format_node(node, stream)
    for child in node.children:
        yield from render_node(child, depth + 1, stream)


def render_section(
    section: Section, depth: int = 0, *, expand_all: bool = False, stream: TextIO | None = None
) -> Iterator[str]:
    indent = "  " * depth
    marker = "▾" if section.expanded or expand_all else "▸"
    yield indent + colorize(f"{marker} {section.title}", Colors.CYAN, bold=True, stream=stream)
    if not (section.expanded or expand_all):
        return
    for sub in section.sections:
        yield from render_section(sub, depth + 1, expand_all=expand_all, stream=stream)
    for node in section.nodes:
        yield from render_node(node, depth + 1, stream)


__all__ = [
    "Colors",
    "colorize",
    "format_node",
    "print_error",
    "print_header",
    "print_success",
    "print_warning",
    "render_node",
    "render_section",
]
