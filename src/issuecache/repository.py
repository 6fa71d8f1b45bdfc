"""Resolve the GitHub ``owner/repo`` a workspace points at."""

from __future__ import annotations

import re
import shutil
import subprocess  # nosec B404 - git is required to read the origin remote
from dataclasses import dataclass
from pathlib import Path

from .errors import RepositoryUnresolvable
from .source import run_blocking

_REMOTE_RE = re.compile(r"github\.com[:/]([^/\s]+)/([^/\s]+?)(?:\.git)?/?$")


@dataclass(frozen=True)
class RepositoryInfo:
    owner: str
    repo: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"


def parse_remote_url(url: str) -> RepositoryInfo:
    m = _REMOTE_RE.search(url.strip())
    if not m:
        raise RepositoryUnresolvable(RepositoryUnresolvable.UNPARSEABLE_URL, url)
    return RepositoryInfo(owner=m.group(1), repo=m.group(2))


def parse_slug(slug: str) -> RepositoryInfo:
    owner, sep, repo = slug.strip().partition("/")
    if not sep or not owner or not repo or "/" in repo:
        raise RepositoryUnresolvable(RepositoryUnresolvable.UNPARSEABLE_URL, slug)
    return RepositoryInfo(owner=owner, repo=repo)


def read_origin_url(workspace_root: Path, remote: str = "origin") -> str:
    git = shutil.which("git") or "git"
    try:
        out = subprocess.check_output(  # nosec B603 - fixed argument vector
            [git, "-C", str(workspace_root), "remote", "get-url", remote],
            text=True,
            stderr=subprocess.STDOUT,
        )
    except (subprocess.CalledProcessError, OSError) as exc:
        raise RepositoryUnresolvable(RepositoryUnresolvable.NO_REMOTE, str(exc)) from exc
    url = out.strip()
    if not url:
        raise RepositoryUnresolvable(RepositoryUnresolvable.NO_REMOTE, remote)
    return url


def resolve_repository_sync(
    workspace_root: str | Path | None, *, override: str | None = None
) -> RepositoryInfo:
    if override:
        return parse_slug(override)
    if workspace_root is None:
        raise RepositoryUnresolvable(RepositoryUnresolvable.NO_WORKSPACE)
    root = Path(workspace_root)
    if not root.is_dir():
        raise RepositoryUnresolvable(RepositoryUnresolvable.NO_WORKSPACE, str(root))
    return parse_remote_url(read_origin_url(root))


async def resolve_repository(
    workspace_root: str | Path | None, *, override: str | None = None
) -> RepositoryInfo:
    return await run_blocking(resolve_repository_sync, workspace_root, override=override)


__all__ = [
    "RepositoryInfo",
    "parse_remote_url",
    "parse_slug",
    "read_origin_url",
    "resolve_repository",
    "resolve_repository_sync",
]
