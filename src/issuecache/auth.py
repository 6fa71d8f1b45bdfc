"""Environment-based authentication for issuecache.

Tokens are looked up in environment variables (optionally seeded from a
``.env`` file) and, failing that, from the GitHub CLI's stored login.
"""

from __future__ import annotations

import os
import shutil
import subprocess  # nosec B404 - used to read the GitHub CLI token
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from dotenv import load_dotenv

from .errors import AuthenticationFailed
from .logging import get_logger
from .source import run_blocking

DEFAULT_SCOPES = ("repo",)
TOKEN_ALTERNATIVES = ("GH_TOKEN", "GITHUB_ACCESS_TOKEN", "GH_ACCESS_TOKEN", "GITHUB_PAT")


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    scopes: tuple[str, ...]
    source: str = "env"

    def __repr__(self) -> str:
        return f"AuthSession(scopes={self.scopes!r}, source={self.source!r})"


class AuthProvider(Protocol):
    async def get_session(self, scopes: Sequence[str]) -> AuthSession: ...


@dataclass
class EnvAuthConfig:
    """Configuration for environment-based authentication."""

    load_dotenv: bool = True
    dotenv_path: str | None = None
    github_token_var: str = "GITHUB_TOKEN"
    alternatives: tuple[str, ...] = field(default=TOKEN_ALTERNATIVES)
    use_gh_cli: bool = True


class EnvironmentAuthProvider:
    """Resolves a GitHub token from the environment, .env files or ``gh``."""

    def __init__(self, config: EnvAuthConfig | None = None):
        self.config = config or EnvAuthConfig()
        self.logger = get_logger()
        self._dotenv_loaded = False
        if self.config.load_dotenv:
            self._load_dotenv()

    def _load_dotenv(self) -> None:
        candidates = [self.config.dotenv_path] if self.config.dotenv_path else [
            ".env",
            ".env.local",
        ]
        for location in candidates:
            if location and Path(location).exists():
                load_dotenv(location)
                self._dotenv_loaded = True
                self.logger.debug(f"Loaded environment variables from {location}")
                return

    def get_github_token(self) -> tuple[str, str] | None:
        """Return ``(token, source)`` from environment variables, if any."""
        for var in (self.config.github_token_var, *self.config.alternatives):
            token = os.getenv(var)
            if token:
                self.logger.debug(f"Found GitHub token in {var}")
                return token, f"env:{var}"
        return None

    def get_gh_cli_token(self) -> str | None:
        gh = shutil.which("gh")
        if not self.config.use_gh_cli or gh is None:
            return None
        try:
            out = subprocess.check_output(  # nosec B603 - fixed argument vector
                [gh, "auth", "token"], text=True, stderr=subprocess.DEVNULL
            )
        except (subprocess.CalledProcessError, OSError):
            return None
        token = out.strip()
        return token or None

    def _resolve(self, scopes: Sequence[str]) -> AuthSession:
        found = self.get_github_token()
        if found is not None:
            token, source = found
            return AuthSession(access_token=token, scopes=tuple(scopes), source=source)
        token = self.get_gh_cli_token()
        if token:
            return AuthSession(access_token=token, scopes=tuple(scopes), source="gh-cli")
        raise AuthenticationFailed(
            f"No GitHub token found; set {self.config.github_token_var} or run 'gh auth login'"
        )

    async def get_session(self, scopes: Sequence[str] = DEFAULT_SCOPES) -> AuthSession:
        return await run_blocking(self._resolve, scopes)


class StaticAuthProvider:
    """Hands out a fixed token; useful for embedding and tests."""

    def __init__(self, token: str | None) -> None:
        self.token = token

    async def get_session(self, scopes: Sequence[str] = DEFAULT_SCOPES) -> AuthSession:
        if not self.token:
            raise AuthenticationFailed("No GitHub token configured")
        return AuthSession(access_token=self.token, scopes=tuple(scopes), source="static")


__all__ = [
    "AuthProvider",
    "AuthSession",
    "DEFAULT_SCOPES",
    "EnvAuthConfig",
    "EnvironmentAuthProvider",
    "StaticAuthProvider",
]
