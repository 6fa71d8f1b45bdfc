from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, cast

import yaml

from .errors import ConfigError
from .github_rest import DEFAULT_API_URL, DEFAULT_PAGE_SIZE

CONFIG_DEFAULT = "issuecache.config.yaml"
DEFAULT_CACHE_FILE = ".issuecache/cache.json"


@dataclass
class CacheConfig:
    config_file: Path | None
    workspace_root: Path
    github_repo: str | None
    github_api_url: str
    page_size: int
    cache_path: Path
    fresh_minutes: float
    usable_minutes: float
    refresh_interval_minutes: float
    # Logging configuration
    logging_json_enabled: bool
    logging_level: str
    # Environment authentication configuration
    env_auth_load_dotenv: bool
    env_auth_dotenv_path: str | None

    @property
    def fresh_for(self) -> timedelta:
        return timedelta(minutes=self.fresh_minutes)

    @property
    def usable_for(self) -> timedelta:
        return timedelta(minutes=self.usable_minutes)

    @property
    def refresh_interval(self) -> timedelta:
        return timedelta(minutes=self.refresh_interval_minutes)


def _resolve_env_var(value: Any) -> Any:
    """Resolve environment variable if value starts with $."""
    if isinstance(value, str) and value.startswith('$'):
        return os.getenv(value[1:], value)
    return value


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name, {}) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping")
    return cast(dict[str, Any], value)


def _positive(value: Any, name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be a number, got {value!r}") from exc
    if number <= 0:
        raise ConfigError(f"{name} must be positive, got {number}")
    return number


def load_config(path: str | Path | None = None, *, required: bool = False) -> CacheConfig:
    """Load ``issuecache.config.yaml``; a missing optional file yields defaults."""
    p = Path(path) if path is not None else Path(CONFIG_DEFAULT)
    raw: dict[str, Any] = {}
    if p.exists():
        try:
            loaded = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {p}: {exc}") from exc
        if not isinstance(loaded, dict):
            raise ConfigError(f"Configuration root in {p} must be a mapping")
        raw = cast(dict[str, Any], loaded)
    elif required:
        raise ConfigError(f'Configuration file not found: {p}')

    base = p.parent if p.exists() else Path.cwd()
    gh = _section(raw, 'github')
    workspace = _section(raw, 'workspace')
    cache = _section(raw, 'cache')
    logging_config = _section(raw, 'logging')
    env_auth = _section(raw, 'environment')

    root = Path(workspace.get('root') or base)
    if not root.is_absolute():
        root = base / root
    cache_path = Path(os.getenv('ISSUECACHE_CACHE_PATH') or cache.get('path') or DEFAULT_CACHE_FILE)
    if not cache_path.is_absolute():
        cache_path = root / cache_path

    fresh = _positive(cache.get('fresh_minutes', 5), 'cache.fresh_minutes')
    usable = _positive(cache.get('usable_minutes', 30), 'cache.usable_minutes')
    if fresh > usable:
        raise ConfigError('cache.fresh_minutes must not exceed cache.usable_minutes')

    return CacheConfig(
        config_file=p if p.exists() else None,
        workspace_root=root,
        github_repo=os.getenv('ISSUECACHE_REPO') or _resolve_env_var(gh.get('repo')),
        github_api_url=str(gh.get('api_url') or DEFAULT_API_URL),
        page_size=int(gh.get('page_size', DEFAULT_PAGE_SIZE)),
        cache_path=cache_path,
        fresh_minutes=fresh,
        usable_minutes=usable,
        refresh_interval_minutes=_positive(
            cache.get('refresh_interval_minutes', 30), 'cache.refresh_interval_minutes'
        ),
        logging_json_enabled=bool(logging_config.get('json_enabled', False)),
        logging_level=str(logging_config.get('level', 'INFO')),
        env_auth_load_dotenv=bool(env_auth.get('load_dotenv', True)),
        env_auth_dotenv_path=env_auth.get('dotenv_path'),
    )


__all__ = ["CONFIG_DEFAULT", "CacheConfig", "load_config"]
