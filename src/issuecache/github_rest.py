"""Blocking GitHub REST client for the issue endpoints the cache needs.

``list_issues`` returns issues *and* pull requests (GitHub serves both from
``/issues``; pull requests carry a ``pull_request`` key). Pages are followed
through the ``Link: rel="next"`` header, falling back to page counting when a
server omits it.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

import requests

from .retry import RetryConfig, run_with_retries

DEFAULT_API_URL = "https://api.github.com"
API_VERSION = "2022-11-28"
USER_AGENT = "issuecache-rest/0.2.0"
DEFAULT_PAGE_SIZE = 100
REQUEST_TIMEOUT = 30.0


class GitHubAPIError(RuntimeError):
    """A request failed at the transport level or with an error status."""

    def __init__(
        self, message: str, *, status: int | None = None, response_text: str | None = None
    ) -> None:
        super().__init__(message)
        self.status = status
        self.response_text = response_text


def _next_page_url(response: requests.Response) -> str | None:
    links = getattr(response, "links", None) or {}
    nxt = links.get("next") or {}
    url = nxt.get("url")
    return str(url) if url else None


@dataclass
class GitHubRestClient:
    token: str
    base_url: str = DEFAULT_API_URL
    session: requests.Session | None = None
    retry: RetryConfig | None = None
    timeout: float = REQUEST_TIMEOUT
    _http: requests.Session = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._http = self.session or requests.Session()
        defaults = {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
            "User-Agent": USER_AGENT,
        }
        for name, value in defaults.items():
            self._http.headers.setdefault(name, value)

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return self.base_url.rstrip("/") + "/" + path.lstrip("/")

    def _send(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> requests.Response:
        def _attempt() -> requests.Response:
            return self._http.request(
                method,
                url,
                params=params,
                json=body,
                headers=self._http.headers,
                timeout=self.timeout,
            )

        try:
            response = run_with_retries(_attempt, cfg=self.retry)
        except requests.RequestException as exc:
            raise GitHubAPIError(f"{method} {url}: {exc}") from exc
        if response.status_code >= 400:
            raise GitHubAPIError(
                f"{method} {url} returned HTTP {response.status_code}",
                status=response.status_code,
                response_text=response.text,
            )
        return response

    @staticmethod
    def _decode(response: requests.Response) -> Any:
        if not response.text:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def _pages(self, path: str, params: dict[str, Any]) -> Iterator[list[dict[str, Any]]]:
        url: str | None = self._url(path)
        query: dict[str, Any] | None = {"page": 1, **params}
        per_page = int(params.get("per_page", DEFAULT_PAGE_SIZE))
        while url:
            response = self._send("GET", url, params=dict(query) if query else None)
            data = self._decode(response)
            if not isinstance(data, list):
                return
            yield [entry for entry in data if isinstance(entry, dict)]
            next_url = _next_page_url(response)
            if next_url:
                # the next link already carries every query parameter
                url, query = next_url, None
            elif query is not None and len(data) >= per_page:
                query["page"] += 1
            else:
                url = None

    def list_issues(
        self, owner: str, repo: str, *, state: str = "open", per_page: int = DEFAULT_PAGE_SIZE
    ) -> list[dict[str, Any]]:
        """Every issue and pull request in ``state``, across all pages."""
        items: list[dict[str, Any]] = []
        for page in self._pages(
            f"/repos/{owner}/{repo}/issues", {"state": state, "per_page": per_page}
        ):
            items.extend(page)
        return items

    def update_issue(
        self, owner: str, repo: str, number: int, patch: dict[str, Any]
    ) -> dict[str, Any] | None:
        if not patch:
            return None
        response = self._send(
            "PATCH", self._url(f"/repos/{owner}/{repo}/issues/{number}"), body=patch
        )
        data = self._decode(response)
        return data if isinstance(data, dict) else None

    def get_authenticated_user(self) -> dict[str, Any]:
        data = self._decode(self._send("GET", self._url("/user")))
        return data if isinstance(data, dict) else {}


__all__ = [
    "DEFAULT_API_URL",
    "DEFAULT_PAGE_SIZE",
    "GitHubAPIError",
    "GitHubRestClient",
]
