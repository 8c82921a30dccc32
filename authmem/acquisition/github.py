"""Minimal GitHub client for default-branch lookup and archive downloads."""

from __future__ import annotations

import http.client
import json
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional
from urllib.error import HTTPError
from urllib.request import Request, urlopen

from ..logging import get_logger
from .archive import is_zip_payload
from .inputs import GitHubRepository

logger = get_logger("acquisition.github")

API_ROOT = "https://api.github.com"
WEB_ROOT = "https://github.com"
API_ACCEPT = "application/vnd.github.v3+json"
ARCHIVE_ACCEPT = "application/vnd.github.v3+json, application/zip, application/octet-stream, */*"


@dataclass
class FetchResponse:
    status: int
    reason: str
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


Fetcher = Callable[[str, Mapping[str, str], float], FetchResponse]


class DownloadError(RuntimeError):
    """A single archive candidate could not be used."""


def urllib_fetcher(url: str, headers: Mapping[str, str], timeout: float) -> FetchResponse:
    """GET ``url`` following redirects; HTTP error statuses are returned, not raised."""
    request = Request(url, headers=dict(headers), method="GET")
    try:
        with urlopen(request, timeout=timeout) as response:  # type: ignore[arg-type]
            return FetchResponse(response.status, str(response.reason), response.read())
    except HTTPError as exc:
        return FetchResponse(exc.code, str(exc.reason), b"")


class GitHubClient:
    """Talks to the GitHub API and archive endpoints with an optional token."""

    def __init__(
        self,
        *,
        token: Optional[str] = None,
        user_agent: str = "authmem",
        timeout: float = 30.0,
        fetcher: Optional[Fetcher] = None,
    ) -> None:
        self.token = token
        self.user_agent = user_agent
        self.timeout = timeout
        self._fetch = fetcher or urllib_fetcher

    def _headers(self, accept: str) -> Dict[str, str]:
        headers = {"Accept": accept, "User-Agent": self.user_agent}
        if self.token:
            headers["Authorization"] = f"token {self.token}"
        return headers

    def default_branch(self, repo: GitHubRepository) -> Optional[str]:
        """Return the repository's default branch, or None when it cannot be determined."""
        url = f"{API_ROOT}/repos/{repo.slug}"
        try:
            response = self._fetch(url, self._headers(API_ACCEPT), self.timeout)
        except (OSError, http.client.HTTPException) as exc:
            logger.debug("Branch lookup for %s failed: %s", repo.slug, exc)
            return None
        if not response.ok:
            logger.debug("Branch lookup for %s returned %s %s", repo.slug, response.status, response.reason)
            return None
        try:
            payload = json.loads(response.body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            logger.debug("Branch lookup for %s returned invalid JSON", repo.slug)
            return None
        branch = payload.get("default_branch") if isinstance(payload, dict) else None
        return branch if isinstance(branch, str) and branch else None

    @staticmethod
    def archive_urls(repo: GitHubRepository, branch: str) -> List[str]:
        """Archive URL formats, tried in this order for each branch."""
        return [
            f"{WEB_ROOT}/{repo.slug}/archive/{branch}.zip",
            f"{API_ROOT}/repos/{repo.slug}/zipball/{branch}",
            f"{WEB_ROOT}/{repo.slug}/archive/refs/heads/{branch}.zip",
        ]

    def download(self, url: str) -> bytes:
        """Fetch one archive candidate and verify it looks like a ZIP."""
        try:
            response = self._fetch(url, self._headers(ARCHIVE_ACCEPT), self.timeout)
        except (OSError, http.client.HTTPException) as exc:
            raise DownloadError(str(getattr(exc, "reason", exc))) from exc
        if not response.ok:
            raise DownloadError(f"{response.status} {response.reason}")
        if not response.body:
            raise DownloadError("Downloaded file is empty")
        if not is_zip_payload(response.body):
            raise DownloadError("Response is not a zip file")
        return response.body


__all__ = [
    "ARCHIVE_ACCEPT",
    "DownloadError",
    "FetchResponse",
    "Fetcher",
    "GitHubClient",
    "urllib_fetcher",
]
