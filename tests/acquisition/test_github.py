"""Tests for the GitHub client using an injected fetcher."""

from __future__ import annotations

from typing import Dict, List, Mapping, Tuple

import pytest

from authmem.acquisition import DownloadError, FetchResponse, GitHubClient, GitHubRepository
from tests._fixtures.repo_builder import build_zip

REPO = GitHubRepository("acme", "shop")


class RecordingFetcher:
    def __init__(self, responses: Dict[str, FetchResponse]) -> None:
        self.responses = responses
        self.calls: List[Tuple[str, Mapping[str, str]]] = []

    def __call__(self, url: str, headers: Mapping[str, str], timeout: float) -> FetchResponse:
        self.calls.append((url, dict(headers)))
        response = self.responses.get(url)
        if isinstance(response, Exception):
            raise response
        return response or FetchResponse(404, "Not Found")


def test_default_branch_reads_api_payload() -> None:
    fetcher = RecordingFetcher(
        {"https://api.github.com/repos/acme/shop": FetchResponse(200, "OK", b'{"default_branch": "develop"}')}
    )
    client = GitHubClient(token="secret", user_agent="authmem-test", fetcher=fetcher)

    assert client.default_branch(REPO) == "develop"
    _, headers = fetcher.calls[0]
    assert headers["Authorization"] == "token secret"
    assert headers["User-Agent"] == "authmem-test"
    assert headers["Accept"] == "application/vnd.github.v3+json"


@pytest.mark.parametrize(
    "response",
    [
        FetchResponse(404, "Not Found"),
        FetchResponse(200, "OK", b"<html>"),
        FetchResponse(200, "OK", b'{"default_branch": ""}'),
        OSError("network down"),
    ],
)
def test_default_branch_returns_none_on_failure(response: object) -> None:
    fetcher = RecordingFetcher({"https://api.github.com/repos/acme/shop": response})  # type: ignore[dict-item]

    assert GitHubClient(fetcher=fetcher).default_branch(REPO) is None


def test_requests_without_token_omit_authorization() -> None:
    fetcher = RecordingFetcher({})
    GitHubClient(fetcher=fetcher).default_branch(REPO)

    assert "Authorization" not in fetcher.calls[0][1]


def test_archive_urls_are_ordered_per_branch() -> None:
    assert GitHubClient.archive_urls(REPO, "main") == [
        "https://github.com/acme/shop/archive/main.zip",
        "https://api.github.com/repos/acme/shop/zipball/main",
        "https://github.com/acme/shop/archive/refs/heads/main.zip",
    ]


def test_download_returns_zip_bytes() -> None:
    payload = build_zip({"README.md": "# shop"})
    url = "https://github.com/acme/shop/archive/main.zip"
    client = GitHubClient(fetcher=RecordingFetcher({url: FetchResponse(200, "OK", payload)}))

    assert client.download(url) == payload


@pytest.mark.parametrize(
    "response, message",
    [
        (FetchResponse(404, "Not Found"), "404 Not Found"),
        (FetchResponse(200, "OK", b""), "Downloaded file is empty"),
        (FetchResponse(200, "OK", b"<html>login</html>"), "Response is not a zip file"),
    ],
)
def test_download_failures_describe_the_candidate(response: FetchResponse, message: str) -> None:
    url = "https://github.com/acme/shop/archive/main.zip"
    client = GitHubClient(fetcher=RecordingFetcher({url: response}))

    with pytest.raises(DownloadError, match=message):
        client.download(url)
