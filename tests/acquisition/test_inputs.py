"""Tests for request inputs and GitHub URL parsing."""

from __future__ import annotations

from pathlib import Path

import pytest

from authmem.acquisition import (
    ArchiveBytes,
    InvalidInputError,
    LocalDirectory,
    RemoteURL,
    parse_github_url,
    resolve_source,
)


@pytest.mark.parametrize(
    "url, owner, name",
    [
        ("https://github.com/acme/shop", "acme", "shop"),
        ("https://github.com/acme/shop.git", "acme", "shop"),
        ("  https://github.com/my-org/web.app  ", "my-org", "web.app"),
    ],
)
def test_parse_github_url_accepts_repository_urls(url: str, owner: str, name: str) -> None:
    repo = parse_github_url(url)

    assert (repo.owner, repo.name) == (owner, name)
    assert repo.slug == f"{owner}/{name}"


@pytest.mark.parametrize(
    "url",
    [
        "http://github.com/acme/shop",
        "https://gitlab.com/acme/shop",
        "https://github.com/acme",
        "https://github.com/acme/shop/tree/main",
        "not a url",
    ],
)
def test_parse_github_url_rejects_other_urls(url: str) -> None:
    with pytest.raises(InvalidInputError) as excinfo:
        parse_github_url(url)

    assert excinfo.value.stage == "invalid-url"
    assert "https://github.com/owner/repo" in excinfo.value.detail


def test_remote_url_project_name_is_repository_name() -> None:
    assert RemoteURL("https://github.com/acme/shop.git").project_name == "shop"


def test_archive_project_name_is_file_stem() -> None:
    assert ArchiveBytes(data=b"PK", filename="shop-main.zip").project_name == "shop-main"
    assert "PK" not in repr(ArchiveBytes(data=b"PK\x03\x04"))


def test_resolve_source_distinguishes_inputs(tmp_path: Path) -> None:
    archive = tmp_path / "shop.zip"
    archive.write_bytes(b"PK\x03\x04")

    assert isinstance(resolve_source("https://github.com/acme/shop"), RemoteURL)
    assert resolve_source(str(tmp_path)) == LocalDirectory(tmp_path)

    resolved = resolve_source(str(archive))
    assert isinstance(resolved, ArchiveBytes)
    assert resolved.filename == "shop.zip"
    assert resolved.data == b"PK\x03\x04"


def test_resolve_source_rejects_missing_paths(tmp_path: Path) -> None:
    with pytest.raises(InvalidInputError) as excinfo:
        resolve_source(str(tmp_path / "missing"))

    assert excinfo.value.stage == "invalid-source"
