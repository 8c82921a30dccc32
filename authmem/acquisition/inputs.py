"""Request input variants and GitHub URL parsing."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Union

from .errors import InvalidInputError

GITHUB_URL = re.compile(r"^https://github\.com/([\w\-\.]+)/([\w\-\.]+?)(?:\.git)?$")


@dataclass(frozen=True)
class GitHubRepository:
    owner: str
    name: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"


def parse_github_url(url: str) -> GitHubRepository:
    """Parse ``https://github.com/<owner>/<repo>`` (optionally ending in ``.git``)."""
    match = GITHUB_URL.match(url.strip())
    if match is None:
        raise InvalidInputError(
            "invalid-url",
            f"Invalid GitHub repository URL: {url!r}. Format: https://github.com/owner/repo",
        )
    return GitHubRepository(owner=match.group(1), name=match.group(2))


@dataclass(frozen=True)
class RemoteURL:
    """A public GitHub repository to clone or download."""

    url: str

    @property
    def repository(self) -> GitHubRepository:
        return parse_github_url(self.url)

    @property
    def description(self) -> str:
        return self.url.strip()

    @property
    def project_name(self) -> str:
        return self.repository.name


@dataclass(frozen=True)
class ArchiveBytes:
    """Raw ZIP bytes supplied by the caller (for example an upload)."""

    data: bytes = field(repr=False)
    filename: str = "upload.zip"

    @property
    def description(self) -> str:
        return self.filename

    @property
    def project_name(self) -> str:
        return PurePosixPath(self.filename).stem or "unknown"


@dataclass(frozen=True)
class LocalDirectory:
    """An existing directory read in place; never deleted."""

    path: Path

    @property
    def description(self) -> str:
        return str(self.path)

    @property
    def project_name(self) -> str:
        return Path(self.path).resolve().name or "unknown"


SourceInput = Union[RemoteURL, ArchiveBytes, LocalDirectory]


def resolve_source(source: str) -> SourceInput:
    """Interpret a command-line SOURCE as a URL, a ``.zip`` file, or a directory."""
    if source.startswith(("http://", "https://")):
        return RemoteURL(source)
    path = Path(source).expanduser()
    if path.is_dir():
        return LocalDirectory(path)
    if path.is_file():
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise InvalidInputError("invalid-archive", f"Unable to read {path}: {exc}") from exc
        return ArchiveBytes(data=data, filename=path.name)
    raise InvalidInputError("invalid-source", f"Source not found: {source}")


__all__ = [
    "ArchiveBytes",
    "GITHUB_URL",
    "GitHubRepository",
    "LocalDirectory",
    "RemoteURL",
    "SourceInput",
    "parse_github_url",
    "resolve_source",
]
