"""Repository acquisition: validate the input and populate a working tree."""

from __future__ import annotations

from .controller import AcquisitionController, CloneError, subprocess_clone_runner
from .errors import AcquisitionError, InvalidInputError, WorkspaceError
from .github import DownloadError, FetchResponse, GitHubClient
from .inputs import (
    ArchiveBytes,
    GitHubRepository,
    LocalDirectory,
    RemoteURL,
    SourceInput,
    parse_github_url,
    resolve_source,
)
from .workspace import WorkingTree

__all__ = [
    "AcquisitionController",
    "AcquisitionError",
    "ArchiveBytes",
    "CloneError",
    "DownloadError",
    "FetchResponse",
    "GitHubClient",
    "GitHubRepository",
    "InvalidInputError",
    "LocalDirectory",
    "RemoteURL",
    "SourceInput",
    "WorkingTree",
    "WorkspaceError",
    "parse_github_url",
    "resolve_source",
    "subprocess_clone_runner",
]
