"""Populate a working tree from a URL, an archive, or a local directory."""

from __future__ import annotations

import os
import subprocess
import tempfile
import time
from functools import partial
from typing import IO, Callable, List, Optional, Sequence

from ..config import AcquisitionConfig
from ..logging import get_logger
from ..recorder import NullRecorder, StepRecorder
from .archive import extract_archive, hoist_single_directory, is_zip_payload
from .errors import AcquisitionError, InvalidInputError
from .github import DownloadError, Fetcher, GitHubClient
from .inputs import ArchiveBytes, GitHubRepository, LocalDirectory, RemoteURL, SourceInput
from .workspace import WorkingTree

logger = get_logger("acquisition")

FALLBACK_BRANCHES = ("main", "master")

CloneRunner = Callable[[Sequence[str], float, int], None]
CLONE_POLL_INTERVAL = 0.05


class CloneError(RuntimeError):
    """git clone failed, timed out, or produced too much output."""


def _spooled_size(output: IO[bytes]) -> int:
    return os.fstat(output.fileno()).st_size


def subprocess_clone_runner(args: Sequence[str], timeout: float, max_output: int) -> None:
    """Run ``git clone`` with a deadline and an output cap, both enforced while it runs.

    Output is spooled to a temporary file which is polled until the process
    exits; the process is killed as soon as either limit is crossed.
    """
    env = os.environ.copy()
    env["GIT_TERMINAL_PROMPT"] = "0"
    with tempfile.TemporaryFile() as output:
        try:
            process = subprocess.Popen(
                list(args),
                stdin=subprocess.DEVNULL,
                stdout=output,
                stderr=subprocess.STDOUT,
                env=env,
            )
        except OSError as exc:
            raise CloneError(f"Unable to run git: {exc}") from exc

        deadline = time.monotonic() + timeout
        while process.poll() is None:
            if _spooled_size(output) > max_output:
                failure = f"git clone output exceeded {max_output} bytes"
            elif time.monotonic() >= deadline:
                failure = f"git clone timed out after {timeout:g}s"
            else:
                time.sleep(CLONE_POLL_INTERVAL)
                continue
            process.kill()
            process.wait()
            raise CloneError(failure)

        if _spooled_size(output) > max_output:
            raise CloneError(f"git clone output exceeded {max_output} bytes")
        if process.returncode != 0:
            output.seek(0)
            message = output.read().decode("utf-8", errors="replace").strip()
            raise CloneError(f"git clone exited with status {process.returncode}: {message}")


class AcquisitionController:
    """Turns a request input into a populated :class:`WorkingTree`.

    Remote repositories are cloned shallowly first; when that fails the
    controller discovers the default branch and walks every branch and archive
    URL format in order, stopping at the first payload that is a ZIP.
    """

    def __init__(
        self,
        config: Optional[AcquisitionConfig] = None,
        *,
        recorder: Optional[StepRecorder] = None,
        fetcher: Optional[Fetcher] = None,
        clone_runner: Optional[CloneRunner] = None,
        github: Optional[GitHubClient] = None,
    ) -> None:
        self.config = config or AcquisitionConfig()
        self.recorder: StepRecorder = recorder or NullRecorder()
        self.github = github or GitHubClient(
            token=self.config.github_token,
            user_agent=self.config.user_agent,
            timeout=self.config.request_timeout,
            fetcher=fetcher,
        )
        self._clone = clone_runner or subprocess_clone_runner

    def acquire(self, source: SourceInput) -> WorkingTree:
        """Return a populated tree; an owned tree is removed again if population fails."""
        if isinstance(source, LocalDirectory):
            return self._borrow(source)

        populate: Callable[[WorkingTree], None]
        if isinstance(source, RemoteURL):
            repo = self._validate_url(source)
            populate = partial(self._acquire_remote, url=source.description, repo=repo)
        elif isinstance(source, ArchiveBytes):
            self._validate_archive(source)
            populate = partial(self._extract_upload, source=source)
        else:
            raise TypeError(f"Unsupported source input: {type(source).__name__}")

        self.recorder.record("temp_directory", "in_progress", "Creating temporary directory...")
        try:
            tree = WorkingTree.create()
        except AcquisitionError as exc:
            self.recorder.record("temp_directory", "failed", exc.detail)
            raise
        self.recorder.record("temp_directory", "completed", f"Temporary directory created: {tree.root}")

        try:
            populate(tree)
        except BaseException:
            tree.cleanup()
            raise
        return tree

    # ------------------------------------------------------------------
    # Validation

    def _borrow(self, source: LocalDirectory) -> WorkingTree:
        if not source.path.is_dir():
            raise InvalidInputError("invalid-directory", f"Directory not found: {source.path}")
        logger.info("Reading local directory %s", source.path)
        return WorkingTree.borrow(source.path)

    def _validate_url(self, source: RemoteURL) -> GitHubRepository:
        try:
            repo = source.repository
        except InvalidInputError as exc:
            self.recorder.record("url_validation", "failed", exc.detail)
            raise
        self.recorder.record(
            "url_validation", "completed", f"Repository URL validated: {source.description}"
        )
        return repo

    def _validate_archive(self, source: ArchiveBytes) -> None:
        size_mb = len(source.data) / 1024 / 1024
        if not is_zip_payload(source.data):
            self.recorder.record("archive_received", "failed", "Uploaded file is not a ZIP archive")
            raise InvalidInputError("invalid-archive", f"{source.filename} is not a ZIP archive")
        self.recorder.record(
            "archive_received", "completed", f"File received: {source.filename} ({size_mb:.2f} MB)"
        )

    # ------------------------------------------------------------------
    # Population strategies

    def _extract_upload(self, tree: WorkingTree, source: ArchiveBytes) -> None:
        self.recorder.record("extract_zip", "in_progress", "Extracting uploaded zip file...")
        try:
            extract_archive(source.data, tree.root)
        except InvalidInputError as exc:
            self.recorder.record("extract_zip", "failed", exc.detail)
            raise
        hoist_single_directory(tree.root)
        self.recorder.record("extract_zip", "completed", "Zip file extracted successfully")
        logger.info("Extracted %s", source.filename)

    def _acquire_remote(self, tree: WorkingTree, url: str, repo: GitHubRepository) -> None:
        self.recorder.record("git_clone", "in_progress", f"Attempting to clone repository: {url}")
        args = [self.config.git_executable, "clone", "--depth", "1", url, str(tree.root)]
        try:
            self._clone(args, self.config.clone_timeout, self.config.max_clone_output)
        except CloneError as exc:
            logger.info("Clone of %s failed, falling back to archive download", repo.slug)
            logger.debug("Clone failure: %s", exc)
            self.recorder.record("git_clone", "failed", "Git clone failed, trying zip download...")
            tree.reset()
        else:
            self.recorder.record("git_clone", "completed", "Repository cloned successfully via git")
            logger.info("Cloned %s", repo.slug)
            return

        branches = self._branches_to_try(repo)
        self._download(tree, repo, branches)

    def _branches_to_try(self, repo: GitHubRepository) -> List[str]:
        self.recorder.record(
            "fetch_branch", "in_progress", "Fetching default branch from GitHub API..."
        )
        default = self.github.default_branch(repo)
        if default:
            self.recorder.record("fetch_branch", "completed", f"Default branch detected: {default}")
            logger.info("Default branch for %s is %s", repo.slug, default)
        else:
            default = FALLBACK_BRANCHES[0]
            self.recorder.record(
                "fetch_branch", "failed", 'Could not fetch branch info, using "main" as fallback'
            )
        return list(dict.fromkeys([default, *FALLBACK_BRANCHES]))

    def _download(self, tree: WorkingTree, repo: GitHubRepository, branches: List[str]) -> str:
        self.recorder.record(
            "download_repo", "in_progress", "Attempting to download repository as zip..."
        )
        errors: List[str] = []
        for branch in branches:
            self.recorder.record("download_repo", "in_progress", f"Trying branch: {branch}")
            for url in self.github.archive_urls(repo, branch):
                try:
                    payload = self.github.download(url)
                    self.recorder.record(
                        "extract_zip",
                        "in_progress",
                        f"Extracting downloaded zip file from branch: {branch}",
                    )
                    extract_archive(payload, tree.root)
                except (DownloadError, InvalidInputError) as exc:
                    detail = exc.detail if isinstance(exc, InvalidInputError) else str(exc)
                    errors.append(f"Branch {branch} ({url}): {detail}")
                    logger.debug("Archive candidate %s failed: %s", url, detail)
                    tree.reset()
                    continue

                hoist_single_directory(tree.root)
                self.recorder.record(
                    "download_repo",
                    "completed",
                    f"Successfully downloaded and extracted branch {branch}",
                )
                self.recorder.record("extract_zip", "completed", "Zip file extracted successfully")
                logger.info("Downloaded %s at branch %s", repo.slug, branch)
                return branch

        message = (
            f"Failed to download repository. Tried branches: {', '.join(branches)}. "
            f"Details: {'; '.join(errors)}"
        )
        self.recorder.record("download_repo", "failed", message)
        raise AcquisitionError("download-exhausted", message)


__all__ = [
    "AcquisitionController",
    "CloneError",
    "CloneRunner",
    "FALLBACK_BRANCHES",
    "subprocess_clone_runner",
]
