"""Temporary working tree owned by a single extraction request."""

from __future__ import annotations

import shutil
import tempfile
from pathlib import Path
from types import TracebackType
from typing import Optional, Type

from ..logging import get_logger
from .errors import WorkspaceError

logger = get_logger("acquisition.workspace")

TEMP_PREFIX = "authmem-"


class WorkingTree:
    """Directory backing one request.

    Owned trees are created under the system temp directory and deleted
    recursively by :meth:`cleanup`. Borrowed trees wrap an existing directory
    and are left untouched.
    """

    def __init__(self, root: Path, *, owned: bool = True) -> None:
        self._root = root
        self.owned = owned
        self._removed = False

    @classmethod
    def create(cls, *, base_dir: Optional[Path] = None) -> "WorkingTree":
        try:
            path = tempfile.mkdtemp(prefix=TEMP_PREFIX, dir=str(base_dir) if base_dir else None)
        except OSError as exc:
            raise WorkspaceError(f"Failed to create temporary directory: {exc}") from exc
        logger.debug("Created working tree %s", path)
        return cls(Path(path), owned=True)

    @classmethod
    def borrow(cls, path: Path) -> "WorkingTree":
        return cls(Path(path).expanduser().resolve(), owned=False)

    @property
    def root(self) -> Path:
        return self._root

    def reset(self) -> None:
        """Empty an owned tree so another acquisition strategy can reuse it."""
        if not self.owned:
            return
        for child in list(self._root.iterdir()):
            if child.is_dir() and not child.is_symlink():
                shutil.rmtree(child)
            else:
                child.unlink()

    def cleanup(self) -> None:
        """Delete an owned tree. Failures are logged and never raised."""
        if not self.owned or self._removed:
            return
        self._removed = True
        try:
            shutil.rmtree(self._root)
        except FileNotFoundError:
            return
        except OSError as exc:
            logger.warning("Failed to remove working tree %s: %s", self._root, exc)

    def __enter__(self) -> "WorkingTree":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        self.cleanup()


__all__ = ["TEMP_PREFIX", "WorkingTree"]
