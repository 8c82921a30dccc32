"""ZIP payload validation, extraction, and top-level directory hoisting."""

from __future__ import annotations

import io
import shutil
import uuid
import zipfile
import zlib
from pathlib import Path
from typing import Optional

from ..logging import get_logger
from .errors import InvalidInputError

logger = get_logger("acquisition.archive")

ZIP_MAGIC = b"PK"
_METADATA_DIRS = ("__MACOSX",)


def is_zip_payload(data: bytes) -> bool:
    return data[:2] == ZIP_MAGIC


def extract_archive(data: bytes, destination: Path) -> int:
    """Extract ZIP bytes into ``destination`` and return the member count."""
    if not is_zip_payload(data):
        raise InvalidInputError("invalid-archive", "Archive is not a ZIP file")
    root = destination.resolve()
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            members = archive.infolist()
            for member in members:
                target = (root / member.filename).resolve()
                if target != root and root not in target.parents:
                    raise InvalidInputError(
                        "invalid-archive", f"Archive member escapes the working tree: {member.filename}"
                    )
            archive.extractall(root)
    except (zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError) as exc:
        # Damaged or unsupported member data surfaces only while extracting.
        raise InvalidInputError("invalid-archive", f"Corrupt ZIP archive: {exc}") from exc

    for name in _METADATA_DIRS:
        metadata_dir = root / name
        if metadata_dir.is_dir():
            shutil.rmtree(metadata_dir)
    return len(members)


def hoist_single_directory(root: Path) -> Optional[str]:
    """Move the children of a lone top-level directory up into ``root``.

    GitHub archives wrap the repository in ``<repo>-<branch>/``. Returns the
    hoisted directory name, or None when the layout was left alone.
    """
    entries = [entry for entry in root.iterdir() if entry.name not in _METADATA_DIRS]
    if len(entries) != 1 or not entries[0].is_dir():
        return None

    wrapper = entries[0]
    # Rename first so a child sharing the wrapper's name cannot collide with it.
    staging = root / f".authmem-hoist-{uuid.uuid4().hex}"
    wrapper.rename(staging)
    for child in list(staging.iterdir()):
        child.rename(root / child.name)
    staging.rmdir()
    logger.debug("Hoisted %s into %s", wrapper.name, root)
    return wrapper.name


__all__ = ["ZIP_MAGIC", "extract_archive", "hoist_single_directory", "is_zip_payload"]
