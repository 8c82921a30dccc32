"""Tests for ZIP extraction and wrapper-directory hoisting."""

from __future__ import annotations

import io
import zipfile
from pathlib import Path

import pytest

from authmem.acquisition import InvalidInputError
from authmem.acquisition.archive import extract_archive, hoist_single_directory, is_zip_payload
from tests._fixtures.repo_builder import build_zip


def test_is_zip_payload_checks_magic_bytes() -> None:
    assert is_zip_payload(build_zip({"a.ts": "x"}))
    assert not is_zip_payload(b"<html>")
    assert not is_zip_payload(b"")


def test_extract_archive_writes_members_and_drops_macos_metadata(tmp_path: Path) -> None:
    data = build_zip({"src/app.ts": "export {}\n", "__MACOSX/._app.ts": "junk"})

    count = extract_archive(data, tmp_path)

    assert count == 2
    assert (tmp_path / "src" / "app.ts").read_text(encoding="utf-8") == "export {}\n"
    assert not (tmp_path / "__MACOSX").exists()


def test_extract_archive_rejects_non_zip_and_corrupt_payloads(tmp_path: Path) -> None:
    with pytest.raises(InvalidInputError, match="not a ZIP"):
        extract_archive(b"plain text", tmp_path)
    with pytest.raises(InvalidInputError, match="Corrupt ZIP"):
        extract_archive(b"PK\x03\x04 truncated", tmp_path)


def test_extract_archive_rejects_members_outside_destination(tmp_path: Path) -> None:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("../escape.txt", "nope")
    destination = tmp_path / "tree"
    destination.mkdir()

    with pytest.raises(InvalidInputError, match="escapes"):
        extract_archive(buffer.getvalue(), destination)
    assert not (tmp_path / "escape.txt").exists()


def test_hoist_single_directory_moves_wrapper_contents_up(tmp_path: Path) -> None:
    extract_archive(build_zip({"lib/auth.ts": "x", "shop-main/keep.ts": "y"}, prefix="shop-main/"), tmp_path)

    hoisted = hoist_single_directory(tmp_path)

    assert hoisted == "shop-main"
    assert sorted(path.name for path in tmp_path.iterdir()) == ["lib", "shop-main"]
    assert (tmp_path / "lib" / "auth.ts").exists()
    assert (tmp_path / "shop-main" / "keep.ts").exists()


def test_hoist_leaves_multi_entry_roots_alone(tmp_path: Path) -> None:
    extract_archive(build_zip({"a/x.ts": "x", "b.ts": "y"}), tmp_path)

    assert hoist_single_directory(tmp_path) is None
    assert (tmp_path / "a" / "x.ts").exists()
