"""Tests for authmem.corpus."""

from __future__ import annotations

from pathlib import Path

import pytest

from authmem.corpus import SourceCorpus, glob_match
from tests._fixtures.repo_builder import RepoBuilder


def test_glob_match_supports_double_star_and_braces() -> None:
    assert glob_match("app/api/orders/route.ts", "**/api/**/*.{ts,tsx,js}")
    assert glob_match("api/route.js", "**/api/**/*.{ts,tsx,js}")
    assert not glob_match("app/api/orders/route.py", "**/api/**/*.{ts,tsx,js}")
    assert glob_match("middleware.ts", "**/*middleware*.{ts,tsx,js}")


def test_glob_match_treats_brackets_literally() -> None:
    pattern = "**/[...nextauth]/**/*.{ts,tsx,js}"
    assert glob_match("app/api/auth/[...nextauth]/route.ts", pattern)
    assert not glob_match("app/api/auth/n/route.ts", pattern)


def test_corpus_enumerates_sorted_relative_paths(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "b.ts": "export const b = 1\n",
            "a/z.tsx": "export default function Z() {}\n",
            "a/a.js": "module.exports = {}\n",
        }
    )
    corpus = repo_builder.corpus()

    assert corpus.paths == ["a/a.js", "a/z.tsx", "b.ts"]
    assert corpus.list_files("**/*.tsx") == ["a/z.tsx"]


def test_corpus_skips_vendor_dirs_gitignore_and_config_exclusions(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            ".gitignore": "dist/\n*.log\n",
            "node_modules/pkg/index.js": "auth\n",
            ".next/server/page.js": "auth\n",
            "dist/bundle.js": "auth\n",
            "debug.log": "auth\n",
            "sandbox/demo.ts": "auth\n",
            "src/index.ts": "auth\n",
        }
    )
    corpus = repo_builder.corpus(exclude_paths=["sandbox/"])

    assert corpus.paths == [".gitignore", "src/index.ts"]


def test_corpus_skips_files_above_size_limit(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"small.ts": "x\n", "large.ts": "x" * 2048})
    corpus = repo_builder.corpus(max_file_bytes=1024)

    assert corpus.paths == ["small.ts"]


def test_corpus_read_and_prefilter(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "lib/session.ts": "const token = cookies.get('token')\n",
            "lib/other.ts": "export const x = 1\n",
        }
    )
    corpus = repo_builder.corpus()

    assert corpus.exists("lib/session.ts")
    assert not corpus.exists("lib/missing.ts")
    assert corpus.contains("lib/session.ts", "cookies.get")
    assert corpus.filter_containing("**/*.ts", ["token"]) == ["lib/session.ts"]


def test_corpus_reads_undecodable_bytes_with_replacement(repo_builder: RepoBuilder) -> None:
    target = repo_builder.path() / "bin.ts"
    target.write_bytes(b"const a = '\xff\xfe'\n")
    corpus = repo_builder.corpus()

    assert "�" in corpus.read("bin.ts")


def test_corpus_rejects_missing_directory(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        SourceCorpus(tmp_path / "missing")


def test_corpus_skips_symlinked_files(
    repo_builder: RepoBuilder, tmp_path_factory: pytest.TempPathFactory
) -> None:
    outside = tmp_path_factory.mktemp("host") / "host-secret.txt"
    outside.write_text("HOST-SECRET jwt\n", encoding="utf-8")
    repo_builder.write({"app/api/real/route.ts": "const jwt = verify(token)\n"})
    link = repo_builder.path() / "app" / "api" / "x" / "route.ts"
    link.parent.mkdir(parents=True)
    link.symlink_to(outside)
    corpus = repo_builder.corpus()

    assert corpus.paths == ["app/api/real/route.ts"]
    assert corpus.read("app/api/x/route.ts") == ""


def test_corpus_does_not_read_through_symlinked_directories(
    repo_builder: RepoBuilder, tmp_path_factory: pytest.TempPathFactory
) -> None:
    outside = tmp_path_factory.mktemp("host")
    (outside / "auth.ts").write_text("HOST-SECRET jwt\n", encoding="utf-8")
    repo_builder.write({"package.json": "{}"})
    (repo_builder.path() / "lib").symlink_to(outside, target_is_directory=True)
    corpus = repo_builder.corpus()

    assert corpus.paths == ["package.json"]
    assert corpus.read("lib/auth.ts") == ""
