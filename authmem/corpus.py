"""Read-only view over the files of an acquired working tree."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from fnmatch import fnmatchcase
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Sequence

from .logging import get_logger

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    ".next",
    ".turbo",
    ".vercel",
    "node_modules",
    "__pycache__",
    ".idea",
    ".vscode",
}

_EXCLUDED_FILES = {
    ".DS_Store",
    "Thumbs.db",
}

logger = get_logger("corpus")


@dataclass
class IgnoreRule:
    """Represents an ignore rule parsed from .gitignore or .authmem.yml."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False

        if self.anchored or self.has_slash:
            if fnmatchcase(rel_path, self.pattern):
                return True
            if self.directory_only and rel_path.startswith(f"{self.pattern}/"):
                return True
            return False

        for part in rel_path.split("/"):
            if fnmatchcase(part, self.pattern):
                return True
        return False


def build_ignore_rule(pattern: str, negate: bool = False) -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern:
        return None

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern[:-1]

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]

    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash="/" in pattern,
    )


def _parse_gitignore(path: Path) -> List[IgnoreRule]:
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return []

    rules: List[IgnoreRule] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        negate = line.startswith("!")
        if negate:
            line = line[1:]
        rule = build_ignore_rule(line, negate=negate)
        if rule is not None:
            rules.append(rule)
    return rules


def _should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


@lru_cache(maxsize=128)
def compile_glob(pattern: str) -> re.Pattern[str]:
    """Translate a glob with ``**`` and ``{a,b}`` support into a path regex.

    Square brackets are literal so dynamic route folders such as
    ``[...nextauth]`` can be matched verbatim.
    """
    out: List[str] = []
    index = 0
    length = len(pattern)
    while index < length:
        char = pattern[index]
        if pattern.startswith("**/", index):
            out.append("(?:.*/)?")
            index += 3
            continue
        if pattern.startswith("**", index):
            out.append(".*")
            index += 2
            continue
        if char == "*":
            out.append("[^/]*")
        elif char == "?":
            out.append("[^/]")
        elif char == "{":
            close = pattern.find("}", index)
            if close == -1:
                out.append(re.escape(char))
            else:
                options = pattern[index + 1 : close].split(",")
                out.append("(?:" + "|".join(re.escape(option) for option in options) + ")")
                index = close + 1
                continue
        else:
            out.append(re.escape(char))
        index += 1
    return re.compile("".join(out) + r"\Z")


def glob_match(path: str, pattern: str) -> bool:
    return compile_glob(pattern).match(path) is not None


class SourceCorpus:
    """Addressable, read-only view of the files below a working tree root.

    Enumeration is sorted by path so heuristics that rely on first-match-wins
    precedence see files in the same order on every run.
    """

    def __init__(
        self,
        root: Path | str,
        *,
        exclude_paths: Sequence[str] = (),
        max_file_bytes: int | None = None,
    ) -> None:
        root_path = Path(root).expanduser().resolve()
        if not root_path.exists():
            raise FileNotFoundError(f"Repository path not found: {root}")
        if not root_path.is_dir():
            raise NotADirectoryError(f"Repository path is not a directory: {root}")
        self.root = root_path
        self._max_file_bytes = max_file_bytes
        self._rules = _parse_gitignore(root_path / ".gitignore")
        for pattern in exclude_paths:
            rule = build_ignore_rule(pattern)
            if rule is not None:
                self._rules.append(rule)
        self._paths: List[str] | None = None
        self._path_set: set[str] | None = None
        self._cache: Dict[str, str] = {}

    @property
    def paths(self) -> List[str]:
        """All enumerable relative paths in stable sorted order."""
        if self._paths is None:
            self._paths = sorted(self._iter_files())
            logger.debug("Corpus at %s holds %d files", self.root, len(self._paths))
        return self._paths

    def list_files(self, patterns: Iterable[str] | str) -> List[str]:
        """Return relative paths matching any of the glob patterns, in corpus order."""
        if isinstance(patterns, str):
            patterns = (patterns,)
        compiled = [compile_glob(pattern) for pattern in patterns]
        return [path for path in self.paths if any(regex.match(path) for regex in compiled)]

    def exists(self, rel_path: str) -> bool:
        if self._path_set is None:
            self._path_set = set(self.paths)
        return rel_path in self._path_set

    def read(self, rel_path: str) -> str:
        cached = self._cache.get(rel_path)
        if cached is not None:
            return cached
        target = self.root / rel_path
        if target.is_symlink() or not target.resolve().is_relative_to(self.root):
            logger.debug("Not following symlink %s", rel_path)
            content = ""
        else:
            try:
                content = target.read_text(encoding="utf-8", errors="replace")
            except OSError as exc:
                logger.debug("Unable to read %s: %s", rel_path, exc)
                content = ""
        self._cache[rel_path] = content
        return content

    def contains(self, rel_path: str, needle: str) -> bool:
        return needle in self.read(rel_path)

    def contains_any(self, rel_path: str, needles: Iterable[str]) -> bool:
        content = self.read(rel_path)
        return any(needle in content for needle in needles)

    def filter_containing(
        self, patterns: Iterable[str] | str, needles: Iterable[str]
    ) -> List[str]:
        """Prefilter: files matching the globs that mention any of the needles."""
        needles = tuple(needles)
        return [path for path in self.list_files(patterns) if self.contains_any(path, needles)]

    def _iter_files(self) -> Iterator[str]:
        for dirpath, dirnames, filenames in os.walk(self.root):
            current_dir = Path(dirpath)
            rel_dir = current_dir.relative_to(self.root).as_posix() if current_dir != self.root else ""

            kept_dirs = []
            for name in dirnames:
                if name in _EXCLUDED_DIRS:
                    continue
                rel_path = f"{rel_dir}/{name}" if rel_dir else name
                if _should_ignore(rel_path, True, self._rules):
                    continue
                kept_dirs.append(name)
            dirnames[:] = kept_dirs

            for filename in filenames:
                if filename in _EXCLUDED_FILES:
                    continue
                rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
                if _should_ignore(rel_path, False, self._rules):
                    continue
                full_path = current_dir / filename
                # Symlinks may point outside the working tree.
                if full_path.is_symlink() or not full_path.is_file():
                    continue
                if self._max_file_bytes is not None:
                    try:
                        if full_path.stat().st_size > self._max_file_bytes:
                            continue
                    except OSError:
                        continue
                yield rel_path


__all__ = [
    "IgnoreRule",
    "SourceCorpus",
    "build_ignore_rule",
    "compile_glob",
    "glob_match",
]
