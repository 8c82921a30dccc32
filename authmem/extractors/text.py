"""Text scanning helpers shared by the pattern extractors."""

from __future__ import annotations

import re
from typing import List, Optional, Tuple


def find_block(content: str, start: int) -> Optional[Tuple[int, int]]:
    """Return ``(open, close)`` indices of the first balanced ``{...}`` at or after ``start``.

    Scans with an explicit depth counter so nested blocks are handled; returns
    None when no opening brace exists or the block never closes.
    """
    depth = 0
    opened = -1
    for index in range(start, len(content)):
        char = content[index]
        if char == "{":
            if depth == 0:
                opened = index
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                return opened, index
    return None


def block_body(content: str, start: int) -> Optional[str]:
    """Return the trimmed text between the first balanced braces after ``start``."""
    span = find_block(content, start)
    if span is None:
        return None
    return content[span[0] + 1 : span[1]].strip()


def body_after(pattern: re.Pattern[str], content: str) -> Optional[str]:
    """Locate ``pattern`` and return the balanced body of the block it opens.

    The pattern should end right before (or on) the opening brace.
    """
    match = pattern.search(content)
    if match is None:
        return None
    return block_body(content, match.end() - 1 if match.group(0).endswith("{") else match.end())


def code_block(content: str, anchor: str) -> Optional[str]:
    """Return text from ``anchor`` up to and including the close of its first block."""
    start = content.find(anchor)
    if start == -1:
        return None
    span = find_block(content, start)
    if span is None:
        return None
    return content[start : span[1] + 1]


def callback_pattern(name: str) -> re.Pattern[str]:
    """Regex locating a named callback in object-literal or method shorthand form."""
    escaped = re.escape(name)
    return re.compile(
        rf"(?:\b{escaped}\s*:\s*(?:async\s*)?(?:function\s*)?\([^)]*\)\s*(?:=>\s*)?\{{"
        rf"|^[ \t]*(?:async\s+)?{escaped}\s*\([^)]*\)\s*\{{)",
        re.MULTILINE,
    )


def extract_callback(content: str, name: str) -> Optional[str]:
    return body_after(callback_pattern(name), content)


def split_literal_list(raw: str) -> List[str]:
    """Split the inside of an array literal into bare, unquoted names."""
    items: List[str] = []
    for part in raw.split(","):
        cleaned = part.strip().strip("\"'`").strip()
        if cleaned:
            items.append(cleaned)
    return items


def excerpt(content: str, limit: int) -> str:
    return content[:limit]


__all__ = [
    "block_body",
    "body_after",
    "callback_pattern",
    "code_block",
    "excerpt",
    "extract_callback",
    "find_block",
    "split_literal_list",
]
