"""Base classes for pattern extractors."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Any, Optional

from ..corpus import SourceCorpus

# Lengths of the excerpts embedded as implementation samples.
SAMPLE_CHARS = 1000
SHORT_SAMPLE_CHARS = 500

COOKIE_SAME_SITE = re.compile(r"sameSite:\s*[\"'](\w+)[\"']")
COOKIE_SECURE = re.compile(r"secure:\s*(true|false)")
MAX_AGE = re.compile(r"maxAge:\s*(\d+)")
ROLE_EQUALITY = re.compile(r"role\s*[=!]==\s*[\"'](\w+)[\"']")
PERMISSION_EQUALITY = re.compile(r"permission\s*[=!]==\s*[\"'](\w+)[\"']")


class Extractor(ABC):
    """Contract for extractors that derive one auth category from a corpus.

    Implementations only read from the corpus and never depend on another
    extractor's output, so they can run in any order.
    """

    name: str = ""

    @abstractmethod
    def extract(self, corpus: SourceCorpus) -> Any:
        """Return the category facts discovered in the corpus."""


def first_group(pattern: re.Pattern[str], content: str) -> Optional[str]:
    match = pattern.search(content)
    return match.group(1) if match else None


def parse_max_age(content: str) -> Optional[int]:
    value = first_group(MAX_AGE, content)
    return int(value) if value is not None else None


def parse_secure(content: str, default: Optional[bool]) -> Optional[bool]:
    if "secure:" not in content:
        return default
    return first_group(COOKIE_SECURE, content) == "true"


__all__ = [
    "COOKIE_SAME_SITE",
    "Extractor",
    "PERMISSION_EQUALITY",
    "ROLE_EQUALITY",
    "SAMPLE_CHARS",
    "SHORT_SAMPLE_CHARS",
    "first_group",
    "parse_max_age",
    "parse_secure",
]
