"""Session storage strategy detection."""

from __future__ import annotations

import re
from typing import Optional, Tuple

from ..corpus import SourceCorpus
from ..logging import get_logger
from ..models import (
    SessionLifetime,
    SessionStorage,
    SessionStorageConfig,
    SessionStorageImplementation,
)
from .base import (
    COOKIE_SAME_SITE,
    SAMPLE_CHARS,
    SHORT_SAMPLE_CHARS,
    Extractor,
    first_group,
    parse_max_age,
    parse_secure,
)
from .text import body_after, callback_pattern, excerpt

logger = get_logger("extractors.session_storage")

AUTH_CONFIG_GLOBS: Tuple[str, ...] = (
    "**/*next-auth*.{ts,tsx,js}",
    "**/*nextauth*.{ts,tsx,js}",
    "**/[...nextauth]/**/*.{ts,tsx,js}",
)
SCRIPT_GLOBS: Tuple[str, ...] = ("**/*.{ts,tsx,js}",)

DEFAULT_ACCESS_LIFETIME = 3600
DEFAULT_SESSION_LIFETIME = 86400

_STRATEGY_FIELD = re.compile(r"strategy:\s*[\"'](jwt|database)[\"']")
_COOKIE_MARKERS = ("Set-Cookie", "cookies.set", "serialize")
_STORAGE_KEYWORDS = ("token", "session", "user")

# First match wins.
_DATABASE_ADAPTERS: Tuple[Tuple[str, str], ...] = (
    ("MongoDBAdapter", "mongodb"),
    ("FirestoreAdapter", "firestore"),
    ("PrismaAdapter", "prisma"),
)


class SessionStorageExtractor(Extractor):
    """Resolves the session strategy: provider config, cookies, local storage, default."""

    name = "session_storage"

    def extract(self, corpus: SourceCorpus) -> SessionStorage:
        for path in corpus.list_files(AUTH_CONFIG_GLOBS):
            content = corpus.read(path)
            strategy = first_group(_STRATEGY_FIELD, content)
            if strategy == "jwt":
                return _jwt_strategy(content, path)
            if strategy == "database":
                return _database_strategy(content, path)

        cookie_files = corpus.filter_containing(SCRIPT_GLOBS, _COOKIE_MARKERS)
        if cookie_files:
            path = cookie_files[0]
            return _cookie_storage(corpus.read(path), path)

        for path in corpus.filter_containing(SCRIPT_GLOBS, ("localStorage.setItem",)):
            content = corpus.read(path)
            if any(keyword in content for keyword in _STORAGE_KEYWORDS):
                return _local_storage(content, path)

        logger.debug("No session storage pattern found; defaulting to jwt")
        return SessionStorage(
            strategy="jwt",
            configuration=SessionStorageConfig(
                type="jwt", http_only=True, secure=True, same_site="lax"
            ),
            lifetime=SessionLifetime(
                access_token=DEFAULT_ACCESS_LIFETIME, session=DEFAULT_SESSION_LIFETIME
            ),
            implementation=SessionStorageImplementation(storage_location="httpOnly cookie"),
        )


def _cookie_flags(content: str) -> Tuple[bool, Optional[bool], str]:
    http_only = "httpOnly: true" in content
    secure = parse_secure(content, True)
    same_site = first_group(COOKIE_SAME_SITE, content) or "lax"
    return http_only, secure, same_site


def _session_template(content: str) -> str:
    body = body_after(callback_pattern("session"), content)
    if body:
        return body
    return excerpt(content, SHORT_SAMPLE_CHARS)


def _jwt_strategy(content: str, path: str) -> SessionStorage:
    max_age = parse_max_age(content) or DEFAULT_ACCESS_LIFETIME
    http_only, secure, same_site = _cookie_flags(content)
    return SessionStorage(
        strategy="jwt",
        configuration=SessionStorageConfig(
            type="jwt", http_only=http_only, secure=secure, same_site=same_site
        ),
        lifetime=SessionLifetime(access_token=max_age, session=max_age * 24),
        implementation=SessionStorageImplementation(
            file_path=path,
            template=_session_template(content),
            storage_location="httpOnly cookie",
        ),
    )


def _database_strategy(content: str, path: str) -> SessionStorage:
    adapter = next(
        (label for marker, label in _DATABASE_ADAPTERS if marker in content), "unknown"
    )
    return SessionStorage(
        strategy="database",
        configuration=SessionStorageConfig(type="database", adapter=adapter),
        lifetime=SessionLifetime(
            access_token=DEFAULT_ACCESS_LIFETIME, session=DEFAULT_SESSION_LIFETIME
        ),
        implementation=SessionStorageImplementation(
            file_path=path,
            template=_session_template(content),
            storage_location="database",
        ),
    )


def _cookie_storage(content: str, path: str) -> SessionStorage:
    max_age = parse_max_age(content) or DEFAULT_ACCESS_LIFETIME
    http_only, secure, same_site = _cookie_flags(content)
    return SessionStorage(
        strategy="cookie",
        configuration=SessionStorageConfig(
            type="cookie",
            http_only=http_only,
            secure=secure,
            same_site=same_site,
            max_age=max_age,
        ),
        lifetime=SessionLifetime(access_token=max_age, session=max_age),
        implementation=SessionStorageImplementation(
            file_path=path,
            template=excerpt(content, SAMPLE_CHARS),
            storage_location="httpOnly cookie",
        ),
    )


def _local_storage(content: str, path: str) -> SessionStorage:
    return SessionStorage(
        strategy="localStorage",
        configuration=SessionStorageConfig(type="localStorage"),
        lifetime=SessionLifetime(
            access_token=DEFAULT_ACCESS_LIFETIME, session=DEFAULT_SESSION_LIFETIME
        ),
        implementation=SessionStorageImplementation(
            file_path=path,
            template=excerpt(content, SAMPLE_CHARS),
            storage_location="localStorage",
        ),
    )


__all__ = ["AUTH_CONFIG_GLOBS", "SessionStorageExtractor"]
