"""Access/refresh token lifetime and refresh strategy detection."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Optional, Tuple

from ..corpus import SourceCorpus
from ..logging import get_logger
from ..models import RefreshStrategy, TokenConfig, TokenStrategy, TokenStrategyImplementation
from .base import COOKIE_SAME_SITE, SAMPLE_CHARS, Extractor, first_group, parse_secure
from .text import body_after, excerpt

logger = get_logger("extractors.token_strategy")

SCRIPT_GLOBS: Tuple[str, ...] = ("**/*.{ts,tsx,js}",)

ACCESS_TOKEN_NAMES = ("access_token", "accessToken", "idToken", "id_token")
REFRESH_TOKEN_NAMES = ("refresh_token", "refreshToken")
TOKEN_KEYWORDS = ACCESS_TOKEN_NAMES + REFRESH_TOKEN_NAMES

DEFAULT_ACCESS_LIFETIME = 3600
DEFAULT_REFRESH_LIFETIME = 604800
DEFAULT_REFRESH_INTERVAL = 300000

_LIFETIME_FIELDS = ("maxAge", "expires_in", "expiresIn")

_INTERVAL_ARG = re.compile(r"setInterval[^,]*,\s*(\d+)")
_REFRESH_CALLABLE = re.compile(
    r"\b(?:function|const|let|var|async)\s+(?:function\s+)?\w*[rR]efresh\w*"
)
_REFRESH_FUNCTION = re.compile(r"(?:async\s+)?(?:function\s+)?refresh[^{]*\{")
_EFFECT_HOOK = re.compile(r"useEffect\s*\(\s*(?:async\s*)?\([^)]*\)\s*=>\s*\{")


@lru_cache(maxsize=32)
def _lifetime_pattern(token_name: str, field_name: str) -> re.Pattern[str]:
    # The annotation must sit in the same object literal as the token name.
    return re.compile(rf"{re.escape(token_name)}[^}}]*{field_name}[^:]*:\s*(\d+)", re.DOTALL)


def token_lifetime(content: str, names: Tuple[str, ...]) -> Optional[int]:
    for token_name in names:
        for field_name in _LIFETIME_FIELDS:
            value = first_group(_lifetime_pattern(token_name, field_name), content)
            if value is not None:
                return int(value)
    return None


def refresh_logic(content: str) -> Optional[str]:
    body = body_after(_REFRESH_FUNCTION, content)
    if body:
        return body
    effect = body_after(_EFFECT_HOOK, content)
    if effect and "refresh" in effect:
        return effect
    return None


def classify_refresh(content: str, path: str) -> Optional[RefreshStrategy]:
    """Classify how a file refreshes tokens; None when no rule applies."""
    if "refresh" not in content:
        return None
    logic = refresh_logic(content) or ""
    if "setInterval" in content or "useEffect" in content:
        interval = first_group(_INTERVAL_ARG, content)
        return RefreshStrategy(
            type="automatic",
            trigger="interval",
            interval=int(interval) if interval else DEFAULT_REFRESH_INTERVAL,
            implementation=logic,
            file_path=path,
        )
    if "expires" in content:
        return RefreshStrategy(
            type="automatic", trigger="before-expiry", implementation=logic, file_path=path
        )
    if _REFRESH_CALLABLE.search(content):
        return RefreshStrategy(
            type="manual", trigger="on-demand", implementation=logic, file_path=path
        )
    return None


class TokenStrategyExtractor(Extractor):
    """Derives token lifetimes, cookie flags, and the refresh strategy."""

    name = "token_strategy"

    def extract(self, corpus: SourceCorpus) -> TokenStrategy:
        access = TokenConfig(lifetime=DEFAULT_ACCESS_LIFETIME, storage="httpOnly")
        access_found = False
        refresh: Optional[TokenConfig] = None
        refresh_lifetime_found = False
        strategy: Optional[RefreshStrategy] = None
        implementation = TokenStrategyImplementation()

        for path in corpus.filter_containing(SCRIPT_GLOBS, TOKEN_KEYWORDS):
            content = corpus.read(path)

            if not access_found:
                lifetime = token_lifetime(content, ACCESS_TOKEN_NAMES)
                if lifetime is not None:
                    access.lifetime = lifetime
                    access_found = True

            if any(name in content for name in REFRESH_TOKEN_NAMES):
                if refresh is None:
                    refresh = TokenConfig(lifetime=DEFAULT_REFRESH_LIFETIME, storage="httpOnly")
                if not refresh_lifetime_found:
                    lifetime = token_lifetime(content, REFRESH_TOKEN_NAMES)
                    if lifetime is not None:
                        refresh.lifetime = lifetime
                        refresh_lifetime_found = True
                if strategy is None:
                    strategy = classify_refresh(content, path)

            # Cookie flags are plain overwrites: the last file that sets one wins.
            if "httpOnly" in content:
                access.http_only = True
                access.storage = "httpOnly"
            if "secure:" in content:
                access.secure = parse_secure(content, None)
            same_site = first_group(COOKIE_SAME_SITE, content)
            if same_site:
                access.same_site = same_site

            if not implementation.file_path or len(content) < len(implementation.template):
                implementation = TokenStrategyImplementation(
                    file_path=path,
                    template=excerpt(content, SAMPLE_CHARS),
                    refresh_logic=refresh_logic(content),
                )

        if refresh is None:
            refresh_strategy = RefreshStrategy(type="none", trigger="on-demand")
        elif strategy is None:
            refresh_strategy = RefreshStrategy(type="manual", trigger="on-demand")
        else:
            refresh_strategy = strategy

        logger.debug(
            "Token strategy: access=%ss refresh=%s (%s)",
            access.lifetime,
            refresh.lifetime if refresh else None,
            refresh_strategy.type,
        )
        return TokenStrategy(
            access_token=access,
            refresh_token=refresh,
            refresh_strategy=refresh_strategy,
            implementation=implementation,
        )


__all__ = ["TokenStrategyExtractor", "classify_refresh", "token_lifetime"]
