"""Middleware, API guard, component guard, and protected route detection."""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Iterable, List, Optional, Tuple

from ..corpus import SourceCorpus
from ..logging import get_logger
from ..models import (
    APIGuard,
    ComponentGuard,
    MiddlewarePattern,
    PermissionChecks,
    ProtectedRoute,
)
from .base import (
    PERMISSION_EQUALITY,
    ROLE_EQUALITY,
    SHORT_SAMPLE_CHARS,
    Extractor,
    first_group,
)
from .text import body_after, excerpt

logger = get_logger("extractors.permission_checks")

MIDDLEWARE_GLOBS: Tuple[str, ...] = ("**/*middleware*.{ts,tsx,js}",)
API_ROUTE_GLOBS: Tuple[str, ...] = ("**/api/**/*.{ts,tsx,js}",)
COMPONENT_GLOBS: Tuple[str, ...] = ("**/*.{tsx,jsx}",)
PAGE_GLOBS: Tuple[str, ...] = ("**/app/**/page.{tsx,jsx}", "**/pages/**/*.{tsx,jsx}")

DEFAULT_COMPONENT_LIMIT = 20
DEFAULT_PAGE_LIMIT = 10

HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")

_MIDDLEWARE_CHECKS: Tuple[Tuple[str, str], ...] = (
    ("authMiddleware", "auth"),
    ("verifyToken", "token"),
    ("checkRole", "role"),
    ("checkPermission", "permission"),
)

API_AUTH_SIGNALS = (
    "authMiddleware",
    "requireAuth",
    "checkAuth",
    "verifyToken",
    "checkRole",
    "checkPermission",
    "unauthorized",
    "Unauthorized",
    "status: 401",
    "status:401",
    "statusCode: 401",
    "No authentication token",
    "Authentication required",
    "Bearer",
    "JWT",
    "jwt",
    "idToken",
    "id_token",
)
# Narrower set that marks a route as requiring plain authentication.
_AUTH_PROTECTION_SIGNALS = (
    "authMiddleware",
    "verifyToken",
    "No authentication token",
    "Authentication required",
    "status: 401",
)
_COOKIE_TOKEN_KEYWORDS = ("token", "Token", "idToken", "access_token")

_CLIENT_SIGNALS = ("useAuth", "useSession", "isAuthenticated", "requireAuth", "checkAuth")
_PAGE_SIGNALS = ("useAuth", "isAuthenticated")
_LOGIN_WORDS = ("signin", "login")

_MIDDLEWARE_ANCHOR = re.compile(
    r"(?:export\s+)?(?:async\s+)?(?:function\s+)?middleware\s*\([^)]*\)\s*\{"
)
_GUARD_BINDING = re.compile(
    r"(?:const|await)\s+(\w+)\s*=\s*(?:await\s+)?(\w+Middleware|authMiddleware|verifyToken)"
)
_COMPONENT_NAME = re.compile(r"(?:export\s+)?(?:default\s+)?(?:function|const)\s+(\w+)")
_DEFAULT_EXPORT_NAME = re.compile(r"export\s+default\s+(?:async\s+)?function\s+(\w+)")


def _method_pattern(method: str) -> re.Pattern[str]:
    return re.compile(rf"export\s+async\s+function\s+{method}\b")


_METHOD_PATTERNS = tuple((method, _method_pattern(method)) for method in HTTP_METHODS)


# ---------------------------------------------------------------------------
# Signals and classification


def _cookie_token_read(content: str) -> bool:
    return "cookies.get" in content and any(word in content for word in _COOKIE_TOKEN_KEYWORDS)


def _login_redirect(content: str) -> bool:
    return "router" in content and "push" in content and any(
        word in content for word in _LOGIN_WORDS
    )


def has_api_auth_signal(content: str) -> bool:
    if any(signal in content for signal in API_AUTH_SIGNALS):
        return True
    if _cookie_token_read(content):
        return True
    return bool(ROLE_EQUALITY.search(content) or PERMISSION_EQUALITY.search(content))


def has_client_signal(content: str) -> bool:
    if any(signal in content for signal in _CLIENT_SIGNALS):
        return True
    if "router.push" in content and any(word in content for word in _LOGIN_WORDS):
        return True
    return "useRouter" in content and "push" in content


def has_page_signal(content: str) -> bool:
    return any(signal in content for signal in _PAGE_SIGNALS) or _login_redirect(content)


def http_method(content: str) -> str:
    for method, pattern in _METHOD_PATTERNS:
        if pattern.search(content):
            return method
    return "GET"


def api_protection(content: str) -> Tuple[str, Optional[str], Optional[str]]:
    """Return ``(kind, required_role, required_permission)`` for a server route.

    The bare substring ``admin`` counts as role evidence.
    """
    if "checkRole" in content or "role" in content or "admin" in content:
        return "role", first_group(ROLE_EQUALITY, content), None
    if "checkPermission" in content or "permission" in content:
        return "permission", None, first_group(PERMISSION_EQUALITY, content)
    if any(signal in content for signal in _AUTH_PROTECTION_SIGNALS) or _cookie_token_read(content):
        return "auth", None, None
    return "custom", None, None


def component_protection(content: str) -> Tuple[str, Optional[str], Optional[str]]:
    has_comparison = "===" in content or "!==" in content
    if "role" in content and has_comparison:
        return "role", first_group(ROLE_EQUALITY, content), None
    if "permission" in content and has_comparison:
        return "permission", None, first_group(PERMISSION_EQUALITY, content)
    return "auth", None, None


def page_protection(content: str) -> Tuple[str, Optional[str], Optional[str]]:
    if has_page_signal(content):
        return "auth", None, None
    if "role" in content:
        return "role", first_group(ROLE_EQUALITY, content), None
    if "permission" in content:
        return "permission", None, first_group(PERMISSION_EQUALITY, content)
    return "custom", None, None


def guard_middleware_name(content: str) -> Optional[str]:
    binding = _GUARD_BINDING.search(content)
    if binding is not None:
        return binding.group(2)
    if "cookies.get" in content:
        return "cookie-based-auth"
    if "JWT" in content or "jwt" in content:
        return "jwt-verification"
    return None


# ---------------------------------------------------------------------------
# Path to route conversion


def api_endpoint(path: str) -> str:
    """Map an API route file to its URL: ``app/api/orders/route.ts`` -> ``/api/orders``."""
    parts = PurePosixPath(path).parts
    segments = list(parts[parts.index("api") + 1 :]) if "api" in parts else list(parts)
    if segments:
        stem = PurePosixPath(segments[-1]).stem
        if stem in ("route", "index"):
            segments.pop()
        else:
            segments[-1] = stem
    return "/".join(["/api", *segments]) if segments else "/api"


def page_route(path: str) -> str:
    """Map a page file to its URL path.

    ``app/<segments>/page.tsx`` and ``pages/<segments>/index.tsx`` both become
    ``/<segments>``; ``pages/about.tsx`` becomes ``/about``.
    """
    posix = PurePosixPath(path)
    parts = posix.parts
    if posix.stem == "page" and "app" in parts:
        segments = list(parts[parts.index("app") + 1 : -1])
    elif "pages" in parts:
        segments = list(parts[parts.index("pages") + 1 :])
        stem = PurePosixPath(segments[-1]).stem
        if stem == "index":
            segments.pop()
        else:
            segments[-1] = stem
    else:
        return f"/{path}"
    return "/" + "/".join(segments)


def component_name(content: str) -> str:
    match = _DEFAULT_EXPORT_NAME.search(content) or _COMPONENT_NAME.search(content)
    return match.group(1) if match else "Component"


# ---------------------------------------------------------------------------
# Extractor


class PermissionCheckExtractor(Extractor):
    """Scans middleware, API routes, client components, and pages for guards."""

    name = "permission_checks"

    def __init__(
        self,
        *,
        component_limit: int = DEFAULT_COMPONENT_LIMIT,
        page_limit: int = DEFAULT_PAGE_LIMIT,
    ) -> None:
        self.component_limit = component_limit
        self.page_limit = page_limit

    def extract(self, corpus: SourceCorpus) -> PermissionChecks:
        checks = PermissionChecks()
        checks.middleware.extend(self._middleware(corpus))

        for path in corpus.list_files(API_ROUTE_GLOBS):
            content = corpus.read(path)
            if not has_api_auth_signal(content):
                continue
            guard, route = self._api_route(content, path)
            checks.api_guards.append(guard)
            checks.protected_routes.append(route)

        checks.component_guards.extend(self._components(corpus))
        checks.protected_routes.extend(self._pages(corpus))

        logger.debug(
            "Permission checks: %d middleware, %d API guards, %d components, %d routes",
            len(checks.middleware),
            len(checks.api_guards),
            len(checks.component_guards),
            len(checks.protected_routes),
        )
        return checks

    def _middleware(self, corpus: SourceCorpus) -> Iterable[MiddlewarePattern]:
        for path in corpus.list_files(MIDDLEWARE_GLOBS):
            content = corpus.read(path)
            body = body_after(_MIDDLEWARE_ANCHOR, content)
            if body is None:
                continue
            yield MiddlewarePattern(
                name="middleware",
                type="global",
                file_path=path,
                template=body,
                location=PurePosixPath(path).name,
                checks=[label for marker, label in _MIDDLEWARE_CHECKS if marker in content],
            )

    def _api_route(self, content: str, path: str) -> Tuple[APIGuard, ProtectedRoute]:
        endpoint = api_endpoint(path)
        method = http_method(content)
        protection, role, permission = api_protection(content)
        sample = excerpt(content, SHORT_SAMPLE_CHARS)
        guard = APIGuard(
            endpoint=endpoint,
            method=method,
            protection=protection,
            file_path=path,
            template=sample,
            middleware=guard_middleware_name(content),
        )
        route = ProtectedRoute(
            path=endpoint,
            protection=protection,
            implementation=sample,
            file_path=path,
            method=method,
            required_role=role,
            required_permission=permission,
        )
        return guard, route

    def _components(self, corpus: SourceCorpus) -> List[ComponentGuard]:
        guards: List[ComponentGuard] = []
        for path in corpus.list_files(COMPONENT_GLOBS):
            if len(guards) >= self.component_limit:
                break
            content = corpus.read(path)
            if not has_client_signal(content):
                continue
            protection, role, permission = component_protection(content)
            guards.append(
                ComponentGuard(
                    component=component_name(content),
                    protection=protection,
                    file_path=path,
                    template=excerpt(content, SHORT_SAMPLE_CHARS),
                    required_role=role,
                    required_permission=permission,
                )
            )
        return guards

    def _pages(self, corpus: SourceCorpus) -> List[ProtectedRoute]:
        routes: List[ProtectedRoute] = []
        for path in corpus.list_files(PAGE_GLOBS):
            if len(routes) >= self.page_limit:
                break
            content = corpus.read(path)
            if not has_page_signal(content):
                continue
            protection, role, permission = page_protection(content)
            routes.append(
                ProtectedRoute(
                    path=page_route(path),
                    protection=protection,
                    implementation=excerpt(content, SHORT_SAMPLE_CHARS),
                    file_path=path,
                    required_role=role,
                    required_permission=permission,
                )
            )
        return routes


__all__ = [
    "PermissionCheckExtractor",
    "api_endpoint",
    "api_protection",
    "has_api_auth_signal",
    "http_method",
    "page_route",
]
