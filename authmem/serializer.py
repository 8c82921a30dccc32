"""Render an AuthMemory record as a TypeScript module or JSON document."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable, Dict

from .logging import get_logger
from .models import AuthMemory

logger = get_logger("serializer")

DEFAULT_FILENAMES: Dict[str, str] = {
    "typescript": "auth-memory.ts",
    "json": "auth-memory.json",
}

_TYPESCRIPT_ACCESSORS = """\
// Type exports
export type AuthMemoryType = typeof AuthMemory

// Helper function to get auth provider config
export function getAuthProvider() {
  return AuthMemory.authProvider
}

// Helper function to get session storage config
export function getSessionStorage() {
  return AuthMemory.sessionStorage
}

// Helper function to get token strategy
export function getTokenStrategy() {
  return AuthMemory.tokenStrategy
}

// Helper function to get role model
export function getRoleModel() {
  return AuthMemory.roleModel
}

// Helper function to get permission checks
export function getPermissionChecks() {
  return AuthMemory.permissionChecks
}

// Helper function to check if route is protected
export function isProtectedRoute(path: string): boolean {
  return AuthMemory.permissionChecks.protectedRoutes.some(route => route.path === path)
}

// Helper function to get required role for route
export function getRequiredRole(path: string): string | undefined {
  const route = AuthMemory.permissionChecks.protectedRoutes.find(r => r.path === path)
  return route?.requiredRole
}

// Helper function to get required permission for route
export function getRequiredPermission(path: string): string | undefined {
  const route = AuthMemory.permissionChecks.protectedRoutes.find(r => r.path === path)
  return route?.requiredPermission
}
"""


def render_json(memory: AuthMemory) -> str:
    return json.dumps(memory.to_dict(), indent=2, ensure_ascii=False) + "\n"


def render_typescript(memory: AuthMemory) -> str:
    """Embed the record as a constant plus accessor helpers."""
    metadata = memory.metadata
    header = "\n".join(
        [
            "// Auth Memory File",
            f"// Extracted from: {metadata.source_path}",
            f"// Generated at: {metadata.extracted_at}",
            f"// Framework: {metadata.framework}",
        ]
    )
    literal = json.dumps(memory.to_dict(), indent=2, ensure_ascii=False)
    return f"{header}\n\nexport const AuthMemory = {literal} as const\n\n{_TYPESCRIPT_ACCESSORS}"


_RENDERERS: Dict[str, Callable[[AuthMemory], str]] = {
    "typescript": render_typescript,
    "json": render_json,
}


def render(memory: AuthMemory, fmt: str = "typescript") -> str:
    try:
        renderer = _RENDERERS[fmt]
    except KeyError as exc:
        raise ValueError(f"Unsupported output format: {fmt}") from exc
    return renderer(memory)


def write_artifact(memory: AuthMemory, destination: Path, fmt: str = "typescript") -> Path:
    """Write the rendered artifact; a directory destination gets the default filename."""
    content = render(memory, fmt)
    target = destination / DEFAULT_FILENAMES[fmt] if destination.is_dir() else destination
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")
    logger.info("Wrote %s artifact to %s", fmt, target)
    return target


__all__ = ["DEFAULT_FILENAMES", "render", "render_json", "render_typescript", "write_artifact"]
