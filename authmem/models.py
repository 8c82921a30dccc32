"""Core data models shared across authmem components."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from typing import Any, Dict, List, Optional


@dataclass
class CallbackPattern:
    """Named auth callback body lifted from a provider configuration."""

    name: str
    implementation: str
    file_path: str


@dataclass
class AuthProviderImplementation:
    file_path: str = ""
    template: str = ""
    setup: str = ""
    usage: str = ""


@dataclass
class AuthProvider:
    """Detected authentication provider."""

    type: str
    name: str
    configuration: Dict[str, Any] = field(default_factory=lambda: {"providers": []})
    implementation: AuthProviderImplementation = field(
        default_factory=AuthProviderImplementation
    )
    callbacks: List[CallbackPattern] = field(default_factory=list)


@dataclass
class SessionStorageConfig:
    type: str
    http_only: Optional[bool] = None
    secure: Optional[bool] = None
    same_site: Optional[str] = None
    domain: Optional[str] = None
    path: Optional[str] = None
    max_age: Optional[int] = None
    adapter: Optional[str] = None


@dataclass
class SessionLifetime:
    """Lifetimes in seconds."""

    access_token: int
    refresh_token: Optional[int] = None
    session: Optional[int] = None
    idle_timeout: Optional[int] = None


@dataclass
class SessionStorageImplementation:
    file_path: str = ""
    template: str = ""
    storage_location: str = ""


@dataclass
class SessionStorage:
    """Where and how sessions are persisted."""

    strategy: str
    configuration: SessionStorageConfig
    lifetime: SessionLifetime
    implementation: SessionStorageImplementation = field(
        default_factory=SessionStorageImplementation
    )


@dataclass
class TokenConfig:
    lifetime: int
    storage: str = "httpOnly"
    http_only: Optional[bool] = None
    secure: Optional[bool] = None
    same_site: Optional[str] = None


@dataclass
class RefreshStrategy:
    type: str = "none"
    trigger: str = "on-demand"
    interval: Optional[int] = None
    implementation: str = ""
    file_path: Optional[str] = None


@dataclass
class TokenStrategyImplementation:
    file_path: str = ""
    template: str = ""
    refresh_logic: Optional[str] = None


@dataclass
class TokenStrategy:
    """Access/refresh token handling."""

    access_token: TokenConfig
    refresh_token: Optional[TokenConfig] = None
    refresh_strategy: RefreshStrategy = field(default_factory=RefreshStrategy)
    implementation: TokenStrategyImplementation = field(
        default_factory=TokenStrategyImplementation
    )


@dataclass
class RoleDefinition:
    name: str
    permissions: List[str] = field(default_factory=list)
    file_path: Optional[str] = None
    description: Optional[str] = None
    level: Optional[int] = None


@dataclass
class PermissionDefinition:
    name: str
    file_path: Optional[str] = None
    description: Optional[str] = None
    resource: Optional[str] = None
    action: Optional[str] = None


@dataclass
class RoleModelImplementation:
    file_path: str = ""
    template: str = ""
    check_pattern: str = ""


@dataclass
class RoleHierarchy:
    levels: Dict[str, int]
    inheritance: Optional[Dict[str, List[str]]] = None


@dataclass
class RoleModel:
    roles: List[RoleDefinition] = field(default_factory=list)
    permissions: List[PermissionDefinition] = field(default_factory=list)
    implementation: RoleModelImplementation = field(default_factory=RoleModelImplementation)
    hierarchy: Optional[RoleHierarchy] = None


@dataclass
class MiddlewarePattern:
    name: str
    type: str
    file_path: str
    template: str
    location: str
    checks: List[str] = field(default_factory=list)


@dataclass
class ProtectedRoute:
    path: str
    protection: str
    implementation: str
    file_path: str
    method: Optional[str] = None
    required_role: Optional[str] = None
    required_permission: Optional[str] = None


@dataclass
class APIGuard:
    endpoint: str
    method: str
    protection: str
    file_path: str
    template: str
    middleware: Optional[str] = None


@dataclass
class ComponentGuard:
    component: str
    protection: str
    file_path: str
    template: str
    required_role: Optional[str] = None
    required_permission: Optional[str] = None


@dataclass
class PermissionChecks:
    """Access guards discovered across the repository."""

    middleware: List[MiddlewarePattern] = field(default_factory=list)
    protected_routes: List[ProtectedRoute] = field(default_factory=list)
    api_guards: List[APIGuard] = field(default_factory=list)
    component_guards: List[ComponentGuard] = field(default_factory=list)

    def find_route(self, path: str) -> Optional[ProtectedRoute]:
        for route in self.protected_routes:
            if route.path == path:
                return route
        return None

    def is_protected_route(self, path: str) -> bool:
        return self.find_route(path) is not None

    def required_role(self, path: str) -> Optional[str]:
        route = self.find_route(path)
        return route.required_role if route else None

    def required_permission(self, path: str) -> Optional[str]:
        route = self.find_route(path)
        return route.required_permission if route else None


@dataclass
class Utilities:
    auth_helpers: List[str] = field(default_factory=list)
    common_hooks: List[str] = field(default_factory=list)
    auth_functions: List[str] = field(default_factory=list)


@dataclass
class Instructions:
    setup: List[str] = field(default_factory=list)
    usage: List[str] = field(default_factory=list)
    security: List[str] = field(default_factory=list)


@dataclass
class Metadata:
    project_name: str
    extracted_at: str
    framework: str
    source_path: str


@dataclass(frozen=True)
class AuthMemory:
    """Canonical record produced by one extraction request."""

    metadata: Metadata
    auth_provider: AuthProvider
    session_storage: SessionStorage
    token_strategy: TokenStrategy
    role_model: RoleModel
    permission_checks: PermissionChecks
    utilities: Utilities
    instructions: Instructions

    def to_dict(self) -> Dict[str, Any]:
        """Return the record as a camelCase mapping; unset optional fields are omitted."""
        return to_camel_dict(self)

    def summary(self) -> Dict[str, Any]:
        """Return the display metadata consumed by the CLI and service."""
        return {
            "authProvider": self.auth_provider.name,
            "sessionStrategy": self.session_storage.strategy,
            "roles": len(self.role_model.roles),
            "permissions": len(self.role_model.permissions),
            "middleware": len(self.permission_checks.middleware),
            "protectedRoutes": len(self.permission_checks.protected_routes),
            "apiGuards": len(self.permission_checks.api_guards),
        }


def camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def to_camel_dict(value: Any) -> Any:
    """Convert dataclass trees to JSON-ready values with camelCase field names."""
    if is_dataclass(value) and not isinstance(value, type):
        result: Dict[str, Any] = {}
        for item in fields(value):
            converted = to_camel_dict(getattr(value, item.name))
            if converted is None:
                continue
            result[camel_case(item.name)] = converted
        return result
    if isinstance(value, dict):
        return {
            str(key): to_camel_dict(item) for key, item in value.items() if item is not None
        }
    if isinstance(value, (list, tuple)):
        return [to_camel_dict(item) for item in value]
    return value
