"""Merge per-extractor results into the category values of the canonical record."""

from __future__ import annotations

from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Dict,
    Generic,
    Hashable,
    Iterable,
    List,
    Mapping,
    Optional,
    TypeVar,
)

from .extractors import RoleModelFacts
from .logging import get_logger
from .models import (
    AuthProvider,
    PermissionChecks,
    PermissionDefinition,
    RoleDefinition,
    RoleHierarchy,
    RoleModel,
    SessionStorage,
    TokenStrategy,
)

logger = get_logger("aggregator")

T = TypeVar("T")

CATEGORY_NAMES = (
    "auth_provider",
    "session_storage",
    "token_strategy",
    "role_model",
    "permission_checks",
)

ROLE_LEVELS: Dict[str, int] = {
    "admin": 3,
    "moderator": 2,
    "editor": 2,
    "user": 1,
    "viewer": 1,
    "guest": 0,
}


class OrderedMerge(Generic[T]):
    """Keyed collection where a repeated key replaces the value in place.

    Each key keeps the position of its first insertion while the stored value
    is always the most recent one.
    """

    def __init__(self, key: Callable[[T], Hashable]) -> None:
        self._key = key
        self._order: List[Hashable] = []
        self._values: Dict[Hashable, T] = {}

    def add(self, item: T) -> None:
        key = self._key(item)
        if key not in self._values:
            self._order.append(key)
        self._values[key] = item

    def extend(self, items: Iterable[T]) -> "OrderedMerge[T]":
        for item in items:
            self.add(item)
        return self

    def values(self) -> List[T]:
        return [self._values[key] for key in self._order]

    def __len__(self) -> int:
        return len(self._order)


def merge_roles(roles: Iterable[RoleDefinition]) -> List[RoleDefinition]:
    return OrderedMerge(lambda role: role.name).extend(roles).values()


def merge_permissions(permissions: Iterable[PermissionDefinition]) -> List[PermissionDefinition]:
    return OrderedMerge(lambda permission: permission.name).extend(permissions).values()


def derive_hierarchy(roles: Iterable[RoleDefinition]) -> Optional[RoleHierarchy]:
    """Look up role names in the fixed level table; None when nothing matches."""
    levels: Dict[str, int] = {}
    for role in roles:
        level = ROLE_LEVELS.get(role.name.lower())
        if level is not None:
            levels[role.name] = level
    if not levels:
        return None
    return RoleHierarchy(levels=levels)


def build_role_model(facts: RoleModelFacts) -> RoleModel:
    roles = merge_roles(facts.roles)
    return RoleModel(
        roles=roles,
        permissions=merge_permissions(facts.permissions),
        implementation=facts.implementation,
        hierarchy=derive_hierarchy(roles),
    )


@dataclass
class AggregatedFacts:
    """Category values ready for assembly into an AuthMemory."""

    auth_provider: AuthProvider
    session_storage: SessionStorage
    token_strategy: TokenStrategy
    role_model: RoleModel
    permission_checks: PermissionChecks


def aggregate(results: Mapping[str, Any]) -> AggregatedFacts:
    """Combine extractor outputs keyed by extractor name.

    Singleton categories pass through unchanged; role and permission facts are
    merged by name. Guard lists keep one entry per file in corpus order.
    """
    missing = [name for name in CATEGORY_NAMES if name not in results]
    if missing:
        raise KeyError(f"Missing extractor results: {', '.join(missing)}")

    role_model = build_role_model(results["role_model"])
    logger.debug(
        "Aggregated %d roles and %d permissions",
        len(role_model.roles),
        len(role_model.permissions),
    )
    return AggregatedFacts(
        auth_provider=results["auth_provider"],
        session_storage=results["session_storage"],
        token_strategy=results["token_strategy"],
        role_model=role_model,
        permission_checks=results["permission_checks"],
    )


__all__ = [
    "AggregatedFacts",
    "OrderedMerge",
    "ROLE_LEVELS",
    "aggregate",
    "build_role_model",
    "derive_hierarchy",
    "merge_permissions",
    "merge_roles",
]
