"""Pattern extractors and the built-in registry."""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

from ..config import ExtractionConfig
from .auth_provider import AuthProviderExtractor
from .base import Extractor
from .permission_checks import PermissionCheckExtractor
from .role_model import RoleModelExtractor, RoleModelFacts
from .session_storage import SessionStorageExtractor
from .token_strategy import TokenStrategyExtractor

# Registration order is the order results are merged in.
_BUILTIN_FACTORIES: Dict[str, Callable[[ExtractionConfig], Extractor]] = {
    "auth_provider": lambda config: AuthProviderExtractor(),
    "session_storage": lambda config: SessionStorageExtractor(),
    "token_strategy": lambda config: TokenStrategyExtractor(),
    "role_model": lambda config: RoleModelExtractor(),
    "permission_checks": lambda config: PermissionCheckExtractor(
        component_limit=config.component_guard_limit,
        page_limit=config.page_route_limit,
    ),
}

EXTRACTOR_NAMES = tuple(_BUILTIN_FACTORIES)


def discover_extractors(config: Optional[ExtractionConfig] = None) -> List[Extractor]:
    """Return one instance of every built-in extractor in registration order."""
    config = config or ExtractionConfig()
    extractors: List[Extractor] = []
    for name, factory in _BUILTIN_FACTORIES.items():
        instance = factory(config)
        if not isinstance(instance, Extractor):
            raise TypeError(f"Extractor factory for '{name}' did not return an Extractor instance")
        extractors.append(instance)
    return extractors


__all__ = [
    "AuthProviderExtractor",
    "EXTRACTOR_NAMES",
    "Extractor",
    "PermissionCheckExtractor",
    "RoleModelExtractor",
    "RoleModelFacts",
    "SessionStorageExtractor",
    "TokenStrategyExtractor",
    "discover_extractors",
]
