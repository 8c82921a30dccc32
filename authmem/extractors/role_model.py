"""Role and permission discovery."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Set, Tuple

from ..corpus import SourceCorpus
from ..logging import get_logger
from ..models import PermissionDefinition, RoleDefinition, RoleModelImplementation
from .base import SAMPLE_CHARS, Extractor
from .text import block_body, find_block, split_literal_list

logger = get_logger("extractors.role_model")

SCRIPT_GLOBS: Tuple[str, ...] = ("**/*.{ts,tsx,js}",)

PREFILTER_KEYWORDS = (
    "role",
    "Role",
    "permission",
    "Permission",
    "admin",
    "user",
    "RBAC",
    "ABAC",
)

COMMON_ROLES = ("admin", "user", "viewer", "editor", "moderator", "guest")
COMMON_PERMISSIONS = ("read", "write", "delete", "update", "create", "view", "edit", "admin")

_TYPE_ANNOTATION = r"(?:\s*:\s*[^=\n]+?)?"
_ROLE_ARRAY = re.compile(rf"\b(?:const|let|var)\s+roles?\b{_TYPE_ANNOTATION}\s*=\s*\[([^\]]*)\]")
_ROLE_OBJECT = re.compile(rf"\b(?:const|let|var)\s+roles?\b{_TYPE_ANNOTATION}\s*=\s*\{{")
_ROLE_ENTRY = re.compile(r"[\"']?(\w+)[\"']?\s*:\s*\[([^\]]*)\]")
_USER_ROLE = re.compile(r"user\.role\s*[=:]\s*[\"'](\w+)[\"']")

_PERMISSION_ARRAY = re.compile(
    rf"\b(?:const|let|var)\s+permissions?\b{_TYPE_ANNOTATION}\s*=\s*\[([^\]]*)\]"
)
_PERMISSION_CALL = re.compile(
    r"\b(?:hasPermission|can|checkPermission)\s*\([^,()]+,\s*[\"'](\w+)[\"']"
)

_ROLE_FUNCTION = re.compile(
    r"(?:\bfunction\s+\w*[Rr]ole\w*\s*\([^)]*\)[^{]*\{"
    r"|\bconst\s+\w*[Rr]ole\w*\s*=\s*(?:async\s*)?\([^)]*\)[^{=]*=>\s*\{)"
)
_INLINE_ROLE_CHECK = re.compile(r"(?:user\.role|role)\s*[=!]==\s*[\"'](\w+)[\"']")
_ROLE_CONDITION = re.compile(r"if\s*\([^)]*role[^)]*\)\s*\{")


@dataclass
class RoleModelFacts:
    """Per-file role and permission facts before cross-file merging."""

    roles: List[RoleDefinition] = field(default_factory=list)
    permissions: List[PermissionDefinition] = field(default_factory=list)
    implementation: RoleModelImplementation = field(default_factory=RoleModelImplementation)


def _vocabulary_pattern(keyword: str, name: str, separators: str) -> re.Pattern[str]:
    return re.compile(rf"{keyword}\s*(?:{separators})\s*[\"']{re.escape(name)}[\"']")


_ROLE_VOCABULARY = tuple(
    (name, _vocabulary_pattern("role", name, "===|==|:")) for name in COMMON_ROLES
)
_PERMISSION_VOCABULARY = tuple(
    (name, _vocabulary_pattern("permission", name, "===|==")) for name in COMMON_PERMISSIONS
)


# ---------------------------------------------------------------------------
# Role rules


def _roles_from_array(content: str) -> List[RoleDefinition]:
    match = _ROLE_ARRAY.search(content)
    if match is None:
        return []
    return [RoleDefinition(name=name) for name in split_literal_list(match.group(1))]


def _roles_from_object(content: str) -> List[RoleDefinition]:
    match = _ROLE_OBJECT.search(content)
    if match is None:
        return []
    body = block_body(content, match.end() - 1)
    if not body:
        return []
    roles: List[RoleDefinition] = []
    for entry in _ROLE_ENTRY.finditer(body):
        if not _is_top_level(body, entry.start()):
            continue
        roles.append(
            RoleDefinition(name=entry.group(1), permissions=split_literal_list(entry.group(2)))
        )
    return roles


def _roles_from_vocabulary(content: str) -> List[RoleDefinition]:
    return [RoleDefinition(name=name) for name, pattern in _ROLE_VOCABULARY if pattern.search(content)]


def _roles_from_user_assignment(content: str) -> List[RoleDefinition]:
    return [RoleDefinition(name=match.group(1)) for match in _USER_ROLE.finditer(content)]


_ROLE_RULES: Sequence[Tuple[str, Callable[[str], List[RoleDefinition]]]] = (
    ("array-literal", _roles_from_array),
    ("object-literal", _roles_from_object),
    ("vocabulary", _roles_from_vocabulary),
    ("user-assignment", _roles_from_user_assignment),
)


# ---------------------------------------------------------------------------
# Permission rules


def _permissions_from_array(content: str) -> List[PermissionDefinition]:
    match = _PERMISSION_ARRAY.search(content)
    if match is None:
        return []
    return [PermissionDefinition(name=name) for name in split_literal_list(match.group(1))]


def _permissions_from_calls(content: str) -> List[PermissionDefinition]:
    return [PermissionDefinition(name=match.group(1)) for match in _PERMISSION_CALL.finditer(content)]


def _permissions_from_vocabulary(content: str) -> List[PermissionDefinition]:
    return [
        PermissionDefinition(name=name)
        for name, pattern in _PERMISSION_VOCABULARY
        if pattern.search(content)
    ]


_PERMISSION_RULES: Sequence[Tuple[str, Callable[[str], List[PermissionDefinition]]]] = (
    ("array-literal", _permissions_from_array),
    ("call-site", _permissions_from_calls),
    ("vocabulary", _permissions_from_vocabulary),
)


def _is_top_level(body: str, position: int) -> bool:
    depth = 0
    for char in body[:position]:
        if char in "{[":
            depth += 1
        elif char in "}]":
            depth -= 1
    return depth == 0


def roles_in(content: str, path: str | None = None) -> List[RoleDefinition]:
    """Apply the role rules in order; an earlier rule's fact wins within one file."""
    found: List[RoleDefinition] = []
    seen: Set[str] = set()
    for _, rule in _ROLE_RULES:
        for role in rule(content):
            if role.name in seen:
                continue
            seen.add(role.name)
            role.file_path = path
            found.append(role)
    return found


def permissions_in(content: str, path: str | None = None) -> List[PermissionDefinition]:
    found: List[PermissionDefinition] = []
    seen: Set[str] = set()
    for _, rule in _PERMISSION_RULES:
        for permission in rule(content):
            if permission.name in seen:
                continue
            seen.add(permission.name)
            permission.file_path = path
            found.append(permission)
    return found


def role_check_pattern(content: str) -> Optional[str]:
    match = _ROLE_FUNCTION.search(content)
    if match is not None:
        body = block_body(content, match.end() - 1)
        if body:
            return body

    inline = _INLINE_ROLE_CHECK.search(content)
    if inline is not None:
        return f'role === "{inline.group(1)}"'

    condition = _ROLE_CONDITION.search(content)
    if condition is not None:
        span = find_block(content, condition.end() - 1)
        if span is not None:
            return content[span[0] + 1 : span[1]].strip()
    return None


class RoleModelExtractor(Extractor):
    """Collects role and permission facts in corpus order."""

    name = "role_model"

    def extract(self, corpus: SourceCorpus) -> RoleModelFacts:
        facts = RoleModelFacts()
        for path in corpus.filter_containing(SCRIPT_GLOBS, PREFILTER_KEYWORDS):
            content = corpus.read(path)
            facts.roles.extend(roles_in(content, path))
            facts.permissions.extend(permissions_in(content, path))

            if not facts.implementation.check_pattern:
                pattern = role_check_pattern(content)
                if pattern:
                    facts.implementation = RoleModelImplementation(
                        file_path=path,
                        template=content[:SAMPLE_CHARS],
                        check_pattern=pattern,
                    )

        logger.debug(
            "Role model candidates: %d roles, %d permissions",
            len(facts.roles),
            len(facts.permissions),
        )
        return facts


__all__ = [
    "COMMON_PERMISSIONS",
    "COMMON_ROLES",
    "RoleModelExtractor",
    "RoleModelFacts",
    "permissions_in",
    "role_check_pattern",
    "roles_in",
]
