"""Tests for role and permission discovery."""

from __future__ import annotations

from authmem.aggregator import build_role_model
from authmem.extractors import RoleModelExtractor
from authmem.extractors.role_model import permissions_in, role_check_pattern, roles_in
from tests._fixtures.repo_builder import RepoBuilder


def test_role_object_literal_maps_roles_to_permissions(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {"lib/roles.ts": 'export const roles = { admin: ["read","write"], viewer: ["read"] }\n'}
    )

    model = build_role_model(RoleModelExtractor().extract(repo_builder.corpus()))

    assert [(role.name, role.permissions) for role in model.roles] == [
        ("admin", ["read", "write"]),
        ("viewer", ["read"]),
    ]
    assert all(role.file_path == "lib/roles.ts" for role in model.roles)
    assert model.hierarchy is not None
    assert model.hierarchy.levels == {"admin": 3, "viewer": 1}


def test_role_object_literal_skips_nested_entries() -> None:
    content = 'const roles = { admin: { permissions: ["all"] }, viewer: ["read"] }'

    assert [role.name for role in roles_in(content)] == ["viewer"]


def test_role_array_literal_with_type_annotation() -> None:
    roles = roles_in('const roles: string[] = ["admin", "member"]', "lib/roles.ts")

    assert [role.name for role in roles] == ["admin", "member"]
    assert roles[0].permissions == []
    assert roles[0].file_path == "lib/roles.ts"


def test_vocabulary_and_user_assignment_rules() -> None:
    content = 'if (session.role === "editor") {}\nuser.role = "owner"\n'

    assert [role.name for role in roles_in(content)] == ["editor", "owner"]


def test_earlier_rule_wins_within_a_file() -> None:
    content = 'const roles = { admin: ["all"] }\nif (role === "admin") {}\n'

    roles = roles_in(content)

    assert len(roles) == 1
    assert roles[0].permissions == ["all"]


def test_roles_merge_keeps_first_position_and_last_value(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "lib/a.ts": 'export const roles = ["admin", "editor"]\n',
            "lib/b.ts": 'export const roles = { editor: ["edit", "publish"], admin: ["all"], guest: [] }\n',
        }
    )

    model = build_role_model(RoleModelExtractor().extract(repo_builder.corpus()))

    assert [role.name for role in model.roles] == ["admin", "editor", "guest"]
    assert model.roles[0].permissions == ["all"]
    assert model.roles[1].permissions == ["edit", "publish"]
    assert model.roles[0].file_path == "lib/b.ts"
    assert model.hierarchy is not None
    assert model.hierarchy.levels == {"admin": 3, "editor": 2, "guest": 0}


def test_hierarchy_absent_when_no_role_is_known(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"lib/roles.ts": 'export const roles = ["superfan"]\n'})

    model = build_role_model(RoleModelExtractor().extract(repo_builder.corpus()))

    assert [role.name for role in model.roles] == ["superfan"]
    assert model.hierarchy is None


def test_permission_rules() -> None:
    content = (
        'const permissions = ["read", "write"]\n'
        'if (hasPermission(user, "delete")) {}\n'
        'if (permission === "view") {}\n'
        'if (can(user, "read")) {}\n'
    )

    assert [permission.name for permission in permissions_in(content)] == [
        "read",
        "write",
        "delete",
        "view",
    ]


def test_role_check_pattern_prefers_role_function_body() -> None:
    content = """
function hasRole(user, role) {
  return user.role === role
}
"""
    assert role_check_pattern(content) == "return user.role === role"
    assert role_check_pattern('if (user.role !== "admin") return') == 'role === "admin"'
    assert role_check_pattern("const x = 1") is None


def test_extractor_records_first_check_pattern(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "lib/guard.ts": """
            export const requireRole = (user, role) => {
              if (user.role !== role) throw new Error("forbidden")
            }
            """,
            "lib/other.ts": 'if (user.role === "admin") {}\n',
        }
    )

    facts = RoleModelExtractor().extract(repo_builder.corpus())

    assert facts.implementation.file_path == "lib/guard.ts"
    assert "user.role !== role" in facts.implementation.check_pattern


def test_no_roles_yields_empty_model(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"src/index.ts": "export const answer = 42\n"})

    model = build_role_model(RoleModelExtractor().extract(repo_builder.corpus()))

    assert model.roles == []
    assert model.permissions == []
    assert model.hierarchy is None
    assert model.implementation.check_pattern == ""
