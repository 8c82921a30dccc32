"""Tests for middleware, API, component, and page guard detection."""

from __future__ import annotations

from authmem.extractors import PermissionCheckExtractor
from authmem.extractors.permission_checks import api_endpoint, http_method, page_route
from tests._fixtures.repo_builder import RepoBuilder

ADMIN_DELETE = """
export async function DELETE(request: Request) {
  const session = await getSession(request)
  if (session.role !== "admin") {
    return new Response("Forbidden", { status: 403 })
  }
  return new Response(null, { status: 204 })
}
"""


def test_role_guarded_delete_route(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"app/api/orders/route.ts": ADMIN_DELETE})

    checks = PermissionCheckExtractor().extract(repo_builder.corpus())

    assert len(checks.api_guards) == 1
    guard = checks.api_guards[0]
    assert guard.endpoint == "/api/orders"
    assert guard.method == "DELETE"
    assert guard.protection == "role"
    assert guard.middleware is None

    route = checks.find_route("/api/orders")
    assert route is not None
    assert route.method == "DELETE"
    assert route.protection == "role"
    assert route.required_role == "admin"
    assert route.file_path == "app/api/orders/route.ts"


def test_verify_token_route_reports_guard_binding(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "app/api/profile/route.ts": """
            import { verifyToken } from "@/lib/auth"

            export async function GET(request: Request) {
              const account = await verifyToken(request)
              return Response.json(account)
            }
            """,
        }
    )

    guard = PermissionCheckExtractor().extract(repo_builder.corpus()).api_guards[0]

    assert guard.protection == "auth"
    assert guard.middleware == "verifyToken"
    assert guard.method == "GET"


def test_cookie_token_route(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "app/api/me/route.ts": """
            export async function POST(request) {
              const token = request.cookies.get("token")
              if (!token) {
                return Response.json({ error: "missing" }, { status: 403 })
              }
              return Response.json({ ok: true })
            }
            """,
        }
    )

    guard = PermissionCheckExtractor().extract(repo_builder.corpus()).api_guards[0]

    assert guard.protection == "auth"
    assert guard.middleware == "cookie-based-auth"
    assert guard.method == "POST"


def test_bearer_header_without_known_guard_is_custom(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "app/api/sync/route.ts": """
            export async function GET(request) {
              const header = request.headers.get("authorization") ?? ""
              if (!header.startsWith("Bearer ")) {
                return new Response(null, { status: 403 })
              }
              return Response.json({ synced: true })
            }
            """,
        }
    )

    guard = PermissionCheckExtractor().extract(repo_builder.corpus()).api_guards[0]

    assert guard.protection == "custom"
    assert guard.middleware is None


def test_route_without_auth_signal_is_ignored(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {"app/api/public/route.ts": "export async function GET() { return Response.json({ ok: true }) }\n"}
    )

    checks = PermissionCheckExtractor().extract(repo_builder.corpus())

    assert checks.api_guards == []
    assert checks.protected_routes == []


def test_global_middleware_pattern(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "middleware.ts": """
            import { verifyToken } from "./lib/auth"

            export async function middleware(request) {
              const token = request.cookies.get("token")
              if (!token || !verifyToken(token)) {
                return Response.redirect(new URL("/login", request.url))
              }
            }
            """,
        }
    )

    checks = PermissionCheckExtractor().extract(repo_builder.corpus())

    assert len(checks.middleware) == 1
    pattern = checks.middleware[0]
    assert pattern.type == "global"
    assert pattern.location == "middleware.ts"
    assert pattern.checks == ["token"]
    assert pattern.template.startswith('const token = request.cookies.get("token")')


def test_component_guards_classify_role_checks(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "components/AdminPanel.tsx": """
            export default function AdminPanel() {
              const { user } = useAuth()
              if (user.role !== "admin") return null
              return <div>Admin</div>
            }
            """,
            "components/Nav.tsx": """
            export function Nav() {
              const { data } = useSession()
              return <nav>{data?.user?.name}</nav>
            }
            """,
            "components/Footer.tsx": "export function Footer() { return <footer /> }\n",
        }
    )

    guards = PermissionCheckExtractor().extract(repo_builder.corpus()).component_guards

    assert [(guard.component, guard.protection) for guard in guards] == [
        ("AdminPanel", "role"),
        ("Nav", "auth"),
    ]
    assert guards[0].required_role == "admin"


def test_component_scan_stops_at_limit(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            f"components/Widget{index:02d}.tsx": f"export function Widget{index:02d}() {{ useSession() }}\n"
            for index in range(6)
        }
    )

    guards = PermissionCheckExtractor(component_limit=3).extract(repo_builder.corpus()).component_guards

    assert [guard.component for guard in guards] == ["Widget00", "Widget01", "Widget02"]


def test_pages_with_client_auth_become_protected_routes(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "app/dashboard/page.tsx": "export default function Dashboard() { useAuth() }\n",
            "app/about/page.tsx": "export default function About() { return null }\n",
            "pages/settings/index.tsx": "export default function Settings() { if (!isAuthenticated) {} }\n",
        }
    )

    routes = PermissionCheckExtractor().extract(repo_builder.corpus()).protected_routes

    assert [(route.path, route.protection) for route in routes] == [
        ("/dashboard", "auth"),
        ("/settings", "auth"),
    ]
    assert all(route.method is None for route in routes)


def test_page_scan_stops_at_limit(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "app/a/page.tsx": "useAuth()\n",
            "app/b/page.tsx": "useAuth()\n",
        }
    )

    routes = PermissionCheckExtractor(page_limit=1).extract(repo_builder.corpus()).protected_routes

    assert [route.path for route in routes] == ["/a"]


def test_http_method_detection_order() -> None:
    both = "export async function POST() {}\nexport async function GET() {}\n"
    assert http_method(both) == "GET"
    assert http_method("export async function PATCH(req) {}") == "PATCH"
    assert http_method("export default function handler(req, res) {}") == "GET"


def test_api_endpoint_mapping() -> None:
    assert api_endpoint("app/api/orders/route.ts") == "/api/orders"
    assert api_endpoint("app/api/route.ts") == "/api"
    assert api_endpoint("pages/api/users/[id].ts") == "/api/users/[id]"
    assert api_endpoint("src/pages/api/login.js") == "/api/login"


def test_page_route_mapping() -> None:
    assert page_route("app/page.tsx") == "/"
    assert page_route("app/dashboard/settings/page.tsx") == "/dashboard/settings"
    assert page_route("pages/index.tsx") == "/"
    assert page_route("pages/about.tsx") == "/about"
    assert page_route("src/pages/blog/index.jsx") == "/blog"
