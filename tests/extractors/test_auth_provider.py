"""Tests for the auth provider extractor."""

from __future__ import annotations

from authmem.extractors import AuthProviderExtractor
from tests._fixtures.repo_builder import RepoBuilder

NEXTAUTH_ROUTE = """
import NextAuth from "next-auth"
import GoogleProvider from "next-auth/providers/google"

export const authOptions = {
  providers: [GoogleProvider({ clientId: "id", clientSecret: "secret" })],
  session: { strategy: "jwt", maxAge: 3600 },
  callbacks: {
    session: async ({ session, token }) => {
      if (token) {
        session.user.id = token.sub
      }
      return session
    },
  },
}

const handler = NextAuth(authOptions)
export { handler as GET, handler as POST }
"""


def test_detects_next_auth_route_with_session_callback(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"app/api/[...nextauth]/route.ts": NEXTAUTH_ROUTE})

    provider = AuthProviderExtractor().extract(repo_builder.corpus())

    assert provider.type == "next-auth"
    assert provider.name == "NextAuth.js"
    assert provider.configuration["providers"] == ["google"]
    assert provider.configuration["strategy"] == "jwt"
    assert provider.configuration["adapter"] is None
    assert provider.implementation.file_path == "app/api/[...nextauth]/route.ts"
    assert provider.implementation.template.startswith("authOptions = {")
    assert [callback.name for callback in provider.callbacks] == ["session"]
    callback = provider.callbacks[0]
    assert "session.user.id = token.sub" in callback.implementation
    assert callback.implementation.endswith("return session")


def test_next_auth_adapter_prefers_last_listed_marker(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "libs/next-auth.ts": """
            import { MongoDBAdapter } from "@auth/mongodb-adapter"
            import { PrismaAdapter } from "@auth/prisma-adapter"
            import EmailProvider from "next-auth/providers/email"
            export const authOptions = { adapter: PrismaAdapter(prisma), providers: [EmailProvider({})] }
            """
        }
    )

    provider = AuthProviderExtractor().extract(repo_builder.corpus())

    assert provider.configuration["adapter"] == "prisma"
    assert provider.configuration["providers"] == ["email"]
    assert provider.configuration["strategy"] == "jwt"


def test_detects_firebase_when_auth_import_and_sign_in_present(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "lib/firebase.ts": """
            import { getAuth, signInWithPopup, GoogleAuthProvider } from "firebase/auth"
            export const login = () => signInWithPopup(getAuth(), new GoogleAuthProvider())
            """
        }
    )

    provider = AuthProviderExtractor().extract(repo_builder.corpus())

    assert provider.type == "firebase"
    assert provider.configuration["providers"] == ["firebase"]
    assert provider.implementation.file_path == "lib/firebase.ts"


def test_firebase_without_sign_in_call_is_not_detected(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "lib/firebase.ts": """
            import { getAuth } from "firebase/auth"
            export const auth = getAuth()
            """
        }
    )

    provider = AuthProviderExtractor().extract(repo_builder.corpus())

    assert provider.type == "unknown"


def test_detects_cognito_by_keyword(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "lib/auth.ts": "const domain = process.env.COGNITO_DOMAIN\n",
        }
    )

    provider = AuthProviderExtractor().extract(repo_builder.corpus())

    assert provider.type == "cognito"
    assert provider.name == "AWS Cognito"
    assert provider.configuration["clientId"] == "process.env.COGNITO_CLIENT_ID"


def test_next_auth_takes_precedence_over_cognito(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "app/api/[...nextauth]/route.ts": NEXTAUTH_ROUTE,
            "lib/cognito.ts": "export const pool = 'cognito'\n",
        }
    )

    provider = AuthProviderExtractor().extract(repo_builder.corpus())

    assert provider.type == "next-auth"


def test_defaults_to_unknown_provider(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"src/index.ts": "export const answer = 42\n"})

    provider = AuthProviderExtractor().extract(repo_builder.corpus())

    assert provider.type == "unknown"
    assert provider.name == "Unknown"
    assert provider.configuration == {"providers": []}
    assert provider.callbacks == []
