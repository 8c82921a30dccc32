"""Auth provider detection (NextAuth, Firebase, Cognito)."""

from __future__ import annotations

import re
from typing import Callable, List, Optional, Sequence, Tuple

from ..corpus import SourceCorpus
from ..logging import get_logger
from ..models import AuthProvider, AuthProviderImplementation, CallbackPattern
from .base import Extractor
from .text import code_block, extract_callback

logger = get_logger("extractors.auth_provider")

NEXTAUTH_GLOBS: Tuple[str, ...] = (
    "**/next-auth.{ts,tsx,js}",
    "**/[...nextauth]/**/*.{ts,tsx,js}",
)
FIREBASE_GLOBS: Tuple[str, ...] = ("**/firebase*.{ts,tsx,js}",)
SCRIPT_GLOBS: Tuple[str, ...] = ("**/*.{ts,tsx,js}",)

_NEXTAUTH_PROVIDERS: Tuple[Tuple[str, str], ...] = (
    ("GoogleProvider", "google"),
    ("EmailProvider", "email"),
    ("GitHubProvider", "github"),
    ("CredentialsProvider", "credentials"),
)

# Later entries take precedence when several adapters are imported.
_ADAPTERS: Tuple[Tuple[str, str], ...] = (
    ("MongoDBAdapter", "mongodb"),
    ("FirestoreAdapter", "firestore"),
    ("PrismaAdapter", "prisma"),
)

_CALLBACK_NAMES = ("session", "jwt", "signIn", "redirect")

_STRATEGY = re.compile(r"strategy:\s*[\"'](\w+)[\"']")
_FIREBASE_AUTH_IMPORT = re.compile(r"firebase/auth|getAuth\(")
_FIREBASE_SIGN_IN = re.compile(r"\bsignInWith\w*")

_NEXTAUTH_SETUP = """import NextAuth from "next-auth"
import { authOptions } from "@/libs/next-auth"

const handler = NextAuth(authOptions)
export { handler as GET, handler as POST }"""

_NEXTAUTH_USAGE = """import { useSession } from "next-auth/react"
const { data: session, status } = useSession()"""

_FIREBASE_SETUP = """import { initializeApp } from "firebase/app"
import { getAuth } from "firebase/auth"

const firebaseConfig = { /* config */ }
const app = initializeApp(firebaseConfig)
export const auth = getAuth(app)"""

_FIREBASE_USAGE = (
    'import { signInWithEmailAndPassword } from "firebase/auth"\n'
    'import { auth } from "@/libs/firebase"'
)

_COGNITO_SETUP = """// AWS Cognito configuration
const COGNITO_DOMAIN = process.env.COGNITO_DOMAIN
const COGNITO_CLIENT_ID = process.env.COGNITO_CLIENT_ID"""

_COGNITO_USAGE = "// Cognito authentication via API routes"


class AuthProviderExtractor(Extractor):
    """Detects exactly one auth provider, checked in a fixed order."""

    name = "auth_provider"

    def extract(self, corpus: SourceCorpus) -> AuthProvider:
        detectors: Sequence[Tuple[str, Callable[[SourceCorpus], Optional[AuthProvider]]]] = (
            ("next-auth", self._detect_next_auth),
            ("firebase", self._detect_firebase),
            ("cognito", self._detect_cognito),
        )
        for label, detector in detectors:
            provider = detector(corpus)
            if provider is not None:
                logger.debug("Auth provider detected: %s (%s)", label, provider.implementation.file_path)
                return provider
        return AuthProvider(type="unknown", name="Unknown")

    # ------------------------------------------------------------------
    # Detectors

    def _detect_next_auth(self, corpus: SourceCorpus) -> Optional[AuthProvider]:
        for pattern in NEXTAUTH_GLOBS:
            matches = corpus.list_files(pattern)
            if matches:
                return self._next_auth(corpus, matches[0])
        return None

    def _detect_firebase(self, corpus: SourceCorpus) -> Optional[AuthProvider]:
        for path in corpus.list_files(FIREBASE_GLOBS):
            content = corpus.read(path)
            if _FIREBASE_AUTH_IMPORT.search(content) and _FIREBASE_SIGN_IN.search(content):
                return AuthProvider(
                    type="firebase",
                    name="Firebase Authentication",
                    configuration={
                        "providers": ["firebase"],
                        "projectId": "process.env.FIREBASE_PROJECT_ID",
                    },
                    implementation=AuthProviderImplementation(
                        file_path=path,
                        template=content,
                        setup=_FIREBASE_SETUP,
                        usage=_FIREBASE_USAGE,
                    ),
                )
        return None

    def _detect_cognito(self, corpus: SourceCorpus) -> Optional[AuthProvider]:
        matches = corpus.filter_containing(SCRIPT_GLOBS, ("cognito", "COGNITO"))
        if not matches:
            return None
        path = matches[0]
        return AuthProvider(
            type="cognito",
            name="AWS Cognito",
            configuration={
                "providers": ["cognito"],
                "domain": "process.env.COGNITO_DOMAIN",
                "clientId": "process.env.COGNITO_CLIENT_ID",
            },
            implementation=AuthProviderImplementation(
                file_path=path,
                template=corpus.read(path),
                setup=_COGNITO_SETUP,
                usage=_COGNITO_USAGE,
            ),
        )

    def _next_auth(self, corpus: SourceCorpus, path: str) -> AuthProvider:
        content = corpus.read(path)

        providers = [label for marker, label in _NEXTAUTH_PROVIDERS if marker in content]
        adapter: Optional[str] = None
        for marker, label in _ADAPTERS:
            if marker in content:
                adapter = label

        strategy_match = _STRATEGY.search(content)
        strategy = strategy_match.group(1) if strategy_match else "jwt"

        callbacks: List[CallbackPattern] = []
        for callback_name in _CALLBACK_NAMES:
            body = extract_callback(content, callback_name)
            if body:
                callbacks.append(
                    CallbackPattern(name=callback_name, implementation=body, file_path=path)
                )

        template = code_block(content, "authOptions") or content
        return AuthProvider(
            type="next-auth",
            name="NextAuth.js",
            configuration={
                "providers": providers,
                "adapter": adapter,
                "strategy": strategy,
                "secret": "process.env.NEXTAUTH_SECRET",
            },
            implementation=AuthProviderImplementation(
                file_path=path,
                template=template,
                setup=_NEXTAUTH_SETUP,
                usage=_NEXTAUTH_USAGE,
            ),
            callbacks=callbacks,
        )


__all__ = ["AuthProviderExtractor", "NEXTAUTH_GLOBS"]
