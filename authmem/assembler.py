"""Assemble aggregated facts into the canonical AuthMemory record."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence, Tuple

from .aggregator import AggregatedFacts
from .corpus import SourceCorpus
from .logging import get_logger
from .models import (
    AuthMemory,
    AuthProvider,
    Instructions,
    Metadata,
    SessionStorage,
    TokenStrategy,
    Utilities,
)

logger = get_logger("assembler")

Clock = Callable[[], datetime]

MANIFEST_FILE = "package.json"

# Checked in order; the first declared dependency decides.
FRAMEWORK_DEPENDENCIES: Tuple[Tuple[str, str], ...] = (
    ("next", "nextjs"),
    ("react", "react"),
    ("express", "express"),
)

AUTH_HELPER_FILES = (
    "libs/auth.ts",
    "lib/auth.ts",
    "utils/auth.ts",
    "helpers/auth.ts",
    "libs/middleware.ts",
    "lib/middleware.ts",
)
AUTH_HOOK_FILES = (
    "hooks/useAuth.ts",
    "hooks/useAuth.tsx",
    "contexts/AuthContext.tsx",
    "context/AuthContext.tsx",
)
AUTH_FUNCTION_FILES = (
    "libs/next-auth.ts",
    "lib/next-auth.ts",
    "libs/firebase.ts",
    "lib/firebase.ts",
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a ``Z`` suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    stamp = moment.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


def detect_framework(corpus: SourceCorpus) -> str:
    if not corpus.exists(MANIFEST_FILE):
        return "unknown"
    try:
        manifest = json.loads(corpus.read(MANIFEST_FILE))
    except ValueError as exc:
        logger.debug("Ignoring unreadable %s: %s", MANIFEST_FILE, exc)
        return "unknown"
    dependencies = manifest.get("dependencies") if isinstance(manifest, dict) else None
    if not isinstance(dependencies, dict):
        return "unknown"
    for package, framework in FRAMEWORK_DEPENDENCIES:
        if dependencies.get(package):
            return framework
    return "unknown"


def _present(corpus: SourceCorpus, candidates: Sequence[str]) -> List[str]:
    return [path for path in candidates if corpus.exists(path)]


def collect_utilities(corpus: SourceCorpus) -> Utilities:
    return Utilities(
        auth_helpers=_present(corpus, AUTH_HELPER_FILES),
        common_hooks=_present(corpus, AUTH_HOOK_FILES),
        auth_functions=_present(corpus, AUTH_FUNCTION_FILES),
    )


# ---------------------------------------------------------------------------
# Instruction templates


def setup_instructions(
    provider: AuthProvider, session: SessionStorage, tokens: TokenStrategy
) -> List[str]:
    steps: List[str] = []
    if provider.type == "next-auth":
        steps.append("Install NextAuth: npm install next-auth")
        steps.append("Create auth configuration file")
        steps.append("Set up environment variables (NEXTAUTH_SECRET, provider credentials)")
        adapter = provider.configuration.get("adapter")
        if adapter:
            steps.append(f"Install and configure {adapter} adapter")

    if session.strategy == "jwt":
        steps.append("Configure JWT session strategy")
    elif session.strategy == "database":
        steps.append("Set up database adapter for sessions")

    if tokens.refresh_token is not None:
        steps.append("Implement refresh token strategy")

    return [f"{index}. {step}" for index, step in enumerate(steps, start=1)]


def usage_instructions(
    provider: AuthProvider, session: SessionStorage, tokens: TokenStrategy
) -> List[str]:
    notes: List[str] = []
    if provider.type == "next-auth":
        notes.append("Use useSession() hook to access session data")
        notes.append("Use signIn() and signOut() from next-auth/react")
    if session.strategy == "jwt":
        notes.append("Session is stored in JWT token (httpOnly cookie)")
    if tokens.refresh_strategy.type != "none":
        notes.append(f"Token refresh strategy: {tokens.refresh_strategy.type}")
    return notes


def security_instructions(tokens: TokenStrategy) -> List[str]:
    notes = [
        "Always use httpOnly cookies for tokens",
        "Set secure flag in production",
        'Use sameSite: "lax" or "strict" for cookies',
    ]
    if tokens.access_token.lifetime:
        notes.append(f"Access token lifetime: {tokens.access_token.lifetime} seconds")
    if tokens.refresh_token is not None and tokens.refresh_token.lifetime:
        notes.append(f"Refresh token lifetime: {tokens.refresh_token.lifetime} seconds")
    notes.append("Never expose tokens in client-side code")
    notes.append("Always verify tokens on the server side")
    return notes


def build_instructions(facts: AggregatedFacts) -> Instructions:
    return Instructions(
        setup=setup_instructions(facts.auth_provider, facts.session_storage, facts.token_strategy),
        usage=usage_instructions(facts.auth_provider, facts.session_storage, facts.token_strategy),
        security=security_instructions(facts.token_strategy),
    )


class Assembler:
    """Builds the AuthMemory record; the clock is injectable for reproducible output."""

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock = clock or utc_now

    def assemble(
        self,
        corpus: SourceCorpus,
        facts: AggregatedFacts,
        *,
        project_name: str,
        source_path: str,
    ) -> AuthMemory:
        metadata = Metadata(
            project_name=project_name,
            extracted_at=format_timestamp(self._clock()),
            framework=detect_framework(corpus),
            source_path=source_path,
        )
        return AuthMemory(
            metadata=metadata,
            auth_provider=facts.auth_provider,
            session_storage=facts.session_storage,
            token_strategy=facts.token_strategy,
            role_model=facts.role_model,
            permission_checks=facts.permission_checks,
            utilities=collect_utilities(corpus),
            instructions=build_instructions(facts),
        )


__all__ = [
    "Assembler",
    "Clock",
    "build_instructions",
    "collect_utilities",
    "detect_framework",
    "format_timestamp",
]
