"""Rule-cascade classification — assign a category and priority to each file.

:data:`RULES` is evaluated top to bottom and the first rule whose matcher
accepts the file *and* whose router gate admits the project topology wins.
The order is authored most-specific-first and is part of the contract:
exact filenames and well-known paths come before generic extension rules.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from context_collector.domain.entities import (
    FileCategory,
    FileRecord,
    ProjectSignature,
    RouterTopology,
)
from context_collector.services.directory_scanner import has_client_directive
from context_collector.services.library_patterns import patterns_by_name
from context_collector.services.token_budget import TokenCounter

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FileFacts:
    """The signals a matcher may look at."""

    path: str  # lower-cased, posix
    name: str  # original basename
    is_client: bool

    @classmethod
    def of(cls, path: str, content: str) -> FileFacts:
        posix = path.replace("\\", "/")
        return cls(
            path=posix.lower(),
            name=posix.rsplit("/", maxsplit=1)[-1],
            is_client=has_client_directive(content),
        )


Matcher = Callable[[FileFacts], bool]


class RouterGate(str, Enum):
    """Restricts a rule to projects with a given router topology."""

    PRIMARY = "primary"
    LEGACY = "legacy"
    UNKNOWN = "unknown"

    def allows(self, topology: RouterTopology) -> bool:
        if self is RouterGate.PRIMARY:
            return topology.has_primary
        if self is RouterGate.LEGACY:
            return topology.has_legacy
        return topology is RouterTopology.UNKNOWN


@dataclass(frozen=True, slots=True)
class ClassificationRule:
    name: str
    matcher: Matcher
    category: FileCategory
    priority: int
    gate: RouterGate | None = None

    def applies(self, facts: FileFacts, topology: RouterTopology) -> bool:
        if self.gate is not None and not self.gate.allows(topology):
            return False
        return self.matcher(facts)


@dataclass(frozen=True, slots=True)
class Classification:
    category: FileCategory
    priority: int
    rule: str


# ── Matcher combinators ─────────────────────────────────────────────────────


def contains(*fragments: str) -> Matcher:
    """Any fragment occurs in the lower-cased path."""
    return lambda f: any(frag in f.path for frag in fragments)


def named(*names: str) -> Matcher:
    """Basename equals one of *names* exactly."""
    wanted = frozenset(names)
    return lambda f: f.name in wanted


def under(*directories: str) -> Matcher:
    """Path lies below one of *directories* (a path segment, not a substring)."""
    prefixes = tuple(d.rstrip("/") + "/" for d in directories)
    return lambda f: any(f.path.startswith(p) or f"/{p}" in f.path for p in prefixes)


def all_of(*matchers: Matcher) -> Matcher:
    return lambda f: all(m(f) for m in matchers)


def any_of(*matchers: Matcher) -> Matcher:
    return lambda f: any(m(f) for m in matchers)


def none_of(*matchers: Matcher) -> Matcher:
    return lambda f: not any(m(f) for m in matchers)


def client_side(f: FileFacts) -> bool:
    return f.is_client


def hook_module(f: FileFacts) -> bool:
    return f.name.startswith("use") and f.name[3:4].isupper() and f.name.endswith((".ts", ".tsx"))


def always(_: FileFacts) -> bool:
    return True


_APP = under("app")
_PAGES = under("pages")
_CORE = FileCategory.CORE_CONFIGURATIONS
_R = ClassificationRule


# ── The cascade ─────────────────────────────────────────────────────────────

RULES: tuple[ClassificationRule, ...] = (
    # Core configuration
    _R("next-config", contains("next.config."), _CORE, 100),
    _R("manifest", named("package.json"), _CORE, 95),
    _R("ts-config", contains("tsconfig.json", "jsconfig.json"), _CORE, 90),
    _R("middleware", contains("middleware."), _CORE, 88),
    _R("instrumentation", contains("instrumentation."), _CORE, 85),
    _R("env-schema", any_of(contains("src/env."), named("env.mjs", "env.js")), _CORE, 87),
    # Database schemas
    _R("zenstack-schema", contains(".zmodel"), FileCategory.ZENSTACK_SCHEMA, 85),
    _R("prisma-schema", any_of(contains("prisma/schema.prisma"), named("schema.prisma")),
       FileCategory.DATABASE_SCHEMA, 83),
    _R("drizzle-config", contains("drizzle.config."), FileCategory.DATABASE_SCHEMA, 81),
    # Authentication
    _R("server-auth", contains("src/server/auth.", "src/lib/auth."), FileCategory.NEXTAUTH_CONFIG, 82),
    _R("clerk", all_of(contains("clerk"), contains("middleware", "config")), FileCategory.CLERK_CONFIG, 80),
    _R("supabase-auth", all_of(contains("supabase"), contains("auth")), FileCategory.SUPABASE_AUTH, 78),
    _R("auth-routes", contains("pages/api/auth/", "app/api/auth/"), FileCategory.NEXTAUTH_CONFIG, 76),
    # API layer
    _R("trpc-init", contains("src/server/api/trpc."), FileCategory.TRPC_PROCEDURES, 80),
    _R("trpc-routers", contains("src/server/api/routers/"), FileCategory.TRPC_PROCEDURES, 78),
    _R("trpc-root", contains("src/server/api/root."), FileCategory.TRPC_PROCEDURES, 76),
    _R("graphql-schema", any_of(contains("graphql/schema", "schema.graphql"), named("schema.gql")),
       FileCategory.GRAPHQL_SCHEMA, 75),
    _R("trpc-client", contains("src/utils/api.", "src/lib/api."), FileCategory.TRPC_PROCEDURES, 72),
    # UI and styling configuration
    _R("tailwind-config", contains("tailwind.config.", "postcss.config."), FileCategory.TAILWIND_CONFIG, 75),
    _R("ui-config", any_of(named("components.json"), contains("ui.config")), FileCategory.UI_COMPONENTS, 73),
    _R("theme", all_of(contains("theme."), contains(".ts", ".js")), FileCategory.DESIGN_SYSTEM, 70),
    # Primary router
    _R("app-layout-page", all_of(_APP, contains("layout.", "page.")),
       FileCategory.APP_ROUTER_STRUCTURE, 74, RouterGate.PRIMARY),
    _R("app-boundaries", all_of(_APP, contains("loading.", "error.", "not-found.")),
       FileCategory.APP_ROUTER_STRUCTURE, 72, RouterGate.PRIMARY),
    _R("app-route-handler", all_of(_APP, contains("route.")),
       FileCategory.APP_ROUTER_STRUCTURE, 70, RouterGate.PRIMARY),
    _R("app-template", all_of(_APP, contains("template.", "global-error.")),
       FileCategory.APP_ROUTER_STRUCTURE, 68, RouterGate.PRIMARY),
    # Legacy router
    _R("pages-app-document", contains("pages/_app.", "pages/_document."),
       FileCategory.PAGES_ROUTER_STRUCTURE, 72, RouterGate.LEGACY),
    _R("pages-api", all_of(under("pages/api"), none_of(contains("auth/"))),
       FileCategory.REST_API_ROUTES, 70, RouterGate.LEGACY),
    _R("pages", _PAGES, FileCategory.PAGES_ROUTER_STRUCTURE, 65, RouterGate.LEGACY),
    # Topology unknown: best-effort path fallback
    _R("fallback-app-layout-page", all_of(_APP, contains("layout.", "page.")),
       FileCategory.APP_ROUTER_STRUCTURE, 74, RouterGate.UNKNOWN),
    _R("fallback-pages", all_of(_PAGES, none_of(contains("api/"))),
       FileCategory.PAGES_ROUTER_STRUCTURE, 65, RouterGate.UNKNOWN),
    # Data layer
    _R("prisma-seed-migration", all_of(contains("prisma/"), contains("seed", "migration")),
       FileCategory.DATABASE_SCHEMA, 68),
    _R("db-client", contains("src/server/db.", "src/lib/db."), FileCategory.DATABASE_SCHEMA, 65),
    _R("migrations", contains("drizzle/", "migrations/"), FileCategory.DATABASE_SCHEMA, 62),
    _R("queries", contains("query", "mutation"), FileCategory.DATA_FETCHING, 58),
    _R("swr-apollo", contains("swr", "apollo"), FileCategory.DATA_FETCHING, 55),
    _R("server-modules", all_of(contains("src/server/"), none_of(contains("api/"))), FileCategory.API_LAYER, 58),
    _R("services", contains("services/", "api/"), FileCategory.API_LAYER, 55),
    # Tests come before components so component tests are not mistaken for components
    _R("unit-tests", contains(".test.", ".spec.", "__tests__/"), FileCategory.TESTS, 28),
    _R("e2e-tests", contains("cypress/", "playwright/", "e2e/"), FileCategory.TESTS, 25),
    # Components
    _R("ui-client-component", all_of(contains("components/ui/"), client_side),
       FileCategory.CLIENT_COMPONENTS, 55),
    _R("ui-server-component", contains("components/ui/"), FileCategory.SERVER_COMPONENTS, 52),
    _R("client-component", all_of(contains("component", "/ui/"), client_side),
       FileCategory.CLIENT_COMPONENTS, 52),
    _R("server-component", contains("component", "/ui/"), FileCategory.SERVER_COMPONENTS, 50),
    # Hooks and utilities
    _R("hooks", any_of(contains("hook"), hook_module), FileCategory.HOOKS_UTILITIES, 50),
    _R("utilities", contains("util", "helper", "src/lib/"), FileCategory.HOOKS_UTILITIES, 45),
    # State
    _R("state", contains("store", "context", "reducer"), FileCategory.STATE_MANAGEMENT, 42),
    _R("state-libraries", contains("zustand", "redux", "jotai", "valtio", "recoil", "mobx"),
       FileCategory.STATE_MANAGEMENT, 40),
    # Styling
    _R("global-styles", contains("globals.css", "global.css"), FileCategory.STYLING, 38),
    _R("stylesheets", contains(".css", ".scss", ".sass", ".less"), FileCategory.STYLING, 32),
    # Remaining configuration
    _R("env-config", contains(".env.example", ".env.local.example", "config/"), FileCategory.ENV_CONFIG, 22),
    _R("package-config", contains("pnpm-workspace", ".yarnrc", "bunfig"), FileCategory.PACKAGE_CONFIG, 21),
    _R("build-config", contains("docker", "vercel.json", ".github/"), FileCategory.BUILD_CONFIG, 20),
    # Documentation and source
    _R("docs", contains(".md", ".mdx"), FileCategory.DOCUMENTATION, 16),
    _R("scripts", contains(".ts", ".tsx", ".js", ".jsx"), FileCategory.TYPESCRIPT_FILES, 12),
    _R("other", always, FileCategory.OTHER_FILES, 10),
)


def match_rule(
    facts: FileFacts,
    topology: RouterTopology,
    rules: tuple[ClassificationRule, ...] = RULES,
) -> ClassificationRule:
    """Return the first rule that applies; the catch-all guarantees a match."""
    for rule in rules:
        if rule.applies(facts, topology):
            return rule
    raise LookupError(f"No classification rule matched {facts.path!r}")


class FileClassifier:
    """Classifies files against a fixed :class:`ProjectSignature`."""

    def __init__(
        self,
        signature: ProjectSignature,
        rules: tuple[ClassificationRule, ...] = RULES,
    ) -> None:
        self._signature = signature
        self._rules = rules
        known = patterns_by_name()
        self._keywords: list[tuple[str, tuple[str, ...]]] = [
            (name, known[name].keywords)
            for name in signature.libraries.all_names()
            if name in known and known[name].keywords
        ]

    def classify(self, path: str, content: str) -> Classification:
        facts = FileFacts.of(path, content)
        rule = match_rule(facts, self._signature.router_topology, self._rules)
        return Classification(category=rule.category, priority=rule.priority, rule=rule.name)

    def library_tags(self, path: str) -> tuple[str, ...]:
        """Names of detected libraries whose keywords occur in *path*."""
        lower = path.lower()
        return tuple(
            name for name, keywords in self._keywords if any(k in lower for k in keywords)
        )

    def classify_record(self, record: FileRecord, counter: TokenCounter) -> FileRecord:
        """Return a new record carrying category, priority, tokens and tags."""
        result = self.classify(record.path, record.content)
        return dataclasses.replace(
            record,
            category=result.category,
            priority=result.priority,
            tokens=counter.count(record.content),
            is_client_component=has_client_directive(record.content),
            libraries=self.library_tags(record.path),
        )
