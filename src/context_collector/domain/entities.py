"""Domain entities — pure data structures with no external dependencies."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class FileCategory(str, Enum):
    """Semantic bucket assigned to every scanned file."""

    CORE_CONFIGURATIONS = "core_configurations"
    APP_ROUTER_STRUCTURE = "app_router_structure"
    PAGES_ROUTER_STRUCTURE = "pages_router_structure"
    CLIENT_COMPONENTS = "client_components"
    SERVER_COMPONENTS = "server_components"
    HOOKS_UTILITIES = "hooks_utilities"
    DATABASE_SCHEMA = "database_schema"
    ZENSTACK_SCHEMA = "zenstack_schema"
    STATE_MANAGEMENT = "state_management"
    API_LAYER = "api_layer"
    DATA_FETCHING = "data_fetching"
    TRPC_PROCEDURES = "trpc_procedures"
    REST_API_ROUTES = "rest_api_routes"
    GRAPHQL_SCHEMA = "graphql_schema"
    NEXTAUTH_CONFIG = "nextauth_config"
    CLERK_CONFIG = "clerk_config"
    SUPABASE_AUTH = "supabase_auth"
    UI_COMPONENTS = "ui_components"
    TAILWIND_CONFIG = "tailwind_config"
    STYLING = "styling"
    DESIGN_SYSTEM = "design_system"
    TESTS = "tests"
    ENV_CONFIG = "env_config"
    PACKAGE_CONFIG = "package_config"
    BUILD_CONFIG = "build_config"
    DOCUMENTATION = "documentation"
    TYPESCRIPT_FILES = "typescript_files"
    OTHER_FILES = "other_files"


class RouterTopology(str, Enum):
    """Which routing directories the project uses."""

    PRIMARY = "app-router"
    LEGACY = "pages-router"
    MIXED = "mixed"
    UNKNOWN = "unknown"

    @property
    def has_primary(self) -> bool:
        return self in (RouterTopology.PRIMARY, RouterTopology.MIXED)

    @property
    def has_legacy(self) -> bool:
        return self in (RouterTopology.LEGACY, RouterTopology.MIXED)


class PackageManager(str, Enum):
    PNPM = "pnpm"
    YARN = "yarn"
    BUN = "bun"
    NPM = "npm"
    UNKNOWN = "unknown"


class LibraryRole(str, Enum):
    """Role a detected auxiliary library plays in the project."""

    AUTH = "auth"
    UI = "ui"
    DATABASE = "database"
    API = "api"
    STATE = "state"
    DATA_FETCHING = "data_fetching"
    STYLING = "styling"
    TESTING = "testing"
    UTILITY = "utility"


class StructureType(str, Enum):
    """Project archetype derived from the detected library roles."""

    T3_STACK = "t3-stack"
    NEXTJS_ZENSTACK = "nextjs-zenstack"
    NEXTJS_SUPABASE = "nextjs-supabase"
    NEXTJS_TRPC = "nextjs-trpc"
    NEXTJS_PRISMA = "nextjs-prisma"
    ENTERPRISE = "enterprise"
    ENHANCED = "enhanced"
    STANDARD = "standard"


class TailwindVersion(str, Enum):
    V3 = "v3"
    V4 = "v4"
    UNKNOWN = "unknown"


# ── Files ───────────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class FileStamp:
    """On-disk identity of a file, captured before its content is read."""

    mtime_ns: int
    size: int


@dataclass(frozen=True, slots=True)
class FileRecord:
    """A scanned file with its classification.

    Records are never mutated; classification and budget transforms build a
    new record with :func:`dataclasses.replace`.
    """

    path: str
    content: str
    size: int
    last_modified: datetime
    is_client_component: bool = False
    tokens: int = 0
    category: FileCategory = FileCategory.OTHER_FILES
    priority: int = 0
    libraries: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ScannedFile:
    """A raw scanner result — the unclassified record plus its stamp."""

    record: FileRecord
    stamp: FileStamp


# ── Project signature ───────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ProjectLibraries:
    """Detected library names grouped by role, in detection order."""

    auth: tuple[str, ...] = ()
    ui: tuple[str, ...] = ()
    database: tuple[str, ...] = ()
    api: tuple[str, ...] = ()
    state: tuple[str, ...] = ()
    data_fetching: tuple[str, ...] = ()
    styling: tuple[str, ...] = ()
    testing: tuple[str, ...] = ()
    utility: tuple[str, ...] = ()

    def for_role(self, role: LibraryRole) -> tuple[str, ...]:
        return getattr(self, role.value)

    def all_names(self) -> tuple[str, ...]:
        names: list[str] = []
        for role in LibraryRole:
            names.extend(self.for_role(role))
        return tuple(names)

    def detected_roles(self) -> frozenset[LibraryRole]:
        return frozenset(role for role in LibraryRole if self.for_role(role))


@dataclass(frozen=True, slots=True)
class ProjectConfigHints:
    """Secondary facts about the project layout."""

    prisma_schema_path: str | None = None
    zenstack_schema_path: str | None = None
    tailwind_config_path: str | None = None
    tailwind_version: TailwindVersion = TailwindVersion.UNKNOWN
    monorepo_tool: str | None = None


@dataclass(frozen=True, slots=True)
class ProjectSignature:
    """Technology signature of a project, computed once per scan."""

    package_manager: PackageManager = PackageManager.UNKNOWN
    framework_version: str = "unknown"
    router_topology: RouterTopology = RouterTopology.UNKNOWN
    structure_type: StructureType = StructureType.STANDARD
    confidence: int = 0
    libraries: ProjectLibraries = field(default_factory=ProjectLibraries)
    recommendations: tuple[str, ...] = ()
    config_hints: ProjectConfigHints = field(default_factory=ProjectConfigHints)
    manifest_name: str | None = None
    manifest_version: str | None = None

    @classmethod
    def unknown(cls) -> ProjectSignature:
        return cls()

    def fingerprint(self) -> str:
        """Short stable hash of the fields that influence classification."""
        payload = {
            "topology": self.router_topology.value,
            "libraries": {
                role.value: list(self.libraries.for_role(role)) for role in LibraryRole
            },
        }
        raw = json.dumps(payload, sort_keys=True).encode("utf-8")
        return hashlib.sha256(raw).hexdigest()[:16]


# ── Results ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ScanStats:
    total_files: int
    total_tokens: int
    total_size: int
    category_counts: dict[FileCategory, int]
    project_signature: ProjectSignature
    processing_time_ms: int
    detected_features: tuple[str, ...] = ()
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True, slots=True)
class ScanResult:
    """Output of a full scan: classified files (priority order) plus stats."""

    files: list[FileRecord]
    stats: ScanStats


@dataclass(frozen=True, slots=True)
class OptimizationReport:
    """Detailed outcome of running the budget optimizer."""

    files: list[FileRecord]
    excluded_count: int
    original_tokens: int
    optimized_tokens: int
    stage_exclusions: dict[str, int] = field(default_factory=dict)
    applied: tuple[str, ...] = ()

    @property
    def tokens_saved(self) -> int:
        return max(self.original_tokens - self.optimized_tokens, 0)


@dataclass(frozen=True, slots=True)
class CollectResult:
    """Budgeted selection for one root, as handed to downstream packaging."""

    files: list[FileRecord]
    excluded_count: int
    stats: ScanStats
    report: OptimizationReport
    from_cache: bool = False


@dataclass(frozen=True, slots=True)
class CacheStats:
    entry_count: int
    file_entry_count: int
    scan_entry_count: int
    hits: int = 0
    misses: int = 0
