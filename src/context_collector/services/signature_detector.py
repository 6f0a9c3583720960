"""Project signature detection — manifest parsing plus filesystem probes.

No step in this module ever aborts a scan.  Each sub-detection degrades to an
"unknown" or empty value and logs a warning instead.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Callable, Mapping

from context_collector.domain.entities import (
    LibraryRole,
    PackageManager,
    ProjectConfigHints,
    ProjectLibraries,
    ProjectSignature,
    RouterTopology,
    StructureType,
    TailwindVersion,
)
from context_collector.domain.exceptions import ManifestError
from context_collector.services.library_patterns import LIBRARY_PATTERNS, LibraryPattern

logger = logging.getLogger(__name__)

MANIFEST = "package.json"
FRAMEWORK_DEPENDENCY = "next"

# First match wins.
LOCK_FILES: tuple[tuple[str, PackageManager], ...] = (
    ("pnpm-lock.yaml", PackageManager.PNPM),
    ("yarn.lock", PackageManager.YARN),
    ("bun.lockb", PackageManager.BUN),
    ("bun.lock", PackageManager.BUN),
    ("package-lock.json", PackageManager.NPM),
)

PRIMARY_ROUTER_DIRS: tuple[str, ...] = ("app", "src/app")
LEGACY_ROUTER_DIRS: tuple[str, ...] = ("pages", "src/pages")

MONOREPO_MARKERS: tuple[tuple[str, str], ...] = (
    ("turbo.json", "turborepo"),
    ("pnpm-workspace.yaml", "pnpm-workspaces"),
    ("lerna.json", "lerna"),
    ("nx.json", "nx"),
    ("rush.json", "rush"),
)

_PRISMA_SCHEMAS = ("prisma/schema.prisma", "schema.prisma", "src/prisma/schema.prisma")
_ZENSTACK_SCHEMAS = ("schema.zmodel", "prisma/schema.zmodel", "src/schema.zmodel")
_TAILWIND_CONFIGS = (
    "tailwind.config.ts",
    "tailwind.config.js",
    "tailwind.config.mjs",
    "tailwind.config.cjs",
)

_VERSION_RE = re.compile(r"(\d+)(?:\.(\d+))?")

# ── Confidence policy ───────────────────────────────────────────────────────

CONFIDENCE_BASE = 50

ROLE_WEIGHTS: dict[LibraryRole, int] = {
    LibraryRole.AUTH: 10,
    LibraryRole.UI: 8,
    LibraryRole.DATABASE: 15,
    LibraryRole.API: 12,
    LibraryRole.DATA_FETCHING: 5,
}

STRUCTURE_BONUS: dict[StructureType, int] = {
    StructureType.T3_STACK: 20,
    StructureType.NEXTJS_ZENSTACK: 15,
    StructureType.ENTERPRISE: 10,
}


# ── Structure-type decision list ────────────────────────────────────────────

StructurePredicate = Callable[[ProjectLibraries, ProjectConfigHints], bool]


def _has(role: LibraryRole, name: str) -> StructurePredicate:
    return lambda libs, _hints: name in libs.for_role(role)


def _t3(libs: ProjectLibraries, hints: ProjectConfigHints) -> bool:
    return (
        "tRPC" in libs.api
        and "Prisma" in libs.database
        and ("NextAuth.js" in libs.auth or "Auth.js" in libs.auth)
    )


def _enterprise(libs: ProjectLibraries, hints: ProjectConfigHints) -> bool:
    return (
        len(libs.auth) > 1
        or len(libs.ui) > 2
        or len(libs.database) > 1
        or hints.monorepo_tool is not None
    )


def _enhanced(libs: ProjectLibraries, hints: ProjectConfigHints) -> bool:
    return bool(libs.database or libs.ui or libs.auth)


STRUCTURE_DECISIONS: tuple[tuple[StructurePredicate, StructureType], ...] = (
    (_t3, StructureType.T3_STACK),
    (_has(LibraryRole.DATABASE, "ZenStack"), StructureType.NEXTJS_ZENSTACK),
    (_has(LibraryRole.DATABASE, "Supabase"), StructureType.NEXTJS_SUPABASE),
    (_has(LibraryRole.API, "tRPC"), StructureType.NEXTJS_TRPC),
    (_has(LibraryRole.DATABASE, "Prisma"), StructureType.NEXTJS_PRISMA),
    (_enterprise, StructureType.ENTERPRISE),
    (_enhanced, StructureType.ENHANCED),
)


def determine_structure_type(
    libraries: ProjectLibraries, hints: ProjectConfigHints
) -> StructureType:
    """Walk :data:`STRUCTURE_DECISIONS` and return the first matching archetype."""
    for predicate, result in STRUCTURE_DECISIONS:
        if predicate(libraries, hints):
            return result
    return StructureType.STANDARD


def calculate_confidence(libraries: ProjectLibraries, structure: StructureType) -> int:
    score = CONFIDENCE_BASE
    for role, weight in ROLE_WEIGHTS.items():
        score += len(libraries.for_role(role)) * weight
    score += STRUCTURE_BONUS.get(structure, 0)
    return min(score, 100)


# ── Pure helpers ────────────────────────────────────────────────────────────


def normalize_version(spec: str | None) -> str:
    """Reduce a dependency range like ``^14.2.3`` to ``14.2``.

    Only the major is kept when no numeric minor is declared (``14``,
    ``14.x``).  Non-numeric specifiers (``latest``, ``workspace:*``) yield ``"unknown"``.
    """
    if not spec or not isinstance(spec, str):
        return "unknown"
    cleaned = spec.strip().lstrip("^~>=<v ")
    match = _VERSION_RE.match(cleaned)
    if not match:
        return "unknown"
    major, minor = match.group(1), match.group(2)
    if minor is None:
        return str(int(major))
    return f"{int(major)}.{int(minor)}"


def merged_dependencies(manifest: Mapping[str, Any]) -> dict[str, str]:
    deps: dict[str, str] = {}
    for key in ("peerDependencies", "devDependencies", "dependencies"):
        section = manifest.get(key)
        if isinstance(section, dict):
            deps.update({str(k): str(v) for k, v in section.items()})
    return deps


def tailwind_version(deps: Mapping[str, str]) -> TailwindVersion:
    major = normalize_version(deps.get("tailwindcss")).split(".")[0]
    if major == "4":
        return TailwindVersion.V4
    if major == "3":
        return TailwindVersion.V3
    return TailwindVersion.UNKNOWN


def build_recommendations(
    libraries: ProjectLibraries, structure: StructureType
) -> tuple[str, ...]:
    recs: list[str] = []
    if structure is StructureType.T3_STACK:
        recs.append("Focus on tRPC procedures, Prisma schema, and NextAuth configuration")
        recs.append("Include T3 environment configuration and server setup")
    if "ZenStack" in libraries.database:
        recs.append("Include ZenStack schema files and access policies")
    if "Prisma" in libraries.database:
        recs.append("Include Prisma schema and migration files")
    if "Drizzle ORM" in libraries.database:
        recs.append("Include Drizzle config and schema definitions")
    if "shadcn/ui" in libraries.ui:
        recs.append("Include shadcn/ui components and components.json")
    if "Clerk" in libraries.auth:
        recs.append("Include Clerk authentication setup and middleware")
    if "TanStack Query" in libraries.data_fetching:
        recs.append("Include query client configuration and query definitions")
    if "Tailwind CSS" in libraries.styling:
        recs.append("Include Tailwind configuration and global styles")
    return tuple(recs)


# ── Detector ────────────────────────────────────────────────────────────────


class SignatureDetector:
    """Builds a :class:`ProjectSignature` for one root."""

    def __init__(self, root: Path, *, patterns: tuple[LibraryPattern, ...] = LIBRARY_PATTERNS) -> None:
        self._root = Path(root)
        self._patterns = patterns

    def detect(self) -> ProjectSignature:
        if not self._root.is_dir():
            logger.warning("Project root %s is not a directory; signature is unknown", self._root)
            return ProjectSignature.unknown()

        manifest = self._safe(self.load_manifest, {}, "manifest")
        deps = merged_dependencies(manifest)

        package_manager = self._safe(
            lambda: self.detect_package_manager(has_manifest=bool(manifest)),
            PackageManager.UNKNOWN,
            "package manager",
        )
        libraries = self._safe(lambda: self.detect_libraries(deps), ProjectLibraries(), "libraries")
        topology = self._safe(self.detect_router_topology, RouterTopology.UNKNOWN, "router topology")
        hints = self._safe(
            lambda: self.detect_config_hints(manifest, deps), ProjectConfigHints(), "config hints"
        )

        structure = determine_structure_type(libraries, hints)
        confidence = calculate_confidence(libraries, structure)

        signature = ProjectSignature(
            package_manager=package_manager,
            framework_version=normalize_version(deps.get(FRAMEWORK_DEPENDENCY)),
            router_topology=topology,
            structure_type=structure,
            confidence=confidence,
            libraries=libraries,
            recommendations=build_recommendations(libraries, structure),
            config_hints=hints,
            manifest_name=_str_or_none(manifest.get("name")),
            manifest_version=_str_or_none(manifest.get("version")),
        )
        logger.info(
            "Detected %s project (framework %s, %s, %s) with confidence %d",
            structure.value,
            signature.framework_version,
            package_manager.value,
            topology.value,
            confidence,
        )
        return signature

    # ── Sub-detections ──────────────────────────────────────────────────

    def load_manifest(self) -> dict[str, Any]:
        """Return the parsed manifest, ``{}`` when absent or malformed."""
        path = self._root / MANIFEST
        if not path.is_file():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ManifestError(f"{MANIFEST} must contain a JSON object")
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, ManifestError) as exc:
            logger.warning("Ignoring malformed %s: %s", path, exc)
            return {}
        return data

    def detect_package_manager(self, *, has_manifest: bool) -> PackageManager:
        for lock_file, manager in LOCK_FILES:
            if (self._root / lock_file).is_file():
                return manager
        return PackageManager.NPM if has_manifest else PackageManager.UNKNOWN

    def detect_libraries(self, deps: Mapping[str, str]) -> ProjectLibraries:
        found: dict[LibraryRole, list[str]] = {role: [] for role in LibraryRole}
        for pattern in self._patterns:
            if pattern.name in found[pattern.role]:
                continue
            if self._matches(pattern, deps):
                found[pattern.role].append(pattern.name)
        return ProjectLibraries(**{role.value: tuple(names) for role, names in found.items()})

    def detect_router_topology(self) -> RouterTopology:
        primary = any((self._root / d).is_dir() for d in PRIMARY_ROUTER_DIRS)
        legacy = any((self._root / d).is_dir() for d in LEGACY_ROUTER_DIRS)
        if primary and legacy:
            return RouterTopology.MIXED
        if primary:
            return RouterTopology.PRIMARY
        if legacy:
            return RouterTopology.LEGACY
        return RouterTopology.UNKNOWN

    def detect_config_hints(
        self, manifest: Mapping[str, Any], deps: Mapping[str, str]
    ) -> ProjectConfigHints:
        monorepo: str | None = None
        for marker, tool in MONOREPO_MARKERS:
            if (self._root / marker).is_file():
                monorepo = tool
                break
        if monorepo is None and manifest.get("workspaces"):
            monorepo = "workspaces"

        return ProjectConfigHints(
            prisma_schema_path=self._first_existing(_PRISMA_SCHEMAS),
            zenstack_schema_path=self._first_existing(_ZENSTACK_SCHEMAS),
            tailwind_config_path=self._first_existing(_TAILWIND_CONFIGS),
            tailwind_version=tailwind_version(deps),
            monorepo_tool=monorepo,
        )

    # ── Internals ───────────────────────────────────────────────────────

    def _matches(self, pattern: LibraryPattern, deps: Mapping[str, str]) -> bool:
        if any(dep in deps for dep in pattern.dependencies):
            return True
        if any((self._root / f).is_file() for f in pattern.files):
            return True
        return any((self._root / d).is_dir() for d in pattern.directories)

    def _first_existing(self, candidates: tuple[str, ...]) -> str | None:
        for rel in candidates:
            if (self._root / rel).is_file():
                return rel
        return None

    @staticmethod
    def _safe(func: Callable[[], Any], fallback: Any, what: str) -> Any:
        try:
            return func()
        except OSError as exc:
            logger.warning("Could not detect %s, using fallback: %s", what, exc)
            return fallback


def _str_or_none(value: object) -> str | None:
    return value if isinstance(value, str) else None
