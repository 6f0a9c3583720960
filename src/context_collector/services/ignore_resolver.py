"""Ignore resolution — gitignore-style patterns from every known source.

Each source is compiled to its own :class:`pathspec.GitIgnoreSpec` and a path
is ignored when *any* source matches it.  A later source can therefore only
add exclusions; a negation (``!pattern``) only re-includes paths within the
source that declares it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

from pathspec import GitIgnoreSpec

from context_collector.domain.exceptions import IgnoreSourceError

logger = logging.getLogger(__name__)

GITIGNORE = ".gitignore"

# Caller-specific conventions, each optional.
CONVENTION_FILES: tuple[str, ...] = (
    ".contextcollectorignore",
    ".cursorignore",
    ".codiumignore",
    ".clineignore",
    ".rooignore",
    ".windsurfignore",
    ".claudeignore",
    ".aiignore",
)

# Relative to the user's home directory; only the first one found is used.
GLOBAL_IGNORE_FILES: tuple[str, ...] = (
    ".gitignore_global",
    ".config/git/ignore",
)

BUILTIN_PATTERNS: tuple[str, ...] = (
    # VCS and editor state
    ".git/",
    ".svn/",
    ".hg/",
    ".idea/",
    ".vscode/",
    ".DS_Store",
    "Thumbs.db",
    # Dependencies
    "node_modules/",
    "bower_components/",
    "jspm_packages/",
    ".pnpm-store/",
    ".yarn/",
    "vendor/",
    # Build output and caches
    ".next/",
    ".nuxt/",
    ".svelte-kit/",
    ".turbo/",
    ".vercel/",
    ".netlify/",
    ".cache/",
    ".parcel-cache/",
    "dist/",
    "build/",
    "out/",
    "coverage/",
    ".nyc_output/",
    "storybook-static/",
    "*.tsbuildinfo",
    "next-env.d.ts",
    "*.min.js",
    "*.min.css",
    "*.map",
    "*.log",
    # Lockfiles
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "bun.lockb",
    "bun.lock",
    # Binary and media
    "*.png",
    "*.jpg",
    "*.jpeg",
    "*.gif",
    "*.bmp",
    "*.ico",
    "*.webp",
    "*.avif",
    "*.svg",
    "*.mp3",
    "*.mp4",
    "*.mov",
    "*.wav",
    "*.woff",
    "*.woff2",
    "*.ttf",
    "*.otf",
    "*.eot",
    "*.pdf",
    "*.zip",
    "*.tar",
    "*.gz",
    "*.7z",
    "*.exe",
    "*.dll",
    "*.so",
    "*.dylib",
    "*.wasm",
    # Secret-adjacent
    ".env",
    ".env.*",
    "!.env.example",
    "!.env.*.example",
    ".ssh/",
    ".aws/",
    ".gnupg/",
    "*.pem",
    "*.key",
    "*.p12",
    # Ignore files themselves
    GITIGNORE,
    *CONVENTION_FILES,
)


@dataclass(frozen=True, slots=True)
class _Source:
    name: str
    spec: GitIgnoreSpec
    pattern_count: int


@dataclass(frozen=True, slots=True)
class IgnoreStats:
    """What the resolver loaded on its last (re)build."""

    has_gitignore: bool
    global_ignore_file: str | None
    convention_files: tuple[str, ...]
    sources: tuple[str, ...]
    total_patterns: int


def parse_patterns(text: str) -> list[str]:
    """Return the non-blank, non-comment lines of a gitignore-style document."""
    patterns: list[str] = []
    for line in text.splitlines():
        stripped = line.rstrip()
        if not stripped.strip() or stripped.lstrip().startswith("#"):
            continue
        patterns.append(stripped.strip())
    return patterns


def _compile(name: str, patterns: Sequence[str]) -> _Source:
    try:
        spec = GitIgnoreSpec.from_lines(patterns)
    except ValueError as exc:
        raise IgnoreSourceError(f"Invalid pattern in {name}: {exc}") from exc
    return _Source(name=name, spec=spec, pattern_count=len(patterns))


def _load_file(path: Path, name: str) -> _Source | None:
    """Compile one ignore file.  ``None`` if the file does not exist."""
    if not path.is_file():
        return None
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise IgnoreSourceError(f"Could not read {path}: {exc}") from exc
    return _compile(name, parse_patterns(text))


class IgnoreResolver:
    """Merged ignore predicate for one project root.

    Parameters
    ----------
    root:
        Absolute project root.  Paths passed to :meth:`is_ignored` are
        relative to it.
    additional_patterns:
        Programmatic patterns supplied by the caller, applied last.
    home:
        Directory searched for the global ignore file.  Defaults to the
        current user's home directory.
    """

    def __init__(
        self,
        root: Path,
        *,
        additional_patterns: Iterable[str] = (),
        home: Path | None = None,
    ) -> None:
        self._root = Path(root)
        self._additional = tuple(p for p in additional_patterns if p.strip())
        self._home = home if home is not None else Path.home()
        self._sources: tuple[_Source, ...] = ()
        self._stats = IgnoreStats(False, None, (), (), 0)
        self.refresh()

    # ── Public API ──────────────────────────────────────────────────────

    def is_ignored(self, relative_path: str, *, is_dir: bool = False) -> bool:
        """Return *True* if *relative_path* (posix, relative to root) is excluded."""
        rel = relative_path.replace("\\", "/").strip("/")
        if not rel:
            return False
        candidates = (rel + "/", rel) if is_dir else (rel,)
        return any(
            source.spec.match_file(candidate)
            for source in self._sources
            for candidate in candidates
        )

    def refresh(self) -> None:
        """Rebuild every source from disk.  Safe to call at any time."""
        sources: list[_Source] = [_compile("builtin", BUILTIN_PATTERNS)]

        gitignore = self._try_load(self._root / GITIGNORE, GITIGNORE)
        if gitignore is not None:
            sources.append(gitignore)

        global_name: str | None = None
        for rel in GLOBAL_IGNORE_FILES:
            candidate = self._home / rel
            if not candidate.is_file():
                continue
            loaded = self._try_load(candidate, f"global:{rel}")
            if loaded is not None:
                sources.append(loaded)
                global_name = str(candidate)
            break

        conventions: list[str] = []
        for name in CONVENTION_FILES:
            loaded = self._try_load(self._root / name, name)
            if loaded is not None:
                sources.append(loaded)
                conventions.append(name)

        if self._additional:
            try:
                sources.append(_compile("additional", self._additional))
            except IgnoreSourceError as exc:
                logger.warning("Skipping additional ignore patterns: %s", exc)

        self._sources = tuple(sources)
        self._stats = IgnoreStats(
            has_gitignore=gitignore is not None,
            global_ignore_file=global_name,
            convention_files=tuple(conventions),
            sources=tuple(s.name for s in sources),
            total_patterns=sum(s.pattern_count for s in sources),
        )
        logger.debug(
            "Ignore resolver for %s built from %d source(s), %d pattern(s)",
            self._root,
            len(sources),
            self._stats.total_patterns,
        )

    def describe(self) -> IgnoreStats:
        return self._stats

    # ── Internals ───────────────────────────────────────────────────────

    @staticmethod
    def _try_load(path: Path, name: str) -> _Source | None:
        try:
            return _load_file(path, name)
        except IgnoreSourceError as exc:
            logger.warning("Skipping ignore source %s: %s", name, exc)
            return None
