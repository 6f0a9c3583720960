"""Directory traversal — walk the tree and read eligible files.

The walk itself is synchronous and ordered and runs in one worker thread;
the file reads then fan out, bounded by a semaphore so large trees never
exhaust file descriptors.
"""

from __future__ import annotations

import asyncio
import logging
import os
from datetime import datetime, timezone
from pathlib import Path

from context_collector.domain.entities import FileRecord, FileStamp, ScannedFile
from context_collector.domain.exceptions import RootUnavailableError
from context_collector.services.ignore_resolver import IgnoreResolver

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS: tuple[str, ...] = (
    ".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs",
    ".json",
    ".md", ".mdx",
    ".css", ".scss", ".sass", ".less",
    ".prisma", ".zmodel", ".sql",
    ".graphql", ".gql",
    ".yml", ".yaml", ".toml",
    ".lock",
    ".env.example", ".env.local.example",
)

SPECIAL_FILENAMES: frozenset[str] = frozenset(
    {
        # Framework
        "next.config.js", "next.config.mjs", "next.config.ts",
        "middleware.ts", "middleware.js",
        "instrumentation.ts", "instrumentation.js",
        # Styling
        "tailwind.config.js", "tailwind.config.ts", "tailwind.config.mjs",
        "postcss.config.js", "postcss.config.mjs", "postcss.config.cjs",
        # Database
        "drizzle.config.ts", "drizzle.config.js",
        "schema.prisma", "schema.zmodel",
        # Package managers and monorepos
        "pnpm-workspace.yaml", ".yarnrc.yml", "bunfig.toml",
        "turbo.json", "lerna.json", "rush.json", "nx.json",
        # UI
        "components.json", "theme.ts", "theme.js",
        # Build
        "Dockerfile", "vercel.json",
    }
)


def is_eligible(filename: str) -> bool:
    """Return *True* if a file with this name should be read."""
    if filename in SPECIAL_FILENAMES:
        return True
    lower = filename.lower()
    return any(lower.endswith(ext) for ext in ALLOWED_EXTENSIONS)


class DirectoryScanner:
    """Walks one project root and produces unclassified file records.

    Parameters
    ----------
    root:
        Absolute project root.
    ignore_resolver:
        Consulted for every entry; ignored directories are never entered.
    max_concurrency:
        Upper bound on simultaneous file reads.
    """

    def __init__(
        self,
        root: Path,
        ignore_resolver: IgnoreResolver,
        *,
        max_concurrency: int = 32,
    ) -> None:
        self._root = Path(root)
        self._ignore = ignore_resolver
        self._max_concurrency = max(1, max_concurrency)

    # ── Public API ──────────────────────────────────────────────────────

    async def scan(self) -> list[ScannedFile]:
        """Return every eligible file under the root, sorted by path."""
        if not self._root.is_dir():
            raise RootUnavailableError(f"Project root '{self._root}' is not a directory.")

        paths = await asyncio.to_thread(self.collect_paths)
        logger.debug("Reading %d eligible file(s) under %s", len(paths), self._root)

        sem = asyncio.Semaphore(self._max_concurrency)

        async def _read_one(rel: str) -> ScannedFile | None:
            async with sem:
                return await asyncio.to_thread(self._read_file, rel)

        results = await asyncio.gather(*(_read_one(rel) for rel in paths))
        files = [r for r in results if r is not None]
        files.sort(key=lambda f: f.record.path)
        return files

    def collect_paths(self) -> list[str]:
        """Depth-first walk returning eligible relative paths in sorted order."""
        try:
            root_entries = self._list_dir(self._root, raise_errors=True)
        except OSError as exc:
            raise RootUnavailableError(f"Cannot read project root '{self._root}': {exc}") from exc

        paths: list[str] = []
        self._walk(root_entries, "", paths)
        return paths

    # ── Traversal ───────────────────────────────────────────────────────

    def _walk(self, entries: list[os.DirEntry[str]], prefix: str, out: list[str]) -> None:
        for entry in entries:
            rel = f"{prefix}{entry.name}"
            try:
                # Symlinked directories are not followed.
                is_dir = entry.is_dir(follow_symlinks=False)
                is_file = entry.is_file()
            except OSError as exc:
                logger.warning("Cannot stat %s: %s", rel, exc)
                continue

            if is_dir:
                if self._ignore.is_ignored(rel, is_dir=True):
                    continue
                children = self._list_dir(Path(entry.path))
                self._walk(children, f"{rel}/", out)
            elif is_file:
                if self._ignore.is_ignored(rel):
                    continue
                if not is_eligible(entry.name):
                    continue
                if entry.is_symlink() and not self._inside_root(Path(entry.path)):
                    logger.warning("Skipping %s: symlink points outside the project root", rel)
                    continue
                out.append(rel)

    def _list_dir(self, path: Path, *, raise_errors: bool = False) -> list[os.DirEntry[str]]:
        try:
            with os.scandir(path) as it:
                return sorted(it, key=lambda e: e.name)
        except OSError as exc:
            if raise_errors:
                raise
            logger.warning("Skipping unreadable directory %s: %s", path, exc)
            return []

    def _inside_root(self, path: Path) -> bool:
        try:
            path.resolve().relative_to(self._root.resolve())
        except (OSError, ValueError):
            return False
        return True

    # ── Reading ─────────────────────────────────────────────────────────

    def _read_file(self, rel: str) -> ScannedFile | None:
        """Stat then read one file.  Runs in a worker thread."""
        full = self._root / rel
        try:
            st = full.stat()
            raw = full.read_bytes()
        except OSError as exc:
            logger.warning("Skipping unreadable file %s: %s", rel, exc)
            return None
        try:
            content = raw.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("Skipping %s: not valid UTF-8", rel)
            return None

        record = FileRecord(
            path=rel,
            content=content,
            size=len(raw),
            last_modified=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
            is_client_component=has_client_directive(content),
        )
        return ScannedFile(record=record, stamp=FileStamp(mtime_ns=st.st_mtime_ns, size=st.st_size))


def has_client_directive(content: str) -> bool:
    """Return *True* if *content* carries the client-execution sentinel."""
    return "'use client'" in content or '"use client"' in content
