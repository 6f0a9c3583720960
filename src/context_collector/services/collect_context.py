"""Collect-context use case — the main orchestration pipeline.

This is the single entry point for the business logic of one project root:
signature detection → directory walk → classification (through the file
cache) → statistics, and optionally the budget optimizer on top.

Every filesystem-bound or CPU-bound stage runs in a worker thread so a
scan never stalls the event loop serving other requests.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import time
from collections import Counter
from pathlib import Path
from typing import Iterable, Sequence

from context_collector.domain.entities import (
    CacheStats,
    CollectResult,
    FileCategory,
    FileRecord,
    OptimizationReport,
    ProjectSignature,
    ScannedFile,
    ScanResult,
    ScanStats,
)
from context_collector.domain.ports.progress_sink import NullProgress, ProgressSink
from context_collector.domain.value_objects import BudgetConfig, ProjectRoot
from context_collector.services.budget_optimizer import BudgetOptimizer
from context_collector.services.directory_scanner import DirectoryScanner
from context_collector.services.file_classifier import FileClassifier
from context_collector.services.ignore_resolver import IgnoreResolver
from context_collector.services.scan_cache import ScanCache, file_key, scan_key
from context_collector.services.signature_detector import SignatureDetector
from context_collector.services.token_budget import HeuristicTokenCounter, TokenCounter

logger = logging.getLogger(__name__)


# ── Use case ────────────────────────────────────────────────────────────────


class CollectContextUseCase:
    """Scans, classifies and budgets the files of one project root.

    Parameters
    ----------
    root:
        Validated project root.
    cache:
        Cache owned by this root.  It is the only state shared between
        scans; :meth:`close` releases it.
    counter:
        Token counter used for estimates and truncation.
    additional_ignore_patterns:
        Extra gitignore-style patterns, applied after every ignore file.
    read_concurrency:
        Maximum number of simultaneous file reads.
    home:
        Where to look for the global ignore file (defaults to ``~``).
    """

    def __init__(
        self,
        root: ProjectRoot,
        cache: ScanCache,
        *,
        counter: TokenCounter | None = None,
        additional_ignore_patterns: Iterable[str] = (),
        read_concurrency: int = 32,
        home: Path | None = None,
    ) -> None:
        self._root = root
        self._cache = cache
        self._counter = counter or HeuristicTokenCounter()
        self._ignore = IgnoreResolver(
            root.path, additional_patterns=additional_ignore_patterns, home=home
        )
        self._detector = SignatureDetector(root.path)
        self._scanner = DirectoryScanner(
            root.path, self._ignore, max_concurrency=read_concurrency
        )
        self._optimizer = BudgetOptimizer(self._counter)

    @property
    def root(self) -> ProjectRoot:
        return self._root

    @property
    def ignore_resolver(self) -> IgnoreResolver:
        return self._ignore

    # ── Public entry points ─────────────────────────────────────────────

    async def scan(self, progress: ProgressSink | None = None) -> ScanResult:
        """Classify every eligible file, highest priority first."""
        sink = progress or NullProgress()
        result, _ = await self._scan(sink)
        sink.report("Scan complete", 15)
        return result

    def optimize(
        self, files: Sequence[FileRecord], budget: BudgetConfig
    ) -> tuple[list[FileRecord], int]:
        """Apply *budget* to an already classified file set."""
        return self._optimizer.optimize(files, budget)

    async def collect(
        self, budget: BudgetConfig, progress: ProgressSink | None = None
    ) -> CollectResult:
        """Scan, then select the files that fit *budget*.

        The optimizer output is cached under a key built from the budget, the
        project signature and the stamps of every scanned file, so an
        unchanged tree with the same budget skips optimisation entirely.
        """
        sink = progress or NullProgress()
        result, tree_fingerprint = await self._scan(sink)

        key = scan_key(
            ":".join(
                (
                    budget.fingerprint(),
                    result.stats.project_signature.fingerprint(),
                    tree_fingerprint,
                    self._counter.name,
                )
            )
        )

        sink.report("Optimizing selection", 10)
        report: OptimizationReport | None = self._cache.get(key)
        from_cache = report is not None
        if report is None:
            report = await asyncio.to_thread(
                self._optimizer.optimize_with_report, result.files, budget
            )
            self._cache.set(key, report)

        sink.report("Collection complete", 5)
        return CollectResult(
            files=report.files,
            excluded_count=report.excluded_count,
            stats=result.stats,
            report=report,
            from_cache=from_cache,
        )

    def cache_stats(self) -> CacheStats:
        return self._cache.stats()

    def clear_cache(self) -> None:
        self._cache.clear()

    def close(self) -> None:
        self._cache.close()

    # ── Pipeline ────────────────────────────────────────────────────────

    async def _scan(self, sink: ProgressSink) -> tuple[ScanResult, str]:
        started = time.perf_counter()
        logger.info("Scanning %s", self._root)

        # 1. Signature (never raises past this point)
        sink.report("Detecting project signature", 5)
        signature = await asyncio.to_thread(self._detector.detect)

        # 2. Walk + read, with ignore rules reloaded from disk
        sink.report("Scanning files", 10)
        await asyncio.to_thread(self._ignore.refresh)
        scanned = await self._scanner.scan()

        # 3. Classify, consulting the per-file cache
        sink.report(f"Classifying {len(scanned)} files", 50)
        classifier = FileClassifier(signature)
        fingerprint = f"{signature.fingerprint()}:{self._counter.name}"
        files = await asyncio.to_thread(self._classify_all, classifier, scanned, fingerprint)

        # 4. Stats
        sink.report("Computing statistics", 20)
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        stats = build_stats(files, signature, elapsed_ms)
        logger.info(
            "Scanned %d files (%d tokens) under %s in %d ms",
            stats.total_files,
            stats.total_tokens,
            self._root,
            elapsed_ms,
        )
        return ScanResult(files=files, stats=stats), tree_fingerprint(scanned)

    def _classify_all(
        self, classifier: FileClassifier, scanned: Sequence[ScannedFile], fingerprint: str
    ) -> list[FileRecord]:
        """Classify every scanned file, highest priority first.  Runs in a worker thread."""
        files = [self._classify(classifier, item, fingerprint) for item in scanned]
        files.sort(key=lambda f: (-f.priority, f.path))
        return files

    def _classify(
        self, classifier: FileClassifier, item: ScannedFile, fingerprint: str
    ) -> FileRecord:
        key = file_key(item.record.path, fingerprint)
        cached: FileRecord | None = self._cache.get(key)
        if cached is not None and cached.size == item.record.size:
            return cached

        record = classifier.classify_record(item.record, self._counter)
        # Stamp captured before the read: a write during the scan invalidates it.
        self._cache.set(key, record, source=record.path, stamp=item.stamp)
        return record


# ── Helpers ─────────────────────────────────────────────────────────────────


def tree_fingerprint(files: Iterable[ScannedFile]) -> str:
    digest = hashlib.sha256()
    for item in files:
        digest.update(
            f"{item.record.path}\0{item.stamp.mtime_ns}\0{item.stamp.size}\n".encode("utf-8")
        )
    return digest.hexdigest()[:16]


def detected_features(signature: ProjectSignature) -> tuple[str, ...]:
    features: list[str] = [f"Structure: {signature.structure_type.value}"]
    if signature.framework_version != "unknown":
        features.append(f"Next.js {signature.framework_version}")
    features.append(f"Router: {signature.router_topology.value}")
    features.append(f"Package manager: {signature.package_manager.value}")
    features.extend(signature.libraries.all_names())
    return tuple(features)


def build_stats(
    files: Sequence[FileRecord], signature: ProjectSignature, processing_time_ms: int
) -> ScanStats:
    counts: Counter[FileCategory] = Counter(f.category for f in files)
    return ScanStats(
        total_files=len(files),
        total_tokens=sum(f.tokens for f in files),
        total_size=sum(f.size for f in files),
        category_counts=dict(counts),
        project_signature=signature,
        processing_time_ms=processing_time_ms,
        detected_features=detected_features(signature),
    )
