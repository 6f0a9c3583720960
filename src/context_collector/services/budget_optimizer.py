"""Budgeted selection — filter, reduce and cap a classified file set.

Stages run strictly in this order, each on the output of the previous one:

1. priority threshold
2. technology exclusion
3. file-type exclusion
4. directory exclusion
5. large-file exclusion
6. content reduction (empty lines, comments, digest, truncation)
7. total-file cap

The cap is a greedy top-N by priority, not an optimal packing.
"""

from __future__ import annotations

import dataclasses
import logging
import math
from typing import Callable, Sequence

from context_collector.domain.entities import FileRecord, OptimizationReport
from context_collector.domain.value_objects import BudgetConfig
from context_collector.services.content_digest import (
    remove_comments,
    remove_empty_lines,
    summarize,
)
from context_collector.services.token_budget import HeuristicTokenCounter, TokenCounter

logger = logging.getLogger(__name__)

LARGE_FILE_BYTES = 50 * 1024
SUMMARY_TOKEN_FACTOR = 0.3

# Path fragments that reveal a technology even when its name is absent.
TECHNOLOGY_PATTERNS: dict[str, tuple[str, ...]] = {
    "prisma": ("/prisma/", "schema.prisma", ".prisma"),
    "zenstack": (".zmodel", "/zenstack/"),
    "drizzle": ("drizzle.config", "/drizzle/"),
    "mongodb": ("/mongodb/", "mongoose"),
    "aws-sdk": ("/aws/", "aws-sdk"),
    "firebase": ("/firebase/", "firebase-admin"),
    "supabase": ("/supabase/", "@supabase/"),
    "database": ("/migrations/", "/seeds/", "/db/"),
}

# Package names whose quoted import form reveals a technology in file content.
TECHNOLOGY_PACKAGES: dict[str, tuple[str, ...]] = {
    "prisma": ("@prisma/client", "prisma"),
    "zenstack": ("@zenstackhq/runtime", "zenstack"),
    "drizzle": ("drizzle-orm",),
    "mongodb": ("mongodb", "mongoose"),
    "aws-sdk": ("aws-sdk", "@aws-sdk/"),
    "firebase": ("firebase", "firebase-admin"),
    "supabase": ("@supabase/supabase-js", "@supabase/"),
}

Stage = Callable[[list[FileRecord]], list[FileRecord]]


# ── Matching helpers ────────────────────────────────────────────────────────


def matches_technology(record: FileRecord, technology: str) -> bool:
    """Case-insensitive match of *technology* against path, content and imports."""
    tag = technology.lower()
    path = "/" + record.path.lower()
    if tag in path:
        return True
    if any(p in path for p in TECHNOLOGY_PATTERNS.get(tag, ())):
        return True
    content = record.content.lower()
    if tag in content:
        return True
    for package in TECHNOLOGY_PACKAGES.get(tag, ()):
        if any(f"{quote}{package}" in content for quote in ("'", '"', "`")):
            return True
    return False


def under_directory(path: str, directory: str) -> bool:
    """*path* lies below *directory*, matched as whole path segments."""
    dir_parts = path.split("/")[:-1]
    wanted = [p for p in directory.strip("/").split("/") if p]
    if not wanted:
        return False
    width = len(wanted)
    return any(dir_parts[i : i + width] == wanted for i in range(len(dir_parts) - width + 1))


def select_top(files: Sequence[FileRecord], limit: int) -> list[FileRecord]:
    """Stable descending sort by priority, keep the first *limit*."""
    return sorted(files, key=lambda f: -f.priority)[:limit]


# ── Optimizer ───────────────────────────────────────────────────────────────


class BudgetOptimizer:
    """Applies a :class:`BudgetConfig` to a classified file set."""

    def __init__(self, counter: TokenCounter | None = None) -> None:
        self._counter = counter or HeuristicTokenCounter()

    def optimize(
        self, files: Sequence[FileRecord], budget: BudgetConfig
    ) -> tuple[list[FileRecord], int]:
        report = self.optimize_with_report(files, budget)
        return report.files, report.excluded_count

    def optimize_with_report(
        self, files: Sequence[FileRecord], budget: BudgetConfig
    ) -> OptimizationReport:
        current = list(files)
        original_tokens = sum(f.tokens for f in current)
        exclusions: dict[str, int] = {}
        applied: list[str] = []

        for name, description, stage in self._stages(budget):
            before = len(current)
            current = stage(current)
            dropped = before - len(current)
            exclusions[name] = dropped
            if description:
                applied.append(description)
            if dropped:
                logger.debug("Budget stage %s dropped %d file(s)", name, dropped)

        excluded = len(files) - len(current)
        optimized_tokens = sum(f.tokens for f in current)
        logger.info(
            "Budget kept %d of %d file(s), %d → %d tokens",
            len(current),
            len(files),
            original_tokens,
            optimized_tokens,
        )
        return OptimizationReport(
            files=current,
            excluded_count=excluded,
            original_tokens=original_tokens,
            optimized_tokens=optimized_tokens,
            stage_exclusions=exclusions,
            applied=tuple(applied),
        )

    # ── Stages ──────────────────────────────────────────────────────────

    def _stages(self, budget: BudgetConfig) -> list[tuple[str, str, Stage]]:
        stages: list[tuple[str, str, Stage]] = []

        if budget.priority_threshold is not None:
            threshold = budget.priority_threshold
            stages.append((
                "priority_threshold",
                f"Filtered by priority threshold: {threshold}",
                lambda fs: [f for f in fs if f.priority >= threshold],
            ))

        if budget.exclude_technologies:
            techs = budget.exclude_technologies
            stages.append((
                "technologies",
                f"Excluded technologies: {', '.join(techs)}",
                lambda fs: [f for f in fs if not any(matches_technology(f, t) for t in techs)],
            ))

        if budget.exclude_file_types:
            suffixes = tuple(s.lower() for s in budget.exclude_file_types)
            stages.append((
                "file_types",
                f"Excluded file types: {', '.join(budget.exclude_file_types)}",
                lambda fs: [f for f in fs if not f.path.lower().endswith(suffixes)],
            ))

        if budget.exclude_directories:
            dirs = budget.exclude_directories
            stages.append((
                "directories",
                f"Excluded directories: {', '.join(dirs)}",
                lambda fs: [f for f in fs if not any(under_directory(f.path, d) for d in dirs)],
            ))

        if budget.exclude_large_files:
            stages.append((
                "large_files",
                "Excluded large files (>50KB)",
                lambda fs: [f for f in fs if f.size <= LARGE_FILE_BYTES],
            ))

        if (
            budget.remove_empty_lines
            or budget.remove_comments
            or budget.summarize_content
            or budget.max_tokens_per_file is not None
        ):
            stages.append((
                "content_reduction",
                self._describe_reduction(budget),
                lambda fs: [self._reduce(f, budget) for f in fs],
            ))

        if budget.max_total_files is not None:
            limit = budget.max_total_files
            stages.append((
                "max_total_files",
                f"Limited to top {limit} priority files",
                lambda fs: select_top(fs, limit) if len(fs) > limit else fs,
            ))

        return stages

    def _reduce(self, record: FileRecord, budget: BudgetConfig) -> FileRecord:
        content = record.content
        tokens = record.tokens

        if budget.remove_empty_lines or budget.remove_comments:
            if budget.remove_empty_lines:
                content = remove_empty_lines(content)
            if budget.remove_comments:
                content = remove_comments(record.path, content)
            tokens = self._counter.count(content)

        if budget.summarize_content:
            content = summarize(record.path, content)
            tokens = math.ceil(tokens * SUMMARY_TOKEN_FACTOR)

        limit = budget.max_tokens_per_file
        if limit is not None and (tokens > limit or self._counter.count(content) > limit):
            content = self._counter.truncate(content, limit)
            tokens = self._counter.count(content)

        if content == record.content and tokens == record.tokens:
            return record
        return dataclasses.replace(
            record,
            content=content,
            tokens=tokens,
            size=len(content.encode("utf-8")),
        )

    @staticmethod
    def _describe_reduction(budget: BudgetConfig) -> str:
        parts: list[str] = []
        if budget.remove_empty_lines:
            parts.append("removed empty lines")
        if budget.remove_comments:
            parts.append("removed comments")
        if budget.summarize_content:
            parts.append("summarized content")
        if budget.max_tokens_per_file is not None:
            parts.append(f"limited files to {budget.max_tokens_per_file} tokens each")
        return "Content reduction: " + ", ".join(parts)
