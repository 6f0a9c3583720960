# tests/unit/test_budget_optimizer.py
"""Budget stages: order, exclusions, content reduction and the file cap."""

from __future__ import annotations

import math
from datetime import datetime, timezone

import pytest

from context_collector.domain.entities import FileCategory, FileRecord
from context_collector.domain.value_objects import BudgetConfig
from context_collector.services.budget_optimizer import (
    LARGE_FILE_BYTES,
    BudgetOptimizer,
    matches_technology,
    select_top,
    under_directory,
)
from context_collector.services.token_budget import estimate_tokens, truncation_marker

_WHEN = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _record(
    path: str,
    priority: int = 50,
    content: str = "export const x = 1;\n",
    *,
    size: int | None = None,
) -> FileRecord:
    return FileRecord(
        path=path,
        content=content,
        size=len(content.encode("utf-8")) if size is None else size,
        last_modified=_WHEN,
        tokens=estimate_tokens(content),
        category=FileCategory.TYPESCRIPT_FILES,
        priority=priority,
    )


def _paths(files) -> list[str]:
    return [f.path for f in files]


# ── Helpers ─────────────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "path, directory, expected",
    [
        ("test/a.ts", "test", True),
        ("src/test/b.ts", "test", True),
        ("src/latest/c.ts", "test", False),
        ("src/test.ts", "test", False),
        ("src/legacy/old/a.ts", "src/legacy", True),
        ("lib/src/legacy/a.ts", "src/legacy", True),
        ("src/legacy.ts", "src/legacy", False),
        ("src/a/legacy/x.ts", "src/legacy", False),
        ("test/a.ts", "/test/", True),
        ("a.ts", "", False),
    ],
)
def test_under_directory(path, directory, expected):
    assert under_directory(path, directory) is expected


def test_matches_technology_by_path_content_and_import():
    assert matches_technology(_record("prisma/seed.ts"), "prisma")
    assert matches_technology(_record("src/PrismaClient.ts"), "Prisma")
    assert matches_technology(_record("src/db.ts", content="import { x } from '@prisma/client';\n"), "prisma")
    assert matches_technology(_record("db/schema.zmodel"), "zenstack")
    assert matches_technology(_record("src/migrations/001.sql"), "database")
    assert not matches_technology(_record("src/app/page.tsx"), "prisma")


def test_select_top_is_stable_for_ties():
    files = [_record("a", 5), _record("b", 9), _record("c", 5), _record("d", 9)]
    assert _paths(select_top(files, 3)) == ["b", "d", "a"]


# ── Stages ──────────────────────────────────────────────────────────────────


def test_empty_budget_keeps_everything():
    files = [_record(f"src/{i}.ts", i) for i in range(5)]
    kept, excluded = BudgetOptimizer().optimize(files, BudgetConfig())

    assert kept == files
    assert excluded == 0


def test_threshold_runs_before_cap():
    files: list[FileRecord] = []
    for i in range(120):
        priority = 7 + (i // 4) % 4 if i % 4 == 0 else i % 7
        files.append(_record(f"src/file_{i:03d}.ts", priority))
    high = [f for f in files if f.priority >= 7]
    assert len(high) == 30

    kept, excluded = BudgetOptimizer().optimize(
        files, BudgetConfig(max_total_files=20, priority_threshold=7)
    )

    assert len(kept) == 20
    assert excluded == 100
    assert kept == sorted(high, key=lambda f: -f.priority)[:20]


def test_cap_is_not_applied_when_under_limit():
    files = [_record("b", 1), _record("a", 9)]
    kept, _ = BudgetOptimizer().optimize(files, BudgetConfig(max_total_files=5))
    assert kept == files


def test_technology_exclusion():
    files = [
        _record("prisma/seed.ts"),
        _record("src/db.ts", content='import { PrismaClient } from "@prisma/client";\n'),
        _record("src/aws/s3.ts"),
        _record("src/app/page.tsx"),
    ]
    report = BudgetOptimizer().optimize_with_report(
        files, BudgetConfig(exclude_technologies=("prisma", "aws-sdk"))
    )

    assert _paths(report.files) == ["src/app/page.tsx"]
    assert report.stage_exclusions["technologies"] == 3


def test_file_type_exclusion_is_suffix_match():
    files = [_record("a.test.ts"), _record("b.ts"), _record("c.TEST.TS"), _record("test.ts.md")]
    kept, excluded = BudgetOptimizer().optimize(files, BudgetConfig(exclude_file_types=(".test.ts",)))

    assert _paths(kept) == ["b.ts", "test.ts.md"]
    assert excluded == 2


def test_directory_exclusion_uses_segments():
    files = [_record("test/a.ts"), _record("src/test/b.ts"), _record("src/latest/c.ts"), _record("src/test.ts")]
    kept, _ = BudgetOptimizer().optimize(files, BudgetConfig(exclude_directories=("test",)))

    assert _paths(kept) == ["src/latest/c.ts", "src/test.ts"]


def test_large_file_exclusion():
    files = [
        _record("big.ts", size=LARGE_FILE_BYTES + 1),
        _record("edge.ts", size=LARGE_FILE_BYTES),
        _record("small.ts"),
    ]
    kept, excluded = BudgetOptimizer().optimize(files, BudgetConfig(exclude_large_files=True))

    assert _paths(kept) == ["edge.ts", "small.ts"]
    assert excluded == 1


def test_truncation_respects_token_limit():
    original = _record("src/huge.ts", content=("x" * 79 + "\n") * 500)
    kept, excluded = BudgetOptimizer().optimize([original], BudgetConfig(max_tokens_per_file=100))

    [reduced] = kept
    assert excluded == 0
    assert reduced.tokens <= 100
    assert len(reduced.content) <= 400
    assert reduced.content.endswith(truncation_marker(100))
    assert original.tokens == 10_000, "input records are never mutated"
    assert len(original.content) == 40_000


class OvershootingCounter:
    """Counter whose truncation lands a few tokens past the limit."""

    name = "overshoot"

    def count(self, text: str) -> int:
        return len(text)

    def truncate(self, text: str, max_tokens: int) -> str:
        return text[: max_tokens + 5]


def test_truncated_record_reports_its_real_token_count():
    counter = OvershootingCounter()
    record = _record("src/big.ts", content="y" * 100)

    [reduced] = BudgetOptimizer(counter).optimize([record], BudgetConfig(max_tokens_per_file=10))[0]

    assert reduced.tokens == counter.count(reduced.content), "tokens must match the kept content"
    assert reduced.tokens == 15


def test_files_within_limit_are_untouched():
    record = _record("src/small.ts")
    kept, _ = BudgetOptimizer().optimize([record], BudgetConfig(max_tokens_per_file=100))
    assert kept[0] is record


def test_summarize_scales_tokens():
    content = "import a from 'a';\n" + "const x = 1;\n" * 200 + "export function run() {\n}\n"
    record = _record("src/run.ts", content=content)
    [digest] = BudgetOptimizer().optimize([record], BudgetConfig(summarize_content=True))[0]

    assert digest.tokens == math.ceil(record.tokens * 0.3)
    assert "lines in original file" in digest.content
    assert "const x = 1;" not in digest.content


def test_empty_lines_and_comments_are_recounted():
    content = "// comment\n\n\nexport const a = 1;\n\n"
    record = _record("src/a.ts", content=content)
    [cleaned] = BudgetOptimizer().optimize(
        [record], BudgetConfig(remove_empty_lines=True, remove_comments=True)
    )[0]

    assert "comment" not in cleaned.content
    assert cleaned.tokens == estimate_tokens(cleaned.content)
    assert cleaned.tokens < record.tokens


def test_report_records_each_stage():
    files = [_record("src/a.ts", 90), _record("src/b.ts", 10), _record("test/c.ts", 90)]
    report = BudgetOptimizer().optimize_with_report(
        files,
        BudgetConfig(priority_threshold=50, exclude_directories=("test",), max_total_files=10),
    )

    assert report.stage_exclusions == {"priority_threshold": 1, "directories": 1, "max_total_files": 0}
    assert report.excluded_count == 2
    assert report.original_tokens == sum(f.tokens for f in files)
    assert report.optimized_tokens == report.files[0].tokens
    assert report.applied[0].startswith("Filtered by priority threshold")


@pytest.mark.parametrize("preset", ["maximum", "balanced", "light", "none"])
def test_presets_keep_their_limits(preset):
    files = [
        _record(f"src/mod_{i:02d}.ts", priority=i % 101, content=("line\n" * (i * 50)) or "x")
        for i in range(150)
    ]
    budget = BudgetConfig.preset(preset)
    kept, excluded = BudgetOptimizer().optimize(files, budget)

    assert len(kept) + excluded == len(files)
    if budget.max_total_files is not None:
        assert len(kept) <= budget.max_total_files
    if budget.max_tokens_per_file is not None:
        assert all(f.tokens <= budget.max_tokens_per_file for f in kept)
    if budget.priority_threshold is not None:
        assert all(f.priority >= budget.priority_threshold for f in kept)
