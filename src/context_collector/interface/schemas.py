"""Pydantic request / response DTOs for the API boundary."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field

from context_collector.domain.entities import (
    CacheStats,
    FileRecord,
    LibraryRole,
    OptimizationReport,
    ProjectSignature,
    ScanStats,
)
from context_collector.domain.exceptions import InvalidBudgetError
from context_collector.domain.value_objects import BudgetConfig


def _strip_root(v: str) -> str:
    stripped = v.strip()
    if not stripped:
        msg = "root_path must not be empty."
        raise ValueError(msg)
    return stripped


RootPath = Annotated[str, AfterValidator(_strip_root)]


class ScanRequest(BaseModel):
    """Request body for ``POST /scan``."""

    root_path: RootPath
    additional_ignore_patterns: list[str] = Field(default_factory=list)


class BudgetRequest(BaseModel):
    """Wire form of :class:`BudgetConfig`.  Range checks happen in the domain."""

    max_total_files: int | None = None
    max_tokens_per_file: int | None = None
    priority_threshold: int | None = None
    exclude_technologies: list[str] = Field(default_factory=list)
    exclude_file_types: list[str] = Field(default_factory=list)
    exclude_directories: list[str] = Field(default_factory=list)
    exclude_large_files: bool = False
    summarize_content: bool = False
    remove_comments: bool = False
    remove_empty_lines: bool = False

    def to_domain(self) -> BudgetConfig:
        return BudgetConfig(
            max_total_files=self.max_total_files,
            max_tokens_per_file=self.max_tokens_per_file,
            priority_threshold=self.priority_threshold,
            exclude_technologies=tuple(self.exclude_technologies),
            exclude_file_types=tuple(self.exclude_file_types),
            exclude_directories=tuple(self.exclude_directories),
            exclude_large_files=self.exclude_large_files,
            summarize_content=self.summarize_content,
            remove_comments=self.remove_comments,
            remove_empty_lines=self.remove_empty_lines,
        )


class CollectRequest(BaseModel):
    """Request body for ``POST /collect``.  Give either ``budget`` or ``preset``."""

    root_path: RootPath
    additional_ignore_patterns: list[str] = Field(default_factory=list)
    budget: BudgetRequest | None = None
    preset: str | None = None
    include_content: bool = True

    def budget_config(self) -> BudgetConfig:
        if self.budget is not None and self.preset is not None:
            raise InvalidBudgetError("Specify either 'budget' or 'preset', not both.")
        if self.preset is not None:
            return BudgetConfig.preset(self.preset)
        if self.budget is not None:
            return self.budget.to_domain()
        return BudgetConfig()


# ── Responses ───────────────────────────────────────────────────────────────


class FileSummary(BaseModel):
    path: str
    category: str
    priority: int
    tokens: int
    size: int
    is_client_component: bool
    libraries: list[str]
    last_modified: datetime
    content: str | None = None

    @classmethod
    def from_record(cls, record: FileRecord, *, include_content: bool = False) -> FileSummary:
        return cls(
            path=record.path,
            category=record.category.value,
            priority=record.priority,
            tokens=record.tokens,
            size=record.size,
            is_client_component=record.is_client_component,
            libraries=list(record.libraries),
            last_modified=record.last_modified,
            content=record.content if include_content else None,
        )


class SignatureResponse(BaseModel):
    package_manager: str
    framework_version: str
    router_topology: str
    structure_type: str
    confidence: int
    libraries: dict[str, list[str]]
    recommendations: list[str]
    monorepo_tool: str | None = None
    tailwind_version: str
    manifest_name: str | None = None

    @classmethod
    def from_signature(cls, sig: ProjectSignature) -> SignatureResponse:
        return cls(
            package_manager=sig.package_manager.value,
            framework_version=sig.framework_version,
            router_topology=sig.router_topology.value,
            structure_type=sig.structure_type.value,
            confidence=sig.confidence,
            libraries={
                role.value: list(sig.libraries.for_role(role))
                for role in LibraryRole
                if sig.libraries.for_role(role)
            },
            recommendations=list(sig.recommendations),
            monorepo_tool=sig.config_hints.monorepo_tool,
            tailwind_version=sig.config_hints.tailwind_version.value,
            manifest_name=sig.manifest_name,
        )


class StatsResponse(BaseModel):
    total_files: int
    total_tokens: int
    total_size: int
    category_counts: dict[str, int]
    processing_time_ms: int
    detected_features: list[str]
    generated_at: datetime
    project_signature: SignatureResponse

    @classmethod
    def from_stats(cls, stats: ScanStats) -> StatsResponse:
        return cls(
            total_files=stats.total_files,
            total_tokens=stats.total_tokens,
            total_size=stats.total_size,
            category_counts={c.value: n for c, n in stats.category_counts.items()},
            processing_time_ms=stats.processing_time_ms,
            detected_features=list(stats.detected_features),
            generated_at=stats.generated_at,
            project_signature=SignatureResponse.from_signature(stats.project_signature),
        )


class ScanResponse(BaseModel):
    """Successful response from ``POST /scan``."""

    files: list[FileSummary]
    stats: StatsResponse


class ReportResponse(BaseModel):
    original_tokens: int
    optimized_tokens: int
    tokens_saved: int
    stage_exclusions: dict[str, int]
    applied: list[str]

    @classmethod
    def from_report(cls, report: OptimizationReport) -> ReportResponse:
        return cls(
            original_tokens=report.original_tokens,
            optimized_tokens=report.optimized_tokens,
            tokens_saved=report.tokens_saved,
            stage_exclusions=dict(report.stage_exclusions),
            applied=list(report.applied),
        )


class CollectResponse(BaseModel):
    """Successful response from ``POST /collect``."""

    files: list[FileSummary]
    excluded_count: int
    from_cache: bool
    report: ReportResponse
    stats: StatsResponse


class CacheStatsResponse(BaseModel):
    root_path: str
    entry_count: int
    file_entry_count: int
    scan_entry_count: int
    hits: int
    misses: int

    @classmethod
    def from_stats(cls, root_path: str, stats: CacheStats) -> CacheStatsResponse:
        return cls(
            root_path=root_path,
            entry_count=stats.entry_count,
            file_entry_count=stats.file_entry_count,
            scan_entry_count=stats.scan_entry_count,
            hits=stats.hits,
            misses=stats.misses,
        )


class ErrorResponse(BaseModel):
    """Standard error envelope returned on all failure paths."""

    status: str = "error"
    message: str
