"""API routes — thin controllers that delegate to the use case."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from context_collector.domain.entities import CacheStats
from context_collector.interface.dependencies import CollectorRegistry, get_registry
from context_collector.interface.schemas import (
    CacheStatsResponse,
    CollectRequest,
    CollectResponse,
    ErrorResponse,
    FileSummary,
    ReportResponse,
    ScanRequest,
    ScanResponse,
    StatsResponse,
)

router = APIRouter()


@router.post(
    "/scan",
    response_model=ScanResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Project root not found or unreadable"},
        422: {"model": ErrorResponse, "description": "Invalid request"},
    },
)
async def scan(
    body: ScanRequest,
    registry: CollectorRegistry = Depends(get_registry),
) -> ScanResponse:
    """Classify every eligible file under a project root."""
    collector = registry.get(body.root_path, body.additional_ignore_patterns)
    result = await collector.scan()
    return ScanResponse(
        files=[FileSummary.from_record(f) for f in result.files],
        stats=StatsResponse.from_stats(result.stats),
    )


@router.post(
    "/collect",
    response_model=CollectResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Project root not found or unreadable"},
        422: {"model": ErrorResponse, "description": "Invalid budget"},
    },
)
async def collect(
    body: CollectRequest,
    registry: CollectorRegistry = Depends(get_registry),
) -> CollectResponse:
    """Scan a project root and return the files that fit the budget."""
    budget = body.budget_config()
    collector = registry.get(body.root_path, body.additional_ignore_patterns)
    result = await collector.collect(budget)
    return CollectResponse(
        files=[
            FileSummary.from_record(f, include_content=body.include_content)
            for f in result.files
        ],
        excluded_count=result.excluded_count,
        from_cache=result.from_cache,
        report=ReportResponse.from_report(result.report),
        stats=StatsResponse.from_stats(result.stats),
    )


@router.get("/cache/stats", response_model=CacheStatsResponse)
async def cache_stats(
    root_path: str = Query(..., min_length=1),
    registry: CollectorRegistry = Depends(get_registry),
) -> CacheStatsResponse:
    """Entry counts and hit/miss counters for every cache of a root."""
    totals = [c.cache_stats() for c in registry.find(root_path)]
    merged = CacheStats(
        entry_count=sum(s.entry_count for s in totals),
        file_entry_count=sum(s.file_entry_count for s in totals),
        scan_entry_count=sum(s.scan_entry_count for s in totals),
        hits=sum(s.hits for s in totals),
        misses=sum(s.misses for s in totals),
    )
    return CacheStatsResponse.from_stats(root_path, merged)


@router.delete("/cache", status_code=204)
async def clear_cache(
    root_path: str = Query(..., min_length=1),
    registry: CollectorRegistry = Depends(get_registry),
) -> None:
    """Drop every cached entry for a root."""
    for collector in registry.find(root_path):
        collector.clear_cache()
