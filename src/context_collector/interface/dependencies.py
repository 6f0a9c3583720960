"""FastAPI dependency injection wiring."""

from __future__ import annotations

import logging
import threading
from functools import lru_cache
from typing import Iterable

from context_collector.domain.value_objects import ProjectRoot
from context_collector.infrastructure.config import Settings, get_settings
from context_collector.services.collect_context import CollectContextUseCase
from context_collector.services.scan_cache import ScanCache
from context_collector.services.token_budget import get_token_counter

logger = logging.getLogger(__name__)


class CollectorRegistry:
    """One use case (and therefore one cache) per project root and ignore set."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._collectors: dict[tuple[str, tuple[str, ...]], CollectContextUseCase] = {}
        self._lock = threading.Lock()

    def get(
        self, root_path: str, additional_ignore_patterns: Iterable[str] = ()
    ) -> CollectContextUseCase:
        root = ProjectRoot.from_string(root_path)
        patterns = tuple(self._settings.additional_ignore_patterns) + tuple(
            additional_ignore_patterns
        )
        key = (str(root), patterns)
        with self._lock:
            collector = self._collectors.get(key)
            if collector is None:
                collector = self._build(root, patterns)
                self._collectors[key] = collector
        return collector

    def __len__(self) -> int:
        with self._lock:
            return len(self._collectors)

    def find(self, root_path: str) -> list[CollectContextUseCase]:
        """Every collector registered for *root_path*, whatever its ignore set."""
        root = str(ProjectRoot.from_string(root_path))
        with self._lock:
            return [c for (r, _), c in self._collectors.items() if r == root]

    def close(self) -> None:
        with self._lock:
            collectors = list(self._collectors.values())
            self._collectors.clear()
        for collector in collectors:
            collector.close()

    def _build(self, root: ProjectRoot, patterns: tuple[str, ...]) -> CollectContextUseCase:
        s = self._settings
        cache = ScanCache(
            root.path,
            ttl_seconds=s.cache_ttl_seconds,
            max_entries=s.cache_max_entries,
            sweep_interval_seconds=s.cache_sweep_interval_seconds,
        ).start()
        logger.info("Registered collector for %s", root)
        return CollectContextUseCase(
            root,
            cache,
            counter=get_token_counter(s.token_counter, s.token_encoding),
            additional_ignore_patterns=patterns,
            read_concurrency=s.read_concurrency,
        )


_registry: CollectorRegistry | None = None


async def startup(settings: Settings | None = None) -> None:
    """Initialise shared resources — called from the lifespan context manager."""
    global _registry  # noqa: PLW0603
    _registry = CollectorRegistry(settings or _settings())


async def shutdown() -> None:
    """Release shared resources."""
    global _registry  # noqa: PLW0603
    if _registry is not None:
        _registry.close()
        _registry = None


@lru_cache(maxsize=1)
def _settings() -> Settings:
    return get_settings()


def get_registry() -> CollectorRegistry:
    assert _registry is not None, "startup() was not called"
    return _registry
