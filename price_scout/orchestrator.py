"""
Fetch orchestrator — runs every registered source in concurrent batches and
streams the merged, ranked result list back to the caller as it grows.

Failure isolation: a source that raises or times out contributes its
reference deals (or nothing) and never disturbs the rest of its batch.
The running aggregate is only written here, between batches' worker tasks,
never from inside them.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from .aggregator import DedupPolicy, merge
from .config import ScoutSettings
from .errors import SessionError
from .fallback import FallbackCascade
from .filters import filter_deals
from .models import (
    Deal,
    Empty,
    Error,
    SearchCriteria,
    SearchOutcome,
    SearchProgress,
    Success,
)
from .retry import fetch_with_retry
from .scrapers.base import Source
from .scrapers.registry import SourceRegistry
from .store import PersistenceStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[SearchProgress], None]
PartialCallback = Callable[[list[Deal]], None]


@dataclass
class SourceResult:
    """What one source contributed to a session."""
    name: str
    deals: list[Deal]
    error: Optional[Exception] = None
    used_fallback: bool = False

    @property
    def label(self) -> str:
        if self.used_fallback and self.deals:
            return f"{self.name} (reference prices)"
        if not self.deals:
            return f"{self.name} (no results)"
        return f"Found {len(self.deals)} from {self.name}"


def _batches(sources: list[Source], size: int) -> list[list[Source]]:
    return [sources[i:i + size] for i in range(0, len(sources), size)]


class FetchOrchestrator:
    """Coordinates one search session at a time across the source registry."""

    def __init__(
        self,
        registry: SourceRegistry,
        fallback: FallbackCascade,
        settings: Optional[ScoutSettings] = None,
        store: Optional[PersistenceStore] = None,
        dedup_policy: DedupPolicy = DedupPolicy.KEEP_CHEAPEST,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._registry = registry
        self._fallback = fallback
        self._settings = settings or ScoutSettings()
        self._store = store
        self._policy = dedup_policy
        self._sleep = sleep

    async def search(
        self,
        criteria: SearchCriteria,
        on_progress: Optional[ProgressCallback] = None,
        on_partial: Optional[PartialCallback] = None,
    ) -> SearchOutcome:
        """
        Search every source and return the final outcome.

        on_progress fires when each source starts and after each source's
        results are folded in; on_partial receives a snapshot of the ranked
        list after every fold. Both fire in source-completion order.
        Cancelling the calling task cancels all outstanding source tasks
        and waits for their cleanup.
        """
        start = time.monotonic()
        sources = self._registry.list()
        total = len(sources)
        aggregate: list[Deal] = []
        completed = 0

        logger.info("Search started across %d sources (%s)", total, criteria.describe())

        try:
            for index, batch in enumerate(_batches(sources, self._settings.batch_size)):
                if index > 0:
                    await self._sleep(self._settings.batch_pause)

                results = await self._run_batch(batch, criteria, on_progress, completed, total, len(aggregate))

                for result in results:
                    completed += 1
                    if result.deals:
                        aggregate = merge(aggregate, result.deals, criteria, self._policy)
                        await self._write_through(result.deals)
                    if on_partial is not None:
                        on_partial(list(aggregate))
                    if on_progress is not None:
                        on_progress(SearchProgress(
                            current_source_label=result.label,
                            sources_completed=completed,
                            total_sources=total,
                            deals_found_so_far=len(aggregate),
                        ))
        except Exception as e:
            logger.exception("Search session failed")
            failure = SessionError(f"Failed to fetch prices: {e}")
            failure.__cause__ = e
            return Error(message=str(failure), cause=failure)

        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.info("Search finished: %d deals from %d sources in %dms", len(aggregate), completed, elapsed_ms)

        if not aggregate:
            return Empty()
        return Success(
            deals=aggregate,
            total_found=len(aggregate),
            elapsed_ms=elapsed_ms,
            sources_searched=completed,
        )

    async def _run_batch(
        self,
        batch: list[Source],
        criteria: SearchCriteria,
        on_progress: Optional[ProgressCallback],
        completed: int,
        total: int,
        found: int,
    ) -> list[SourceResult]:
        """Run one batch concurrently; results come back in completion order."""
        tasks = [
            asyncio.ensure_future(self._run_source(source, criteria, on_progress, completed, total, found))
            for source in batch
        ]
        results: list[SourceResult] = []
        try:
            for next_done in asyncio.as_completed(tasks):
                results.append(await next_done)
        finally:
            pending = [t for t in tasks if not t.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
        return results

    async def _run_source(
        self,
        source: Source,
        criteria: SearchCriteria,
        on_progress: Optional[ProgressCallback],
        completed: int,
        total: int,
        found: int,
    ) -> SourceResult:
        if on_progress is not None:
            on_progress(SearchProgress(
                current_source_label=source.name,
                sources_completed=completed,
                total_sources=total,
                deals_found_so_far=found,
            ))

        deals: list[Deal] = []
        error: Optional[Exception] = None
        try:
            deals = await self._fetch(source, criteria)
        except Exception as e:
            logger.warning("Source %s failed, using fallback: %s", source.name, e)
            error = e

        used_fallback = False
        if not deals:
            try:
                deals = self._fallback.get_for_source(source.name)
                used_fallback = bool(deals)
            except Exception as e:
                logger.warning("Fallback for %s failed: %s", source.name, e)
                deals = []

        return SourceResult(
            name=source.name,
            deals=filter_deals(deals, criteria),
            error=error,
            used_fallback=used_fallback,
        )

    async def _fetch(self, source: Source, criteria: SearchCriteria) -> list[Deal]:
        if source.needs_challenge_render:
            # The renderer enforces its own hard timeout and releases its surface
            return await source.fetcher.fetch(criteria)

        s = self._settings
        return await fetch_with_retry(
            source,
            criteria,
            max_retries=s.max_retries,
            base_timeout=s.base_timeout,
            timeout_increment=s.timeout_increment,
            jitter=(s.retry_jitter_min, s.retry_jitter_max),
            sleep=self._sleep,
        )

    async def _write_through(self, deals: list[Deal]) -> None:
        if self._store is None:
            return
        try:
            await self._store.put(deals)
        except Exception as e:
            logger.warning("Could not persist %d deals: %s", len(deals), e)
