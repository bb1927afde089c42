"""Search action — runs a session and applies the caller-level fallback decision."""
import logging
from typing import Optional

from ..aggregator import apply_sort
from ..fallback import FallbackCascade, is_fallback_batch
from ..models import (
    Deal,
    Empty,
    Error,
    SearchCriteria,
    SearchStats,
    Success,
)
from ..orchestrator import FetchOrchestrator, PartialCallback, ProgressCallback
from ..scrapers.registry import SourceRegistry
from ..sellers import find_seller

logger = logging.getLogger(__name__)


class SearchAction:
    """Wraps the orchestrator for tool callers that want a plain dict back."""

    def __init__(
        self,
        orchestrator: FetchOrchestrator,
        registry: SourceRegistry,
        fallback: FallbackCascade,
    ):
        self._orchestrator = orchestrator
        self._registry = registry
        self._fallback = fallback

    async def search(
        self,
        criteria: SearchCriteria,
        on_progress: Optional[ProgressCallback] = None,
        on_partial: Optional[PartialCallback] = None,
    ) -> dict:
        """
        Search all sources for deals matching criteria.

        Returns dict with:
            - status: "ok", "fallback", or "empty"
            - deals: list of deal dicts, in the requested sort order
            - total_found, elapsed_ms, sources_searched
            - is_fallback: true when every deal is a reference price
            - stats: summary figures, or None
            - filters: human-readable criteria
            - message: present when live search failed or found nothing
        """
        outcome = await self._orchestrator.search(criteria, on_progress, on_partial)

        if isinstance(outcome, Success):
            return self._build("ok", criteria, outcome.deals, outcome.elapsed_ms, outcome.sources_searched)

        if isinstance(outcome, Error):
            message = outcome.message
            logger.error("Live search failed, switching to reference prices: %s", message)
        elif isinstance(outcome, Empty):
            message = "No live deals found; showing reference prices."
            logger.info("Live search empty, switching to reference prices")
        else:
            message = f"Unexpected outcome: {type(outcome).__name__}"

        deals = self._fallback.get_for_criteria(criteria)
        status = "fallback" if deals else "empty"
        result = self._build(status, criteria, deals, 0, len(self._registry))
        result["message"] = message
        return result

    def list_sources(self) -> list[dict]:
        """Registry rows in search order, with seller notes where we have them."""
        rows = []
        for s in self._registry:
            seller = find_seller(s.name)
            rows.append({
                "name": s.name,
                "url": s.url,
                "trust_level": s.trust_level.name if s.trust_level else None,
                "needs_challenge_render": s.needs_challenge_render,
                "slow_aggregator": s.slow_aggregator,
                "description": seller.description if seller else "",
                "features": list(seller.features) if seller else [],
            })
        return rows

    @staticmethod
    def _build(
        status: str,
        criteria: SearchCriteria,
        deals: list[Deal],
        elapsed_ms: int,
        sources_searched: int,
    ) -> dict:
        stats = SearchStats.from_deals(deals)
        return {
            "status": status,
            "deals": [d.to_dict() for d in apply_sort(deals, criteria)],
            "total_found": len(deals),
            "elapsed_ms": elapsed_ms,
            "sources_searched": sources_searched,
            "is_fallback": is_fallback_batch(deals),
            "stats": stats.to_dict() if stats else None,
            "filters": criteria.describe(),
        }
