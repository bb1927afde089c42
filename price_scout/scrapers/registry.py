"""Source registry — the ordered table of retailers searched per session."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

import httpx

from ..config import ScoutSettings
from ..models import TrustLevel
from ..renderer import ChallengeRenderer
from .base import Source
from .html import HtmlSource, SiteSelectors
from .rendered import RenderedSource

logger = logging.getLogger(__name__)


class SourceRegistry:
    """Immutable, ordered collection of sources. Slow aggregators always sort last."""

    def __init__(self, sources: Iterable[Source]):
        indexed = list(enumerate(sources))
        names = [s.name for _, s in indexed]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise ValueError(f"Duplicate source names: {sorted(duplicates)}")

        ordered = sorted(indexed, key=lambda pair: (pair[1].slow_aggregator, pair[1].order_hint, pair[0]))
        self._sources: tuple[Source, ...] = tuple(s for _, s in ordered)
        self._by_name = {s.name: s for s in self._sources}

    def list(self) -> list[Source]:
        return list(self._sources)

    def names(self) -> list[str]:
        return [s.name for s in self._sources]

    def get(self, name: str) -> Optional[Source]:
        return self._by_name.get(name)

    def __len__(self) -> int:
        return len(self._sources)

    def __iter__(self) -> Iterator[Source]:
        return iter(self._sources)


@dataclass(frozen=True)
class SiteEntry:
    """One row of the built-in retailer table."""
    name: str
    url: str
    currency: str
    trust_level: TrustLevel
    selectors: Optional[SiteSelectors] = None
    needs_challenge_render: bool = False
    slow_aggregator: bool = False


SITE_TABLE: tuple[SiteEntry, ...] = (
    SiteEntry(
        name="CDKeys",
        url="https://www.cdkeys.com/catalogsearch/result/?q=xbox+game+pass+ultimate",
        currency="USD",
        trust_level=TrustLevel.HIGH,
        selectors=SiteSelectors(
            item=".product-item",
            title=".product-item-name",
            price=".price",
            link="a.product-item-link",
        ),
    ),
    SiteEntry(
        name="Eneba",
        url="https://www.eneba.com/store/xbox?text=xbox%20game%20pass%20ultimate",
        currency="EUR",
        trust_level=TrustLevel.HIGH,
        needs_challenge_render=True,
    ),
    SiteEntry(
        name="G2A",
        url="https://www.g2a.com/search?query=xbox%20game%20pass%20ultimate",
        currency="EUR",
        trust_level=TrustLevel.CAUTION,
        needs_challenge_render=True,
    ),
    SiteEntry(
        name="Instant Gaming",
        url="https://www.instant-gaming.com/en/search/?q=xbox+game+pass+ultimate",
        currency="EUR",
        trust_level=TrustLevel.HIGH,
        needs_challenge_render=True,
    ),
    SiteEntry(
        name="Kinguin",
        url="https://www.kinguin.net/listing?phrase=xbox+game+pass+ultimate",
        currency="EUR",
        trust_level=TrustLevel.MEDIUM,
        needs_challenge_render=True,
    ),
    SiteEntry(
        name="Gamivo",
        url="https://www.gamivo.com/search/xbox%20game%20pass%20ultimate",
        currency="EUR",
        trust_level=TrustLevel.MEDIUM,
        needs_challenge_render=True,
    ),
    SiteEntry(
        name="K4G",
        url="https://k4g.com/?s=xbox+game+pass+ultimate",
        currency="USD",
        trust_level=TrustLevel.MEDIUM,
        needs_challenge_render=True,
    ),
    SiteEntry(
        name="HRK Game",
        url="https://www.hrkgame.com/en/search/?q=game+pass+ultimate",
        currency="EUR",
        trust_level=TrustLevel.MEDIUM,
        needs_challenge_render=True,
    ),
    SiteEntry(
        name="AllKeyShop",
        url="https://www.allkeyshop.com/blog/buy-xbox-game-pass-ultimate-cd-key-compare-prices/",
        currency="EUR",
        trust_level=TrustLevel.MEDIUM,
        selectors=SiteSelectors(
            item=".offers-table .offers-table-row",
            title=".merchant-name",
            price=".price",
            link="a.buy-btn",
            region=".region",
            merchant=".merchant-name",
        ),
        slow_aggregator=True,
    ),
)


def default_registry(
    settings: ScoutSettings,
    renderer: ChallengeRenderer,
    client: Optional[httpx.AsyncClient] = None,
    entries: Iterable[SiteEntry] = SITE_TABLE,
) -> SourceRegistry:
    """Build the registry from the site table, wiring each row to its fetcher."""
    sources = []
    for hint, entry in enumerate(entries):
        if entry.needs_challenge_render:
            fetcher = RenderedSource(
                entry.name,
                entry.url,
                renderer,
                currency=entry.currency,
                trust_level=entry.trust_level,
                max_price=settings.max_price,
            )
        elif entry.selectors is not None:
            fetcher = HtmlSource(
                entry.name,
                entry.url,
                entry.selectors,
                currency=entry.currency,
                trust_level=entry.trust_level,
                user_agent=settings.user_agent,
                max_price=settings.max_price,
                max_results=settings.max_records,
                client=client,
            )
        else:
            logger.warning("Site %s has neither selectors nor rendering; skipping", entry.name)
            continue

        sources.append(Source(
            name=entry.name,
            fetcher=fetcher,
            order_hint=hint,
            needs_challenge_render=entry.needs_challenge_render,
            slow_aggregator=entry.slow_aggregator,
            url=entry.url,
            trust_level=entry.trust_level,
        ))
    return SourceRegistry(sources)
