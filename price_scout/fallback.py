"""
Fallback cascade — reference prices used when a live source fails or comes back empty.

Everything returned here is tagged SourceKind.FALLBACK.
"""
import dataclasses
import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Iterable, Optional

from .filters import filter_deals
from .models import (
    Deal,
    Duration,
    ProductType,
    Region,
    SearchCriteria,
    SourceKind,
    TrustLevel,
)

logger = logging.getLogger(__name__)


class ReferenceCatalog(ABC):
    """Read-only source of typical prices."""

    @abstractmethod
    def find_by_seller(self, name: str) -> list[Deal]:
        ...

    @abstractmethod
    def find_by_criteria(self, criteria: SearchCriteria) -> list[Deal]:
        ...


def _ref(
    id: str,
    seller: str,
    price: str,
    currency: str,
    region: Region,
    duration: Duration,
    url: str,
    trust: TrustLevel,
    rating: float,
    reviews: int,
    product_type: ProductType = ProductType.KEY,
) -> Deal:
    return Deal(
        id=id,
        seller_name=seller,
        title="Xbox Game Pass Ultimate",
        price=Decimal(price),
        currency=currency,
        region=region,
        duration=duration,
        product_type=product_type,
        url=url,
        trust_level=trust,
        rating=rating,
        review_count=reviews,
        source_kind=SourceKind.FALLBACK,
    )


REFERENCE_DEALS: tuple[Deal, ...] = (
    _ref("cdkeys-1m-global", "CDKeys", "12.99", "USD", Region.GLOBAL, Duration.ONE_MONTH,
         "https://www.cdkeys.com/xbox-live/memberships/xbox-game-pass-ultimate-1-month",
         TrustLevel.HIGH, 4.7, 15420),
    _ref("cdkeys-3m-global", "CDKeys", "32.99", "USD", Region.GLOBAL, Duration.THREE_MONTHS,
         "https://www.cdkeys.com/xbox-live/memberships/xbox-game-pass-ultimate-3-months",
         TrustLevel.HIGH, 4.7, 8920),
    _ref("eneba-1m-global", "Eneba", "11.49", "EUR", Region.GLOBAL, Duration.ONE_MONTH,
         "https://www.eneba.com/xbox-xbox-game-pass-ultimate-1-month",
         TrustLevel.HIGH, 4.5, 12300),
    _ref("eneba-1m-turkey", "Eneba", "7.99", "EUR", Region.TURKEY, Duration.ONE_MONTH,
         "https://www.eneba.com/xbox-xbox-game-pass-ultimate-1-month-turkey",
         TrustLevel.HIGH, 4.4, 5670),
    _ref("ig-1m-eu", "Instant Gaming", "12.29", "EUR", Region.EU, Duration.ONE_MONTH,
         "https://www.instant-gaming.com/en/xbox-game-pass-ultimate/",
         TrustLevel.HIGH, 4.6, 9800),
    _ref("kinguin-1m-global", "Kinguin", "10.99", "EUR", Region.GLOBAL, Duration.ONE_MONTH,
         "https://www.kinguin.net/xbox-game-pass-ultimate",
         TrustLevel.MEDIUM, 4.2, 7650),
    _ref("kinguin-3m-global", "Kinguin", "28.99", "EUR", Region.GLOBAL, Duration.THREE_MONTHS,
         "https://www.kinguin.net/xbox-game-pass-ultimate-3-months",
         TrustLevel.MEDIUM, 4.1, 3420),
    _ref("g2a-1m-global", "G2A", "9.89", "EUR", Region.GLOBAL, Duration.ONE_MONTH,
         "https://www.g2a.com/xbox-game-pass-ultimate",
         TrustLevel.CAUTION, 4.0, 25000),
    _ref("g2a-1m-brazil", "G2A", "5.99", "EUR", Region.BRAZIL, Duration.ONE_MONTH,
         "https://www.g2a.com/xbox-game-pass-ultimate-brazil",
         TrustLevel.CAUTION, 3.9, 4200),
    _ref("gamivo-1m-global", "Gamivo", "11.29", "EUR", Region.GLOBAL, Duration.ONE_MONTH,
         "https://www.gamivo.com/product/xbox-game-pass-ultimate-1-month",
         TrustLevel.MEDIUM, 4.3, 6780),
    _ref("eneba-1m-uae", "Eneba", "45.00", "AED", Region.UAE, Duration.ONE_MONTH,
         "https://www.eneba.com/xbox-xbox-game-pass-ultimate-1-month-uae",
         TrustLevel.HIGH, 4.5, 890),
    _ref("cdkeys-3m-uae", "CDKeys", "125.00", "AED", Region.UAE, Duration.THREE_MONTHS,
         "https://www.cdkeys.com/xbox-game-pass-ultimate-3-months-uae",
         TrustLevel.HIGH, 4.6, 450),
    _ref("g2a-1m-account", "G2A", "4.99", "EUR", Region.GLOBAL, Duration.ONE_MONTH,
         "https://www.g2a.com/xbox-game-pass-ultimate-account",
         TrustLevel.CAUTION, 3.5, 1200, product_type=ProductType.ACCOUNT),
)

# Official one-month list price per region
OFFICIAL_PRICES: dict[Region, tuple[str, str]] = {
    Region.US: ("17.99", "USD"),
    Region.UK: ("14.99", "GBP"),
    Region.EU: ("14.99", "EUR"),
    Region.UAE: ("55.00", "AED"),
    Region.TURKEY: ("129.00", "TRY"),
    Region.BRAZIL: ("49.99", "BRL"),
    Region.INDIA: ("699.00", "INR"),
    Region.ARGENTINA: ("2199.00", "ARS"),
}


class StaticReferenceCatalog(ReferenceCatalog):
    """In-memory catalog of typical reseller prices."""

    def __init__(self, deals: Optional[Iterable[Deal]] = None):
        self._deals = tuple(REFERENCE_DEALS if deals is None else deals)

    def find_by_seller(self, name: str) -> list[Deal]:
        wanted = name.strip().lower()
        return [d for d in self._deals if d.seller_name.lower() == wanted]

    def find_by_criteria(self, criteria: SearchCriteria) -> list[Deal]:
        return filter_deals(list(self._deals), criteria)

    def official_price(self, region: Region) -> Deal:
        """The first-party store price, for comparison against reseller deals."""
        price, currency = OFFICIAL_PRICES.get(region, ("17.99", "USD"))
        code = region.value if region in OFFICIAL_PRICES else Region.US.value
        return _ref(
            f"official-ms-{code}", "Microsoft Store (Official)", price, currency,
            region if region in OFFICIAL_PRICES else Region.US, Duration.ONE_MONTH,
            "https://www.xbox.com/en-US/xbox-game-pass",
            TrustLevel.HIGH, 5.0, 0,
        )


def as_fallback(deals: Iterable[Deal]) -> list[Deal]:
    return [
        d if d.source_kind == SourceKind.FALLBACK
        else dataclasses.replace(d, source_kind=SourceKind.FALLBACK)
        for d in deals
    ]


def is_fallback_batch(deals: list[Deal]) -> bool:
    """True only when there is at least one deal and every one came from the cascade."""
    return bool(deals) and all(d.source_kind == SourceKind.FALLBACK for d in deals)


class FallbackCascade:
    """Serves reference deals per seller or for whole criteria."""

    def __init__(self, catalog: Optional[ReferenceCatalog] = None):
        self._catalog = catalog or StaticReferenceCatalog()

    def get_for_source(self, seller_name: str) -> list[Deal]:
        deals = as_fallback(self._catalog.find_by_seller(seller_name))
        logger.info("Fallback for %s: %d reference deals", seller_name, len(deals))
        return deals

    def get_for_criteria(self, criteria: SearchCriteria) -> list[Deal]:
        deals = filter_deals(as_fallback(self._catalog.find_by_criteria(criteria)), criteria)
        logger.info("Global fallback: %d reference deals", len(deals))
        return deals
