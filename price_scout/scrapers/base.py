"""The fetch interface every retailer entry plugs into."""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ..models import (
    Deal,
    ProductType,
    SearchCriteria,
    SourceKind,
    TrustLevel,
    new_deal_id,
)
from ..parsing import (
    detect_duration,
    detect_region,
    is_trial,
    is_valid_product_title,
    normalize_whitespace,
    price_in_bounds,
    to_decimal,
)

logger = logging.getLogger(__name__)


@dataclass
class RawListing:
    """An unparsed product record scraped from a page."""
    title: str
    price: Optional[str] = None
    url: Optional[str] = None
    currency: Optional[str] = None
    rating: Optional[str] = None
    review_count: Optional[str] = None


class SourceFetcher(ABC):
    """Fetches deals from one retailer."""

    @abstractmethod
    async def fetch(self, criteria: SearchCriteria) -> list[Deal]:
        """Return this retailer's deals. Raise on network or parse failure."""
        ...


@dataclass(frozen=True)
class Source:
    """One registry entry. Immutable for the life of the process."""
    name: str
    fetcher: SourceFetcher
    order_hint: int = 0
    needs_challenge_render: bool = False
    slow_aggregator: bool = False
    url: str = ""
    trust_level: Optional[TrustLevel] = None


def _parse_rating(value: Optional[str]) -> Optional[float]:
    number = to_decimal(value)
    if number is None or number > 5:
        return None
    return float(number)


def _parse_count(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    digits = "".join(ch for ch in value if ch.isdigit())
    return int(digits) if digits else None


def listing_to_deal(
    listing: RawListing,
    seller_name: str,
    *,
    currency: str,
    trust_level: TrustLevel,
    source_kind: SourceKind,
    max_price: float = 200.0,
    fallback_url: str = "",
    require_product_title: bool = True,
) -> Optional[Deal]:
    """
    Turn a raw scraped record into a Deal, or None when it should be skipped.

    Records without a parsable in-bounds price are dropped, as are titles
    that don't name the tracked product (unless require_product_title is off).
    """
    title = normalize_whitespace(listing.title or "")
    if require_product_title and not is_valid_product_title(title):
        return None

    price = to_decimal(listing.price)
    if not price_in_bounds(price, max_price):
        logger.debug("Skipping %s listing %r: price %r out of bounds", seller_name, title, listing.price)
        return None

    url = listing.url or fallback_url
    lower = title.lower()
    product_type = ProductType.ACCOUNT if "account" in lower else ProductType.KEY

    return Deal(
        id=new_deal_id(),
        seller_name=seller_name,
        title=title,
        price=price,
        currency=listing.currency or currency,
        region=detect_region(title, url),
        duration=detect_duration(title),
        product_type=product_type,
        url=url,
        trust_level=trust_level,
        rating=_parse_rating(listing.rating),
        review_count=_parse_count(listing.review_count),
        is_trial=is_trial(title),
        source_kind=source_kind,
    )
