"""Domain models — deals, search criteria, progress events, and outcomes."""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict


class Region(str, Enum):
    """Regions a key can be locked to. ALL is the search wildcard."""
    ALL = "all"
    GLOBAL = "global"
    UAE = "ae"
    US = "us"
    UK = "uk"
    EU = "eu"
    TURKEY = "tr"
    BRAZIL = "br"
    ARGENTINA = "ar"
    INDIA = "in"


class Duration(str, Enum):
    ALL = "all"
    ONE_MONTH = "1_month"
    THREE_MONTHS = "3_months"
    SIX_MONTHS = "6_months"
    TWELVE_MONTHS = "12_months"

    @property
    def months(self) -> int:
        return _DURATION_MONTHS[self]


_DURATION_MONTHS = {
    Duration.ALL: 0,
    Duration.ONE_MONTH: 1,
    Duration.THREE_MONTHS: 3,
    Duration.SIX_MONTHS: 6,
    Duration.TWELVE_MONTHS: 12,
}


class ProductType(str, Enum):
    ALL = "all"
    KEY = "key"
    ACCOUNT = "account"


class TrustLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    CAUTION = "caution"


class TrustFilter(str, Enum):
    ALL = "all"
    HIGH_ONLY = "high_only"
    HIGH_AND_MEDIUM = "high_and_medium"
    CAUTION_INCLUSIVE = "caution_inclusive"


class SortOption(str, Enum):
    PRICE_LOW = "price_low"
    PRICE_HIGH = "price_high"
    RATING = "rating"
    TRUST = "trust"


class SourceKind(str, Enum):
    """Where a deal came from."""
    LIVE = "live"
    RENDERED = "rendered"
    FALLBACK = "fallback"


_CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "TRY": "₺",
    "BRL": "R$",
    "INR": "₹",
}


def new_deal_id() -> str:
    return uuid.uuid4().hex[:8]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Deal:
    """A single offer from one seller. Only valid for one search session."""
    id: str
    seller_name: str
    price: Decimal
    currency: str
    region: Region
    duration: Duration
    url: str
    trust_level: TrustLevel
    product_type: ProductType = ProductType.KEY
    title: str = ""
    original_price: Optional[Decimal] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    is_trial: bool = False
    fetched_at: datetime = field(default_factory=_utcnow)
    source_kind: SourceKind = SourceKind.LIVE

    def __post_init__(self):
        if not isinstance(self.price, Decimal):
            object.__setattr__(self, "price", Decimal(str(self.price)))
        if self.price <= 0:
            raise ValueError(f"Deal price must be positive, got {self.price}")

    @property
    def dedup_key(self) -> tuple[str, Region, Duration]:
        return (self.seller_name, self.region, self.duration)

    def formatted_price(self) -> str:
        amount = f"{self.price.quantize(Decimal('0.01'))}"
        symbol = _CURRENCY_SYMBOLS.get(self.currency)
        if symbol:
            return f"{symbol}{amount}"
        return f"{self.currency} {amount}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller": self.seller_name,
            "title": self.title,
            "price": str(self.price),
            "currency": self.currency,
            "formatted_price": self.formatted_price(),
            "region": self.region.name,
            "duration": self.duration.name,
            "product_type": self.product_type.name,
            "trust_level": self.trust_level.name,
            "rating": self.rating,
            "review_count": self.review_count,
            "url": self.url,
            "is_trial": self.is_trial,
            "fetched_at": self.fetched_at.isoformat(),
            "source_kind": self.source_kind.name,
        }


class SearchCriteria(BaseModel):
    """Filter and sort settings for one search session."""
    model_config = ConfigDict(frozen=True)

    region: Region = Region.ALL
    product_type: ProductType = ProductType.ALL
    duration: Duration = Duration.ALL
    trust_filter: TrustFilter = TrustFilter.ALL
    exclude_trials: bool = True
    sort_option: SortOption = SortOption.PRICE_LOW

    def describe(self) -> str:
        parts = []
        if self.region != Region.ALL:
            parts.append(self.region.name.title())
        if self.product_type != ProductType.ALL:
            parts.append(self.product_type.name.title())
        if self.duration != Duration.ALL:
            months = self.duration.months
            parts.append(f"{months} Month" + ("s" if months > 1 else ""))
        if self.trust_filter == TrustFilter.HIGH_ONLY:
            parts.append("Trusted Only")
        elif self.trust_filter == TrustFilter.HIGH_AND_MEDIUM:
            parts.append("No Caution Sellers")
        return " • ".join(parts) if parts else "No filters"


@dataclass(frozen=True)
class SearchProgress:
    """Progress event, emitted as each source starts and completes."""
    current_source_label: str
    sources_completed: int
    total_sources: int
    deals_found_so_far: int


@dataclass(frozen=True)
class Loading:
    pass


@dataclass(frozen=True)
class Success:
    deals: list[Deal]
    total_found: int
    elapsed_ms: int
    sources_searched: int

    @property
    def lowest(self) -> Optional[Deal]:
        return min(self.deals, key=lambda d: d.price, default=None)


@dataclass(frozen=True)
class Empty:
    pass


@dataclass(frozen=True)
class Error:
    message: str
    cause: Optional[BaseException] = None


SearchOutcome = Union[Loading, Success, Empty, Error]


@dataclass(frozen=True)
class SearchStats:
    """Summary figures over a list of deals."""
    total_deals: int
    lowest_price: Decimal
    highest_price: Decimal
    average_price: Decimal
    currency: str
    sellers_count: int

    @classmethod
    def from_deals(cls, deals: list[Deal]) -> Optional["SearchStats"]:
        if not deals:
            return None
        prices = [d.price for d in deals]
        currencies: dict[str, int] = {}
        for deal in deals:
            currencies[deal.currency] = currencies.get(deal.currency, 0) + 1
        return cls(
            total_deals=len(deals),
            lowest_price=min(prices),
            highest_price=max(prices),
            average_price=(sum(prices) / len(prices)).quantize(Decimal("0.01")),
            currency=max(currencies, key=currencies.get),
            sellers_count=len({d.seller_name for d in deals}),
        )

    def to_dict(self) -> dict:
        return {
            "total_deals": self.total_deals,
            "lowest_price": str(self.lowest_price),
            "highest_price": str(self.highest_price),
            "average_price": str(self.average_price),
            "currency": self.currency,
            "sellers_count": self.sellers_count,
        }
