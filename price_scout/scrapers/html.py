"""
Plain HTTP source — fetches a search page and reads listings via CSS selectors.

Each retailer is described by a SiteSelectors row rather than its own class.
"""
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from ..config import BROWSER_HEADERS
from ..errors import SourceFetchError
from ..models import Deal, SearchCriteria, SourceKind, TrustLevel
from .base import RawListing, SourceFetcher, listing_to_deal

logger = logging.getLogger(__name__)

# Interstitial page text only; ordinary storefronts embed reCAPTCHA scripts too
BLOCK_MARKERS = (
    "automated access",
    "access denied",
    "cf-challenge",
    "attention required! | cloudflare",
    'id="captcha-form"',
    "px-captcha",
    "please verify you are a human",
)


@dataclass(frozen=True)
class SiteSelectors:
    """Where a retailer keeps each listing field on its search page."""
    item: str
    title: str
    price: str
    link: str = "a"
    region: Optional[str] = None
    merchant: Optional[str] = None


class HtmlSource(SourceFetcher):
    """Fetch one search URL and parse listings with a selector table row."""

    def __init__(
        self,
        seller_name: str,
        url: str,
        selectors: SiteSelectors,
        *,
        currency: str,
        trust_level: TrustLevel,
        user_agent: str,
        max_price: float = 200.0,
        max_results: int = 15,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.seller_name = seller_name
        self.url = url
        self.selectors = selectors
        self.currency = currency
        self.trust_level = trust_level
        self.max_price = max_price
        self.max_results = max_results
        self._headers = {**BROWSER_HEADERS, "User-Agent": user_agent}
        self._client = client

    async def fetch(self, criteria: SearchCriteria) -> list[Deal]:
        html = await self._get(self.url)
        deals = self.parse(html)
        logger.info("%s returned %d deals", self.seller_name, len(deals))
        return deals

    async def _get(self, url: str) -> str:
        try:
            if self._client is not None:
                response = await self._client.get(url, headers=self._headers, follow_redirects=True)
            else:
                async with httpx.AsyncClient(headers=self._headers, follow_redirects=True) as client:
                    response = await client.get(url)
        except httpx.HTTPError as e:
            raise SourceFetchError(self.seller_name, f"request failed: {e}") from e

        if response.status_code != 200:
            raise SourceFetchError(self.seller_name, f"HTTP {response.status_code}")

        text = response.text
        lower = text.lower()
        for marker in BLOCK_MARKERS:
            if marker in lower:
                raise SourceFetchError(self.seller_name, f"blocked ({marker})")
        return text

    def parse(self, html: str) -> list[Deal]:
        """Parse a search page into deals. Malformed items are skipped."""
        soup = BeautifulSoup(html, "html.parser")
        deals: list[Deal] = []
        for item in soup.select(self.selectors.item):
            title_tag = item.select_one(self.selectors.title)
            price_tag = item.select_one(self.selectors.price)
            if not title_tag or not price_tag:
                continue

            link_tag = item.select_one(self.selectors.link)
            href = link_tag.get("href") if link_tag else None
            title = title_tag.get_text(" ", strip=True)
            if self.selectors.region:
                region_tag = item.select_one(self.selectors.region)
                if region_tag:
                    title = f"{title} {region_tag.get_text(' ', strip=True)}"

            seller = self.seller_name
            if self.selectors.merchant:
                merchant_tag = item.select_one(self.selectors.merchant)
                if merchant_tag and merchant_tag.get_text(strip=True):
                    seller = merchant_tag.get_text(strip=True)

            listing = RawListing(
                title=title,
                price=price_tag.get("data-price-amount") or price_tag.get_text(strip=True),
                url=urljoin(self.url, href) if href else None,
            )
            deal = listing_to_deal(
                listing,
                seller,
                currency=self.currency,
                trust_level=self.trust_level,
                source_kind=SourceKind.LIVE,
                max_price=self.max_price,
                fallback_url=self.url,
                # aggregator rows don't repeat the product name
                require_product_title=self.selectors.merchant is None,
            )
            if deal is None:
                continue
            deals.append(deal)
            if len(deals) >= self.max_results:
                break
        return deals
