"""Source adapter for bot-protected retailers, backed by the challenge renderer."""
import logging

from ..errors import ChallengeUnresolved, RenderTimeout, SourceFetchError
from ..models import Deal, SearchCriteria, SourceKind, TrustLevel
from ..renderer import ChallengeRenderer, RenderState
from .base import SourceFetcher, listing_to_deal

logger = logging.getLogger(__name__)


class RenderedSource(SourceFetcher):
    """Render a retailer's search page in the browser and convert its records."""

    def __init__(
        self,
        seller_name: str,
        url: str,
        renderer: ChallengeRenderer,
        *,
        currency: str,
        trust_level: TrustLevel,
        max_price: float = 200.0,
    ):
        self.seller_name = seller_name
        self.url = url
        self.currency = currency
        self.trust_level = trust_level
        self.max_price = max_price
        self._renderer = renderer

    async def fetch(self, criteria: SearchCriteria) -> list[Deal]:
        result = await self._renderer.render(self.url)

        if result.state == RenderState.CHALLENGE_DETECTED:
            raise ChallengeUnresolved(self.seller_name, result.error or "challenge not resolved")
        if result.state == RenderState.TIMED_OUT:
            raise RenderTimeout(self.seller_name, result.error or "render timed out")
        if not result.ok:
            raise SourceFetchError(self.seller_name, f"{result.state.value}: {result.error}")

        deals = []
        for record in result.records:
            deal = listing_to_deal(
                record,
                self.seller_name,
                currency=self.currency,
                trust_level=self.trust_level,
                source_kind=SourceKind.RENDERED,
                max_price=self.max_price,
                fallback_url=self.url,
            )
            if deal is not None:
                deals.append(deal)

        logger.info(
            "%s rendered %d records, kept %d deals",
            self.seller_name, len(result.records), len(deals),
        )
        return deals
