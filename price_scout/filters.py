"""Filter predicate applied to every deal, live or fallback."""
from .models import (
    Deal,
    Duration,
    ProductType,
    Region,
    SearchCriteria,
    TrustFilter,
    TrustLevel,
)


def matches(deal: Deal, criteria: SearchCriteria) -> bool:
    """Check whether a deal passes the search criteria."""
    # GLOBAL keys redeem anywhere, so they satisfy any specific region
    if (
        criteria.region != Region.ALL
        and deal.region != criteria.region
        and deal.region != Region.GLOBAL
    ):
        return False

    if criteria.product_type != ProductType.ALL and deal.product_type != criteria.product_type:
        return False

    if criteria.duration != Duration.ALL and deal.duration != criteria.duration:
        return False

    if criteria.trust_filter == TrustFilter.HIGH_ONLY and deal.trust_level != TrustLevel.HIGH:
        return False
    if criteria.trust_filter == TrustFilter.HIGH_AND_MEDIUM and deal.trust_level == TrustLevel.CAUTION:
        return False
    # CAUTION_INCLUSIVE admits every trust level, same as ALL

    if criteria.exclude_trials and deal.is_trial:
        return False

    return True


def filter_deals(deals: list[Deal], criteria: SearchCriteria) -> list[Deal]:
    return [d for d in deals if matches(d, criteria)]
