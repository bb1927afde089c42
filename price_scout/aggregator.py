"""Result aggregator — merges streamed batches into one deduplicated, ranked list."""
from enum import Enum
from typing import Iterable

from .models import Deal, Region, SearchCriteria, SortOption, TrustLevel


class DedupPolicy(str, Enum):
    """Which deal survives when two share (seller, region, duration)."""
    KEEP_CHEAPEST = "keep_cheapest"
    FIRST_WINS = "first_wins"


_TRUST_RANK = {TrustLevel.HIGH: 0, TrustLevel.MEDIUM: 1, TrustLevel.CAUTION: 2}


def region_bucket(deal: Deal, criteria: SearchCriteria) -> int:
    """0 for deals usable in the requested region, 1 for everything else."""
    if deal.region == Region.GLOBAL or deal.region == criteria.region:
        return 0
    return 1


def rank_key(deal: Deal, criteria: SearchCriteria) -> tuple:
    return (region_bucket(deal, criteria), deal.price)


def dedupe(deals: Iterable[Deal], policy: DedupPolicy = DedupPolicy.KEEP_CHEAPEST) -> list[Deal]:
    """Keep one deal per dedup key, preserving first-seen key order."""
    kept: dict[tuple, Deal] = {}
    for deal in deals:
        current = kept.get(deal.dedup_key)
        if current is None:
            kept[deal.dedup_key] = deal
        elif policy == DedupPolicy.KEEP_CHEAPEST and deal.price < current.price:
            kept[deal.dedup_key] = deal
    return list(kept.values())


def merge(
    existing: list[Deal],
    incoming: list[Deal],
    criteria: SearchCriteria,
    policy: DedupPolicy = DedupPolicy.KEEP_CHEAPEST,
) -> list[Deal]:
    """
    Fold a new batch into the running aggregate.

    Returns a new list with at most one deal per dedup key, sorted by
    (region bucket, price). Neither input is modified.
    """
    combined = list(existing) + list(incoming)
    unique = dedupe(combined, policy)
    # sorted() is stable, so equal keys keep merge order
    return sorted(unique, key=lambda d: rank_key(d, criteria))


def apply_sort(deals: list[Deal], criteria: SearchCriteria) -> list[Deal]:
    """Presentation ordering for the caller's chosen sort option."""
    option = criteria.sort_option
    if option == SortOption.PRICE_HIGH:
        return sorted(deals, key=lambda d: d.price, reverse=True)
    if option == SortOption.RATING:
        return sorted(
            deals,
            key=lambda d: (d.rating is None, -(d.rating or 0.0), d.price),
        )
    if option == SortOption.TRUST:
        return sorted(deals, key=lambda d: (_TRUST_RANK[d.trust_level], d.price))
    return sorted(deals, key=lambda d: rank_key(d, criteria))
