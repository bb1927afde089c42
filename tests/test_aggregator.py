"""Tests for merging, deduplication, and ranking."""
from decimal import Decimal

from price_scout.aggregator import (
    DedupPolicy,
    apply_sort,
    dedupe,
    merge,
    region_bucket,
)
from price_scout.models import Region, SearchCriteria, SortOption, TrustLevel


def _is_ranked(deals, criteria):
    keys = [(region_bucket(d, criteria), d.price) for d in deals]
    return keys == sorted(keys)


class TestMerge:
    def test_no_duplicate_keys(self, make_deal):
        criteria = SearchCriteria()
        first = [make_deal(seller="Eneba", price="11.49"), make_deal(seller="G2A", price="9.89")]
        second = [make_deal(seller="Eneba", price="10.99"), make_deal(seller="Kinguin", price="10.50")]
        merged = merge(first, second, criteria)
        keys = [d.dedup_key for d in merged]
        assert len(keys) == len(set(keys))
        assert len(merged) == 3

    def test_sorted_by_bucket_then_price(self, make_deal):
        criteria = SearchCriteria(region=Region.UAE)
        deals = [
            make_deal(seller="A", price="5.00", region=Region.TURKEY),
            make_deal(seller="B", price="14.00", region=Region.UAE),
            make_deal(seller="C", price="11.00", region=Region.GLOBAL),
        ]
        merged = merge([], deals, criteria)
        assert [d.seller_name for d in merged] == ["C", "B", "A"]
        assert _is_ranked(merged, criteria)

    def test_inputs_not_modified(self, make_deal):
        existing = [make_deal(seller="A", price="12.00")]
        incoming = [make_deal(seller="A", price="10.00")]
        merge(existing, incoming, SearchCriteria())
        assert existing[0].price == Decimal("12.00")
        assert len(existing) == 1 and len(incoming) == 1

    def test_repeated_merges_stay_ranked(self, make_deal):
        criteria = SearchCriteria()
        aggregate = []
        batches = [
            [make_deal(seller="A", price="12.99")],
            [make_deal(seller="B", price="9.89"), make_deal(seller="A", price="12.49")],
            [make_deal(seller="C", price="11.29")],
        ]
        for batch in batches:
            aggregate = merge(aggregate, batch, criteria)
            assert _is_ranked(aggregate, criteria)
        assert [str(d.price) for d in aggregate] == ["9.89", "11.29", "12.49"]


class TestDedupPolicy:
    def test_keep_cheapest(self, make_deal):
        deals = [make_deal(seller="A", price="12.00"), make_deal(seller="A", price="10.00")]
        assert dedupe(deals, DedupPolicy.KEEP_CHEAPEST)[0].price == Decimal("10.00")

    def test_first_wins(self, make_deal):
        deals = [make_deal(seller="A", price="12.00"), make_deal(seller="A", price="10.00")]
        assert dedupe(deals, DedupPolicy.FIRST_WINS)[0].price == Decimal("12.00")

    def test_equal_price_keeps_first(self, make_deal):
        first = make_deal(seller="A", price="10.00", id="first")
        second = make_deal(seller="A", price="10.00", id="second")
        assert dedupe([first, second])[0].id == "first"


class TestApplySort:
    def test_price_high(self, make_deal):
        deals = [make_deal(seller="A", price="5"), make_deal(seller="B", price="15")]
        criteria = SearchCriteria(sort_option=SortOption.PRICE_HIGH)
        assert [d.seller_name for d in apply_sort(deals, criteria)] == ["B", "A"]

    def test_rating_puts_unrated_last(self, make_deal):
        deals = [
            make_deal(seller="A", price="5", rating=None),
            make_deal(seller="B", price="15", rating=4.7),
            make_deal(seller="C", price="10", rating=4.2),
        ]
        criteria = SearchCriteria(sort_option=SortOption.RATING)
        assert [d.seller_name for d in apply_sort(deals, criteria)] == ["B", "C", "A"]

    def test_trust(self, make_deal):
        deals = [
            make_deal(seller="A", price="5", trust_level=TrustLevel.CAUTION),
            make_deal(seller="B", price="15", trust_level=TrustLevel.HIGH),
            make_deal(seller="C", price="10", trust_level=TrustLevel.MEDIUM),
        ]
        criteria = SearchCriteria(sort_option=SortOption.TRUST)
        assert [d.seller_name for d in apply_sort(deals, criteria)] == ["B", "C", "A"]

    def test_price_low_uses_ranking(self, make_deal):
        deals = [
            make_deal(seller="A", price="5", region=Region.BRAZIL),
            make_deal(seller="B", price="10", region=Region.GLOBAL),
        ]
        criteria = SearchCriteria(region=Region.US)
        assert [d.seller_name for d in apply_sort(deals, criteria)] == ["B", "A"]
