"""Tests for reference prices and the fallback cascade."""
from decimal import Decimal

from price_scout.fallback import (
    REFERENCE_DEALS,
    FallbackCascade,
    StaticReferenceCatalog,
    as_fallback,
    is_fallback_batch,
)
from price_scout.models import Region, SearchCriteria, SourceKind, TrustFilter, TrustLevel


class TestCatalog:
    def test_reference_deals_are_tagged(self):
        assert all(d.source_kind == SourceKind.FALLBACK for d in REFERENCE_DEALS)

    def test_find_by_seller_case_insensitive(self):
        catalog = StaticReferenceCatalog()
        deals = catalog.find_by_seller(" g2a ")
        assert deals
        assert all(d.seller_name == "G2A" for d in deals)

    def test_unknown_seller(self):
        assert StaticReferenceCatalog().find_by_seller("Nowhere") == []

    def test_find_by_criteria(self):
        criteria = SearchCriteria(region=Region.TURKEY, trust_filter=TrustFilter.HIGH_ONLY)
        deals = StaticReferenceCatalog().find_by_criteria(criteria)
        assert deals
        assert all(d.region in (Region.TURKEY, Region.GLOBAL) for d in deals)
        assert all(d.trust_level == TrustLevel.HIGH for d in deals)

    def test_official_price(self):
        catalog = StaticReferenceCatalog()
        official = catalog.official_price(Region.US)
        assert official.seller_name == "Microsoft Store (Official)"
        assert official.region == Region.US
        assert official.price > Decimal("0")

    def test_official_price_unknown_region_uses_us(self):
        official = StaticReferenceCatalog().official_price(Region.ALL)
        assert official.region == Region.US


class TestCascade:
    def test_get_for_source_tags_fallback(self, make_deal):
        catalog = StaticReferenceCatalog([make_deal(seller="Eneba", source_kind=SourceKind.LIVE)])
        deals = FallbackCascade(catalog).get_for_source("Eneba")
        assert len(deals) == 1
        assert deals[0].source_kind == SourceKind.FALLBACK

    def test_get_for_criteria_filters(self):
        deals = FallbackCascade().get_for_criteria(SearchCriteria(region=Region.GLOBAL))
        assert deals
        assert all(d.region == Region.GLOBAL for d in deals)
        assert all(d.source_kind == SourceKind.FALLBACK for d in deals)

    def test_empty_catalog(self):
        cascade = FallbackCascade(StaticReferenceCatalog([]))
        assert cascade.get_for_source("CDKeys") == []
        assert cascade.get_for_criteria(SearchCriteria()) == []


class TestFallbackBatch:
    def test_as_fallback_does_not_modify_input(self, make_deal):
        live = make_deal()
        converted = as_fallback([live])
        assert live.source_kind == SourceKind.LIVE
        assert converted[0].source_kind == SourceKind.FALLBACK
        assert converted[0].price == live.price

    def test_is_fallback_batch(self, make_deal):
        fallback = make_deal(source_kind=SourceKind.FALLBACK)
        live = make_deal(seller="Eneba", source_kind=SourceKind.LIVE)
        assert is_fallback_batch([fallback])
        assert not is_fallback_batch([fallback, live])
        assert not is_fallback_batch([])
