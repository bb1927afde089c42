"""Tests for price, region, duration, and title heuristics."""
from decimal import Decimal

import pytest

from price_scout.models import Duration, Region
from price_scout.parsing import (
    detect_duration,
    detect_region,
    is_trial,
    is_valid_product_title,
    normalize_whitespace,
    price_in_bounds,
    to_decimal,
)


class TestToDecimal:
    @pytest.mark.parametrize("text,expected", [
        ("$12.99", Decimal("12.99")),
        ("12,99 €", Decimal("12.99")),
        ("1,299.50", Decimal("1299.50")),
        ("1.299,50", Decimal("1299.50")),
        ("1.299", Decimal("1299")),
        ("R$ 29,90", Decimal("29.90")),
        ("45", Decimal("45")),
    ])
    def test_formats(self, text, expected):
        assert to_decimal(text) == expected

    @pytest.mark.parametrize("text", [None, "", "Free", "—"])
    def test_unparsable(self, text):
        assert to_decimal(text) is None


class TestPriceBounds:
    def test_in_bounds(self):
        assert price_in_bounds(Decimal("12.99"), 200)

    def test_bounds_are_exclusive(self):
        assert not price_in_bounds(Decimal("0"), 200)
        assert not price_in_bounds(Decimal("200"), 200)

    def test_none(self):
        assert not price_in_bounds(None, 200)


class TestTitles:
    def test_valid_product_title(self):
        assert is_valid_product_title("Xbox Game Pass Ultimate 1 Month Key")
        assert is_valid_product_title("XBOX GAMEPASS ULTIMATE - Global")

    def test_missing_ultimate_rejected(self):
        assert not is_valid_product_title("Xbox Game Pass Core 3 Months")

    def test_unrelated_title_rejected(self):
        assert not is_valid_product_title("Ultimate Chicken Horse")

    def test_trial(self):
        assert is_trial("Game Pass Ultimate 14 Day Trial")
        assert not is_trial("Game Pass Ultimate 1 Month")

    def test_normalize_whitespace(self):
        assert normalize_whitespace("  Game\n Pass\t Ultimate ") == "Game Pass Ultimate"


class TestRegionDetection:
    @pytest.mark.parametrize("title,expected", [
        ("Game Pass Ultimate 1 Month UAE", Region.UAE),
        ("Game Pass Ultimate Turkey", Region.TURKEY),
        ("Game Pass Ultimate - Brazil", Region.BRAZIL),
        ("Game Pass Ultimate India", Region.INDIA),
        ("Game Pass Ultimate US", Region.US),
        ("Game Pass Ultimate United Kingdom", Region.UK),
        ("Game Pass Ultimate Europe", Region.EU),
        ("Game Pass Ultimate Global", Region.GLOBAL),
    ])
    def test_from_title(self, title, expected):
        assert detect_region(title) == expected

    def test_from_url(self):
        assert detect_region("Game Pass Ultimate", "https://shop.example.com/gpu/tr/") == Region.TURKEY

    def test_unlabeled_uses_default(self):
        assert detect_region("Game Pass Ultimate") == Region.GLOBAL
        assert detect_region("Game Pass Ultimate", default=Region.EU) == Region.EU

    def test_words_containing_codes_do_not_match(self):
        # "trust" contains "tr" and "bus" contains "us"
        assert detect_region("Game Pass Ultimate trusted bus") == Region.GLOBAL


class TestDurationDetection:
    @pytest.mark.parametrize("title,expected", [
        ("Game Pass Ultimate 1 Month", Duration.ONE_MONTH),
        ("Game Pass Ultimate 3 Months", Duration.THREE_MONTHS),
        ("Game Pass Ultimate 6-Month", Duration.SIX_MONTHS),
        ("Game Pass Ultimate 12 Months", Duration.TWELVE_MONTHS),
        ("Game Pass Ultimate 1 Year", Duration.TWELVE_MONTHS),
        ("Game Pass Ultimate", Duration.ONE_MONTH),
    ])
    def test_detect(self, title, expected):
        assert detect_duration(title) == expected
