"""Shared test fixtures."""
import asyncio
from decimal import Decimal

import pytest

from price_scout.browser import RenderSurface, SurfaceFactory
from price_scout.config import ScoutSettings
from price_scout.models import (
    Deal,
    Duration,
    ProductType,
    Region,
    SourceKind,
    TrustLevel,
)
from price_scout.scrapers.base import Source, SourceFetcher


class FakeFetcher(SourceFetcher):
    """Returns canned deals, raising for the first `failures` calls (or always)."""

    def __init__(self, deals=None, failures=0, always_fail=False, delay=0.0, error=None):
        self.deals = list(deals or [])
        self.failures = failures
        self.always_fail = always_fail
        self.delay = delay
        self.error = error or RuntimeError("connection reset")
        self.calls = 0

    async def fetch(self, criteria):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.always_fail or self.calls <= self.failures:
            raise self.error
        return list(self.deals)


class FakeSurface(RenderSurface):
    """Scriptable render surface that records its lifecycle."""

    def __init__(self, html="<html></html>", records=None, load_error=None,
                 extract_error=None, load_delay=0.0):
        self.html = html
        self.records = records if records is not None else []
        self.load_error = load_error
        self.extract_error = extract_error
        self.load_delay = load_delay
        self.loaded_url = None
        self.extract_args = None
        self.destroyed = 0

    async def load(self, url, timeout):
        self.loaded_url = url
        if self.load_delay:
            await asyncio.sleep(self.load_delay)
        if self.load_error:
            raise self.load_error

    async def wait_and_extract(self, script, arg=None):
        self.extract_args = arg
        if self.extract_error:
            raise self.extract_error
        return self.records

    async def detect_challenge(self, markers):
        return any(m in self.html for m in markers)

    async def destroy(self):
        self.destroyed += 1


class FakeSurfaceFactory(SurfaceFactory):
    def __init__(self, make_surface):
        self._make_surface = make_surface
        self.opened = []

    async def open_surface(self):
        surface = self._make_surface()
        self.opened.append(surface)
        return surface


async def no_sleep(seconds):
    return None


@pytest.fixture
def make_deal():
    def _make(seller="CDKeys", price="12.99", region=Region.GLOBAL,
              duration=Duration.ONE_MONTH, **kwargs):
        defaults = dict(
            id=f"{seller}-{price}".lower().replace(" ", "-"),
            seller_name=seller,
            price=Decimal(str(price)),
            currency="EUR",
            region=region,
            duration=duration,
            url=f"https://example.com/{seller.lower().replace(' ', '-')}",
            trust_level=TrustLevel.HIGH,
            product_type=ProductType.KEY,
            source_kind=SourceKind.LIVE,
        )
        defaults.update(kwargs)
        return Deal(**defaults)
    return _make


@pytest.fixture
def make_source():
    def _make(name, fetcher, needs_challenge_render=False, slow_aggregator=False, order_hint=0,
              trust_level=None):
        return Source(
            name=name,
            fetcher=fetcher,
            order_hint=order_hint,
            needs_challenge_render=needs_challenge_render,
            slow_aggregator=slow_aggregator,
            url=f"https://{name.lower()}.example.com/search",
            trust_level=trust_level,
        )
    return _make


@pytest.fixture
def fake_fetcher():
    return FakeFetcher


@pytest.fixture
def fake_surface():
    return FakeSurface


@pytest.fixture
def surface_factory():
    return FakeSurfaceFactory


@pytest.fixture
def fast_settings():
    """Settings with no waiting, so tests run instantly."""
    return ScoutSettings(
        batch_size=3,
        batch_pause=0,
        max_retries=3,
        base_timeout=1.0,
        timeout_increment=0.5,
        retry_jitter_min=0,
        retry_jitter_max=0,
        max_surfaces=2,
        js_completion_delay=0,
        render_timeout=1.0,
    )


@pytest.fixture
def instant_sleep():
    return no_sleep
