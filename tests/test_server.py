"""Tests for MCP server tool registration and dispatch."""
import json
from importlib.metadata import version

import pytest

from price_scout.actions.search import SearchAction
from price_scout.fallback import FallbackCascade, StaticReferenceCatalog
from price_scout.models import Duration, Region, SortOption, TrustFilter
from price_scout.orchestrator import FetchOrchestrator
from price_scout.scrapers.registry import SourceRegistry
from price_scout.server import (
    _criteria_from_args,
    _handle_list_sources,
    _handle_reference_prices,
    _handle_search_deals,
    call_tool,
    list_tools,
)
import price_scout.server as server_module


EXPECTED_TOOLS = ["search_deals", "list_sources", "reference_prices"]


@pytest.fixture
def search_action(make_deal, make_source, fake_fetcher, fast_settings, instant_sleep):
    sources = [
        make_source("CDKeys", fake_fetcher(deals=[make_deal(seller="CDKeys", price="12.99", currency="USD")])),
        make_source("G2A", fake_fetcher(always_fail=True)),
    ]
    registry = SourceRegistry(sources)
    fallback = FallbackCascade(StaticReferenceCatalog([]))
    orchestrator = FetchOrchestrator(registry, fallback, fast_settings, sleep=instant_sleep)
    action = SearchAction(orchestrator, registry, fallback)
    server_module._search_action = action
    yield action
    server_module._search_action = None


@pytest.mark.asyncio
async def test_list_tools():
    tools = await list_tools()
    assert [t.name for t in tools] == EXPECTED_TOOLS


def test_mcp_major_version():
    # Tool handlers use the 1.x decorator API on Server
    assert version("mcp").split(".")[0] == "1"


@pytest.mark.asyncio
async def test_all_tools_have_schemas():
    tools = await list_tools()
    for tool in tools:
        assert tool.description, f"{tool.name} missing description"
        assert tool.inputSchema["type"] == "object"


@pytest.mark.asyncio
async def test_unknown_tool():
    result = await call_tool("buy_now", {})
    assert result[0].text == "Unknown tool: buy_now"


def test_criteria_from_args():
    criteria = _criteria_from_args({
        "region": "uae",
        "duration": "THREE_MONTHS",
        "trust_filter": "HIGH_ONLY",
        "exclude_trials": False,
        "sort_by": "rating",
    })
    assert criteria.region == Region.UAE
    assert criteria.duration == Duration.THREE_MONTHS
    assert criteria.trust_filter == TrustFilter.HIGH_ONLY
    assert criteria.exclude_trials is False
    assert criteria.sort_option == SortOption.RATING


def test_criteria_from_args_unknown_value():
    with pytest.raises(ValueError, match="Unknown filter value"):
        _criteria_from_args({"region": "MARS"})


@pytest.mark.asyncio
async def test_search_deals(search_action):
    text = await _handle_search_deals({})
    assert "CDKeys" in text
    assert "$12.99" in text
    assert "Searched 2 sources" in text


@pytest.mark.asyncio
async def test_search_deals_bad_arguments(search_action):
    text = await _handle_search_deals({"duration": "FOREVER"})
    assert text.startswith("Invalid search arguments")


@pytest.mark.asyncio
async def test_search_deals_via_dispatch(search_action):
    result = await call_tool("search_deals", {"max_results": 1})
    assert "1. CDKeys" in result[0].text


@pytest.mark.asyncio
async def test_list_sources(search_action):
    result = await _handle_list_sources({})
    assert result["total"] == 2
    assert [s["name"] for s in result["sources"]] == ["CDKeys", "G2A"]
    g2a = result["sources"][1]
    assert g2a["trust_level"] is None
    assert "G2A Shield" in g2a["description"]


@pytest.mark.asyncio
async def test_list_sources_via_dispatch_is_json(search_action):
    result = await call_tool("list_sources", {})
    assert json.loads(result[0].text)["status"] == "ok"


@pytest.mark.asyncio
async def test_reference_prices():
    result = await _handle_reference_prices({"region": "TURKEY"})
    assert result["status"] == "ok"
    assert result["official"]["region"] == "TURKEY"
    assert result["official"]["currency"] == "TRY"
    assert all(d["region"] in ("TURKEY", "GLOBAL") for d in result["reference"])


@pytest.mark.asyncio
async def test_reference_prices_unknown_region():
    result = await _handle_reference_prices({"region": "ATLANTIS"})
    assert result["status"] == "error"


@pytest.mark.asyncio
async def test_handler_errors_are_reported(search_action, monkeypatch):
    async def broken(criteria, on_progress=None, on_partial=None):
        raise RuntimeError("browser crashed")

    monkeypatch.setattr(search_action, "search", broken)
    result = await call_tool("search_deals", {})
    assert result[0].text == "Error: browser crashed"
