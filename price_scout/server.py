"""
Price Scout MCP Server.

Exposes deal search over stdio: live multi-retailer search with reference
price fallback, the source list, and official/reference prices per region.
"""
import asyncio
import json
import logging

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool
from pydantic import ValidationError

from .actions.search import SearchAction
from .browser import PlaywrightSurfacePool
from .config import ScoutSettings
from .fallback import FallbackCascade, StaticReferenceCatalog
from .models import (
    Duration,
    ProductType,
    Region,
    SearchCriteria,
    SortOption,
    TrustFilter,
)
from .orchestrator import FetchOrchestrator
from .renderer import ChallengeRenderer
from .scrapers.registry import default_registry
from .store import InMemoryStore

logger = logging.getLogger(__name__)

server = Server("price-scout")

# Lazy-initialized singletons
_settings: ScoutSettings | None = None
_surface_pool: PlaywrightSurfacePool | None = None
_catalog: StaticReferenceCatalog | None = None
_search_action: SearchAction | None = None


def _get_settings() -> ScoutSettings:
    global _settings
    if _settings is None:
        _settings = ScoutSettings.from_env()
    return _settings


def _get_catalog() -> StaticReferenceCatalog:
    global _catalog
    if _catalog is None:
        _catalog = StaticReferenceCatalog()
    return _catalog


def _get_search_action() -> SearchAction:
    global _surface_pool, _search_action
    if _search_action is None:
        settings = _get_settings()
        _surface_pool = PlaywrightSurfacePool(settings)
        renderer = ChallengeRenderer(_surface_pool, settings)
        registry = default_registry(settings, renderer)
        fallback = FallbackCascade(_get_catalog())
        orchestrator = FetchOrchestrator(registry, fallback, settings, store=InMemoryStore())
        _search_action = SearchAction(orchestrator, registry, fallback)
    return _search_action


def _enum_names(enum_cls) -> list[str]:
    return [member.name for member in enum_cls]


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------

@server.list_tools()
async def list_tools() -> list[Tool]:
    return [
        Tool(
            name="search_deals",
            description=(
                "Search all supported key resellers for Xbox Game Pass Ultimate deals. "
                "Returns a deduplicated list ranked by region fit and price, falling back "
                "to reference prices when live sources fail."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "region": {"type": "string", "enum": _enum_names(Region), "default": "ALL"},
                    "product_type": {"type": "string", "enum": _enum_names(ProductType), "default": "ALL"},
                    "duration": {"type": "string", "enum": _enum_names(Duration), "default": "ALL"},
                    "trust_filter": {"type": "string", "enum": _enum_names(TrustFilter), "default": "ALL"},
                    "exclude_trials": {"type": "boolean", "default": True},
                    "sort_by": {"type": "string", "enum": _enum_names(SortOption), "default": "PRICE_LOW"},
                    "max_results": {
                        "type": "integer",
                        "description": "Maximum deals to list (default: 20)",
                    },
                },
            },
        ),
        Tool(
            name="list_sources",
            description="List the retailers searched, in search order.",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="reference_prices",
            description="Show reference reseller prices and the official store price for a region.",
            inputSchema={
                "type": "object",
                "properties": {
                    "region": {"type": "string", "enum": _enum_names(Region), "default": "US"},
                },
            },
        ),
    ]


# ---------------------------------------------------------------------------
# Tool dispatch
# ---------------------------------------------------------------------------

@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    try:
        if name == "search_deals":
            result = await _handle_search_deals(arguments)
        elif name == "list_sources":
            result = await _handle_list_sources(arguments)
        elif name == "reference_prices":
            result = await _handle_reference_prices(arguments)
        else:
            return [TextContent(type="text", text=f"Unknown tool: {name}")]

        text = result if isinstance(result, str) else json.dumps(result, indent=2)
        return [TextContent(type="text", text=text)]

    except Exception as e:
        logger.exception("Tool %s failed", name)
        return [TextContent(type="text", text=f"Error: {str(e)}")]


# ---------------------------------------------------------------------------
# Tool implementations
# ---------------------------------------------------------------------------

def _criteria_from_args(args: dict) -> SearchCriteria:
    """Build criteria from tool arguments; enum values are given by name."""
    try:
        return SearchCriteria(
            region=Region[args.get("region", "ALL").upper()],
            product_type=ProductType[args.get("product_type", "ALL").upper()],
            duration=Duration[args.get("duration", "ALL").upper()],
            trust_filter=TrustFilter[args.get("trust_filter", "ALL").upper()],
            exclude_trials=bool(args.get("exclude_trials", True)),
            sort_option=SortOption[args.get("sort_by", "PRICE_LOW").upper()],
        )
    except KeyError as e:
        raise ValueError(f"Unknown filter value: {e.args[0]}") from e


async def _handle_search_deals(args: dict) -> str:
    """Run a full search and format the ranked deals as text."""
    try:
        criteria = _criteria_from_args(args)
    except (ValueError, ValidationError) as e:
        return f"Invalid search arguments: {e}"
    max_results = args.get("max_results", 20)

    result = await _get_search_action().search(criteria)
    deals = result["deals"]

    lines = [f"Game Pass Ultimate deals ({result['filters']}):", ""]
    if result.get("message"):
        lines.append(result["message"])
        lines.append("")

    for i, d in enumerate(deals[:max_results], 1):
        trial = " [TRIAL]" if d["is_trial"] else ""
        lines.append(f"  {i}. {d['seller']} — {d['formatted_price']}{trial}")
        lines.append(
            f"     {d['region'].title()} | {d['duration'].replace('_', ' ').title()} | "
            f"{d['product_type'].title()} | Trust: {d['trust_level'].title()}"
        )
        lines.append(f"     URL: {d['url']}")
        lines.append("")

    stats = result.get("stats")
    if stats:
        lines.append(
            f"{stats['total_deals']} deals from {stats['sellers_count']} sellers, "
            f"lowest {stats['lowest_price']} {stats['currency']}"
        )
    else:
        lines.append("No deals found.")
    lines.append(
        f"Searched {result['sources_searched']} sources in {result['elapsed_ms']}ms"
        + (" (reference prices only)" if result["is_fallback"] else "")
    )
    return "\n".join(lines)


async def _handle_list_sources(args: dict) -> dict:
    sources = _get_search_action().list_sources()
    return {"status": "ok", "sources": sources, "total": len(sources)}


async def _handle_reference_prices(args: dict) -> dict:
    try:
        region = Region[args.get("region", "US").upper()]
    except KeyError:
        return {"status": "error", "message": f"Unknown region: {args.get('region')}"}

    catalog = _get_catalog()
    criteria = SearchCriteria(region=region, exclude_trials=False)
    return {
        "status": "ok",
        "official": catalog.official_price(region).to_dict(),
        "reference": [d.to_dict() for d in catalog.find_by_criteria(criteria)],
    }


# ---------------------------------------------------------------------------
# Server entry point
# ---------------------------------------------------------------------------

async def main():
    """Run the MCP server over stdio."""
    logging.basicConfig(
        level=_get_settings().log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Price Scout MCP server starting...")

    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        # Clean up browser on shutdown
        if _surface_pool:
            await _surface_pool.close()


def run():
    """Sync entry point for console_scripts."""
    asyncio.run(main())
