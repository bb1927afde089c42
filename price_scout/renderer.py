"""
Challenge renderer — loads bot-protected pages in a scripted browser,
waits out the JS challenge, and extracts product records.

Every terminal state (success, load error, challenge, timeout, extraction
failure, or cancellation) releases the render surface before returning.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from .browser import RenderSurface, SurfaceFactory
from .config import ScoutSettings
from .parsing import PRODUCT_KEYWORDS, normalize_whitespace, price_in_bounds, to_decimal
from .scrapers.base import RawListing

logger = logging.getLogger(__name__)

CHALLENGE_MARKERS = (
    "cf-challenge",
    "challenge-running",
    "challenge-platform",
    "cf-browser-verification",
    "Checking your browser",
    "Just a moment...",
    "turnstile",
)


class RenderState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    CHALLENGE_DETECTED = "challenge_detected"
    CONTENT_READY = "content_ready"
    LOAD_ERROR = "load_error"
    TIMED_OUT = "timed_out"
    EXTRACTING = "extracting"
    SUCCESS = "success"
    EXTRACTION_FAILED = "extraction_failed"


TERMINAL_STATES = frozenset({
    RenderState.CHALLENGE_DETECTED,
    RenderState.LOAD_ERROR,
    RenderState.TIMED_OUT,
    RenderState.SUCCESS,
    RenderState.EXTRACTION_FAILED,
})


@dataclass
class RenderResult:
    url: str
    state: RenderState
    records: list[RawListing] = field(default_factory=list)
    error: Optional[str] = None
    transitions: list[RenderState] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state == RenderState.SUCCESS


# Walks anchors whose href or surrounding text mentions the product, climbs
# to the nearest card-like container, and reads title and price from it.
EXTRACTION_SCRIPT = '''
(opts) => {
    const cardSelector = [
        '[class*="product"]', '[class*="Product"]', '[class*="card"]',
        '[class*="item"]', '[class*="offer"]', '[data-testid*="product"]',
        'article', 'li', 'tr',
    ].join(', ');
    const priceSelector = [
        '[data-price-amount]', '[data-testid*="price"]', '[class*="price"]',
        '[class*="Price"]', '.amount',
    ].join(', ');
    const results = [];
    const seen = new Set();

    const normalizePrice = (text) => {
        if (!text) return null;
        let cleaned = String(text).replace(/[^0-9.,]/g, '');
        if (!cleaned) return null;
        const lastComma = cleaned.lastIndexOf(',');
        const lastDot = cleaned.lastIndexOf('.');
        if (lastComma >= 0 && lastDot >= 0) {
            cleaned = lastComma > lastDot
                ? cleaned.replace(/\\./g, '').replace(',', '.')
                : cleaned.replace(/,/g, '');
        } else if (lastComma >= 0 || lastDot >= 0) {
            const sep = lastComma >= 0 ? ',' : '.';
            const parts = cleaned.split(sep);
            const decimals = parts[parts.length - 1].length;
            cleaned = (parts.length > 2 || decimals === 3)
                ? parts.join('')
                : parts.join('.');
        }
        const value = parseFloat(cleaned);
        return isNaN(value) ? null : value;
    };

    const findPrice = (card) => {
        const priceEl = card.querySelector(priceSelector);
        if (priceEl) {
            return normalizePrice(priceEl.getAttribute('data-price-amount') || priceEl.innerText);
        }
        const match = (card.innerText || '').match(
            /(?:[$€£₺₹]|R\\$)\\s*\\d[\\d.,]*|\\d[\\d.,]*\\s*(?:[$€£₺₹]|EUR|USD|GBP)/
        );
        return match ? normalizePrice(match[0]) : null;
    };

    const mentionsProduct = (text) => {
        const lower = (text || '').toLowerCase();
        return opts.keywords.some((k) => lower.includes(k));
    };

    for (const anchor of document.querySelectorAll('a[href]')) {
        if (results.length >= opts.maxRecords) break;

        const href = anchor.href;
        const anchorText = (anchor.innerText || anchor.getAttribute('title') || '').trim();
        const card = anchor.closest(cardSelector) || anchor.parentElement;
        if (!card) continue;
        if (!mentionsProduct(href) && !mentionsProduct(anchorText) && !mentionsProduct(card.innerText)) {
            continue;
        }

        const titleEl = card.querySelector('[class*="title"], [class*="name"], h2, h3, h4');
        const title = ((titleEl && titleEl.innerText) || anchorText).trim().substring(0, 150);
        if (title.length < opts.minTitleLength) continue;

        const price = findPrice(card);
        if (price === null || price <= 0 || price >= opts.maxPrice) continue;

        const key = price + '|' + href;
        if (seen.has(key)) continue;
        seen.add(key);
        results.push({ title: title, price: price, url: href });
    }
    return results;
}
'''


class ChallengeRenderer:
    """Drives one render surface per request, capped by a shared semaphore."""

    def __init__(
        self,
        factory: SurfaceFactory,
        settings: Optional[ScoutSettings] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._factory = factory
        self._settings = settings or ScoutSettings()
        self._sleep = sleep
        self._slots = asyncio.Semaphore(self._settings.max_surfaces)
        self._live_surfaces = 0

    @property
    def live_surfaces(self) -> int:
        """Number of surfaces currently open."""
        return self._live_surfaces

    async def render(self, url: str) -> RenderResult:
        """Load url, wait out any challenge, and extract product records."""
        result = RenderResult(url=url, state=RenderState.IDLE, transitions=[RenderState.IDLE])

        async with self._slots:
            try:
                surface = await self._factory.open_surface()
            except Exception as e:
                logger.warning("Could not open render surface for %s: %s", url, e)
                return self._finish(result, RenderState.LOAD_ERROR, error=str(e))

            self._live_surfaces += 1
            try:
                await asyncio.wait_for(
                    self._drive(surface, result),
                    timeout=self._settings.render_timeout,
                )
            except asyncio.TimeoutError:
                logger.warning("Render of %s timed out after %.1fs", url, self._settings.render_timeout)
                self._finish(result, RenderState.TIMED_OUT, error="render timed out")
            finally:
                await self._release(surface)

        logger.info("Render of %s finished: %s (%d records)", url, result.state.value, len(result.records))
        return result

    async def _drive(self, surface: RenderSurface, result: RenderResult) -> None:
        self._advance(result, RenderState.LOADING)
        try:
            await surface.load(result.url, timeout=self._settings.render_timeout)
            # The challenge script needs wall-clock time after navigation finishes
            await self._sleep(self._settings.js_completion_delay)
            challenged = await surface.detect_challenge(CHALLENGE_MARKERS)
        except Exception as e:
            logger.warning("Load failed for %s: %s", result.url, e)
            self._finish(result, RenderState.LOAD_ERROR, error=str(e))
            return

        if challenged:
            logger.warning("Unresolved challenge on %s", result.url)
            self._finish(result, RenderState.CHALLENGE_DETECTED, error="challenge not resolved")
            return

        self._advance(result, RenderState.CONTENT_READY)
        self._advance(result, RenderState.EXTRACTING)
        try:
            raw = await surface.wait_and_extract(EXTRACTION_SCRIPT, {
                "keywords": list(PRODUCT_KEYWORDS),
                "maxPrice": self._settings.max_price,
                "minTitleLength": self._settings.min_title_length,
                "maxRecords": self._settings.max_records,
            })
            records = self._validate(raw)
        except Exception as e:
            logger.warning("Extraction failed for %s: %s", result.url, e)
            self._finish(result, RenderState.EXTRACTION_FAILED, error=str(e))
            return

        result.records = records
        self._finish(result, RenderState.SUCCESS)

    def _validate(self, raw: Any) -> list[RawListing]:
        """Re-apply the script's bounds on the Python side."""
        if not isinstance(raw, list):
            raise ValueError(f"extraction returned {type(raw).__name__}, expected list")

        records: list[RawListing] = []
        for item in raw:
            if not isinstance(item, dict):
                continue
            title = normalize_whitespace(str(item.get("title") or ""))
            if len(title) < self._settings.min_title_length:
                continue
            price_text = str(item.get("price")) if item.get("price") is not None else None
            if not price_in_bounds(to_decimal(price_text), self._settings.max_price):
                continue
            records.append(RawListing(title=title, price=price_text, url=item.get("url") or None))
            if len(records) >= self._settings.max_records:
                break
        return records

    async def _release(self, surface: RenderSurface) -> None:
        """Destroy the surface, finishing even if the caller is cancelled meanwhile."""
        release = asyncio.ensure_future(self._destroy(surface))
        try:
            await asyncio.shield(release)
        except asyncio.CancelledError:
            await release
            raise

    async def _destroy(self, surface: RenderSurface) -> None:
        try:
            await surface.destroy()
        except Exception as e:
            logger.warning("Surface destroy failed: %s", e)
        finally:
            self._live_surfaces -= 1

    @staticmethod
    def _advance(result: RenderResult, state: RenderState) -> None:
        result.state = state
        result.transitions.append(state)

    def _finish(self, result: RenderResult, state: RenderState, error: Optional[str] = None) -> RenderResult:
        if result.state not in TERMINAL_STATES:
            self._advance(result, state)
            result.error = error
        return result
