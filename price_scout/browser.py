"""
Render surfaces — scripted browser pages used to pass JS challenges.

One Playwright browser is shared; every surface gets its own context and
page so cookies and challenge state never leak between sources.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from .config import BROWSER_HEADERS, ScoutSettings

logger = logging.getLogger(__name__)

CHROMIUM_ARGS = (
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--no-sandbox",
)


class RenderSurface(ABC):
    """A single scripted browser page. Exactly one per in-flight render."""

    @abstractmethod
    async def load(self, url: str, timeout: float) -> None:
        """Navigate to url and return once navigation has finished."""
        ...

    @abstractmethod
    async def wait_and_extract(self, script: str, arg: Any = None) -> Any:
        """Run an extraction script in the rendered page and return its result."""
        ...

    @abstractmethod
    async def detect_challenge(self, markers: tuple[str, ...]) -> bool:
        """True if the rendered markup still shows an unresolved challenge."""
        ...

    @abstractmethod
    async def destroy(self) -> None:
        """Stop navigation and release the surface. Safe to call twice."""
        ...


class SurfaceFactory(ABC):
    """Hands out fresh render surfaces."""

    @abstractmethod
    async def open_surface(self) -> RenderSurface:
        ...

    async def close(self) -> None:
        """Release anything shared between surfaces."""


async def _close_quietly(context: BrowserContext) -> None:
    try:
        await context.close()
    except Exception as e:
        logger.debug("Context close failed: %s", e)


class PlaywrightSurface(RenderSurface):
    """Render surface backed by a Playwright context and page."""

    def __init__(self, context: BrowserContext, page: Page):
        self._context: Optional[BrowserContext] = context
        self._page: Optional[Page] = page

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("Surface already destroyed")
        return self._page

    async def load(self, url: str, timeout: float) -> None:
        await self.page.goto(url, wait_until="load", timeout=timeout * 1000)
        logger.debug("Loaded %s", self.page.url)

    async def wait_and_extract(self, script: str, arg: Any = None) -> Any:
        return await self.page.evaluate(script, arg)

    async def detect_challenge(self, markers: tuple[str, ...]) -> bool:
        html = await self.page.content()
        return any(marker in html for marker in markers)

    async def destroy(self) -> None:
        page, context = self._page, self._context
        self._page = None
        self._context = None

        if page is not None:
            try:
                await page.evaluate("window.stop()")
            except Exception as e:
                logger.debug("window.stop() failed during destroy: %s", e)
            try:
                await page.close()
            except Exception as e:
                logger.debug("Page close failed: %s", e)

        if context is not None:
            await _close_quietly(context)


class PlaywrightSurfacePool(SurfaceFactory):
    """Owns the shared Playwright browser; opens one context+page per surface."""

    def __init__(self, settings: Optional[ScoutSettings] = None):
        self._settings = settings or ScoutSettings()
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._lock = asyncio.Lock()

    @property
    def headless(self) -> bool:
        return self._settings.headless

    async def _shared_browser(self) -> Browser:
        """The pool's browser, started on first use and restarted if it dropped."""
        async with self._lock:
            if self._browser is not None and self._browser.is_connected():
                return self._browser
            if self._playwright is not None:
                logger.warning("Render browser disconnected, restarting")
                await self._stop_playwright()

            playwright = await async_playwright().start()
            try:
                browser = await playwright.chromium.launch(headless=self.headless, args=list(CHROMIUM_ARGS))
            except BaseException:
                await playwright.stop()
                raise

            self._playwright, self._browser = playwright, browser
            logger.info("Render browser started (headless=%s)", self.headless)
            return browser

    async def open_surface(self) -> RenderSurface:
        browser = await self._shared_browser()
        context = await browser.new_context(
            viewport={"width": 1920, "height": 1080},
            user_agent=self._settings.user_agent,
            java_script_enabled=True,
            extra_http_headers={
                k: v for k, v in BROWSER_HEADERS.items() if k != "Connection"
            },
        )
        # Cancellation included: no surface exists yet to release the context
        try:
            page = await context.new_page()
        except BaseException:
            await _close_quietly(context)
            raise
        return PlaywrightSurface(context, page)

    async def _stop_playwright(self) -> None:
        browser, playwright = self._browser, self._playwright
        self._browser = None
        self._playwright = None
        if browser is not None:
            try:
                await browser.close()
            except Exception as e:
                logger.warning("Browser close failed: %s", e)
        if playwright is not None:
            try:
                await playwright.stop()
            except Exception as e:
                logger.warning("Playwright stop failed: %s", e)

    async def close(self) -> None:
        """Shut down the shared browser and Playwright."""
        await self._stop_playwright()
        logger.info("Render browser stopped")
