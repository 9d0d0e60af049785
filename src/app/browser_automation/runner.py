"""Browser lifecycle: launch Playwright, open the game, hand the page to the caller."""
from __future__ import annotations

import contextlib
import logging
from typing import AsyncIterator

from playwright.async_api import BrowserContext, Page, async_playwright

from .config import BrowserGameConfig
from .playwright_dom import PlaywrightDocument

logger = logging.getLogger(__name__)

_LAUNCH_ARGS = [
    "--disable-features=BlockThirdPartyCookies,SameSiteByDefaultCookies,CookiesWithoutSameSiteMustBeSecure",
    "--allow-third-party-cookies",
]


class BrowserRunner:
    """Open the game in Chromium and yield it as a ``PlaywrightDocument``."""

    def __init__(self, cfg: BrowserGameConfig):
        self.cfg = cfg

    @contextlib.asynccontextmanager
    async def open(self) -> AsyncIterator[PlaywrightDocument]:
        async with async_playwright() as p:
            context = await self._new_context(p)
            try:
                page = context.pages[0] if context.pages else await context.new_page()
                await self._goto(page)
                yield PlaywrightDocument(page)
            finally:
                logger.info("Closing browser...")
                await context.close()

    async def _new_context(self, p) -> BrowserContext:
        settings = self.cfg.browser
        if settings.user_data_dir:
            # Persistent profile keeps the game session between runs.
            logger.info("Launching Chromium with profile %s", settings.user_data_dir)
            return await p.chromium.launch_persistent_context(
                settings.user_data_dir,
                headless=settings.headless,
                slow_mo=settings.slow_mo_ms,
                args=_LAUNCH_ARGS,
                viewport={"width": 1280, "height": 900},
            )
        browser = await p.chromium.launch(
            headless=settings.headless,
            slow_mo=settings.slow_mo_ms,
            args=_LAUNCH_ARGS,
        )
        return await browser.new_context(viewport={"width": 1280, "height": 900})

    async def _goto(self, page: Page) -> None:
        logger.info("Opening %s", self.cfg.url)
        await page.goto(self.cfg.url, wait_until="domcontentloaded")
