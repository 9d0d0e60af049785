"""Outfit switching and equipping: auxiliary instructions carried by action records."""
from __future__ import annotations

import logging
from typing import Optional

from src.app.browser_automation.clicker import ButtonClicker
from src.app.browser_automation.config import PageSelectors, VisibilityThresholds
from src.app.browser_automation.dom import Document, Element
from src.app.browser_automation.polling import SYSTEM_CLOCK, Clock, RunToken, pause, poll_until
from src.app.browser_automation.text import clean_text, element_text
from src.app.browser_automation.visibility import is_interactable

logger = logging.getLogger(__name__)

EQUIP_HIGHEST_TEXT = "Equip Highest"


class OutfitSwitcher:
    def __init__(
        self,
        document: Document,
        clicker: ButtonClicker,
        selectors: PageSelectors = PageSelectors(),
        thresholds: VisibilityThresholds = VisibilityThresholds(),
        clock: Clock = SYSTEM_CLOCK,
        option_timeout_ms: int = 3000,
        poll_interval_ms: int = 300,
        page_timeout_ms: int = 10_000,
    ):
        self.document = document
        self.clicker = clicker
        self.selectors = selectors
        self.thresholds = thresholds
        self.clock = clock
        self.option_timeout = option_timeout_ms / 1000
        self.poll_interval = poll_interval_ms / 1000
        self.page_timeout = page_timeout_ms / 1000

    async def change_outfit(self, name: str, token: Optional[RunToken] = None) -> bool:
        """Open the outfit dropdown and pick ``name``. False if any part of the widget is missing."""
        control = await self._dropdown_control()
        if control is None:
            logger.warning("Outfit selector not found.")
            return False
        await self.clicker.dispatch(control)
        if not await pause(0.3, clock=self.clock, token=token):
            return False

        async def find_option() -> Optional[Element]:
            for option in await self.document.query_all(self.selectors.outfit_option):
                if await element_text(option, self.selectors) == name and await self._visible(option):
                    return option
            return None

        option = await poll_until(find_option, self.option_timeout, self.poll_interval,
                                  clock=self.clock, token=token)
        if option is None:
            logger.warning("Outfit '%s' not offered.", name)
            return False
        await self.clicker.dispatch(option)
        logger.info("Outfit changed to '%s'.", name)
        return await pause(1.0, clock=self.clock, token=token)

    async def fast_equip(self, challenge: str, token: Optional[RunToken] = None) -> bool:
        """Click the sidebar fast-equip button for ``challenge``.

        A quality without a fast-equip button means the best kit is already on,
        which counts as done.
        """
        for quality in await self.document.query_all(self.selectors.sidebar_quality):
            name = await quality.query(self.selectors.sidebar_quality_name)
            if name is None or await element_text(name, self.selectors) != challenge:
                continue
            button = await quality.query(self.selectors.fast_equip)
            if button is None or not await self._visible(button):
                logger.debug("No fast-equip button for %s.", challenge)
                return True
            await self.clicker.dispatch(button)
            logger.info("Fast-equipped for %s.", challenge)
            return await pause(0.5, clock=self.clock, token=token)
        logger.debug("Quality %s not in the sidebar; nothing to equip.", challenge)
        return True

    async def equip_highest(self, category: str, token: Optional[RunToken] = None) -> bool:
        """Equip the best items for ``category`` through the Possessions page, then return to the story.

        Returns False if a step is missing, after going back to the story page.
        """
        link = await self.document.query(self.selectors.possessions_link)
        if link is None:
            logger.warning("Possessions link not found.")
            return False
        await self.clicker.dispatch(link)

        control = await poll_until(self._category_control, self.option_timeout, self.poll_interval,
                                   clock=self.clock, token=token)
        if control is None:
            logger.warning("Items category dropdown not found.")
            await self._back_to_story(token)
            return False
        # The dropdown opens on mousedown alone.
        await control.dispatch_event("mousedown")
        if not await pause(0.1, clock=self.clock, token=token):
            return False

        async def find_option() -> Optional[Element]:
            for option in await self.document.query_all(self.selectors.possessions_category_option):
                if clean_text(await option.text_content()) == category:
                    return option
            return None

        option = await poll_until(find_option, self.option_timeout, self.poll_interval,
                                  clock=self.clock, token=token)
        if option is None:
            logger.warning("Category '%s' not offered on the possessions page.", category)
            await self._back_to_story(token)
            return False
        await self.clicker.dispatch(option)
        if not await pause(0.2, clock=self.clock, token=token):
            return False

        async def find_equip() -> Optional[Element]:
            for button in await self.document.query_all(self.selectors.equip_highest):
                if EQUIP_HIGHEST_TEXT in clean_text(await button.text_content()):
                    return button
            return None

        button = await poll_until(find_equip, self.page_timeout, self.poll_interval,
                                  clock=self.clock, token=token)
        if button is None:
            logger.warning("'%s' button not found.", EQUIP_HIGHEST_TEXT)
            await self._back_to_story(token)
            return False
        await self.clicker.dispatch(button)
        logger.info("Equipped highest for %s.", category)
        if not await pause(0.5, clock=self.clock, token=token):
            return False
        return await self._back_to_story(token)

    async def _category_control(self) -> Optional[Element]:
        for row in await self.document.query_all(self.selectors.possessions_row):
            heading = await row.query(self.selectors.possessions_row_heading)
            if heading is None or clean_text(await heading.text_content()).lower() != "items":
                continue
            return await row.query(self.selectors.possessions_category_control)
        return None

    async def _back_to_story(self, token: Optional[RunToken]) -> bool:
        link = await poll_until(lambda: self.document.query(self.selectors.story_link),
                                self.option_timeout, self.poll_interval, clock=self.clock, token=token)
        if link is None:
            logger.warning("Story link not found.")
            return False
        await self.clicker.dispatch(link)
        return await pause(0.5, clock=self.clock, token=token)

    async def _dropdown_control(self) -> Optional[Element]:
        for title in await self.document.query_all(self.selectors.outfit_title):
            if not await self._visible(title):
                continue
            container = await title.closest(self.selectors.outfit_container)
            if container is None:
                continue
            control = await container.query(self.selectors.outfit_control)
            if control is not None:
                return control
        return None

    async def _visible(self, element: Element) -> bool:
        return await is_interactable(element, self.thresholds)
