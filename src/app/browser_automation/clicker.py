"""Simulated user clicks for the app layer."""
from __future__ import annotations

import logging
from typing import Tuple

from .config import ClickBehavior
from .dom import Element
from .polling import SYSTEM_CLOCK, Clock

logger = logging.getLogger(__name__)


class ButtonClicker:
    """Replays the full press/release/click sequence on a resolved control.

    The game binds handlers to individual pointer and mouse phases, so a single
    synthetic ``click`` is not enough.
    """

    EVENT_SEQUENCE: Tuple[str, ...] = ("pointerdown", "mousedown", "pointerup", "mouseup", "click")

    def __init__(self, behavior: ClickBehavior = ClickBehavior(), clock: Clock = SYSTEM_CLOCK):
        self.cfg = behavior
        self.clock = clock

    async def dispatch(self, control: Element) -> None:
        previous_outline = None
        if self.cfg.highlight:
            previous_outline = await control.set_outline(self.cfg.highlight_outline)

        try:
            await control.scroll_into_view()
        except Exception as e:
            # Already-visible controls inside fixed panels cannot always be scrolled.
            logger.debug("scroll_into_view failed: %s", e)

        if previous_outline is not None:
            await self.clock.sleep(self.cfg.highlight_ms / 1000)

        for event_type in self.EVENT_SEQUENCE:
            await control.dispatch_event(event_type)

        if previous_outline is not None:
            await self.clock.sleep(self.cfg.settle_ms / 1000)
            try:
                await control.set_outline(previous_outline)
            except Exception as e:
                logger.debug("Could not restore outline (control re-rendered): %s", e)
