"""Outcome classification after an action has been dispatched and the page re-rendered."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from src.app.browser_automation.config import PageSelectors, VisibilityThresholds
from src.app.browser_automation.descriptors import TargetDescriptor
from src.app.browser_automation.dom import Document
from src.app.browser_automation.locator import ElementLocator
from src.app.browser_automation.text import clean_text, element_text
from src.app.browser_automation.visibility import is_interactable

from .items import ItemTracker

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"^\s*(-?\d+)")


class Verdict(Enum):
    SUCCESS = "success"
    GOAL_REACHED = "goal_reached"
    RECOVERABLE_FAILURE = "recoverable_failure"
    FATAL_FAILURE = "fatal_failure"
    STILL_PENDING = "still_pending"


@dataclass(frozen=True)
class ClassifierSettings:
    failure_phrase: str = "failed in a challenge"
    # Headings of unlucky outcomes. Off by default: ordinary storylets reuse these words.
    use_failure_titles: bool = False
    failure_titles: Tuple[str, ...] = ("unconvinced", "a setback!", "frustration", "no luck this time")
    target_quality: Optional[int] = None


class OutcomeClassifier:
    """Priority-ordered heuristics over the live page.

    Order: fatal markers, failure phrase, failure titles (optional), goal (target
    quality or item targets), pending, success. The first rule that applies decides.
    """

    def __init__(
        self,
        document: Document,
        locator: ElementLocator,
        selectors: PageSelectors = PageSelectors(),
        settings: ClassifierSettings = ClassifierSettings(),
        thresholds: VisibilityThresholds = VisibilityThresholds(),
        items: Optional[ItemTracker] = None,
    ):
        self.document = document
        self.locator = locator
        self.selectors = selectors
        self.settings = settings
        self.thresholds = thresholds
        self.items = items

    async def classify(self, document: Optional[Document] = None, expect: Optional[TargetDescriptor] = None) -> Verdict:
        doc = document or self.document

        if await self._fatal_marker_present(doc):
            return Verdict.FATAL_FAILURE
        if await self._failure_phrase_present(doc):
            logger.info("Challenge failure detected.")
            return Verdict.RECOVERABLE_FAILURE
        if self.settings.use_failure_titles and await self._failure_title_present(doc):
            logger.info("Failure heading detected.")
            return Verdict.RECOVERABLE_FAILURE
        if self.settings.target_quality is not None and await self._goal_reached(doc):
            logger.info("Target quality %s reached.", self.settings.target_quality)
            return Verdict.GOAL_REACHED
        if self.items is not None and self.items.goal_reached():
            logger.info("Item targets reached: %s", self.items.describe())
            return Verdict.GOAL_REACHED
        if expect is not None and not await self._any_outcome_marker(doc):
            if await self.locator.locate(expect) is None:
                return Verdict.STILL_PENDING
        return Verdict.SUCCESS

    # ------------------------------ Heuristics ------------------------------ #

    async def _fatal_marker_present(self, doc: Document) -> bool:
        if not self.selectors.fatal_markers:
            return False
        for marker in await doc.query_all(self.selectors.fatal_markers):
            if await is_interactable(marker, self.thresholds):
                logger.warning("Fatal marker present on page.")
                return True
        return False

    async def _failure_phrase_present(self, doc: Document) -> bool:
        phrase = self.settings.failure_phrase.lower()
        for region in await doc.query_all(self.selectors.result_region):
            text = clean_text(await region.text_content(self.selectors.translation_overlays)).lower()
            if phrase in text:
                return True
        return False

    async def _failure_title_present(self, doc: Document) -> bool:
        title = await doc.query(self.selectors.page_title)
        if title is None:
            return False
        text = (await element_text(title, self.selectors)).lower()
        return any(t in text for t in self.settings.failure_titles)

    async def _goal_reached(self, doc: Document) -> bool:
        target = self.settings.target_quality
        for body in await doc.query_all(self.selectors.quality_update):
            progress = await body.query_all(self.selectors.quality_progress)
            if not progress:
                continue
            m = _LEADING_INT.match(clean_text(await progress[-1].text_content()))
            if m and int(m.group(1)) == target:
                return True
        return False

    async def _any_outcome_marker(self, doc: Document) -> bool:
        for marker in await doc.query_all(self.selectors.outcome_markers):
            if await is_interactable(marker, self.thresholds):
                return True
        return False
