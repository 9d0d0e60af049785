"""Turns operator clicks into replayable action records."""
from __future__ import annotations

import logging
from typing import Callable, List, Optional

from src.app.browser_automation.config import PageSelectors
from src.app.browser_automation.descriptors import TITLE_HINT_MAX, ByContainerAndLabel, BySelectorFallback, ByStableId
from src.app.browser_automation.dom import Document, Element, Unsubscribe
from src.app.browser_automation.text import button_label, element_text

from .records import BRANCH_ID_ATTRIBUTE, ActionRecord

logger = logging.getLogger(__name__)

DEBUG_HTML_MAX = 250
ANCESTOR_SEARCH_DEPTH = 5
_VOLATILE_CLASSES = {"selected", "active", "highlight", "js-tt"}


async def describe_element(element: Element, selectors: PageSelectors = PageSelectors()) -> Optional[ActionRecord]:
    """Build the most stable record for a clicked element, or None if it is not a labelled control.

    Preference order: enclosing branch id, heading of the surrounding block,
    element id, then a tag-and-class selector.
    """
    control = await element.closest(selectors.clickables)
    if control is None:
        return None
    text = await button_label(control, selectors)
    if not text:
        return None
    debug_html = (await control.outer_html())[:DEBUG_HTML_MAX]

    branch = await control.closest(f"[{BRANCH_ID_ATTRIBUTE}]")
    if branch is not None:
        branch_id = await branch.attribute(BRANCH_ID_ATTRIBUTE)
        if branch_id:
            return ActionRecord(
                target=ByStableId(identifier=branch_id, button_text=text, attribute=BRANCH_ID_ATTRIBUTE),
                debug_html=debug_html,
            )

    title = await _title_hint(control, selectors)
    if title:
        return ActionRecord(target=ByContainerAndLabel(button_text=text, title_hint=title), debug_html=debug_html)

    element_id = await control.attribute("id")
    if element_id:
        return ActionRecord(target=ByStableId(identifier=element_id, button_text=text), debug_html=debug_html)

    return ActionRecord(
        target=BySelectorFallback(selector=await _structural_selector(control), button_text=text),
        debug_html=debug_html,
    )


async def _title_hint(control: Element, selectors: PageSelectors) -> Optional[str]:
    # Exit buttons sit beside the storylet body, so look one level above their container first.
    buttons = await control.closest(selectors.exit_region)
    if buttons is not None:
        root = await buttons.parent()
        if root is not None:
            title = await _heading_text(root, selectors)
            if title:
                return title

    ancestor = await control.parent()
    for _ in range(ANCESTOR_SEARCH_DEPTH):
        if ancestor is None:
            break
        title = await _heading_text(ancestor, selectors)
        if title:
            return title
        ancestor = await ancestor.parent()
    return None


async def _heading_text(root: Element, selectors: PageSelectors) -> str:
    heading = await root.query(selectors.headings)
    if heading is None:
        return ""
    return (await element_text(heading, selectors))[:TITLE_HINT_MAX]


async def _structural_selector(control: Element) -> str:
    selector = await control.tag_name()
    classes = [
        c for c in (await control.attribute("class") or "").split()
        if c not in _VOLATILE_CLASSES and not c.startswith("immersive-translate")
    ]
    if classes:
        selector += "." + ".".join(classes)
    return selector


class ActionRecorder:
    """Listens for page clicks between ``start`` and ``stop`` and keeps the records in order."""

    def __init__(
        self,
        document: Document,
        selectors: PageSelectors = PageSelectors(),
        on_status: Optional[Callable[[str], None]] = None,
    ):
        self.document = document
        self.selectors = selectors
        self.on_status = on_status
        self.records: List[ActionRecord] = []
        self._unsubscribe: Optional[Unsubscribe] = None

    @property
    def recording(self) -> bool:
        return self._unsubscribe is not None

    async def start(self) -> None:
        if self.recording:
            return
        self.records = []
        self._unsubscribe = await self.document.subscribe_clicks(self._on_click)
        self._emit("Recording started...")

    def stop(self) -> List[ActionRecord]:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
            self._emit(f"Recording stopped. {len(self.records)} actions recorded.")
        return list(self.records)

    async def _on_click(self, element: Element) -> None:
        if not self.recording:
            return
        try:
            record = await describe_element(element, self.selectors)
        except Exception as e:
            # The clicked node is often gone by the time we look at it.
            logger.debug("Could not describe clicked element: %s", e)
            record = None
        if record is None:
            self._emit("Could not identify clicked button meaningfully.")
            return
        self.records.append(record)
        logger.debug("Recorded action: %s", record)
        self._emit(f"Recorded: {record.label}")

    def _emit(self, message: str) -> None:
        logger.info("%s", message)
        if self.on_status is not None:
            self.on_status(message)
