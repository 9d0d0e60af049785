"""Resolve a target descriptor to a currently interactable control."""
from __future__ import annotations

import logging
from typing import List, Optional

from .config import PageSelectors, VisibilityThresholds
from .descriptors import (
    TITLE_HINT_MAX,
    ByContainerAndLabel,
    BySelectorFallback,
    ByStableId,
    TargetDescriptor,
    css_attr_value,
    describe,
)
from .dom import Document, Element
from .text import button_label, clean_text, element_text, label_text
from .visibility import is_interactable

logger = logging.getLogger(__name__)


class ElementLocator:
    """Element locator over a ``dom.Document``.

    ``locate`` never raises for page-side problems: stale handles, re-renders and
    missing nodes all come back as ``None``. Ties are broken by document order.
    """

    def __init__(
        self,
        document: Document,
        selectors: PageSelectors = PageSelectors(),
        thresholds: VisibilityThresholds = VisibilityThresholds(),
    ):
        self.document = document
        self.selectors = selectors
        self.thresholds = thresholds

    async def locate(self, descriptor: TargetDescriptor) -> Optional[Element]:
        if isinstance(descriptor, ByContainerAndLabel):
            strategy = self._by_container
        elif isinstance(descriptor, ByStableId):
            strategy = self._by_stable_id
        elif isinstance(descriptor, BySelectorFallback):
            strategy = self._by_selector
        else:
            raise TypeError(f"Unknown target descriptor: {descriptor!r}")

        try:
            return await strategy(descriptor)
        except Exception as e:
            logger.debug("Locating %s failed: %s", describe(descriptor), e)
            return None

    # ------------------------------ Strategies ------------------------------ #

    async def _by_container(self, d: ByContainerAndLabel) -> Optional[Element]:
        for container in await self._containers(d):
            for control in await container.query_all(self.selectors.clickables):
                if await self._label(control) == label_text(d.button_text) and await self._visible(control):
                    return control
        return None

    async def _by_stable_id(self, d: ByStableId) -> Optional[Element]:
        matches = await self.document.query_all(f"[{d.attribute}={css_attr_value(d.identifier)}]")
        for element in matches:
            if await element.matches(self.selectors.clickables):
                if await self._visible(element):
                    await self._note_label_mismatch(element, d)
                    return element
                continue

            first_visible = None
            for control in await element.query_all(self.selectors.clickables):
                if not await self._visible(control):
                    continue
                if await self._label(control) == label_text(d.button_text):
                    return control
                if first_visible is None:
                    first_visible = control
            if first_visible is not None:
                await self._note_label_mismatch(first_visible, d)
                return first_visible
        return None

    async def _by_selector(self, d: BySelectorFallback) -> Optional[Element]:
        elements = await self.document.query_all(d.selector)
        for element in elements:
            if await self._label(element) == label_text(d.button_text) and await self._visible(element):
                return element
        # Last resort: a lone structural match is taken whatever its label says.
        if len(elements) == 1 and await self._visible(elements[0]):
            return elements[0]
        return None

    # ------------------------------- Helpers -------------------------------- #

    async def _containers(self, d: ByContainerAndLabel) -> List[Element]:
        if d.container:
            containers = await self.document.query_all(d.container)
            if not d.title_hint:
                return containers
            scoped = []
            for container in containers:
                for heading in await container.query_all(self.selectors.headings):
                    if await self._titled(heading, d.title_hint):
                        scoped.append(container)
                        break
            return scoped

        containers = []
        for heading in await self.document.query_all(self.selectors.headings):
            if not await self._titled(heading, d.title_hint):
                continue
            if not await self._visible(heading):
                continue
            block = await self._block_for(heading)
            if block is not None:
                containers.append(block)
        return containers

    async def _block_for(self, heading: Element) -> Optional[Element]:
        """Nearest block around a heading; storylet roots widen to their parent when the
        exit buttons sit beside them rather than inside."""
        block = await heading.closest(self.selectors.block_containers)
        if block is None:
            return None
        if await block.matches(self.selectors.storylet_roots):
            parent = await block.parent()
            if parent is not None and await parent.query(self.selectors.exit_region) is not None:
                return parent
        return block

    async def _titled(self, heading: Element, title_hint: str) -> bool:
        return (await element_text(heading, self.selectors))[:TITLE_HINT_MAX] == clean_text(title_hint)

    async def _label(self, element: Element) -> str:
        return await button_label(element, self.selectors)

    async def _visible(self, element: Element) -> bool:
        return await is_interactable(element, self.thresholds)

    async def _note_label_mismatch(self, element: Element, d: ByStableId) -> None:
        if not d.button_text:
            return
        label = await self._label(element)
        if label != label_text(d.button_text):
            logger.debug("Identifier %s=%s matched '%s', expected '%s'; using it anyway.",
                         d.attribute, d.identifier, label, d.button_text)
