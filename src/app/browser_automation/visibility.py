"""Decides whether a resolved control can actually be interacted with."""
from __future__ import annotations

import logging

from .config import VisibilityThresholds
from .dom import Element, Layout

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLDS = VisibilityThresholds()


def layout_is_interactable(layout: Layout, thresholds: VisibilityThresholds = DEFAULT_THRESHOLDS) -> bool:
    """All must hold: attached, displayed, visible, opaque enough, and not a zero-size ghost."""
    if not layout.attached:
        return False
    if layout.display == "none" or layout.visibility == "hidden":
        return False
    if layout.opacity < thresholds.min_opacity:
        return False
    return layout.width > thresholds.min_size_px and layout.height > thresholds.min_size_px


async def is_interactable(element: Element | None, thresholds: VisibilityThresholds = DEFAULT_THRESHOLDS) -> bool:
    if element is None:
        return False
    try:
        layout = await element.layout()
    except Exception as e:
        # Handles go stale when the game re-renders; stale means not interactable.
        logger.debug("Could not read layout: %s", e)
        return False
    return layout_is_interactable(layout, thresholds)
