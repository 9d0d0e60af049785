"""Text normalization for matching control labels and headings.

In-browser translators inject their output next to the original text, either as
wrapper nodes (removed through ``PageSelectors.translation_overlays``) or appended
after a double space / double NBSP. Button labels may also carry a trailing stock
counter such as ``"(3)"`` that is not part of their identity.
"""
from __future__ import annotations

import re

from .config import PageSelectors
from .dom import Element

# Everything from the first separator to the end of the line is dropped.
_TRANSLATION_SEPARATOR = re.compile(r"\s*(\u00A0\u00A0| {2,}).*")
_WHITESPACE = re.compile(r"\s+")
_STOCK_COUNTER = re.compile(r"\s*\(\d+\)$")


def clean_text(raw: str) -> str:
    """Collapse whitespace runs and trim."""
    return _WHITESPACE.sub(" ", raw or "").strip()


def original_text(raw: str) -> str:
    """Drop appended translations, then collapse whitespace."""
    text = (raw or "").strip()
    text = _TRANSLATION_SEPARATOR.sub("", text, count=1)
    return clean_text(text)


def label_text(raw: str) -> str:
    """Normalized label used for identity comparisons."""
    return _STOCK_COUNTER.sub("", original_text(raw)).strip()


async def element_text(element: Element, selectors: PageSelectors) -> str:
    return original_text(await element.text_content(selectors.translation_overlays))


async def button_label(element: Element, selectors: PageSelectors) -> str:
    """Label of a clickable control; an inner non-icon ``span`` wins over the whole button."""
    span = await element.query(selectors.label_span)
    if span is not None:
        text = label_text(await span.text_content(selectors.translation_overlays))
        if text:
            return text
    text = label_text(await element.text_content(selectors.translation_overlays))
    if not text:
        text = label_text(await element.attribute("value") or "")
    return text
