"""Target descriptors: how to find one UI control without absolute references.

A closed union of three variants. Every variant carries ``button_text``, the
control's normalized label, used to disambiguate structural matches and in logs.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

# Headings are compared on their first TITLE_HINT_MAX characters.
TITLE_HINT_MAX = 150


@dataclass(frozen=True)
class ByContainerAndLabel:
    """Control labelled ``button_text`` inside a container.

    The container is either the block around a heading whose text, cut to
    ``TITLE_HINT_MAX`` characters, equals ``title_hint``,
    or any element matching the ``container`` selector (filtered the same way by
    ``title_hint`` when both are given).
    """
    button_text: str
    title_hint: Optional[str] = None
    container: Optional[str] = None

    def __post_init__(self):
        if not self.title_hint and not self.container:
            raise ValueError("ByContainerAndLabel needs a title_hint or a container selector")


@dataclass(frozen=True)
class ByStableId:
    """Element (or container) whose ``attribute`` equals ``identifier``; the label is advisory."""
    identifier: str
    button_text: str = ""
    attribute: str = "id"


@dataclass(frozen=True)
class BySelectorFallback:
    """Structural selector, used only when nothing stronger exists."""
    selector: str
    button_text: str = ""


TargetDescriptor = Union[ByContainerAndLabel, ByStableId, BySelectorFallback]


def describe(descriptor: TargetDescriptor) -> str:
    """Short human-readable form for status lines and logs."""
    if isinstance(descriptor, ByContainerAndLabel):
        scope = descriptor.title_hint or descriptor.container
        return f"'{descriptor.button_text}' in '{scope}'"
    if isinstance(descriptor, ByStableId):
        return f"'{descriptor.button_text or descriptor.identifier}' ({descriptor.attribute}={descriptor.identifier})"
    if isinstance(descriptor, BySelectorFallback):
        return f"'{descriptor.button_text}' ({descriptor.selector})"
    raise TypeError(f"Unknown target descriptor: {descriptor!r}")


def css_attr_value(value: str) -> str:
    """Quote a value for use inside ``[attr="..."]``."""
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'
