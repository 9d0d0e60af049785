import asyncio

from src.app.browser_automation.config import VisibilityThresholds
from src.app.browser_automation.dom import DETACHED, Layout
from src.app.browser_automation.visibility import is_interactable, layout_is_interactable
from tests.fakes import SoupDocument


def shown(**changes):
    base = dict(attached=True, display="block", visibility="visible", opacity=1.0, width=80.0, height=20.0)
    base.update(changes)
    return Layout(**base)


def test_plain_layout_is_interactable():
    assert layout_is_interactable(shown())


def test_each_condition_is_required():
    assert not layout_is_interactable(DETACHED)
    assert not layout_is_interactable(shown(display="none"))
    assert not layout_is_interactable(shown(visibility="hidden"))
    assert not layout_is_interactable(shown(opacity=0.05))
    assert not layout_is_interactable(shown(width=1.0))
    assert not layout_is_interactable(shown(height=0.0))


def test_thresholds_are_configurable():
    faint = shown(opacity=0.05)
    assert layout_is_interactable(faint, VisibilityThresholds(min_opacity=0.0))


def test_ancestor_display_none_hides_element():
    doc = SoupDocument('<div style="display: none"><button id="b">Go</button></div>')
    assert not asyncio.run(is_interactable(doc.find("#b")))


def test_missing_or_detached_element_is_not_interactable():
    doc = SoupDocument('<button id="b">Go</button>')
    button = doc.find("#b")
    button.tag.decompose()
    assert not asyncio.run(is_interactable(button))
    assert not asyncio.run(is_interactable(None))
