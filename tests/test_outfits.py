import asyncio

import pytest

from src.app.autoplay.outfits import OutfitSwitcher
from src.app.browser_automation.clicker import ButtonClicker
from tests.fakes import FakeClock, SoupDocument

PAGE = """
<div style="margin-right: 8px">
  <h3 class="outfit-selector__title">Outfit</h3>
  <div class="css-26l3qy-control" id="control">Default</div>
</div>
<div class="css-menu">
  <div class="css-yt9ioa-option">Shadowy</div>
  <div class="css-yt9ioa-option">Dangerous</div>
</div>
<ul>
  <li class="sidebar-quality"><span class="item__name">Dangerous</span><button class="fast-equip-button">Equip</button></li>
  <li class="sidebar-quality"><span class="item__name">Luck</span></li>
</ul>
"""


@pytest.fixture(name="switcher")
def switcher_fixture():
    doc = SoupDocument(PAGE)
    clock = FakeClock()
    return OutfitSwitcher(doc, ButtonClicker(clock=clock), clock=clock)


def test_change_outfit_opens_dropdown_and_picks_option(switcher):
    assert asyncio.run(switcher.change_outfit("Dangerous"))
    assert switcher.document.clicked_labels() == ["Default", "Dangerous"]


def test_unknown_outfit_fails(switcher):
    assert not asyncio.run(switcher.change_outfit("Ceremonial"))
    assert switcher.document.clicked_labels() == ["Default"]


def test_missing_selector_fails():
    doc = SoupDocument("<div></div>")
    switcher = OutfitSwitcher(doc, ButtonClicker(clock=FakeClock()), clock=FakeClock())
    assert not asyncio.run(switcher.change_outfit("Dangerous"))


def test_fast_equip_clicks_matching_quality(switcher):
    assert asyncio.run(switcher.fast_equip("Dangerous"))
    assert switcher.document.clicked_labels() == ["Equip"]


def test_fast_equip_without_button_is_a_no_op(switcher):
    assert asyncio.run(switcher.fast_equip("Luck"))
    assert asyncio.run(switcher.fast_equip("Watchful"))
    assert switcher.document.clicks == []


POSSESSIONS = """
<nav><a class="cursor-pointer" href="/">Story</a><a class="cursor-pointer" href="/possessions">Possessions</a></nav>
<div style="align-items: baseline; display: flex">
  <span class="heading heading--3">outfits</span><div class="css-aaa-control" id="outfits">Default</div>
</div>
<div style="align-items: baseline; display: flex">
  <span class="heading heading--3">items</span><div class="css-f92gjm-control" id="category">All</div>
</div>
<div role="listbox">
  <div role="option">Watchful</div>
  <div role="option">Shadowy</div>
</div>
<button class="button--primary">Equip Highest</button>
"""


@pytest.fixture(name="possessions")
def possessions_fixture():
    doc = SoupDocument(POSSESSIONS)
    clock = FakeClock()
    return OutfitSwitcher(doc, ButtonClicker(clock=clock), clock=clock)


def test_equip_highest_walks_the_possessions_page(possessions):
    assert asyncio.run(possessions.equip_highest("Shadowy"))

    doc = possessions.document
    assert doc.clicked_labels() == ["Possessions", "Shadowy", "Equip Highest", "Story"]
    assert ("mousedown", doc.find("#category")) in doc.events
    assert ("mousedown", doc.find("#outfits")) not in doc.events


def test_equip_highest_returns_to_story_when_category_is_missing(possessions):
    assert not asyncio.run(possessions.equip_highest("Dangerous"))
    assert possessions.document.clicked_labels() == ["Possessions", "Story"]


def test_equip_highest_without_possessions_link_fails():
    doc = SoupDocument("<div></div>")
    switcher = OutfitSwitcher(doc, ButtonClicker(clock=FakeClock()), clock=FakeClock())
    assert not asyncio.run(switcher.equip_highest("Shadowy"))
    assert doc.clicks == []
