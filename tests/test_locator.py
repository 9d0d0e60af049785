import asyncio

import pytest

from src.app.browser_automation.descriptors import ByContainerAndLabel, BySelectorFallback, ByStableId
from src.app.browser_automation.locator import ElementLocator
from tests.fakes import SoupDocument

MARKET = """
<div id="main">
  <div class="storylet">
    <h2 class="storylet__heading">Go to market</h2>
    <div class="storylet__buttons"><button id="first-go" style="display: none">Go</button></div>
  </div>
  <div class="storylet">
    <h2 class="storylet__heading">Go to market</h2>
    <div class="storylet__buttons"><button id="second-go">Go</button></div>
  </div>
</div>
"""


def locate(doc, descriptor):
    return asyncio.run(ElementLocator(doc).locate(descriptor))


@pytest.fixture(name="market")
def market_fixture():
    return SoupDocument(MARKET)


def test_titled_block_picks_the_container_with_a_visible_button(market: SoupDocument):
    found = locate(market, ByContainerAndLabel(button_text="Go", title_hint="Go to market"))
    assert found == market.find("#second-go")


def test_locate_is_idempotent_on_an_unchanged_page(market: SoupDocument):
    descriptor = ByContainerAndLabel(button_text="Go", title_hint="Go to market")
    assert locate(market, descriptor) == locate(market, descriptor)


def test_label_must_match_after_normalization(market: SoupDocument):
    assert locate(market, ByContainerAndLabel(button_text="Leave", title_hint="Go to market")) is None


def test_label_ignores_translation_overlay_and_stock_counter():
    doc = SoupDocument("""
    <div class="storylet">
      <h2 class="storylet__heading">A Quiet Street<font class="immersive-translate-target-wrapper">安静的街道</font></h2>
      <button id="buy"><span>Buy a candle (3)</span><font class="notranslate">买</font></button>
    </div>
    """)
    found = locate(doc, ByContainerAndLabel(button_text="Buy a candle", title_hint="A Quiet Street"))
    assert found == doc.find("#buy")


def test_translation_appended_after_double_space_is_ignored():
    doc = SoupDocument("""
    <div class="storylet">
      <h2 class="storylet__heading">Rooftops</h2>
      <button id="on">Onwards  继续</button>
    </div>
    """)
    assert locate(doc, ByContainerAndLabel(button_text="Onwards", title_hint="Rooftops")) == doc.find("#on")


def test_hidden_heading_does_not_scope_a_block():
    doc = SoupDocument("""
    <div class="storylet" style="display: none">
      <h2 class="storylet__heading">Go to market</h2>
      <button>Go</button>
    </div>
    """)
    assert locate(doc, ByContainerAndLabel(button_text="Go", title_hint="Go to market")) is None


def test_storylet_root_widens_to_parent_holding_exit_buttons():
    doc = SoupDocument("""
    <div id="wrapper">
      <div class="media--root"><h1 class="storylet-root__heading">The Bazaar</h1></div>
      <div class="buttons--storylet-exit-options"><button id="onwards">Onwards</button></div>
    </div>
    """)
    found = locate(doc, ByContainerAndLabel(button_text="Onwards", title_hint="The Bazaar"))
    assert found == doc.find("#onwards")


def test_container_selector_scopes_by_title_when_given():
    doc = SoupDocument("""
    <div class="media branch"><h2 class="branch__title">Haul water</h2><button id="a">Go</button></div>
    <div class="media branch"><h2 class="branch__title">Sneak up</h2><button id="b">Go</button></div>
    """)
    found = locate(doc, ByContainerAndLabel(button_text="Go", title_hint="Sneak up", container=".media.branch"))
    assert found == doc.find("#b")


def test_stable_id_prefers_label_match_inside_container():
    doc = SoupDocument("""
    <div data-branch-id="42">
      <button id="more">More</button>
      <button id="go">Go</button>
    </div>
    """)
    found = locate(doc, ByStableId(identifier="42", button_text="Go", attribute="data-branch-id"))
    assert found == doc.find("#go")


def test_stable_id_falls_back_to_first_visible_control():
    doc = SoupDocument("""
    <div data-branch-id="42">
      <button style="visibility: hidden">Hidden</button>
      <button id="renamed">Go!</button>
    </div>
    """)
    found = locate(doc, ByStableId(identifier="42", button_text="Go", attribute="data-branch-id"))
    assert found == doc.find("#renamed")


def test_stable_id_on_a_control_ignores_label_drift():
    doc = SoupDocument('<button id="save">Save now</button>')
    assert locate(doc, ByStableId(identifier="save", button_text="Save")) == doc.find("#save")


def test_selector_fallback_filters_by_label():
    doc = SoupDocument("""
    <button class="button--primary" id="a">Onwards</button>
    <button class="button--primary" id="b">Try again</button>
    """)
    found = locate(doc, BySelectorFallback(selector="button.button--primary", button_text="Try again"))
    assert found == doc.find("#b")


def test_selector_fallback_accepts_a_lone_match_with_another_label():
    doc = SoupDocument('<button class="deck" id="deck"></button>')
    assert locate(doc, BySelectorFallback(selector="button.deck")) == doc.find("#deck")


def test_selector_fallback_rejects_ambiguous_mismatch():
    doc = SoupDocument('<button class="x">One</button><button class="x">Two</button>')
    assert locate(doc, BySelectorFallback(selector="button.x", button_text="Three")) is None


def test_invalid_selector_is_reported_as_not_found():
    doc = SoupDocument("<button>Go</button>")
    assert locate(doc, BySelectorFallback(selector="button[", button_text="Go")) is None


def test_unknown_descriptor_type_is_a_programming_error():
    doc = SoupDocument("<button>Go</button>")
    with pytest.raises(TypeError):
        locate(doc, object())


def test_container_descriptor_needs_a_scope():
    with pytest.raises(ValueError):
        ByContainerAndLabel(button_text="Go")


def test_title_hint_must_equal_the_heading_not_just_appear_in_it():
    doc = SoupDocument("""
    <div class="media branch"><h2 class="branch__title">Seek out the Bishop</h2><button id="wrong">Go</button></div>
    <div class="media branch"><h2 class="branch__title">Seek</h2><button id="right">Go</button></div>
    """)
    found = locate(doc, ByContainerAndLabel(button_text="Go", title_hint="Seek", container=".media.branch"))
    assert found == doc.find("#right")
    assert locate(doc, ByContainerAndLabel(button_text="Go", title_hint="Seek")) == doc.find("#right")


def test_long_headings_match_on_their_first_150_characters():
    title = "A" * 200
    doc = SoupDocument(f'<div class="storylet"><h2 class="storylet__heading">{title}</h2><button id="go">Go</button></div>')
    assert locate(doc, ByContainerAndLabel(button_text="Go", title_hint=title[:150])) == doc.find("#go")


def test_descriptor_label_is_normalized_like_the_control_label():
    doc = SoupDocument("""
    <div class="storylet">
      <h2 class="storylet__heading">Shop</h2>
      <button id="buy">Buy  (3)</button>
    </div>
    """)
    assert locate(doc, ByContainerAndLabel(button_text="Buy (3)", title_hint="Shop")) == doc.find("#buy")
    assert locate(doc, ByContainerAndLabel(button_text=" Buy ", title_hint="Shop")) == doc.find("#buy")
