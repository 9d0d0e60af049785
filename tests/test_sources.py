import asyncio

from src.app.autoplay.records import ActionRecord, BranchTarget, CardRule
from src.app.autoplay.sources import CardSource, PrioritySource, RepeatSource, SequenceSource
from src.app.browser_automation.descriptors import ByContainerAndLabel, BySelectorFallback, ByStableId
from tests.fakes import SoupDocument

HAND = """
<div class="hand">
  <div class="hand__card-container" data-event-id="11"><div role="button">Card A</div>
    <button class="card__discard-button">Discard</button></div>
  <div class="hand__card-container" data-event-id="22"><div role="button">Card B</div>
    <button class="card__discard-button">Discard</button></div>
</div>
<button class="deck">Deck</button>
"""

BRANCH = ByContainerAndLabel(button_text="Go", title_hint="A Trade")


def plan_of(source, html):
    return asyncio.run(source.plan(SoupDocument(html)))


def test_sequence_source_replays_in_order_then_finishes():
    records = [ActionRecord(target=ByStableId("a")), ActionRecord(target=ByStableId("b"))]
    source = SequenceSource(records)
    doc = SoupDocument("")

    assert asyncio.run(source.current(doc)) == records[0]
    assert source.expected_after() == records[1].target
    source.advance()
    assert asyncio.run(source.current(doc)) == records[1]
    source.advance()
    assert source.finished
    assert asyncio.run(source.current(doc)) is None


def test_sequence_source_keeps_failed_step():
    assert SequenceSource([ActionRecord(target=ByStableId("a"))]).retry_same_step
    assert not SequenceSource([]).is_configured()


def test_card_source_plays_first_card_with_a_rule():
    rules = {"22": CardRule(action="play", description="B", branch=BRANCH, outfit="Dark", exit_button_text="Onwards")}
    plan = plan_of(CardSource(rules), HAND)

    assert plan[0].target == ByStableId(identifier="22", attribute="data-event-id")
    assert plan[0].outfit == "Dark"
    assert plan[1].target == BRANCH
    assert plan[1].exit_button_text == "Onwards"


def test_card_source_discards():
    rules = {"11": CardRule(action="discard", description="A")}
    plan = plan_of(CardSource(rules, deck_delay_ms=2500), HAND)

    assert len(plan) == 1
    assert plan[0].target == BySelectorFallback(selector='[data-event-id="11"] .card__discard-button')
    assert plan[0].delay_ms == 2500


def test_card_source_draws_when_no_rule_matches():
    plan = plan_of(CardSource({"99": CardRule(action="discard")}), HAND)
    assert plan[0].target == BySelectorFallback(selector="button.deck")


def test_card_source_idles_when_deck_is_disabled_or_drawing_is_off():
    rules = {"99": CardRule(action="discard")}
    disabled = HAND.replace('<button class="deck">', '<button class="deck" disabled>')
    assert plan_of(CardSource(rules), disabled) == []
    assert plan_of(CardSource(rules, draw_cards=False), HAND) == []


def test_card_source_idles_off_the_story_tab():
    hidden = HAND.replace('<div class="hand">', '<div class="hand" style="display: none">')
    assert plan_of(CardSource({"11": CardRule(action="discard")}), hidden) == []


def test_empty_card_rules_are_not_a_configuration():
    assert not CardSource({}).is_configured()


BRANCHES = """
<div class="media branch">
  <h2 class="branch__title">Haul well water to the roots</h2>
  <div class="challenge"><span class="js-icon"><img alt="Dangerous"></span></div>
  <button class="button--go">Go</button>
</div>
<div class="media branch">
  <h2 class="branch__title">Call upon the Horticulturalist</h2>
  <div class="challenge"><span class="js-icon"><img aria-label="Persuasive" alt="x"></span></div>
  <button class="button--go" disabled>Go</button>
</div>
<div class="media branch">
  <h2 class="branch__title">Rearrange decorations</h2>
  <button class="button--go">Go</button>
</div>
"""


def test_priority_source_picks_highest_enabled_branch():
    targets = [
        BranchTarget("Haul well water to the roots", 80),
        BranchTarget("Call upon the Horticulturalist", 120),
        BranchTarget("Rearrange decorations", 100),
    ]
    plan = plan_of(PrioritySource(targets), BRANCHES)

    assert len(plan) == 1
    assert plan[0].target.title_hint == "Rearrange decorations"
    assert plan[0].target.button_text == "Go"
    assert plan[0].equip is None
    assert plan[0].exit_button_text == "Onwards"


def test_priority_source_reads_challenge_type():
    plan = plan_of(PrioritySource([BranchTarget("Haul well water to the roots", 1)]), BRANCHES)
    assert plan[0].equip == "Dangerous"


def test_priority_ties_go_to_first_listed_branch():
    targets = [BranchTarget("Rearrange decorations", 5), BranchTarget("Haul well water to the roots", 5)]
    plan = plan_of(PrioritySource(targets), BRANCHES)
    assert plan[0].target.title_hint == "Haul well water to the roots"


def test_priority_source_idles_without_candidates():
    assert plan_of(PrioritySource([BranchTarget("Elsewhere", 1)]), BRANCHES) == []


def test_repeat_source_stops_after_max_cycles():
    source = RepeatSource("321", max_cycles=2)
    doc = SoupDocument("")
    labels = []
    while True:
        record = asyncio.run(source.current(doc))
        if record is None:
            break
        labels.append(record.target.button_text)
        source.advance()

    assert labels == ["Go", "Try again", "Go", "Try again"]
    assert source.cycles == 2
    assert source.finished
