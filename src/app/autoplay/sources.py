"""Step sources: where the sequencer gets its next action from.

Sequence mode replays a fixed list of records. Loop mode re-plans from the
live page every time its previous plan has been worked off: the card
automator reads the hand, the priority loop ranks the branches on offer and the
repeat loop scripts one branch's Go / Try again pair.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from src.app.browser_automation.config import PageSelectors, VisibilityThresholds
from src.app.browser_automation.descriptors import (
    TITLE_HINT_MAX,
    ByContainerAndLabel,
    BySelectorFallback,
    ByStableId,
    TargetDescriptor,
    css_attr_value,
)
from src.app.browser_automation.dom import Document, Element
from src.app.browser_automation.text import element_text
from src.app.browser_automation.visibility import is_interactable

from .records import BRANCH_ID_ATTRIBUTE, ActionRecord, BranchTarget, CardRule

logger = logging.getLogger(__name__)

EVENT_ID_ATTRIBUTE = "data-event-id"


class StepSource:
    """Base class. Subclasses implement ``plan``.

    ``plan`` returns the records for one cycle, an empty list when nothing is
    actionable right now (the sequencer idles until the next trigger), or None
    when there is nothing left to do at all.
    """

    # Sequence mode retries the step that failed; loop mode re-plans from the page.
    retry_same_step = False

    def __init__(self, max_cycles: Optional[int] = None):
        self.max_cycles = max_cycles
        self.cycles = 0
        self.finished = False
        self._plan: List[ActionRecord] = []

    def is_configured(self) -> bool:
        return True

    async def plan(self, document: Document) -> Optional[List[ActionRecord]]:
        raise NotImplementedError

    async def current(self, document: Document) -> Optional[ActionRecord]:
        if self.finished:
            return None
        if not self._plan:
            if self.max_cycles is not None and self.cycles >= self.max_cycles:
                self.finished = True
                return None
            plan = await self.plan(document)
            if plan is None:
                self.finished = True
                return None
            self._plan = list(plan)
        return self._plan[0] if self._plan else None

    def expected_after(self) -> Optional[TargetDescriptor]:
        """Target of the step after the current one, if the plan already knows it."""
        return self._plan[1].target if len(self._plan) > 1 else None

    def advance(self) -> None:
        if self._plan:
            self._plan.pop(0)
        if not self._plan:
            self.cycles += 1
            logger.debug("Cycle %d complete.", self.cycles)
            if self.max_cycles is not None and self.cycles >= self.max_cycles:
                self.finished = True

    def abandon(self) -> None:
        """Forget the rest of the current plan."""
        self._plan = []


class SequenceSource(StepSource):
    retry_same_step = True

    def __init__(self, records: Sequence[ActionRecord]):
        super().__init__(max_cycles=1)
        self.records = list(records)

    def is_configured(self) -> bool:
        return bool(self.records)

    async def plan(self, document: Document) -> Optional[List[ActionRecord]]:
        return list(self.records)


class CardSource(StepSource):
    """Plays or discards opportunity cards by event id; draws when no card has a rule."""

    def __init__(
        self,
        rules: Dict[str, CardRule],
        selectors: PageSelectors = PageSelectors(),
        thresholds: VisibilityThresholds = VisibilityThresholds(),
        draw_cards: bool = True,
        deck_delay_ms: int = 2500,
        max_cycles: Optional[int] = None,
    ):
        super().__init__(max_cycles=max_cycles)
        self.rules = dict(rules)
        self.selectors = selectors
        self.thresholds = thresholds
        self.draw_cards = draw_cards
        self.deck_delay_ms = deck_delay_ms

    def is_configured(self) -> bool:
        return bool(self.rules)

    async def plan(self, document: Document) -> Optional[List[ActionRecord]]:
        hand = await document.query(self.selectors.hand)
        if hand is None or not await is_interactable(hand, self.thresholds):
            logger.debug("Not on the story tab; waiting.")
            return []

        for card in await document.query_all(self.selectors.hand_card):
            event_id = await card.attribute(EVENT_ID_ATTRIBUTE)
            rule = self.rules.get(event_id or "")
            if rule is not None:
                return self._card_plan(event_id, rule)

        if self.draw_cards and await self._deck_ready(document):
            logger.info("No actionable cards. Drawing...")
            return [ActionRecord(
                target=BySelectorFallback(selector=self.selectors.deck),
                delay_ms=self.deck_delay_ms,
                description="Draw a card",
            )]
        logger.debug("No actionable cards; cannot draw.")
        return []

    def _card_plan(self, event_id: str, rule: CardRule) -> List[ActionRecord]:
        if rule.action == "discard":
            logger.info("Discarding: %s", rule.description)
            selector = f"[{EVENT_ID_ATTRIBUTE}={css_attr_value(event_id)}] {self.selectors.card_discard}"
            return [ActionRecord(
                target=BySelectorFallback(selector=selector),
                delay_ms=self.deck_delay_ms,
                description=f"Discard {rule.description}",
            )]

        logger.info("Playing: %s", rule.description)
        return [
            ActionRecord(
                target=ByStableId(identifier=event_id, attribute=EVENT_ID_ATTRIBUTE),
                outfit=rule.outfit,
                description=f"Play {rule.description}",
            ),
            ActionRecord(
                target=rule.branch,
                exit_button_text=rule.exit_button_text,
                description=f"Branch '{rule.branch.button_text}'",
            ),
        ]

    async def _deck_ready(self, document: Document) -> bool:
        deck = await document.query(self.selectors.deck)
        if deck is None or not await is_interactable(deck, self.thresholds):
            return False
        return await deck.attribute("disabled") is None


class PrioritySource(StepSource):
    """Each cycle: the highest-priority configured branch that can be played right now."""

    def __init__(
        self,
        targets: Sequence[BranchTarget],
        selectors: PageSelectors = PageSelectors(),
        exit_button_text: str = "Onwards",
        max_cycles: Optional[int] = None,
    ):
        super().__init__(max_cycles=max_cycles)
        self.targets = {t.title: t.priority for t in targets}
        self.selectors = selectors
        self.exit_button_text = exit_button_text

    def is_configured(self) -> bool:
        return bool(self.targets)

    async def plan(self, document: Document) -> Optional[List[ActionRecord]]:
        best = None
        for branch in await document.query_all(self.selectors.branch):
            title_el = await branch.query(self.selectors.branch_title)
            if title_el is None:
                continue
            title = await element_text(title_el, self.selectors)
            if title not in self.targets:
                continue
            go = await branch.query(self.selectors.go_button)
            if go is None or await go.attribute("disabled") is not None:
                continue
            # Strictly greater: ties go to the branch listed first.
            if best is None or self.targets[title] > self.targets[best[0]]:
                best = (title, branch)

        if best is None:
            return []
        title, branch = best
        challenge = await self._challenge_type(branch)
        logger.info("Target branch: '%s' (challenge: %s)", title, challenge)
        return [ActionRecord(
            target=ByContainerAndLabel(button_text="Go", title_hint=title[:TITLE_HINT_MAX], container=self.selectors.branch),
            equip=challenge,
            exit_button_text=self.exit_button_text,
            description=title,
        )]

    async def _challenge_type(self, branch: Element) -> Optional[str]:
        icon = await branch.query(self.selectors.challenge_icon)
        if icon is None:
            return None
        return await icon.attribute("aria-label") or await icon.attribute("alt") or None


class RepeatSource(StepSource):
    """Go in one branch, then Try again, for at most ``max_cycles`` cycles."""

    def __init__(
        self,
        branch_id: str,
        selectors: PageSelectors = PageSelectors(),
        max_cycles: Optional[int] = None,
        go_text: str = "Go",
        again_text: str = "Try again",
    ):
        super().__init__(max_cycles=max_cycles)
        self.branch_id = branch_id
        self.selectors = selectors
        self.go_text = go_text
        self.again_text = again_text

    def is_configured(self) -> bool:
        return bool(self.branch_id)

    async def plan(self, document: Document) -> Optional[List[ActionRecord]]:
        return [
            ActionRecord(
                target=ByStableId(identifier=self.branch_id, button_text=self.go_text, attribute=BRANCH_ID_ATTRIBUTE),
                description=f"{self.go_text} (branch {self.branch_id})",
            ),
            ActionRecord(
                target=ByContainerAndLabel(button_text=self.again_text, container=self.selectors.exit_region),
                description=self.again_text,
            ),
        ]
