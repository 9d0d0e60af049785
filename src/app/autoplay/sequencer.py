"""The locate → act → wait → classify state machine behind every automation mode."""
from __future__ import annotations

import logging
import random
from dataclasses import replace
from typing import Callable, Optional

from src.app.browser_automation.clicker import ButtonClicker
from src.app.browser_automation.config import PageSelectors, VisibilityThresholds
from src.app.browser_automation.descriptors import ByContainerAndLabel, TargetDescriptor, describe
from src.app.browser_automation.dom import Document, Element
from src.app.browser_automation.locator import ElementLocator
from src.app.browser_automation.polling import SYSTEM_CLOCK, Clock, RunToken, pause, poll_until
from src.app.browser_automation.text import button_label
from src.app.browser_automation.visibility import is_interactable

from .classifier import ClassifierSettings, OutcomeClassifier, Verdict
from .config import AutomationConfig, FailurePolicy
from .items import ItemTracker
from .outfits import OutfitSwitcher
from .records import ActionRecord
from .sources import StepSource
from .state import Phase, SequencerState, StopReason

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str], None]

RECOVERY_LABELS = ("onwards", "continue", "try again")


class Sequencer:
    """Runs one automation cycle per call to ``run_cycle``.

    A cycle takes the next record from the step source, waits for its target,
    clicks it, waits for the page to re-render and classifies the outcome. The
    verdict decides whether the source advances, the step is retried or the run
    stops. ``state`` is only ever replaced by ``_transition`` and ``stop``.

    A stopped sequencer is final: its run token is cancelled so every pending
    wait returns at once, and a new run needs a new sequencer.
    """

    def __init__(
        self,
        document: Document,
        source: StepSource,
        config: AutomationConfig = AutomationConfig(),
        selectors: PageSelectors = PageSelectors(),
        locator: Optional[ElementLocator] = None,
        classifier: Optional[OutcomeClassifier] = None,
        clicker: Optional[ButtonClicker] = None,
        outfits: Optional[OutfitSwitcher] = None,
        clock: Clock = SYSTEM_CLOCK,
        on_status: Optional[StatusCallback] = None,
        failure_policy: FailurePolicy = "stop",
        rng: Optional[random.Random] = None,
        thresholds: VisibilityThresholds = VisibilityThresholds(),
        items: Optional[ItemTracker] = None,
    ):
        self.document = document
        self.source = source
        self.config = config
        self.selectors = selectors
        self.thresholds = thresholds
        self.clock = clock
        self.locator = locator or ElementLocator(document, selectors, thresholds)
        self.classifier = classifier or OutcomeClassifier(
            document,
            self.locator,
            selectors,
            ClassifierSettings(use_failure_titles=config.use_failure_titles, target_quality=config.target_quality),
            thresholds,
            items,
        )
        self.clicker = clicker or ButtonClicker(clock=clock)
        self.outfits = outfits or OutfitSwitcher(
            document, self.clicker, selectors, thresholds, clock, poll_interval_ms=config.poll_interval_ms,
        )
        self.on_status = on_status
        self.failure_policy = failure_policy
        self.rng = rng or random.Random()

        self.token = RunToken()
        self.state = SequencerState()
        self.failures = 0
        self.steps_done = 0

    @property
    def running(self) -> bool:
        return self.token.running and not self.state.stopped

    def start(self) -> None:
        self._transition(Phase.LOCATING, "Running.")

    def stop(self, reason: StopReason, detail: Optional[str] = None) -> bool:
        """Enter STOPPED(reason). Only the first call has any effect."""
        if self.state.stopped:
            return False
        self.token.cancel()
        self.state = replace(self.state, phase=Phase.STOPPED, reason=reason)
        logger.info("Sequencer stopped: %s", reason.name)
        self._emit(detail or reason.message)
        return True

    async def run_cycle(self) -> bool:
        """Run one cycle. True means the caller should trigger the next one right away."""
        if not self.running:
            return False
        try:
            return await self._cycle()
        except Exception:
            logger.exception("Automation cycle failed.")
            self.stop(StopReason.FATAL)
            return False

    # -------------------------------- Cycle --------------------------------- #

    async def _cycle(self) -> bool:
        record = await self.source.current(self.document)
        if not self.running:
            return False
        if record is None:
            if self.source.finished:
                self.stop(StopReason.COMPLETED)
            elif self.state.phase is not Phase.IDLE:
                self._transition(Phase.IDLE, "Nothing to do. Waiting...")
            return False

        self._transition(Phase.LOCATING, f"Looking for {describe(record.target)}", step=self.steps_done + 1)
        if record.equip and not await self._equip(record.equip):
            return False

        control = await self._wait_for(record.target, self.config.element_timeout_ms)
        if control is None:
            if self.running:
                if record.debug_html:
                    logger.info("Recorded element was: %s", record.debug_html)
                self.stop(StopReason.NOT_FOUND, f"Element not found: {describe(record.target)}")
            return False

        self._transition(Phase.ACTING_ON_TARGET, f"Clicking {record.label}")
        await self.clicker.dispatch(control)

        self._transition(Phase.AWAITING_TRANSITION, "Waiting for the page...")
        if not await pause(self._transition_delay(record), clock=self.clock, token=self.token):
            return False
        if record.outfit and not await self.outfits.change_outfit(record.outfit, self.token):
            if self.running:
                self.stop(StopReason.NOT_FOUND, "Outfit change failed.")
            return False

        self._transition(Phase.CLASSIFYING_OUTCOME, "Checking the outcome...")
        verdict = await self._classify(record)
        if not self.running:
            return False
        return await self._apply(verdict, record)

    async def _apply(self, verdict: Verdict, record: ActionRecord) -> bool:
        if verdict is Verdict.SUCCESS:
            self.failures = 0
            if record.exit_button_text and not await self._follow_exit(record.exit_button_text):
                return False
            self.source.advance()
            self.steps_done += 1
            self.state = replace(self.state, attempt=0)
            if self.source.finished:
                self.stop(StopReason.COMPLETED)
                return False
            return True

        if verdict is Verdict.GOAL_REACHED:
            self.stop(StopReason.GOAL_REACHED)
            return False

        if verdict is Verdict.FATAL_FAILURE:
            self.stop(StopReason.FATAL)
            return False

        # RECOVERABLE_FAILURE
        self.failures += 1
        if self.failure_policy != "retry":
            self.stop(StopReason.FAILED)
            return False
        if self.failures >= self.config.max_retries:
            self.stop(StopReason.MAX_RETRIES_EXCEEDED,
                      f"{StopReason.MAX_RETRIES_EXCEEDED.message} ({self.failures} in a row)")
            return False

        self._transition(Phase.RETRYING, f"Failed. Retrying ({self.failures}/{self.config.max_retries})...",
                         attempt=self.failures)
        if not await self._recover():
            if self.running:
                self.stop(StopReason.RECOVERY_FAILED)
            return False
        if not self.source.retry_same_step:
            self.source.abandon()
        return await pause(self.config.retry_delay_ms / 1000, clock=self.clock, token=self.token)

    # ------------------------------- Helpers -------------------------------- #

    async def _wait_for(self, target: TargetDescriptor, timeout_ms: int) -> Optional[Element]:
        return await poll_until(
            lambda: self.locator.locate(target),
            timeout_ms / 1000,
            self.config.poll_interval_ms / 1000,
            clock=self.clock,
            token=self.token,
        )

    async def _classify(self, record: ActionRecord) -> Verdict:
        expect = self._expected_next(record)

        async def settled() -> Optional[Verdict]:
            verdict = await self.classifier.classify(self.document, expect)
            return None if verdict is Verdict.STILL_PENDING else verdict

        verdict = await poll_until(
            settled,
            self.config.pending_timeout_ms / 1000,
            self.config.poll_interval_ms / 1000,
            clock=self.clock,
            token=self.token,
        )
        if verdict is None:
            # The page gives no completion signal; a quiet page after the wait counts as done.
            logger.debug("Outcome still pending; treating it as success.")
            return Verdict.SUCCESS
        return verdict

    def _expected_next(self, record: ActionRecord) -> Optional[TargetDescriptor]:
        if record.exit_button_text:
            return ByContainerAndLabel(button_text=record.exit_button_text, container=self.selectors.exit_region)
        return self.source.expected_after()

    async def _follow_exit(self, text: str) -> bool:
        descriptor = ByContainerAndLabel(button_text=text, container=self.selectors.exit_region)
        control = await self._wait_for(descriptor, self.config.element_timeout_ms)
        if control is None:
            if self.running:
                self.stop(StopReason.NOT_FOUND, "Could not find exit button.")
            return False
        self._emit(f"Clicking exit: {text}")
        await self.clicker.dispatch(control)
        return await pause(self.config.transition_delay_ms / 1000, clock=self.clock, token=self.token)

    async def _recover(self) -> bool:
        """Dismiss the failure screen, preferring Onwards, then Continue, then Try again.

        Try again re-enters the failed action, so it is only used when nothing
        else leads away from the failure screen.
        """
        async def find_exit() -> Optional[Element]:
            controls = []
            for region in await self.document.query_all(self.selectors.exit_region):
                for control in await region.query_all(self.selectors.clickables):
                    if await is_interactable(control, self.thresholds):
                        controls.append((control, (await button_label(control, self.selectors)).lower()))
            for wanted in RECOVERY_LABELS:
                for control, label in controls:
                    if label == wanted:
                        return control
            return None

        control = await poll_until(
            find_exit,
            self.config.recovery_timeout_ms / 1000,
            self.config.poll_interval_ms / 1000,
            clock=self.clock,
            token=self.token,
        )
        if control is None:
            return False
        await self.clicker.dispatch(control)
        return await pause(self.config.transition_delay_ms / 1000, clock=self.clock, token=self.token)

    async def _equip(self, challenge: str) -> bool:
        """False only when the run was stopped meanwhile; a failed equip is logged and skipped."""
        if self.config.equip_method == "possessions":
            if not await self.outfits.equip_highest(challenge, self.token) and self.running:
                logger.warning("Could not equip highest for %s; continuing with current gear.", challenge)
        else:
            await self.outfits.fast_equip(challenge, self.token)
        return self.running

    def _transition_delay(self, record: ActionRecord) -> float:
        if record.delay_ms is not None:
            return record.delay_ms / 1000
        jitter = self.rng.random() * self.config.transition_jitter_ms
        return (self.config.transition_delay_ms + jitter) / 1000

    def _transition(self, phase: Phase, message: str, **changes) -> None:
        self.state = replace(self.state, phase=phase, **changes)
        logger.debug("-> %s", self.state)
        self._emit(message)

    def _emit(self, message: str) -> None:
        if self.on_status is not None:
            self.on_status(message)
