"""Automation session: the control surface (start / stop / is_running) around one sequencer.

Three triggers can ask for a cycle: a periodic timer, the debounced DOM-change
observer and the sequencer itself after a finished step. They all go through a
one-slot queue with a single consumer, so at most one cycle is ever in flight;
a trigger that arrives while a cycle runs or another trigger is queued is
dropped. Every run owns its consumer task, timer task and observer, and stopping
a run disposes exactly those.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
import random
from enum import Enum
from typing import Callable, List, Optional

from src.app.browser_automation.clicker import ButtonClicker
from src.app.browser_automation.config import ClickBehavior, PageSelectors, VisibilityThresholds
from src.app.browser_automation.dom import Document
from src.app.browser_automation.observer import ChangeObserver
from src.app.browser_automation.polling import SYSTEM_CLOCK, Clock

from .config import AutomationConfig, FailurePolicy
from .items import ItemTracker
from .sequencer import Sequencer, StatusCallback
from .sources import StepSource
from .state import SequencerState, StopReason

logger = logging.getLogger(__name__)

NO_CONFIGURATION = "No configuration loaded."


class Trigger(Enum):
    START = "start"
    TIMER = "timer"
    MUTATION = "mutation"
    CONTINUE = "continue"


class _Run:
    """Everything one start() owns."""

    def __init__(self, sequencer: Sequencer):
        self.sequencer = sequencer
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        self.tasks: List[asyncio.Task] = []
        self.observer: Optional[ChangeObserver] = None
        self.in_flight = False
        self.done = asyncio.Event()


class AutomationSession:
    def __init__(
        self,
        document: Document,
        source_factory: Callable[[], StepSource],
        config: AutomationConfig = AutomationConfig(),
        selectors: PageSelectors = PageSelectors(),
        click: ClickBehavior = ClickBehavior(),
        thresholds: VisibilityThresholds = VisibilityThresholds(),
        clock: Clock = SYSTEM_CLOCK,
        on_status: Optional[StatusCallback] = None,
        failure_policy: FailurePolicy = "stop",
        rng: Optional[random.Random] = None,
        items: Optional[ItemTracker] = None,
    ):
        self.document = document
        self.source_factory = source_factory
        self.config = config
        self.selectors = selectors
        self.click = click
        self.thresholds = thresholds
        self.clock = clock
        self.on_status = on_status
        self.failure_policy = failure_policy
        self.rng = rng
        self.items = items
        self._run: Optional[_Run] = None

    # ---------------------------- Control surface --------------------------- #

    def is_running(self) -> bool:
        return self._run is not None and self._run.sequencer.running

    @property
    def state(self) -> SequencerState:
        return self._run.sequencer.state if self._run is not None else SequencerState()

    async def start(self) -> bool:
        """Start a new run, stopping the current one first. False if there is nothing to run."""
        if self.is_running():
            await self.stop(StopReason.RESTARTED)

        source = self.source_factory()
        if not source.is_configured():
            self._emit(NO_CONFIGURATION)
            return False

        run = _Run(self._new_sequencer(source))
        self._run = run
        run.sequencer.start()

        loop = asyncio.get_running_loop()
        run.tasks.append(loop.create_task(self._consume(run)))
        run.tasks.append(loop.create_task(self._tick(run)))
        if self.config.observe_mutations:
            run.observer = ChangeObserver(
                self.document,
                lambda: self._enqueue(run, Trigger.MUTATION),
                self.config.mutation_debounce_ms,
                self.clock,
            )
            await run.observer.start()

        self._enqueue(run, Trigger.START)
        return True

    async def stop(self, reason: StopReason = StopReason.USER) -> bool:
        run = self._run
        if run is None:
            return False
        stopped = run.sequencer.stop(reason)
        await self._dispose(run)
        return stopped

    def trigger(self, kind: Trigger) -> bool:
        """Ask for a cycle. False when the request was dropped."""
        if self._run is None:
            return False
        return self._enqueue(self._run, kind)

    async def wait(self) -> Optional[StopReason]:
        """Block until the current run has stopped and cleaned up; returns its reason."""
        run = self._run
        if run is None:
            return None
        await run.done.wait()
        return run.sequencer.state.reason

    # -------------------------------- Internals ----------------------------- #

    def _new_sequencer(self, source: StepSource) -> Sequencer:
        return Sequencer(
            self.document,
            source,
            config=self.config,
            selectors=self.selectors,
            clicker=ButtonClicker(self.click, self.clock),
            clock=self.clock,
            on_status=self._emit,
            failure_policy=self.failure_policy,
            rng=self.rng,
            thresholds=self.thresholds,
            items=self.items,
        )

    def _enqueue(self, run: _Run, kind: Trigger) -> bool:
        if run is not self._run or not run.sequencer.running:
            return False
        if run.in_flight or run.queue.full():
            logger.debug("Dropping %s trigger; a cycle is already pending.", kind.name)
            return False
        run.queue.put_nowait(kind)
        return True

    async def _consume(self, run: _Run) -> None:
        try:
            while run.sequencer.running:
                kind = await run.queue.get()
                logger.debug("Cycle triggered by %s.", kind.name)
                run.in_flight = True
                try:
                    again = await run.sequencer.run_cycle()
                finally:
                    run.in_flight = False
                if again:
                    self._enqueue(run, Trigger.CONTINUE)
        finally:
            await self._dispose(run)

    async def _tick(self, run: _Run) -> None:
        interval = self.config.tick_interval_ms / 1000
        while run.sequencer.running:
            await self.clock.sleep(interval)
            self._enqueue(run, Trigger.TIMER)

    async def _dispose(self, run: _Run) -> None:
        if run.observer is not None:
            await run.observer.stop()
        current = asyncio.current_task()
        pending = [t for t in run.tasks if t is not current and not t.done()]
        for task in pending:
            task.cancel()
        for task in pending:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        run.done.set()

    def _emit(self, message: str) -> None:
        logger.info("%s", message)
        if self.on_status is not None:
            self.on_status(message)
