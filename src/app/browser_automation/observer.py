"""DOM-mutation trigger: turns bursts of page changes into one debounced callback."""
from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Callable, Optional

from .dom import Document, Unsubscribe
from .polling import SYSTEM_CLOCK, Clock

logger = logging.getLogger(__name__)


class ChangeObserver:
    """Calls ``on_change`` once ``debounce_ms`` have passed since the last mutation."""

    def __init__(
        self,
        document: Document,
        on_change: Callable[[], None],
        debounce_ms: int = 800,
        clock: Clock = SYSTEM_CLOCK,
    ):
        self.document = document
        self.on_change = on_change
        self.debounce = debounce_ms / 1000
        self.clock = clock
        self._unsubscribe: Optional[Unsubscribe] = None
        self._pending: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self._unsubscribe is not None

    async def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = await self.document.subscribe_mutations(self.notify)

    async def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        pending, self._pending = self._pending, None
        if pending is not None and not pending.done():
            pending.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await pending

    def notify(self) -> None:
        """One mutation happened; restart the debounce window."""
        if self._unsubscribe is None:
            return
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = asyncio.get_running_loop().create_task(self._fire_later())

    async def _fire_later(self) -> None:
        await self.clock.sleep(self.debounce)
        self._pending = None
        logger.debug("Page settled after mutations.")
        self.on_change()
