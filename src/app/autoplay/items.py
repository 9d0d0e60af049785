"""Item quantity goals, fed by the game's own branch responses.

Every ``choosebranch`` response carries a ``messages`` array; messages with a
``possession`` object report the new ``level`` (quantity) of one item. Tracked
items are compared against their targets, and the run's goal is reached once
every tracked item is at or above its target.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from src.app.browser_automation.dom import Document, Unsubscribe

from .errors import ConfigInvalid

logger = logging.getLogger(__name__)

CHOOSE_BRANCH_URL = r"/api/storylet/choosebranch$"


class ItemTracker:
    def __init__(self, targets: Dict[int, int]):
        self.targets = dict(targets)
        self.quantities: Dict[int, int] = {}
        self._unsubscribe: Optional[Unsubscribe] = None

    async def attach(self, document: Document) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = await document.subscribe_responses(CHOOSE_BRANCH_URL, self._on_response)
            logger.info("Tracking %d item(s): %s", len(self.targets), self.describe())

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def update(self, data: Any) -> bool:
        """Apply one response body. True if a tracked quantity changed."""
        messages = data.get("messages") if isinstance(data, dict) else None
        if not isinstance(messages, list):
            return False
        changed = False
        for message in messages:
            possession = message.get("possession") if isinstance(message, dict) else None
            if not isinstance(possession, dict) or possession.get("level") is None:
                continue
            try:
                item_id, level = int(possession.get("id")), int(possession["level"])
            except (TypeError, ValueError):
                continue
            if item_id not in self.targets or self.quantities.get(item_id) == level:
                continue
            self.quantities[item_id] = level
            changed = True
            logger.info("Item %d: %d / %d", item_id, level, self.targets[item_id])
        return changed

    def goal_reached(self) -> bool:
        if not self.targets:
            return False
        return all(self.quantities.get(i, -1) >= target for i, target in self.targets.items())

    def describe(self) -> str:
        return ", ".join(
            f"{i}: {self.quantities.get(i, '?')}/{target}" for i, target in sorted(self.targets.items())
        )

    def _on_response(self, url: str, data: Any) -> None:
        if self.update(data) and self.goal_reached():
            logger.info("All item targets reached (%s).", self.describe())


def load_item_targets(text: str) -> Dict[int, int]:
    """Parse ``{"<item id>": <target quantity>, ...}``."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigInvalid(f"Item targets are not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigInvalid("Item targets must be an object mapping item ids to target quantities.")
    targets = {}
    for key, value in data.items():
        try:
            item_id, target = int(key), int(value)
        except (TypeError, ValueError) as e:
            raise ConfigInvalid(f"Item target {key!r}: {value!r} is not a pair of integers.") from e
        if target < 0:
            raise ConfigInvalid(f"Item target for {item_id} must not be negative.")
        targets[item_id] = target
    return targets
