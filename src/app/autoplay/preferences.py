"""Small JSON key-value store for settings that outlive a run."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

from .config import FAILURE_POLICIES, FailurePolicy

logger = logging.getLogger(__name__)

FAILURE_ACTION_KEY = "flRecorderFailureAction"
DEFAULT_FAILURE_POLICY: FailurePolicy = "stop"


class PreferenceStore:
    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()

    def load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable preferences file %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring preferences file %s: not a JSON object", self.path)
            return {}
        return data

    def get(self, key: str, default: Any = None) -> Any:
        return self.load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self.load()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def load_failure_policy(store: PreferenceStore) -> FailurePolicy:
    value = str(store.get(FAILURE_ACTION_KEY, DEFAULT_FAILURE_POLICY)).lower()
    if value not in FAILURE_POLICIES:
        logger.warning("Unknown on-failure preference %r; using %r.", value, DEFAULT_FAILURE_POLICY)
        return DEFAULT_FAILURE_POLICY
    return value  # type: ignore[return-value]


def save_failure_policy(store: PreferenceStore, policy: FailurePolicy) -> None:
    if policy not in FAILURE_POLICIES:
        raise ValueError(f"on-failure policy must be 'stop' or 'retry', got {policy!r}")
    store.set(FAILURE_ACTION_KEY, policy)
    logger.info("On-failure policy set to %s.", policy)
