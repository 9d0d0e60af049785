"""Sequencer state: phase, attempt counter and terminal reason."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Phase(Enum):
    IDLE = "idle"
    LOCATING = "locating"
    ACTING_ON_TARGET = "acting_on_target"
    AWAITING_TRANSITION = "awaiting_transition"
    CLASSIFYING_OUTCOME = "classifying_outcome"
    RETRYING = "retrying"
    STOPPED = "stopped"


class StopReason(Enum):
    USER = "Stopped by user."
    RESTARTED = "Stopped: a new run was started."
    COMPLETED = "Playback finished."
    GOAL_REACHED = "Target quality reached."
    NOT_FOUND = "Element not found."
    FAILED = "Stopping on failure."
    MAX_RETRIES_EXCEEDED = "Too many consecutive failures."
    RECOVERY_FAILED = "Cannot navigate from failure. Stopping."
    FATAL = "Error occurred. Check the log."

    @property
    def message(self) -> str:
        return self.value


@dataclass(frozen=True)
class SequencerState:
    phase: Phase = Phase.IDLE
    step: int = 0              # 1-based number of the step being worked on
    attempt: int = 0           # consecutive failures on the current step
    reason: Optional[StopReason] = None

    @property
    def stopped(self) -> bool:
        return self.phase is Phase.STOPPED

    def __str__(self) -> str:
        if self.phase is Phase.STOPPED and self.reason is not None:
            return f"STOPPED({self.reason.name})"
        if self.phase is Phase.RETRYING:
            return f"RETRYING({self.attempt})"
        return self.phase.name
