from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal, Optional

from dotenv import load_dotenv

from src.app.browser_automation.utils import parse_bool, parse_optional_int

Mode = Literal["cards", "replay", "priority", "repeat"]
FailurePolicy = Literal["stop", "retry"]
EquipMethod = Literal["sidebar", "possessions"]

MODES = ("cards", "replay", "priority", "repeat")
FAILURE_POLICIES = ("stop", "retry")
EQUIP_METHODS = ("sidebar", "possessions")


@dataclass(frozen=True)
class AutomationConfig:
    # ---- What to run ----
    mode: Mode = "replay"
    config_file: Optional[str] = None
    branch_id: Optional[str] = None          # repeat mode: data-branch-id holding the Go button

    # ---- Polling / timing (ms) ----
    # Tuned against the game's render timing; there is no render-complete signal.
    poll_interval_ms: int = 300
    element_timeout_ms: int = 15_000
    transition_delay_ms: int = 1_200
    transition_jitter_ms: int = 600
    pending_timeout_ms: int = 5_000
    recovery_timeout_ms: int = 3_000
    retry_delay_ms: int = 500
    deck_draw_delay_ms: int = 2_500

    # ---- Failure handling ----
    max_retries: int = 3
    on_failure: Optional[FailurePolicy] = None   # None: use the persisted preference
    use_failure_titles: bool = False

    # ---- Goals / budgets ----
    target_quality: Optional[int] = None
    max_cycles: Optional[int] = None
    item_targets: Optional[str] = None      # JSON {"<item id>": target}; stop once all are reached
    draw_cards: bool = True
    equip_method: EquipMethod = "sidebar"    # how a record's `equip` challenge is equipped

    # ---- Triggers ----
    tick_interval_ms: int = 2_500
    mutation_debounce_ms: int = 800
    observe_mutations: bool = True

    # ---- Files ----
    preferences_file: str = "~/.storylet_autoplay/preferences.json"
    recordings_dir: str = "recordings"
    log_level: str = "INFO"

    @staticmethod
    def from_env() -> "AutomationConfig":
        """Load AutomationConfig from .env/environment variables."""
        load_dotenv()

        def _get(k: str, default: Optional[str] = None) -> Optional[str]:
            v = os.getenv(k)
            return v if v is not None else default

        mode = (_get("AUTOMATION_MODE", "replay") or "replay").strip().lower()
        if mode not in MODES:
            raise ValueError(f"AUTOMATION_MODE must be one of {', '.join(MODES)}; got {mode!r}")

        on_failure = (_get("ON_FAILURE") or "").strip().lower() or None
        if on_failure is not None and on_failure not in FAILURE_POLICIES:
            raise ValueError(f"ON_FAILURE must be 'stop' or 'retry'; got {on_failure!r}")

        equip_method = (_get("EQUIP_METHOD", "sidebar") or "sidebar").strip().lower()
        if equip_method not in EQUIP_METHODS:
            raise ValueError(f"EQUIP_METHOD must be one of {', '.join(EQUIP_METHODS)}; got {equip_method!r}")

        return AutomationConfig(
            mode=mode,  # type: ignore[arg-type]
            config_file=_get("CONFIG_FILE"),
            branch_id=_get("BRANCH_ID"),

            poll_interval_ms=int(_get("POLL_INTERVAL_MS", "300")),
            element_timeout_ms=int(_get("ELEMENT_TIMEOUT_MS", "15000")),
            transition_delay_ms=int(_get("TRANSITION_DELAY_MS", "1200")),
            transition_jitter_ms=int(_get("TRANSITION_JITTER_MS", "600")),
            pending_timeout_ms=int(_get("PENDING_TIMEOUT_MS", "5000")),
            recovery_timeout_ms=int(_get("RECOVERY_TIMEOUT_MS", "3000")),
            retry_delay_ms=int(_get("RETRY_DELAY_MS", "500")),
            deck_draw_delay_ms=int(_get("DECK_DRAW_DELAY_MS", "2500")),

            max_retries=int(_get("MAX_RETRIES", "3")),
            on_failure=on_failure,  # type: ignore[arg-type]
            use_failure_titles=parse_bool(_get("USE_FAILURE_TITLES"), False),

            target_quality=parse_optional_int(_get("TARGET_QUALITY")),
            max_cycles=parse_optional_int(_get("MAX_CYCLES")),
            item_targets=_get("ITEM_TARGETS"),
            draw_cards=parse_bool(_get("DRAW_CARDS"), True),
            equip_method=equip_method,  # type: ignore[arg-type]

            tick_interval_ms=int(_get("TICK_INTERVAL_MS", "2500")),
            mutation_debounce_ms=int(_get("MUTATION_DEBOUNCE_MS", "800")),
            observe_mutations=parse_bool(_get("OBSERVE_MUTATIONS"), True),

            preferences_file=_get("PREFERENCES_FILE", "~/.storylet_autoplay/preferences.json"),
            recordings_dir=_get("RECORDINGS_DIR", "recordings"),
            log_level=_get("LOG_LEVEL", "INFO"),
        )
