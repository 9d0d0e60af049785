"""
Open the game in Chromium and run one automation mode until it stops
(completed, goal reached, failure, or Ctrl+C).

Configure via .env or environment variables:

Required:
    AUTOMATION_MODE=replay          # cards | replay | priority | repeat
    CONFIG_FILE=recordings/fl_actions_2024-05-01T12-00-00.json
        # cards:    {"<event id>": {action, outfit?, branch, exitButtonText?, description}}
        # replay:   recording saved by record_actions
        # priority: [{"title": "...", "priority": 100}, ...]
    BRANCH_ID=12345                 # repeat mode only (no CONFIG_FILE needed)

Optional:
    USER_DATA_DIR=.profile          # keeps you logged in between runs
    HEADLESS=false
    ON_FAILURE=retry                # overrides the saved preference (stop | retry)
    MAX_RETRIES=3
    TARGET_QUALITY=7                # stop once a quality update shows this value
    ITEM_TARGETS={"830": 100}       # stop once every listed item id reaches its quantity
    EQUIP_METHOD=sidebar            # sidebar | possessions (Equip Highest on the Possessions page)
    MAX_CYCLES=20
    LOG_LEVEL=INFO

To run:
    python -m src.scripts.run_automation
"""
from __future__ import annotations

import asyncio
import logging
import sys

from src.app.autoplay import (
    AutomationConfig,
    AutomationSession,
    CardSource,
    ConfigInvalid,
    ItemTracker,
    PreferenceStore,
    PrioritySource,
    RepeatSource,
    SequenceSource,
    StepSource,
    StopReason,
    load_branch_targets,
    load_card_rules,
    load_failure_policy,
    load_item_targets,
    load_recording,
    read_config_text,
)
from src.app.browser_automation import BrowserGameConfig, BrowserRunner
from src.app.browser_automation.utils import configure_logging

logger = logging.getLogger("run_automation")


def build_source_factory(auto: AutomationConfig, game: BrowserGameConfig):
    """Parse the mode's configuration once and return a factory of fresh sources."""
    selectors = game.selectors

    if auto.mode == "repeat":
        if not auto.branch_id:
            raise ConfigInvalid("Repeat mode needs BRANCH_ID.")
        return lambda: RepeatSource(auto.branch_id, selectors, max_cycles=auto.max_cycles)

    if not auto.config_file:
        raise ConfigInvalid(f"{auto.mode} mode needs CONFIG_FILE.")
    text = read_config_text(auto.config_file)

    if auto.mode == "cards":
        rules = load_card_rules(text, selectors)
        logger.info("Loaded %d card rules.", len(rules))
        return lambda: CardSource(rules, selectors, game.visibility, auto.draw_cards,
                                  auto.deck_draw_delay_ms, auto.max_cycles)
    if auto.mode == "priority":
        targets = load_branch_targets(text)
        logger.info("Loaded %d branch targets.", len(targets))
        return lambda: PrioritySource(targets, selectors, max_cycles=auto.max_cycles)

    records = load_recording(text, selectors)
    logger.info("Loaded %d recorded actions.", len(records))
    return lambda: SequenceSource(records)


async def run(auto: AutomationConfig, game: BrowserGameConfig) -> StopReason | None:
    source_factory = build_source_factory(auto, game)
    policy = auto.on_failure or load_failure_policy(PreferenceStore(auto.preferences_file))
    logger.info("Mode: %s, on failure: %s", auto.mode, policy)
    items = ItemTracker(load_item_targets(auto.item_targets)) if auto.item_targets else None

    async with BrowserRunner(game).open() as document:
        if items is not None:
            await items.attach(document)
        session = AutomationSession(
            document,
            source_factory,
            config=auto,
            selectors=game.selectors,
            click=game.click,
            thresholds=game.visibility,
            failure_policy=policy,
            items=items,
        )
        if not await session.start():
            return None
        try:
            return await session.wait()
        finally:
            await session.stop()


def main():
    auto = AutomationConfig.from_env()
    game = BrowserGameConfig.from_env()
    configure_logging(auto.log_level)

    try:
        reason = asyncio.run(run(auto, game))
    except ConfigInvalid as e:
        logger.error("Invalid configuration: %s", e)
        sys.exit(2)
    except KeyboardInterrupt:
        logger.info("Interrupted.")
        return

    if reason is None:
        sys.exit(1)
    logger.info("Done: %s", reason.message)


if __name__ == "__main__":
    main()
