"""
Record your clicks in the game and save them as a replayable JSON file.

Opens the game, starts recording, and waits. Play the sequence you want to
automate in the browser window, then press ENTER in the terminal. The actions
are written to RECORDINGS_DIR/fl_actions_<timestamp>.json; replay them with
AUTOMATION_MODE=replay CONFIG_FILE=<that file>.

Configure via .env or environment variables:
    USER_DATA_DIR=.profile
    RECORDINGS_DIR=recordings
    PREFERENCES_FILE=~/.storylet_autoplay/preferences.json
    ON_FAILURE=retry      # if set, saved as the on-failure preference for later replays

To run:
    python -m src.scripts.record_actions
"""
from __future__ import annotations

import asyncio
import logging

from src.app.autoplay import (
    ActionRecorder,
    AutomationConfig,
    PreferenceStore,
    save_failure_policy,
    save_recording,
)
from src.app.browser_automation import BrowserGameConfig, BrowserRunner
from src.app.browser_automation.utils import configure_logging

logger = logging.getLogger("record_actions")


async def record(auto: AutomationConfig, game: BrowserGameConfig) -> None:
    async with BrowserRunner(game).open() as document:
        recorder = ActionRecorder(document, game.selectors)
        await recorder.start()
        await asyncio.to_thread(input, "Recording. Press ENTER to stop and save...\n")
        records = recorder.stop()

    if not records:
        logger.warning("No actions recorded; nothing saved.")
        return
    save_recording(records, auto.recordings_dir, game.selectors)


def main():
    auto = AutomationConfig.from_env()
    game = BrowserGameConfig.from_env()
    configure_logging(auto.log_level)

    if auto.on_failure:
        save_failure_policy(PreferenceStore(auto.preferences_file), auto.on_failure)

    try:
        asyncio.run(record(auto, game))
    except KeyboardInterrupt:
        logger.info("Interrupted; recording discarded.")


if __name__ == "__main__":
    main()
