"""Configuration loading from .env and environment variables for the browser layer."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields, replace

from dotenv import load_dotenv

from .utils import clamp, parse_bool

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClickBehavior:
    highlight: bool = False                      # outline the control while it is clicked
    highlight_outline: str = "3px solid #4CAF50"
    highlight_ms: int = 200                      # outline shown this long before the events fire
    settle_ms: int = 100                         # pause before the outline is restored


@dataclass(frozen=True)
class VisibilityThresholds:
    min_opacity: float = 0.1   # 0..1
    min_size_px: float = 1.0   # width and height must both exceed this


@dataclass(frozen=True)
class BrowserSettings:
    headless: bool = False
    slow_mo_ms: int = 0
    user_data_dir: str | None = None   # persistent profile so the game login survives restarts


@dataclass(frozen=True)
class PageSelectors:
    """CSS selectors for the game's markup. The game changes these without notice."""
    headings: str = "h1, h2, .storylet-root__heading, .storylet__heading, .branch__title"
    block_containers: str = ".storylet, .media--root, .branch"
    storylet_roots: str = ".media--root, .storylet"
    clickables: str = 'button, input[type="button"], input[type="submit"], [role="button"]'
    label_span: str = 'span:not([class*="buttonlet"]):not([class*="fa-"])'
    translation_overlays: str = (
        "font.immersive-translate-target-wrapper, .immersive-translate-target-wrapper, "
        "font.notranslate, [data-immersive-translate-translation-element-mark]"
    )
    exit_options: str = ".buttons--storylet-exit-options"
    storylet_buttons: str = ".storylet__buttons"
    result_region: str = ".branch.media--quality-updates"
    outcome_markers: str = ".buttons--storylet-exit-options, .quality-update__body"
    fatal_markers: str = ""
    page_title: str = ".media--root .storylet-root__heading"
    quality_update: str = ".quality-update__body"
    quality_name: str = ".quality-name"
    quality_progress: str = ".progress .progress__current:last-of-type"
    hand: str = ".hand"
    hand_card: str = ".hand__card-container[data-event-id]"
    card_discard: str = ".card__discard-button"
    deck: str = "button.deck"
    branch: str = ".media.branch"
    branch_title: str = ".branch__title"
    go_button: str = "button.button--go"
    challenge_icon: str = ".challenge .js-icon img"
    sidebar_quality: str = ".sidebar-quality"
    sidebar_quality_name: str = ".item__name"
    fast_equip: str = ".fast-equip-button"
    outfit_title: str = ".outfit-selector__title"
    outfit_container: str = 'div[style*="margin-right"]'
    outfit_control: str = '[class*="-control"]'
    outfit_option: str = '[class*="-option"]'
    possessions_link: str = 'a[href="/possessions"]'
    story_link: str = 'a[href="/"]'
    possessions_row: str = 'div[style^="align-items: baseline"]'
    possessions_row_heading: str = "span.heading.heading--3"
    possessions_category_control: str = '[class*="-control"]'
    possessions_category_option: str = '[role="listbox"] [role="option"]'
    equip_highest: str = "button.button--primary"

    @property
    def exit_region(self) -> str:
        """Every area that holds 'Onwards'-style exit buttons."""
        return f"{self.exit_options}, {self.storylet_buttons}"

    @staticmethod
    def with_overrides(raw: str | None) -> "PageSelectors":
        """Apply a JSON object of {field: selector} overrides on top of the defaults."""
        defaults = PageSelectors()
        if not raw:
            return defaults
        try:
            overrides = json.loads(raw)
            assert isinstance(overrides, dict)
        except Exception:
            logger.warning("PAGE_SELECTORS is not a JSON object; using default selectors.")
            return defaults
        known = {f.name for f in fields(PageSelectors)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            logger.warning("Ignoring unknown selector overrides: %s", ", ".join(unknown))
        return replace(defaults, **{k: str(v) for k, v in overrides.items() if k in known})


@dataclass(frozen=True)
class BrowserGameConfig:
    url: str = "https://www.fallenlondon.com/"
    browser: BrowserSettings = field(default_factory=BrowserSettings)
    click: ClickBehavior = field(default_factory=ClickBehavior)
    visibility: VisibilityThresholds = field(default_factory=VisibilityThresholds)
    selectors: PageSelectors = field(default_factory=PageSelectors)

    @staticmethod
    def from_env() -> "BrowserGameConfig":
        load_dotenv()

        url = os.getenv("GAME_URL", "https://www.fallenlondon.com/")

        browser = BrowserSettings(
            headless=parse_bool(os.getenv("HEADLESS"), False),
            slow_mo_ms=int(os.getenv("SLOW_MO_MS", "0")),
            user_data_dir=os.getenv("USER_DATA_DIR") or None,
        )

        click = ClickBehavior(
            highlight=parse_bool(os.getenv("HIGHLIGHT_CLICKS"), False),
            highlight_outline=os.getenv("HIGHLIGHT_OUTLINE", "3px solid #4CAF50"),
            highlight_ms=int(os.getenv("HIGHLIGHT_MS", "200")),
            settle_ms=int(os.getenv("CLICK_SETTLE_MS", "100")),
        )

        visibility = VisibilityThresholds(
            min_opacity=clamp(float(os.getenv("MIN_OPACITY", "0.1")), 0.0, 1.0),
            min_size_px=float(os.getenv("MIN_SIZE_PX", "1")),
        )

        return BrowserGameConfig(
            url=url,
            browser=browser,
            click=click,
            visibility=visibility,
            selectors=PageSelectors.with_overrides(os.getenv("PAGE_SELECTORS")),
        )
