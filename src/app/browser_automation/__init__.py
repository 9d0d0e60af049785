"""
Browser automation utilities:
- BrowserGameConfig: load .env config (browser, click behaviour, page selectors)
- BrowserRunner: launch Playwright and open the game
- ElementLocator: resolve target descriptors to visible controls
- ButtonClicker: press/release/click event sequence on a control
- ChangeObserver: debounced DOM-mutation trigger
- poll_until / RunToken: cooperative waiting
"""

from .config import BrowserGameConfig, BrowserSettings, ClickBehavior, PageSelectors, VisibilityThresholds
from .clicker import ButtonClicker
from .descriptors import ByContainerAndLabel, BySelectorFallback, ByStableId, TargetDescriptor, describe
from .locator import ElementLocator
from .observer import ChangeObserver
from .polling import SYSTEM_CLOCK, Clock, RunToken, SystemClock, pause, poll_until
from .runner import BrowserRunner
from .visibility import is_interactable

__all__ = [
    "BrowserGameConfig", "BrowserSettings", "ClickBehavior", "PageSelectors", "VisibilityThresholds",
    "ButtonClicker", "BrowserRunner", "ChangeObserver", "ElementLocator",
    "ByContainerAndLabel", "BySelectorFallback", "ByStableId", "TargetDescriptor", "describe",
    "SYSTEM_CLOCK", "Clock", "RunToken", "SystemClock", "pause", "poll_until",
    "is_interactable",
]
