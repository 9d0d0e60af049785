"""Async DOM protocols that the locator, visibility oracle and dispatcher are written against.

The Playwright-backed implementation lives in ``playwright_dom``; anything else that
satisfies these protocols (a saved page, a test double) can drive the same automation.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Protocol


@dataclass(frozen=True)
class Layout:
    """Rendered state of one element, read in a single round-trip."""
    attached: bool
    display: str
    visibility: str
    opacity: float
    width: float
    height: float


DETACHED = Layout(attached=False, display="none", visibility="hidden", opacity=0.0, width=0.0, height=0.0)


class Element(Protocol):
    async def query_all(self, selector: str) -> List["Element"]: ...

    async def query(self, selector: str) -> Optional["Element"]: ...

    async def matches(self, selector: str) -> bool: ...

    async def closest(self, selector: str) -> Optional["Element"]: ...

    async def parent(self) -> Optional["Element"]: ...

    async def tag_name(self) -> str: ...

    async def attribute(self, name: str) -> Optional[str]: ...

    async def text_content(self, exclude: Optional[str] = None) -> str:
        """textContent with every descendant matching ``exclude`` removed first."""
        ...

    async def outer_html(self) -> str: ...

    async def layout(self) -> Layout: ...

    async def dispatch_event(self, event_type: str) -> None: ...

    async def scroll_into_view(self) -> None: ...

    async def set_outline(self, value: str) -> str:
        """Set the inline outline style and return the previous value."""
        ...


MutationListener = Callable[[], None]
ClickListener = Callable[[Element], Awaitable[None]]
Unsubscribe = Callable[[], None]
# (url, parsed JSON body) of a successful network response.
ResponseListener = Callable[[str, Any], None]


class Document(Protocol):
    async def query_all(self, selector: str) -> List[Element]: ...

    async def query(self, selector: str) -> Optional[Element]: ...

    async def subscribe_mutations(self, listener: MutationListener) -> Unsubscribe:
        """Call ``listener`` (on the event loop) whenever the page's DOM changes."""
        ...

    async def subscribe_clicks(self, listener: ClickListener) -> Unsubscribe:
        """Await ``listener`` with the target of every user click on the page."""
        ...

    async def subscribe_responses(self, url_pattern: str, listener: ResponseListener) -> Unsubscribe:
        """Call ``listener`` with the JSON body of every OK response whose URL matches ``url_pattern``."""
        ...
