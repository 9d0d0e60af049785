"""Playwright implementation of the ``dom`` protocols (async API)."""
from __future__ import annotations

import logging
import re
from typing import List, Optional

from playwright.async_api import ElementHandle, Page, Response

from .dom import ClickListener, Layout, MutationListener, ResponseListener, Unsubscribe

logger = logging.getLogger(__name__)

_MUTATION_BINDING = "__autoplayMutated"
_CLICK_BINDING = "__autoplayClicked"

_TEXT_JS = """(el, exclude) => {
    const clone = el.cloneNode(true);
    if (exclude) clone.querySelectorAll(exclude).forEach(n => n.remove());
    return clone.textContent || '';
}"""

_LAYOUT_JS = """el => {
    if (!el.isConnected || !document.body.contains(el)) {
        return {attached: false, display: 'none', visibility: 'hidden', opacity: 0, width: 0, height: 0};
    }
    const style = getComputedStyle(el);
    const rect = el.getBoundingClientRect();
    const opacity = parseFloat(style.opacity);
    return {
        attached: true,
        display: style.display,
        visibility: style.visibility,
        opacity: Number.isNaN(opacity) ? 1 : opacity,
        width: rect.width,
        height: rect.height,
    };
}"""

_OUTLINE_JS = """(el, value) => {
    const previous = el.style.outline;
    el.style.outline = value;
    return previous;
}"""

# Throttled in the page so a burst of mutations crosses into Python once per 100ms.
_OBSERVER_JS = """(() => {
    const install = () => {
        if (window.__autoplayObserver || !document.body) return;
        let pending = false;
        window.__autoplayObserver = new MutationObserver(() => {
            if (pending) return;
            pending = true;
            setTimeout(() => {
                pending = false;
                if (window.%(binding)s) window.%(binding)s();
            }, 100);
        });
        window.__autoplayObserver.observe(document.body, {childList: true, subtree: true});
    };
    if (document.body) install();
    else document.addEventListener('DOMContentLoaded', install);
})()""" % {"binding": _MUTATION_BINDING}

_CLICK_JS = """(() => {
    if (window.__autoplayClickHook) return;
    window.__autoplayClickHook = true;
    document.addEventListener('click', e => {
        if (window.%(binding)s) window.%(binding)s(e.target);
    }, true);
})()""" % {"binding": _CLICK_BINDING}


class PlaywrightElement:
    """Wraps an ``ElementHandle``; every method is one round-trip to the page."""

    def __init__(self, handle: ElementHandle):
        self.handle = handle

    @classmethod
    def wrap(cls, handle: Optional[ElementHandle]) -> Optional["PlaywrightElement"]:
        return cls(handle) if handle is not None else None

    def __repr__(self) -> str:
        return f"PlaywrightElement({self.handle!r})"

    async def query_all(self, selector: str) -> List["PlaywrightElement"]:
        return [PlaywrightElement(h) for h in await self.handle.query_selector_all(selector)]

    async def query(self, selector: str) -> Optional["PlaywrightElement"]:
        return self.wrap(await self.handle.query_selector(selector))

    async def matches(self, selector: str) -> bool:
        return bool(await self.handle.evaluate("(el, sel) => el.matches(sel)", selector))

    async def closest(self, selector: str) -> Optional["PlaywrightElement"]:
        js_handle = await self.handle.evaluate_handle("(el, sel) => el.closest(sel)", selector)
        return self.wrap(js_handle.as_element())

    async def parent(self) -> Optional["PlaywrightElement"]:
        js_handle = await self.handle.evaluate_handle("el => el.parentElement")
        return self.wrap(js_handle.as_element())

    async def tag_name(self) -> str:
        return str(await self.handle.evaluate("el => el.tagName")).lower()

    async def attribute(self, name: str) -> Optional[str]:
        return await self.handle.get_attribute(name)

    async def text_content(self, exclude: Optional[str] = None) -> str:
        return await self.handle.evaluate(_TEXT_JS, exclude)

    async def outer_html(self) -> str:
        return await self.handle.evaluate("el => el.outerHTML")

    async def layout(self) -> Layout:
        return Layout(**await self.handle.evaluate(_LAYOUT_JS))

    async def dispatch_event(self, event_type: str) -> None:
        await self.handle.dispatch_event(event_type, {"bubbles": True, "cancelable": True})

    async def scroll_into_view(self) -> None:
        await self.handle.scroll_into_view_if_needed(timeout=2000)

    async def set_outline(self, value: str) -> str:
        return await self.handle.evaluate(_OUTLINE_JS, value)


class PlaywrightDocument:
    """The live page as a ``dom.Document``."""

    def __init__(self, page: Page):
        self.page = page
        self._mutation_listeners: List[MutationListener] = []
        self._click_listeners: List[ClickListener] = []
        self._mutations_hooked = False
        self._clicks_hooked = False

    async def query_all(self, selector: str) -> List[PlaywrightElement]:
        return [PlaywrightElement(h) for h in await self.page.query_selector_all(selector)]

    async def query(self, selector: str) -> Optional[PlaywrightElement]:
        return PlaywrightElement.wrap(await self.page.query_selector(selector))

    async def subscribe_mutations(self, listener: MutationListener) -> Unsubscribe:
        if not self._mutations_hooked:
            await self.page.expose_function(_MUTATION_BINDING, self._on_mutation)
            await self.page.add_init_script(script=_OBSERVER_JS)
            await self.page.evaluate(_OBSERVER_JS)
            self._mutations_hooked = True
            logger.debug("Mutation observer installed.")
        self._mutation_listeners.append(listener)
        return lambda: self._discard(self._mutation_listeners, listener)

    async def subscribe_clicks(self, listener: ClickListener) -> Unsubscribe:
        if not self._clicks_hooked:
            await self.page.expose_binding(_CLICK_BINDING, self._on_click, handle=True)
            await self.page.add_init_script(script=_CLICK_JS)
            await self.page.evaluate(_CLICK_JS)
            self._clicks_hooked = True
            logger.debug("Click hook installed.")
        self._click_listeners.append(listener)
        return lambda: self._discard(self._click_listeners, listener)

    async def subscribe_responses(self, url_pattern: str, listener: ResponseListener) -> Unsubscribe:
        pattern = re.compile(url_pattern)

        async def on_response(response: Response) -> None:
            if not pattern.search(response.url):
                return
            if not response.ok:
                logger.warning("Intercepted %s failed: %s", response.url, response.status)
                return
            try:
                data = await response.json()
            except Exception as e:
                logger.warning("Could not parse JSON from %s: %s", response.url, e)
                return
            listener(response.url, data)

        self.page.on("response", on_response)
        logger.debug("Listening for responses matching %s.", url_pattern)
        return lambda: self.page.remove_listener("response", on_response)

    # ------------------------------ Page callbacks --------------------------- #

    def _on_mutation(self) -> None:
        for listener in list(self._mutation_listeners):
            listener()

    async def _on_click(self, source, handle) -> None:
        element = handle.as_element()
        if element is None:
            return
        for listener in list(self._click_listeners):
            await listener(PlaywrightElement(element))

    @staticmethod
    def _discard(listeners: list, listener) -> None:
        if listener in listeners:
            listeners.remove(listener)
