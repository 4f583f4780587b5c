from __future__ import annotations

import logging
import uuid
from typing import Any

from playwright.async_api import ElementHandle as PlaywrightHandle
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from pollwright.core.contracts import (
    ElementHandle,
    Locator,
    PredicateKind,
    PredicateSpec,
    Strategy,
    match_class,
    match_needle,
)
from pollwright.core.errors import StaleElement, TransportFailure

logger = logging.getLogger("pollwright.driver.playwright")

# Tags each node with an id that is unique across documents: the first token
# a document is handed becomes its prefix, followed by a per-document counter.
# The same node found through two branches is recognised as one element.
_IDENTIFY_SCRIPT = """
(el, token) => {
    if (!el.__pollwrightId) {
        if (!window.__pollwrightDoc) {
            window.__pollwrightDoc = token;
        }
        window.__pollwrightSeq = (window.__pollwrightSeq || 0) + 1;
        el.__pollwrightId = 'pw-' + window.__pollwrightDoc + '-' + window.__pollwrightSeq;
    }
    return el.__pollwrightId;
}
"""

_CONNECTED_SCRIPT = "(el) => el.isConnected"

_STALE_MARKERS = (
    "not attached",
    "is disposed",
    "execution context was destroyed",
    "node is detached",
)


def _css_string(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def playwright_selector(locator: Locator) -> str:
    strategy = locator.strategy
    value = locator.value
    if strategy == Strategy.CSS:
        return f"css={value}"
    if strategy == Strategy.XPATH:
        return f"xpath={value}"
    if strategy == Strategy.ID:
        return f"css=[id={_css_string(value)}]"
    if strategy == Strategy.NAME:
        return f"css=[name={_css_string(value)}]"
    if strategy == Strategy.TAG:
        return f"css={value}"
    if strategy == Strategy.CLASS_NAME:
        return f"css=.{value}"
    if strategy == Strategy.LINK_TEXT:
        return f"css=a:text-is({_css_string(value)})"
    if strategy == Strategy.PARTIAL_LINK_TEXT:
        return f"css=a:has-text({_css_string(value)})"
    raise ValueError(f"Unsupported locator strategy: {strategy}")


def _is_stale(exc: PlaywrightError) -> bool:
    message = str(exc).lower()
    return any(marker in message for marker in _STALE_MARKERS)


class PlaywrightDriver:
    """ElementDriver backed by a playwright page."""

    def __init__(self, page: Page) -> None:
        self._page = page

    @property
    def page(self) -> Page:
        return self._page

    def _translate(self, exc: PlaywrightError, handle: ElementHandle | None = None) -> Exception:
        if _is_stale(exc):
            return StaleElement(handle.element_id if handle else None, detail=str(exc).splitlines()[0])
        return TransportFailure(str(exc))

    async def _wrap(self, raw: PlaywrightHandle) -> ElementHandle:
        element_id = await raw.evaluate(_IDENTIFY_SCRIPT, uuid.uuid4().hex)
        return ElementHandle(element_id=str(element_id), ref=raw)

    async def lookup(self, locator: Locator, scope: ElementHandle | None = None) -> list[ElementHandle]:
        selector = playwright_selector(locator)
        root: Any = scope.ref if scope is not None else self._page
        try:
            # A detached scope still answers queries over its old subtree.
            if scope is not None and not await scope.ref.evaluate(_CONNECTED_SCRIPT):
                raise StaleElement(scope.element_id, detail="search scope is detached")
            raw_handles = await root.query_selector_all(selector)
            return [await self._wrap(raw) for raw in raw_handles]
        except PlaywrightError as exc:
            raise self._translate(exc, scope) from exc

    async def probe_attached(self, handle: ElementHandle) -> bool:
        try:
            return bool(await handle.ref.evaluate(_CONNECTED_SCRIPT))
        except PlaywrightError as exc:
            if _is_stale(exc):
                return False
            raise TransportFailure(str(exc)) from exc

    async def evaluate_predicate(self, handle: ElementHandle, spec: PredicateSpec) -> bool:
        try:
            return await self._evaluate(handle.ref, spec)
        except PlaywrightError as exc:
            raise self._translate(exc, handle) from exc

    async def _evaluate(self, raw: PlaywrightHandle, spec: PredicateSpec) -> bool:
        kind = spec.kind
        if kind == PredicateKind.ATTACHED:
            return bool(await raw.evaluate(_CONNECTED_SCRIPT))
        if kind == PredicateKind.DISPLAYED:
            return await raw.is_visible()
        if kind == PredicateKind.ENABLED:
            return await raw.is_enabled()
        if kind == PredicateKind.SELECTED:
            return bool(await raw.evaluate("(el) => !!(el.selected || el.checked)"))
        if kind == PredicateKind.CLICKABLE:
            return await raw.is_visible() and await raw.is_enabled()
        if kind == PredicateKind.TEXT:
            return match_needle(spec.args[0], await raw.inner_text())
        if kind == PredicateKind.TAG:
            return match_needle(spec.args[0], await raw.evaluate("(el) => el.tagName.toLowerCase()"))
        if kind == PredicateKind.CLASS:
            class_attr = await raw.get_attribute("class")
            return class_attr is not None and match_class(spec.args[0], class_attr)
        if kind == PredicateKind.ID:
            element_id = await raw.get_attribute("id")
            return element_id is not None and match_needle(spec.args[0], element_id)
        if kind == PredicateKind.VALUE:
            value = await (await raw.get_property("value")).json_value()
            return value is not None and match_needle(spec.args[0], str(value))
        if kind == PredicateKind.ATTRIBUTE:
            name, needle = spec.args
            attribute = await raw.get_attribute(name)
            return attribute is not None and match_needle(needle, attribute)
        if kind == PredicateKind.PROPERTY:
            name, needle = spec.args
            value = await (await raw.get_property(name)).json_value()
            return value is not None and match_needle(needle, str(value))
        raise ValueError(f"Unsupported predicate kind: {kind}")
