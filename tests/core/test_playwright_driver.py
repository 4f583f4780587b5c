import re
from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError

from pollwright.core import predicates
from pollwright.core.branch import SelectorBranch
from pollwright.core.contracts import By, Cardinality, ElementHandle, PollConfig, contains
from pollwright.core.errors import NotFound, StaleElement, TransportFailure
from pollwright.core.query import query
from pollwright.core.resolver import ElementResolver, ResolverState
from pollwright.drivers.playwright_driver import PlaywrightDriver, playwright_selector


def _raw(element_id: str) -> MagicMock:
    raw = MagicMock()
    raw.evaluate = AsyncMock(return_value=element_id)
    return raw


def test_selector_mapping() -> None:
    assert playwright_selector(By.css("ul > li")) == "css=ul > li"
    assert playwright_selector(By.xpath("//li")) == "xpath=//li"
    assert playwright_selector(By.id("main")) == 'css=[id="main"]'
    assert playwright_selector(By.name("q")) == 'css=[name="q"]'
    assert playwright_selector(By.tag("button")) == "css=button"
    assert playwright_selector(By.class_name("card")) == "css=.card"
    assert playwright_selector(By.link_text("Home")) == 'css=a:text-is("Home")'
    assert playwright_selector(By.partial_link_text("Ho")) == 'css=a:has-text("Ho")'


@pytest.mark.asyncio
async def test_lookup_wraps_handles_with_stable_ids() -> None:
    page = MagicMock()
    page.query_selector_all = AsyncMock(return_value=[_raw("pw-1"), _raw("pw-2")])
    driver = PlaywrightDriver(page)

    found = await driver.lookup(By.css("li"))

    page.query_selector_all.assert_awaited_once_with("css=li")
    assert [h.element_id for h in found] == ["pw-1", "pw-2"]


@pytest.mark.asyncio
async def test_scoped_lookup_uses_scope_handle() -> None:
    page = MagicMock()
    scope_raw = MagicMock()
    scope_raw.evaluate = AsyncMock(return_value=True)
    scope_raw.query_selector_all = AsyncMock(return_value=[_raw("pw-9")])
    driver = PlaywrightDriver(page)

    found = await driver.lookup(By.tag("td"), ElementHandle("pw-3", scope_raw))

    scope_raw.evaluate.assert_awaited_once_with("(el) => el.isConnected")
    scope_raw.query_selector_all.assert_awaited_once_with("css=td")
    assert found == [ElementHandle("pw-9")]


@pytest.mark.asyncio
async def test_lookup_errors_are_translated() -> None:
    page = MagicMock()
    page.query_selector_all = AsyncMock(side_effect=PlaywrightError("Target page, context or browser has been closed"))
    driver = PlaywrightDriver(page)

    with pytest.raises(TransportFailure):
        await driver.lookup(By.css("li"))


@pytest.mark.asyncio
async def test_probe_reports_detached_nodes() -> None:
    raw = MagicMock()
    raw.evaluate = AsyncMock(side_effect=[True, False, PlaywrightError("JSHandle is disposed")])
    driver = PlaywrightDriver(MagicMock())
    handle = ElementHandle("pw-1", raw)

    assert await driver.probe_attached(handle) is True
    assert await driver.probe_attached(handle) is False
    assert await driver.probe_attached(handle) is False


@pytest.mark.asyncio
async def test_predicates_map_to_handle_calls() -> None:
    raw = MagicMock()
    raw.is_visible = AsyncMock(return_value=True)
    raw.is_enabled = AsyncMock(return_value=False)
    raw.inner_text = AsyncMock(return_value="Checkout now")
    raw.get_attribute = AsyncMock(return_value="btn primary")
    value_handle = MagicMock()
    value_handle.json_value = AsyncMock(return_value="42")
    raw.get_property = AsyncMock(return_value=value_handle)
    driver = PlaywrightDriver(MagicMock())
    handle = ElementHandle("pw-1", raw)

    assert await predicates.displayed().evaluate(driver, handle) is True
    assert await predicates.clickable().evaluate(driver, handle) is False
    assert await predicates.has_text(contains("Checkout")).evaluate(driver, handle) is True
    assert await predicates.has_class("primary").evaluate(driver, handle) is True
    assert await predicates.has_value("42").evaluate(driver, handle) is True
    raw.get_property.assert_awaited_with("value")


@pytest.mark.asyncio
async def test_predicate_errors_are_translated() -> None:
    raw = MagicMock()
    raw.is_visible = AsyncMock(side_effect=PlaywrightError("Element is not attached to the DOM"))
    raw.is_enabled = AsyncMock(side_effect=PlaywrightError("Protocol error: connection closed"))
    driver = PlaywrightDriver(MagicMock())
    handle = ElementHandle("pw-1", raw)

    with pytest.raises(StaleElement):
        await predicates.displayed().evaluate(driver, handle)
    with pytest.raises(TransportFailure):
        await predicates.enabled().evaluate(driver, handle)


@pytest.mark.asyncio
async def test_query_over_playwright_driver_dedupes_by_node_id() -> None:
    page = MagicMock()
    page.query_selector_all = AsyncMock(side_effect=[[_raw("pw-1")], [_raw("pw-1"), _raw("pw-2")]])
    driver = PlaywrightDriver(page)

    found = await query(driver, By.css(".primary"), poll=PollConfig.no_wait()).or_(By.tag("button")).all()

    assert [h.element_id for h in found] == ["pw-1", "pw-2"]


@pytest.mark.asyncio
async def test_scoped_lookup_under_detached_scope_is_stale() -> None:
    scope_raw = MagicMock()
    scope_raw.evaluate = AsyncMock(return_value=False)
    scope_raw.query_selector_all = AsyncMock(return_value=[_raw("pw-9")])
    driver = PlaywrightDriver(MagicMock())

    with pytest.raises(StaleElement, match="search scope is detached"):
        await driver.lookup(By.tag("td"), ElementHandle("pw-3", scope_raw))
    scope_raw.query_selector_all.assert_not_awaited()


@pytest.mark.asyncio
async def test_resolver_does_not_return_children_of_a_detached_base() -> None:
    base_raw = MagicMock()
    base_raw.evaluate = AsyncMock(return_value=False)
    base_raw.query_selector_all = AsyncMock(return_value=[_raw("pw-9")])
    driver = PlaywrightDriver(MagicMock())
    resolver = ElementResolver(driver, ElementHandle("pw-3", base_raw), [SelectorBranch(By.tag("td"))], cardinality=Cardinality.MANY)

    with pytest.raises(NotFound) as excinfo:
        await resolver.resolve()
    assert excinfo.value.scope_stale is True
    assert resolver.state == ResolverState.UNRESOLVED


@pytest.mark.asyncio
async def test_node_ids_are_prefixed_with_a_fresh_document_token() -> None:
    first, second = _raw("pw-a-1"), _raw("pw-b-1")
    page = MagicMock()
    page.query_selector_all = AsyncMock(side_effect=[[first], [second]])
    driver = PlaywrightDriver(page)

    await driver.lookup(By.css("li"))
    await driver.lookup(By.css("li"))

    script, token_one = first.evaluate.await_args.args
    _, token_two = second.evaluate.await_args.args
    assert "__pollwrightDoc" in script
    assert re.fullmatch(r"[0-9a-f]{32}", token_one)
    assert token_one != token_two
