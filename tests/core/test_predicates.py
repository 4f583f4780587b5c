import re

import pytest

from pollwright.core import predicates
from pollwright.core.contracts import contains, match_class, match_needle, starts_with
from pollwright.core.errors import StaleElement


def test_needle_kinds() -> None:
    assert match_needle("Submit", "Submit") is True
    assert match_needle("Submit", "Submit form") is False
    assert match_needle(re.compile(r"^Sub"), "Submit form") is True
    assert match_needle(contains("form"), "Submit form") is True
    assert match_needle(starts_with("Can"), "Submit") is False


def test_class_needle_matches_single_token() -> None:
    assert match_class("active", "item active large") is True
    assert match_class("act", "item active") is False
    assert match_class(re.compile("act"), "item active") is True


def test_negation_renames_and_flips() -> None:
    shown = predicates.displayed()
    hidden = ~shown

    assert str(hidden) == "not displayed"
    assert hidden.negate is True
    assert str(~hidden) == "displayed"


@pytest.mark.asyncio
async def test_builtin_predicates_against_memory_dom(dom) -> None:
    node = dom.add("input", id="email", classes=("field", "wide"), value="a@b.c", enabled=False)
    handle = dom.handle(node)

    assert await predicates.displayed().evaluate(dom, handle) is True
    assert await predicates.enabled().evaluate(dom, handle) is False
    assert await predicates.not_enabled().evaluate(dom, handle) is True
    assert await predicates.has_class("wide").evaluate(dom, handle) is True
    assert await predicates.has_value("a@b.c").evaluate(dom, handle) is True
    assert await predicates.has_attribute("id", "email").evaluate(dom, handle) is True
    assert await predicates.lacks_attribute("name", "x").evaluate(dom, handle) is True
    assert await predicates.has_tag("input").evaluate(dom, handle) is True


@pytest.mark.asyncio
async def test_hidden_ancestor_hides_child(dom) -> None:
    panel = dom.add("div", displayed=False)
    child = dom.add("span", panel, text="hi")

    assert await predicates.displayed().evaluate(dom, dom.handle(child)) is False


@pytest.mark.asyncio
async def test_custom_predicates_sync_and_async(dom) -> None:
    handle = dom.handle(dom.add("p", text="hello"))

    async def is_paragraph(h):
        return h.ref.tag == "p"

    assert await predicates.custom(lambda h: h.ref.text == "hello").evaluate(dom, handle) is True
    assert await predicates.custom(is_paragraph).evaluate(dom, handle) is True


@pytest.mark.asyncio
async def test_composition(dom) -> None:
    handle = dom.handle(dom.add("button", text="Go", enabled=False))

    both = predicates.all_of(predicates.displayed(), predicates.enabled())
    either = predicates.any_of(predicates.enabled(), predicates.has_text("Go"))

    assert await both.evaluate(dom, handle) is False
    assert await either.evaluate(dom, handle) is True
    assert await predicates.all_of().evaluate(dom, handle) is True
    assert await predicates.any_of().evaluate(dom, handle) is False
    assert await predicates.has_attributes({}).evaluate(dom, handle) is True


@pytest.mark.asyncio
async def test_attached_uses_probe_and_stale_raises_on_evaluate(dom) -> None:
    node = dom.add("div")
    handle = dom.handle(node)
    dom.remove(node)

    assert await predicates.attached().evaluate(dom, handle) is False
    assert await predicates.detached().evaluate(dom, handle) is True
    assert dom.probes == 2

    with pytest.raises(StaleElement):
        await predicates.displayed().evaluate(dom, handle)
