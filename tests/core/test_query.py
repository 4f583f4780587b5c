import pytest

from pollwright.core import predicates
from pollwright.core.config import set_default_poll_config
from pollwright.core.contracts import By, PollConfig
from pollwright.core.errors import AmbiguousMatch, NotFound, QueryTimeout, TransportFailure
from pollwright.core.query import query


@pytest.mark.asyncio
async def test_first_waits_for_late_element(dom, clock, timing) -> None:
    dom.at(120, lambda: dom.add("div", id="real"))

    q = query(dom, By.css("a.missing"), poll=PollConfig.with_timeout(500, 50), timing=timing).or_(By.id("real"))
    element = await q.first()

    assert element.ref.attributes["id"] == "real"
    ticks = len(clock.sleeps) + 1
    assert 2 <= ticks < 12
    assert clock.now == pytest.approx(0.15)


@pytest.mark.asyncio
async def test_first_prefers_earlier_branch_on_same_tick(dom, timing) -> None:
    dom.add("span", id="b")
    dom.add("span", id="a")

    for _ in range(5):
        element = await query(dom, By.id("a"), poll=PollConfig.no_wait(), timing=timing).or_(By.id("b")).first()
        assert element.ref.attributes["id"] == "a"


@pytest.mark.asyncio
async def test_zero_timeout_is_one_attempt(dom, clock, timing) -> None:
    q = query(dom, By.id("x"), poll=PollConfig(timeout_ms=0, interval_ms=100), timing=timing).or_(By.id("y"))

    with pytest.raises(QueryTimeout) as excinfo:
        await q.first()

    assert clock.sleeps == []
    assert dom.lookup_count == 2
    assert excinfo.value.diagnostics.ticks == 1


@pytest.mark.asyncio
async def test_timeout_carries_branch_diagnostics(dom, timing) -> None:
    dom.add("button", text="Save", enabled=False)
    q = (
        query(dom, By.tag("button"), poll=PollConfig.with_timeout(200, 100), timing=timing)
        .and_enabled()
        .label("save button")
        .or_(By.id("fallback"))
        .desc("save control")
    )

    with pytest.raises(QueryTimeout) as excinfo:
        await q.first()

    diagnostics = excinfo.value.diagnostics
    assert diagnostics.branches == ("save button {enabled}", "id=fallback")
    assert diagnostics.ticks == 3
    assert diagnostics.elapsed_ms == 200
    assert diagnostics.last_seen[0].raw_count == 1
    assert diagnostics.last_seen[0].matched_count == 0
    assert "'save control'" in str(excinfo.value)


@pytest.mark.asyncio
async def test_first_opt_returns_none_on_deadline(dom, timing) -> None:
    assert await query(dom, By.id("gone"), poll=PollConfig.no_wait(), timing=timing).first_opt() is None


@pytest.mark.asyncio
async def test_all_unions_branches_in_order_without_duplicates(dom, timing) -> None:
    a = dom.add("li", classes=("x",), text="a")
    b = dom.add("li", text="b")
    c = dom.add("p", classes=("x",), text="c")

    found = await query(dom, By.class_name("x"), poll=PollConfig.no_wait(), timing=timing).or_(By.tag("li")).all()

    assert [h.ref for h in found] == [a, c, b]


@pytest.mark.asyncio
async def test_all_empty_and_all_required(dom, timing) -> None:
    assert await query(dom, By.tag("li"), poll=PollConfig.no_wait(), timing=timing).all() == []

    with pytest.raises(NotFound) as excinfo:
        await query(dom, By.tag("li"), poll=PollConfig.no_wait(), timing=timing).desc("list item").all_required()
    assert excinfo.value.selectors == ("tag=li",)
    assert "'list item' element(s) not found" in str(excinfo.value)


@pytest.mark.asyncio
async def test_all_from_selector_returns_first_matching_branch_only(dom, timing) -> None:
    dom.add("li")
    dom.add("li")
    dom.add("p")

    found = await query(dom, By.tag("ol"), poll=PollConfig.no_wait(), timing=timing).or_(By.tag("li")).or_(By.tag("p")).all_from_selector()

    assert len(found) == 2
    assert all(h.ref.tag == "li" for h in found)


@pytest.mark.asyncio
async def test_single(dom, timing) -> None:
    dom.add("h1", text="Title")
    dom.add("li")
    dom.add("li")

    assert (await query(dom, By.tag("h1"), poll=PollConfig.no_wait(), timing=timing).single()).ref.text == "Title"
    with pytest.raises(AmbiguousMatch) as excinfo:
        await query(dom, By.tag("li"), poll=PollConfig.no_wait(), timing=timing).single()
    assert excinfo.value.count == 2
    with pytest.raises(NotFound):
        await query(dom, By.tag("table"), poll=PollConfig.no_wait(), timing=timing).single()


@pytest.mark.asyncio
async def test_exists_and_not_exists(dom, clock, timing) -> None:
    spinner = dom.add("div", classes=("spinner",))
    dom.at(300, lambda: dom.remove(spinner))
    poll = PollConfig.with_timeout(1_000, 100)

    assert await query(dom, By.css(".spinner"), poll=poll, timing=timing).exists() is True
    assert await query(dom, By.css(".spinner"), poll=poll, timing=timing).not_exists() is True
    assert clock.now == pytest.approx(0.3)
    assert await query(dom, By.css(".spinner"), poll=PollConfig.no_wait(), timing=timing).exists() is False


@pytest.mark.asyncio
async def test_branch_rejecting_everything_only_fails_at_deadline(dom, clock, timing) -> None:
    dom.add("li", text="a")
    q = query(dom, By.tag("li"), poll=PollConfig.with_timeout(300, 100), timing=timing).with_filter(
        predicates.custom(lambda h: False)
    )

    with pytest.raises(QueryTimeout):
        await q.first()
    assert dom.lookup_count == 4


@pytest.mark.asyncio
async def test_filters_attach_to_latest_branch(dom, timing) -> None:
    dom.add("a", text="Home", attributes={"href": "/"})
    dom.add("a", text="Docs", attributes={"href": "/docs"})

    element = await (
        query(dom, By.css("nav a"), poll=PollConfig.no_wait(), timing=timing)
        .or_(By.tag("a"))
        .with_attribute("href", "/docs")
        .first()
    )

    assert element.ref.text == "Docs"


@pytest.mark.asyncio
async def test_wait_for_visible_adds_displayed_filter(dom, timing) -> None:
    dom.add("div", id="panel", displayed=False)
    poll = PollConfig.no_wait().with_overrides(wait_for_visible=True)

    assert await query(dom, By.id("panel"), poll=poll, timing=timing).first_opt() is None
    assert await query(dom, By.id("panel"), poll=PollConfig.no_wait(), timing=timing).first_opt() is not None


@pytest.mark.asyncio
async def test_transport_failure_aborts_polling(dom, clock, timing) -> None:
    dom.at(100, lambda: dom.fail_next("browser went away"))

    with pytest.raises(TransportFailure):
        await query(dom, By.id("never"), poll=PollConfig.with_timeout(1_000, 50), timing=timing).first()
    assert clock.now == pytest.approx(0.1)


@pytest.mark.asyncio
async def test_default_poll_config_is_used_and_not_mutated(dom, clock, timing) -> None:
    default = PollConfig(timeout_ms=100, interval_ms=50)
    set_default_poll_config(default)

    q = query(dom, By.id("x"), timing=timing)
    assert q.poll_config is default
    q.wait(1_000, 10)

    assert q.poll_config.timeout_ms == 1_000
    assert default.timeout_ms == 100
    assert await query(dom, By.id("x"), timing=timing).first_opt() is None
    assert clock.now == pytest.approx(0.1)


@pytest.mark.asyncio
async def test_scoped_query_only_searches_below_scope(dom, timing) -> None:
    left = dom.add("div")
    right = dom.add("div")
    dom.add("span", left, text="left")
    dom.add("span", right, text="right")

    found = await query(dom, By.tag("span"), scope=dom.handle(right), poll=PollConfig.no_wait(), timing=timing).all()

    assert [h.ref.text for h in found] == ["right"]


@pytest.mark.asyncio
async def test_observe_reports_stale_scope(dom, timing) -> None:
    form = dom.add("form")
    dom.add("input", form)
    scope = dom.handle(form)
    dom.remove(form)

    elements, diagnostics = await query(dom, By.tag("input"), scope=scope, poll=PollConfig.no_wait(), timing=timing).observe()

    assert elements == []
    assert diagnostics.ticks == 1
    assert [seen.lookup_stale for seen in diagnostics.last_seen] == [True]
