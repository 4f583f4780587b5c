from __future__ import annotations

import logging
from typing import Optional

from pollwright.core import predicates
from pollwright.core.branch import BranchResult, SelectorBranch, evaluate_branch
from pollwright.core.config import get_default_poll_config
from pollwright.core.contracts import ElementHandle, Locator, Needle, PollConfig
from pollwright.core.driver import ElementDriver
from pollwright.core.errors import AmbiguousMatch, NotFound, QueryDiagnostics, QueryTimeout
from pollwright.core.poller import PollTicker, Timing
from pollwright.core.predicates import Predicate

logger = logging.getLogger("pollwright.query")


class ElementQuery:
    """Builder and polling engine for element lookups.

    Branches are OR'd and evaluated one after another in declaration order on
    every tick, so the winner of ``first()`` is always the earliest declared
    branch that matched. Filters attach to the most recently added branch.
    """

    def __init__(
        self,
        driver: ElementDriver,
        locator: Locator | SelectorBranch,
        scope: ElementHandle | None = None,
        poll: PollConfig | None = None,
        timing: Timing | None = None,
    ) -> None:
        self._driver = driver
        self._scope = scope
        self._poll = poll
        self._timing = timing
        self._description = ""
        self._branches: list[SelectorBranch] = [_as_branch(locator)]

    @property
    def branches(self) -> tuple[SelectorBranch, ...]:
        return tuple(self._branches)

    @property
    def poll_config(self) -> PollConfig:
        return self._poll or get_default_poll_config()

    def or_(self, locator: Locator | SelectorBranch) -> "ElementQuery":
        self._branches.append(_as_branch(locator))
        return self

    def desc(self, description: str) -> "ElementQuery":
        self._description = description
        return self

    def label(self, label: str) -> "ElementQuery":
        self._branches[-1] = self._branches[-1].with_label(label)
        return self

    def with_poll(self, config: PollConfig) -> "ElementQuery":
        self._poll = config
        return self

    def wait(self, timeout_ms: int, interval_ms: int) -> "ElementQuery":
        return self.with_poll(self.poll_config.with_overrides(timeout_ms=timeout_ms, interval_ms=interval_ms, min_tries=0))

    def nowait(self) -> "ElementQuery":
        return self.with_poll(self.poll_config.with_overrides(timeout_ms=0, interval_ms=0, min_tries=0))

    def with_filter(self, predicate: Predicate) -> "ElementQuery":
        self._branches[-1] = self._branches[-1].with_filter(predicate)
        return self

    # Filters

    def and_displayed(self) -> "ElementQuery":
        return self.with_filter(predicates.displayed())

    def and_not_displayed(self) -> "ElementQuery":
        return self.with_filter(predicates.not_displayed())

    def and_enabled(self) -> "ElementQuery":
        return self.with_filter(predicates.enabled())

    def and_not_enabled(self) -> "ElementQuery":
        return self.with_filter(predicates.not_enabled())

    def and_selected(self) -> "ElementQuery":
        return self.with_filter(predicates.selected())

    def and_not_selected(self) -> "ElementQuery":
        return self.with_filter(predicates.not_selected())

    def and_clickable(self) -> "ElementQuery":
        return self.with_filter(predicates.clickable())

    def and_not_clickable(self) -> "ElementQuery":
        return self.with_filter(predicates.not_clickable())

    def with_text(self, needle: Needle) -> "ElementQuery":
        return self.with_filter(predicates.has_text(needle))

    def without_text(self, needle: Needle) -> "ElementQuery":
        return self.with_filter(predicates.lacks_text(needle))

    def with_class(self, needle: Needle) -> "ElementQuery":
        return self.with_filter(predicates.has_class(needle))

    def without_class(self, needle: Needle) -> "ElementQuery":
        return self.with_filter(predicates.lacks_class(needle))

    def with_id(self, needle: Needle) -> "ElementQuery":
        return self.with_filter(predicates.has_id(needle))

    def without_id(self, needle: Needle) -> "ElementQuery":
        return self.with_filter(predicates.lacks_id(needle))

    def with_tag(self, needle: Needle) -> "ElementQuery":
        return self.with_filter(predicates.has_tag(needle))

    def without_tag(self, needle: Needle) -> "ElementQuery":
        return self.with_filter(predicates.lacks_tag(needle))

    def with_value(self, needle: Needle) -> "ElementQuery":
        return self.with_filter(predicates.has_value(needle))

    def without_value(self, needle: Needle) -> "ElementQuery":
        return self.with_filter(predicates.lacks_value(needle))

    def with_attribute(self, attribute: str, needle: Needle) -> "ElementQuery":
        return self.with_filter(predicates.has_attribute(attribute, needle))

    def without_attribute(self, attribute: str, needle: Needle) -> "ElementQuery":
        return self.with_filter(predicates.lacks_attribute(attribute, needle))

    def with_attributes(self, attributes) -> "ElementQuery":
        return self.with_filter(predicates.has_attributes(attributes))

    def with_property(self, prop: str, needle: Needle) -> "ElementQuery":
        return self.with_filter(predicates.has_property(prop, needle))

    def without_property(self, prop: str, needle: Needle) -> "ElementQuery":
        return self.with_filter(predicates.lacks_property(prop, needle))

    # Terminals

    async def exists(self) -> bool:
        elements, _ = await self._run(short_circuit=True, stop_on_miss=False)
        return bool(elements)

    async def not_exists(self) -> bool:
        elements, _ = await self._run(short_circuit=False, stop_on_miss=True)
        return not elements

    async def first_opt(self) -> Optional[ElementHandle]:
        elements, _ = await self._run(short_circuit=True, stop_on_miss=False)
        return elements[0] if elements else None

    async def first(self) -> ElementHandle:
        elements, diagnostics = await self._run(short_circuit=True, stop_on_miss=False)
        if not elements:
            raise QueryTimeout(diagnostics)
        return elements[0]

    async def single(self) -> ElementHandle:
        elements, _ = await self._run(short_circuit=False, stop_on_miss=False)
        if len(elements) == 1:
            return elements[0]
        if elements:
            raise AmbiguousMatch(self._selector_names(), self._description, len(elements))
        raise NotFound(self._selector_names(), self._description)

    async def all(self) -> list[ElementHandle]:
        elements, _ = await self._run(short_circuit=False, stop_on_miss=False)
        return elements

    async def all_required(self) -> list[ElementHandle]:
        return self._disallow_empty(await self.all())

    async def all_from_selector(self) -> list[ElementHandle]:
        elements, _ = await self._run(short_circuit=True, stop_on_miss=False)
        return elements

    async def all_from_selector_required(self) -> list[ElementHandle]:
        return self._disallow_empty(await self.all_from_selector())

    async def observe(self) -> tuple[list[ElementHandle], QueryDiagnostics]:
        """Like ``all()`` but also returns what each branch saw on the last tick."""
        return await self._run(short_circuit=False, stop_on_miss=False)

    # Engine

    def _selector_names(self) -> tuple[str, ...]:
        return tuple(branch.describe() for branch in self._branches)

    def _disallow_empty(self, elements: list[ElementHandle]) -> list[ElementHandle]:
        if not elements:
            raise NotFound(self._selector_names(), self._description)
        return elements

    def _effective_branches(self, config: PollConfig) -> list[SelectorBranch]:
        if not config.wait_for_visible:
            return list(self._branches)
        return [branch.with_filter(predicates.displayed()) for branch in self._branches]

    async def _run(self, short_circuit: bool, stop_on_miss: bool) -> tuple[list[ElementHandle], QueryDiagnostics]:
        """Poll every branch each tick until the stop condition holds or the deadline passes.

        With ``short_circuit`` the first branch whose emptiness differs from
        ``stop_on_miss`` ends the loop and its own result is returned.
        Otherwise results are unioned across branches (branch order, then
        document order, duplicates dropped) and the loop ends once the
        union's emptiness equals ``stop_on_miss``.
        """
        config = self.poll_config
        branches = self._effective_branches(config)
        ticker = PollTicker(config, self._timing)
        observations: list[BranchResult] = []

        while True:
            observations = []
            collected: dict[ElementHandle, ElementHandle] = {}
            for branch in branches:
                result = await evaluate_branch(self._driver, branch, self._scope)
                observations.append(result)
                if short_circuit and stop_on_miss == (not result.elements):
                    logger.debug(
                        "Query %s satisfied by %s on tick %d",
                        self._description or self._selector_names(),
                        branch.describe(),
                        ticker.ticks + 1,
                    )
                    return list(result.elements), self._diagnostics(ticker, observations, attempts=ticker.ticks + 1)
                for element in result.elements:
                    collected.setdefault(element, element)

            if stop_on_miss == (not collected):
                return list(collected.values()), self._diagnostics(ticker, observations, attempts=ticker.ticks + 1)

            logger.debug(
                "Query tick %d: %s",
                ticker.ticks + 1,
                ", ".join(item.observation().summary() for item in observations),
            )
            if not await ticker.tick():
                diagnostics = self._diagnostics(ticker, observations, attempts=ticker.ticks)
                logger.debug("Query deadline reached: %s", diagnostics.summary())
                return list(collected.values()), diagnostics

    def _diagnostics(self, ticker: PollTicker, observations: list[BranchResult], attempts: int) -> QueryDiagnostics:
        return QueryDiagnostics(
            branches=self._selector_names(),
            description=self._description,
            ticks=attempts,
            elapsed_ms=ticker.elapsed_ms,
            last_seen=tuple(item.observation() for item in observations),
        )


def _as_branch(locator: Locator | SelectorBranch) -> SelectorBranch:
    if isinstance(locator, SelectorBranch):
        return locator
    return SelectorBranch(locator=locator)


def query(
    driver: ElementDriver,
    locator: Locator | SelectorBranch,
    scope: ElementHandle | None = None,
    poll: PollConfig | None = None,
    timing: Timing | None = None,
) -> ElementQuery:
    return ElementQuery(driver, locator, scope=scope, poll=poll, timing=timing)
