from __future__ import annotations

import logging
from typing import Callable, Iterable, Mapping, Sequence

from pollwright.core import predicates
from pollwright.core.config import get_default_poll_config
from pollwright.core.contracts import ElementHandle, Needle, PollConfig
from pollwright.core.driver import ElementDriver
from pollwright.core.errors import StaleElement, WaitTimeout
from pollwright.core.poller import PollTicker, Timing
from pollwright.core.predicates import Predicate

logger = logging.getLogger("pollwright.waiter")

Combinator = Callable[[Sequence[bool]], bool]


class ElementWaiter:
    """Polls predicates against one bound element until they hold.

    A false result or a stale node just means "not yet"; the next tick
    evaluates again. ``TransportFailure`` is not caught.
    """

    def __init__(
        self,
        driver: ElementDriver,
        element: ElementHandle,
        poll: PollConfig | None = None,
        timing: Timing | None = None,
    ) -> None:
        self._driver = driver
        self._element = element
        self._poll = poll
        self._timing = timing
        self._message = ""

    @property
    def poll_config(self) -> PollConfig:
        return self._poll or get_default_poll_config()

    def error(self, message: str) -> "ElementWaiter":
        self._message = message
        return self

    def with_poll(self, config: PollConfig) -> "ElementWaiter":
        self._poll = config
        return self

    def wait(self, timeout_ms: int, interval_ms: int) -> "ElementWaiter":
        return self.with_poll(self.poll_config.with_overrides(timeout_ms=timeout_ms, interval_ms=interval_ms, min_tries=0))

    async def _evaluate(self, conditions: Sequence[Predicate], combine: Combinator | None) -> tuple[bool, tuple[bool, ...]]:
        results: list[bool] = []
        try:
            for condition in conditions:
                result = await condition.evaluate(self._driver, self._element)
                results.append(result)
                if combine is None and not result:
                    return False, tuple(results)
        except StaleElement:
            logger.debug("Element %s stale while waiting", self._element.element_id)
            return False, tuple(results)

        if combine is None:
            return True, tuple(results)
        return bool(combine(results)), tuple(results)

    async def _run(self, conditions: Sequence[Predicate], combine: Combinator | None = None) -> None:
        ticker = PollTicker(self.poll_config, self._timing)
        while True:
            satisfied, results = await self._evaluate(conditions, combine)
            if satisfied:
                logger.debug("Wait on %s satisfied after %d tick(s)", self._element.element_id, ticker.ticks + 1)
                return
            if not await ticker.tick():
                message = self._message or self._default_message(conditions)
                raise WaitTimeout(message, elapsed_ms=ticker.elapsed_ms, ticks=ticker.ticks, last_results=results)

    def _default_message(self, conditions: Sequence[Predicate]) -> str:
        names = ", ".join(str(condition) for condition in conditions)
        return f"{self._element.element_id} never satisfied [{names}]"

    async def condition(self, predicate: Predicate) -> None:
        await self._run([predicate])

    async def conditions(self, conditions: Iterable[Predicate]) -> None:
        await self._run(list(conditions))

    async def combined(self, conditions: Iterable[Predicate], combine: Combinator) -> None:
        """Evaluate every predicate each tick and pass the results to ``combine``."""
        await self._run(list(conditions), combine)

    async def stale(self) -> None:
        await self.condition(predicates.detached())

    async def displayed(self) -> None:
        await self.condition(predicates.displayed())

    async def not_displayed(self) -> None:
        await self.condition(predicates.not_displayed())

    async def enabled(self) -> None:
        await self.condition(predicates.enabled())

    async def not_enabled(self) -> None:
        await self.condition(predicates.not_enabled())

    async def selected(self) -> None:
        await self.condition(predicates.selected())

    async def not_selected(self) -> None:
        await self.condition(predicates.not_selected())

    async def clickable(self) -> None:
        await self.condition(predicates.clickable())

    async def not_clickable(self) -> None:
        await self.condition(predicates.not_clickable())

    async def has_class(self, needle: Needle) -> None:
        await self.condition(predicates.has_class(needle))

    async def lacks_class(self, needle: Needle) -> None:
        await self.condition(predicates.lacks_class(needle))

    async def has_text(self, needle: Needle) -> None:
        await self.condition(predicates.has_text(needle))

    async def lacks_text(self, needle: Needle) -> None:
        await self.condition(predicates.lacks_text(needle))

    async def has_value(self, needle: Needle) -> None:
        await self.condition(predicates.has_value(needle))

    async def lacks_value(self, needle: Needle) -> None:
        await self.condition(predicates.lacks_value(needle))

    async def has_attribute(self, attribute: str, needle: Needle) -> None:
        await self.condition(predicates.has_attribute(attribute, needle))

    async def lacks_attribute(self, attribute: str, needle: Needle) -> None:
        await self.condition(predicates.lacks_attribute(attribute, needle))

    async def has_attributes(self, attributes: Mapping[str, Needle]) -> None:
        await self.condition(predicates.has_attributes(attributes))

    async def has_property(self, prop: str, needle: Needle) -> None:
        await self.condition(predicates.has_property(prop, needle))

    async def lacks_property(self, prop: str, needle: Needle) -> None:
        await self.condition(predicates.lacks_property(prop, needle))


def wait_until(
    driver: ElementDriver,
    element: ElementHandle,
    poll: PollConfig | None = None,
    timing: Timing | None = None,
) -> ElementWaiter:
    return ElementWaiter(driver, element, poll=poll, timing=timing)
