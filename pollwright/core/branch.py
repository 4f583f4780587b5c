from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from pollwright.core.contracts import ElementHandle, Locator
from pollwright.core.driver import ElementDriver
from pollwright.core.errors import BranchObservation, NotFound, StaleElement
from pollwright.core.predicates import Predicate

logger = logging.getLogger("pollwright.query")


@dataclass(frozen=True)
class SelectorBranch:
    locator: Locator
    filters: tuple[Predicate, ...] = ()
    label: str | None = None

    def with_filter(self, predicate: Predicate) -> "SelectorBranch":
        return replace(self, filters=self.filters + (predicate,))

    def with_label(self, label: str | None) -> "SelectorBranch":
        return replace(self, label=label)

    def describe(self) -> str:
        text = self.label or str(self.locator)
        if self.filters:
            text += " {" + ", ".join(str(f) for f in self.filters) + "}"
        return text


@dataclass(frozen=True)
class BranchResult:
    branch: SelectorBranch
    elements: tuple[ElementHandle, ...]
    raw_count: int
    stale_count: int = 0
    lookup_stale: bool = False

    def observation(self) -> BranchObservation:
        return BranchObservation(
            branch=self.branch.describe(),
            raw_count=self.raw_count,
            matched_count=len(self.elements),
            stale_count=self.stale_count,
            lookup_stale=self.lookup_stale,
        )


async def _passes(driver: ElementDriver, filters: tuple[Predicate, ...], handle: ElementHandle) -> bool:
    for predicate in filters:
        if not await predicate.evaluate(driver, handle):
            return False
    return True


async def evaluate_branch(
    driver: ElementDriver,
    branch: SelectorBranch,
    scope: ElementHandle | None = None,
) -> BranchResult:
    """Look up one branch and keep the candidates that pass every filter.

    Filters run left to right per candidate and stop at the first false. A
    candidate whose node goes stale mid-check is dropped, and so is every
    candidate of a lookup whose scope went stale. ``TransportFailure`` is
    not caught.
    """
    try:
        candidates = await driver.lookup(branch.locator, scope)
    except NotFound:
        candidates = []
    except StaleElement:
        logger.debug("Scope went stale while looking up %s", branch.describe())
        return BranchResult(branch=branch, elements=(), raw_count=0, lookup_stale=True)

    matched: list[ElementHandle] = []
    stale = 0
    for handle in candidates:
        try:
            if await _passes(driver, branch.filters, handle):
                matched.append(handle)
        except StaleElement:
            stale += 1

    return BranchResult(branch=branch, elements=tuple(matched), raw_count=len(candidates), stale_count=stale)


async def lookup_all(
    driver: ElementDriver,
    branch: SelectorBranch,
    scope: ElementHandle | None = None,
) -> list[ElementHandle]:
    result = await evaluate_branch(driver, branch, scope)
    return list(result.elements)
