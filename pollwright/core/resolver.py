from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Generic, Optional, Sequence, TypeVar

from pollwright.core import predicates
from pollwright.core.branch import SelectorBranch
from pollwright.core.contracts import Cardinality, ElementHandle, PollConfig
from pollwright.core.driver import ElementDriver
from pollwright.core.errors import AmbiguousMatch, NotFound, StaleElement
from pollwright.core.poller import Timing
from pollwright.core.query import ElementQuery

logger = logging.getLogger("pollwright.resolver")

T = TypeVar("T")

ElementFactory = Callable[[ElementDriver, ElementHandle], Any]


def raw_handle(driver: ElementDriver, handle: ElementHandle) -> ElementHandle:
    return handle


class ResolverState(str, Enum):
    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"


class ElementResolver(Generic[T]):
    """Lazily resolves one slot below a base element and caches the result.

    ``resolve()`` runs the branches once on first use. Later calls probe
    every cached handle; if any has gone stale the whole slot is dropped and
    resolved again exactly once. Members of a collection are never patched
    one at a time.
    """

    def __init__(
        self,
        driver: ElementDriver,
        base: ElementHandle,
        branches: Sequence[SelectorBranch],
        cardinality: Cardinality = Cardinality.SINGLE,
        allow_empty: bool = False,
        factory: ElementFactory | None = None,
        poll: PollConfig | None = None,
        present_retries: int = 1,
        description: str = "",
        timing: Timing | None = None,
    ) -> None:
        if not branches:
            raise ValueError("ElementResolver requires at least one branch")
        if present_retries < 0:
            raise ValueError("present_retries must be >= 0")
        self._driver = driver
        self._base = base
        self._branches = tuple(branches)
        self._cardinality = cardinality
        self._allow_empty = allow_empty
        self._factory = factory or raw_handle
        self._poll = poll
        self._present_retries = present_retries
        self._description = description
        self._timing = timing
        self._state = ResolverState.UNRESOLVED
        self._handles: tuple[ElementHandle, ...] = ()
        self._value: Any = None

    @property
    def state(self) -> ResolverState:
        return self._state

    @property
    def base(self) -> ElementHandle:
        return self._base

    @property
    def cardinality(self) -> Cardinality:
        return self._cardinality

    @property
    def cached(self) -> Optional[T]:
        if self._state == ResolverState.UNRESOLVED:
            return None
        return self._value

    @property
    def handles(self) -> tuple[ElementHandle, ...]:
        return self._handles

    def invalidate(self) -> None:
        self._state = ResolverState.UNRESOLVED
        self._handles = ()
        self._value = None

    def _query(self) -> ElementQuery:
        # Without an explicit poll config resolution is a single attempt.
        poll = self._poll or PollConfig.no_wait()
        query = ElementQuery(self._driver, self._branches[0], scope=self._base, poll=poll, timing=self._timing)
        for branch in self._branches[1:]:
            query.or_(branch)
        return query.desc(self._description)

    def _selectors(self) -> tuple[str, ...]:
        return tuple(branch.describe() for branch in self._branches)

    def _not_found(self, scope_stale: bool = False) -> NotFound:
        return NotFound(self._selectors(), self._description, scope_stale=scope_stale)

    def _shape(self, handles: list[ElementHandle], scope_stale: bool = False) -> tuple[tuple[ElementHandle, ...], Any]:
        if self._cardinality == Cardinality.MANY:
            if not handles and not self._allow_empty:
                raise self._not_found(scope_stale)
            return tuple(handles), [self._factory(self._driver, handle) for handle in handles]

        if not handles:
            if self._cardinality == Cardinality.OPTIONAL:
                return (), None
            raise self._not_found(scope_stale)

        if self._cardinality == Cardinality.SINGLE and len(handles) > 1:
            raise AmbiguousMatch(self._selectors(), self._description, len(handles))

        first = handles[0]
        return (first,), self._factory(self._driver, first)

    async def _resolve_fresh(self) -> T:
        handles, diagnostics = await self._query().observe()
        scope_stale = any(seen.lookup_stale for seen in diagnostics.last_seen)
        self._handles, self._value = self._shape(handles, scope_stale)
        self._state = ResolverState.RESOLVED
        logger.debug("Resolved %s to %d handle(s)", self._label(), len(self._handles))
        return self._value

    def _label(self) -> str:
        return self._description or ", ".join(branch.describe() for branch in self._branches)

    async def validate(self) -> bool:
        """Probe every cached handle. Drops the cache and returns False if any is stale."""
        if self._state == ResolverState.UNRESOLVED:
            return False
        for handle in self._handles:
            if not await self._driver.probe_attached(handle):
                logger.debug("Cached handle %s for %s is stale", handle.element_id, self._label())
                self.invalidate()
                return False
        return True

    async def resolve(self) -> T:
        if self._state == ResolverState.RESOLVED:
            if await self.validate():
                return self._value
            logger.warning("Re-resolving %s after its cached element went stale", self._label())
        return await self._resolve_fresh()

    async def requery(self) -> Optional[T]:
        self.invalidate()
        try:
            return await self.resolve()
        except NotFound:
            return None

    async def _present(self) -> bool:
        if not self._handles:
            # An allowed-empty collection is vacuously present; an absent optional is not.
            return self._cardinality == Cardinality.MANY
        require_visible = self._poll is not None and self._poll.wait_for_visible
        visible = predicates.displayed()
        for handle in self._handles:
            if not await self._driver.probe_attached(handle):
                return False
            if require_visible:
                try:
                    if not await visible.evaluate(self._driver, handle):
                        return False
                except StaleElement:
                    return False
        return True

    async def resolve_present(self) -> T:
        """Resolve and insist the result is attached, re-resolving up to ``present_retries`` times.

        Raises ``NotFound`` if the last attempt found nothing and
        ``StaleElement`` if it found something that was already gone.
        """
        attempts = 0
        while True:
            try:
                value = await self.resolve()
            except NotFound:
                if attempts >= self._present_retries:
                    raise
                attempts += 1
                self.invalidate()
                continue

            if await self._present():
                return value

            if attempts >= self._present_retries:
                self.invalidate()
                if self._cardinality == Cardinality.OPTIONAL and value is None:
                    raise self._not_found()
                raise StaleElement(detail=f"{self._label()} still not present after {attempts} re-resolution(s)")
            attempts += 1
            logger.debug("Resolved %s is not present; re-resolving (attempt %d)", self._label(), attempts)
            self.invalidate()

    def __repr__(self) -> str:
        return (
            f"ElementResolver(base={self._base.element_id!r}, cardinality={self._cardinality.value}, "
            f"state={self._state.value}, handles={[h.element_id for h in self._handles]!r})"
        )
