from __future__ import annotations

from typing import Protocol, runtime_checkable

from pollwright.core.contracts import ElementHandle, Locator, PredicateSpec


@runtime_checkable
class ElementDriver(Protocol):
    """Remote primitives consumed by the query, wait and resolve engines.

    ``lookup`` returns every match (possibly none) and may raise ``NotFound``,
    which callers treat as an empty result. ``probe_attached`` is a cheap
    staleness check. ``evaluate_predicate`` raises ``StaleElement`` when the
    node is gone. Any of them raise ``TransportFailure`` on connection or
    protocol problems.
    """

    async def lookup(self, locator: Locator, scope: ElementHandle | None = None) -> list[ElementHandle]:
        ...

    async def probe_attached(self, handle: ElementHandle) -> bool:
        ...

    async def evaluate_predicate(self, handle: ElementHandle, spec: PredicateSpec) -> bool:
        ...
