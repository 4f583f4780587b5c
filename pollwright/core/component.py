from __future__ import annotations

from dataclasses import dataclass
from functools import partial
from typing import Any, ClassVar, Optional, Sequence, Type, TypeVar, Union

from pollwright.core.branch import SelectorBranch
from pollwright.core.contracts import Cardinality, ElementHandle, Locator, PollConfig
from pollwright.core.driver import ElementDriver
from pollwright.core.poller import Timing
from pollwright.core.query import ElementQuery
from pollwright.core.resolver import ElementFactory, ElementResolver
from pollwright.core.waiter import ElementWaiter

C = TypeVar("C", bound="Component")

Target = Union[Locator, SelectorBranch]


@dataclass(frozen=True)
class SlotSpec:
    branches: tuple[SelectorBranch, ...]
    cardinality: Cardinality
    allow_empty: bool = False
    poll: Optional[PollConfig] = None
    component: Optional[Type["Component"]] = None
    factory: Optional[ElementFactory] = None
    description: str = ""
    present_retries: int = 1


def _branches(targets: Sequence[Target]) -> tuple[SelectorBranch, ...]:
    if not targets:
        raise ValueError("A slot needs at least one locator or branch")
    return tuple(target if isinstance(target, SelectorBranch) else SelectorBranch(locator=target) for target in targets)


def single(
    *targets: Target,
    poll: PollConfig | None = None,
    component: Type["Component"] | None = None,
    factory: ElementFactory | None = None,
    description: str = "",
    present_retries: int = 1,
) -> SlotSpec:
    return SlotSpec(
        branches=_branches(targets),
        cardinality=Cardinality.SINGLE,
        poll=poll,
        component=component,
        factory=factory,
        description=description,
        present_retries=present_retries,
    )


def first(
    *targets: Target,
    poll: PollConfig | None = None,
    component: Type["Component"] | None = None,
    factory: ElementFactory | None = None,
    description: str = "",
    present_retries: int = 1,
) -> SlotSpec:
    """Like ``single`` but takes the earliest match instead of rejecting duplicates."""
    return SlotSpec(
        branches=_branches(targets),
        cardinality=Cardinality.FIRST,
        poll=poll,
        component=component,
        factory=factory,
        description=description,
        present_retries=present_retries,
    )


def optional(
    *targets: Target,
    poll: PollConfig | None = None,
    component: Type["Component"] | None = None,
    factory: ElementFactory | None = None,
    description: str = "",
    present_retries: int = 1,
) -> SlotSpec:
    return SlotSpec(
        branches=_branches(targets),
        cardinality=Cardinality.OPTIONAL,
        poll=poll,
        component=component,
        factory=factory,
        description=description,
        present_retries=present_retries,
    )


def many(
    *targets: Target,
    allow_empty: bool = False,
    poll: PollConfig | None = None,
    component: Type["Component"] | None = None,
    factory: ElementFactory | None = None,
    description: str = "",
    present_retries: int = 1,
) -> SlotSpec:
    return SlotSpec(
        branches=_branches(targets),
        cardinality=Cardinality.MANY,
        allow_empty=allow_empty,
        poll=poll,
        component=component,
        factory=factory,
        description=description,
        present_retries=present_retries,
    )


def component_factory(cls: Type[C], timing: Timing | None = None) -> ElementFactory:
    """Return a factory wrapping a raw handle into a fresh, unresolved ``cls``."""
    return partial(_build_component, cls, timing)


def _build_component(cls: Type[C], timing: Timing | None, driver: ElementDriver, handle: ElementHandle) -> C:
    return cls(driver, handle, timing=timing)


class Component:
    """Wrapper around one base element with lazily resolved child slots.

    Subclasses declare ``slots`` as a mapping of name to ``SlotSpec``::

        class Row(Component):
            slots = {
                "cells": many(By.tag("td")),
                "link": optional(By.css("a")),
            }

    Each instance gets its own resolvers; nothing is shared between
    instances or slots.
    """

    slots: ClassVar[dict[str, SlotSpec]] = {}

    def __init__(self, driver: ElementDriver, base: ElementHandle, timing: Timing | None = None) -> None:
        self._driver = driver
        self._base = base
        self._timing = timing
        self._resolvers: dict[str, ElementResolver[Any]] = {
            name: self._build_resolver(spec) for name, spec in self.slots.items()
        }

    def _build_resolver(self, spec: SlotSpec) -> ElementResolver[Any]:
        factory = spec.factory
        if spec.component is not None:
            factory = component_factory(spec.component, self._timing)
        return ElementResolver(
            self._driver,
            self._base,
            spec.branches,
            cardinality=spec.cardinality,
            allow_empty=spec.allow_empty,
            factory=factory,
            poll=spec.poll,
            present_retries=spec.present_retries,
            description=spec.description,
            timing=self._timing,
        )

    @property
    def base(self) -> ElementHandle:
        return self._base

    @property
    def driver(self) -> ElementDriver:
        return self._driver

    def resolver(self, name: str) -> ElementResolver[Any]:
        try:
            return self._resolvers[name]
        except KeyError:
            raise KeyError(f"{type(self).__name__} has no slot named '{name}'") from None

    async def get(self, name: str) -> Any:
        return await self.resolver(name).resolve()

    async def get_present(self, name: str) -> Any:
        return await self.resolver(name).resolve_present()

    def query(self, locator: Target, poll: PollConfig | None = None) -> ElementQuery:
        return ElementQuery(self._driver, locator, scope=self._base, poll=poll, timing=self._timing)

    def wait_until(self, poll: PollConfig | None = None) -> ElementWaiter:
        return ElementWaiter(self._driver, self._base, poll=poll, timing=self._timing)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Component):
            return NotImplemented
        return type(self) is type(other) and self._base == other._base

    def __hash__(self) -> int:
        return hash((type(self), self._base))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(base={self._base.element_id!r})"
