from __future__ import annotations

import inspect
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Iterable, Mapping, Union

from pollwright.core.contracts import ElementHandle, Needle, PredicateKind, PredicateSpec
from pollwright.core.driver import ElementDriver

CustomCheck = Callable[[ElementHandle], Union[bool, Awaitable[bool]]]


@dataclass(frozen=True)
class Predicate:
    """A named boolean test over one element handle.

    At most one of ``spec``, ``check`` or ``parts`` is set: a built-in test
    evaluated by the driver, a user-supplied function, or a composition of
    other predicates (``all``/``any`` according to ``combinator``). Nothing
    here retries. ``StaleElement`` and ``TransportFailure`` propagate to the
    polling engine.
    """

    name: str
    spec: PredicateSpec | None = None
    check: CustomCheck | None = None
    parts: tuple["Predicate", ...] = ()
    combinator: str = "all"
    negate: bool = False

    async def evaluate(self, driver: ElementDriver, handle: ElementHandle) -> bool:
        result = await self._evaluate_raw(driver, handle)
        return not result if self.negate else result

    async def _evaluate_raw(self, driver: ElementDriver, handle: ElementHandle) -> bool:
        if self.check is not None:
            value = self.check(handle)
            if inspect.isawaitable(value):
                value = await value
            return bool(value)

        if self.spec is not None:
            if self.spec.kind == PredicateKind.ATTACHED:
                return await driver.probe_attached(handle)
            return bool(await driver.evaluate_predicate(handle, self.spec))

        # Composition: an empty conjunction holds, an empty disjunction does not.
        if self.combinator == "any":
            for part in self.parts:
                if await part.evaluate(driver, handle):
                    return True
            return False
        for part in self.parts:
            if not await part.evaluate(driver, handle):
                return False
        return True

    def __invert__(self) -> "Predicate":
        return replace(self, name=_negated_name(self.name), negate=not self.negate)

    def __str__(self) -> str:
        return self.name


def _negated_name(name: str) -> str:
    if name.startswith("not "):
        return name[4:]
    return f"not {name}"


def _builtin(kind: PredicateKind, name: str, *args: Any, negate: bool = False) -> Predicate:
    return Predicate(name=name, spec=PredicateSpec(kind=kind, args=args), negate=negate)


def _needle_repr(needle: Needle) -> str:
    if isinstance(needle, str):
        return repr(needle)
    pattern = getattr(needle, "pattern", None)
    if pattern is not None:
        return f"/{pattern}/"
    return getattr(needle, "__name__", "<callable>")


def custom(check: CustomCheck, name: str | None = None) -> Predicate:
    return Predicate(name=name or getattr(check, "__name__", "custom"), check=check)


def all_of(*predicates: Predicate, name: str | None = None) -> Predicate:
    return Predicate(
        name=name or " and ".join(str(p) for p in predicates),
        parts=tuple(predicates),
        combinator="all",
    )


def any_of(*predicates: Predicate, name: str | None = None) -> Predicate:
    return Predicate(
        name=name or " or ".join(str(p) for p in predicates),
        parts=tuple(predicates),
        combinator="any",
    )


def attached() -> Predicate:
    return _builtin(PredicateKind.ATTACHED, "attached")


def detached() -> Predicate:
    return _builtin(PredicateKind.ATTACHED, "not attached", negate=True)


def displayed() -> Predicate:
    return _builtin(PredicateKind.DISPLAYED, "displayed")


def not_displayed() -> Predicate:
    return _builtin(PredicateKind.DISPLAYED, "not displayed", negate=True)


def enabled() -> Predicate:
    return _builtin(PredicateKind.ENABLED, "enabled")


def not_enabled() -> Predicate:
    return _builtin(PredicateKind.ENABLED, "not enabled", negate=True)


def selected() -> Predicate:
    return _builtin(PredicateKind.SELECTED, "selected")


def not_selected() -> Predicate:
    return _builtin(PredicateKind.SELECTED, "not selected", negate=True)


def clickable() -> Predicate:
    return _builtin(PredicateKind.CLICKABLE, "clickable")


def not_clickable() -> Predicate:
    return _builtin(PredicateKind.CLICKABLE, "not clickable", negate=True)


def has_text(needle: Needle) -> Predicate:
    return _builtin(PredicateKind.TEXT, f"text={_needle_repr(needle)}", needle)


def lacks_text(needle: Needle) -> Predicate:
    return ~has_text(needle)


def has_class(needle: Needle) -> Predicate:
    return _builtin(PredicateKind.CLASS, f"class={_needle_repr(needle)}", needle)


def lacks_class(needle: Needle) -> Predicate:
    return ~has_class(needle)


def has_id(needle: Needle) -> Predicate:
    return _builtin(PredicateKind.ID, f"id={_needle_repr(needle)}", needle)


def lacks_id(needle: Needle) -> Predicate:
    return ~has_id(needle)


def has_tag(needle: Needle) -> Predicate:
    return _builtin(PredicateKind.TAG, f"tag={_needle_repr(needle)}", needle)


def lacks_tag(needle: Needle) -> Predicate:
    return ~has_tag(needle)


def has_value(needle: Needle) -> Predicate:
    return _builtin(PredicateKind.VALUE, f"value={_needle_repr(needle)}", needle)


def lacks_value(needle: Needle) -> Predicate:
    return ~has_value(needle)


def has_attribute(attribute: str, needle: Needle) -> Predicate:
    return _builtin(PredicateKind.ATTRIBUTE, f"@{attribute}={_needle_repr(needle)}", attribute, needle)


def lacks_attribute(attribute: str, needle: Needle) -> Predicate:
    return ~has_attribute(attribute, needle)


def has_attributes(attributes: Mapping[str, Needle] | Iterable[tuple[str, Needle]]) -> Predicate:
    items = attributes.items() if isinstance(attributes, Mapping) else attributes
    return all_of(*(has_attribute(name, needle) for name, needle in items))


def lacks_attributes(attributes: Mapping[str, Needle] | Iterable[tuple[str, Needle]]) -> Predicate:
    items = attributes.items() if isinstance(attributes, Mapping) else attributes
    return all_of(*(lacks_attribute(name, needle) for name, needle in items))


def has_property(prop: str, needle: Needle) -> Predicate:
    return _builtin(PredicateKind.PROPERTY, f".{prop}={_needle_repr(needle)}", prop, needle)


def lacks_property(prop: str, needle: Needle) -> Predicate:
    return ~has_property(prop, needle)
