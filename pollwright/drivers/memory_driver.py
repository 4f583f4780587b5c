from __future__ import annotations

import itertools
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

from pollwright.core.contracts import (
    ElementHandle,
    Locator,
    PredicateKind,
    PredicateSpec,
    Strategy,
    match_class,
    match_needle,
)
from pollwright.core.errors import StaleElement, TransportFailure

logger = logging.getLogger("pollwright.driver.memory")

_COMPOUND = re.compile(r"^(?P<tag>[a-zA-Z][\w-]*|\*)?(?P<rest>.*)$")
_SIMPLE = re.compile(r"#(?P<id>[\w-]+)|\.(?P<cls>[\w-]+)|\[(?P<attr>[\w-]+)(?:=(?P<quote>[\"']?)(?P<value>[^\"'\]]*)(?P=quote))?\]")


@dataclass(eq=False)
class MemoryNode:
    node_id: str
    tag: str
    attributes: dict[str, str] = field(default_factory=dict)
    text: str = ""
    displayed: bool = True
    enabled: bool = True
    selected: bool = False
    properties: dict[str, Any] = field(default_factory=dict)
    children: list["MemoryNode"] = field(default_factory=list)
    parent: "MemoryNode | None" = field(default=None, repr=False)

    @property
    def classes(self) -> list[str]:
        return self.attributes.get("class", "").split()

    def descendants(self) -> Iterator["MemoryNode"]:
        for child in self.children:
            yield child
            yield from child.descendants()

    def ancestors(self) -> Iterator["MemoryNode"]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent


@dataclass
class _Compound:
    tag: str | None
    ids: list[str]
    classes: list[str]
    attributes: list[tuple[str, str | None]]

    def matches(self, node: MemoryNode) -> bool:
        if self.tag and self.tag != "*" and node.tag != self.tag.lower():
            return False
        if any(node.attributes.get("id") != value for value in self.ids):
            return False
        if any(cls not in node.classes for cls in self.classes):
            return False
        for name, value in self.attributes:
            if name not in node.attributes:
                return False
            if value is not None and node.attributes[name] != value:
                return False
        return True


def _parse_compound(text: str) -> _Compound:
    head = _COMPOUND.match(text)
    if head is None:
        raise TransportFailure(f"invalid selector: {text}")
    compound = _Compound(tag=head.group("tag"), ids=[], classes=[], attributes=[])
    rest = head.group("rest")
    position = 0
    for match in _SIMPLE.finditer(rest):
        if match.start() != position:
            raise TransportFailure(f"invalid selector: {text}")
        position = match.end()
        if match.group("id"):
            compound.ids.append(match.group("id"))
        elif match.group("cls"):
            compound.classes.append(match.group("cls"))
        else:
            compound.attributes.append((match.group("attr"), match.group("value")))
    if position != len(rest):
        raise TransportFailure(f"invalid selector: {text}")
    return compound


def _css_matcher(selector: str) -> Callable[[MemoryNode], bool]:
    """Supports compound selectors, descendant combinators and selector lists."""
    groups = []
    for group in selector.split(","):
        parts = [_parse_compound(part) for part in group.split()]
        if not parts:
            raise TransportFailure(f"invalid selector: {selector}")
        groups.append(parts)

    def matches_group(node: MemoryNode, parts: list[_Compound]) -> bool:
        if not parts[-1].matches(node):
            return False
        remaining = parts[:-1]
        for ancestor in node.ancestors():
            if not remaining:
                break
            if remaining[-1].matches(ancestor):
                remaining = remaining[:-1]
        return not remaining

    return lambda node: any(matches_group(node, parts) for parts in groups)


class MemoryDriver:
    """In-memory DOM implementing ElementDriver.

    Counts every remote call, can schedule mutations at a time offset from
    its creation (read from ``clock``), and can be told to fail the next
    call with ``TransportFailure``.
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self._clock = clock or time.monotonic
        self._origin = self._clock()
        self._ids = itertools.count(1)
        self._scheduled: list[tuple[float, int, Callable[[], None]]] = []
        self._sequence = itertools.count()
        self._failure: TransportFailure | None = None
        self.root = MemoryNode(node_id="root", tag="html")
        self.lookups: list[tuple[Locator, str | None]] = []
        self.probes = 0
        self.evaluations = 0

    @property
    def lookup_count(self) -> int:
        return len(self.lookups)

    # DOM construction and mutation

    def add(
        self,
        tag: str,
        parent: MemoryNode | None = None,
        *,
        id: str | None = None,
        classes: tuple[str, ...] | list[str] = (),
        text: str = "",
        attributes: dict[str, str] | None = None,
        displayed: bool = True,
        enabled: bool = True,
        selected: bool = False,
        value: str | None = None,
        properties: dict[str, Any] | None = None,
    ) -> MemoryNode:
        parent = parent or self.root
        attrs = dict(attributes or {})
        if id is not None:
            attrs["id"] = id
        if classes:
            attrs["class"] = " ".join(classes)
        props = dict(properties or {})
        if value is not None:
            props["value"] = value
        node = MemoryNode(
            node_id=f"node-{next(self._ids)}",
            tag=tag.lower(),
            attributes=attrs,
            text=text,
            displayed=displayed,
            enabled=enabled,
            selected=selected,
            properties=props,
            parent=parent,
        )
        parent.children.append(node)
        return node

    def remove(self, node: MemoryNode) -> None:
        if node.parent is not None:
            node.parent.children.remove(node)
            node.parent = None

    def _clone(self, node: MemoryNode, parent: MemoryNode | None) -> MemoryNode:
        clone = MemoryNode(
            node_id=f"node-{next(self._ids)}",
            tag=node.tag,
            attributes=dict(node.attributes),
            text=node.text,
            displayed=node.displayed,
            enabled=node.enabled,
            selected=node.selected,
            properties=dict(node.properties),
            parent=parent,
        )
        clone.children = [self._clone(child, clone) for child in node.children]
        return clone

    def replace(self, node: MemoryNode) -> MemoryNode:
        """Swap ``node`` for a fresh copy of its subtree, as a re-render would."""
        parent = node.parent
        if parent is None:
            raise ValueError(f"{node.node_id} is not attached")
        clone = self._clone(node, parent)
        parent.children[parent.children.index(node)] = clone
        node.parent = None
        return clone

    def at(self, offset_ms: int, action: Callable[[], Any]) -> None:
        """Run ``action`` before the first remote call made ``offset_ms`` after creation."""
        self._scheduled.append((offset_ms / 1000.0, next(self._sequence), action))
        self._scheduled.sort(key=lambda item: (item[0], item[1]))

    def fail_next(self, message: str = "connection reset") -> None:
        self._failure = TransportFailure(message)

    def handle(self, node: MemoryNode) -> ElementHandle:
        return ElementHandle(element_id=node.node_id, ref=node)

    def is_connected(self, node: MemoryNode) -> bool:
        if node is self.root:
            return True
        return any(ancestor is self.root for ancestor in node.ancestors())

    # ElementDriver

    def _before_call(self) -> None:
        elapsed = self._clock() - self._origin
        while self._scheduled and self._scheduled[0][0] <= elapsed:
            _, _, action = self._scheduled.pop(0)
            action()
        if self._failure is not None:
            failure, self._failure = self._failure, None
            raise failure

    def _node(self, handle: ElementHandle) -> MemoryNode:
        node = handle.ref
        if not isinstance(node, MemoryNode) or not self.is_connected(node):
            raise StaleElement(handle.element_id)
        return node

    def _matcher(self, locator: Locator) -> Callable[[MemoryNode], bool]:
        value = locator.value
        strategy = locator.strategy
        if strategy == Strategy.ID:
            return lambda node: node.attributes.get("id") == value
        if strategy == Strategy.NAME:
            return lambda node: node.attributes.get("name") == value
        if strategy == Strategy.TAG:
            return lambda node: node.tag == value.lower()
        if strategy == Strategy.CLASS_NAME:
            return lambda node: value in node.classes
        if strategy == Strategy.LINK_TEXT:
            return lambda node: node.tag == "a" and node.text == value
        if strategy == Strategy.PARTIAL_LINK_TEXT:
            return lambda node: node.tag == "a" and value in node.text
        if strategy == Strategy.CSS:
            return _css_matcher(value)
        raise TransportFailure(f"MemoryDriver does not support {strategy.value} locators")

    async def lookup(self, locator: Locator, scope: ElementHandle | None = None) -> list[ElementHandle]:
        self.lookups.append((locator, scope.element_id if scope else None))
        self._before_call()
        root = self._node(scope) if scope is not None else self.root
        matcher = self._matcher(locator)
        found = [self.handle(node) for node in root.descendants() if matcher(node)]
        logger.debug("lookup %s under %s -> %d", locator, root.node_id, len(found))
        return found

    async def probe_attached(self, handle: ElementHandle) -> bool:
        self.probes += 1
        self._before_call()
        node = handle.ref
        return isinstance(node, MemoryNode) and self.is_connected(node)

    async def evaluate_predicate(self, handle: ElementHandle, spec: PredicateSpec) -> bool:
        self.evaluations += 1
        self._before_call()
        node = self._node(handle)
        kind = spec.kind
        if kind == PredicateKind.ATTACHED:
            return True
        if kind == PredicateKind.DISPLAYED:
            return self._displayed(node)
        if kind == PredicateKind.ENABLED:
            return node.enabled
        if kind == PredicateKind.SELECTED:
            return node.selected
        if kind == PredicateKind.CLICKABLE:
            return self._displayed(node) and node.enabled
        if kind == PredicateKind.TEXT:
            return match_needle(spec.args[0], node.text)
        if kind == PredicateKind.TAG:
            return match_needle(spec.args[0], node.tag)
        if kind == PredicateKind.CLASS:
            class_attr = node.attributes.get("class")
            return class_attr is not None and match_class(spec.args[0], class_attr)
        if kind == PredicateKind.ID:
            element_id = node.attributes.get("id")
            return element_id is not None and match_needle(spec.args[0], element_id)
        if kind == PredicateKind.VALUE:
            value = node.properties.get("value", node.attributes.get("value"))
            return value is not None and match_needle(spec.args[0], str(value))
        if kind == PredicateKind.ATTRIBUTE:
            name, needle = spec.args
            attribute = node.attributes.get(name)
            return attribute is not None and match_needle(needle, attribute)
        if kind == PredicateKind.PROPERTY:
            name, needle = spec.args
            prop = node.properties.get(name)
            return prop is not None and match_needle(needle, str(prop))
        raise ValueError(f"Unsupported predicate kind: {kind}")

    def _displayed(self, node: MemoryNode) -> bool:
        return node.displayed and all(ancestor.displayed for ancestor in node.ancestors())
