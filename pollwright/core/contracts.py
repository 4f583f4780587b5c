from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Union

Needle = Union[str, "re.Pattern[str]", Callable[[str], bool]]


class Strategy(str, Enum):
    ID = "id"
    CSS = "css"
    XPATH = "xpath"
    TAG = "tag"
    NAME = "name"
    CLASS_NAME = "class_name"
    LINK_TEXT = "link_text"
    PARTIAL_LINK_TEXT = "partial_link_text"


@dataclass(frozen=True)
class Locator:
    strategy: Strategy
    value: str

    def __str__(self) -> str:
        return f"{self.strategy.value}={self.value}"


class By:
    """Shorthand constructors for locators."""

    @staticmethod
    def id(value: str) -> Locator:
        return Locator(Strategy.ID, value)

    @staticmethod
    def css(value: str) -> Locator:
        return Locator(Strategy.CSS, value)

    @staticmethod
    def xpath(value: str) -> Locator:
        return Locator(Strategy.XPATH, value)

    @staticmethod
    def tag(value: str) -> Locator:
        return Locator(Strategy.TAG, value)

    @staticmethod
    def name(value: str) -> Locator:
        return Locator(Strategy.NAME, value)

    @staticmethod
    def class_name(value: str) -> Locator:
        return Locator(Strategy.CLASS_NAME, value)

    @staticmethod
    def link_text(value: str) -> Locator:
        return Locator(Strategy.LINK_TEXT, value)

    @staticmethod
    def partial_link_text(value: str) -> Locator:
        return Locator(Strategy.PARTIAL_LINK_TEXT, value)


@dataclass(frozen=True)
class ElementHandle:
    """Opaque reference to a remote DOM node.

    Equality and hashing use ``element_id`` only. A node that was replaced
    in the page gets a new id, so handles from either side of a staleness
    boundary never compare equal. ``ref`` carries the backend object.
    """

    element_id: str
    ref: Any = field(default=None, compare=False, repr=False)


class PredicateKind(str, Enum):
    ATTACHED = "attached"
    DISPLAYED = "displayed"
    ENABLED = "enabled"
    SELECTED = "selected"
    CLICKABLE = "clickable"
    TEXT = "text"
    CLASS = "class"
    ID = "id"
    TAG = "tag"
    VALUE = "value"
    ATTRIBUTE = "attribute"
    PROPERTY = "property"


@dataclass(frozen=True)
class PredicateSpec:
    kind: PredicateKind
    args: tuple[Any, ...] = ()


class Cardinality(str, Enum):
    # SINGLE insists on exactly one match; FIRST takes the earliest of any number.
    SINGLE = "single"
    FIRST = "first"
    OPTIONAL = "optional"
    MANY = "many"


@dataclass(frozen=True)
class PollConfig:
    timeout_ms: int | None = 20_000
    interval_ms: int = 500
    min_tries: int = 0
    wait_for_visible: bool = False

    @classmethod
    def no_wait(cls) -> "PollConfig":
        return cls(timeout_ms=0, interval_ms=0)

    @classmethod
    def with_timeout(cls, timeout_ms: int, interval_ms: int) -> "PollConfig":
        return cls(timeout_ms=timeout_ms, interval_ms=interval_ms)

    @classmethod
    def num_tries(cls, tries: int, interval_ms: int) -> "PollConfig":
        return cls(timeout_ms=None, interval_ms=interval_ms, min_tries=tries)

    @classmethod
    def timeout_and_min_tries(cls, timeout_ms: int, interval_ms: int, tries: int) -> "PollConfig":
        return cls(timeout_ms=timeout_ms, interval_ms=interval_ms, min_tries=tries)

    def with_overrides(self, **changes: Any) -> "PollConfig":
        return replace(self, **changes)


def match_needle(needle: Needle, value: str) -> bool:
    """Exact match for strings, ``search`` for patterns, call for callables."""
    if isinstance(needle, str):
        return value == needle
    if isinstance(needle, re.Pattern):
        return needle.search(value) is not None
    return bool(needle(value))


def match_class(needle: Needle, class_attr: str) -> bool:
    # Plain strings match one whitespace-separated class token.
    if isinstance(needle, str):
        return needle in class_attr.split()
    return match_needle(needle, class_attr)


def contains(fragment: str) -> Callable[[str], bool]:
    return lambda value: fragment in value


def starts_with(prefix: str) -> Callable[[str], bool]:
    return lambda value: value.startswith(prefix)


def ends_with(suffix: str) -> Callable[[str], bool]:
    return lambda value: value.endswith(suffix)


def matches(pattern: str, flags: int = 0) -> "re.Pattern[str]":
    return re.compile(pattern, flags)
