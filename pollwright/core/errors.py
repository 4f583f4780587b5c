from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence


class PollwrightError(Exception):
    """Base class for every error raised by the query, wait and resolve engines."""


def describe_elements(description: str, count: int | None = None) -> str:
    suffix = "element" if count == 1 else "elements" if count is not None else "element(s)"
    description = description.strip()
    if not description:
        return suffix
    return f"'{description}' {suffix}"


def selector_summary(selectors: Sequence[str]) -> str:
    return "[" + ",".join(selectors) + "]"


class NotFound(PollwrightError):
    def __init__(
        self,
        selectors: Sequence[str] = (),
        description: str = "",
        message: str | None = None,
        scope_stale: bool = False,
    ) -> None:
        self.selectors = tuple(selectors)
        self.description = description
        # True when the element searched under was already detached.
        self.scope_stale = scope_stale
        if message is None:
            message = (
                f"no such element: {describe_elements(description)} not found "
                f"using selectors: {selector_summary(self.selectors)}"
            )
            if scope_stale:
                message += " (search scope is stale)"
        super().__init__(message)


class AmbiguousMatch(NotFound):
    def __init__(self, selectors: Sequence[str], description: str, count: int) -> None:
        self.count = count
        super().__init__(
            selectors,
            description,
            message=(
                f"too many elements received; found {count} {describe_elements(description, count)} "
                f"using selectors: {selector_summary(tuple(selectors))}"
            ),
        )


@dataclass(frozen=True)
class BranchObservation:
    branch: str
    raw_count: int
    matched_count: int
    stale_count: int = 0
    lookup_stale: bool = False

    def summary(self) -> str:
        text = f"{self.branch}: {self.matched_count}/{self.raw_count} matched"
        if self.stale_count:
            text += f", {self.stale_count} stale"
        if self.lookup_stale:
            text += ", scope stale"
        return text


@dataclass(frozen=True)
class QueryDiagnostics:
    branches: tuple[str, ...]
    description: str
    ticks: int
    elapsed_ms: int
    last_seen: tuple[BranchObservation, ...] = ()

    def summary(self) -> str:
        last = "; ".join(observation.summary() for observation in self.last_seen) or "nothing"
        return (
            f"{describe_elements(self.description)} not found using selectors: "
            f"{selector_summary(self.branches)} after {self.ticks} tick(s) in {self.elapsed_ms}ms; "
            f"last seen: {last}"
        )


class QueryTimeout(PollwrightError):
    def __init__(self, diagnostics: QueryDiagnostics) -> None:
        self.diagnostics = diagnostics
        super().__init__(f"query timed out: {diagnostics.summary()}")

    @property
    def elapsed_ms(self) -> int:
        return self.diagnostics.elapsed_ms


class WaitTimeout(PollwrightError):
    def __init__(
        self,
        message: str,
        elapsed_ms: int = 0,
        ticks: int = 0,
        last_results: tuple[Any, ...] = (),
    ) -> None:
        self.message = message
        self.elapsed_ms = elapsed_ms
        self.ticks = ticks
        self.last_results = last_results
        super().__init__(f"element condition timed out: {message}")


class StaleElement(PollwrightError):
    def __init__(self, element_id: str | None = None, detail: str = "") -> None:
        self.element_id = element_id
        text = "stale element reference"
        if element_id:
            text += f": {element_id}"
        if detail:
            text += f" ({detail})"
        super().__init__(text)


class TransportFailure(PollwrightError):
    pass
