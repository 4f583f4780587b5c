"""Polling query, wait and lazy-resolution engines."""

from pollwright.core.branch import BranchResult, SelectorBranch, evaluate_branch, lookup_all
from pollwright.core.component import Component, SlotSpec, component_factory, first, many, optional, single
from pollwright.core.config import (
    configure_logging,
    get_default_poll_config,
    load_default_poll_config,
    set_default_poll_config,
)
from pollwright.core.contracts import (
    By,
    Cardinality,
    ElementHandle,
    Locator,
    PollConfig,
    PredicateKind,
    PredicateSpec,
    Strategy,
    contains,
    ends_with,
    matches,
    starts_with,
)
from pollwright.core.driver import ElementDriver
from pollwright.core.errors import (
    AmbiguousMatch,
    BranchObservation,
    NotFound,
    PollwrightError,
    QueryDiagnostics,
    QueryTimeout,
    StaleElement,
    TransportFailure,
    WaitTimeout,
)
from pollwright.core.poller import PollTicker, Timing
from pollwright.core.predicates import Predicate
from pollwright.core.query import ElementQuery, query
from pollwright.core.resolver import ElementResolver, ResolverState
from pollwright.core.waiter import ElementWaiter, wait_until

__all__ = [
    "AmbiguousMatch",
    "BranchObservation",
    "BranchResult",
    "By",
    "Cardinality",
    "Component",
    "ElementDriver",
    "ElementHandle",
    "ElementQuery",
    "ElementResolver",
    "ElementWaiter",
    "Locator",
    "NotFound",
    "PollConfig",
    "PollTicker",
    "PollwrightError",
    "Predicate",
    "PredicateKind",
    "PredicateSpec",
    "QueryDiagnostics",
    "QueryTimeout",
    "ResolverState",
    "SelectorBranch",
    "SlotSpec",
    "StaleElement",
    "Strategy",
    "Timing",
    "TransportFailure",
    "WaitTimeout",
    "component_factory",
    "configure_logging",
    "contains",
    "ends_with",
    "evaluate_branch",
    "first",
    "get_default_poll_config",
    "load_default_poll_config",
    "lookup_all",
    "many",
    "matches",
    "optional",
    "query",
    "set_default_poll_config",
    "single",
    "starts_with",
    "wait_until",
]
