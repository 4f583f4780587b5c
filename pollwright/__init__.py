"""pollwright: polling element queries, waits and self-healing components for browser automation."""

from pollwright.core import *  # noqa: F401,F403
from pollwright.core import __all__ as _core_all
from pollwright.core import predicates

__all__ = [*_core_all, "predicates"]
