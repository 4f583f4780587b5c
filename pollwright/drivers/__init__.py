"""ElementDriver implementations."""

from pollwright.drivers.memory_driver import MemoryDriver, MemoryNode
from pollwright.drivers.playwright_driver import PlaywrightDriver, playwright_selector

__all__ = ["MemoryDriver", "MemoryNode", "PlaywrightDriver", "playwright_selector"]
