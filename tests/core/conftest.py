import pytest

from pollwright.core.config import set_default_poll_config
from pollwright.core.poller import Timing
from pollwright.drivers.memory_driver import MemoryDriver


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def timing(clock: FakeClock) -> Timing:
    return Timing(clock=clock, sleep=clock.sleep)


@pytest.fixture
def dom(clock: FakeClock) -> MemoryDriver:
    return MemoryDriver(clock=clock)


@pytest.fixture(autouse=True)
def reset_default_poll_config():
    set_default_poll_config(None)
    yield
    set_default_poll_config(None)
