from __future__ import annotations

import logging
import os

from pollwright.core.contracts import PollConfig

_default_poll_config: PollConfig | None = None


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


def _env_timeout(name: str, default: int | None) -> int | None:
    value = os.getenv(name)
    if value is None:
        return default
    if value.lower() in {"", "none", "never"}:
        return None
    return int(value)


def load_default_poll_config() -> PollConfig:
    base = PollConfig()
    return PollConfig(
        timeout_ms=_env_timeout("POLLWRIGHT_TIMEOUT_MS", base.timeout_ms),
        interval_ms=int(os.getenv("POLLWRIGHT_INTERVAL_MS", str(base.interval_ms))),
        min_tries=int(os.getenv("POLLWRIGHT_MIN_TRIES", str(base.min_tries))),
        wait_for_visible=_env_bool("POLLWRIGHT_WAIT_FOR_VISIBLE", base.wait_for_visible),
    )


def get_default_poll_config() -> PollConfig:
    global _default_poll_config
    if _default_poll_config is None:
        _default_poll_config = load_default_poll_config()
    return _default_poll_config


def set_default_poll_config(config: PollConfig | None) -> None:
    """Replace the process-wide default. Passing None reloads it from the environment on next use."""
    global _default_poll_config
    _default_poll_config = config


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or os.getenv("POLLWRIGHT_LOG_LEVEL", "INFO")).upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
