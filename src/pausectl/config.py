"""Runtime options for pausectl."""

import os
from collections.abc import Mapping
from dataclasses import dataclass

from pausectl.log import get_logger
from pausectl.models import Mechanism

logger = get_logger("pausectl.config")

ENV_MINIMIZE_RETRIES = "PAUSECTL_MINIMIZE_RETRIES"
ENV_MINIMIZE_INTERVAL = "PAUSECTL_MINIMIZE_INTERVAL"

MIN_RETRIES = 1
MIN_INTERVAL = 0.01


@dataclass(slots=True)
class PauseOptions:
    """Options shared by every process in one invocation."""

    mechanism: Mechanism = Mechanism.THREAD_SUSPEND
    trim: bool = False
    window_control: bool = False
    quiet: bool = False
    minimize_retries: int = 10
    minimize_interval: float = 0.1  # Seconds between iconic-state polls

    def __post_init__(self) -> None:
        self.minimize_retries = max(MIN_RETRIES, self.minimize_retries)
        self.minimize_interval = max(MIN_INTERVAL, self.minimize_interval)

    def with_env(self, environ: Mapping[str, str] | None = None) -> "PauseOptions":
        """Apply PAUSECTL_* environment overrides in place and return self."""
        environ = os.environ if environ is None else environ

        raw = environ.get(ENV_MINIMIZE_RETRIES)
        if raw:
            try:
                self.minimize_retries = max(MIN_RETRIES, int(raw))
            except ValueError:
                logger.warning("invalid_env_value", variable=ENV_MINIMIZE_RETRIES, value=raw)

        raw = environ.get(ENV_MINIMIZE_INTERVAL)
        if raw:
            try:
                self.minimize_interval = max(MIN_INTERVAL, float(raw))
            except ValueError:
                logger.warning("invalid_env_value", variable=ENV_MINIMIZE_INTERVAL, value=raw)

        return self
