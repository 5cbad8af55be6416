# product_research/services/pacer.py

"""Fixed-interval pacing between calls to one rate-limited provider."""

import logging
import time
from collections.abc import Callable

logger = logging.getLogger("product_research.pacer")


class Pacer:
    """Blocks the calling stage to stay under a provider's rate limit.

    Batch stages call ``pause()`` after every attempted row, whether the
    row succeeded or failed.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        if interval < 0:
            msg = "interval must be >= 0"
            raise ValueError(msg)
        self.name = name
        self.interval = interval
        self.pauses = 0
        self._sleep = sleep

    def pause(self) -> None:
        """Sleep the full interval."""
        logger.debug("[%s] pacing %.1fs", self.name, self.interval)
        # Resolved per call so a patched time.sleep is honoured
        (self._sleep or time.sleep)(self.interval)
        self.pauses += 1
