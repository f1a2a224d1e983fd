"""
Rate-limited logging for messages that can fire on every frame.
"""

import logging
import time
from typing import Callable, Dict


class ThrottledLogger:
    """
    Emits a given message key at most once per ``period`` seconds.

    Args:
        logger: Destination logger.
        period: Minimum interval between two records with the same key (s).
        clock:  Monotonic time source, injectable for tests.
    """

    def __init__(self, logger: logging.Logger, period: float = 5.0,
                 clock: Callable[[], float] = time.monotonic):
        self.logger = logger
        self.period = period
        self.clock = clock
        self._last_emitted: Dict[str, float] = {}

    def log(self, level: int, key: str, msg: str, *args) -> bool:
        """
        Log ``msg`` unless ``key`` was logged less than ``period`` ago.

        Returns:
            True if the record was emitted.
        """
        now = self.clock()
        last = self._last_emitted.get(key)
        if last is not None and now - last < self.period:
            return False

        self._last_emitted[key] = now
        self.logger.log(level, msg, *args)
        return True

    def warning(self, key: str, msg: str, *args) -> bool:
        return self.log(logging.WARNING, key, msg, *args)
