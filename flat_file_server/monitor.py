from collections import deque
from datetime import datetime, timedelta
from typing import Callable, Optional
import logging

from flat_file_server.logger_config import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)


class FailureMonitor:
    """Count storage failures in a sliding window and alert when they pile up.

    Server errors and failed cleanups of partial uploads are recorded here,
    since they have no client left to report to.
    """

    def __init__(self, failure_threshold: int, window_seconds: int = 60,
                 alert_handler: Optional[Callable[[str], None]] = None):
        if failure_threshold <= 0:
            raise ValueError("Failure threshold must be positive")

        self.failure_threshold = failure_threshold
        self.window = timedelta(seconds=window_seconds)
        self.alert_handler = alert_handler or logger.critical
        self.total_passes = 0
        self.total_failures = 0
        self._recent_failures = deque()

    def _expire(self, now: datetime) -> None:
        while self._recent_failures and self._recent_failures[0] < now - self.window:
            self._recent_failures.popleft()

    def pass_(self) -> None:
        """Record a successful storage operation."""
        self.total_passes += 1

    def fail(self, reason: str = "") -> None:
        """Record a failed storage operation, alerting once the window fills up."""
        now = datetime.now()
        self.total_failures += 1
        self._recent_failures.append(now)
        self._expire(now)

        if reason:
            logger.debug(f"Storage failure recorded: {reason}")

        if len(self._recent_failures) == self.failure_threshold:
            self.alert_handler(
                f"{self.failure_threshold} storage failures within "
                f"{int(self.window.total_seconds())}s (last: {reason or 'unknown'})"
            )

    @property
    def failures_in_window(self) -> int:
        self._expire(datetime.now())
        return len(self._recent_failures)

    @property
    def stats(self) -> dict:
        return {
            'total_passes': self.total_passes,
            'total_failures': self.total_failures,
            'failures_in_window': self.failures_in_window,
        }
