"""
Call-scoped mutual exclusion for value-moving entrypoints.

claim() and withdraw() hold the latch from their first check until their
last transfer returns. Any claim() or withdraw() that arrives while the
latch is held (a recipient calling back during a transfer) fails at once
with ReentrancyError instead of running settlement logic a second time.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from treasurehunt.core.exceptions import ReentrancyError

logger = logging.getLogger(__name__)


class CallLatch:
    """Non-blocking, non-reentrant latch. Not a thread lock."""

    def __init__(self) -> None:
        self._holder: Optional[str] = None

    @property
    def held(self) -> bool:
        return self._holder is not None

    @contextmanager
    def hold(self, operation: str) -> Iterator[None]:
        if self._holder is not None:
            logger.warning(
                "Rejected reentrant %s while %s is in progress",
                operation, self._holder,
            )
            raise ReentrancyError(
                f"{operation} re-entered during pending {self._holder}",
                {"operation": operation, "pending": self._holder},
            )
        self._holder = operation
        try:
            yield
        finally:
            self._holder = None
