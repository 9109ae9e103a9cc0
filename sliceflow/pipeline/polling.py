"""
Bounded polling of a result that another task writes.
"""

import time
from typing import Any, Callable, Optional

from sliceflow.core.constants import DEFAULT_POLL_INTERVAL
from sliceflow.core.logging_config import get_logger

logger = get_logger(__name__)


class Poller:
    """
    Calls fetch at a fixed interval until accept() approves a result or the timeout elapses.

    sleep and clock are injectable so tests run without real waiting.
    """

    def __init__(
        self,
        interval: float = DEFAULT_POLL_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic
    ):
        self.interval = interval
        self.sleep = sleep
        self.clock = clock

    def poll(
        self,
        fetch: Callable[[], Any],
        accept: Optional[Callable[[Any], bool]] = None,
        timeout: float = 0.0
    ) -> Optional[Any]:
        """
        Poll for a result.

        Args:
            fetch: Returns the current result or None
            accept: Whether a fetched result is usable. Any non-None result when omitted.
            timeout: Seconds to keep polling

        Returns:
            The accepted result, or None on timeout
        """
        accept = accept or (lambda result: result is not None)
        deadline = self.clock() + timeout
        attempts = 0

        while True:
            attempts += 1
            try:
                result = fetch()
            except Exception as e:
                logger.warning(f"Poll attempt {attempts} failed: {e}")
                result = None

            if result is not None and accept(result):
                logger.info(f"Poll succeeded after {attempts} attempt(s)")
                return result

            remaining = deadline - self.clock()
            if remaining <= 0:
                logger.info(f"Poll timed out after {attempts} attempt(s)")
                return None

            self.sleep(min(self.interval, remaining))
