"""
Request pacing for the reddit API.

Two cooperating pieces live here:

- RequestThrottle: a gate that guarantees a minimum delay between the
  start of two dispatches of the same client.
- RatelimitTracker: bookkeeping of the quota reddit reports through the
  ``x-ratelimit-remaining`` / ``x-ratelimit-reset`` headers.
"""

import asyncio
import time
from typing import Any, Dict, Mapping, Optional

import structlog

from reddit_graph.constants import RATELIMIT_REMAINING_HEADER, RATELIMIT_RESET_HEADER

logger = structlog.get_logger(__name__)


class RequestThrottle:
    """
    Minimum-delay gate shared by every dispatch of one client.

    Each dispatch awaits the current gate and then immediately installs a
    new one that opens ``request_delay`` milliseconds later. Any number of
    coroutines may wait at once; when the gate opens exactly one of them
    installs the next gate and proceeds, the others go back to waiting.
    Waiters are not served in FIFO order.

    Example:
        >>> throttle = RequestThrottle(request_delay=2000)
        >>> await throttle.wait()  # returns immediately
        >>> await throttle.wait()  # returns ~2s later
    """

    def __init__(self, request_delay: float = 0) -> None:
        """
        Initialize the throttle.

        Args:
            request_delay: Minimum delay between dispatches in milliseconds
        """
        self.request_delay = request_delay
        self._gate: Optional[asyncio.Future] = None
        self._opens_at: float = 0.0

        logger.debug("request_throttle_initialized", request_delay_ms=request_delay)

    async def wait(self) -> None:
        """
        Wait for the gate to open, then close it again for ``request_delay``.

        No suspension happens between leaving the wait loop and installing
        the next gate, so one opening admits exactly one dispatch.
        """
        while self._gate is not None and not self._gate.done():
            await asyncio.shield(self._gate)
        self._reset()

    def _reset(self) -> None:
        if self.request_delay <= 0:
            self._gate = None
            self._opens_at = 0.0
            return

        loop = asyncio.get_running_loop()
        gate = loop.create_future()
        delay = self.request_delay / 1000
        loop.call_later(delay, _open_gate, gate)
        self._gate = gate
        self._opens_at = time.monotonic() + delay

    def next_available_in(self) -> float:
        """
        Seconds until the gate opens (0 when it is open).
        """
        if self._gate is None or self._gate.done():
            return 0.0
        return max(0.0, self._opens_at - time.monotonic())

    def set_delay(self, request_delay: float) -> None:
        """Change the delay applied from the next dispatch on."""
        self.request_delay = request_delay


def _open_gate(gate: asyncio.Future) -> None:
    if not gate.done():
        gate.set_result(None)


class RatelimitTracker:
    """
    Tracks the quota reported by reddit on every response.

    Until the first response arrives the quota is unknown and treated as
    unlimited.

    Example:
        >>> tracker = RatelimitTracker()
        >>> tracker.update({"x-ratelimit-remaining": "0", "x-ratelimit-reset": "30"})
        >>> tracker.is_exhausted()
        True
    """

    def __init__(self) -> None:
        self.remaining: Optional[float] = None
        self._reset_at: float = 0.0

    def update(self, headers: Mapping[str, Any]) -> None:
        """
        Read the rate-limit headers of a response.

        Responses without the headers leave the current state untouched.

        Args:
            headers: Response headers (case-insensitive mapping or plain dict)
        """
        remaining = headers.get(RATELIMIT_REMAINING_HEADER)
        reset = headers.get(RATELIMIT_RESET_HEADER)
        if remaining is None or reset is None:
            return

        try:
            remaining_value = float(remaining)
            reset_value = float(reset)
        except (TypeError, ValueError):
            logger.debug(
                "ratelimit_headers_unparseable",
                remaining=remaining,
                reset=reset
            )
            return

        self.remaining = remaining_value
        self._reset_at = time.monotonic() + reset_value

        if remaining_value < 10:
            logger.debug(
                "ratelimit_low",
                remaining=remaining_value,
                reset_seconds=reset_value
            )

    def seconds_until_reset(self) -> float:
        """Seconds until the current quota period ends (0 if it already has)."""
        return max(0.0, self._reset_at - time.monotonic())

    def is_exhausted(self) -> bool:
        """
        True when the quota is used up and its period has not ended yet.
        """
        return (
            self.remaining is not None
            and self.remaining < 1
            and self.seconds_until_reset() > 0
        )

    def get_stats(self) -> Dict[str, Any]:
        """
        Get current quota statistics.

        Returns:
            Dictionary with the remaining quota, the seconds until reset and
            whether the quota is exhausted.

        Example:
            >>> tracker.get_stats()
            {'remaining': 598.0, 'seconds_until_reset': 312.4, 'exhausted': False}
        """
        return {
            "remaining": self.remaining,
            "seconds_until_reset": round(self.seconds_until_reset(), 3),
            "exhausted": self.is_exhausted(),
        }
