"""Fixed-interval confirmation poller."""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

from .errors import ConnectorTimeoutError, NotFoundError

logger = logging.getLogger(__name__)


class PollState(str, Enum):
    WAITING = "waiting"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class ConfirmationPoller:
    """
    Calls `check` every `interval` seconds until it returns True.

    A False result or NotFoundError keeps waiting; any other error fails the
    poll. A non-positive interval falls back to `default_interval`. The first
    check happens one interval after start.
    """

    def __init__(
        self,
        check: Callable[[], Awaitable[bool]],
        interval: float = 0,
        *,
        default_interval: float = 3.0,
        settle_delay: float = 0.0,
        name: str = "",
    ):
        self.check = check
        self.interval = interval if interval and interval > 0 else default_interval
        self.settle_delay = settle_delay
        self.name = name
        self.state = PollState.WAITING
        self.ticks = 0

    async def _loop(self) -> bool:
        while True:
            await asyncio.sleep(self.interval)
            self.ticks += 1
            try:
                confirmed = await self.check()
            except NotFoundError:
                confirmed = False
            if confirmed:
                if self.settle_delay > 0:
                    await asyncio.sleep(self.settle_delay)
                return True
            logger.debug(f"{self.name} not confirmed after {self.ticks} checks")

    async def run(self, timeout: Optional[float] = None) -> bool:
        """Poll until confirmed. Raises ConnectorTimeoutError when `timeout` expires."""
        try:
            async with asyncio.timeout(timeout):
                await self._loop()
        except TimeoutError:
            self.state = PollState.CANCELLED
            raise ConnectorTimeoutError(
                f"not confirmed within {timeout}s", operation="await_tx", key=self.name or None
            )
        except asyncio.CancelledError:
            self.state = PollState.CANCELLED
            raise
        except Exception:
            self.state = PollState.FAILED
            raise
        self.state = PollState.CONFIRMED
        logger.info(f"{self.name} confirmed after {self.ticks} checks")
        return True
