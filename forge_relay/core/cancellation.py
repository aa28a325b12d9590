import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from forge_relay.utils.logging import get_logger


logger = get_logger("cancellation")
T = TypeVar("T")


class OperationCancelled(Exception):
    """Raised when a pending operation is abandoned because its token was cancelled."""


class CancellationToken:
    """
    Cooperative cancellation shared by the upstream call and the write loop
    of a single relay session.

    Cancelling is idempotent; the first reason recorded wins.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled(self.reason)

    async def wait(self) -> None:
        await self._event.wait()

    async def run(self, awaitable: Awaitable[T], timeout: float | None = None) -> T:
        """
        Await `awaitable` unless the token fires first.

        Raises:
            OperationCancelled: token cancelled before the awaitable finished
            asyncio.TimeoutError: awaitable did not finish within `timeout`
        """
        self.raise_if_cancelled()

        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter},
                timeout=timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task in done:
            return task.result()

        task.cancel()
        await asyncio.wait({task})
        if not task.cancelled() and task.exception() is not None:
            # Outcome is already decided; the abandoned operation's error is only informative
            logger.debug(f"Abandoned operation raised during teardown: {task.exception()!r}")

        if waiter in done or self._event.is_set():
            raise OperationCancelled(self.reason)
        raise asyncio.TimeoutError()
