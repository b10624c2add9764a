"""
Graceful shutdown.

Every termination signal is routed to ShutdownCoordinator.request_shutdown.
The first call flips the shutting-down flag before its first await, so on a
single event loop no second call can get past the check; later and duplicate
signals return immediately.

Under a server, pass an exit_process that records the status and await
wait_closed() before the serve loop returns, so the sequence finishes inside
the loop and the process exits after it.
"""

import asyncio
import logging
import signal
import sys
from typing import Awaitable, Callable, List, Optional, Sequence, Set

logger = logging.getLogger(__name__)

TERMINATION_SIGNALS = ("SIGINT", "SIGTERM", "SIGUSR1", "SIGUSR2")

Closer = Callable[[], Awaitable[None]]


class ShutdownCoordinator:
    """Runs the close-and-exit sequence at most once per process."""

    def __init__(
        self,
        closers: Optional[Sequence[Closer]] = None,
        exit_process: Callable[[int], None] = sys.exit,
        service_name: str = "Profile Sync API",
    ):
        self._closers: List[Closer] = list(closers or [])
        self._exit_process = exit_process
        self._service_name = service_name
        self._shutting_down = False
        self._pending: Set[asyncio.Task] = set()

    @property
    def shutting_down(self) -> bool:
        return self._shutting_down

    def add_closer(self, closer: Closer) -> None:
        self._closers.append(closer)

    async def request_shutdown(self, signal_name: str) -> None:
        logger.debug(f"Shutdown requested by {signal_name}")

        if self._shutting_down:
            return
        self._shutting_down = True

        logger.info(f"Shutting down {self._service_name} (signal: {signal_name})")

        for closer in self._closers:
            try:
                await closer()
            except Exception as e:
                logger.error(f"Unable to close {getattr(closer, '__qualname__', closer)}: {e}", exc_info=True)

        logger.info("And now his watch is ended")
        self._exit_process(0)

    def install(
        self,
        loop: asyncio.AbstractEventLoop,
        signals: Sequence[str] = TERMINATION_SIGNALS,
    ) -> List[str]:
        """Route the named signals to request_shutdown. Returns the names installed."""
        installed = []
        for name in signals:
            signum = getattr(signal, name, None)
            if signum is None:
                continue
            try:
                loop.add_signal_handler(signum, self._on_signal, name)
            except (NotImplementedError, RuntimeError) as e:
                logger.warning(f"Cannot install handler for {name}: {e}")
                continue
            installed.append(name)

        logger.info(f"Shutdown handlers installed for {', '.join(installed) or 'no signals'}")
        return installed

    async def wait_closed(self) -> None:
        """Wait for signal-triggered shutdown sequences to finish, re-raising their errors."""
        if self._pending:
            await asyncio.gather(*list(self._pending))

    def _on_signal(self, signal_name: str) -> None:
        task = asyncio.ensure_future(self.request_shutdown(signal_name))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
