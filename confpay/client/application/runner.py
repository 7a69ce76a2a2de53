"""
Application layer: Runner hosting the session event loop.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import TYPE_CHECKING, Any, Callable, Coroutine, TypeVar

if TYPE_CHECKING:
    from concurrent.futures import Future

    from confpay.client.application.coordinator import PayrollSession

T = TypeVar("T")


class Runner:
    """Runs a session's operations on an asyncio loop in a background thread.

    Synchronous callers hand coroutines over with ``submit``; wallet change
    notifications are forwarded onto the loop so the session only ever runs
    on one thread.
    """

    def __init__(
        self,
        session: PayrollSession,
        refresh_interval: int,
        on_error_callback: Callable[[Exception], None] | None = None,
    ):
        self.session = session
        self.refresh_interval = refresh_interval
        self.on_error_callback = on_error_callback
        self.logger = logging.getLogger(__name__)
        self._thread: threading.Thread | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stop: asyncio.Event | None = None
        self._started = threading.Event()
        self._running = False
        self._subscribed = False

    async def run(self) -> None:
        """Refresh immediately, then every ``refresh_interval`` seconds until stopped."""
        self._stop = asyncio.Event()
        self._running = True
        self._started.set()
        try:
            while self._running:
                await self.session.refresh()
                try:
                    await asyncio.wait_for(self._stop.wait(), self.refresh_interval)
                except asyncio.TimeoutError:
                    continue
        except Exception as e:
            self.logger.exception("Runner error")
            if self.on_error_callback:
                self.on_error_callback(e)
            raise
        finally:
            self._running = False

    def _thread_main(self) -> None:
        loop = asyncio.new_event_loop()
        self._loop = loop
        try:
            loop.run_until_complete(self.run())
        finally:
            loop.close()
            self._loop = None

    def start_in_thread(self) -> None:
        """Start the session loop in a separate thread."""
        if self._thread and self._thread.is_alive():
            self.logger.warning("Session is already running in a thread")
            return
        self._started.clear()
        if not self._subscribed:
            self.session.wallet.subscribe(self._on_wallet_change)
            self._subscribed = True
        self._thread = threading.Thread(target=self._thread_main, daemon=True)
        self._thread.start()
        self._started.wait()
        self.logger.info("Session started in background thread")

    def submit(self, coro: Coroutine[Any, Any, T]) -> Future[T]:
        """Schedule ``coro`` on the session loop from any thread."""
        if self._loop is None:
            coro.close()
            msg = "Runner is not started"
            raise RuntimeError(msg)
        return asyncio.run_coroutine_threadsafe(coro, self._loop)

    def _on_wallet_change(self) -> None:
        if self._loop is not None:
            self._loop.call_soon_threadsafe(self.session.handle_identity_change)

    def stop_thread(self, timeout: float | None = 5.0) -> None:
        """Stop the background loop and wait for the thread to exit."""
        self._running = False
        if self._loop is not None and self._stop is not None:
            self._loop.call_soon_threadsafe(self._stop.set)
        if self._thread:
            self._thread.join(timeout)
            self._thread = None
        self.logger.info("Session thread stopped")
