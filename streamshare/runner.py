"""
Shared Event Loop

Streamlit serves every browser session from its own thread, while the
ledger's entity locks are asyncio primitives that belong to a single
event loop. AsyncRunner keeps that one loop alive on a daemon thread;
any thread hands it a coroutine and blocks until the result (or the
exception) comes back.
"""

import asyncio
import threading
from typing import Any, Coroutine, TypeVar

from streamshare.log import get_logger


T = TypeVar("T")

logger = get_logger(__name__)


class AsyncRunner:
    """
    One event loop on a background thread, shared by all callers.

    Usage:
        runner = AsyncRunner()
        snapshot = runner.run(ledger.load())
        runner.stop()
    """

    def __init__(self, name: str = "streamshare-loop"):
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._serve, name=name, daemon=True)
        self._thread.start()
        logger.info("event_loop_started", thread=name)

    def _serve(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    @property
    def running(self) -> bool:
        return self._thread.is_alive() and not self._loop.is_closed()

    def run(self, coro: Coroutine[Any, Any, T]) -> T:
        """
        Run a coroutine on the shared loop and wait for it.

        Raises:
            RuntimeError: If called from the loop thread itself, or after stop()
            Whatever the coroutine raises
        """
        if threading.current_thread() is self._thread:
            coro.close()
            raise RuntimeError("AsyncRunner.run() cannot be called from its own loop")
        if not self.running:
            coro.close()
            raise RuntimeError("AsyncRunner has been stopped")

        return asyncio.run_coroutine_threadsafe(coro, self._loop).result()

    def stop(self) -> None:
        """Stop the loop and wait for its thread to exit."""
        if self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join()
        self._loop.close()
        logger.info("event_loop_stopped", thread=self._thread.name)
