"""Recurring refresh scheduler."""

import asyncio
import inspect
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 15.0  # seconds


class Poller:
    """
    Invokes a refresh action on a fixed cadence on the running event loop.

    The action is looked up at call time, so set_action() can swap it without
    restarting the timer. The timer itself is only recreated when the interval
    or the enabled flag changes.
    """

    def __init__(
        self,
        action: Callable[[], Any],
        interval: float = DEFAULT_INTERVAL,
        enabled: bool = False,
        call_on_mount: bool = True,
    ):
        """
        Initialize the poller.

        Args:
            action: Callable invoked on every tick. May return an awaitable.
            interval: Seconds between ticks.
            enabled: Start polling right away (requires a running event loop).
            call_on_mount: Invoke the action immediately when enabled.
        """
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._action = action
        self.interval = interval
        self.call_on_mount = call_on_mount
        self.enabled = False
        self._has_called = False
        self._timer: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Future] = None
        if enabled:
            self.enable()

    @property
    def running(self) -> bool:
        """True while a timer is scheduled."""
        return self._timer is not None and not self._timer.done()

    def set_action(self, action: Callable[[], Any]) -> None:
        """Replace the action; takes effect on the next tick."""
        self._action = action

    def enable(self) -> None:
        self.reconfigure(enabled=True)

    def disable(self) -> None:
        self.reconfigure(enabled=False)

    def close(self) -> None:
        self.disable()

    def reconfigure(self, interval: Optional[float] = None, enabled: Optional[bool] = None) -> None:
        """
        Change the interval and/or enabled flag.

        Must be called from inside the running event loop when enabling.
        """
        if interval is not None and interval <= 0:
            raise ValueError("interval must be positive")
        interval_changed = interval is not None and interval != self.interval
        if interval is not None:
            self.interval = interval
        if enabled is None:
            enabled = self.enabled

        if not enabled:
            self._cancel_timer()
            self._has_called = False
            self.enabled = False
            return

        if self.enabled and self.running and not interval_changed:
            return
        self.enabled = True

        if self.call_on_mount and not self._has_called:
            self._has_called = True
            self._invoke()

        self._cancel_timer()
        self._timer = asyncio.get_running_loop().create_task(self._run())
        logger.debug(f"Poller scheduled every {self.interval}s")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self._invoke()

    def _invoke(self) -> None:
        if self._inflight is not None and not self._inflight.done():
            logger.debug("Skipping tick, previous refresh still running")
            return

        try:
            result = self._action()
        except Exception:
            logger.error("Refresh action failed", exc_info=True)
            self._inflight = None
            return
        if inspect.isawaitable(result):
            self._inflight = asyncio.ensure_future(result)
            self._inflight.add_done_callback(self._on_done)
        else:
            self._inflight = None

    @staticmethod
    def _on_done(future: asyncio.Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Refresh action failed", exc_info=exc)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
