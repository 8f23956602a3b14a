"""Single-flight fetch bookkeeping shared by every data stream."""

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, List, Optional

from .api_client import ServiceError, TransitAPIClient
from .models import RefreshState

logger = logging.getLogger(__name__)


class FetchStream:
    """
    Base class for one logical data stream (vehicles page, vehicle sweep, options).

    Owns the stream's RefreshState and its in-flight task. Every fetch carries a
    generation number; a completion only mutates state if its generation is
    still the current one, so superseded or cancelled fetches are inert.
    """

    fallback_error = "Failed to fetch data. Please try again."

    def __init__(self, client: TransitAPIClient):
        self.client = client
        self.state = RefreshState()
        self._generation = 0
        self._task: Optional[asyncio.Task] = None
        self._task_key: Any = None
        self._listeners: List[Callable[[], None]] = []

    @property
    def loading(self) -> bool:
        return self.state.loading

    @property
    def error(self) -> Optional[str]:
        return self.state.error

    @property
    def last_updated(self) -> Optional[datetime]:
        return self.state.last_updated

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    def add_listener(self, callback: Callable[[], None]) -> Callable[[], None]:
        """
        Register a callback fired after every state change.

        Returns:
            A function that unregisters the callback.
        """
        self._listeners.append(callback)

        def remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return remove

    def cancel(self) -> None:
        """Cancel the in-flight fetch, if any, and clear the loading flag."""
        had_work = self.in_flight
        self._supersede()
        if had_work or self.state.loading:
            self._publish(loading=False)

    def _publish(self, **changes: Any) -> None:
        self.state = replace(self.state, **changes)
        for callback in list(self._listeners):
            callback()

    def _supersede(self) -> None:
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._task_key = None

    def _launch(
        self,
        key: Any,
        work: Callable[[], Awaitable[Any]],
        on_success: Callable[[Any], None],
    ) -> asyncio.Task:
        """
        Start a fetch for `key`, or join the running one if it has the same key.

        A running fetch with a different key is cancelled first.
        """
        if self.in_flight:
            if key == self._task_key:
                return self._task
            logger.debug(f"{type(self).__name__}: superseding fetch {self._task_key!r}")
            self._supersede()

        self._generation += 1
        generation = self._generation
        self._task_key = key
        self._publish(loading=True, error=None)
        self._task = asyncio.get_running_loop().create_task(
            self._run(generation, work, on_success)
        )
        return self._task

    async def _run(self, generation, work, on_success) -> None:
        try:
            result = await work()
        except ServiceError as e:
            if generation != self._generation:
                return
            logger.warning(f"{type(self).__name__} fetch failed: {e}")
            self._publish(loading=False, error=e.detail or self.fallback_error)
            return

        if generation != self._generation:
            return
        on_success(result)
        self._publish(loading=False, error=None, last_updated=datetime.now(timezone.utc))
