"""
Observer list for lifecycle notifications.

Publishing is best-effort: subscriber errors are logged and never reach the
state machine, and coroutine subscribers are scheduled rather than awaited.
"""

import asyncio
import inspect
from typing import Any, Callable

from tab_sorter.config import get_logger
from tab_sorter.engine.models import LifecycleEvent

logger = get_logger(__name__)

Subscriber = Callable[[LifecycleEvent], Any]


class LifecycleNotifier:
    """Fan-out of status/ready/error events to subscribers."""

    def __init__(self):
        self._subscribers: list[Subscriber] = []
        self._pending: set[asyncio.Task] = set()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a subscriber.

        Args:
            callback: Called with each event; may be a plain function or a coroutine function

        Returns:
            Function that removes the subscription
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, event: LifecycleEvent) -> None:
        for callback in list(self._subscribers):
            try:
                result = callback(event)
                if inspect.isawaitable(result):
                    self._schedule(result)
            except Exception as e:
                logger.warning(f"Lifecycle subscriber failed on {event.type} event: {e}")

    def _schedule(self, awaitable) -> None:
        try:
            loop = asyncio.get_running_loop()
            task = asyncio.ensure_future(awaitable, loop=loop)
        except RuntimeError:
            # No running loop: drop the notification
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            logger.debug("No event loop running; async lifecycle subscriber skipped")
            return

        self._pending.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning(f"Async lifecycle subscriber failed: {error}")
