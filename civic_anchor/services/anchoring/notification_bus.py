"""
Notification Bus.

Typed publish/subscribe channel for ledger changes. Every append and every
status update is published; one listener failing never stops delivery to
the others and never reaches the publisher.
"""

import asyncio
import inspect
import threading
from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger

from .models import TransactionRecord

Listener = Callable[[TransactionRecord], Any]


def _listener_name(listener: Listener) -> str:
    return getattr(listener, "__qualname__", None) or repr(listener)


class Subscription:
    """
    Handle returned by NotificationBus.subscribe().

    Usage:
        with bus.subscribe(on_record):
            ...
        # or
        subscription = bus.subscribe(on_record)
        subscription.close()
    """

    def __init__(self, bus: "NotificationBus", listener: Listener) -> None:
        self._bus = bus
        self.listener = listener
        self.active = True

    def close(self) -> None:
        if self.active:
            self._bus.unsubscribe(self.listener)
            self.active = False

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class QueueSubscription(Subscription):
    """
    Subscription delivering records into a bounded asyncio.Queue.

    When the queue is full the oldest record is dropped, so a slow
    consumer sees the latest state rather than blocking publishers.
    """

    def __init__(self, bus: "NotificationBus", maxsize: int = 100) -> None:
        self.queue: asyncio.Queue[TransactionRecord] = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0
        super().__init__(bus, self._enqueue)

    def _enqueue(self, record: TransactionRecord) -> None:
        if self.queue.full():
            self.queue.get_nowait()
            self.dropped += 1
            logger.warning(f"Notification queue full, dropped oldest record ({self.dropped} total)")
        self.queue.put_nowait(record)

    async def get(self) -> TransactionRecord:
        return await self.queue.get()


class NotificationBus:
    """
    Fan-out of TransactionRecord updates to registered listeners.

    Listeners may be plain callables or coroutine functions. Coroutine
    listeners are scheduled as tasks on the running loop.
    """

    def __init__(self) -> None:
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()
        self._tasks: set[asyncio.Task] = set()

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def subscribe(self, listener: Listener) -> Subscription:
        """Register a listener; returns a handle that unsubscribes on close."""
        with self._lock:
            self._listeners.append(listener)
        logger.debug(f"Listener subscribed: {_listener_name(listener)}")
        return Subscription(self, listener)

    def subscribe_queue(self, maxsize: int = 100) -> QueueSubscription:
        """Register a bounded queue consumer (call from inside the event loop)."""
        subscription = QueueSubscription(self, maxsize=maxsize)
        with self._lock:
            self._listeners.append(subscription.listener)
        return subscription

    def unsubscribe(self, listener: Listener) -> bool:
        """
        Remove a listener.

        Returns:
            True if the listener was registered
        """
        with self._lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                return False
        logger.debug(f"Listener unsubscribed: {_listener_name(listener)}")
        return True

    def clear(self) -> None:
        with self._lock:
            self._listeners.clear()

    def publish(self, record: TransactionRecord) -> None:
        """
        Deliver a record to every listener registered at call time.

        Never raises.
        """
        with self._lock:
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                if inspect.iscoroutinefunction(listener):
                    self._schedule(listener, record)
                else:
                    listener(record)
            except Exception as e:
                logger.error(
                    f"Listener {_listener_name(listener)} failed on record "
                    f"{record.record_id}: {type(e).__name__}: {e}"
                )

    def _schedule(
        self,
        listener: Callable[[TransactionRecord], Awaitable[Any]],
        record: TransactionRecord,
    ) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(
                f"No running event loop, async listener {_listener_name(listener)} skipped"
            )
            return
        task = loop.create_task(self._run_async(listener, record))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_async(
        self,
        listener: Callable[[TransactionRecord], Awaitable[Any]],
        record: TransactionRecord,
    ) -> None:
        try:
            await listener(record)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                f"Async listener {_listener_name(listener)} failed on record "
                f"{record.record_id}: {type(e).__name__}: {e}"
            )

    async def drain(self) -> None:
        """Wait for scheduled async listeners to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
