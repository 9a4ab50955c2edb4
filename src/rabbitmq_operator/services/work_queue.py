"""
Keyed work queue with deduplication and single-flight per key.

Keys are ``(namespace, name)`` pairs of RabbitmqClusters. The queue keeps
three sets:

- queued: keys waiting for a worker, each at most once
- dirty: keys that need a pass, queued or not
- processing: keys a worker currently holds

A key added while it is being processed is only marked dirty and is queued
again when the worker calls ``done``. Several notifications for one key
therefore collapse into a single follow-up pass, and no two workers ever
hold the same key.
"""

import asyncio
import logging
from collections import deque

from rabbitmq_operator.constants import (
    DEFAULT_REQUEUE_BASE_DELAY,
    DEFAULT_REQUEUE_MAX_DELAY,
)
from rabbitmq_operator.observability.metrics import metrics_collector

logger = logging.getLogger(__name__)

QueueKey = tuple[str, str]


class WorkQueueShutDown(Exception):
    """Raised by ``get`` once the queue has been shut down."""


class WorkQueue:
    """Deduplicating asyncio work queue with per-key rate-limited requeue."""

    def __init__(
        self,
        base_delay: float = DEFAULT_REQUEUE_BASE_DELAY,
        max_delay: float = DEFAULT_REQUEUE_MAX_DELAY,
    ):
        """
        Initialize the queue.

        Args:
            base_delay: Delay of the first rate-limited requeue of a key
            max_delay: Upper bound for rate-limited requeue delays
        """
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._queue: deque[QueueKey] = deque()
        self._dirty: set[QueueKey] = set()
        self._processing: set[QueueKey] = set()
        self._failures: dict[QueueKey, int] = {}
        self._timers: dict[QueueKey, tuple[float, asyncio.TimerHandle]] = {}
        self._getters: deque[asyncio.Future] = deque()
        self._shutting_down = False

    def __len__(self) -> int:
        return len(self._queue)

    @property
    def shutting_down(self) -> bool:
        return self._shutting_down

    def is_processing(self, key: QueueKey) -> bool:
        return key in self._processing

    def add(self, key: QueueKey) -> None:
        """Mark a key as needing a pass."""
        if self._shutting_down or key in self._dirty:
            return
        self._dirty.add(key)
        if key in self._processing:
            return
        self._queue.append(key)
        self._update_depth()
        self._wakeup_next()

    def add_after(self, key: QueueKey, delay: float) -> None:
        """Add a key once ``delay`` seconds have passed."""
        if self._shutting_down:
            return
        if delay <= 0:
            self.add(key)
            return

        loop = asyncio.get_running_loop()
        due = loop.time() + delay
        existing = self._timers.get(key)
        if existing is not None:
            existing_due, handle = existing
            if existing_due <= due:
                return
            handle.cancel()
        handle = loop.call_later(delay, self._fire_timer, key)
        self._timers[key] = (due, handle)

    def add_rate_limited(self, key: QueueKey) -> float:
        """
        Requeue a failing key with exponential backoff.

        Returns:
            The delay applied
        """
        failures = self._failures.get(key, 0)
        self._failures[key] = failures + 1
        delay = min(self.base_delay * (2**failures), self.max_delay)
        self.add_after(key, delay)
        return delay

    def forget(self, key: QueueKey) -> None:
        """Reset the failure count of a key after a successful pass."""
        self._failures.pop(key, None)

    def num_requeues(self, key: QueueKey) -> int:
        return self._failures.get(key, 0)

    async def get(self) -> QueueKey:
        """
        Wait for the next key and mark it as processing.

        Raises:
            WorkQueueShutDown: If the queue is shut down while waiting
        """
        while not self._queue:
            if self._shutting_down:
                raise WorkQueueShutDown()
            waiter = asyncio.get_running_loop().create_future()
            self._getters.append(waiter)
            try:
                await waiter
            except asyncio.CancelledError:
                if waiter in self._getters:
                    self._getters.remove(waiter)
                # Pass the wakeup on if this getter was already chosen
                if self._queue and not waiter.cancelled():
                    self._wakeup_next()
                raise

        key = self._queue.popleft()
        self._processing.add(key)
        self._dirty.discard(key)
        self._update_depth()
        return key

    def done(self, key: QueueKey) -> None:
        """Release a key. It is queued again if it became dirty meanwhile."""
        self._processing.discard(key)
        if key in self._dirty and not self._shutting_down:
            self._queue.append(key)
            self._update_depth()
            self._wakeup_next()

    def shutdown(self) -> None:
        """Stop accepting keys and release every waiting getter."""
        self._shutting_down = True
        for _, handle in self._timers.values():
            handle.cancel()
        self._timers.clear()
        while self._getters:
            waiter = self._getters.popleft()
            if not waiter.done():
                waiter.set_result(None)

    def _fire_timer(self, key: QueueKey) -> None:
        self._timers.pop(key, None)
        self.add(key)

    def _wakeup_next(self) -> None:
        while self._getters:
            waiter = self._getters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                break

    def _update_depth(self) -> None:
        metrics_collector.set_queue_depth(len(self._queue))
