"""
Controller draining the work queue with a pool of worker tasks.

Watch handlers only enqueue ``(namespace, name)`` keys. Workers take keys
from the queue, run one reconcile pass each and turn the result into a
requeue decision. The queue guarantees a key is held by one worker at a
time, so passes for one cluster never overlap while distinct clusters are
reconciled in parallel.
"""

import asyncio
import logging

from rabbitmq_operator.constants import DEFAULT_WORKERS
from rabbitmq_operator.services.base_reconciler import (
    BaseReconciler,
    ReconcileResult,
)
from rabbitmq_operator.services.work_queue import (
    QueueKey,
    WorkQueue,
    WorkQueueShutDown,
)

logger = logging.getLogger(__name__)


class ClusterController:
    """Runs reconcile workers for RabbitmqClusters."""

    def __init__(
        self,
        reconciler: BaseReconciler,
        queue: WorkQueue | None = None,
        workers: int = DEFAULT_WORKERS,
    ):
        self.reconciler = reconciler
        self.queue = queue if queue is not None else WorkQueue()
        self.workers = workers
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    def enqueue(self, namespace: str, name: str) -> None:
        """Request a reconcile pass for one cluster."""
        self.queue.add((namespace, name))

    async def start(self) -> None:
        if self.running:
            return
        self._tasks = [
            asyncio.create_task(self._worker(index), name=f"reconcile-worker-{index}")
            for index in range(self.workers)
        ]
        logger.info(f"Started {self.workers} reconcile workers")

    async def stop(self) -> None:
        """Shut the queue down and wait for the workers to exit."""
        self.queue.shutdown()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Reconcile workers stopped")

    async def _worker(self, index: int) -> None:
        while True:
            try:
                key = await self.queue.get()
            except WorkQueueShutDown:
                logger.debug(f"Worker {index} exiting, queue shut down")
                return

            try:
                await self.process(key)
            except Exception:
                logger.exception(f"Unhandled error reconciling {key[0]}/{key[1]}")
                self.queue.add_rate_limited(key)
            finally:
                self.queue.done(key)

    async def process(self, key: QueueKey) -> ReconcileResult:
        """Run one pass for a dequeued key and schedule the follow-up."""
        namespace, name = key
        result = await self.reconciler.reconcile(
            namespace, name, attempt=self.queue.num_requeues(key)
        )
        self._handle_result(key, result)
        return result

    def _handle_result(self, key: QueueKey, result: ReconcileResult) -> None:
        namespace, name = key
        if result.rate_limited:
            delay = self.queue.add_rate_limited(key)
            logger.info(
                f"Requeued {namespace}/{name} in {delay:.1f}s after {result.outcome}"
            )
            return

        self.queue.forget(key)
        if result.requeue_after is not None:
            self.queue.add_after(key, result.requeue_after)
            logger.debug(
                f"Re-checking {namespace}/{name} in {result.requeue_after:.1f}s"
            )
