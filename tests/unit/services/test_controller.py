"""
Unit tests for the controller draining the work queue.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from rabbitmq_operator.services.base_reconciler import ReconcileResult
from rabbitmq_operator.services.controller import ClusterController
from rabbitmq_operator.services.work_queue import WorkQueue

KEY = ("default", "rabbitmq-one")


def make_reconciler(result):
    reconciler = MagicMock()
    reconciler.reconcile = AsyncMock(return_value=result)
    return reconciler


class TestConstruction:
    """Test controller construction."""

    def test_keeps_given_empty_queue(self):
        queue = WorkQueue(base_delay=42, max_delay=600)

        controller = ClusterController(make_reconciler(None), queue)

        assert controller.queue is queue
        assert controller.queue.base_delay == 42

    def test_default_queue(self):
        controller = ClusterController(make_reconciler(None))

        assert isinstance(controller.queue, WorkQueue)


class TestHandleResult:
    """Test how pass results turn into requeue decisions."""

    @pytest.mark.asyncio
    async def test_converged_forgets_key(self):
        queue = WorkQueue(base_delay=5)
        queue.add_rate_limited(KEY)
        controller = ClusterController(
            make_reconciler(ReconcileResult("converged")), queue
        )

        await controller.process(KEY)

        assert queue.num_requeues(KEY) == 0
        queue.shutdown()

    @pytest.mark.asyncio
    async def test_retry_is_rate_limited(self):
        queue = WorkQueue(base_delay=5)
        controller = ClusterController(
            make_reconciler(ReconcileResult("retry", rate_limited=True)), queue
        )

        await controller.process(KEY)
        await controller.process(KEY)

        assert queue.num_requeues(KEY) == 2
        queue.shutdown()

    @pytest.mark.asyncio
    async def test_attempt_counts_previous_failures(self):
        queue = WorkQueue(base_delay=5)
        reconciler = make_reconciler(ReconcileResult("retry", rate_limited=True))
        controller = ClusterController(reconciler, queue)

        await controller.process(KEY)
        await controller.process(KEY)

        attempts = [call.kwargs["attempt"] for call in reconciler.reconcile.call_args_list]
        assert attempts == [0, 1]
        queue.shutdown()

    @pytest.mark.asyncio
    async def test_creating_requeues_after_fixed_delay(self):
        queue = WorkQueue()
        queue.add_after = MagicMock()
        controller = ClusterController(
            make_reconciler(ReconcileResult("creating", requeue_after=10.0)), queue
        )

        await controller.process(KEY)

        queue.add_after.assert_called_once_with(KEY, 10.0)

    @pytest.mark.asyncio
    async def test_failed_is_not_requeued(self):
        queue = WorkQueue()
        queue.add_after = MagicMock()
        controller = ClusterController(
            make_reconciler(ReconcileResult("failed")), queue
        )

        result = await controller.process(KEY)

        assert not result.requeue
        queue.add_after.assert_not_called()
        assert len(queue) == 0


class TestWorkers:
    """Test the worker pool lifecycle."""

    @pytest.mark.asyncio
    async def test_workers_process_enqueued_keys(self):
        processed = asyncio.Event()
        reconciler = MagicMock()

        async def reconcile(namespace, name, attempt=0):
            processed.set()
            return ReconcileResult("converged")

        reconciler.reconcile = AsyncMock(side_effect=reconcile)
        controller = ClusterController(reconciler, WorkQueue(), workers=2)

        await controller.start()
        assert controller.running
        controller.enqueue(*KEY)
        await asyncio.wait_for(processed.wait(), timeout=1)
        await controller.stop()

        reconciler.reconcile.assert_awaited_once_with(
            "default", "rabbitmq-one", attempt=0
        )
        assert not controller.running

    @pytest.mark.asyncio
    async def test_passes_for_one_key_never_overlap(self):
        active = 0
        max_active = 0
        calls = 0
        reconciler = MagicMock()

        async def reconcile(namespace, name, attempt=0):
            nonlocal active, max_active, calls
            active += 1
            calls += 1
            max_active = max(max_active, active)
            await asyncio.sleep(0.02)
            active -= 1
            return ReconcileResult("converged")

        reconciler.reconcile = AsyncMock(side_effect=reconcile)
        controller = ClusterController(reconciler, WorkQueue(), workers=4)
        await controller.start()

        controller.enqueue(*KEY)
        await asyncio.sleep(0.005)
        for _ in range(10):
            controller.enqueue(*KEY)
        await asyncio.sleep(0.1)
        await controller.stop()

        assert max_active == 1
        assert calls == 2

    @pytest.mark.asyncio
    async def test_distinct_keys_run_in_parallel(self):
        both_running = asyncio.Event()
        active = set()
        reconciler = MagicMock()

        async def reconcile(namespace, name, attempt=0):
            active.add(name)
            if len(active) == 2:
                both_running.set()
            await both_running.wait()
            return ReconcileResult("converged")

        reconciler.reconcile = AsyncMock(side_effect=reconcile)
        controller = ClusterController(reconciler, WorkQueue(), workers=2)
        await controller.start()

        controller.enqueue("default", "rabbitmq-one")
        controller.enqueue("default", "rabbitmq-two")
        await asyncio.wait_for(both_running.wait(), timeout=1)
        await controller.stop()

    @pytest.mark.asyncio
    async def test_worker_survives_reconcile_crash(self):
        """A crashing pass releases the key, backs off and keeps the worker."""
        queue = WorkQueue(base_delay=60)
        second = asyncio.Event()
        reconciler = MagicMock()

        async def reconcile(namespace, name, attempt=0):
            if name == "rabbitmq-one":
                raise RuntimeError("boom")
            second.set()
            return ReconcileResult("converged")

        reconciler.reconcile = AsyncMock(side_effect=reconcile)
        controller = ClusterController(reconciler, queue, workers=1)
        await controller.start()

        controller.enqueue(*KEY)
        controller.enqueue("default", "rabbitmq-two")
        await asyncio.wait_for(second.wait(), timeout=1)

        assert not queue.is_processing(KEY)
        assert queue.num_requeues(KEY) == 1
        assert controller.running
        await controller.stop()
