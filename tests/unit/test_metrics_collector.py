"""
Unit tests for MetricsCollector methods in observability/metrics.py.

Tests the individual methods of MetricsCollector to verify they call the
correct Prometheus metric objects with the correct label values.
"""

from unittest.mock import MagicMock, call, patch

import pytest

from rabbitmq_operator.errors import TemporaryError
from rabbitmq_operator.observability.metrics import MetricsCollector


@pytest.fixture
def collector():
    """Create a MetricsCollector with the registry init patched out."""
    with patch(
        "rabbitmq_operator.observability.metrics.get_metrics_registry",
        return_value=MagicMock(),
    ):
        return MetricsCollector()


class TestReconciliationTracking:
    """Test the reconcile pass context manager."""

    @pytest.mark.asyncio
    @patch("rabbitmq_operator.observability.metrics.RECONCILIATION_DURATION")
    @patch("rabbitmq_operator.observability.metrics.RECONCILIATION_TOTAL")
    async def test_success(self, mock_total, mock_duration, collector):
        async with collector.track_reconciliation("rabbitmqcluster", "ns", "r1"):
            pass

        mock_total.labels.assert_called_with(
            resource_type="rabbitmqcluster", namespace="ns", name="r1", result="success"
        )
        mock_total.labels().inc.assert_called_once()
        mock_duration.labels().observe.assert_called_once()

    @pytest.mark.asyncio
    @patch("rabbitmq_operator.observability.metrics.RECONCILIATION_ERRORS")
    @patch("rabbitmq_operator.observability.metrics.RECONCILIATION_TOTAL")
    async def test_error(self, mock_total, mock_errors, collector):
        with pytest.raises(TemporaryError):
            async with collector.track_reconciliation("rabbitmqcluster", "ns", "r1"):
                raise TemporaryError("later")

        mock_errors.labels.assert_called_with(
            resource_type="rabbitmqcluster",
            namespace="ns",
            error_type="TemporaryError",
            retryable="true",
        )
        mock_total.labels.assert_called_with(
            resource_type="rabbitmqcluster", namespace="ns", name="r1", result="error"
        )


class TestChildAndQueueMetrics:
    """Test child operation and queue depth metrics."""

    @patch("rabbitmq_operator.observability.metrics.CHILD_OPERATIONS")
    def test_record_child_operation(self, mock_ops, collector):
        collector.record_child_operation("StatefulSet", "ns", "patched")

        mock_ops.labels.assert_called_with(
            kind="StatefulSet", namespace="ns", action="patched"
        )
        mock_ops.labels().inc.assert_called_once()

    @patch("rabbitmq_operator.observability.metrics.WORK_QUEUE_DEPTH")
    def test_set_queue_depth(self, mock_depth, collector):
        collector.set_queue_depth(3)

        mock_depth.set.assert_called_once_with(3)


class TestClusterStatus:
    """Test the per-cluster phase gauge."""

    @patch("rabbitmq_operator.observability.metrics.CLUSTER_STATUS")
    def test_only_active_phase_is_set(self, mock_status, collector):
        collector.update_cluster_status("ns", "r1", "created")

        mock_status.labels.assert_any_call(namespace="ns", name="r1", status="created")
        values = [c.args[0] for c in mock_status.labels().set.call_args_list]
        assert sorted(values) == [0, 0, 0, 1]

    @patch("rabbitmq_operator.observability.metrics.CLUSTER_STATUS")
    def test_empty_status_reported_as_pending(self, mock_status, collector):
        collector.update_cluster_status("ns", "r1", "")

        mock_status.labels.assert_any_call(namespace="ns", name="r1", status="pending")

    @patch("rabbitmq_operator.observability.metrics.CLUSTER_STATUS")
    def test_remove_cluster(self, mock_status, collector):
        mock_status.remove.side_effect = [None, KeyError("x"), None, None]

        collector.remove_cluster("ns", "r1")

        assert mock_status.remove.call_args_list[0] == call("ns", "r1", "pending")
        assert mock_status.remove.call_count == 4
