"""
Prometheus metrics for the RabbitMQ operator.

This module provides metrics collection for monitoring reconcile passes,
child object writes, the work queue and cluster phases, plus the HTTP
server exposing them.
"""

import logging
import time
from contextlib import asynccontextmanager

# aiohttp also backs the kopf health probes.
from aiohttp.web import (
    Application,
    AppRunner,
    Request,
    Response,
    TCPSite,
)
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from rabbitmq_operator.constants import (
    CLUSTER_STATUS_CREATED,
    CLUSTER_STATUS_CREATING,
    CLUSTER_STATUS_EMPTY,
    CLUSTER_STATUS_ERROR,
)

logger = logging.getLogger(__name__)

# Global metrics registry
_metrics_registry: CollectorRegistry | None = None

RECONCILIATION_TOTAL = Counter(
    "rabbitmq_operator_reconciliation_total",
    "Total number of reconcile passes",
    ["resource_type", "namespace", "name", "result"],
    registry=None,
)

RECONCILIATION_DURATION = Histogram(
    "rabbitmq_operator_reconciliation_duration_seconds",
    "Time spent on reconcile passes",
    ["resource_type", "namespace", "operation"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
    registry=None,
)

RECONCILIATION_ERRORS = Counter(
    "rabbitmq_operator_reconciliation_errors_total",
    "Total number of reconcile passes ending in an exception",
    ["resource_type", "namespace", "error_type", "retryable"],
    registry=None,
)

CHILD_OPERATIONS = Counter(
    "rabbitmq_operator_child_operations_total",
    "Child object operations by kind and action",
    ["kind", "namespace", "action"],
    registry=None,
)

WORK_QUEUE_DEPTH = Gauge(
    "rabbitmq_operator_work_queue_depth",
    "Number of cluster keys waiting for a worker",
    [],
    registry=None,
)

CLUSTER_STATUS = Gauge(
    "rabbitmq_operator_cluster_status",
    "Current status of each RabbitmqCluster (1 for the active phase)",
    ["namespace", "name", "status"],
    registry=None,
)

ALL_METRICS = [
    RECONCILIATION_TOTAL,
    RECONCILIATION_DURATION,
    RECONCILIATION_ERRORS,
    CHILD_OPERATIONS,
    WORK_QUEUE_DEPTH,
    CLUSTER_STATUS,
]

_PHASE_LABELS = {
    CLUSTER_STATUS_EMPTY: "pending",
    CLUSTER_STATUS_CREATING: CLUSTER_STATUS_CREATING,
    CLUSTER_STATUS_CREATED: CLUSTER_STATUS_CREATED,
    CLUSTER_STATUS_ERROR: CLUSTER_STATUS_ERROR,
}


def get_metrics_registry() -> CollectorRegistry:
    """Get or create the global metrics registry."""
    global _metrics_registry

    if _metrics_registry is None:
        _metrics_registry = CollectorRegistry()
        for metric in ALL_METRICS:
            _metrics_registry.register(metric)

    return _metrics_registry


class MetricsCollector:
    """Collects and manages metrics for the RabbitMQ operator."""

    def __init__(self):
        self.registry = get_metrics_registry()

    @asynccontextmanager
    async def track_reconciliation(
        self,
        resource_type: str,
        namespace: str,
        name: str,
        operation: str = "reconcile",
    ):
        """
        Context manager to track a reconcile pass.

        Args:
            resource_type: Type of resource being reconciled
            namespace: Namespace of the resource
            name: Name of the resource
            operation: Type of operation being performed
        """
        start_time = time.time()
        result = "unknown"

        try:
            yield
            result = "success"
        except Exception as e:
            result = "error"
            retryable = "true" if getattr(e, "retryable", False) else "false"

            RECONCILIATION_ERRORS.labels(
                resource_type=resource_type,
                namespace=namespace,
                error_type=type(e).__name__,
                retryable=retryable,
            ).inc()

            raise
        finally:
            duration = time.time() - start_time

            RECONCILIATION_TOTAL.labels(
                resource_type=resource_type,
                namespace=namespace,
                name=name,
                result=result,
            ).inc()

            RECONCILIATION_DURATION.labels(
                resource_type=resource_type, namespace=namespace, operation=operation
            ).observe(duration)

    def record_child_operation(self, kind: str, namespace: str, action: str) -> None:
        CHILD_OPERATIONS.labels(kind=kind, namespace=namespace, action=action).inc()

    def set_queue_depth(self, depth: int) -> None:
        WORK_QUEUE_DEPTH.set(depth)

    def update_cluster_status(self, namespace: str, name: str, status: str) -> None:
        """
        Mark ``status`` as the active phase of a cluster.

        Args:
            namespace: Namespace of the cluster
            name: Name of the cluster
            status: Current clusterStatus value
        """
        active = _PHASE_LABELS.get(status, status)
        for label in _PHASE_LABELS.values():
            CLUSTER_STATUS.labels(namespace=namespace, name=name, status=label).set(
                1 if label == active else 0
            )

    def remove_cluster(self, namespace: str, name: str) -> None:
        """Drop the status series of a deleted cluster."""
        for label in _PHASE_LABELS.values():
            try:
                CLUSTER_STATUS.remove(namespace, name, label)
            except KeyError:
                continue


class MetricsServer:
    """HTTP server for exposing Prometheus metrics."""

    def __init__(self, port: int = 8081, host: str = "0.0.0.0"):
        """
        Initialize metrics server.

        Args:
            port: Port to serve metrics on
            host: Host interface to bind to
        """
        self.port = port
        self.host = host
        self.app = Application()
        self.runner: AppRunner | None = None
        self.site: TCPSite | None = None
        self._setup_routes()

    def _setup_routes(self) -> None:
        self.app.router.add_get("/metrics", self._metrics_handler)
        self.app.router.add_get("/healthz", self._healthz_handler)

    async def _metrics_handler(self, request: Request) -> Response:
        """Handle /metrics endpoint for Prometheus scraping."""
        try:
            metrics_data = generate_latest(get_metrics_registry())
            return Response(
                body=metrics_data, headers={"Content-Type": CONTENT_TYPE_LATEST}
            )
        except Exception as e:
            logger.error(f"Failed to generate metrics: {e}")
            return Response(
                text=f"Error generating metrics: {type(e).__name__}. Check logs for details.",
                status=500,
            )

    async def _healthz_handler(self, request: Request) -> Response:
        return Response(text="ok")

    async def start(self) -> None:
        """Start the metrics server."""
        try:
            self.runner = AppRunner(self.app)
            await self.runner.setup()

            self.site = TCPSite(self.runner, self.host, self.port)
            await self.site.start()

            logger.info(f"Metrics available at http://{self.host}:{self.port}/metrics")
        except Exception as e:
            logger.error(f"Failed to start metrics server: {e}")
            raise

    async def stop(self) -> None:
        """Stop the metrics server."""
        if self.site:
            await self.site.stop()
            self.site = None

        if self.runner:
            await self.runner.cleanup()
            self.runner = None

        logger.info("Metrics server stopped")


# Global metrics collector instance
metrics_collector = MetricsCollector()
