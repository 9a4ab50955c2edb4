#!/usr/bin/env python3
"""
RabbitMQ Operator - Main entry point for the Kopf-based RabbitMQ operator.

The operator keeps every RabbitmqCluster converged to a StatefulSet,
Services, ConfigMap, Secrets and RBAC objects it owns:
- Watch events only enqueue cluster keys
- A pool of workers drains the queue, one pass per key at a time
- Transient API failures are retried with backoff, terminal ones reported
  in the cluster status

Usage:
    python -m rabbitmq_operator.operator
    # Or with kopf directly:
    kopf run -m rabbitmq_operator.operator --all-namespaces

Environment Variables:
    RABBITMQ_OPERATOR_NAMESPACES: Comma-separated list of namespaces to watch
    LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
    RECONCILE_WORKERS: Number of concurrent reconcile workers
"""

import logging
import random
import sys

import kopf
from kubernetes import config

# Import all handler modules to register them with kopf
from rabbitmq_operator.handlers import children, rabbitmqcluster  # noqa: F401
from rabbitmq_operator.observability.logging import setup_structured_logging
from rabbitmq_operator.observability.metrics import MetricsServer
from rabbitmq_operator.services import (
    ClusterController,
    ClusterReconciler,
    WorkQueue,
)
from rabbitmq_operator.settings import settings as operator_settings
from rabbitmq_operator.store import KubernetesObjectStore

# Global reference to metrics server for cleanup
_global_metrics_server: MetricsServer | None = None


def configure_logging() -> None:
    """Configure structured logging for the operator based on operator_settings."""
    setup_structured_logging(
        log_level=operator_settings.log_level.upper(),
        enable_json_formatting=operator_settings.json_logs,
        correlation_id_enabled=operator_settings.correlation_ids,
        log_health_probes=operator_settings.log_health_probes,
    )


def load_kubernetes_config() -> None:
    try:
        config.load_incluster_config()
        logging.info("Loaded in-cluster Kubernetes configuration")
    except config.ConfigException:
        try:
            config.load_kube_config()
            logging.info("Loaded kubeconfig configuration")
        except config.ConfigException:
            logging.error("Failed to load Kubernetes configuration")
            raise


def build_controller() -> ClusterController:
    """Wire the store, reconciler, queue and workers from operator_settings."""
    store = KubernetesObjectStore(request_timeout=operator_settings.request_timeout)
    reconciler = ClusterReconciler(
        store,
        default_image=operator_settings.default_image,
        default_storage=operator_settings.default_storage,
        transient_retry_budget=operator_settings.transient_retry_budget,
        creating_requeue_delay=operator_settings.creating_requeue_delay,
        max_retries=operator_settings.child_max_retries,
        backoff_factor=operator_settings.child_backoff_factor,
        initial_delay=operator_settings.child_initial_delay,
    )
    queue = WorkQueue(
        base_delay=operator_settings.requeue_base_delay,
        max_delay=operator_settings.requeue_max_delay,
    )
    return ClusterController(reconciler, queue, workers=operator_settings.workers)


@kopf.on.startup()
async def startup_handler(
    settings: kopf.OperatorSettings, memo: kopf.Memo, **_
) -> None:
    """
    Operator startup configuration.

    This handler runs once when the operator starts up and:
    - Configures peering so only one replica is active
    - Loads the Kubernetes client configuration
    - Starts the metrics server
    - Starts the reconcile workers and publishes the controller in memo
    """
    logging.info("Starting RabbitMQ Operator...")
    settings.watching.reconnect_backoff = 1.0

    # Configure peering for leader election with random priority
    settings.peering.name = operator_settings.operator_name
    settings.peering.priority = random.randint(0, 32767)
    logging.info(
        f"Peering priority set to {settings.peering.priority} for leader election"
    )

    watched_namespaces = operator_settings.watched_namespaces
    if watched_namespaces:
        logging.info(f"Watching namespaces: {', '.join(watched_namespaces)}")
    else:
        logging.info("Watching all namespaces (cluster-wide mode)")

    load_kubernetes_config()

    try:
        metrics_server = MetricsServer(
            port=operator_settings.metrics_port, host=operator_settings.metrics_host
        )
        await metrics_server.start()

        global _global_metrics_server
        _global_metrics_server = metrics_server
    except OSError as e:
        logging.error(f"Failed to start metrics server: {e}")
        # Don't fail operator startup if metrics server fails
        logging.warning("Continuing without metrics server")

    controller = build_controller()
    await controller.start()
    memo.controller = controller


@kopf.on.cleanup()
async def cleanup_handler(memo: kopf.Memo, **_) -> None:
    """Stop the reconcile workers and the metrics server."""
    logging.info("Shutting down RabbitMQ Operator...")

    controller = getattr(memo, "controller", None)
    if controller is not None:
        await controller.stop()

    global _global_metrics_server
    if _global_metrics_server:
        await _global_metrics_server.stop()
        _global_metrics_server = None


@kopf.on.probe(id="workers")
async def workers_probe(memo: kopf.Memo, **_) -> dict[str, object]:
    """Report whether the reconcile workers are running and the queue depth."""
    controller = getattr(memo, "controller", None)
    if controller is None:
        return {"running": False, "queued": 0}
    return {"running": controller.running, "queued": len(controller.queue)}


def main() -> None:
    """
    Main entry point for the operator.

    Configures logging, determines the namespace scope and runs kopf.
    """
    configure_logging()

    watched_namespaces = operator_settings.watched_namespaces

    try:
        if watched_namespaces:
            kopf.run(
                namespaces=watched_namespaces,
                liveness_endpoint="http://0.0.0.0:8080/healthz",
            )
        else:
            kopf.run(
                clusterwide=True,
                liveness_endpoint="http://0.0.0.0:8080/healthz",
            )
    except KeyboardInterrupt:
        logging.info("Received shutdown signal")
        sys.exit(0)
    except Exception as e:
        logging.error(f"Operator failed with error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
