"""
Reconciliation services for the RabbitMQ operator.

The cluster reconciler converges one RabbitmqCluster per pass. The work
queue and controller decide when passes run.
"""

from .base_reconciler import BaseReconciler, ReconcileResult
from .cluster_reconciler import ClusterReconciler
from .controller import ClusterController
from .status_reporter import PassOutcome, StatusReporter
from .work_queue import WorkQueue, WorkQueueShutDown

__all__ = [
    "BaseReconciler",
    "ClusterController",
    "ClusterReconciler",
    "PassOutcome",
    "ReconcileResult",
    "StatusReporter",
    "WorkQueue",
    "WorkQueueShutDown",
]
