"""
RabbitmqCluster reconciler - converges the children of one cluster.

A pass fetches the cluster, builds the desired children, creates the
missing ones, patches drifted ones with a minimal merge patch and writes
status only when it changed. Failures of one child never abort the pass:
every child is attempted and the failures are aggregated to decide the
status and the requeue.
"""

from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..builders import ChildDescriptor, build_desired_state
from ..constants import (
    CLUSTER_KIND,
    CLUSTER_STATUS_CREATING,
    CLUSTER_STATUS_ERROR,
    DEFAULT_CREATING_REQUEUE_DELAY,
    DEFAULT_PERSISTENCE_STORAGE,
    DEFAULT_RABBITMQ_IMAGE,
    DEFAULT_TRANSIENT_RETRY_BUDGET,
)
from ..errors import (
    ChildFailure,
    OperatorError,
    ReconciliationError,
    ValidationError,
)
from ..models import RabbitmqCluster, RabbitmqClusterStatus
from ..observability.metrics import metrics_collector
from ..store import ObjectStore
from .base_reconciler import (
    OUTCOME_ABSENT,
    OUTCOME_CONVERGED,
    OUTCOME_CREATING,
    OUTCOME_FAILED,
    OUTCOME_RETRY,
    BaseReconciler,
    ReconcileResult,
)
from .diff import compute_patch
from .status_reporter import PassOutcome, StatusReporter

ACTION_CREATED = "created"
ACTION_PATCHED = "patched"
ACTION_UNCHANGED = "unchanged"
ACTION_FAILED = "failed"


class ClusterReconciler(BaseReconciler):
    """Reconciler for RabbitmqCluster resources."""

    resource_type = "rabbitmqcluster"

    def __init__(
        self,
        store: ObjectStore,
        status_reporter: StatusReporter | None = None,
        default_image: str = DEFAULT_RABBITMQ_IMAGE,
        default_storage: str = DEFAULT_PERSISTENCE_STORAGE,
        transient_retry_budget: int = DEFAULT_TRANSIENT_RETRY_BUDGET,
        creating_requeue_delay: float = DEFAULT_CREATING_REQUEUE_DELAY,
        **retry_options: Any,
    ):
        """
        Initialize the cluster reconciler.

        Args:
            store: Object store used for every read and write
            status_reporter: Status state machine, a default one if not provided
            default_image: Image used when spec.image is unset
            default_storage: Volume size used when persistence.storage is unset
            transient_retry_budget: Failed passes tolerated before a transient
                error is reported as cluster status ``error``
            creating_requeue_delay: Delay before confirming a creating cluster
            **retry_options: In-pass retry settings passed to BaseReconciler
        """
        super().__init__(store, **retry_options)
        self.status_reporter = status_reporter or StatusReporter()
        self.default_image = default_image
        self.default_storage = default_storage
        self.transient_retry_budget = transient_retry_budget
        self.creating_requeue_delay = creating_requeue_delay

    async def do_reconcile(
        self, namespace: str, name: str, attempt: int
    ) -> ReconcileResult:
        obj = await self.reconcile_with_retry(
            f"get RabbitmqCluster {namespace}/{name}",
            lambda: self.store.get_cluster(namespace, name),
        )
        if obj is None:
            self.logger.info(
                f"RabbitmqCluster {namespace}/{name} not found, nothing to do",
                namespace=namespace,
                resource_name=name,
            )
            metrics_collector.remove_cluster(namespace, name)
            return ReconcileResult(OUTCOME_ABSENT)

        previous = self._previous_status(obj)
        outcome = PassOutcome(
            generation=(obj.get("metadata") or {}).get("generation"),
            retries_exhausted=attempt + 1 >= self.transient_retry_budget,
        )

        try:
            cluster = self._parse_cluster(obj)
            descriptors = build_desired_state(
                cluster, self.default_image, self.default_storage
            )
        except ValidationError as e:
            outcome.validation_error = e
            await self._write_status(namespace, name, previous, outcome)
            if outcome.transient_failures:
                return ReconcileResult(
                    OUTCOME_RETRY,
                    cluster_status=CLUSTER_STATUS_ERROR,
                    rate_limited=True,
                    error=e,
                )
            return ReconcileResult(
                OUTCOME_FAILED, cluster_status=CLUSTER_STATUS_ERROR, error=e
            )

        for descriptor in descriptors:
            await self._converge_child_safely(namespace, descriptor, outcome)

        status = await self._write_status(namespace, name, previous, outcome)
        return self._result(status.cluster_status, outcome)

    async def _converge_child_safely(
        self, namespace: str, descriptor: ChildDescriptor, outcome: PassOutcome
    ) -> None:
        try:
            await self.reconcile_with_retry(
                f"converge {descriptor.kind} {namespace}/{descriptor.name}",
                lambda: self._converge_child(namespace, descriptor, outcome),
            )
        except OperatorError as e:
            failure = ChildFailure(descriptor.kind, descriptor.name, e)
            if e.retryable:
                outcome.transient_failures.append(failure)
            else:
                outcome.terminal_failures.append(failure)
            metrics_collector.record_child_operation(
                descriptor.kind, namespace, ACTION_FAILED
            )

    async def _converge_child(
        self, namespace: str, descriptor: ChildDescriptor, outcome: PassOutcome
    ) -> str:
        """Create or patch one child. Returns the action taken."""
        live = await self.store.get(descriptor.kind, namespace, descriptor.name)

        if live is None:
            if descriptor.required and descriptor.name not in outcome.missing_required:
                outcome.missing_required.append(descriptor.name)
            await self.store.create(
                descriptor.kind, namespace, descriptor.creation_body()
            )
            action = ACTION_CREATED
        else:
            patch = compute_patch(descriptor.kind, descriptor.body, live)
            if patch:
                await self.store.patch(
                    descriptor.kind, namespace, descriptor.name, patch
                )
                action = ACTION_PATCHED
            else:
                action = ACTION_UNCHANGED

        metrics_collector.record_child_operation(descriptor.kind, namespace, action)
        if action != ACTION_UNCHANGED:
            self.logger.log_child_operation(
                kind=descriptor.kind,
                child_name=descriptor.name,
                namespace=namespace,
                action=action,
            )
        return action

    async def _write_status(
        self,
        namespace: str,
        name: str,
        previous: RabbitmqClusterStatus,
        outcome: PassOutcome,
    ) -> RabbitmqClusterStatus:
        status = self.status_reporter.compute(previous, outcome)
        metrics_collector.update_cluster_status(namespace, name, status.cluster_status)
        if not self.status_reporter.needs_write(previous, status):
            return status

        try:
            await self.reconcile_with_retry(
                f"update status of RabbitmqCluster {namespace}/{name}",
                lambda: self.store.patch_cluster_status(
                    namespace, name, status.to_status_dict()
                ),
            )
        except OperatorError as e:
            outcome_list = (
                outcome.transient_failures if e.retryable else outcome.terminal_failures
            )
            outcome_list.append(ChildFailure(CLUSTER_KIND, f"{name}/status", e))
            return status

        self.logger.info(
            f"RabbitmqCluster {namespace}/{name} status is now "
            f"'{status.cluster_status}'",
            namespace=namespace,
            resource_name=name,
            operation="status_update",
        )
        return status

    def _result(self, cluster_status: str, outcome: PassOutcome) -> ReconcileResult:
        failures = outcome.terminal_failures + outcome.transient_failures
        error = ReconciliationError(failures) if failures else None

        if error is not None and error.terminal_failures:
            return ReconcileResult(
                OUTCOME_FAILED, cluster_status=cluster_status, error=error
            )
        if error is not None:
            return ReconcileResult(
                OUTCOME_RETRY,
                cluster_status=cluster_status,
                rate_limited=True,
                error=error,
            )
        if cluster_status == CLUSTER_STATUS_CREATING:
            return ReconcileResult(
                OUTCOME_CREATING,
                cluster_status=cluster_status,
                requeue_after=self.creating_requeue_delay,
            )
        return ReconcileResult(OUTCOME_CONVERGED, cluster_status=cluster_status)

    def _parse_cluster(self, obj: dict[str, Any]) -> RabbitmqCluster:
        """Parse the raw object, wrapping schema errors as ValidationError."""
        try:
            return RabbitmqCluster.from_object(obj)
        except PydanticValidationError as e:
            first = e.errors()[0] if e.errors() else {}
            location = ".".join(str(part) for part in first.get("loc", ()))
            raise ValidationError(
                first.get("msg", str(e)), field=location or None
            ) from e

    def _previous_status(self, obj: dict[str, Any]) -> RabbitmqClusterStatus:
        try:
            return RabbitmqClusterStatus.model_validate(obj.get("status") or {})
        except PydanticValidationError as e:
            self.logger.warning(f"Ignoring unreadable status: {e}")
            return RabbitmqClusterStatus()

