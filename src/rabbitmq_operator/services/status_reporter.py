"""
Status reporting for RabbitmqClusters.

Status is a projection of the last completed reconcile pass. The phase
follows an explicit state machine:

    ""        -> creating | created | error
    creating  -> creating | created | error
    created   -> created  | creating (required child genuinely absent) | error
    error     -> error    | creating | created

Transient failures inside the retry budget never move the phase. They keep
the previous status so a flaky read cannot regress ``created`` to
``creating``.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from rabbitmq_operator.constants import (
    CLUSTER_STATUS_CREATED,
    CLUSTER_STATUS_CREATING,
    CLUSTER_STATUS_EMPTY,
    CLUSTER_STATUS_ERROR,
    CONDITION_CHILDREN_CREATED,
    CONDITION_FALSE,
    CONDITION_RECONCILED,
    CONDITION_TRUE,
    CONDITION_UNKNOWN,
    REASON_ALL_PRESENT,
    REASON_CONVERGED,
    REASON_CREATING,
    REASON_PENDING,
    REASON_RETRIES_EXHAUSTED,
    REASON_STORE_ERROR,
    REASON_VALIDATION_FAILED,
)
from rabbitmq_operator.errors import ChildFailure, ValidationError
from rabbitmq_operator.models import RabbitmqClusterStatus

# Phase transitions allowed by the state machine
ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    CLUSTER_STATUS_EMPTY: frozenset(
        {CLUSTER_STATUS_CREATING, CLUSTER_STATUS_CREATED, CLUSTER_STATUS_ERROR}
    ),
    CLUSTER_STATUS_CREATING: frozenset(
        {CLUSTER_STATUS_CREATING, CLUSTER_STATUS_CREATED, CLUSTER_STATUS_ERROR}
    ),
    CLUSTER_STATUS_CREATED: frozenset(
        {CLUSTER_STATUS_CREATED, CLUSTER_STATUS_CREATING, CLUSTER_STATUS_ERROR}
    ),
    CLUSTER_STATUS_ERROR: frozenset(
        {CLUSTER_STATUS_ERROR, CLUSTER_STATUS_CREATING, CLUSTER_STATUS_CREATED}
    ),
}


@dataclass
class PassOutcome:
    """What one reconcile pass observed and achieved."""

    generation: int | None = None
    validation_error: ValidationError | None = None
    terminal_failures: list[ChildFailure] = field(default_factory=list)
    transient_failures: list[ChildFailure] = field(default_factory=list)
    # Required children the pass read as absent (404), not merely unreadable
    missing_required: list[str] = field(default_factory=list)
    retries_exhausted: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.validation_error is not None or bool(self.terminal_failures)

    @property
    def is_transient(self) -> bool:
        return bool(self.transient_failures)


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _failure_message(failures: list[ChildFailure]) -> str:
    return "; ".join(f.describe() for f in failures)


class StatusReporter:
    """Derives RabbitmqCluster status from pass outcomes."""

    def next_phase(self, previous: str, outcome: PassOutcome) -> str:
        """
        Apply the phase state machine.

        Args:
            previous: Phase currently stored on the cluster
            outcome: Result of the pass that just completed

        Returns:
            The phase to report
        """
        if outcome.is_terminal:
            phase = CLUSTER_STATUS_ERROR
        elif outcome.is_transient and outcome.retries_exhausted:
            phase = CLUSTER_STATUS_ERROR
        elif outcome.missing_required:
            phase = CLUSTER_STATUS_CREATING
        elif outcome.is_transient:
            phase = previous or CLUSTER_STATUS_CREATING
        else:
            phase = CLUSTER_STATUS_CREATED

        if phase not in ALLOWED_TRANSITIONS.get(previous, frozenset()):
            raise ValueError(f"Illegal status transition {previous!r} -> {phase!r}")
        return phase

    def compute(
        self, previous: RabbitmqClusterStatus, outcome: PassOutcome
    ) -> RabbitmqClusterStatus:
        """Compute the status to store after a pass."""
        phase = self.next_phase(previous.cluster_status, outcome)

        if (
            outcome.is_transient
            and not outcome.is_terminal
            and not outcome.retries_exhausted
            and not outcome.missing_required
            and previous.cluster_status
        ):
            # Transient trouble is not surfaced
            return previous.model_copy(deep=True)

        conditions = [dict(c) for c in previous.conditions]
        reconciled = self._reconciled_condition(phase, outcome)
        conditions = self._set_condition(conditions, reconciled, outcome.generation)

        children = self._children_condition(outcome)
        if children is not None:
            conditions = self._set_condition(conditions, children, outcome.generation)

        return RabbitmqClusterStatus(
            cluster_status=phase,
            conditions=conditions,
            observed_generation=outcome.generation,
        )

    def needs_write(
        self, previous: RabbitmqClusterStatus, new: RabbitmqClusterStatus
    ) -> bool:
        return previous.to_status_dict() != new.to_status_dict()

    def _reconciled_condition(
        self, phase: str, outcome: PassOutcome
    ) -> tuple[str, str, str, str]:
        if outcome.validation_error is not None:
            return (
                CONDITION_RECONCILED,
                CONDITION_FALSE,
                REASON_VALIDATION_FAILED,
                outcome.validation_error.message,
            )
        if outcome.terminal_failures:
            return (
                CONDITION_RECONCILED,
                CONDITION_FALSE,
                REASON_STORE_ERROR,
                _failure_message(outcome.terminal_failures),
            )
        if phase == CLUSTER_STATUS_ERROR:
            return (
                CONDITION_RECONCILED,
                CONDITION_FALSE,
                REASON_RETRIES_EXHAUSTED,
                _failure_message(outcome.transient_failures),
            )
        if phase == CLUSTER_STATUS_CREATED:
            return (
                CONDITION_RECONCILED,
                CONDITION_TRUE,
                REASON_CONVERGED,
                "All child resources match the cluster spec",
            )
        if outcome.is_transient:
            return (
                CONDITION_RECONCILED,
                CONDITION_UNKNOWN,
                REASON_PENDING,
                "Waiting for the API server to accept pending changes",
            )
        return (
            CONDITION_RECONCILED,
            CONDITION_FALSE,
            REASON_CREATING,
            "Creating child resources",
        )

    def _children_condition(
        self, outcome: PassOutcome
    ) -> tuple[str, str, str, str] | None:
        if outcome.validation_error is not None:
            return None
        if outcome.missing_required:
            return (
                CONDITION_CHILDREN_CREATED,
                CONDITION_FALSE,
                REASON_CREATING,
                f"Creating {', '.join(sorted(outcome.missing_required))}",
            )
        if outcome.is_transient or outcome.terminal_failures:
            return None
        return (
            CONDITION_CHILDREN_CREATED,
            CONDITION_TRUE,
            REASON_ALL_PRESENT,
            "StatefulSet and services exist",
        )

    def _set_condition(
        self,
        conditions: list[dict[str, Any]],
        condition: tuple[str, str, str, str],
        generation: int | None,
    ) -> list[dict[str, Any]]:
        condition_type, status, reason, message = condition
        existing = next((c for c in conditions if c.get("type") == condition_type), None)

        # The transition time only moves when the status value changes
        if existing is not None and existing.get("status") == status:
            transition_time = existing.get("lastTransitionTime") or _now()
        else:
            transition_time = _now()

        new_condition: dict[str, Any] = {
            "type": condition_type,
            "status": status,
            "reason": reason,
            "message": message,
            "lastTransitionTime": transition_time,
        }
        if generation is not None:
            new_condition["observedGeneration"] = generation

        updated = [c for c in conditions if c.get("type") != condition_type]
        updated.append(new_condition)
        return sorted(updated, key=lambda c: c.get("type", ""))
