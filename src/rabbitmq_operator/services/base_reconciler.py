"""
Base reconciler class providing common patterns for resource reconciliation.

This module defines the BaseReconciler class that implements the standard
pass lifecycle (correlation IDs, structured logging, metrics), error
classification into requeue decisions, and in-pass retry with backoff.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from ..constants import (
    DEFAULT_BACKOFF_FACTOR,
    DEFAULT_INITIAL_DELAY,
    DEFAULT_MAX_RETRIES,
)
from ..errors import (
    IrrecoverableStoreError,
    OperatorError,
    TemporaryError,
    TransientStoreError,
    classify_api_exception,
)
from ..observability.logging import OperatorLogger
from ..observability.metrics import metrics_collector
from ..store import ObjectStore

T = TypeVar("T")

OUTCOME_ABSENT = "absent"
OUTCOME_CONVERGED = "converged"
OUTCOME_CREATING = "creating"
OUTCOME_RETRY = "retry"
OUTCOME_FAILED = "failed"


@dataclass
class ReconcileResult:
    """
    Outcome of one reconcile pass and what the queue should do next.

    Attributes:
        outcome: One of absent, converged, creating, retry or failed
        cluster_status: Phase reported on the cluster, if a status was computed
        rate_limited: Requeue with the queue's per-key exponential backoff
        requeue_after: Requeue after a fixed delay in seconds
        error: Error that ended or degraded the pass
    """

    outcome: str
    cluster_status: str | None = None
    rate_limited: bool = False
    requeue_after: float | None = None
    error: OperatorError | None = None

    @property
    def requeue(self) -> bool:
        return self.rate_limited or self.requeue_after is not None


class BaseReconciler(ABC):
    """
    Base class for resource reconcilers.

    Provides common patterns for:
    - Pass lifecycle logging with correlation IDs
    - Metrics tracking
    - Translating escaped errors into requeue decisions
    - Bounded retry of transient failures inside a pass
    """

    resource_type = "resource"

    def __init__(
        self,
        store: ObjectStore,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
    ):
        """
        Initialize base reconciler.

        Args:
            store: Object store used for every read and write
            max_retries: In-pass retries for a transient failure
            backoff_factor: Multiplier for delay between retries
            initial_delay: Initial delay before first retry
        """
        self.store = store
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self.initial_delay = initial_delay
        self.logger = OperatorLogger(self.__class__.__name__)

    async def reconcile(
        self, namespace: str, name: str, attempt: int = 0
    ) -> ReconcileResult:
        """
        Main reconciliation entry point with metrics tracking.

        Args:
            namespace: Namespace of the resource
            name: Name of the resource
            attempt: Consecutive failed passes before this one

        Returns:
            Result describing the pass and the requeue decision
        """
        start_time = time.time()
        self.logger.log_reconciliation_start(
            resource_type=self.resource_type, resource_name=name, namespace=namespace
        )

        try:
            async with metrics_collector.track_reconciliation(
                resource_type=self.resource_type,
                namespace=namespace,
                name=name,
                operation="reconcile",
            ):
                result = await self.do_reconcile(namespace, name, attempt)
        except OperatorError as e:
            self.logger.log_reconciliation_error(
                resource_type=self.resource_type,
                resource_name=name,
                namespace=namespace,
                error=e,
                duration=time.time() - start_time,
            )
            if e.retryable:
                return ReconcileResult(OUTCOME_RETRY, rate_limited=True, error=e)
            return ReconcileResult(OUTCOME_FAILED, error=e)
        except Exception as e:
            # Wrap unexpected errors as temporary to allow retry
            error = TemporaryError(f"Unexpected error during reconciliation: {e}")
            self.logger.log_reconciliation_error(
                resource_type=self.resource_type,
                resource_name=name,
                namespace=namespace,
                error=error,
                duration=time.time() - start_time,
            )
            return ReconcileResult(OUTCOME_RETRY, rate_limited=True, error=error)

        duration = time.time() - start_time
        if result.error is None:
            self.logger.log_reconciliation_success(
                resource_type=self.resource_type,
                resource_name=name,
                namespace=namespace,
                duration=duration,
            )
        else:
            self.logger.warning(
                f"Reconciliation of {self.resource_type} {namespace}/{name} "
                f"ended with {result.outcome}: {result.error.message}",
                resource_type=self.resource_type,
                resource_name=name,
                namespace=namespace,
                operation="reconcile_degraded",
                duration=duration,
            )
        return result

    @abstractmethod
    async def do_reconcile(
        self, namespace: str, name: str, attempt: int
    ) -> ReconcileResult:
        """Perform one pass. Implemented by subclasses."""

    async def reconcile_with_retry(
        self,
        operation_name: str,
        operation_func: Callable[[], Awaitable[T]],
    ) -> T:
        """
        Execute an operation with exponential backoff retry.

        Only retryable operator errors are retried. Anything else is
        classified and raised immediately.

        Args:
            operation_name: Description of the operation for logging
            operation_func: Async function to execute

        Returns:
            Result of the operation function

        Raises:
            OperatorError: Last error encountered if all retries fail
        """
        last_exception: OperatorError | None = None
        delay = self.initial_delay

        for attempt in range(self.max_retries + 1):  # +1 for initial attempt
            try:
                return await operation_func()
            except OperatorError as e:
                last_exception = e
                if not e.retryable:
                    self.logger.error(
                        f"{operation_name} failed with non-retryable error: {e.message}"
                    )
                    raise
                if attempt >= self.max_retries:
                    self.logger.error(
                        f"{operation_name} failed after {self.max_retries} retries"
                    )
                    raise
                self.logger.warning(
                    f"{operation_name} attempt {attempt + 1} failed, "
                    f"retrying in {delay}s: {e.message}"
                )
                await asyncio.sleep(delay)
                delay *= self.backoff_factor
            except Exception as e:
                error = classify_api_exception(e, operation_name)
                if not isinstance(error, TransientStoreError | IrrecoverableStoreError):
                    # Not an API failure, most likely a bug in the operator
                    self.logger.error(
                        f"{operation_name} raised unexpected {type(e).__name__}: {e}",
                        exc_info=True,
                    )
                raise error from e

        # This should never be reached, but just in case
        if last_exception:
            raise last_exception
        raise TemporaryError(f"{operation_name} was not attempted")

