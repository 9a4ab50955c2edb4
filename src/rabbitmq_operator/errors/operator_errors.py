"""
Operator error hierarchy with categorization and retry logic.

This module defines the error types used throughout the RabbitMQ operator.
Every error carries a category, whether retrying can help, a suggested delay
and a hint for the user, so the reconcile engine can decide between an
in-pass retry, a rate-limited requeue and a terminal error status.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError as Urllib3HTTPError

from rabbitmq_operator.constants import ERROR_AGGREGATED

# HTTP statuses the API server returns for conditions that clear up on their own
TRANSIENT_HTTP_STATUSES = frozenset({404, 409, 410, 429})


class OperatorError(Exception):
    """
    Base error class for all operator-related exceptions.

    Provides categorization, retry behavior, and user guidance for resolution.
    """

    def __init__(
        self,
        message: str,
        category: str,
        retryable: bool = True,
        delay: int = 30,
        user_action: str | None = None,
        cause: Exception | None = None,
    ):
        """
        Initialize operator error.

        Args:
            message: Human-readable error description
            category: Error category (validation, store, reconciliation)
            retryable: Whether retrying the operation can succeed
            delay: Suggested retry delay in seconds
            user_action: What user should do to resolve the issue
            cause: Underlying exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.category = category
        self.retryable = retryable
        self.delay = delay
        self.user_action = user_action
        self.cause = cause

    def __str__(self) -> str:
        """Enhanced string representation with user guidance."""
        base_msg = super().__str__()
        if self.user_action:
            return f"{base_msg}\nAction required: {self.user_action}"
        return base_msg


class ValidationError(OperatorError):
    """Error in resource specification validation."""

    def __init__(
        self, message: str, field: str | None = None, user_action: str | None = None
    ):
        action = user_action or "Check resource specification and fix validation errors"
        if field:
            message = f"Validation error in field '{field}': {message}"
        self.field = field
        super().__init__(
            message=message, category="validation", retryable=False, user_action=action
        )


class TemporaryError(OperatorError):
    """Temporary error that should be retried."""

    def __init__(
        self,
        message: str,
        delay: int = 30,
        user_action: str | None = None,
        category: str = "temporary",
        cause: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=category,
            retryable=True,
            delay=delay,
            user_action=user_action
            or "Wait for automatic retry or check system status",
            cause=cause,
        )


class PermanentError(OperatorError):
    """Permanent error that should not be retried."""

    def __init__(
        self,
        message: str,
        user_action: str | None = None,
        category: str = "permanent",
        cause: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=category,
            retryable=False,
            user_action=user_action or "Manual intervention required to resolve",
            cause=cause,
        )


class TransientStoreError(TemporaryError):
    """Store rejected or missed a request in a way that clears up on its own.

    Covers optimistic-concurrency conflicts, throttling, objects not yet
    visible, server errors, timeouts and connection failures.
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        delay: int = 5,
        cause: Exception | None = None,
    ):
        self.status = status
        super().__init__(
            message=message,
            delay=delay,
            category="store",
            user_action="Wait for automatic retry or check API server health",
            cause=cause,
        )


class IrrecoverableStoreError(PermanentError):
    """Store refused a request and will keep refusing it.

    Covers authentication and authorization failures, quota violations and
    objects rejected as invalid.
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        reason: str | None = None,
        cause: Exception | None = None,
    ):
        self.status = status
        self.reason = reason
        if status in (401, 403):
            action = "Check service account permissions, RBAC configuration and namespace quotas"
        else:
            action = "Check the RabbitmqCluster spec for values the API server rejects"
        super().__init__(
            message=message, user_action=action, category="store", cause=cause
        )


@dataclass(frozen=True)
class ChildFailure:
    """One child object that could not be converged during a pass."""

    kind: str
    name: str
    error: OperatorError

    def describe(self) -> str:
        return f"{self.kind}/{self.name}: {self.error.message}"


class ReconciliationError(OperatorError):
    """Aggregate of child failures collected during one reconcile pass."""

    def __init__(
        self,
        failures: Sequence[ChildFailure],
        user_action: str | None = None,
    ):
        self.failures = list(failures)
        details = "; ".join(f.describe() for f in self.failures)
        super().__init__(
            message=ERROR_AGGREGATED.format(count=len(self.failures), details=details),
            category="reconciliation",
            retryable=all(f.error.retryable for f in self.failures),
            delay=min((f.error.delay for f in self.failures), default=60),
            user_action=user_action
            or "Inspect operator logs and resource specification for issues",
        )

    @property
    def terminal_failures(self) -> list[ChildFailure]:
        return [f for f in self.failures if not f.error.retryable]


def classify_api_exception(exc: Exception, operation: str) -> OperatorError:
    """
    Translate a Kubernetes client exception into the operator error taxonomy.

    Args:
        exc: Exception raised by the kubernetes client or its transport
        operation: Description of the failed call, used in the message

    Returns:
        TransientStoreError when retrying can succeed, otherwise
        IrrecoverableStoreError
    """
    if isinstance(exc, OperatorError):
        return exc

    if isinstance(exc, ApiException):
        status = exc.status
        reason = exc.reason
        message = f"{operation} failed: HTTP {status} {reason or ''}".rstrip()
        if status is None or status >= 500 or status in TRANSIENT_HTTP_STATUSES:
            return TransientStoreError(message, status=status, cause=exc)
        return IrrecoverableStoreError(message, status=status, reason=reason, cause=exc)

    if isinstance(exc, Urllib3HTTPError | ConnectionError | TimeoutError):
        return TransientStoreError(
            f"{operation} failed: {type(exc).__name__}: {exc}", cause=exc
        )

    # Unexpected errors are treated as temporary so the key is retried
    return TemporaryError(
        f"{operation} failed with unexpected error: {type(exc).__name__}: {exc}",
        cause=exc,
    )
