"""Error types used by the RabbitMQ operator."""

from .operator_errors import (
    ChildFailure,
    IrrecoverableStoreError,
    OperatorError,
    PermanentError,
    ReconciliationError,
    TemporaryError,
    TransientStoreError,
    ValidationError,
    classify_api_exception,
)

__all__ = [
    "ChildFailure",
    "IrrecoverableStoreError",
    "OperatorError",
    "PermanentError",
    "ReconciliationError",
    "TemporaryError",
    "TransientStoreError",
    "ValidationError",
    "classify_api_exception",
]
