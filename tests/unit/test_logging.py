"""
Unit tests for structured logging helpers.
"""

import json
import logging

import pytest

from rabbitmq_operator.observability.logging import (
    CorrelationIDFilter,
    HealthProbeFilter,
    OperatorLogger,
    StructuredFormatter,
    get_correlation_id,
    set_correlation_id,
    setup_structured_logging,
)


def make_record(message, **extra):
    record = logging.LogRecord("test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)


class TestFormatter:
    """Test JSON formatting."""

    def test_structured_fields_included(self):
        record = make_record(
            "Created Secret default/rabbitmq-one-admin",
            correlation_id="abc12345",
            kind="Secret",
            action="created",
        )

        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "Created Secret default/rabbitmq-one-admin"
        assert data["level"] == "INFO"
        assert data["correlation_id"] == "abc12345"
        assert data["kind"] == "Secret"
        assert data["action"] == "created"
        assert "resource_name" not in data


class TestFilters:
    """Test log filters."""

    def test_health_probe_lines_dropped(self):
        probe_filter = HealthProbeFilter()

        assert not probe_filter.filter(make_record('"GET /healthz HTTP/1.1" 200'))
        assert probe_filter.filter(make_record("Reconciliation started"))

    def test_correlation_id_attached(self):
        set_correlation_id("feedbeef")
        record = make_record("msg")

        assert CorrelationIDFilter().filter(record)
        assert record.correlation_id == "feedbeef"


class TestOperatorLogger:
    """Test the operator logger wrapper."""

    def test_reconciliation_start_sets_fresh_correlation_id(self):
        logger = OperatorLogger("test")

        first = logger.log_reconciliation_start("rabbitmqcluster", "r1", "ns")
        second = logger.log_reconciliation_start("rabbitmqcluster", "r1", "ns")

        assert first != second
        assert get_correlation_id() == second

    def test_child_operation_extra_fields(self, caplog):
        logger = OperatorLogger("rabbitmq_operator.test")

        with caplog.at_level(logging.INFO, logger="rabbitmq_operator.test"):
            logger.log_child_operation(
                kind="ConfigMap",
                child_name="rabbitmq-one-server-conf",
                namespace="default",
                action="patched",
            )

        record = caplog.records[-1]
        assert record.getMessage() == "Patched ConfigMap default/rabbitmq-one-server-conf"
        assert record.action == "patched"
        assert record.operation == "child_patched"


class TestSetup:
    """Test root logger configuration."""

    def test_json_setup(self, restore_root_logger):
        setup_structured_logging(log_level="DEBUG", enable_json_formatting=True)

        handler = restore_root_logger.handlers[-1]
        assert isinstance(handler.formatter, StructuredFormatter)
        assert restore_root_logger.level == logging.DEBUG
        assert logging.getLogger("kopf").level == logging.WARNING

    def test_health_probe_logging_opt_in(self, restore_root_logger):
        setup_structured_logging(log_health_probes=True)

        handler = restore_root_logger.handlers[-1]
        assert not any(isinstance(f, HealthProbeFilter) for f in handler.filters)
