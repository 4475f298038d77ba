"""Unit tests for structured logging and metrics helpers."""

import io
import json
import logging

from docimport.observability.logger import CustomJsonFormatter, get_logger, log_operation
from docimport.observability.metrics import (
    REGISTRY,
    generate_metrics,
    increment_counter,
    schema_updates_total,
    write_metrics_file,
)


def capture(logger_name: str) -> tuple[logging.Logger, io.StringIO]:
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(CustomJsonFormatter("%(timestamp)s %(level)s %(logger)s %(message)s"))

    logger = logging.getLogger(logger_name)
    logger.handlers = [handler]
    logger.setLevel(logging.INFO)
    logger.propagate = False
    return logger, stream


class TestLogging:
    """Tests for the JSON logging helpers"""

    def test_json_record_fields(self):
        logger, stream = capture("test.json_record")

        logger.info("hello", extra={"collection": "users"})

        record = json.loads(stream.getvalue())
        assert record["message"] == "hello"
        assert record["level"] == "INFO"
        assert record["logger"] == "test.json_record"
        assert record["collection"] == "users"

    def test_log_operation_success_and_failure(self):
        logger, stream = capture("test.log_operation")

        with log_operation("Import documents", logger=logger, collection="users"):
            pass

        try:
            with log_operation("Import documents", logger=logger, collection="users"):
                raise ValueError("boom")
        except ValueError:
            pass

        records = [json.loads(line) for line in stream.getvalue().splitlines()]
        assert [r["message"] for r in records] == [
            "Starting: Import documents",
            "Completed: Import documents",
            "Starting: Import documents",
            "Failed: Import documents",
        ]
        assert records[1]["status"] == "success"
        assert records[3]["error_type"] == "ValueError"

    def test_package_loggers_share_root_handler(self):
        logger = get_logger("docimport.some.module")

        assert logger.name == "docimport.some.module"
        assert logging.getLogger("docimport").handlers


class TestMetrics:
    """Tests for the metrics helpers"""

    def test_counter_in_exposition(self):
        before = REGISTRY.get_sample_value(
            "docimport_schema_updates_total", {"collection": "metrics_test"}
        ) or 0.0

        increment_counter(schema_updates_total, collection="metrics_test")

        assert REGISTRY.get_sample_value(
            "docimport_schema_updates_total", {"collection": "metrics_test"}
        ) == before + 1
        assert b"docimport_schema_updates_total" in generate_metrics()

    def test_write_metrics_file(self, tmp_path):
        path = tmp_path / "docimport.prom"

        write_metrics_file(path)

        assert "docimport_documents_imported_total" in path.read_text()
