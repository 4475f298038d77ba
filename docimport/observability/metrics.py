"""
Prometheus metrics collection for docimport

This module provides metrics instrumentation for monitoring import
throughput, adaptive batch splitting and schema evolution.
"""
from pathlib import Path

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    write_to_textfile,
)


# Registry private to the importer
REGISTRY = CollectorRegistry()


# =======================
# IMPORT METRICS
# =======================

documents_imported_total = Counter(
    name="docimport_documents_imported_total",
    documentation="Total number of documents successfully inserted",
    labelnames=["collection"],
    registry=REGISTRY,
)

batches_submitted_total = Counter(
    name="docimport_batches_submitted_total",
    documentation="Total number of sub-batches submitted to the collection store",
    labelnames=["collection", "status"],  # status: success, error
    registry=REGISTRY,
)

batch_splits_total = Counter(
    name="docimport_batch_splits_total",
    documentation="Number of times a sub-batch was halved after a size limit error",
    labelnames=["collection"],
    registry=REGISTRY,
)

working_batch_size = Gauge(
    name="docimport_working_batch_size",
    documentation="Last sub-batch size accepted by the collection store",
    labelnames=["collection"],
    registry=REGISTRY,
)

# =======================
# SCHEMA METRICS
# =======================

schema_updates_total = Counter(
    name="docimport_schema_updates_total",
    documentation="Number of inferred schemas pushed to the collection store",
    labelnames=["collection"],
    registry=REGISTRY,
)

null_cleanups_total = Counter(
    name="docimport_null_cleanups_total",
    documentation="Number of batches retried after stripping null values and empty arrays",
    labelnames=["collection"],
    registry=REGISTRY,
)

# =======================
# STORE METRICS
# =======================

insert_errors_total = Counter(
    name="docimport_insert_errors_total",
    documentation="Insert failures reported by the collection store",
    labelnames=["collection", "kind"],
    registry=REGISTRY,
)

insert_duration_seconds = Histogram(
    name="docimport_insert_duration_seconds",
    documentation="Time spent in collection store insert calls",
    labelnames=["collection"],
    buckets=[0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0],
    registry=REGISTRY,
)


def generate_metrics() -> bytes:
    """
    Generate Prometheus metrics in text format

    Returns:
        Metrics in Prometheus exposition format
    """
    return generate_latest(REGISTRY)


def write_metrics_file(path: str | Path) -> None:
    """
    Write the current metrics to a textfile-collector compatible file

    Args:
        path: Destination file
    """
    write_to_textfile(str(path), REGISTRY)


# =======================
# CONTEXT MANAGERS
# =======================

class track_duration:
    """
    Context manager for tracking operation duration

    Usage:
        with track_duration(insert_duration_seconds, collection="users"):
            store.insert("users", docs)
    """

    def __init__(self, histogram: Histogram, **labels):
        self.histogram = histogram
        self.labels = labels
        self.timer = None

    def __enter__(self):
        self.timer = self.histogram.labels(**self.labels).time()
        self.timer.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.timer.__exit__(exc_type, exc_val, exc_tb)
        return False


def increment_counter(counter: Counter, value: float = 1.0, **labels) -> None:
    """
    Increment a counter metric

    Args:
        counter: Prometheus Counter metric
        value: Amount to increment (default: 1.0)
        **labels: Label values for the metric
    """
    counter.labels(**labels).inc(value)


def set_gauge(gauge: Gauge, value: float, **labels) -> None:
    """
    Set a gauge metric value

    Args:
        gauge: Prometheus Gauge metric
        value: Value to set
        **labels: Label values for the metric
    """
    gauge.labels(**labels).set(value)
