"""Prometheus metrics for monitoring batch validation, processing outcomes and transmission"""

from prometheus_client import Counter, Histogram

# Validation metrics
validation_counter = Counter(
    "ach_validation_total",
    "Batch validations run",
    ["result"],  # valid | invalid
)

validation_warning_counter = Counter(
    "ach_validation_warnings_total",
    "Warnings raised by batch validation",
)

# Processing metrics
batch_processed_counter = Counter(
    "ach_batch_processed_total",
    "Batches that reached a terminal status",
    ["outcome", "batch_type"],  # completed | failed
)

entries_written_counter = Counter(
    "ach_entries_written_total",
    "Entry detail records written to NACHA files",
)

amount_written_counter = Counter(
    "ach_amount_written_cents_total",
    "Cents written to NACHA files",
    ["direction"],  # credit | debit
)

format_duration_histogram = Histogram(
    "ach_format_duration_seconds",
    "Time spent rendering NACHA files",
    buckets=[0.001, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0],
)

# Transmission metrics
transmission_latency_histogram = Histogram(
    "ach_transmission_latency_seconds",
    "ACH operator upload response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

transmission_failure_counter = Counter(
    "ach_transmission_failures_total",
    "Failed ACH operator upload attempts",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_validation(is_valid: bool, warning_count: int) -> None:
    validation_counter.labels(result="valid" if is_valid else "invalid").inc()
    if warning_count:
        validation_warning_counter.inc(warning_count)


def record_batch_outcome(outcome: str, batch_type: str) -> None:
    """Record terminal batch status for monitoring failure rates by batch type"""
    batch_processed_counter.labels(outcome=outcome, batch_type=batch_type).inc()


def record_file_written(entry_count: int, total_credit_cents: int, total_debit_cents: int) -> None:
    entries_written_counter.inc(entry_count)
    amount_written_counter.labels(direction="credit").inc(total_credit_cents)
    amount_written_counter.labels(direction="debit").inc(total_debit_cents)
