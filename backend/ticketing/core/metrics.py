"""
Prometheus metrics for the inventory ledger and the event listing cache.
Exposed at /metrics.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Ledger metrics
ledger_operations = Counter(
    'ledger_operations_total',
    'Inventory ledger operations',
    ['operation', 'result']  # reserve/commit/release x success/rejected/conflict
)

ledger_latency = Histogram(
    'ledger_operation_latency_seconds',
    'Inventory ledger operation latency',
    ['operation'],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

ledger_retries = Counter(
    'ledger_retry_attempts_total',
    'Ledger retries caused by event version conflicts',
    ['operation']
)

tickets_sold = Counter(
    'tickets_sold_total',
    'Tickets committed by confirmed payments'
)

tickets_released = Counter(
    'tickets_released_total',
    'Tickets returned to inventory by cancellations'
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_ledger_operation(operation: str, result: str):
    """Record a ledger outcome. Result: success, rejected, conflict"""
    ledger_operations.labels(operation=operation, result=result).inc()


def record_ledger_retry(operation: str):
    ledger_retries.labels(operation=operation).inc()


def record_cache_operation(operation: str, hit: bool):
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
