"""
Prometheus metrics for observability
"""

import re

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from prometheus_client.core import CollectorRegistry

# Create a custom registry to avoid conflicts
metrics_registry = CollectorRegistry()

# HTTP request metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["path", "method", "status"],
    registry=metrics_registry,
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["path", "method"],
    registry=metrics_registry,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# Ledger metrics
ledger_entries_total = Counter(
    "ledger_entries_total",
    "Total ledger entries appended",
    ["category", "status"],
    registry=metrics_registry,
)

ledger_reconciliation_drift_total = Counter(
    "ledger_reconciliation_drift_total",
    "Wallets whose cached balance differs from the ledger sum",
    registry=metrics_registry,
)

# Request lifecycle metrics
withdrawal_requests_total = Counter(
    "withdrawal_requests_total",
    "Withdrawal request transitions",
    ["kind", "outcome"],  # requested, approved, completed, rejected, failed, cancelled
    registry=metrics_registry,
)

transfer_requests_total = Counter(
    "transfer_requests_total",
    "Transfer request transitions",
    ["kind", "outcome"],
    registry=metrics_registry,
)

gate_rejections_total = Counter(
    "gate_rejections_total",
    "Requests rejected by the validation pipeline",
    ["code"],
    registry=metrics_registry,
)

# Investment metrics
investment_actions_total = Counter(
    "investment_actions_total",
    "Total investment actions",
    ["action"],  # opened, matured
    registry=metrics_registry,
)

profit_accruals_total = Counter(
    "profit_accruals_total",
    "Profit accrual ledger credits",
    registry=metrics_registry,
)

capacity_rejections_total = Counter(
    "capacity_rejections_total",
    "Slot reservations refused because the shop was full",
    registry=metrics_registry,
)

# Concurrency metrics
lock_conflicts_total = Counter(
    "lock_conflicts_total",
    "Resource lock acquisitions that timed out",
    ["resource"],
    registry=metrics_registry,
)

_UUID_RE = re.compile(r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}")


def _normalize_path(path: str) -> str:
    """Replace identifiers in paths so labels stay low-cardinality"""
    return _UUID_RE.sub("{id}", path)


def record_http_request(
    path: str,
    method: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """
    Record HTTP request metrics.

    Args:
        path: Request path (normalized)
        method: HTTP method
        status_code: Response status code
        duration_seconds: Request duration in seconds
    """
    normalized_path = _normalize_path(path)

    http_requests_total.labels(
        path=normalized_path,
        method=method.upper(),
        status=str(status_code),
    ).inc()

    http_request_duration_seconds.labels(
        path=normalized_path,
        method=method.upper(),
    ).observe(duration_seconds)


def record_ledger_entry(category: str, status: str) -> None:
    ledger_entries_total.labels(category=category, status=status).inc()


def record_reconciliation_drift(count: int = 1) -> None:
    ledger_reconciliation_drift_total.inc(count)


def record_withdrawal(kind: str, outcome: str) -> None:
    withdrawal_requests_total.labels(kind=kind, outcome=outcome).inc()


def record_transfer(kind: str, outcome: str) -> None:
    transfer_requests_total.labels(kind=kind, outcome=outcome).inc()


def record_gate_rejection(code: str) -> None:
    gate_rejections_total.labels(code=code).inc()


def record_investment_action(action: str) -> None:
    investment_actions_total.labels(action=action).inc()


def record_profit_accrual() -> None:
    profit_accruals_total.inc()


def record_capacity_rejection() -> None:
    capacity_rejections_total.inc()


def record_lock_conflict(resource: str) -> None:
    lock_conflicts_total.labels(resource=resource).inc()


def get_metrics_output() -> bytes:
    """Render the registry in Prometheus exposition format"""
    return generate_latest(metrics_registry)


__all__ = [
    "CONTENT_TYPE_LATEST",
    "get_metrics_output",
    "record_http_request",
    "record_ledger_entry",
    "record_reconciliation_drift",
    "record_withdrawal",
    "record_transfer",
    "record_gate_rejection",
    "record_investment_action",
    "record_profit_accrual",
    "record_capacity_rejection",
    "record_lock_conflict",
]
