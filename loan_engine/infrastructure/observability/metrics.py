"""Prometheus metrics for lifecycle throughput, servicing activity and webhook performance"""

from prometheus_client import Counter, Histogram

# Origination metrics
application_transition_counter = Counter(
    "loan_application_transitions_total",
    "Loan application status transitions",
    ["from_status", "to_status"],
)

contracts_generated_counter = Counter(
    "loan_contracts_generated_total",
    "Contracts generated on approval",
)

contract_generation_failures_counter = Counter(
    "loan_contract_generation_failures_total",
    "Approvals rolled back because contract generation failed",
)

# Servicing metrics
payment_status_counter = Counter(
    "loan_payment_status_changes_total",
    "Installment status changes",
    ["status"],  # PAID | LATE | MISSED | CANCELLED
)

contract_status_counter = Counter(
    "loan_contract_transitions_total",
    "Contract status transitions",
    ["to_status"],
)

early_repayment_counter = Counter(
    "loan_early_repayments_total",
    "Contracts settled by early repayment",
)

# Notification webhook metrics
webhook_latency_histogram = Histogram(
    "notification_webhook_latency_seconds",
    "Notification webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

webhook_failure_counter = Counter(
    "notification_webhook_failures_total",
    "Failed notification webhook deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_application_transition(from_status: str, to_status: str) -> None:
    application_transition_counter.labels(from_status=from_status, to_status=to_status).inc()


def record_payment_status(status: str, count: int = 1) -> None:
    if count:
        payment_status_counter.labels(status=status).inc(count)


def record_contract_transition(to_status: str) -> None:
    contract_status_counter.labels(to_status=to_status).inc()
