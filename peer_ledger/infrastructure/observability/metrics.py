"""Prometheus metrics for command outcomes, capital, repayments and webhook performance"""

from prometheus_client import Counter, Gauge, Histogram

from peer_ledger.domain.commands import OverdueSweep
from peer_ledger.domain.engine import CommandResult

# Command metrics
command_counter = Counter(
    "peer_ledger_commands_total",
    "Ledger commands handled",
    ["command", "outcome"],  # committed | rejected | noop
)

overdue_marked_counter = Counter(
    "peer_ledger_overdue_marked_total",
    "Loans flagged overdue by the sweep",
)

payments_counter = Counter(
    "peer_ledger_payments_cents_total",
    "Repayments received in cents",
    ["method"],  # cash | bank | card | mobile
)

available_capital_gauge = Gauge(
    "peer_ledger_available_capital_cents",
    "Lender capital not deployed in outstanding principal",
)

# Change feed metrics
webhook_latency_histogram = Histogram(
    "webhook_latency_seconds",
    "Change feed webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

webhook_failure_counter = Counter(
    "webhook_failures_total",
    "Failed webhook deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_rejection(command: str) -> None:
    command_counter.labels(command=command, outcome="rejected").inc()


def record_commit(result: CommandResult, available_capital_cents: int) -> None:
    """Engine listener: update counters for a committed command"""
    command_counter.labels(command=result.command.name, outcome="committed").inc()

    if isinstance(result.command, OverdueSweep):
        overdue_marked_counter.inc(len(result.changes.loans.updated))

    for payment in result.changes.payments.inserted:
        payments_counter.labels(method=payment.method.value).inc(payment.amount.cents)

    available_capital_gauge.set(available_capital_cents)
