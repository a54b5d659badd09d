"""Monitoring configuration for Hellenika."""
from prometheus_client import Counter, Histogram, start_http_server

# Study metrics
sessions_started = Counter(
    "hellenika_sessions_started_total",
    "Total number of study sessions started",
    ["activity_type"],
)

sessions_completed = Counter(
    "hellenika_sessions_completed_total",
    "Total number of study sessions completed",
    ["activity_type"],
)

answers_recorded = Counter(
    "hellenika_answers_total",
    "Total number of answers scored",
    ["modality", "result"],
)

session_accuracy = Histogram(
    "hellenika_session_accuracy_percent",
    "Accuracy of completed sessions in percent",
    buckets=[10, 25, 50, 75, 90, 100],
)

# Auth metrics
sign_in_attempts = Counter(
    "hellenika_sign_in_attempts_total",
    "Sign-in attempts by outcome",
    ["outcome"],
)

sign_ups = Counter(
    "hellenika_sign_ups_total",
    "Total number of accounts created",
)

# Error metrics
error_count = Counter(
    "hellenika_errors_total",
    "Total number of errors encountered",
    ["error_type"],
)

# Performance metrics
request_duration = Histogram(
    "hellenika_request_duration_seconds",
    "Duration of bot requests in seconds",
    ["handler"],
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0],
)

# Database metrics
db_errors = Counter(
    "hellenika_db_errors_total",
    "Total number of database errors",
    ["operation_type"],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
