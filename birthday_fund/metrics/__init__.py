# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Prometheus metrics — single source of truth for all metric objects.
Imported by services and middleware. Never instantiated in controllers.
"""

from prometheus_client import Counter, Gauge, Histogram

# ── HTTP Metrics (used by middleware) ──
REQUEST_COUNT = Counter(
    "birthday_fund_requests_total",
    "Total HTTP requests to the birthday fund service",
    ["method", "endpoint", "status"],
)
REQUEST_LATENCY = Histogram(
    "birthday_fund_request_duration_seconds",
    "Request latency in seconds",
    ["method", "endpoint"],
)
HTTP_ERRORS = Counter(
    "birthday_fund_http_errors_total",
    "Total HTTP error responses",
    ["method", "endpoint", "status"],
)

# ── Business Metrics (updated by service layer only) ──
OBLIGATIONS_CREATED = Counter(
    "birthday_fund_obligations_created_total",
    "Yearly obligations created",
)
ACTIONS_CREATED = Counter(
    "birthday_fund_actions_created_total",
    "Actions created",
    ["kind"],
)
MESSAGES_SENT = Counter(
    "birthday_fund_messages_sent_total",
    "Outbound messages by kind and outcome",
    ["kind", "status"],
)
CONFIRMATIONS = Counter(
    "birthday_fund_confirmations_total",
    "Inbound confirmations by kind and outcome",
    ["kind", "outcome"],
)
INTEGRITY_GAPS = Counter(
    "birthday_fund_integrity_gaps_total",
    "Data-integrity gaps hit during a pass",
    ["pass_name"],
)
PASS_DURATION = Histogram(
    "birthday_fund_pass_duration_seconds",
    "Duration of scan / notify passes",
    ["pass_name"],
)
MEMBERS_REGISTERED = Counter(
    "birthday_fund_members_registered_total",
    "Members created through onboarding",
)
ACTIVE_CONVERSATIONS = Gauge(
    "birthday_fund_active_conversations",
    "Onboarding conversations currently held in memory",
)
