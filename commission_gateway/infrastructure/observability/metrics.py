"""Prometheus metrics for monitoring payouts, quota achievement, and collaborator health"""

from prometheus_client import Counter, Histogram

from commission_gateway.domain.models import CompensationBreakdown, PeriodAchievement, TrackProgress

# Breakdown metrics
breakdown_counter = Counter(
    "commission_breakdown_total",
    "Total compensation breakdowns computed",
    ["status"],  # upcoming | current | closed | no_target
)

achievement_tier_counter = Counter(
    "commission_achievement_tier",
    "Quota tracks evaluated by tier reached",
    ["period", "track", "tier"],  # month | quarter, general | cfd, none | 90 | 100 | no_target
)

payout_histogram = Histogram(
    "commission_payout_total",
    "Computed grand total per breakdown",
    buckets=[5_000, 10_000, 15_000, 20_000, 30_000, 50_000],
)

# Webhook metrics
webhook_latency_histogram = Histogram(
    "webhook_latency_seconds",
    "Payroll webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

webhook_failure_counter = Counter(
    "webhook_failures_total",
    "Failed payroll webhook deliveries",
)

# Records API metrics
records_fetch_failures_counter = Counter(
    "records_fetch_failures_total",
    "Failed records service calls",
)

invalid_input_counter = Counter(
    "commission_invalid_input_total",
    "Breakdowns rejected for ill-formed input",
    ["record_type"],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def _tier_label(track: TrackProgress) -> str:
    if track.percentage is None:
        return "no_target"
    if track.percentage >= 100:
        return "100"
    if track.percentage >= 90:
        return "90"
    return "none"


def _record_period(achievement: PeriodAchievement) -> None:
    period = achievement.period.kind.value
    achievement_tier_counter.labels(period=period, track="general", tier=_tier_label(achievement.general)).inc()
    achievement_tier_counter.labels(period=period, track="cfd", tier=_tier_label(achievement.cfd)).inc()


def record_breakdown(breakdown: CompensationBreakdown) -> None:
    """Record breakdown metrics for monitoring payouts and quota attainment"""
    status = breakdown.monthly.status.value if breakdown.monthly else "no_target"
    breakdown_counter.labels(status=status).inc()
    payout_histogram.observe(float(breakdown.total))

    for achievement in (breakdown.monthly, breakdown.quarterly):
        if achievement is not None:
            _record_period(achievement)
