"""
Prometheus metrics for the scoreboard service.

Metrics exposed:
- scan counters by kind and outcome
- per-table fetch failures against the cabinet and leaderboard
- scores added to the document
- model gauges (tables, scoreboards, duplicate groups needing work)
- scheduler status
"""
from prometheus_client import Counter, Gauge

# Scan Metrics
scans_total = Counter(
    "scoreboard_scans_total",
    "Total cabinet/leaderboard scans",
    ["kind", "status"]
)

scan_fetch_failures_total = Counter(
    "scoreboard_scan_fetch_failures_total",
    "Per-table fetch failures during scans",
    ["kind"]
)

scores_added_total = Counter(
    "scoreboard_scores_added_total",
    "Scores added to the document",
    ["source"]
)

# Model Metrics
tables_total = Gauge(
    "scoreboard_tables_total",
    "Tables known to the score model",
    ["state"]
)

scoreboards_total = Gauge(
    "scoreboard_scoreboards_total",
    "Scoreboards stored in the score model"
)

duplicate_groups_needing_work = Gauge(
    "scoreboard_duplicate_groups_needing_work",
    "Duplicate table groups that require operator action"
)

# Scheduler Metrics
scheduler_running = Gauge(
    "scoreboard_scheduler_running",
    "Whether the scan scheduler is running (1=running, 0=stopped)"
)


def record_scan(kind: str, success: bool) -> None:
    scans_total.labels(kind=kind, status="success" if success else "failed").inc()


def record_fetch_failure(kind: str) -> None:
    scan_fetch_failures_total.labels(kind=kind).inc()


def record_score_added(source: str) -> None:
    scores_added_total.labels(source=source).inc()


def update_model_metrics(model) -> None:
    """Refresh the model gauges from a ScoreModel."""
    from scoreboard.models.duplicates import find_duplicates

    tables = model.tables.values()
    disabled = sum(1 for table in tables if table.disabled)
    tables_total.labels(state="enabled").set(len(tables) - disabled)
    tables_total.labels(state="disabled").set(disabled)
    scoreboards_total.set(len(model.scores))
    duplicate_groups_needing_work.set(
        sum(1 for _, group in find_duplicates(model) if group.disposition.needs_work)
    )


def update_scheduler_metrics() -> None:
    from scoreboard.core.scheduler import get_scheduler

    scheduler = get_scheduler()
    scheduler_running.set(1 if scheduler and scheduler.running else 0)
