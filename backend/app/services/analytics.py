"""Complaint analytics — single-pass aggregation over fetched rows."""
from collections import Counter
from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterable

RESOLVED_STATUSES = {"resolved", "closed"}
PENDING_EXCLUDED = {"resolved", "closed", "rejected"}
UNCATEGORIZED = "Uncategorized"
TOP_CATEGORIES = 6


def _utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _category_name(complaint: Any) -> str:
    category = getattr(complaint, "category", None)
    name = getattr(category, "name", None) if category is not None else None
    return name or UNCATEGORIZED


def build_summary(
    complaints: Iterable[Any],
    now: datetime | None = None,
    trend_days: int = 7,
) -> dict:
    """Aggregate complaint rows into dashboard figures.

    Rows need: status, priority, sla_status, created_at, resolved_at and an
    optional `category` with a `name`.

    The daily trend covers the `trend_days` UTC calendar days ending today,
    oldest first; each bucket counts complaints created and resolved that day.
    """
    now = _utc(now or datetime.now(timezone.utc))
    today = now.date()
    first_day = today - timedelta(days=trend_days - 1)
    created_by_day: Counter[date] = Counter()
    resolved_by_day: Counter[date] = Counter()

    by_status: Counter[str] = Counter()
    by_priority: Counter[str] = Counter()
    by_category: Counter[str] = Counter()
    by_sla: Counter[str] = Counter()
    resolution_hours: list[float] = []
    total = 0

    for c in complaints:
        total += 1
        by_status[c.status] += 1
        by_priority[c.priority] += 1
        by_category[_category_name(c)] += 1
        if c.status != "rejected":
            by_sla[c.sla_status or "on_track"] += 1

        created = _utc(c.created_at)
        if first_day <= created.date() <= today:
            created_by_day[created.date()] += 1

        if c.resolved_at is not None:
            resolved = _utc(c.resolved_at)
            if first_day <= resolved.date() <= today:
                resolved_by_day[resolved.date()] += 1
            if c.status in RESOLVED_STATUSES and resolved >= created:
                resolution_hours.append((resolved - created).total_seconds() / 3600.0)

    resolved_total = sum(by_status[s] for s in RESOLVED_STATUSES)
    pending_total = total - sum(by_status[s] for s in PENDING_EXCLUDED)

    trend = []
    for offset in range(trend_days):
        day = first_day + timedelta(days=offset)
        trend.append({
            "date": day.isoformat(),
            "day": day.strftime("%a"),
            "created": created_by_day[day],
            "resolved": resolved_by_day[day],
        })

    return {
        "total": total,
        "resolved": resolved_total,
        "pending": pending_total,
        "resolution_rate": round(resolved_total / total, 4) if total > 0 else 0.0,
        "avg_resolution_hours": (
            round(sum(resolution_hours) / len(resolution_hours), 2) if resolution_hours else None
        ),
        "by_status": dict(by_status),
        "by_priority": dict(by_priority),
        "by_category": [
            {"name": name, "count": count}
            for name, count in sorted(by_category.items(), key=lambda kv: (-kv[1], kv[0]))[:TOP_CATEGORIES]
        ],
        "by_sla_status": dict(by_sla),
        "daily_trend": trend,
    }
