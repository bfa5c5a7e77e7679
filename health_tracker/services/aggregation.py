"""
Time-window aggregation of heart-rate readings for the chart and history views.

Windows:
- today: readings on the reference's calendar date, one point each
- weekly: the last 7 days, one point per calendar date
- monthly: the last 30 days, one point per week

Calendar dates and week boundaries are evaluated in the reference instant's
timezone. Internals never read the clock; only `summarize_window` falls back
to "now" when the caller gives no reference.
"""

from collections.abc import Callable, Iterable, Sequence
from datetime import UTC, date, datetime, timedelta

from health_tracker.config import AnalyticsConfig
from health_tracker.domain.models import (
    ChartPoint,
    ClassifiedReading,
    HeartRateReading,
    TimeWindow,
    WindowSummary,
)
from health_tracker.services.classification import classify

SUNDAY = 6

DAY_LABEL_FORMAT = "%b %d"
WEEK_LABEL_FORMAT = "Week of %b %d"


def rounded_mean(values: Sequence[int]) -> int:
    """Arithmetic mean rounded half-up, computed exactly on integers."""
    if not values:
        raise ValueError("mean of an empty bucket")
    total, n = sum(values), len(values)
    return (2 * total + n) // (2 * n)


def week_start(day: date, first_weekday: int = SUNDAY) -> date:
    """First day of the week containing `day`; weekdays are 0=Monday .. 6=Sunday."""
    return day - timedelta(days=(day.weekday() - first_weekday) % 7)


def _order_key(reading: HeartRateReading) -> tuple[datetime, int]:
    return reading.timestamp, reading.id


def _local_date(reading: HeartRateReading, reference: datetime) -> date:
    return reading.timestamp.astimezone(reference.tzinfo).date()


def filter_window(
    readings: Iterable[HeartRateReading],
    window: TimeWindow,
    reference: datetime,
    analytics: AnalyticsConfig,
) -> list[HeartRateReading]:
    """Readings inside the window, oldest first."""
    if window is TimeWindow.TODAY:
        today = reference.date()
        kept = [r for r in readings if _local_date(r, reference) == today]
    else:
        days = analytics.weekly_days if window is TimeWindow.WEEKLY else analytics.monthly_days
        cutoff = reference - timedelta(days=days)
        kept = [r for r in readings if r.timestamp >= cutoff]
    return sorted(kept, key=_order_key)


def _bucketize(
    readings: Sequence[HeartRateReading],
    bucket_of: Callable[[HeartRateReading], date],
    label_format: str,
    reference: datetime,
) -> list[ChartPoint]:
    buckets: dict[date, list[int]] = {}
    for reading in readings:
        buckets.setdefault(bucket_of(reading), []).append(reading.bpm)

    points = []
    for start in sorted(buckets):
        values = buckets[start]
        points.append(
            ChartPoint(
                label=start.strftime(label_format),
                bpm=rounded_mean(values),
                start=datetime.combine(start, datetime.min.time(), tzinfo=reference.tzinfo),
                count=len(values),
            )
        )
    return points


def build_series(
    readings: Sequence[HeartRateReading],
    window: TimeWindow,
    reference: datetime,
    analytics: AnalyticsConfig,
    first_weekday: int = SUNDAY,
) -> list[ChartPoint]:
    """Chart points for already-filtered, chronologically sorted readings."""
    if window is TimeWindow.TODAY:
        recent = readings[-analytics.today_point_limit :]
        return [
            ChartPoint(label=r.time, bpm=r.bpm, start=r.timestamp, count=1) for r in recent
        ]
    if window is TimeWindow.WEEKLY:
        return _bucketize(
            readings, lambda r: _local_date(r, reference), DAY_LABEL_FORMAT, reference
        )
    return _bucketize(
        readings,
        lambda r: week_start(_local_date(r, reference), first_weekday),
        WEEK_LABEL_FORMAT,
        reference,
    )


def summarize_window(
    readings: Iterable[HeartRateReading],
    window: TimeWindow | str,
    reference: datetime | None = None,
    *,
    analytics: AnalyticsConfig | None = None,
    first_weekday: int = SUNDAY,
) -> WindowSummary:
    """Chart series, recent history and alert flag for one window."""
    window = TimeWindow(window)
    analytics = analytics or AnalyticsConfig()
    if reference is None:
        reference = datetime.now(UTC).astimezone()
    elif reference.tzinfo is None:
        raise ValueError("reference instant must be timezone-aware")

    filtered = filter_window(readings, window, reference, analytics)
    thresholds = analytics.thresholds
    classified = [
        ClassifiedReading(reading=r, classification=classify(r.bpm, thresholds)) for r in filtered
    ]
    history = classified[::-1][: analytics.history_limit]

    return WindowSummary(
        window=window,
        reference=reference,
        series=build_series(filtered, window, reference, analytics, first_weekday),
        history=history,
        needs_attention=any(c.classification.needs_attention for c in classified),
    )
