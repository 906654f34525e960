"""
Customer points, levels and activity analytics.

Levels are a pure function of the running total:

    Platinum >= 1000, Gold >= 500, Silver >= 200, otherwise Bronze
"""
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Tuple

from estate_store.models import CustomerPoints

LEVEL_THRESHOLDS = (
    ('Platinum', 1000),
    ('Gold', 500),
    ('Silver', 200),
)
BASE_LEVEL = 'Bronze'

HISTORY_DAYS = 30
HISTORY_MONTHS = 12

# (activity_type, points, created_at)
ActivityRow = Tuple[str, int, datetime]


def calculate_level(total_points: int) -> str:
    for level, threshold in LEVEL_THRESHOLDS:
        if total_points >= threshold:
            return level
    return BASE_LEVEL


def accumulate(points: CustomerPoints, activity_points: int, now: datetime) -> CustomerPoints:
    """
    Fold one activity into a user's points row (mutates and returns it).

    The monthly counter restarts when the previous activity fell in an
    earlier calendar month.
    """
    last = points.last_activity
    same_month = last is not None and (last.year, last.month) == (now.year, now.month)
    this_month = (points.points_this_month or 0) if same_month else 0

    points.total_points = (points.total_points or 0) + activity_points
    points.current_level = calculate_level(points.total_points)
    points.points_this_month = this_month + activity_points
    points.last_activity = now
    points.updated_at = now
    return points


def months_ago(now: datetime, months: int) -> datetime:
    """Same day-of-month `months` earlier, clamped to the month's length"""
    year, month = divmod(now.year * 12 + (now.month - 1) - months, 12)
    month += 1
    day = now.day
    while day > 28:
        try:
            return now.replace(year=year, month=month, day=day)
        except ValueError:
            day -= 1
    return now.replace(year=year, month=month, day=day)


def history_windows(now: datetime) -> Tuple[datetime, datetime]:
    """Start of the daily (30 days) and monthly (12 months) windows"""
    return now - timedelta(days=HISTORY_DAYS), months_ago(now, HISTORY_MONTHS)


def summarize_by_type(rows: Iterable[ActivityRow]) -> List[dict]:
    totals: Dict[str, List[int]] = {}
    for activity_type, points, _ in rows:
        entry = totals.setdefault(activity_type, [0, 0])
        entry[0] += 1
        entry[1] += points or 0
    return [
        {'type': activity_type, 'count': count, 'points': points}
        for activity_type, (count, points) in sorted(totals.items())
    ]


def points_history(rows: Iterable[ActivityRow], since: datetime) -> List[dict]:
    """Points per day (YYYY-MM-DD), oldest first; empty days are absent"""
    days: Dict[str, int] = OrderedDict()
    for _, points, created_at in sorted(rows, key=lambda row: row[2]):
        if created_at < since:
            continue
        key = created_at.strftime('%Y-%m-%d')
        days[key] = days.get(key, 0) + (points or 0)
    return [{'date': day, 'points': points} for day, points in days.items()]


def monthly_activity(rows: Iterable[ActivityRow], since: datetime) -> List[dict]:
    """Activity count per month (YYYY-MM), oldest first; empty months are absent"""
    months: Dict[str, int] = OrderedDict()
    for _, _, created_at in sorted(rows, key=lambda row: row[2]):
        if created_at < since:
            continue
        key = created_at.strftime('%Y-%m')
        months[key] = months.get(key, 0) + 1
    return [{'month': month, 'count': count} for month, count in months.items()]


def build_analytics(
    total_activities: int,
    by_type: List[dict],
    recent_rows: List[ActivityRow],
    now: datetime,
) -> dict:
    """
    Assemble the analytics payload.

    Args:
        total_activities: All-time activity count for the user
        by_type: Output of summarize_by_type (or the SQL equivalent)
        recent_rows: Activities since at least the 12-month window start
        now: Reference time for the windows
    """
    day_start, month_start = history_windows(now)
    return {
        'total_activities': total_activities,
        'activities_by_type': by_type,
        'points_history': points_history(recent_rows, day_start),
        'monthly_activity': monthly_activity(recent_rows, month_start),
    }
