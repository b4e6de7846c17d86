"""Business-hours clock: wall-clock intervals → SLA-countable hours.

Pure functions only. Timestamps may be naive (read back from SQLite) or
aware; naive values are treated as UTC. The business window is applied in
the policy's IANA timezone, so "09:00–17:00" means local office hours.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any
from zoneinfo import ZoneInfo

from leaveflow.common.constants import DEFAULT_SLA_CONFIG

_SECONDS_PER_HOUR = 3600.0


@dataclass(frozen=True)
class BusinessHoursPolicy:
    """The subset of an SLA configuration that decides which hours count."""

    business_hours_only: bool = bool(DEFAULT_SLA_CONFIG["business_hours_only"])
    business_start_hour: int = int(DEFAULT_SLA_CONFIG["business_start_hour"])
    business_end_hour: int = int(DEFAULT_SLA_CONFIG["business_end_hour"])
    exclude_weekends: bool = bool(DEFAULT_SLA_CONFIG["exclude_weekends"])
    timezone: str = "UTC"

    @classmethod
    def from_source(cls, source: Any) -> "BusinessHoursPolicy":
        """Build a policy from any object exposing the same attribute names
        (an ``SLAConfig`` row, a frozen ``SLAMetric`` snapshot, a schema)."""
        return cls(
            business_hours_only=bool(source.business_hours_only),
            business_start_hour=int(source.business_start_hour),
            business_end_hour=int(source.business_end_hour),
            exclude_weekends=bool(source.exclude_weekends),
            timezone=source.timezone or "UTC",
        )


def to_utc(value: datetime) -> datetime:
    """Return *value* as an aware UTC datetime (naive input is taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def hours_between(start: datetime, end: datetime) -> float:
    """Raw wall-clock hours from *start* to *end*, never negative."""
    seconds = (to_utc(end) - to_utc(start)).total_seconds()
    return max(0.0, seconds / _SECONDS_PER_HOUR)


def _local_instant(day: date, hour: int, tz: ZoneInfo) -> datetime:
    # hour == 24 means midnight at the end of *day*
    if hour >= 24:
        return datetime.combine(day + timedelta(days=1), time(0), tzinfo=tz)
    return datetime.combine(day, time(hour), tzinfo=tz)


def elapsed_business_hours(
    submitted_at: datetime,
    responded_at: datetime,
    policy: BusinessHoursPolicy,
) -> float:
    """Hours between two instants that count toward the SLA.

    Without ``business_hours_only`` this is the plain wall-clock difference.
    Otherwise only the overlap with each day's
    ``[business_start_hour, business_end_hour)`` window is counted, partial
    hours prorated, and Saturdays/Sundays are skipped entirely when
    ``exclude_weekends`` is set. A reversed or empty interval yields 0.
    """
    start = to_utc(submitted_at)
    end = to_utc(responded_at)
    if end <= start:
        return 0.0

    if not policy.business_hours_only:
        return hours_between(start, end)

    if policy.business_end_hour <= policy.business_start_hour:
        return 0.0

    tz = ZoneInfo(policy.timezone)
    day = start.astimezone(tz).date()
    last_day = end.astimezone(tz).date()

    total_seconds = 0.0
    while day <= last_day:
        if not (policy.exclude_weekends and day.weekday() >= 5):
            window_open = _local_instant(day, policy.business_start_hour, tz)
            window_close = _local_instant(day, policy.business_end_hour, tz)
            lo = max(window_open.astimezone(timezone.utc), start)
            hi = min(window_close.astimezone(timezone.utc), end)
            if hi > lo:
                total_seconds += (hi - lo).total_seconds()
        day += timedelta(days=1)

    return total_seconds / _SECONDS_PER_HOUR
