"""
Weight Log History Helpers

Read-only views over an athlete's weight log: ordering, windowing, same-day
lookups and a pandas frame for day-level summaries. The log store itself is
owned by the caller; nothing here mutates the entries it is given.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Sequence

import pandas as pd

from shared_models import LogType, WeightLogEntry

logger = logging.getLogger(__name__)

FRAME_COLUMNS = [
    "id",
    "timestamp",
    "weight_lbs",
    "log_type",
    "duration_minutes",
    "sleep_hours",
]


def sort_logs(logs: Iterable[WeightLogEntry]) -> List[WeightLogEntry]:
    """Oldest first; ties broken by id so ordering is deterministic"""
    return sorted(logs, key=lambda entry: (entry.timestamp, entry.id))


def logs_up_to(logs: Iterable[WeightLogEntry], now: datetime) -> List[WeightLogEntry]:
    """Entries at or before now, oldest first (future-dated entries are ignored)"""
    return sort_logs(entry for entry in logs if entry.timestamp <= now)


def logs_in_window(
    logs: Iterable[WeightLogEntry], now: datetime, days: int
) -> List[WeightLogEntry]:
    """Entries within the last `days` days up to now, oldest first"""
    start = now - timedelta(days=days)
    return [entry for entry in logs_up_to(logs, now) if entry.timestamp >= start]


def latest_log(
    logs: Sequence[WeightLogEntry],
    now: datetime,
    types: Optional[Sequence[LogType]] = None,
) -> Optional[WeightLogEntry]:
    """Most recent entry at or before now, optionally restricted to log types"""
    candidates = [
        entry
        for entry in logs_up_to(logs, now)
        if types is None or entry.log_type in types
    ]
    return candidates[-1] if candidates else None


def logs_on_day(logs: Iterable[WeightLogEntry], day: date) -> List[WeightLogEntry]:
    """Entries whose UTC calendar date is `day`, oldest first"""
    return sort_logs(entry for entry in logs if entry.timestamp.date() == day)


def recent_sleep_hours(
    logs: Sequence[WeightLogEntry], now: datetime, nights: int = 5
) -> List[float]:
    """Logged sleep durations, newest first, at most one per calendar day"""
    seen_days = set()
    hours = []
    for entry in reversed(logs_up_to(logs, now)):
        if entry.sleep_hours is None or entry.sleep_hours <= 0:
            continue
        day = entry.timestamp.date()
        if day in seen_days:
            continue
        seen_days.add(day)
        hours.append(float(entry.sleep_hours))
        if len(hours) >= nights:
            break
    return hours


def logs_to_frame(logs: Iterable[WeightLogEntry]) -> pd.DataFrame:
    """Build a DataFrame of log entries sorted by timestamp"""
    rows = [
        {
            "id": entry.id,
            "timestamp": entry.timestamp,
            "weight_lbs": entry.weight_lbs,
            "log_type": entry.log_type.value,
            "duration_minutes": entry.duration_minutes,
            "sleep_hours": entry.sleep_hours,
        }
        for entry in sort_logs(logs)
    ]
    df = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    if not df.empty:
        df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
    return df


def daily_weights(logs: Iterable[WeightLogEntry]) -> pd.DataFrame:
    """
    Summarize the log by UTC calendar day.

    Returns:
        DataFrame indexed by date with first/last/min/max weight and entry count
    """
    df = logs_to_frame(logs)
    if df.empty:
        return pd.DataFrame(columns=["first", "last", "min", "max", "count"])

    df["day"] = df["timestamp"].dt.date
    summary = df.groupby("day")["weight_lbs"].agg(
        ["first", "last", "min", "max", "count"]
    )
    return summary


def weight_lost_since(
    logs: Sequence[WeightLogEntry], now: datetime, days: int = 7
) -> float:
    """Heaviest reading in the last `days` days minus the latest reading"""
    window = logs_in_window(logs, now, days)
    if not window:
        return 0.0

    df = logs_to_frame(window)
    peak = float(df["weight_lbs"].max())
    latest = float(df["weight_lbs"].iloc[-1])
    lost = max(0.0, peak - latest)
    logger.debug(f"Weight lost over last {days} days: {peak} -> {latest} = {lost:.2f}")
    return lost
