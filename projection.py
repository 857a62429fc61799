"""
Weigh-In Weight Projection

Combines the athlete's current weight, the estimated rates and the phase to
project weight at weigh-in time.

Two windows:
- Loading window (3+ days out): project from the latest morning reading,
  subtracting overnight drift plus expected practice loss once per remaining
  day. The water-loading bump (2-4 lbs of intentional gain mid-week) is not
  modeled; the projection assumes steady loss.
- Cut window (1-2 days out): project from the latest reading of today, since
  the morning baseline is stale once the flush starts, subtracting only the
  losses still to come.

At or past weigh-in there is nothing left to project: the latest logged
weight is the answer.
"""

import logging
from datetime import datetime
from typing import Optional, Sequence

from shared_models import (
    MORNING_TYPES,
    STATUS_THRESHOLDS,
    AthleteProfile,
    DerivedMetrics,
    LogType,
    Phase,
    RateEstimates,
    WeightLogEntry,
)
from phase_planning import classify_phase, days_until_weigh_in
from weight_logs import latest_log, logs_on_day, logs_up_to

logger = logging.getLogger(__name__)

LOADING_WINDOW_DAYS = 3


def current_weight(
    logs: Sequence[WeightLogEntry], now: datetime, fallback: float
) -> float:
    """Latest logged weight at or before now, else the profile weight"""
    entry = latest_log(logs, now)
    return entry.weight_lbs if entry is not None else fallback


def project_loading_window(
    base_weight: float,
    days: int,
    drift: Optional[float],
    practice_loss: Optional[float],
) -> float:
    daily_loss = (drift or 0.0) + (practice_loss or 0.0)
    return base_weight - days * daily_loss


def project_cut_window(
    base_weight: float,
    days: int,
    drift: Optional[float],
    practice_loss: Optional[float],
    practiced_today: bool,
) -> float:
    practice = practice_loss or 0.0
    practice_remaining = practice * (days - 1)
    if not practiced_today:
        practice_remaining += practice
    return base_weight - days * (drift or 0.0) - practice_remaining


def pace_status(current: float, target: float, phase: Optional[Phase]) -> str:
    """
    Classify how far the athlete sits above class.

    Loading days run heavy on purpose, so the thresholds widen during LOAD.
    """
    key = "loading" if phase == Phase.LOAD else "default"
    thresholds = STATUS_THRESHOLDS[key]
    over = current - target
    if over <= thresholds["on_track"]:
        return "on-track"
    if over <= thresholds["borderline"]:
        return "borderline"
    return "risk"


class ProjectionModel:
    """Projects weigh-in weight and the derived metrics around it"""

    def project(
        self,
        profile: AthleteProfile,
        logs: Sequence[WeightLogEntry],
        rates: RateEstimates,
        now: datetime,
    ) -> DerivedMetrics:
        """
        Build DerivedMetrics for the snapshot at `now`.

        Args:
            profile: Validated athlete profile (weigh-in date required)
            logs: Weight log history
            rates: Output of the rate estimator for the same snapshot
            now: Evaluation time

        Returns:
            DerivedMetrics with projection, gap and pace status
        """
        target = profile.target_weight_class_lbs
        days = days_until_weigh_in(
            profile.weigh_in_date, now, profile.weigh_in_time
        )
        phase = classify_phase(profile.protocol, days)
        visible = logs_up_to(logs, now)
        current = current_weight(visible, now, profile.current_weight_lbs)

        projected = self._project(visible, now, days, current, rates)
        gap = max(0.0, projected - target)
        workout_required = days >= 0 and gap > 0

        logger.info(
            f"Projection at {days} days out ({phase.value}): current={current:.1f}, "
            f"projected={projected:.1f}, gap={gap:.1f}"
        )

        return DerivedMetrics(
            overnight_drift_lbs=rates.overnight_drift_lbs,
            session_sweat_rate_lbs_per_hr=rates.session_sweat_rate_lbs_per_hr,
            days_until_weigh_in=days,
            projected_weigh_in_weight_lbs=round(projected, 2),
            projected_gap_lbs=round(gap, 2),
            is_on_track=gap <= 0,
            practice_loss_lbs=rates.practice_loss_lbs,
            phase=phase,
            current_weight_lbs=current,
            weight_to_lose_lbs=round(max(0.0, current - target), 2),
            is_at_weight=current <= target,
            workout_required=workout_required,
            pace_status=pace_status(current, target, phase),
            data_quality_notes=list(rates.data_quality_notes),
        )

    def _project(
        self,
        logs: Sequence[WeightLogEntry],
        now: datetime,
        days: int,
        current: float,
        rates: RateEstimates,
    ) -> float:
        drift = rates.overnight_drift_lbs
        practice_loss = rates.practice_loss_lbs

        if days <= 0:
            return current

        # No rate data yet: naive current-vs-target gap
        if drift is None and practice_loss is None:
            logger.info("No rate data; projecting from current weight")
            return current

        if days >= LOADING_WINDOW_DAYS:
            morning = latest_log(logs, now, types=MORNING_TYPES)
            base = morning.weight_lbs if morning is not None else current
            return project_loading_window(base, days, drift, practice_loss)

        today = logs_on_day(logs, now.date())
        base = today[-1].weight_lbs if today else current
        practiced_today = any(
            entry.log_type == LogType.POST_PRACTICE for entry in today
        )
        return project_cut_window(base, days, drift, practice_loss, practiced_today)
