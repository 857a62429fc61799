"""
Recency-Weighted Rate Estimation for Weight Cut Tracking

Turns an irregular weight log into the two physiological rates the rest of the
engine depends on:

- Overnight drift: pounds lost between the last evening reading and the next
  morning reading
- Session sweat rate: pounds per hour lost across a practice or extra workout

Each qualifying pair of readings becomes one sample. Samples are combined with
exponential recency weighting, w_i = decay ** age_days, so the last few
sessions dominate without older ones being discarded outright. Pairs that fail
plausibility checks are excluded and reported as data-quality notes; they never
fail the computation. With no usable samples a rate is None, never a default.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

import numpy as np

from conversions import HOURS_PER_DAY, SECONDS_PER_HOUR, minutes_to_hours
from shared_models import (
    MORNING_TYPES,
    EngineConfig,
    LogType,
    RateEstimates,
    WeightLogEntry,
)
from weight_logs import logs_in_window

logger = logging.getLogger(__name__)


class RateEstimationError(Exception):
    """Raised when weighting inputs are malformed"""

    pass


# Evening readings that can open an overnight drift pair
EVENING_TYPES = (LogType.BEFORE_BED, LogType.POST_PRACTICE)

# Session after-type -> required before-type
SESSION_PAIRS = {
    LogType.POST_PRACTICE: LogType.PRE_PRACTICE,
    LogType.EXTRA_AFTER: LogType.EXTRA_BEFORE,
}


@dataclass
class Sample:
    """One raw rate observation"""

    value: float
    ended_at: datetime
    is_practice: bool = False
    loss_lbs: float = 0.0


def recency_weighted_mean(
    values: Sequence[float], ages_days: Sequence[float], decay: float
) -> Optional[float]:
    """
    Exponentially recency-weighted mean.

    Args:
        values: Raw samples
        ages_days: Age of each sample in days (0 = now)
        decay: Per-day decay factor in (0, 1]

    Returns:
        sum(w * x) / sum(w) with w = decay ** age, or None when there are no samples
    """
    if len(values) != len(ages_days):
        raise RateEstimationError("values and ages_days must be the same length")
    if not values:
        return None

    ages = np.clip(np.asarray(ages_days, dtype=float), 0.0, None)
    weights = np.power(decay, ages)
    return float(np.average(np.asarray(values, dtype=float), weights=weights))


class RateEstimator:
    """
    Computes overnight drift and session sweat rate from the log history.

    Only the last `history_window_days` of entries are considered; at the
    default decay anything older carries negligible weight anyway.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()

    def estimate(self, logs: Sequence[WeightLogEntry], now: datetime) -> RateEstimates:
        """
        Estimate all rates for the snapshot ending at `now`.

        Args:
            logs: Athlete's weight log (any order)
            now: Evaluation time; entries after it are ignored

        Returns:
            RateEstimates with None for any rate lacking samples
        """
        window = logs_in_window(logs, now, self.config.history_window_days)
        notes: List[str] = []

        drift_samples = self._drift_samples(window, notes)
        session_samples = self._session_samples(window, notes)
        practice_samples = [s for s in session_samples if s.is_practice]

        drift = self._weighted(drift_samples, now)
        sweat_rate = self._weighted(session_samples, now)
        practice_loss = self._weighted(
            [Sample(s.loss_lbs, s.ended_at) for s in practice_samples], now
        )

        logger.info(
            f"Rates from {len(window)} logs: drift={_fmt(drift)} lbs "
            f"({len(drift_samples)} samples), sweat={_fmt(sweat_rate)} lbs/hr "
            f"({len(session_samples)} samples), practice loss={_fmt(practice_loss)} lbs"
        )

        return RateEstimates(
            overnight_drift_lbs=drift,
            session_sweat_rate_lbs_per_hr=sweat_rate,
            practice_loss_lbs=practice_loss,
            drift_sample_count=len(drift_samples),
            sweat_sample_count=len(session_samples),
            data_quality_notes=notes,
        )

    def _weighted(self, samples: List[Sample], now: datetime) -> Optional[float]:
        ages = [
            (now - s.ended_at).total_seconds() / (SECONDS_PER_HOUR * HOURS_PER_DAY)
            for s in samples
        ]
        return recency_weighted_mean(
            [s.value for s in samples], ages, self.config.ema_decay
        )

    def _drift_samples(
        self, logs: List[WeightLogEntry], notes: List[str]
    ) -> List[Sample]:
        """Evening reading immediately followed by a morning reading"""
        samples = []
        for previous, current in _consecutive(logs):
            if current.log_type not in MORNING_TYPES:
                continue
            if previous.log_type not in EVENING_TYPES:
                continue

            gap_hours = _hours_between(previous, current)
            if gap_hours <= 0 or gap_hours > self.config.max_drift_gap_hours:
                _note(
                    notes,
                    f"Excluded drift pair {previous.id}->{current.id}: "
                    f"{gap_hours:.1f}h between readings",
                )
                continue

            drift = previous.weight_lbs - current.weight_lbs
            logger.debug(f"Drift sample {previous.id}->{current.id}: {drift:.2f} lbs")
            samples.append(Sample(drift, current.timestamp))
        return samples

    def _session_samples(
        self, logs: List[WeightLogEntry], notes: List[str]
    ) -> List[Sample]:
        """Pre/post practice and extra-workout pairs converted to lbs/hr"""
        samples = []
        for before, after in _consecutive(logs):
            expected_before = SESSION_PAIRS.get(after.log_type)
            if expected_before is None or before.log_type != expected_before:
                continue

            gap_hours = _hours_between(before, after)
            if gap_hours > self.config.max_session_gap_hours:
                _note(
                    notes,
                    f"Excluded session {before.id}->{after.id}: "
                    f"{gap_hours:.1f}h between readings",
                )
                continue

            duration_hours = _session_hours(before, after, gap_hours)
            if duration_hours <= 0:
                _note(
                    notes,
                    f"Excluded session {before.id}->{after.id}: non-positive duration",
                )
                continue

            loss = before.weight_lbs - after.weight_lbs
            rate = loss / duration_hours
            low = self.config.min_sweat_rate_lbs_per_hr
            high = self.config.max_sweat_rate_lbs_per_hr
            if not (low <= rate <= high):
                _note(
                    notes,
                    f"Discarded session {before.id}->{after.id}: "
                    f"{rate:.2f} lbs/hr outside {low}-{high}",
                )
                continue

            logger.debug(
                f"Sweat sample {before.id}->{after.id}: {loss:.2f} lbs over "
                f"{duration_hours:.2f}h = {rate:.2f} lbs/hr"
            )
            samples.append(
                Sample(
                    rate,
                    after.timestamp,
                    is_practice=after.log_type == LogType.POST_PRACTICE,
                    loss_lbs=loss,
                )
            )
        return samples


def _consecutive(
    logs: List[WeightLogEntry],
) -> List[Tuple[WeightLogEntry, WeightLogEntry]]:
    return list(zip(logs, logs[1:]))


def _hours_between(earlier: WeightLogEntry, later: WeightLogEntry) -> float:
    return (later.timestamp - earlier.timestamp).total_seconds() / SECONDS_PER_HOUR


def _session_hours(
    before: WeightLogEntry, after: WeightLogEntry, gap_hours: float
) -> float:
    """Logged duration (after entry first), else the clock gap"""
    for entry in (after, before):
        if entry.duration_minutes is not None:
            return minutes_to_hours(entry.duration_minutes)
    return gap_hours


def _note(notes: List[str], message: str) -> None:
    logger.info(f"Data quality: {message}")
    notes.append(message)


def _fmt(value: Optional[float]) -> str:
    return "n/a" if value is None else f"{value:.2f}"
