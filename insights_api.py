"""
Insights API Layer for CutTracker

Single entry point that runs the whole engine for one snapshot:

    logs -> rate estimator -> projection -> guidance / cut score
                               phase classifier feeds projection and guidance
                               safety assessor runs independently, last

The engine is a pure function of (profile, logs, tracking, now). It holds no
state and performs no I/O, so callers that cache results should key them
with generate_cache_key(); any log edit or delete changes the key.

Key Features:
- Missing data surfaces as None fields, never as exceptions
- Invalid profiles produce a not-configured result instead of raising
- Malformed log entries are dropped and reported as data-quality notes
- Output is a plain serializable record (InsightResult.to_dict / to_json)
"""

import hashlib
import json
import logging
import math
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from conversions import HOURS_PER_DAY, get_weight_validation_error
from cut_score import CutScoreCalculator
from guidance import GuidanceGenerator
from phase_planning import PhaseClassificationError, PhaseClassifier
from projection import ProjectionModel
from rate_estimator import RateEstimator
from safety import assess_weight_cut_safety
from shared_models import (
    AthleteProfile,
    DailyTracking,
    EngineConfig,
    InsightResult,
    LogType,
    WeightLogEntry,
)

logger = logging.getLogger(__name__)

MAX_SLEEP_HOURS = HOURS_PER_DAY


# ============================================================================
# CUSTOM EXCEPTIONS
# ============================================================================


class InsightError(Exception):
    """Base class for insight engine errors"""

    pass


class InvalidProfileError(InsightError):
    """Raised when the athlete profile cannot drive the engine"""

    pass


class InvalidLogError(InsightError):
    """Raised when a weight log entry is malformed"""

    pass


class CacheKeyError(InsightError):
    """Raised when inputs cannot be hashed into a cache key"""

    pass


# ============================================================================
# CORE API FUNCTION
# ============================================================================


def compute_insights(
    profile: Optional[AthleteProfile],
    logs: Sequence[WeightLogEntry],
    daily_tracking: Optional[DailyTracking] = None,
    now: Optional[datetime] = None,
    config: Optional[EngineConfig] = None,
) -> InsightResult:
    """
    Compute derived metrics, guidance, cut score and safety for a snapshot.

    Args:
        profile: Athlete profile; None or invalid means not configured
        logs: Weight log history (not modified)
        daily_tracking: Today's intake record for the compliance pillar
        now: Evaluation time; defaults to the current UTC time only when omitted
        config: Engine tunables (defaults when None)

    Returns:
        InsightResult; configured=False with a reason when the profile is unusable
    """
    now = normalize_now(now)
    config = config or EngineConfig()

    try:
        validate_profile(profile)
        PhaseClassifier(profile.protocol)
    except (InvalidProfileError, PhaseClassificationError) as e:
        logger.warning(f"Engine not configured: {e}")
        return InsightResult(configured=False, reason=str(e))

    valid_logs, log_notes = filter_valid_logs(logs)
    tracking = _tracking_for_day(daily_tracking, now)

    rates = RateEstimator(config).estimate(valid_logs, now)
    rates.data_quality_notes = log_notes + rates.data_quality_notes

    metrics = ProjectionModel().project(profile, valid_logs, rates, now)
    guidance = GuidanceGenerator().generate(profile, metrics, valid_logs, now)
    cut_score = CutScoreCalculator().compute(
        profile, metrics, guidance, valid_logs, tracking, now
    )
    safety = assess_weight_cut_safety(
        metrics.current_weight_lbs,
        profile.target_weight_class_lbs,
        metrics.days_until_weigh_in,
    )

    logger.info(
        f"Insights at {now.isoformat()}: {metrics.days_until_weigh_in} days out, "
        f"gap={metrics.projected_gap_lbs}, score={cut_score.score}, "
        f"safety={safety.level.value}"
    )
    return InsightResult(
        configured=True,
        derived_metrics=metrics,
        guidance_plan=guidance,
        cut_score=cut_score,
        safety=safety,
    )


def normalize_now(now: Optional[datetime]) -> datetime:
    """UTC-aware evaluation time; calendar math downstream runs on UTC dates"""
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def _tracking_for_day(
    tracking: Optional[DailyTracking], now: datetime
) -> Optional[DailyTracking]:
    if tracking is None:
        return None
    if tracking.date != now.date():
        logger.info(
            f"Ignoring daily tracking for {tracking.date}; evaluating {now.date()}"
        )
        return None
    return tracking


# ============================================================================
# CACHE KEY
# ============================================================================


def generate_cache_key(
    profile: AthleteProfile,
    logs: Sequence[WeightLogEntry],
    tracking: Optional[DailyTracking],
    now: datetime,
) -> str:
    """
    Generate a stable hash over every input that affects the result.

    Log order does not matter; any edit, delete or new entry changes the key.
    """
    try:
        key_data = {
            "profile": {
                "current_weight_lbs": profile.current_weight_lbs,
                "target_weight_class_lbs": profile.target_weight_class_lbs,
                "protocol": profile.protocol.value,
                "weigh_in_date": profile.weigh_in_date,
                "weigh_in_time": profile.weigh_in_time,
            },
            "logs": sorted(
                (_serialize_log(entry) for entry in logs),
                key=lambda item: (item["timestamp"], item["id"]),
            ),
            "tracking": _serialize_tracking(tracking),
            "now": normalize_now(now).isoformat(),
        }

        json_str = json.dumps(key_data, sort_keys=True, default=str)
        return hashlib.sha256(json_str.encode()).hexdigest()

    except Exception as e:
        logger.error(f"Cache key generation failed: {str(e)}")
        raise CacheKeyError(f"Failed to generate cache key: {str(e)}")


def _serialize_log(entry: WeightLogEntry) -> dict:
    return {
        "id": entry.id,
        "timestamp": entry.timestamp.isoformat(),
        "weight_lbs": entry.weight_lbs,
        "log_type": entry.log_type.value,
        "duration_minutes": entry.duration_minutes,
        "sleep_hours": entry.sleep_hours,
    }


def _serialize_tracking(tracking: Optional[DailyTracking]) -> Optional[dict]:
    if tracking is None:
        return None
    return {
        "date": tracking.date.isoformat(),
        "water_consumed_oz": tracking.water_consumed_oz,
        "carbs_consumed_g": tracking.carbs_consumed_g,
        "protein_consumed_g": tracking.protein_consumed_g,
        "food_servings_logged": tracking.food_servings_logged,
        "food_servings_target": tracking.food_servings_target,
        "water_target_oz": tracking.water_target_oz,
    }


# ============================================================================
# INPUT VALIDATION
# ============================================================================


def validate_profile(profile: Optional[AthleteProfile]) -> None:
    """Validate the athlete profile with messages fit to show the user"""
    if profile is None:
        raise InvalidProfileError("No athlete profile")

    target = profile.target_weight_class_lbs
    if not isinstance(target, (int, float)) or not math.isfinite(target) or target <= 0:
        raise InvalidProfileError("Target weight class must be greater than 0")

    if profile.weigh_in_date is None:
        raise InvalidProfileError("Weigh-in date is not set")

    weight_error = get_weight_validation_error(profile.current_weight_lbs)
    if weight_error is not None:
        raise InvalidProfileError(weight_error)


def validate_log(entry: WeightLogEntry) -> None:
    """Validate a single log entry"""
    if not isinstance(entry.log_type, LogType):
        raise InvalidLogError(f"Log {entry.id}: unknown log type {entry.log_type!r}")

    weight = entry.weight_lbs
    if isinstance(weight, bool) or not isinstance(weight, (int, float)):
        raise InvalidLogError(f"Log {entry.id}: weight must be a number")
    if not math.isfinite(weight) or weight <= 0:
        raise InvalidLogError(f"Log {entry.id}: weight must be greater than 0")

    if entry.duration_minutes is not None and not _is_finite_number(entry.duration_minutes):
        raise InvalidLogError(f"Log {entry.id}: duration must be a number")
    sleep = entry.sleep_hours
    if sleep is not None:
        if not _is_finite_number(sleep):
            raise InvalidLogError(f"Log {entry.id}: sleep hours must be a number")
        if not 0 <= sleep <= MAX_SLEEP_HOURS:
            raise InvalidLogError(
                f"Log {entry.id}: sleep hours must be between 0 and {MAX_SLEEP_HOURS}"
            )


def _is_finite_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def filter_valid_logs(
    logs: Sequence[WeightLogEntry],
) -> Tuple[List[WeightLogEntry], List[str]]:
    """
    Drop malformed entries.

    Returns:
        (valid entries, data-quality notes for the dropped ones)
    """
    valid = []
    notes = []
    for entry in logs:
        try:
            validate_log(entry)
        except InvalidLogError as e:
            logger.warning(f"Dropping log entry: {e}")
            notes.append(str(e))
            continue
        valid.append(entry)
    return valid, notes
