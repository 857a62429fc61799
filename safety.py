"""
Weight Cut Safety Assessment

Independent guardrail: classifies the remaining cut from the absolute pounds
left and the time left, using fixed thresholds. It reads nothing from the
projection or guidance and never changes them; callers show it alongside.
"""

import logging

from shared_models import SafetyAssessment, SafetyLevel

logger = logging.getLogger(__name__)

MAX_SAFE_WEEKLY_LOSS_PERCENT = 1.5
MAX_SAFE_TOTAL_CUT_PERCENT = 8
CRITICAL_DAYS_THRESHOLD = 2
DANGER_DELTA_24H_LBS = 3
WARNING_DELTA_48H_LBS = 5

# Lower bounds of the warning band inside each window
WARNING_FLOOR_24H_LBS = 2
WARNING_FLOOR_48H_LBS = 3
CAUTION_DELTA_LBS = 5


def assess_weight_cut_safety(
    current_weight_lbs: float, target_weight_lbs: float, days_until_weigh_in: int
) -> SafetyAssessment:
    """
    Classify how risky the remaining cut is.

    Args:
        current_weight_lbs: Latest weight
        target_weight_lbs: Weight class limit
        days_until_weigh_in: Calendar days to weigh-in (negative once past)

    Returns:
        SafetyAssessment with level and a short message
    """
    delta = current_weight_lbs - target_weight_lbs

    if delta <= 0:
        return SafetyAssessment(SafetyLevel.SAFE, "At or under weight class.")

    if days_until_weigh_in < 0:
        return SafetyAssessment(SafetyLevel.SAFE, "Weigh-in complete.")

    if days_until_weigh_in <= 1:
        level = _grade(delta, DANGER_DELTA_24H_LBS, WARNING_FLOOR_24H_LBS)
        message = {
            SafetyLevel.DANGER: f"{delta:.1f} lbs with under 24 hours left is unsafe to cut.",
            SafetyLevel.WARNING: f"{delta:.1f} lbs in the last 24 hours is aggressive.",
            SafetyLevel.CAUTION: f"{delta:.1f} lbs to go; stay on the plan.",
        }[level]
        return _log(SafetyAssessment(level, message), delta, days_until_weigh_in)

    if days_until_weigh_in <= CRITICAL_DAYS_THRESHOLD:
        level = _grade(delta, WARNING_DELTA_48H_LBS, WARNING_FLOOR_48H_LBS)
        message = {
            SafetyLevel.DANGER: f"{delta:.1f} lbs in 48 hours exceeds a safe water cut.",
            SafetyLevel.WARNING: f"{delta:.1f} lbs with {days_until_weigh_in} days is risky; extra workouts critical.",
            SafetyLevel.CAUTION: f"{delta:.1f} lbs to go; manageable with the plan.",
        }[level]
        return _log(SafetyAssessment(level, message), delta, days_until_weigh_in)

    percent_over = delta / target_weight_lbs * 100
    if percent_over > MAX_SAFE_TOTAL_CUT_PERCENT:
        return _log(
            SafetyAssessment(
                SafetyLevel.WARNING,
                f"{percent_over:.1f}% over class; more than {MAX_SAFE_TOTAL_CUT_PERCENT}% "
                f"is too much to cut this week.",
            ),
            delta,
            days_until_weigh_in,
        )
    if delta > CAUTION_DELTA_LBS:
        return SafetyAssessment(
            SafetyLevel.CAUTION,
            f"{delta:.1f} lbs with {days_until_weigh_in} days; keep the pace steady.",
        )
    return SafetyAssessment(SafetyLevel.SAFE, f"{delta:.1f} lbs to go; on schedule.")


def _grade(delta: float, danger_above: float, warning_from: float) -> SafetyLevel:
    if delta > danger_above:
        return SafetyLevel.DANGER
    if delta >= warning_from:
        return SafetyLevel.WARNING
    return SafetyLevel.CAUTION


def _log(assessment: SafetyAssessment, delta: float, days: int) -> SafetyAssessment:
    if assessment.level in (SafetyLevel.WARNING, SafetyLevel.DANGER):
        logger.warning(
            f"Safety {assessment.level.value}: {delta:.1f} lbs over with {days} days left"
        )
    return assessment


def max_safe_weekly_loss_lbs(weight_lbs: float) -> float:
    """Largest sustainable weekly loss outside competition week"""
    return round(weight_lbs * MAX_SAFE_WEEKLY_LOSS_PERCENT / 100, 1)
