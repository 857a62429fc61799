"""
Cut Score Composite

One 0-100 readiness number blended from three pillars:

    WEIGHT      (60-80%) - Is the athlete tracking to make weight?
    RECOVERY    (10-30%) - Sleep and overnight drift
    COMPLIANCE  (0-20%)  - Following the food and water plan?

Pillar weights depend on the phase. A pillar with no data does not score
as neutral; its share moves to the weight pillar instead. Within five days
of weigh-in a guardrail caps the score when the projection is over target,
so good sleep and nutrition cannot mask a missed weight.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence

import numpy as np

from shared_models import (
    PILLAR_WEIGHTS,
    WALK_AROUND_MULTIPLIER,
    AthleteProfile,
    CutScore,
    DailyTracking,
    DerivedMetrics,
    GuidancePlan,
    Phase,
    PillarScore,
    WeightLogEntry,
)
from phase_planning import PhaseClassifier
from weight_logs import recent_sleep_hours

logger = logging.getLogger(__name__)

TRAINING_PHASE_DAYS = 5
WORKOUT_PENALTY_PER_MINUTE = 0.25
SLEEP_NIGHTS = 5

# (exclusive upper gap bound, score); anything larger scores the last value
PROJECTED_GAP_SCORES = [
    (0.5, 90),
    (1.0, 75),
    (1.5, 60),
    (2.0, 50),
    (3.0, 40),
    (4.0, 25),
    (5.0, 15),
]
WALK_AROUND_GAP_SCORES = [(2.0, 75), (4.0, 60), (6.0, 45)]

# (min score, label, zone), highest first
SCORE_BANDS = [
    (90, "Dialed In", "green"),
    (75, "On Track", "green"),
    (60, "Manageable", "yellow"),
    (50, "Tight", "yellow"),
    (35, "Needs Work", "red"),
    (20, "Behind", "red"),
    (0, "Critical", "red"),
]


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return min(high, max(low, value))


def _banded(value: float, bands, fallback: float) -> float:
    for upper, score in bands:
        if value < upper:
            return score
    return fallback


def _ratio_points(consumed: float, target: float) -> float:
    """Points for hitting a consumption target"""
    if target <= 0 or consumed <= 0:
        return 0
    pct = consumed / target
    if 0.9 <= pct <= 1.1:
        return 20
    if 0.75 <= pct <= 1.25:
        return 10
    if pct < 0.5:
        return -15
    if pct > 1.5:
        return -10
    return 0


def score_label(score: int):
    """Label and zone for a final score"""
    for minimum, label, zone in SCORE_BANDS:
        if score >= minimum:
            return label, zone
    return SCORE_BANDS[-1][1], SCORE_BANDS[-1][2]


class CutScoreCalculator:
    """Computes the cut score for one snapshot"""

    def compute(
        self,
        profile: AthleteProfile,
        metrics: DerivedMetrics,
        guidance: Optional[GuidancePlan],
        logs: Sequence[WeightLogEntry],
        tracking: Optional[DailyTracking],
        now: datetime,
    ) -> CutScore:
        """
        Blend the three pillars into a CutScore.

        Args:
            profile: Athlete profile
            metrics: Projection for the snapshot
            guidance: Guidance for the snapshot; a prescribed workout lowers
                the weight pillar
            logs: Weight log, for sleep history
            tracking: Today's intake record, if any
            now: Evaluation time

        Returns:
            CutScore with per-pillar breakdown
        """
        phase = metrics.phase or Phase.PREP
        sleep = recent_sleep_hours(logs, now, SLEEP_NIGHTS)

        weight_raw = self.weight_pillar(profile, metrics, guidance)
        recovery_has_data = bool(sleep) or metrics.overnight_drift_lbs is not None
        recovery_raw = (
            self.recovery_pillar(sleep, metrics.overnight_drift_lbs)
            if recovery_has_data
            else 50.0
        )
        compliance_has_data = _has_intake(tracking)
        compliance_raw = (
            self.compliance_pillar(profile, metrics, tracking)
            if compliance_has_data
            else 50.0
        )

        weights = self._weights(phase, recovery_has_data, compliance_has_data)
        pillars = {
            "weight": PillarScore(
                weight_raw, weight_raw * weights["weight"], weights["weight"], True
            ),
            "recovery": PillarScore(
                recovery_raw,
                recovery_raw * weights["recovery"],
                weights["recovery"],
                recovery_has_data,
            ),
            "compliance": PillarScore(
                compliance_raw,
                compliance_raw * weights["compliance"],
                weights["compliance"],
                compliance_has_data,
            ),
        }

        raw_score = sum(pillar.weighted for pillar in pillars.values())
        raw_score = self._guardrail(raw_score, metrics)

        score = int(round(clamp(raw_score)))
        label, zone = score_label(score)
        rationale = self._rationale(pillars, profile, metrics, sleep, tracking, now)

        logger.info(
            f"Cut score {score} ({label}): weight={weight_raw:.0f}, "
            f"recovery={recovery_raw:.0f}, compliance={compliance_raw:.0f}"
        )
        return CutScore(
            score=score, label=label, zone=zone, rationale=rationale, pillars=pillars
        )

    # ------------------------------------------------------------------
    # Pillars
    # ------------------------------------------------------------------

    def weight_pillar(
        self,
        profile: AthleteProfile,
        metrics: DerivedMetrics,
        guidance: Optional[GuidancePlan] = None,
    ) -> float:
        """
        Weight pillar (0-100).

        More than five days out the athlete is expected to sit above class,
        so the score tracks distance from walk-around weight instead.
        """
        target = profile.target_weight_class_lbs
        current = metrics.current_weight_lbs
        days = metrics.days_until_weigh_in

        if days > TRAINING_PHASE_DAYS:
            walk_around_gap = current - target * WALK_AROUND_MULTIPLIER
            if walk_around_gap <= 0:
                return 85.0
            return float(_banded(walk_around_gap, WALK_AROUND_GAP_SCORES, 30))

        if _has_projection(metrics):
            gap = metrics.projected_gap_lbs
            score = 100.0 if gap <= 0 else float(_banded(gap, PROJECTED_GAP_SCORES, 10))
        else:
            score = self._capacity_score(current - target, metrics)

        if guidance is not None and guidance.workout_minutes:
            score -= WORKOUT_PENALTY_PER_MINUTE * guidance.workout_minutes
        return clamp(score)

    def _capacity_score(self, gap: float, metrics: DerivedMetrics) -> float:
        """Current-gap fallback, scaled by daily loss capacity when a sweat rate exists"""
        if gap <= 0:
            return 100.0

        rate = metrics.session_sweat_rate_lbs_per_hr
        days = metrics.days_until_weigh_in
        if rate is not None and rate > 0 and days > 0:
            used = gap / (rate * days)
            return float(_banded(used, [(0.5, 85), (0.75, 65), (1.0, 45), (1.25, 25)], 10))

        return float(_banded(gap, [(2.0, 65), (5.0, 40)], 15))

    def recovery_pillar(self, sleep_hours: List[float], drift: Optional[float]) -> float:
        """Recovery pillar (0-100): starts neutral, sleep and drift move it"""
        score = 50.0

        if sleep_hours:
            hours = np.asarray(sleep_hours, dtype=float)
            average = float(hours.mean())
            if average >= 8:
                score += 20
            elif average >= 7:
                score += 10
            elif average >= 6:
                pass
            elif average >= 5:
                score -= 10
            else:
                score -= 20

            if len(hours) >= 3:
                spread = float(hours.std())
                if spread < 0.5:
                    score += 5
                elif spread > 1.5:
                    score -= 5

        if drift is not None:
            if drift >= 1.5:
                score += 10
            elif drift >= 1.0:
                score += 5
            elif drift < 0.5:
                score -= 10

        return clamp(score)

    def compliance_pillar(
        self,
        profile: AthleteProfile,
        metrics: DerivedMetrics,
        tracking: DailyTracking,
    ) -> float:
        """Compliance pillar (0-100): food servings, water and macros vs target"""
        score = 50.0
        score += _ratio_points(
            tracking.food_servings_logged, tracking.food_servings_target
        )
        score += _ratio_points(
            tracking.water_consumed_oz, self._water_target(profile, metrics, tracking)
        )

        macros = PhaseClassifier(profile.protocol).macro_targets(
            metrics.days_until_weigh_in
        )
        if macros is not None:
            score += _macro_points(tracking, macros)

        return clamp(score)

    def _water_target(
        self,
        profile: AthleteProfile,
        metrics: DerivedMetrics,
        tracking: DailyTracking,
    ) -> float:
        if tracking.water_target_oz is not None:
            return tracking.water_target_oz
        return PhaseClassifier(profile.protocol).water_target_oz(
            metrics.days_until_weigh_in, metrics.current_weight_lbs
        )

    # ------------------------------------------------------------------
    # Blending
    # ------------------------------------------------------------------

    def _weights(
        self, phase: Phase, has_recovery: bool, has_compliance: bool
    ) -> Dict[str, float]:
        weight, recovery, compliance = PILLAR_WEIGHTS[phase]
        if not has_recovery:
            weight += recovery
            recovery = 0.0
        if not has_compliance:
            weight += compliance
            compliance = 0.0
        return {"weight": weight, "recovery": recovery, "compliance": compliance}

    def _guardrail(self, raw_score: float, metrics: DerivedMetrics) -> float:
        days = metrics.days_until_weigh_in
        gap = metrics.projected_gap_lbs
        if not (0 <= days <= TRAINING_PHASE_DAYS) or gap <= 0:
            return raw_score
        if gap > 3:
            return min(raw_score, 40)
        if gap > 1:
            return min(raw_score, 55)
        return min(raw_score, 75)

    def _rationale(
        self,
        pillars: Dict[str, PillarScore],
        profile: AthleteProfile,
        metrics: DerivedMetrics,
        sleep: List[float],
        tracking: Optional[DailyTracking],
        now: datetime,
    ) -> str:
        """One sentence on the weakest pillar with data"""
        active = sorted(
            (
                name
                for name, pillar in pillars.items()
                if pillar.has_data and pillar.weight > 0
            ),
            key=lambda name: pillars[name].raw,
        )
        weakest = active[0]

        if weakest == "weight":
            return _weight_rationale(profile, metrics)
        if weakest == "recovery":
            return _recovery_rationale(sleep, metrics.overnight_drift_lbs)
        return _compliance_rationale(
            tracking, self._water_target(profile, metrics, tracking), now
        )


def _has_projection(metrics: DerivedMetrics) -> bool:
    return metrics.overnight_drift_lbs is not None or metrics.practice_loss_lbs is not None


def _has_intake(tracking: Optional[DailyTracking]) -> bool:
    if tracking is None:
        return False
    return any(
        value > 0
        for value in (
            tracking.food_servings_logged,
            tracking.water_consumed_oz,
            tracking.carbs_consumed_g,
            tracking.protein_consumed_g,
        )
    )


def _macro_points(tracking: DailyTracking, macros) -> float:
    points = 0.0
    if tracking.carbs_consumed_g > 0 and macros.carbs_max_g > 0:
        if macros.carbs_min_g <= tracking.carbs_consumed_g <= macros.carbs_max_g:
            points += 5
        elif tracking.carbs_consumed_g < macros.carbs_min_g * 0.5:
            points -= 5
    if tracking.protein_consumed_g > 0 and macros.protein_g > 0:
        if abs(tracking.protein_consumed_g - macros.protein_g) <= macros.protein_g * 0.2:
            points += 5
    return points


def _weight_rationale(profile: AthleteProfile, metrics: DerivedMetrics) -> str:
    target = profile.target_weight_class_lbs
    current = metrics.current_weight_lbs

    if metrics.days_until_weigh_in > TRAINING_PHASE_DAYS:
        walk_around_gap = current - target * WALK_AROUND_MULTIPLIER
        if walk_around_gap <= 2:
            return "Holding near walk-around weight."
        if walk_around_gap <= 5:
            return f"{walk_around_gap:.1f} lbs above walk-around; monitor intake."
        return f"{walk_around_gap:.1f} lbs above walk-around; consider adjusting."

    if metrics.projected_gap_lbs > 0:
        return f"Projected {metrics.projected_gap_lbs:.1f} lbs over target at weigh-in."
    if current > target:
        return f"{current - target:.1f} lbs over target; keep tracking."
    return "On track to make weight."


def _recovery_rationale(sleep: List[float], drift: Optional[float]) -> str:
    if sleep:
        average = float(np.mean(sleep))
        if average < 6:
            return f"Averaging {average:.1f} hrs sleep; rest is critical for performance."
        if average < 7:
            return f"Averaging {average:.1f} hrs sleep; aim for 7-8 hrs."
    if drift is not None and drift < 0.5:
        return "Low overnight drift; could indicate dehydration."
    return "Recovery looks good; keep it up."


def _compliance_rationale(
    tracking: DailyTracking, water_target: float, now: datetime
) -> str:
    # Low intake only counts after noon
    afternoon = now.hour >= 12
    if afternoon and water_target > 0 and tracking.water_consumed_oz < water_target * 0.5:
        return "Water intake is well below target for today."
    target = tracking.food_servings_target
    if afternoon and target > 0 and tracking.food_servings_logged < target * 0.5:
        return "Food intake is well below target; follow the plan."
    if target > 0 and tracking.food_servings_logged > target * 1.5:
        return "Eating significantly over target for today."
    if not afternoon:
        return "Morning; start fueling when ready."
    return "Stay on the nutrition plan."
