"""
Daily Guidance Generation

Turns the projected gap to target into concrete instructions for the day:
how much fluid to drink and until when, how much food (by mass) and until
when, and whether an extra workout is needed.

Evaluation order matters and is fixed:

1. No profile or metrics -> no guidance at all
2. After weigh-in -> rehydration only
3. Weigh-in day -> nothing by mouth until weigh-in; workout if still over
4. Already at weight -> no guidance
5. Otherwise fluid, food, workout and a tradeoff hint

Weigh-in day and active guidance also carry the phase's sodium ceiling and
food multiplier.

A missing input never turns into a zero-valued instruction: a null gap or a
null sweat rate means the corresponding guidance is null.
"""

import logging
import math
from datetime import datetime, time
from typing import Optional, Sequence

from conversions import lbs_to_fluid_oz, minutes_to_hours
from shared_models import (
    FLUID_CUTOFF_HOURS,
    FOOD_CEILINGS_LBS,
    FOOD_CUTOFF_HOURS,
    REHYDRATION,
    AthleteProfile,
    DerivedMetrics,
    GuidancePlan,
    RehydrationPlan,
    WeightLogEntry,
)
from phase_planning import get_phase_targets, water_target_oz
from weight_logs import weight_lost_since

logger = logging.getLogger(__name__)

# Workout session lengths (minutes) and the share of an hour's sweat rate
# each length is expected to cover
SHORT_SESSION_MINUTES = 30
MEDIUM_SESSION_MINUTES = 45
LONG_SESSION_MINUTES = 60
SHORT_SESSION_FACTOR = 0.5 * 1.2
MEDIUM_SESSION_FACTOR = 0.75

# Smallest gain worth a tradeoff hint
MIN_TRADEOFF_FLUID_OZ = 4
MIN_TRADEOFF_FOOD_LBS = 0.25

REHYDRATION_LOOKBACK_DAYS = 7

GLYCOGEN_CAVEAT = (
    "Glycogen repletion is slow, so the extra work costs energy you may not "
    "get back before you wrestle."
)


def format_cutoff(weigh_in_time: time, hours_before: int) -> str:
    """Weigh-in time-of-day minus whole hours, as HH:MM (wraps past midnight)"""
    hour = (weigh_in_time.hour - hours_before) % 24
    return f"{hour:02d}:{weigh_in_time.minute:02d}"


def rehydration_plan(lost_lbs: float) -> Optional[RehydrationPlan]:
    """
    Post weigh-in fluid and sodium ranges for the weight lost.

    Returns:
        RehydrationPlan, or None when nothing was lost
    """
    if lost_lbs <= 0:
        return None
    fluid_min, fluid_max = REHYDRATION["fluid_oz_per_lb"]
    sodium_min, sodium_max = REHYDRATION["sodium_mg_per_lb"]
    return RehydrationPlan(
        lost_lbs=round(lost_lbs, 1),
        fluid_oz_min=round(lost_lbs * fluid_min),
        fluid_oz_max=round(lost_lbs * fluid_max),
        sodium_mg_min=round(lost_lbs * sodium_min),
        sodium_mg_max=round(lost_lbs * sodium_max),
    )


def select_workout(gap: float, sweat_rate: Optional[float]):
    """
    Choose a session length that covers the gap.

    Returns:
        (minutes, expected_loss_lbs), or (None, None) when no workout applies
    """
    if gap <= 0 or sweat_rate is None or sweat_rate <= 0:
        return None, None

    if gap <= sweat_rate * SHORT_SESSION_FACTOR:
        minutes = SHORT_SESSION_MINUTES
    elif gap <= sweat_rate * MEDIUM_SESSION_FACTOR:
        minutes = MEDIUM_SESSION_MINUTES
    else:
        minutes = LONG_SESSION_MINUTES

    expected_loss = round(sweat_rate * minutes_to_hours(minutes), 2)
    return minutes, expected_loss


class GuidanceGenerator:
    """Builds the GuidancePlan for one snapshot"""

    def generate(
        self,
        profile: Optional[AthleteProfile],
        metrics: Optional[DerivedMetrics],
        logs: Sequence[WeightLogEntry] = (),
        now: Optional[datetime] = None,
    ) -> GuidancePlan:
        """
        Generate guidance from the projection.

        Args:
            profile: Athlete profile; None means not configured
            metrics: Projection for the same snapshot
            logs: Weight log, used for the rehydration estimate
            now: Evaluation time, used for the rehydration estimate

        Returns:
            GuidancePlan; fields that do not apply are None
        """
        if profile is None or metrics is None:
            return GuidancePlan()

        days = metrics.days_until_weigh_in

        if days < 0:
            return GuidancePlan(rehydration=self._rehydration(logs, now))

        if days == 0:
            plan = self._weigh_in_day(metrics, logs, now)
            self._intake_targets(plan, profile, days)
            return plan

        if metrics.is_at_weight:
            logger.info("At weight; no guidance needed")
            return GuidancePlan()

        plan = GuidancePlan()
        self._fluids(plan, profile, metrics)
        self._food(plan, profile, metrics)
        self._intake_targets(plan, profile, days)
        plan.workout_minutes, plan.workout_expected_loss_lbs = select_workout(
            metrics.projected_gap_lbs, metrics.session_sweat_rate_lbs_per_hr
        )
        if days <= 2:
            plan.tradeoff_note = self._tradeoff_note(plan, metrics)

        logger.info(
            f"Guidance at {days} days out: fluid={plan.fluid_allowance_oz} oz "
            f"until {plan.fluid_cutoff_time}, food={plan.food_ceiling_lbs} lbs "
            f"until {plan.food_cutoff_time}, sodium={plan.sodium_target_mg} mg, "
            f"workout={plan.workout_minutes} min"
        )
        return plan

    def _intake_targets(
        self, plan: GuidancePlan, profile: AthleteProfile, days: int
    ) -> None:
        """Sodium ceiling and share of normal food intake for the day's phase"""
        targets = get_phase_targets(profile.protocol, days)
        plan.sodium_target_mg = targets.sodium_mg
        plan.food_intake_multiplier = targets.food_multiplier

    def _weigh_in_day(
        self,
        metrics: DerivedMetrics,
        logs: Sequence[WeightLogEntry],
        now: Optional[datetime],
    ) -> GuidancePlan:
        minutes, expected_loss = select_workout(
            metrics.projected_gap_lbs, metrics.session_sweat_rate_lbs_per_hr
        )
        return GuidancePlan(
            fluid_allowance_oz=0,
            fluid_cutoff_time="weigh-in",
            food_ceiling_lbs=0.0,
            food_cutoff_time="after weigh-in",
            workout_minutes=minutes,
            workout_expected_loss_lbs=expected_loss,
            rehydration=self._rehydration(logs, now),
        )

    def _rehydration(
        self, logs: Sequence[WeightLogEntry], now: Optional[datetime]
    ) -> Optional[RehydrationPlan]:
        if now is None or not logs:
            return None
        lost = weight_lost_since(logs, now, REHYDRATION_LOOKBACK_DAYS)
        return rehydration_plan(lost)

    def _fluids(
        self, plan: GuidancePlan, profile: AthleteProfile, metrics: DerivedMetrics
    ) -> None:
        days = metrics.days_until_weigh_in

        if days >= 3:
            plan.fluid_allowance_oz = int(
                water_target_oz(profile.protocol, days, metrics.current_weight_lbs)
            )
            plan.fluid_cutoff_time = "bedtime"
            return

        cutoff = format_cutoff(profile.weigh_in_time, FLUID_CUTOFF_HOURS[days])
        buffer = profile.target_weight_class_lbs - metrics.projected_weigh_in_weight_lbs
        if buffer >= 0:
            plan.fluid_allowance_oz = math.floor(lbs_to_fluid_oz(buffer))
            plan.fluid_cutoff_time = cutoff
        else:
            plan.fluid_allowance_oz = 0
            plan.fluid_cutoff_time = "now" if days == 1 else cutoff

    def _food(
        self, plan: GuidancePlan, profile: AthleteProfile, metrics: DerivedMetrics
    ) -> None:
        days = metrics.days_until_weigh_in
        gap = metrics.projected_gap_lbs
        to_lose = metrics.weight_to_lose_lbs

        if days == 1:
            if to_lose >= 2 or gap > 0.5:
                plan.food_ceiling_lbs = FOOD_CEILINGS_LBS["day_1_restricted"]
                plan.food_cutoff_time = "after weigh-in"
            else:
                plan.food_ceiling_lbs = FOOD_CEILINGS_LBS["day_1_light"]
                plan.food_cutoff_time = format_cutoff(
                    profile.weigh_in_time, FOOD_CUTOFF_HOURS[1]
                )
            return

        if days == 2:
            if gap <= 0:
                plan.food_ceiling_lbs = FOOD_CEILINGS_LBS["day_2_on_track"]
            elif gap > 1.5 or to_lose >= 4:
                plan.food_ceiling_lbs = FOOD_CEILINGS_LBS["day_2_restricted"]
            else:
                plan.food_ceiling_lbs = FOOD_CEILINGS_LBS["day_2_moderate"]
            plan.food_cutoff_time = format_cutoff(
                profile.weigh_in_time, FOOD_CUTOFF_HOURS[2]
            )
            return

        key = "loading_heavy" if gap > 2 else "loading_default"
        plan.food_ceiling_lbs = FOOD_CEILINGS_LBS[key]
        plan.food_cutoff_time = format_cutoff(
            profile.weigh_in_time, FOOD_CUTOFF_HOURS[3]
        )

    def _tradeoff_note(
        self, plan: GuidancePlan, metrics: DerivedMetrics
    ) -> Optional[str]:
        """
        Hint that a short session could buy fluid or food room.

        The session first has to close the projected gap; only what it loses
        beyond that becomes room to drink or eat.
        """
        rate = metrics.session_sweat_rate_lbs_per_hr
        if rate is None or rate <= 0:
            return None

        short_loss = rate * minutes_to_hours(SHORT_SESSION_MINUTES)
        freed_lbs = short_loss - metrics.projected_gap_lbs
        if freed_lbs <= 0:
            return None

        freed_oz = math.floor(lbs_to_fluid_oz(freed_lbs))
        if plan.fluid_allowance_oz == 0 and freed_oz >= MIN_TRADEOFF_FLUID_OZ:
            return (
                f"A {SHORT_SESSION_MINUTES}-minute session would free about "
                f"{freed_oz} oz of fluid. {GLYCOGEN_CAVEAT}"
            )

        if plan.food_ceiling_lbs == 0 and freed_lbs >= MIN_TRADEOFF_FOOD_LBS:
            snack_lbs = round(freed_lbs, 2)
            return (
                f"A {SHORT_SESSION_MINUTES}-minute session would make room for "
                f"about {snack_lbs} lbs of food. {GLYCOGEN_CAVEAT}"
            )

        return None
