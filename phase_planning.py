"""
Competition-Week Phase Planning for Weight Cut Tracking

Maps (protocol, days until weigh-in) to a named phase and to the phase's
intake targets. Every combination resolves to exactly one phase; day counts
outside the tables clamp to the nearest defined bucket.

Protocol families:
- Water-cut protocols (1 Extreme, 2 Rapid, 3 Optimal, 6 SPAR Competition)
  run the load -> restrict cycle in the final week
- Maintenance protocols (4 Gain, 5 SPAR Nutrition) stay in PREP until
  competition day

The week structure follows the standard wrestling water-loading approach:
three days of elevated water and sodium to suppress ADH, then a sharp
restriction in the final 48 hours while urine output stays high.
"""

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Optional, Tuple

from shared_models import (
    CHECKPOINT_MULTIPLIERS,
    FOOD_MULTIPLIERS,
    MAX_DAILY_WATER_OZ,
    SODIUM_TARGETS_MG,
    WALK_AROUND_MULTIPLIER,
    WATER_CUT_PROTOCOLS,
    WATER_OZ_PER_LB,
    Phase,
    PhaseTargets,
    Protocol,
)

logger = logging.getLogger(__name__)


class PhaseClassificationError(Exception):
    """Raised when a protocol or day count cannot be classified"""

    pass


# Percent over class that calls for the extreme protocol
EXTREME_CUT_TRIGGER_PERCENT = 12.0


@dataclass
class ProtocolRecommendation:
    """Suggested protocol for an athlete's current weight"""

    protocol: Protocol
    reason: str
    warning: Optional[str] = None


@dataclass
class MacroTargets:
    """Daily carbohydrate range and protein target in grams"""

    carbs_min_g: float
    carbs_max_g: float
    protein_g: float


# (carbs min, carbs max, protein) grams per day
MACRO_TARGETS = {
    Protocol.EXTREME_CUT: {
        Phase.PREP: (250, 400, 0),
        Phase.LOAD: (250, 400, 0),
        Phase.CUT: (100, 250, 30),
        Phase.COMPETE: (0, 0, 0),
        Phase.RECOVER: (300, 450, 125),
    },
    Protocol.RAPID_CUT: {
        Phase.PREP: (325, 450, 25),
        Phase.LOAD: (325, 450, 25),
        Phase.CUT: (325, 450, 60),
        Phase.COMPETE: (0, 0, 0),
        Phase.RECOVER: (300, 450, 125),
    },
    Protocol.OPTIMAL_CUT: {
        Phase.PREP: (300, 450, 75),
        Phase.LOAD: (300, 450, 75),
        Phase.CUT: (300, 450, 100),
        Phase.COMPETE: (0, 0, 0),
        Phase.RECOVER: (300, 450, 125),
    },
    Protocol.GAIN: {
        Phase.PREP: (350, 600, 125),
        Phase.COMPETE: (0, 0, 0),
        Phase.RECOVER: (350, 600, 125),
    },
}


# Weigh-in time assumed when the profile leaves it unset
DEFAULT_WEIGH_IN_TIME = time(7, 0)


def days_until_weigh_in(
    weigh_in_date: date, now: datetime, weigh_in_time: Optional[time] = None
) -> int:
    """
    Whole days from now until the weigh-in moment.

    Partial days round down: 23h59m before weigh-in is 0 days, and any time
    after weigh-in is negative.
    """
    weigh_in = datetime.combine(
        weigh_in_date, weigh_in_time or DEFAULT_WEIGH_IN_TIME, tzinfo=timezone.utc
    )
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return math.floor((weigh_in - now) / timedelta(days=1))


def classify_phase(protocol: Protocol, days: int) -> Phase:
    """
    Map a protocol and days-out count to a competition-week phase.

    Args:
        protocol: Athlete's protocol
        days: Days until weigh-in (negative after weigh-in)

    Returns:
        Phase for the day

    Raises:
        PhaseClassificationError: If the protocol is not recognized
    """
    protocol = _coerce_protocol(protocol)

    if days < 0:
        return Phase.RECOVER
    if days == 0:
        return Phase.COMPETE
    if protocol not in WATER_CUT_PROTOCOLS:
        return Phase.PREP
    if days <= 2:
        return Phase.CUT
    if days <= 5:
        return Phase.LOAD
    return Phase.PREP


def _coerce_protocol(protocol) -> Protocol:
    if isinstance(protocol, Protocol):
        return protocol
    try:
        return Protocol(int(protocol))
    except (TypeError, ValueError):
        raise PhaseClassificationError(f"Unknown protocol: {protocol!r}")


def _water_table_key(protocol: Protocol) -> str:
    if protocol == Protocol.OPTIMAL_CUT:
        return "optimal_cut"
    if protocol in WATER_CUT_PROTOCOLS:
        return "water_cut"
    return "no_cut"


def _clamp_bucket(table: Dict[int, float], days: int) -> int:
    """Nearest defined day bucket"""
    return min(max(days, min(table)), max(table))


def _cut_day_key(days: int) -> str:
    return "cut_day_1" if days <= 1 else "cut_day_2"


class PhaseClassifier:
    """
    Phase lookups for one protocol.

    Thin wrapper so callers can classify and fetch targets without passing
    the protocol around.
    """

    def __init__(self, protocol: Protocol):
        self.protocol = _coerce_protocol(protocol)

    def classify(self, days: int) -> Phase:
        phase = classify_phase(self.protocol, days)
        logger.info(
            f"Protocol {self.protocol.value} at {days} days out -> {phase.value}"
        )
        return phase

    def targets(self, days: int) -> PhaseTargets:
        """
        Intake targets for a day.

        Args:
            days: Days until weigh-in

        Returns:
            PhaseTargets with water oz/lb, sodium mg and food multiplier
        """
        phase = classify_phase(self.protocol, days)

        water_table = WATER_OZ_PER_LB[_water_table_key(self.protocol)]
        water_oz_per_lb = water_table[_clamp_bucket(water_table, days)]

        key = _cut_day_key(days) if phase == Phase.CUT else phase
        return PhaseTargets(
            phase=phase,
            water_oz_per_lb=water_oz_per_lb,
            sodium_mg=SODIUM_TARGETS_MG[key],
            food_multiplier=FOOD_MULTIPLIERS[key],
        )

    def water_target_oz(self, days: int, weight_lbs: float) -> float:
        """Daily water target in oz, capped at the safety maximum"""
        target = self.targets(days).water_oz_per_lb * weight_lbs
        return min(round(target), MAX_DAILY_WATER_OZ)

    def macro_targets(self, days: int) -> Optional[MacroTargets]:
        """Carb/protein targets for the day; None for portion-based protocols"""
        return get_macro_targets(self.protocol, classify_phase(self.protocol, days))


def get_phase_targets(protocol: Protocol, days: int) -> PhaseTargets:
    return PhaseClassifier(protocol).targets(days)


def water_target_oz(protocol: Protocol, days: int, weight_lbs: float) -> float:
    return PhaseClassifier(protocol).water_target_oz(days, weight_lbs)


def get_macro_targets(protocol: Protocol, phase: Phase) -> Optional[MacroTargets]:
    """
    Macro targets for a protocol phase.

    SPAR protocols count portions rather than grams, so they have no gram
    targets. A phase missing from a protocol's table falls back to PREP.
    """
    table = MACRO_TARGETS.get(protocol)
    if table is None:
        return None
    values = table.get(phase, table.get(Phase.PREP))
    if values is None:
        return None
    return MacroTargets(*values)


# ============================================================================
# PROTOCOL RECOMMENDATION
# ============================================================================


def walk_around_weight(target_weight_class_lbs: float) -> float:
    return target_weight_class_lbs * WALK_AROUND_MULTIPLIER


def recommend_protocol(
    current_weight_lbs: float, target_weight_class_lbs: float
) -> ProtocolRecommendation:
    """
    Suggest a protocol from how far the athlete sits above their class.

    - Under class: Gain
    - More than 12% over: Extreme Cut, limited to a few weeks
    - Above walk-around weight: Rapid Cut
    - Otherwise: Optimal Cut
    """
    if target_weight_class_lbs <= 0:
        raise PhaseClassificationError("Target weight class must be positive")

    walk_around = walk_around_weight(target_weight_class_lbs)
    lbs_over_target = current_weight_lbs - target_weight_class_lbs
    lbs_over_walk_around = current_weight_lbs - walk_around
    percent_over = lbs_over_target / target_weight_class_lbs * 100

    if current_weight_lbs < target_weight_class_lbs:
        return ProtocolRecommendation(
            Protocol.GAIN,
            f"{abs(lbs_over_target):.1f} lbs under target class; gain phase "
            f"adds weight safely.",
        )

    if percent_over > EXTREME_CUT_TRIGGER_PERCENT:
        return ProtocolRecommendation(
            Protocol.EXTREME_CUT,
            f"{percent_over:.1f}% over competition weight "
            f"({lbs_over_walk_around:.1f} lbs above walk-around).",
            warning="Run 2-4 weeks max, then transition to Rapid Cut or Optimal Cut.",
        )

    if current_weight_lbs > walk_around:
        return ProtocolRecommendation(
            Protocol.RAPID_CUT,
            f"{lbs_over_walk_around:.1f} lbs above walk-around weight "
            f"({walk_around:.1f} lbs).",
        )

    return ProtocolRecommendation(
        Protocol.OPTIMAL_CUT, "At walk-around weight; maintain and compete."
    )


def weight_checkpoints(
    target_weight_class_lbs: float,
) -> Dict[str, Tuple[float, float]]:
    """
    Expected weight ranges through the week.

    Returns:
        Dict of checkpoint name -> (low, high) lbs
    """
    return {
        name: (
            round(target_weight_class_lbs * low, 1),
            round(target_weight_class_lbs * high, 1),
        )
        for name, (low, high) in CHECKPOINT_MULTIPLIERS.items()
    }
