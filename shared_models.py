"""
Shared Data Models for CutTracker

This module contains all shared dataclasses and enums used throughout the
CutTracker insight engine, including the rate estimator, projection model,
guidance generator, cut score and the public insights API.

Unified data models provide:
- Type safety and validation
- Consistent data structures across modules
- A plain, serializable output record for display layers and coaching prompts
- Single source of truth for policy constants
"""

import json
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Dict, List, Optional

# ============================================================================
# ENUMS
# ============================================================================


class LogType(Enum):
    """Weight log entry types"""

    MORNING = "morning"
    PRE_PRACTICE = "pre-practice"
    POST_PRACTICE = "post-practice"
    BEFORE_BED = "before-bed"
    EXTRA_BEFORE = "extra-before"
    EXTRA_AFTER = "extra-after"
    CHECK_IN = "check-in"
    WEIGH_IN = "weigh-in"


class Protocol(Enum):
    """Weight management protocols offered to the athlete"""

    EXTREME_CUT = 1
    RAPID_CUT = 2
    OPTIMAL_CUT = 3
    GAIN = 4
    SPAR_NUTRITION = 5
    SPAR_COMPETITION = 6


class Phase(Enum):
    """Competition-week phase"""

    PREP = "prep"
    LOAD = "load"
    CUT = "cut"
    COMPETE = "compete"
    RECOVER = "recover"


class SafetyLevel(Enum):
    """Weight cut risk classification"""

    SAFE = "safe"
    CAUTION = "caution"
    WARNING = "warning"
    DANGER = "danger"


# Readings taken after an overnight fast
MORNING_TYPES = (LogType.MORNING, LogType.WEIGH_IN)

# Protocols that run the water load / restriction cycle
WATER_CUT_PROTOCOLS = (
    Protocol.EXTREME_CUT,
    Protocol.RAPID_CUT,
    Protocol.OPTIMAL_CUT,
    Protocol.SPAR_COMPETITION,
)


# ============================================================================
# INPUT DATA STRUCTURES
# ============================================================================


@dataclass(frozen=True)
class WeightLogEntry:
    """Single timestamped body-weight observation"""

    id: str
    timestamp: datetime  # UTC; naive values are treated as UTC, offsets are converted
    weight_lbs: float
    log_type: LogType
    duration_minutes: Optional[float] = None  # session length for practice/extra logs
    sleep_hours: Optional[float] = None  # logged on morning entries

    def __post_init__(self):
        """Normalize string log types and convert timestamps to UTC"""
        if isinstance(self.log_type, str):
            object.__setattr__(self, "log_type", LogType(self.log_type))
        if self.timestamp.tzinfo is None:
            utc_timestamp = self.timestamp.replace(tzinfo=timezone.utc)
        else:
            utc_timestamp = self.timestamp.astimezone(timezone.utc)
        object.__setattr__(self, "timestamp", utc_timestamp)


@dataclass
class AthleteProfile:
    """Athlete weight class and competition schedule"""

    current_weight_lbs: float
    target_weight_class_lbs: float
    protocol: Protocol
    weigh_in_date: Optional[date]
    weigh_in_time: Optional[time] = None  # defaults to 07:00

    def __post_init__(self):
        """Coerce protocol ids and fill the default weigh-in time"""
        if isinstance(self.protocol, (int, str)) and not isinstance(
            self.protocol, Protocol
        ):
            self.protocol = Protocol(int(self.protocol))
        if self.weigh_in_time is None:
            self.weigh_in_time = time(7, 0)


@dataclass
class DailyTracking:
    """Per-day intake record used for protocol compliance"""

    date: date
    water_consumed_oz: float = 0.0
    carbs_consumed_g: float = 0.0
    protein_consumed_g: float = 0.0
    food_servings_logged: float = 0.0
    food_servings_target: float = 0.0
    water_target_oz: Optional[float] = None  # derived from phase when absent


@dataclass
class EngineConfig:
    """
    Tunable engine parameters.

    The EMA decay is a tunable rather than a fitted constant: 0.88 sits in the
    middle of the 0.85-0.9 band, giving a week-old sample about 40% of the
    weight of today's.
    """

    ema_decay: float = 0.88
    history_window_days: int = 14
    min_sweat_rate_lbs_per_hr: float = 0.0
    max_sweat_rate_lbs_per_hr: float = 4.0
    max_drift_gap_hours: float = 16.0
    max_session_gap_hours: float = 6.0

    def __post_init__(self):
        """Validate engine configuration"""
        if not (0 < self.ema_decay <= 1):
            raise ValueError("ema_decay must be in (0, 1]")
        if self.history_window_days <= 0:
            raise ValueError("history_window_days must be positive")
        if self.min_sweat_rate_lbs_per_hr >= self.max_sweat_rate_lbs_per_hr:
            raise ValueError(
                "min_sweat_rate_lbs_per_hr must be less than max_sweat_rate_lbs_per_hr"
            )
        if self.max_drift_gap_hours <= 0 or self.max_session_gap_hours <= 0:
            raise ValueError("Gap limits must be positive")


# ============================================================================
# OUTPUT DATA STRUCTURES
# ============================================================================


@dataclass
class RateEstimates:
    """Recency-weighted physiological rates (None = insufficient data)"""

    overnight_drift_lbs: Optional[float] = None
    session_sweat_rate_lbs_per_hr: Optional[float] = None
    practice_loss_lbs: Optional[float] = None
    drift_sample_count: int = 0
    sweat_sample_count: int = 0
    data_quality_notes: List[str] = field(default_factory=list)


@dataclass
class PhaseTargets:
    """Phase-specific intake multipliers"""

    phase: Phase
    water_oz_per_lb: float
    sodium_mg: int
    food_multiplier: float


@dataclass
class DerivedMetrics:
    """Projection outputs recomputed on every engine call"""

    overnight_drift_lbs: Optional[float]
    session_sweat_rate_lbs_per_hr: Optional[float]
    days_until_weigh_in: int
    projected_weigh_in_weight_lbs: float
    projected_gap_lbs: float
    is_on_track: bool

    practice_loss_lbs: Optional[float] = None
    phase: Optional[Phase] = None
    current_weight_lbs: Optional[float] = None
    weight_to_lose_lbs: float = 0.0
    is_at_weight: bool = False
    workout_required: bool = False
    pace_status: Optional[str] = None  # on-track / borderline / risk
    data_quality_notes: List[str] = field(default_factory=list)


@dataclass
class RehydrationPlan:
    """Post weigh-in fluid and sodium ranges"""

    lost_lbs: float
    fluid_oz_min: int
    fluid_oz_max: int
    sodium_mg_min: int
    sodium_mg_max: int


@dataclass
class GuidancePlan:
    """Actionable guidance; every field is None when not applicable"""

    fluid_allowance_oz: Optional[int] = None
    fluid_cutoff_time: Optional[str] = None
    food_ceiling_lbs: Optional[float] = None
    food_cutoff_time: Optional[str] = None
    sodium_target_mg: Optional[int] = None
    food_intake_multiplier: Optional[float] = None  # share of normal food intake
    workout_minutes: Optional[int] = None
    workout_expected_loss_lbs: Optional[float] = None
    tradeoff_note: Optional[str] = None
    rehydration: Optional[RehydrationPlan] = None

    @property
    def workout_guidance(self) -> Optional[Dict[str, float]]:
        if self.workout_minutes is None or self.workout_expected_loss_lbs is None:
            return None
        return {
            "minutes": self.workout_minutes,
            "expected_loss_lbs": self.workout_expected_loss_lbs,
        }

    @property
    def is_empty(self) -> bool:
        return all(value is None for value in asdict(self).values())


@dataclass
class PillarScore:
    """One cut score pillar"""

    raw: float  # 0-100 before weighting
    weighted: float
    weight: float  # share used (0-1)
    has_data: bool


@dataclass
class CutScore:
    """Composite 0-100 readiness score"""

    score: int
    label: str
    zone: str  # green / yellow / red
    rationale: str
    pillars: Dict[str, PillarScore]


@dataclass
class SafetyAssessment:
    """Advisory risk classification"""

    level: SafetyLevel
    message: str


@dataclass
class InsightResult:
    """Complete engine output for one (profile, logs, now) snapshot"""

    configured: bool
    derived_metrics: Optional[DerivedMetrics] = None
    guidance_plan: Optional[GuidancePlan] = None
    cut_score: Optional[CutScore] = None
    safety: Optional[SafetyAssessment] = None
    reason: Optional[str] = None  # why the engine refused to compute

    def to_dict(self) -> dict:
        """Convert to a JSON-ready dict (enums as values)"""
        return _jsonable(asdict(self))

    def to_json(self, **kwargs) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, **kwargs)


def _jsonable(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return value


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================


def convert_dict_to_profile(profile_dict: dict) -> AthleteProfile:
    """Convert request dict format to AthleteProfile dataclass"""
    weigh_in_date = profile_dict.get("weigh_in_date")
    if isinstance(weigh_in_date, str):
        weigh_in_date = date.fromisoformat(weigh_in_date)

    weigh_in_time = profile_dict.get("weigh_in_time")
    if isinstance(weigh_in_time, str):
        weigh_in_time = time.fromisoformat(weigh_in_time)

    return AthleteProfile(
        current_weight_lbs=profile_dict["current_weight_lbs"],
        target_weight_class_lbs=profile_dict["target_weight_class_lbs"],
        protocol=Protocol(int(profile_dict.get("protocol", 2))),
        weigh_in_date=weigh_in_date,
        weigh_in_time=weigh_in_time,
    )


def convert_dict_to_log(log_dict: dict) -> WeightLogEntry:
    """Convert request dict format to WeightLogEntry dataclass"""
    timestamp = log_dict["timestamp"]
    if isinstance(timestamp, str):
        timestamp = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))

    return WeightLogEntry(
        id=str(log_dict["id"]),
        timestamp=timestamp,
        weight_lbs=log_dict["weight_lbs"],
        log_type=LogType(log_dict["log_type"]),
        duration_minutes=log_dict.get("duration_minutes"),
        sleep_hours=log_dict.get("sleep_hours"),
    )


def convert_dict_to_tracking(tracking_dict: dict) -> DailyTracking:
    """Convert request dict format to DailyTracking dataclass"""
    tracking_date = tracking_dict["date"]
    if isinstance(tracking_date, str):
        tracking_date = date.fromisoformat(tracking_date)

    return DailyTracking(
        date=tracking_date,
        water_consumed_oz=tracking_dict.get("water_consumed_oz", 0.0),
        carbs_consumed_g=tracking_dict.get("carbs_consumed_g", 0.0),
        protein_consumed_g=tracking_dict.get("protein_consumed_g", 0.0),
        food_servings_logged=tracking_dict.get("food_servings_logged", 0.0),
        food_servings_target=tracking_dict.get("food_servings_target", 0.0),
        water_target_oz=tracking_dict.get("water_target_oz"),
    )


# ============================================================================
# CONSTANTS AND CONFIGURATIONS
# ============================================================================

# Walk-around weight = weight class x this value
WALK_AROUND_MULTIPLIER = 1.07

# Weight check-in multipliers across the week (min, max)
CHECKPOINT_MULTIPLIERS = {
    "walk_around": (1.06, 1.07),
    "mid_week": (1.04, 1.05),
    "final_day": (1.02, 1.03),
}

# Pace status thresholds (lbs over class); loading days run heavy on purpose
STATUS_THRESHOLDS = {
    "default": {"on_track": 1.5, "borderline": 3.0},
    "loading": {"on_track": 4.0, "borderline": 6.0},
}

# Water oz per lb of body weight by days-out bucket
WATER_OZ_PER_LB = {
    "water_cut": {6: 0.5, 5: 1.2, 4: 1.5, 3: 1.5, 2: 0.3, 1: 0.08, 0: 0.0, -1: 0.75},
    "optimal_cut": {6: 0.5, 5: 0.5, 4: 0.5, 3: 0.5, 2: 0.3, 1: 0.08, 0: 0.0, -1: 0.75},
    "no_cut": {6: 0.5, 5: 0.5, 4: 0.5, 3: 0.5, 2: 0.5, 1: 0.5, 0: 0.0, -1: 0.75},
}

MAX_DAILY_WATER_OZ = 320  # ~2.5 gal safety cap

# Sodium mg/day; CUT is split by day
SODIUM_TARGETS_MG = {
    Phase.PREP: 3000,
    Phase.LOAD: 5000,
    "cut_day_2": 1500,
    "cut_day_1": 750,
    Phase.COMPETE: 0,
    Phase.RECOVER: 3000,
}

# Share of normal food intake
FOOD_MULTIPLIERS = {
    Phase.PREP: 1.0,
    Phase.LOAD: 1.0,
    "cut_day_2": 0.6,
    "cut_day_1": 0.4,
    Phase.COMPETE: 0.0,
    Phase.RECOVER: 1.2,
}

# Cut score pillar weights (weight, recovery, compliance) by phase
PILLAR_WEIGHTS = {
    Phase.PREP: (0.60, 0.25, 0.15),
    Phase.LOAD: (0.60, 0.20, 0.20),
    Phase.CUT: (0.70, 0.20, 0.10),
    Phase.COMPETE: (0.80, 0.20, 0.00),
    Phase.RECOVER: (0.60, 0.30, 0.10),
}

# Guidance policy constants
FLUID_CUTOFF_HOURS = {1: 12, 2: 8}  # hours before weigh-in time-of-day
FOOD_CUTOFF_HOURS = {1: 13, 2: 12, 3: 11}
LBS_TO_FLUID_OZ = 16  # 1 lb of water ~ 16 fl oz

FOOD_CEILINGS_LBS = {
    "day_1_restricted": 0.0,
    "day_1_light": 0.5,
    "day_2_on_track": 1.5,
    "day_2_moderate": 1.0,
    "day_2_restricted": 0.5,
    "loading_default": 2.5,
    "loading_heavy": 2.0,
}

# Rehydration per lb lost
REHYDRATION = {
    "fluid_oz_per_lb": (16, 24),
    "sodium_mg_per_lb": (500, 700),
}
