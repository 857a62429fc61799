"""
Unit Conversion Constants for CutTracker

Every conversion factor used by the engine lives here so call sites consume
them by value instead of re-deriving them.

Exact factors:
- 1 lb = 0.45359237 kg (international avoirdupois pound)
- 1 US fl oz = 29.5735295625 ml
- 1 lb of water is treated as 16 fl oz for fluid allowances
"""

import math
from typing import Optional

from shared_models import LBS_TO_FLUID_OZ

LBS_TO_KG = 0.45359237

OZ_TO_ML = 29.5735295625

MINUTES_PER_HOUR = 60
HOURS_PER_DAY = 24
SECONDS_PER_HOUR = 3600

# Plausible body weights for the app's athletes
MIN_WEIGHT_LBS = 50
MAX_WEIGHT_LBS = 400


def lbs_to_kg(lbs: float) -> float:
    return lbs * LBS_TO_KG


def lbs_to_fluid_oz(lbs: float) -> float:
    """Fluid ounces equivalent to a body-weight change in pounds"""
    return lbs * LBS_TO_FLUID_OZ


def oz_to_ml(oz: float) -> float:
    return oz * OZ_TO_ML


def minutes_to_hours(minutes: float) -> float:
    return minutes / MINUTES_PER_HOUR


def get_weight_validation_error(weight) -> Optional[str]:
    """
    Describe why a weight is invalid.

    Returns:
        None for valid weights, otherwise a user-facing message
    """
    if isinstance(weight, bool) or not isinstance(weight, (int, float)):
        return "Weight must be a number"
    if not math.isfinite(weight):
        return "Weight must be a number"
    if weight < MIN_WEIGHT_LBS:
        return f"Weight must be at least {MIN_WEIGHT_LBS} lbs"
    if weight > MAX_WEIGHT_LBS:
        return f"Weight must be less than {MAX_WEIGHT_LBS} lbs"
    return None
