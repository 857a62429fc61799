"""
Insight Request Schema Validation Utilities

Validates JSON insight requests against the JSON Schema in
schemas/insight-request-schema.json and decodes valid requests into the
engine's dataclasses. Used by the command-line driver and by any HTTP layer
that forwards requests to compute_insights().
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from jsonschema import Draft202012Validator, ValidationError, validate

from shared_models import (
    AthleteProfile,
    DailyTracking,
    EngineConfig,
    WeightLogEntry,
    convert_dict_to_log,
    convert_dict_to_profile,
    convert_dict_to_tracking,
)

SCHEMA_PATH = Path(__file__).parent / "schemas" / "insight-request-schema.json"


def load_request_schema() -> Dict[str, Any]:
    """Load the insight request JSON Schema."""
    if not SCHEMA_PATH.exists():
        raise FileNotFoundError(f"Request schema not found at {SCHEMA_PATH}")

    with open(SCHEMA_PATH, "r") as f:
        return json.load(f)


def validate_request(
    request: Dict[str, Any], raise_on_error: bool = True
) -> Tuple[bool, Optional[str]]:
    """
    Validate an insight request against the JSON Schema.

    Args:
        request: Parsed JSON request
        raise_on_error: Whether to raise ValidationError on validation failure

    Returns:
        Tuple of (is_valid, error_message)

    Raises:
        ValidationError: If validation fails and raise_on_error is True
    """
    try:
        schema = load_request_schema()
        validate(instance=request, schema=schema, cls=Draft202012Validator)
        return True, None
    except ValidationError as e:
        error_msg = f"Request schema validation failed: {e.message}"
        if raise_on_error:
            raise ValidationError(error_msg) from e
        return False, error_msg


def get_schema_errors(request: Dict[str, Any]) -> List[str]:
    """
    Get all validation errors for a request without raising exceptions.

    Returns:
        List of error messages (empty if valid)
    """
    try:
        schema = load_request_schema()
    except (OSError, json.JSONDecodeError) as e:
        return [f"Schema loading error: {str(e)}"]

    validator = Draft202012Validator(schema)
    errors = []
    for error in validator.iter_errors(request):
        path = (
            " -> ".join(str(p) for p in error.absolute_path)
            if error.absolute_path
            else "root"
        )
        errors.append(f"Path '{path}': {error.message}")
    return errors


def decode_request(
    request: Dict[str, Any],
) -> Tuple[
    AthleteProfile,
    List[WeightLogEntry],
    Optional[DailyTracking],
    Optional[datetime],
    EngineConfig,
]:
    """
    Validate a request and convert it to engine inputs.

    Returns:
        (profile, logs, daily_tracking, now, config); now is None when the
        request omits it

    Raises:
        ValidationError: If the request does not match the schema
    """
    validate_request(request)

    profile = convert_dict_to_profile(request["profile"])
    logs = [convert_dict_to_log(entry) for entry in request["logs"]]

    tracking = None
    if request.get("daily_tracking") is not None:
        tracking = convert_dict_to_tracking(request["daily_tracking"])

    now = None
    if request.get("now"):
        now = datetime.fromisoformat(request["now"].replace("Z", "+00:00"))

    config = EngineConfig(**request.get("config", {}))
    return profile, logs, tracking, now, config


def create_request_example() -> Dict[str, Any]:
    """Create a valid request example for testing."""
    return {
        "profile": {
            "current_weight_lbs": 136.0,
            "target_weight_class_lbs": 133.0,
            "protocol": 2,
            "weigh_in_date": "2024-01-13",
            "weigh_in_time": "07:00",
        },
        "logs": [
            {
                "id": "1",
                "timestamp": "2024-01-11T22:00:00Z",
                "weight_lbs": 137.4,
                "log_type": "before-bed",
            },
            {
                "id": "2",
                "timestamp": "2024-01-12T06:30:00Z",
                "weight_lbs": 136.2,
                "log_type": "morning",
                "sleep_hours": 7.5,
            },
        ],
        "daily_tracking": {
            "date": "2024-01-12",
            "water_consumed_oz": 20,
            "food_servings_logged": 3,
            "food_servings_target": 4,
        },
        "now": "2024-01-12T06:45:00Z",
    }
