"""
Integration tests for the Insights API Layer

Runs the full engine on small realistic snapshots and checks the
properties callers rely on: determinism, null-safety, cache keys and the
not-configured path.
"""

import copy
import dataclasses
import json
from datetime import date, datetime, timedelta, timezone

import pytest

from insights_api import (
    CacheKeyError,
    InvalidLogError,
    InvalidProfileError,
    compute_insights,
    filter_valid_logs,
    generate_cache_key,
    normalize_now,
    validate_log,
    validate_profile,
)
import run_insights
from request_schema import create_request_example, decode_request
from shared_models import (
    AthleteProfile,
    DailyTracking,
    LogType,
    Phase,
    Protocol,
    SafetyLevel,
    WeightLogEntry,
)

NOW = datetime(2024, 1, 12, 6, 30, tzinfo=timezone.utc)


def at(day, hour, minute=0):
    return datetime(2024, 1, day, hour, minute, tzinfo=timezone.utc)


def shifted(logs, delta):
    return [dataclasses.replace(entry, weight_lbs=entry.weight_lbs + delta) for entry in logs]


class TestScenarios:
    """End-to-end snapshots with hand-checked numbers"""

    def test_day_before_weigh_in_without_sweat_data(self, cut_profile, overnight_logs):
        """Drift alone projects 1.8 lbs over; no workout without a sweat rate"""
        result = compute_insights(cut_profile, overnight_logs, now=NOW)

        metrics = result.derived_metrics
        assert result.configured
        assert metrics.days_until_weigh_in == 1
        assert metrics.phase == Phase.CUT
        assert metrics.overnight_drift_lbs == pytest.approx(1.2)
        assert metrics.projected_weigh_in_weight_lbs == pytest.approx(134.8)
        assert metrics.projected_gap_lbs == pytest.approx(1.8)
        assert not metrics.is_on_track

        plan = result.guidance_plan
        assert plan.workout_guidance is None
        assert plan.tradeoff_note is None
        assert plan.fluid_allowance_oz == 0
        assert plan.fluid_cutoff_time == "now"
        assert plan.sodium_target_mg == 750
        assert plan.food_intake_multiplier == 0.4
        assert result.safety.level == SafetyLevel.WARNING

    def test_two_days_out_on_track_after_extra_workout(self, extra_workout_logs):
        profile = AthleteProfile(
            current_weight_lbs=134.0,
            target_weight_class_lbs=133.0,
            protocol=Protocol.RAPID_CUT,
            weigh_in_date=date(2024, 1, 13),
        )
        result = compute_insights(profile, extra_workout_logs, now=at(11, 6, 30))

        metrics = result.derived_metrics
        assert metrics.days_until_weigh_in == 2
        assert metrics.session_sweat_rate_lbs_per_hr == pytest.approx(1.5)
        assert metrics.practice_loss_lbs is None
        assert metrics.projected_weigh_in_weight_lbs == pytest.approx(132.4)
        assert metrics.is_on_track

        plan = result.guidance_plan
        assert plan.food_ceiling_lbs == 1.5
        assert plan.fluid_allowance_oz == 9
        assert plan.workout_guidance is None
        assert plan.tradeoff_note is None

    def test_at_weight_needs_no_guidance(self):
        profile = AthleteProfile(
            current_weight_lbs=133.0,
            target_weight_class_lbs=133.0,
            protocol=Protocol.RAPID_CUT,
            weigh_in_date=NOW.date() + timedelta(days=3),
        )
        result = compute_insights(profile, [], now=NOW)

        assert result.derived_metrics.is_at_weight
        assert result.guidance_plan.is_empty
        assert result.safety.level == SafetyLevel.SAFE

    def test_far_over_the_day_before_is_danger(self):
        profile = AthleteProfile(
            current_weight_lbs=139.0,
            target_weight_class_lbs=133.0,
            protocol=Protocol.RAPID_CUT,
            weigh_in_date=NOW.date() + timedelta(days=1),
        )
        result = compute_insights(profile, [], now=NOW)

        assert result.safety.level == SafetyLevel.DANGER
        assert result.cut_score.zone == "red"

    def test_weigh_in_day(self, cut_profile, overnight_logs):
        result = compute_insights(cut_profile, overnight_logs, now=at(13, 5))

        assert result.derived_metrics.days_until_weigh_in == 0
        assert result.derived_metrics.phase == Phase.COMPETE
        assert result.guidance_plan.fluid_allowance_oz == 0
        assert result.guidance_plan.fluid_cutoff_time == "weigh-in"
        assert result.guidance_plan.food_cutoff_time == "after weigh-in"

    def test_less_than_a_day_out_is_weigh_in_day(self, cut_profile, overnight_logs):
        """23h59m before a 07:00 weigh-in rounds down to 0 days"""
        result = compute_insights(cut_profile, overnight_logs, now=at(12, 7, 1))

        assert result.derived_metrics.days_until_weigh_in == 0
        assert result.derived_metrics.phase == Phase.COMPETE
        assert result.guidance_plan.fluid_allowance_oz == 0
        assert result.guidance_plan.fluid_cutoff_time == "weigh-in"

    def test_example_request_runs(self):
        profile, logs, tracking, now, config = decode_request(create_request_example())
        result = compute_insights(profile, logs, tracking, now=now, config=config)

        assert result.configured
        assert result.cut_score.pillars["compliance"].has_data
        assert 0 <= result.cut_score.score <= 100


class TestEngineProperties:
    """Properties that hold for every snapshot"""

    def test_same_inputs_same_output(self, cut_profile, overnight_logs, tracking):
        first = compute_insights(cut_profile, overnight_logs, tracking, now=NOW)
        second = compute_insights(cut_profile, overnight_logs, tracking, now=NOW)

        assert first.to_json() == second.to_json()

    def test_heavier_logs_never_shrink_the_gap(self, cut_profile, overnight_logs):
        gaps = [
            compute_insights(
                cut_profile, shifted(overnight_logs, delta), now=NOW
            ).derived_metrics.projected_gap_lbs
            for delta in (-3.0, -1.0, 0.0, 0.5, 2.0)
        ]

        assert gaps == sorted(gaps)

    def test_empty_history_yields_nulls_not_errors(self):
        profile = AthleteProfile(
            current_weight_lbs=136.0,
            target_weight_class_lbs=133.0,
            protocol=Protocol.RAPID_CUT,
            weigh_in_date=NOW.date() + timedelta(days=4),
        )
        result = compute_insights(profile, [], now=NOW)

        metrics = result.derived_metrics
        assert metrics.overnight_drift_lbs is None
        assert metrics.session_sweat_rate_lbs_per_hr is None
        assert metrics.projected_weigh_in_weight_lbs == 136.0
        assert result.guidance_plan.workout_guidance is None
        assert not result.cut_score.pillars["recovery"].has_data

    def test_inputs_are_not_mutated(self, cut_profile, overnight_logs, tracking):
        logs_before = copy.deepcopy(overnight_logs)
        profile_before = copy.deepcopy(cut_profile)
        tracking_before = copy.deepcopy(tracking)

        compute_insights(cut_profile, overnight_logs, tracking, now=NOW)

        assert overnight_logs == logs_before
        assert cut_profile == profile_before
        assert tracking == tracking_before

    def test_naive_now_is_utc(self, cut_profile, overnight_logs):
        aware = compute_insights(cut_profile, overnight_logs, now=NOW)
        naive = compute_insights(
            cut_profile, overnight_logs, now=NOW.replace(tzinfo=None)
        )

        assert aware.to_json() == naive.to_json()

    def test_result_is_json_serializable(self, cut_profile, overnight_logs, tracking):
        result = compute_insights(cut_profile, overnight_logs, tracking, now=NOW)
        payload = json.loads(result.to_json())

        assert payload["configured"] is True
        assert payload["derived_metrics"]["phase"] == "cut"
        assert payload["safety"]["level"] == "warning"
        assert set(payload["cut_score"]["pillars"]) == {"weight", "recovery", "compliance"}


class TestNotConfigured:
    """Unusable profiles return a reason instead of raising"""

    def test_no_profile(self, overnight_logs):
        result = compute_insights(None, overnight_logs, now=NOW)

        assert not result.configured
        assert result.reason == "No athlete profile"
        assert result.derived_metrics is None

    def test_missing_weigh_in_date(self, cut_profile):
        profile = dataclasses.replace(cut_profile, weigh_in_date=None)
        result = compute_insights(profile, [], now=NOW)

        assert not result.configured
        assert result.reason == "Weigh-in date is not set"

    def test_zero_weight_class(self, cut_profile):
        profile = dataclasses.replace(cut_profile, target_weight_class_lbs=0)
        result = compute_insights(profile, [], now=NOW)

        assert not result.configured
        assert result.reason == "Target weight class must be greater than 0"

    def test_not_configured_serializes(self):
        payload = json.loads(compute_insights(None, [], now=NOW).to_json())

        assert payload["configured"] is False
        assert payload["guidance_plan"] is None


class TestInputHandling:
    """Validation, filtering and tracking selection"""

    def test_profile_validation_raises(self, cut_profile):
        with pytest.raises(InvalidProfileError):
            validate_profile(dataclasses.replace(cut_profile, current_weight_lbs=20))

    def test_malformed_log_raises(self):
        entry = WeightLogEntry("bad", NOW, float("nan"), LogType.MORNING)
        with pytest.raises(InvalidLogError):
            validate_log(entry)

    def test_malformed_log_is_dropped_with_note(self, cut_profile, overnight_logs):
        bad = WeightLogEntry("bad", NOW - timedelta(minutes=5), float("nan"), LogType.CHECK_IN)
        valid, notes = filter_valid_logs(overnight_logs + [bad])

        assert valid == overnight_logs
        assert notes == ["Log bad: weight must be greater than 0"]

        result = compute_insights(cut_profile, overnight_logs + [bad], now=NOW)
        assert result.derived_metrics.data_quality_notes[0] == notes[0]
        assert result.derived_metrics.current_weight_lbs == 136.0

    @pytest.mark.parametrize(
        "field, value",
        [
            ("duration_minutes", "30"),
            ("duration_minutes", float("inf")),
            ("sleep_hours", "7"),
            ("sleep_hours", float("nan")),
            ("sleep_hours", -1.0),
            ("sleep_hours", 25.0),
        ],
    )
    def test_non_numeric_duration_or_sleep_raises(self, field, value):
        entry = WeightLogEntry("bad", NOW, 136.0, LogType.MORNING, **{field: value})
        with pytest.raises(InvalidLogError):
            validate_log(entry)

    def test_string_sleep_is_dropped_not_crashing(self, cut_profile, overnight_logs):
        bad = WeightLogEntry(
            "bad", NOW - timedelta(minutes=5), 136.0, LogType.MORNING, sleep_hours="7"
        )
        result = compute_insights(cut_profile, overnight_logs + [bad], now=NOW)

        assert result.configured
        assert result.derived_metrics.data_quality_notes[0] == (
            "Log bad: sleep hours must be a number"
        )

    def test_tracking_for_another_day_is_ignored(self, cut_profile, overnight_logs):
        stale = DailyTracking(date=NOW.date() - timedelta(days=1), water_consumed_oz=40)
        result = compute_insights(cut_profile, overnight_logs, stale, now=NOW)

        assert not result.cut_score.pillars["compliance"].has_data

    def test_todays_tracking_is_scored(self, cut_profile, overnight_logs, tracking):
        result = compute_insights(cut_profile, overnight_logs, tracking, now=NOW)

        assert result.cut_score.pillars["compliance"].has_data

    def test_normalize_now_converts_offsets(self):
        eastern = timezone(timedelta(hours=-5))
        local = datetime(2024, 1, 12, 1, 30, tzinfo=eastern)

        assert normalize_now(local) == NOW
        assert normalize_now(local).tzinfo == timezone.utc


class TestCacheKey:
    """Cache key stability and invalidation"""

    def test_key_is_stable(self, cut_profile, overnight_logs, tracking):
        key1 = generate_cache_key(cut_profile, overnight_logs, tracking, NOW)
        key2 = generate_cache_key(cut_profile, overnight_logs, tracking, NOW)

        assert key1 == key2
        assert len(key1) == 64  # SHA256 hex length

    def test_log_order_does_not_matter(self, cut_profile, overnight_logs):
        forward = generate_cache_key(cut_profile, overnight_logs, None, NOW)
        backward = generate_cache_key(cut_profile, list(reversed(overnight_logs)), None, NOW)

        assert forward == backward

    def test_edit_or_delete_changes_key(self, cut_profile, overnight_logs):
        original = generate_cache_key(cut_profile, overnight_logs, None, NOW)
        edited = [overnight_logs[0], dataclasses.replace(overnight_logs[1], weight_lbs=135.9)]

        assert generate_cache_key(cut_profile, edited, None, NOW) != original
        assert generate_cache_key(cut_profile, overnight_logs[:1], None, NOW) != original

    def test_now_changes_key(self, cut_profile, overnight_logs):
        later = NOW + timedelta(hours=1)

        assert generate_cache_key(cut_profile, overnight_logs, None, NOW) != (
            generate_cache_key(cut_profile, overnight_logs, None, later)
        )

    def test_unhashable_profile_raises(self, overnight_logs):
        with pytest.raises(CacheKeyError):
            generate_cache_key(None, overnight_logs, None, NOW)


class TestCommandLine:
    """Summary printed by run_insights"""

    def test_summary_shows_metric_units_and_intake(self, tmp_path, capsys):
        request_file = tmp_path / "request.json"
        request_file.write_text(json.dumps(create_request_example()))

        assert run_insights.main([str(request_file), "--quiet"]) == 0

        out = capsys.readouterr().out
        assert "136.2 lbs (61.8 kg)" in out
        assert "0 oz (0 ml) until now" in out
        assert "Intake:  40% of normal food" in out
        assert "Sodium:  750 mg max" in out

    def test_missing_file(self, tmp_path):
        assert run_insights.main([str(tmp_path / "missing.json")]) == 1


# Fixtures for testing
@pytest.fixture
def cut_profile():
    """Athlete cutting to 133 with weigh-in tomorrow morning"""
    return AthleteProfile(
        current_weight_lbs=136.0,
        target_weight_class_lbs=133.0,
        protocol=Protocol.RAPID_CUT,
        weigh_in_date=date(2024, 1, 13),
    )


@pytest.fixture
def overnight_logs():
    """Before-bed and morning pair: 1.2 lbs overnight drift"""
    return [
        WeightLogEntry("1", at(11, 22), 137.2, LogType.BEFORE_BED),
        WeightLogEntry("2", at(12, 6), 136.0, LogType.MORNING, sleep_hours=7.5),
    ]


@pytest.fixture
def extra_workout_logs():
    """Hour-long extra workout at 1.5 lbs/hr, then a 0.8 lb night"""
    return [
        WeightLogEntry("1", at(10, 17), 136.5, LogType.EXTRA_BEFORE),
        WeightLogEntry("2", at(10, 18), 135.0, LogType.EXTRA_AFTER, duration_minutes=60),
        WeightLogEntry("3", at(10, 22), 134.8, LogType.BEFORE_BED),
        WeightLogEntry("4", at(11, 6), 134.0, LogType.MORNING),
    ]


@pytest.fixture
def tracking():
    """Today's intake so far"""
    return DailyTracking(
        date=NOW.date(),
        water_consumed_oz=20,
        food_servings_logged=2,
        food_servings_target=4,
    )
