"""
Tests for daily guidance generation.

Metrics are built directly so each rule can be exercised in isolation from
the rate estimator and projection.
"""

import unittest
from datetime import date, datetime, time, timedelta, timezone

from guidance import (
    GuidanceGenerator,
    format_cutoff,
    rehydration_plan,
    select_workout,
)
from shared_models import (
    AthleteProfile,
    DerivedMetrics,
    LogType,
    Protocol,
    WeightLogEntry,
)

NOW = datetime(2024, 1, 12, 8, 0, tzinfo=timezone.utc)
TARGET = 133.0


def make_profile(protocol=Protocol.RAPID_CUT, weigh_in_time=None):
    return AthleteProfile(
        current_weight_lbs=136.0,
        target_weight_class_lbs=TARGET,
        protocol=protocol,
        weigh_in_date=date(2024, 1, 13),
        weigh_in_time=weigh_in_time,
    )


def make_metrics(days, current, projected, sweat_rate=None, drift=None):
    gap = max(0.0, projected - TARGET)
    return DerivedMetrics(
        overnight_drift_lbs=drift,
        session_sweat_rate_lbs_per_hr=sweat_rate,
        days_until_weigh_in=days,
        projected_weigh_in_weight_lbs=projected,
        projected_gap_lbs=round(gap, 2),
        is_on_track=gap <= 0,
        current_weight_lbs=current,
        weight_to_lose_lbs=max(0.0, current - TARGET),
        is_at_weight=current <= TARGET,
        workout_required=gap > 0,
    )


class TestFormatCutoff(unittest.TestCase):
    def test_hours_before_weigh_in(self):
        self.assertEqual(format_cutoff(time(7, 0), 12), "19:00")
        self.assertEqual(format_cutoff(time(18, 30), 8), "10:30")

    def test_wraps_past_midnight(self):
        self.assertEqual(format_cutoff(time(6, 15), 8), "22:15")


class TestSelectWorkout(unittest.TestCase):
    def test_short_session(self):
        self.assertEqual(select_workout(0.5, 1.0), (30, 0.5))

    def test_medium_session(self):
        self.assertEqual(select_workout(0.7, 1.0), (45, 0.75))

    def test_long_session(self):
        self.assertEqual(select_workout(1.0, 1.0), (60, 1.0))

    def test_no_workout_without_gap_or_rate(self):
        self.assertEqual(select_workout(0.0, 1.5), (None, None))
        self.assertEqual(select_workout(1.8, None), (None, None))
        self.assertEqual(select_workout(1.8, 0.0), (None, None))


class TestRehydrationPlan(unittest.TestCase):
    def test_ranges_scale_with_loss(self):
        plan = rehydration_plan(5.0)
        self.assertEqual((plan.fluid_oz_min, plan.fluid_oz_max), (80, 120))
        self.assertEqual((plan.sodium_mg_min, plan.sodium_mg_max), (2500, 3500))

    def test_nothing_lost(self):
        self.assertIsNone(rehydration_plan(0.0))


class TestGuidanceOrder(unittest.TestCase):
    def setUp(self):
        self.generator = GuidanceGenerator()

    def test_not_configured_is_empty(self):
        self.assertTrue(self.generator.generate(None, None).is_empty)
        self.assertTrue(self.generator.generate(make_profile(), None).is_empty)

    def test_weigh_in_day_is_nothing_by_mouth(self):
        for projected in (132.0, 133.0, 136.0):
            with self.subTest(projected=projected):
                plan = self.generator.generate(
                    make_profile(), make_metrics(0, projected, projected)
                )
                self.assertEqual(plan.fluid_allowance_oz, 0)
                self.assertEqual(plan.fluid_cutoff_time, "weigh-in")
                self.assertEqual(plan.food_ceiling_lbs, 0)
                self.assertEqual(plan.food_cutoff_time, "after weigh-in")

    def test_weigh_in_day_workout_when_over(self):
        plan = self.generator.generate(
            make_profile(), make_metrics(0, 133.5, 133.5, sweat_rate=1.0)
        )
        self.assertEqual(plan.workout_minutes, 30)
        self.assertIsNotNone(plan.workout_guidance)

    def test_at_weight_is_empty(self):
        plan = self.generator.generate(
            make_profile(), make_metrics(2, TARGET, 131.4, sweat_rate=1.5)
        )
        self.assertTrue(plan.is_empty)

    def test_after_weigh_in_only_rehydration(self):
        logs = [
            WeightLogEntry("1", NOW - timedelta(days=3), 140.0, LogType.MORNING),
            WeightLogEntry("2", NOW - timedelta(hours=1), 134.0, LogType.CHECK_IN),
        ]
        plan = self.generator.generate(
            make_profile(), make_metrics(-1, 134.0, 134.0), logs, NOW
        )
        self.assertIsNone(plan.fluid_allowance_oz)
        self.assertIsNone(plan.food_ceiling_lbs)
        self.assertIsNone(plan.workout_guidance)
        self.assertEqual(plan.rehydration.lost_lbs, 6.0)
        self.assertEqual(plan.rehydration.fluid_oz_min, 96)


class TestFluidGuidance(unittest.TestCase):
    def setUp(self):
        self.generator = GuidanceGenerator()

    def test_loading_days_drink_the_phase_target(self):
        plan = self.generator.generate(make_profile(), make_metrics(4, 140.0, 135.0))
        self.assertEqual(plan.fluid_allowance_oz, 210)
        self.assertEqual(plan.fluid_cutoff_time, "bedtime")

    def test_cut_day_with_buffer(self):
        plan = self.generator.generate(make_profile(), make_metrics(2, 134.0, 132.4))
        self.assertEqual(plan.fluid_allowance_oz, 9)
        self.assertEqual(plan.fluid_cutoff_time, "23:00")

    def test_day_one_over_projection_restricts_now(self):
        plan = self.generator.generate(make_profile(), make_metrics(1, 136.0, 134.8))
        self.assertEqual(plan.fluid_allowance_oz, 0)
        self.assertEqual(plan.fluid_cutoff_time, "now")

    def test_day_two_over_projection_keeps_day_cutoff(self):
        plan = self.generator.generate(make_profile(), make_metrics(2, 136.0, 134.0))
        self.assertEqual(plan.fluid_allowance_oz, 0)
        self.assertEqual(plan.fluid_cutoff_time, "23:00")

    def test_cutoff_follows_weigh_in_time(self):
        plan = self.generator.generate(
            make_profile(weigh_in_time=time(18, 0)), make_metrics(1, 134.0, 132.0)
        )
        self.assertEqual(plan.fluid_allowance_oz, 16)
        self.assertEqual(plan.fluid_cutoff_time, "06:00")


class TestFoodGuidance(unittest.TestCase):
    def setUp(self):
        self.generator = GuidanceGenerator()

    def food(self, days, current, projected):
        plan = self.generator.generate(
            make_profile(), make_metrics(days, current, projected)
        )
        return plan.food_ceiling_lbs, plan.food_cutoff_time

    def test_day_one(self):
        self.assertEqual(self.food(1, 135.0, 133.2), (0.0, "after weigh-in"))
        self.assertEqual(self.food(1, 134.0, 133.6), (0.0, "after weigh-in"))
        self.assertEqual(self.food(1, 134.0, 133.3), (0.5, "18:00"))

    def test_day_two(self):
        self.assertEqual(self.food(2, 134.0, 132.4), (1.5, "19:00"))
        self.assertEqual(self.food(2, 135.0, 134.0), (1.0, "19:00"))
        self.assertEqual(self.food(2, 136.0, 134.6), (0.5, "19:00"))
        self.assertEqual(self.food(2, 137.0, 133.5), (0.5, "19:00"))

    def test_loading_days(self):
        self.assertEqual(self.food(4, 140.0, 134.0), (2.5, "20:00"))
        self.assertEqual(self.food(4, 140.0, 136.0), (2.0, "20:00"))


class TestIntakeTargets(unittest.TestCase):
    def setUp(self):
        self.generator = GuidanceGenerator()

    def test_cut_and_loading_days_carry_sodium_and_food_share(self):
        expected = {4: (5000, 1.0), 2: (1500, 0.6), 1: (750, 0.4)}
        for days, (sodium, food_share) in expected.items():
            with self.subTest(days=days):
                plan = self.generator.generate(
                    make_profile(), make_metrics(days, 136.0, 134.0)
                )
                self.assertEqual(plan.sodium_target_mg, sodium)
                self.assertEqual(plan.food_intake_multiplier, food_share)

    def test_weigh_in_day_is_zero_sodium(self):
        plan = self.generator.generate(make_profile(), make_metrics(0, 133.5, 133.5))
        self.assertEqual(plan.sodium_target_mg, 0)
        self.assertEqual(plan.food_intake_multiplier, 0.0)

    def test_at_weight_and_after_weigh_in_have_none(self):
        at_weight = self.generator.generate(
            make_profile(), make_metrics(2, TARGET, 131.4)
        )
        self.assertIsNone(at_weight.sodium_target_mg)
        self.assertIsNone(at_weight.food_intake_multiplier)

        after = self.generator.generate(make_profile(), make_metrics(-1, 134.0, 134.0))
        self.assertIsNone(after.sodium_target_mg)
        self.assertIsNone(after.food_intake_multiplier)


class TestTradeoffNote(unittest.TestCase):
    def setUp(self):
        self.generator = GuidanceGenerator()

    def test_no_rate_no_note(self):
        plan = self.generator.generate(make_profile(), make_metrics(1, 136.0, 134.8))
        self.assertIsNone(plan.tradeoff_note)
        self.assertIsNone(plan.workout_guidance)

    def test_workout_frees_fluid(self):
        plan = self.generator.generate(
            make_profile(), make_metrics(1, 134.5, 133.2, sweat_rate=2.0)
        )
        self.assertEqual(plan.fluid_allowance_oz, 0)
        self.assertEqual(plan.workout_minutes, 30)
        self.assertIn("12 oz", plan.tradeoff_note)
        self.assertIn("Glycogen repletion is slow", plan.tradeoff_note)

    def test_workout_buys_a_snack(self):
        plan = self.generator.generate(
            make_profile(), make_metrics(1, 135.5, 132.8, sweat_rate=1.0)
        )
        self.assertEqual(plan.fluid_allowance_oz, 3)
        self.assertEqual(plan.food_ceiling_lbs, 0.0)
        self.assertIn("food", plan.tradeoff_note)
        self.assertIn("Glycogen repletion is slow", plan.tradeoff_note)

    def test_small_gain_is_not_worth_a_note(self):
        plan = self.generator.generate(
            make_profile(), make_metrics(1, 134.0, 133.2, sweat_rate=0.8)
        )
        self.assertIsNone(plan.tradeoff_note)

    def test_no_note_in_loading_window(self):
        plan = self.generator.generate(
            make_profile(), make_metrics(4, 140.0, 136.0, sweat_rate=2.0)
        )
        self.assertIsNone(plan.tradeoff_note)


if __name__ == "__main__":
    unittest.main()
