"""Tests for the meal plan schema and its invariants."""

import json

import pytest
from pydantic import ValidationError

from pantry_planner.models.plan import MAX_SUMMARY_CHARS, MealPlan


class TestMealPlanParsing:
    """Tests for parsing plan JSON."""

    def test_parse_valid_plan(self, feasible_plan_json):
        """A well-formed plan parses and satisfies the invariants."""
        plan = MealPlan.model_validate_json(feasible_plan_json)
        assert plan.days_planned[0].meals[0].id == "dinner_bean_chili"
        assert plan.invariant_violations() == []

    def test_missing_summary_rejected(self):
        """summary is required."""
        with pytest.raises(ValidationError):
            MealPlan.model_validate_json('{"days_planned": []}')

    def test_invalid_json_rejected(self):
        """Malformed JSON raises a ValidationError."""
        with pytest.raises(ValidationError):
            MealPlan.model_validate_json('{"summary": "x",}')

    def test_servings_must_be_integer(self):
        """Fractional servings are a shape error."""
        text = json.dumps(
            {"summary": "x", "days_planned": [{"day": 1, "meals": [{"id": "a", "name": "A", "servings": 1.5}]}]}
        )
        with pytest.raises(ValidationError):
            MealPlan.model_validate_json(text)

    @pytest.mark.parametrize(
        "day, servings",
        [("1", 2), (1, "2"), (1, True), (True, 2)],
    )
    def test_coerced_types_rejected(self, day, servings):
        """Quoted numbers and booleans are not integers."""
        text = json.dumps(
            {"summary": "x", "days_planned": [{"day": day, "meals": [{"id": "a", "name": "A", "servings": servings}]}]}
        )
        with pytest.raises(ValidationError):
            MealPlan.model_validate_json(text)

    def test_numeric_name_rejected(self):
        """Recipe ids and names must be JSON strings."""
        text = json.dumps(
            {"summary": "x", "days_planned": [{"day": 1, "meals": [{"id": 7, "name": "A", "servings": 1}]}]}
        )
        with pytest.raises(ValidationError):
            MealPlan.model_validate_json(text)


class TestInvariants:
    """Tests for MealPlan.invariant_violations."""

    def test_empty_days(self):
        plan = MealPlan(summary="x", days_planned=[])
        assert plan.invariant_violations() == ["days_planned must be non-empty"]

    def test_long_summary(self, make_plan):
        plan = make_plan([(1, [("a", 1)])], summary="s" * (MAX_SUMMARY_CHARS + 1))
        assert plan.invariant_violations()
        assert "summary exceeds" in plan.invariant_violations()[0]

    def test_summary_at_limit_is_valid(self, make_plan):
        plan = make_plan([(1, [("a", 1)])], summary="s" * MAX_SUMMARY_CHARS)
        assert plan.invariant_violations() == []

    def test_day_zero(self, make_plan):
        plan = make_plan([(0, [("a", 1)])])
        assert plan.invariant_violations() == ["days_planned[0].day must be >= 1"]

    def test_day_without_meals(self, make_plan):
        plan = make_plan([(1, [])])
        assert plan.invariant_violations() == ["days_planned[0].meals must be non-empty"]

    def test_blank_id_and_bad_servings(self, make_plan):
        plan = make_plan([(1, [("  ", 0)])])
        violations = plan.invariant_violations()
        assert "days_planned[0].meals[0].id must be non-empty" in violations
        assert "days_planned[0].meals[0].servings must be positive" in violations
