"""Tests for final-candidate classification."""

import json
from unittest.mock import patch

import pytest

from pantry_planner.orchestration.validator import (
    INFEASIBLE_PLAN,
    INVALID_FINAL_JSON,
    NOT_FINAL_JSON,
    Candidate,
    Recoverable,
    classify_final,
    infeasible,
    looks_like_final,
)


class TestSyntacticGate:
    """Text not shaped like a JSON object never reaches the parser."""

    @pytest.mark.parametrize(
        "text",
        [
            "Let me check the pantry first.",
            'Here is the plan: {"summary": "x"}',
            '{"summary": "x"} Hope that helps!',
            "```json\n{}\n```",
        ],
    )
    def test_not_final(self, text):
        with patch("pantry_planner.orchestration.validator.MealPlan.model_validate_json") as parse:
            outcome = classify_final(text)
        parse.assert_not_called()
        assert isinstance(outcome, Recoverable)
        assert outcome.reason == NOT_FINAL_JSON
        assert "pantry_get" in outcome.hint and "recipe_get" in outcome.hint

    def test_looks_like_final_trims(self):
        assert looks_like_final('  \n{"a": 1}\n ')
        assert not looks_like_final("[1, 2]")


class TestStructuralGate:
    """Parse and shape checks."""

    def test_valid_plan(self, feasible_plan_json):
        outcome = classify_final(f"\n  {feasible_plan_json}  \n")
        assert isinstance(outcome, Candidate)
        assert outcome.text == feasible_plan_json
        assert outcome.plan.days_planned[0].day == 1

    def test_malformed_json(self):
        outcome = classify_final('{"summary": "x", }')
        assert isinstance(outcome, Recoverable)
        assert outcome.reason == INVALID_FINAL_JSON
        assert outcome.details.startswith("parse/shape error: ")

    def test_wrong_shape(self):
        outcome = classify_final('{"summary": "x", "days_planned": [{"day": "first"}]}')
        assert isinstance(outcome, Recoverable)
        assert "days_planned.0.day" in outcome.details

    def test_quoted_day_and_boolean_servings(self):
        text = (
            '{"summary": "s", "days_planned": [{"day": "1", "meals": '
            '[{"id": "dinner_bean_chili", "name": "Bean Chili", "servings": true}]}]}'
        )
        outcome = classify_final(text)
        assert isinstance(outcome, Recoverable)
        assert outcome.reason == INVALID_FINAL_JSON
        assert "days_planned.0.day" in outcome.details
        assert "days_planned.0.meals.0.servings" in outcome.details

    def test_invariant_violation(self):
        outcome = classify_final('{"summary": "x", "days_planned": []}')
        assert isinstance(outcome, Recoverable)
        assert outcome.reason == INVALID_FINAL_JSON
        assert "days_planned must be non-empty" in outcome.details
        body = json.loads(outcome.to_message_text())
        assert body["error"] == "invalid_final_json"
        assert body["reason"] == outcome.details


class TestRecoverableMessage:
    """Tests for corrective message bodies."""

    def test_infeasible_lists_details(self):
        outcome = infeasible(("insufficient egg (need 20 count, have 12 count)",))
        body = json.loads(outcome.to_message_text())
        assert body == {
            "error": INFEASIBLE_PLAN,
            "details": ["insufficient egg (need 20 count, have 12 count)"],
            "hint": (
                "Revise recipe choices so all required ingredients (with units) fit "
                "the pantry; then re-send final JSON."
            ),
        }
        assert outcome.log_error == "infeasible final plan"

    def test_minimal_body(self):
        assert json.loads(Recoverable(reason="x").to_message_text()) == {"error": "x"}
