"""
Classification of final-candidate responses.

A response without tool calls is either a well-formed ``MealPlan``
(``Candidate``) or something the model must be told to fix
(``Recoverable``).  The loop turns a ``Recoverable`` into a user message.
"""

import json
from dataclasses import dataclass
from typing import Optional, Union

from pydantic import ValidationError

from ..models.plan import MAX_SUMMARY_CHARS, MealPlan

NOT_FINAL_JSON = "not_final_json"
INVALID_FINAL_JSON = "invalid_final_json"
INFEASIBLE_PLAN = "infeasible_plan"
EXCESSIVE_TOOL_REPETITION = "excessive_tool_repetition"

GATHER_DATA_HINT = (
    "Call pantry_get and recipe_get to gather pantry and recipe data, "
    "then return ONLY the final JSON plan."
)
INVALID_PLAN_HINT = (
    f"Return ONLY one JSON object with a summary of at most {MAX_SUMMARY_CHARS} characters "
    "and a non-empty days_planned list; every day >= 1 needs at least one meal "
    "with id, name and positive servings."
)
INFEASIBLE_PLAN_HINT = (
    "Revise recipe choices so all required ingredients (with units) fit the pantry; "
    "then re-send final JSON."
)


@dataclass(frozen=True)
class Recoverable:
    """
    A rejected response the model gets another chance to fix.

    ``details`` is either a single explanation (sent as ``reason``) or a
    list of problems (sent as ``details``).  ``log_error`` is recorded in
    the iteration log when set.
    """

    reason: str
    hint: str = ""
    details: Union[str, tuple[str, ...], None] = None
    log_error: Optional[str] = None

    def to_message_text(self) -> str:
        body: dict = {"error": self.reason}
        if isinstance(self.details, str):
            body["reason"] = self.details
        elif self.details is not None:
            body["details"] = list(self.details)
        if self.hint:
            body["hint"] = self.hint
        return json.dumps(body)


@dataclass(frozen=True)
class Candidate:
    """A structurally valid plan, not yet checked for feasibility."""

    plan: MealPlan
    text: str


def looks_like_final(text: str) -> bool:
    """True if trimmed ``text`` is shaped like a single JSON object."""
    trimmed = text.strip()
    return trimmed.startswith("{") and trimmed.endswith("}")


def _describe_validation_error(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)


def classify_final(text: str) -> Union[Recoverable, Candidate]:
    """
    Validate a final-candidate response.

    Text that is not shaped like a JSON object never reaches the parser;
    the model is nudged to gather data instead.
    """
    trimmed = text.strip()
    if not looks_like_final(trimmed):
        return Recoverable(reason=NOT_FINAL_JSON, hint=GATHER_DATA_HINT)

    try:
        plan = MealPlan.model_validate_json(trimmed)
    except ValidationError as e:
        detail = _describe_validation_error(e)
        return Recoverable(
            reason=INVALID_FINAL_JSON,
            details=f"parse/shape error: {detail}",
            hint=INVALID_PLAN_HINT,
            log_error=f"invalid final plan: {detail}",
        )

    violations = plan.invariant_violations()
    if violations:
        detail = "; ".join(violations)
        return Recoverable(
            reason=INVALID_FINAL_JSON,
            details=f"parse/shape error: {detail}",
            hint=INVALID_PLAN_HINT,
            log_error=f"invalid final plan: {detail}",
        )

    return Candidate(plan=plan, text=trimmed)


def infeasible(problems: tuple[str, ...]) -> Recoverable:
    """Corrective outcome listing every feasibility problem."""
    return Recoverable(
        reason=INFEASIBLE_PLAN,
        details=problems,
        hint=INFEASIBLE_PLAN_HINT,
        log_error="infeasible final plan",
    )
