"""
Meal planning endpoint.

Runs one PlanningLoop per request and returns the accepted plan, or a
null plan when the iteration budget ran out.
"""

import logging
import uuid

from fastapi import APIRouter, HTTPException

from ...config import load_app_config
from ...errors import InvocationError, PlannerError
from ...models.plan import MealPlan
from ...planner import build_planner
from ...tracing import TracingContext, get_tracing_client
from ..schemas import PlanRequest, PlanResponse, TraceStep

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/v1/plan",
    response_model=PlanResponse,
    summary="Create meal plan",
    description=(
        "Plan meals for a natural-language task. The model gathers pantry and "
        "recipe data through tools; only a plan that fits the pantry is returned."
    ),
)
def create_plan(request: PlanRequest) -> PlanResponse:
    execution_id = f"exec-{uuid.uuid4().hex[:8]}"
    logger.info("[%s] Processing plan request: %s", execution_id, request.task[:100])

    tracing_context = TracingContext(execution_id=execution_id)
    tracing_context.start_trace(name="plan_request", task=request.task)

    try:
        planner = build_planner(
            load_app_config(),
            max_iterations=request.max_iterations,
            execution_id=execution_id,
            tracing_context=tracing_context,
        )
        plan_json = planner.run(request.task)
    except InvocationError as e:
        logger.error("[%s] Model invocation failed: %s", execution_id, e)
        tracing_context.end_trace(output=str(e), status="error")
        _flush_tracing()
        raise HTTPException(status_code=502, detail=str(e))
    except PlannerError as e:
        logger.exception("[%s] Planning failed: %s", execution_id, e)
        tracing_context.end_trace(output=str(e), status="error")
        _flush_tracing()
        raise HTTPException(status_code=500, detail=str(e))

    trace = None
    if request.include_trace:
        trace = [TraceStep(**step) for step in planner.get_trace()]

    tracing_context.end_trace(
        output=plan_json or None,
        status="success" if plan_json else "exhausted",
    )
    _flush_tracing()

    return PlanResponse(
        plan=MealPlan.model_validate_json(plan_json) if plan_json else None,
        converged=bool(plan_json),
        iterations=planner.iterations,
        trace=trace,
    )


def _flush_tracing() -> None:
    """Flush tracing client if available."""
    client = get_tracing_client()
    if client:
        client.flush()
