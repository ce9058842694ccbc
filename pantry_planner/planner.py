"""
Wiring of a PlanningLoop from application configuration.
"""

import json
import logging
import uuid
from pathlib import Path
from typing import Optional, Union

from .config import DEFAULT_CONFIG_PATH
from .errors import SetupError
from .inventory import Pantry, RecipeCatalog
from .iteration_log import IterationLogger
from .llm_call import ModelInvoker, create_invoker
from .models.config import AppConfig
from .orchestration import PlanningLoop
from .storage import FileStateStore, StateStore
from .tools import ToolRegistry, build_default_registry
from .tracing import TracingContext

logger = logging.getLogger(__name__)

PROJECT_ROOT = DEFAULT_CONFIG_PATH.parent.parent


def resolve_data_path(path: Union[str, Path]) -> Path:
    """Relative paths are tried against the working directory, then the project root."""
    candidate = Path(path)
    if candidate.is_absolute() or candidate.exists():
        return candidate
    return PROJECT_ROOT / candidate


def load_pantry(store: StateStore) -> Pantry:
    """Load the pantry snapshot used for feasibility checks."""
    try:
        return Pantry.from_bytes(store.load())
    except (OSError, ValueError) as e:
        raise SetupError(f"failed to load pantry: {e}") from e


def load_recipes(store: StateStore) -> RecipeCatalog:
    """Load the recipe catalog snapshot used for feasibility checks."""
    try:
        return RecipeCatalog.from_bytes(store.load())
    except (OSError, ValueError) as e:
        raise SetupError(f"failed to load recipes: {e}") from e


def build_registry(app_config: AppConfig) -> tuple[ToolRegistry, StateStore, StateStore]:
    """Create the file stores from config and a registry bound to them."""
    pantry_store = FileStateStore(resolve_data_path(app_config.agent.pantry_path))
    recipe_store = FileStateStore(resolve_data_path(app_config.agent.recipes_path))
    return build_default_registry(pantry_store, recipe_store), pantry_store, recipe_store


def build_planner(
    app_config: AppConfig,
    invoker: Optional[ModelInvoker] = None,
    iteration_logger: Optional[IterationLogger] = None,
    max_iterations: Optional[int] = None,
    execution_id: Optional[str] = None,
    tracing_context: Optional[TracingContext] = None,
) -> PlanningLoop:
    """
    Build a ready-to-run PlanningLoop.

    Args:
        app_config: Loaded application configuration.
        invoker: Model backend; defaults to the one selected by ``model.backend``.
        iteration_logger: Sink for per-iteration records.
        max_iterations: Override for ``agent.max_iterations``.
        execution_id: Id used to prefix log lines.
        tracing_context: Langfuse context for this run, if tracing.

    Raises:
        SetupError: If the pantry or recipe snapshot cannot be loaded.
    """
    registry, pantry_store, recipe_store = build_registry(app_config)
    pantry = load_pantry(pantry_store)
    catalog = load_recipes(recipe_store)
    logger.info(
        "Loaded %d pantry item(s) and %d recipe(s)", len(pantry), len(catalog)
    )

    agent = app_config.agent
    return PlanningLoop(
        invoker=invoker or create_invoker(app_config.model),
        tool_provider=registry,
        pantry=pantry,
        catalog=catalog,
        max_iterations=max_iterations or agent.max_iterations,
        repetition_threshold=agent.repetition_threshold,
        data_tools=agent.data_tools,
        iteration_logger=iteration_logger,
        execution_id=execution_id or uuid.uuid4().hex[:8],
        tracing_context=tracing_context,
    )


def format_plan_text(plan_json: str) -> str:
    """Human-readable day-by-day rendering of an accepted plan."""
    plan = json.loads(plan_json)
    lines = [plan.get("summary", "")]
    for day in plan.get("days_planned", []):
        meals = ", ".join(
            f"{m.get('name') or m.get('id')} ({m.get('servings')} servings)"
            for m in day.get("meals", [])
        )
        lines.append(f"Day {day.get('day')}: {meals}")
    return "\n".join(line for line in lines if line)
