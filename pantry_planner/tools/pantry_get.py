"""
pantry_get tool

Returns pantry quantities plus days_left for perishables at a given day.
"""

import json
import logging

from ..inventory import as_float, as_int, as_str
from ..storage import StateStore

logger = logging.getLogger(__name__)

NAME = "pantry_get"
TITLE = "Get Pantry (with freshness)"
DESCRIPTION = (
    "Returns pantry quantities plus days_left for perishables at a given current_day."
)
INPUT_SCHEMA = {
    "type": "object",
    "properties": {
        "current_day": {
            "type": "integer",
            "description": "Day index used to compute remaining freshness (default 0).",
        },
    },
}

# days_left reported for items that never spoil
NON_PERISHABLE_DAYS = 9999


def days_left(item: dict, current_day: int) -> int:
    """
    Remaining freshness of a pantry item.

    An explicit positive ``days_left`` wins; otherwise it is derived from
    ``perishable_days`` and ``added_day``.
    """
    explicit = as_int(item.get("days_left"))
    if explicit > 0:
        return explicit
    perishable_days = as_int(item.get("perishable_days"))
    if perishable_days == 0:
        return NON_PERISHABLE_DAYS
    return perishable_days - (current_day - as_int(item.get("added_day")))


def get_pantry(store: StateStore, current_day: int = 0) -> dict:
    """Load the pantry and report it with freshness for ``current_day``."""
    try:
        data = json.loads(store.load())
    except (OSError, ValueError) as e:
        raise RuntimeError(f"read pantry: {e}") from e

    ingredients = []
    raw_items = data.get("ingredients", []) if isinstance(data, dict) else []
    for item in raw_items or []:
        if not isinstance(item, dict):
            continue
        ingredients.append(
            {
                "name": as_str(item.get("name")),
                "qty": as_float(item.get("qty")),
                "unit": as_str(item.get("unit")),
                "days_left": days_left(item, current_day),
            }
        )
    logger.debug("pantry_get: %d ingredient(s) at day %d", len(ingredients), current_day)
    return {"pantry": {"ingredients": ingredients}}


def make_handler(store: StateStore):
    """Bind the tool handler to a pantry store."""

    def _handle_pantry_get(params: dict) -> dict:
        current_day = params.get("current_day", 0)
        if isinstance(current_day, bool) or not isinstance(current_day, (int, float)):
            current_day = 0
        return get_pantry(store, int(current_day))

    return _handle_pantry_get
