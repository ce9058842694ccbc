"""
Initial conversation and tool catalog for a planning run.
"""

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from .conversation import ROLE_SYSTEM, ROLE_USER, Conversation
from .errors import SetupError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """\
You are a meal-planning coordinator.

GOAL:
Plan meals over the user-specified days and servings, using the tools to gather \
pantry state and available recipes, then return the final meal plan JSON.

FINAL OUTPUT FORMAT:
When you are ready to complete the task, return ONLY the JSON object - no \
explanations, no text before or after, no markdown formatting. Start immediately \
with { and end with }.

JSON Schema:
{
  "summary": string,                  // <= 400 chars: overview of the plan and prioritization of perishables
  "days_planned": [                   // MUST contain at least one element
    {
      "day": integer,                 // starting at 1
      "meals": [                      // 1..M meals for that day
        {
          "id": string,               // recipe id
          "name": string,             // recipe name
          "servings": integer         // servings for this meal (> 0)
        }
      ]
    }
  ]
}

The JSON must be valid UTF-8, with no commentary, no markdown, and no trailing commas.

TOOL USE:
When you need more information, use the provided tools directly through the tool interface.
Do not wrap tool requests in JSON text. Do not echo tool results yourself.

CRITICAL RULES:
- Never invent recipe IDs (only use ids returned by recipe_get).
- Never assume unit conversions; mismatched units are unusable.
- Always call pantry_get before finalizing and recipe_get before selecting meals.
- Prioritize ingredients with the lowest days_left when choosing meals.
- The coordinator checks feasibility: the plan must fit the pantry without shortages \
or unit mismatches, summed over all days.
- Call pantry_get and recipe_get at most once each; reuse results already provided.
- If you already have pantry and recipes, produce the final JSON.
"""


class ToolSource(Protocol):
    def get_tools(self) -> list: ...


@dataclass(frozen=True)
class ToolSpec:
    """Catalog entry presented to the model."""

    name: str
    description: str
    input_schema: dict[str, Any]

    def to_function_schema(self) -> dict:
        """OpenAI/Ollama function tool definition."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema,
            },
        }


def build_tool_catalog(provider: ToolSource) -> list[ToolSpec]:
    """
    Enumerate the provider's tools.

    Raises:
        SetupError: If the provider cannot list its tools.
    """
    try:
        tools = provider.get_tools()
    except Exception as e:
        raise SetupError(f"failed to enumerate tools: {e}") from e
    return [
        ToolSpec(name=t.name, description=t.description, input_schema=t.input_schema)
        for t in tools
    ]


def build_conversation(
    task: str,
    provider: ToolSource,
    system_prompt: str = SYSTEM_PROMPT,
) -> tuple[Conversation, list[ToolSpec]]:
    """
    Build the initial [system, user] conversation and the tool catalog.

    Args:
        task: Natural-language planning task.
        provider: Tool provider whose tools are offered to the model.
        system_prompt: Instructions placed in the system message.

    Returns:
        Tuple of (conversation, tool catalog).
    """
    catalog = build_tool_catalog(provider)
    conversation = Conversation()
    conversation.append_text(ROLE_SYSTEM, system_prompt)
    conversation.append_text(ROLE_USER, task)
    logger.debug("Initial conversation built with %d tool(s)", len(catalog))
    return conversation, catalog
