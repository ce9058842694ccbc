"""
Tool Registry - Single source of truth for tool definitions.

Provides a registry of tools with their metadata, JSON input schema and
handler.  A registry instance is the tool provider the planning loop
consumes.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from ..errors import ToolNotFoundError


@dataclass
class ToolDefinition:
    """Metadata for a tool - defined once, used everywhere."""

    name: str
    description: str
    handler: Callable[[dict], dict]
    input_schema: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )
    title: str = ""

    def run(self, arguments: dict) -> dict:
        """Execute the tool; handler errors propagate to the caller."""
        return self.handler(arguments)


class ToolRegistry:
    """Registry of tools available to a planning run."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolDefinition] = {}

    def register(
        self,
        name: str,
        description: str,
        handler: Callable[[dict], dict],
        input_schema: Optional[dict[str, Any]] = None,
        title: str = "",
    ) -> ToolDefinition:
        """Register a tool with its metadata."""
        tool = ToolDefinition(
            name=name,
            description=description,
            handler=handler,
            input_schema=input_schema or {"type": "object", "properties": {}},
            title=title,
        )
        self._tools[name] = tool
        return tool

    def get(self, name: str) -> Optional[ToolDefinition]:
        """Get a tool by name, or None."""
        return self._tools.get(name)

    def get_tool(self, name: str) -> ToolDefinition:
        """Get a tool by name.

        Raises:
            ToolNotFoundError: If no tool is registered under ``name``.
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        return tool

    def get_tools(self) -> list[ToolDefinition]:
        """All registered tools, in registration order."""
        return list(self._tools.values())

    def get_tools_summary(self) -> str:
        """Get formatted summary of all tools for prompts."""
        return "\n".join(f"- {t.name}: {t.description}" for t in self._tools.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
