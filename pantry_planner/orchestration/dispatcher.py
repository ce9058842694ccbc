"""
Sequential tool dispatch.
"""

import json
import logging
from typing import Optional, Protocol, Sequence

from ..conversation import ToolCall, ToolOutcome
from ..tools.registry import ToolDefinition
from ..tracing import TracingContext

logger = logging.getLogger(__name__)

MAX_ERROR_CHARS = 500


class ToolProvider(Protocol):
    def get_tools(self) -> list[ToolDefinition]: ...

    def get_tool(self, name: str) -> ToolDefinition: ...


def _truncate(text: str, limit: int = MAX_ERROR_CHARS) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


class ToolDispatcher:
    """
    Executes tool calls one at a time, in request order.

    An unregistered tool name raises ``ToolNotFoundError``.  A tool that
    raises while running yields an error outcome the model can react to.
    """

    def __init__(
        self,
        provider: ToolProvider,
        tracing_context: Optional[TracingContext] = None,
        execution_id: Optional[str] = None,
    ):
        self.provider = provider
        self.tracing_context = tracing_context
        self.execution_id = execution_id

    def dispatch(self, calls: Sequence[ToolCall]) -> list[ToolOutcome]:
        return [self.dispatch_one(call) for call in calls]

    def dispatch_one(self, call: ToolCall) -> ToolOutcome:
        tool = self.provider.get_tool(call.name)
        if self.tracing_context:
            with self.tracing_context.span(name=f"tool:{call.name}", input=call.arguments) as span:
                outcome = self._run(tool, call)
                if outcome.ok:
                    span.set_output({"result": _truncate(json.dumps(outcome.payload, default=str))})
                else:
                    span.set_status("error")
                return outcome
        return self._run(tool, call)

    def _run(self, tool: ToolDefinition, call: ToolCall) -> ToolOutcome:
        id_prefix = f"[{self.execution_id}] " if self.execution_id else ""
        logger.debug("%sExecuting tool '%s' with %s", id_prefix, call.name, call.arguments)
        try:
            payload = tool.run(call.arguments)
        except Exception as e:
            logger.error("%sTool '%s' execution failed: %s", id_prefix, call.name, e)
            return ToolOutcome(
                call_id=call.call_id,
                tool_name=call.name,
                error=f'tool "{call.name}" failed: {_truncate(str(e))}',
            )
        return ToolOutcome(call_id=call.call_id, tool_name=call.name, payload=payload)
