"""
Planning loop: drives the model to a validated, feasible meal plan.

Per-iteration flow:
    1. Invoke the model with the conversation and tool catalog
    2. Tool calls: repetition guard, then sequential dispatch; the calls
       and their results are appended to the conversation
    3. No tool calls, text: validate the plan shape, then check it
       against the pantry; accept, or append a corrective message
    4. Neither: protocol error

The run ends with the accepted plan JSON, or ``""`` once the iteration
budget is spent.  Fatal conditions raise a ``PlannerError``.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..conversation import (
    ROLE_ASSISTANT,
    ROLE_TOOL,
    ROLE_USER,
    Conversation,
    Message,
    TextPart,
    ToolCallPart,
    ToolResultPart,
)
from ..errors import InvocationError, PlannerError, ProtocolError, RunCancelledError
from ..feasibility import check_feasibility
from ..inventory import Pantry, RecipeCatalog
from ..iteration_log import IterationLogger, IterationRecord, NoOpIterationLogger, ToolCallRecord
from ..llm_call import ModelInvoker, ModelResponse
from ..prompt import SYSTEM_PROMPT, ToolSpec, build_conversation
from ..tracing import TracingContext
from ..utils.cancel import CancellationToken
from .dispatcher import ToolDispatcher, ToolProvider
from .guard import DEFAULT_DATA_TOOLS, DEFAULT_REPETITION_THRESHOLD, RepetitionGuard
from .validator import Recoverable, classify_final, infeasible

logger = logging.getLogger(__name__)


@dataclass
class PlanningStep:
    """What one iteration did, for the trace summary."""

    iteration: int
    action: str
    detail: list[str] = field(default_factory=list)


@dataclass
class _RunState:
    conversation: Conversation
    tools: list[ToolSpec]
    guard: RepetitionGuard
    dispatcher: ToolDispatcher
    cancel_token: Optional[CancellationToken]


class PlanningLoop:
    """
    Bounded agent loop producing a feasible meal plan.

    The pantry and recipe catalog are snapshots used for the feasibility
    check; the model sees the same data only through its tools.  Each
    ``run`` builds its own conversation and repetition guard.
    """

    def __init__(
        self,
        invoker: ModelInvoker,
        tool_provider: ToolProvider,
        pantry: Pantry,
        catalog: RecipeCatalog,
        max_iterations: int = 10,
        repetition_threshold: int = DEFAULT_REPETITION_THRESHOLD,
        data_tools: Iterable[str] = DEFAULT_DATA_TOOLS,
        iteration_logger: Optional[IterationLogger] = None,
        execution_id: Optional[str] = None,
        tracing_context: Optional[TracingContext] = None,
        system_prompt: str = SYSTEM_PROMPT,
    ):
        if max_iterations <= 0:
            raise ValueError("max_iterations must be positive")
        self.invoker = invoker
        self.tool_provider = tool_provider
        self.pantry = pantry
        self.catalog = catalog
        self.max_iterations = max_iterations
        self.repetition_threshold = repetition_threshold
        self.data_tools = tuple(data_tools)
        self.iteration_logger = iteration_logger or NoOpIterationLogger()
        self.execution_id = execution_id
        self.tracing_context = tracing_context
        self.system_prompt = system_prompt
        self.model_name = getattr(invoker, "model", type(invoker).__name__)

        self.steps: list[PlanningStep] = []
        self.iterations = 0

    @property
    def _id_prefix(self) -> str:
        return f"[{self.execution_id}] " if self.execution_id else ""

    def run(self, task: str, cancel_token: Optional[CancellationToken] = None) -> str:
        """
        Plan meals for ``task``.

        Returns:
            The accepted plan JSON, or ``""`` if the budget ran out.

        Raises:
            PlannerError: On setup, transport, protocol, unknown-tool or
                cancellation failures.
        """
        self.steps = []
        self.iterations = 0
        logger.debug("%sStarting planning run for: %s", self._id_prefix, task)

        conversation, tools = build_conversation(task, self.tool_provider, self.system_prompt)
        state = _RunState(
            conversation=conversation,
            tools=tools,
            guard=RepetitionGuard(self.repetition_threshold, self.data_tools),
            dispatcher=ToolDispatcher(
                self.tool_provider,
                tracing_context=self.tracing_context,
                execution_id=self.execution_id,
            ),
            cancel_token=cancel_token,
        )

        if self.tracing_context is None:
            return self._run_loop(state)

        with self.tracing_context.span(
            name="planning_loop",
            metadata={"max_iterations": self.max_iterations, "execution_id": self.execution_id},
            input={"task": task},
        ) as loop_span:
            try:
                result = self._run_loop(state)
            except PlannerError:
                loop_span.set_status("error")
                raise
            loop_span.set_output({"iterations": self.iterations, "converged": bool(result)})
            return result

    def _run_loop(self, state: _RunState) -> str:
        for iteration in range(1, self.max_iterations + 1):
            self.iterations = iteration
            record = IterationRecord(
                iteration=iteration,
                llm_input={
                    "messages": state.conversation.to_list(),
                    "tools": [t.name for t in state.tools],
                },
            )
            try:
                result = self._iterate(iteration, record, state)
            except RunCancelledError:
                logger.warning("%sRun cancelled at iteration %d", self._id_prefix, iteration)
                raise
            except Exception as e:
                if record.error is None:
                    record.error = str(e)
                self._log_iteration(record)
                self._log_trace_summary()
                raise
            self._log_iteration(record)
            if result is not None:
                logger.info("%sPlan accepted at iteration %d", self._id_prefix, iteration)
                self._log_trace_summary()
                return result

        logger.warning(
            "%sIteration budget (%d) exhausted without a feasible plan",
            self._id_prefix,
            self.max_iterations,
        )
        self._log_trace_summary()
        return ""

    def _iterate(self, iteration: int, record: IterationRecord, state: _RunState) -> Optional[str]:
        """Run one iteration; return the plan text once accepted."""
        self._check_cancelled(state.cancel_token)
        response = self._invoke(iteration, record, state)
        self._check_cancelled(state.cancel_token)
        record.llm_output = response.to_dict()

        if response.tool_calls:
            self._tool_phase(iteration, record, state, response)
            return None
        if response.content.strip():
            return self._final_phase(iteration, record, state, response)

        record.error = "model returned neither tool calls nor text"
        raise ProtocolError(f"iteration {iteration}: model returned neither tool calls nor text")

    def _check_cancelled(self, cancel_token: Optional[CancellationToken]) -> None:
        if cancel_token is not None and cancel_token.cancelled:
            raise RunCancelledError("planning run cancelled")

    def _invoke(self, iteration: int, record: IterationRecord, state: _RunState) -> ModelResponse:
        logger.debug("%sIteration %d: calling model", self._id_prefix, iteration)
        if self.tracing_context is None:
            return self._invoke_model(state)

        with self.tracing_context.generation(
            name=f"planner_iteration_{iteration}",
            model=self.model_name,
            input=record.llm_input,
        ) as gen:
            try:
                response = self._invoke_model(state)
            except PlannerError:
                gen.set_status("error")
                raise
            gen.set_output(response.to_dict())
            if response.usage:
                gen.set_usage(**response.usage)
            return response

    def _invoke_model(self, state: _RunState) -> ModelResponse:
        try:
            return self.invoker.invoke(state.conversation, state.tools, state.cancel_token)
        except PlannerError:
            raise
        except Exception as e:
            raise InvocationError(f"invoke failed: {e}") from e

    def _tool_phase(
        self,
        iteration: int,
        record: IterationRecord,
        state: _RunState,
        response: ModelResponse,
    ) -> None:
        calls = response.tool_calls
        names = [c.name for c in calls]

        rejected = state.guard.check(calls)
        if rejected is not None:
            self._correct(state.conversation, record, rejected)
            self.steps.append(PlanningStep(iteration, "suppressed", names))
            return

        parts: list = [TextPart(response.content)] if response.content else []
        parts.extend(ToolCallPart(c) for c in calls)

        outcomes = []
        for call in calls:
            outcome = state.dispatcher.dispatch_one(call)
            outcomes.append(outcome)
            record.tool_calls.append(
                ToolCallRecord(
                    name=call.name,
                    input=call.arguments,
                    output=outcome.payload,
                    error=outcome.error,
                )
            )

        state.conversation.append(Message(role=ROLE_ASSISTANT, parts=tuple(parts)))
        state.conversation.append(
            Message(role=ROLE_TOOL, parts=tuple(ToolResultPart(o) for o in outcomes))
        )
        logger.info("%sIteration %d: dispatched %s", self._id_prefix, iteration, names)
        self.steps.append(PlanningStep(iteration, "tools", names))

    def _final_phase(
        self,
        iteration: int,
        record: IterationRecord,
        state: _RunState,
        response: ModelResponse,
    ) -> Optional[str]:
        state.conversation.append_text(ROLE_ASSISTANT, response.content)

        outcome = classify_final(response.content)
        if isinstance(outcome, Recoverable):
            logger.info("%sIteration %d: final candidate rejected (%s)", self._id_prefix, iteration, outcome.reason)
            self._correct(state.conversation, record, outcome)
            self.steps.append(PlanningStep(iteration, "rejected", [outcome.reason]))
            return None

        report = check_feasibility(outcome.plan, self.pantry, self.catalog)
        if not report.feasible:
            logger.warning(
                "%sIteration %d: plan infeasible: %s", self._id_prefix, iteration, list(report.problems)
            )
            rejected = infeasible(report.problems)
            self._correct(state.conversation, record, rejected)
            self.steps.append(PlanningStep(iteration, "rejected", [rejected.reason]))
            return None

        self.steps.append(PlanningStep(iteration, "accepted"))
        return outcome.text

    def _correct(self, conversation: Conversation, record: IterationRecord, outcome: Recoverable) -> None:
        """Append the corrective user message for ``outcome``."""
        conversation.append_text(ROLE_USER, outcome.to_message_text())
        if outcome.log_error:
            record.error = outcome.log_error

    def _log_iteration(self, record: IterationRecord) -> None:
        try:
            self.iteration_logger.log_iteration(record)
        except Exception as e:
            logger.error("%sIteration logger failed at iteration %d: %s", self._id_prefix, record.iteration, e)

    def get_trace(self) -> list[dict]:
        """Steps of the last run as plain dicts."""
        return [
            {"iteration": s.iteration, "action": s.action, "detail": list(s.detail)}
            for s in self.steps
        ]

    def _log_trace_summary(self) -> None:
        """Log a compact trace summary."""
        id_prefix = self._id_prefix
        logger.info("%s%s", id_prefix, "─" * 50)
        logger.info("%sTRACE SUMMARY", id_prefix)
        logger.info("%s%s", id_prefix, "─" * 50)
        for step in self.steps:
            if step.detail:
                logger.info("%sIteration %d [%s]: %s", id_prefix, step.iteration, step.action, ", ".join(step.detail))
            else:
                logger.info("%sIteration %d [%s]", id_prefix, step.iteration, step.action)
        logger.info("%s%s", id_prefix, "─" * 50)
