"""
Run-scoped tracing context on top of Langfuse SDK v3.

A ``TracingContext`` owns the root span of one planning run.  Spans and
generations are created with an explicit ``TraceContext`` naming their
parent, so nesting does not depend on ambient OpenTelemetry state.  When
tracing is disabled every method is a no-op.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

from langfuse.types import TraceContext

from .client import get_tracing_client

logger = logging.getLogger(__name__)


def _active_langfuse():
    client = get_tracing_client()
    return client.client if client is not None else None


class _ObservationParent:
    """Factory for child spans and generations."""

    def _is_tracing(self) -> bool:
        raise NotImplementedError

    def _child_trace_context(self) -> Optional[TraceContext]:
        raise NotImplementedError

    @contextmanager
    def _observe(self, observation: "_Observation") -> Iterator:
        observation.start()
        try:
            yield observation
        finally:
            observation.end()

    def span(
        self,
        name: str,
        metadata: Optional[dict] = None,
        input: Optional[Any] = None,
    ):
        """Context manager yielding a child ``SpanContext``."""
        return self._observe(
            SpanContext(
                name=name,
                enabled=self._is_tracing(),
                input=input,
                metadata=metadata,
                _trace_context=self._child_trace_context(),
            )
        )

    def generation(
        self,
        name: str,
        model: str,
        input: Optional[Any] = None,
        metadata: Optional[dict] = None,
        model_parameters: Optional[dict] = None,
    ):
        """Context manager yielding a child ``GenerationContext``."""
        return self._observe(
            GenerationContext(
                name=name,
                model=model,
                model_parameters=model_parameters,
                enabled=self._is_tracing(),
                input=input,
                metadata=metadata,
                _trace_context=self._child_trace_context(),
            )
        )


@dataclass
class _Observation:
    """Start/end bookkeeping shared by spans and generations."""

    name: str
    enabled: bool = False
    input: Optional[Any] = None
    metadata: Optional[dict] = None
    _trace_context: Optional[TraceContext] = field(default=None, repr=False)
    _scope: Any = field(default=None, repr=False)
    _observation: Any = field(default=None, repr=False)
    _started_at: float = field(default=0.0, repr=False)
    _output: Optional[Any] = field(default=None, repr=False)
    _status: str = field(default="success", repr=False)

    as_type = "span"

    def _start_kwargs(self) -> dict[str, Any]:
        return {
            "trace_context": self._trace_context,
            "as_type": self.as_type,
            "name": self.name,
            "input": self.input,
            "metadata": self.metadata,
        }

    def _end_kwargs(self) -> dict[str, Any]:
        elapsed_ms = (time.time() - self._started_at) * 1000
        kwargs: dict[str, Any] = {
            "metadata": {"status": self._status, "duration_ms": round(elapsed_ms, 2)}
        }
        if self._output is not None:
            kwargs["output"] = self._output
        return kwargs

    def start(self) -> None:
        langfuse = _active_langfuse() if self.enabled else None
        if langfuse is None:
            return
        self._started_at = time.time()
        try:
            self._scope = langfuse.start_as_current_observation(**self._start_kwargs())
            self._observation = self._scope.__enter__()
        except Exception as e:
            logger.warning("Failed to start %s '%s': %s", self.as_type, self.name, e)
            self._scope = self._observation = None

    def end(self) -> None:
        if self._observation is None:
            return
        try:
            self._observation.update(**self._end_kwargs())
            self._scope.__exit__(None, None, None)
        except Exception as e:
            logger.warning("Failed to end %s '%s': %s", self.as_type, self.name, e)

    def set_output(self, output: Any) -> None:
        self._output = output

    def set_status(self, status: str) -> None:
        self._status = status


@dataclass
class SpanContext(_Observation, _ObservationParent):
    """A span; may parent further spans and generations."""

    def _is_tracing(self) -> bool:
        return self.enabled

    def _child_trace_context(self) -> Optional[TraceContext]:
        span_id = getattr(self._observation, "id", None)
        if not self._trace_context or not span_id:
            return self._trace_context
        return TraceContext(trace_id=self._trace_context["trace_id"], parent_span_id=span_id)


@dataclass
class GenerationContext(_Observation):
    """A model call, with model name, parameters and token usage."""

    model: str = ""
    model_parameters: Optional[dict] = None
    _usage: Optional[dict] = field(default=None, repr=False)

    as_type = "generation"

    def _start_kwargs(self) -> dict[str, Any]:
        kwargs = super()._start_kwargs()
        kwargs.update(model=self.model, model_parameters=self.model_parameters)
        return kwargs

    def _end_kwargs(self) -> dict[str, Any]:
        kwargs = super()._end_kwargs()
        if self._usage:
            kwargs["usage"] = self._usage
        return kwargs

    def set_usage(
        self,
        prompt_tokens: Optional[int] = None,
        completion_tokens: Optional[int] = None,
        total_tokens: Optional[int] = None,
    ) -> None:
        usage = {
            "promptTokens": prompt_tokens,
            "completionTokens": completion_tokens,
            "totalTokens": total_tokens,
        }
        self._usage = {k: v for k, v in usage.items() if v is not None}


@dataclass
class TracingContext(_ObservationParent):
    """
    Tracing for a single planning run.

    Usage::

        ctx = TracingContext(execution_id="abc123")
        ctx.start_trace(name="plan", task=task)
        with ctx.span("planning_loop") as span:
            ...
        ctx.end_trace(output=plan)
    """

    execution_id: str
    session_id: Optional[str] = None
    user_id: Optional[str] = None
    _root: Optional[SpanContext] = field(default=None, repr=False)

    @property
    def enabled(self) -> bool:
        return _active_langfuse() is not None

    def _is_tracing(self) -> bool:
        return self.enabled

    def start_trace(
        self,
        name: str = "planning_run",
        task: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> None:
        """Open the root span and tag the trace with session/user ids."""
        if not self.enabled:
            logger.debug("[%s] start_trace skipped: tracing disabled", self.execution_id)
            return

        root = SpanContext(
            name=name,
            enabled=True,
            input={"task": task} if task else None,
            metadata={"execution_id": self.execution_id, **(metadata or {})},
        )
        root.start()
        if root._observation is None:
            return
        try:
            root._observation.update_trace(user_id=self.user_id, session_id=self.session_id)
        except Exception as e:
            logger.warning("[%s] Failed to set trace attributes: %s", self.execution_id, e)
        self._root = root

    def get_trace_context(self) -> Optional[TraceContext]:
        """Parent reference for observations created directly under the root."""
        if self._root is None:
            return None
        trace_id = getattr(self._root._observation, "trace_id", None)
        span_id = getattr(self._root._observation, "id", None)
        if not trace_id or not span_id:
            return None
        return TraceContext(trace_id=trace_id, parent_span_id=span_id)

    def _child_trace_context(self) -> Optional[TraceContext]:
        return self.get_trace_context()

    def end_trace(self, output: Optional[Any] = None, status: str = "success") -> None:
        if self._root is None:
            return
        self._root.set_output(output)
        self._root.set_status(status)
        self._root.end()
        self._root = None
