"""
Langfuse tracing for planning runs.

Observability for model calls, tool executions and the run lifecycle.
"""

from .client import (
    TracingClient,
    get_tracing_client,
    init_from_config,
    init_tracing,
    shutdown_tracing,
)
from .context import GenerationContext, SpanContext, TracingContext

__all__ = [
    "TracingClient",
    "init_tracing",
    "init_from_config",
    "get_tracing_client",
    "shutdown_tracing",
    "TracingContext",
    "SpanContext",
    "GenerationContext",
]
