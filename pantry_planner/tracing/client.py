"""
Langfuse connection for the planner, with graceful degradation.

One client per process.  Missing credentials, a failed auth check or an
SDK error leave ``client`` unset; tracing calls then do nothing and
planning is unaffected.
"""

import logging
from typing import Optional

from langfuse import Langfuse

from ..models.config import LangfuseConfig

logger = logging.getLogger(__name__)


class TracingClient:
    """
    Langfuse client built from ``LangfuseConfig``.

    ``client`` is None whenever tracing is off and ``error`` says why.
    """

    def __init__(self, settings: LangfuseConfig):
        self.settings = settings
        self.error: Optional[str] = None
        self.client: Optional[Langfuse] = self._connect()

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def _disable(self, reason: str) -> None:
        self.error = reason
        logger.warning("Tracing disabled: %s", reason)

    def _connect(self) -> Optional[Langfuse]:
        settings = self.settings
        if not settings.is_configured:
            self.error = "Langfuse credentials not configured"
            logger.debug("Tracing disabled: %s", self.error)
            return None
        if settings.host and not settings.host.startswith(("http://", "https://")):
            logger.warning("Langfuse host %r does not look like an http(s) URL", settings.host)

        options = {
            "public_key": settings.public_key,
            "secret_key": settings.secret_key,
            "debug": settings.debug,
        }
        if settings.host:
            options["host"] = settings.host
        try:
            langfuse = Langfuse(**options)
            authenticated = langfuse.auth_check()
        except Exception as e:
            self._disable(f"Langfuse unavailable: {e}")
            return None
        if not authenticated:
            self._disable("Langfuse auth_check() failed, check LANGFUSE_HOST and credentials")
            return None

        logger.info("Langfuse tracing enabled (host: %s)", settings.host or "default")
        return langfuse

    def _forward(self, operation: str) -> None:
        if self.client is None:
            return
        try:
            getattr(self.client, operation)()
        except Exception as e:
            logger.warning("Langfuse %s failed: %s", operation, e)

    def flush(self) -> None:
        """Send buffered events."""
        self._forward("flush")

    def shutdown(self) -> None:
        self._forward("shutdown")


_active: Optional[TracingClient] = None


def init_tracing(settings: LangfuseConfig) -> TracingClient:
    """Create the process-wide tracing client, replacing any previous one."""
    global _active
    _active = TracingClient(settings)
    return _active


def init_from_config(settings: LangfuseConfig) -> Optional[TracingClient]:
    """Initialize tracing when enabled explicitly or both keys are present."""
    if not (settings.enabled or settings.is_configured):
        logger.debug("Tracing disabled by configuration")
        return None
    return init_tracing(settings)


def get_tracing_client() -> Optional[TracingClient]:
    return _active


def shutdown_tracing() -> None:
    """Flush and forget the process-wide client."""
    global _active
    if _active is not None:
        _active.shutdown()
    _active = None
