"""Optional Logfire tracing for producer runs.

Tracing is off unless ENABLE_LOGFIRE is set. When enabled, Logfire is
configured once and PydanticAI calls are instrumented automatically;
trace_operation() then opens a span around a block of work. When disabled,
or when logfire is not installed, trace_operation() is a no-op that still
yields an attribute dict.

Requirements:
    pip install logfire
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Generator

logger = logging.getLogger(__name__)


@dataclass
class TracingContext:
    """Process-wide tracing state."""
    enabled: bool = False
    service_name: str = "newsdigest"
    configured: bool = False


_context = TracingContext()


def setup_tracing(
    enabled: bool = False,
    service_name: str = "newsdigest",
    token: str = "",
) -> TracingContext:
    """Set up tracing with Logfire.

    Args:
        enabled: Whether to enable tracing
        service_name: Name of the service for tracing
        token: Logfire authentication token

    Returns:
        TracingContext for the session
    """
    _context.enabled = enabled
    _context.service_name = service_name

    if not enabled:
        logger.debug("Tracing disabled")
        return _context

    try:
        import logfire

        logfire.configure(service_name=service_name, token=token or None)
        logfire.instrument_pydantic_ai()
        _context.configured = True
        logger.info("Logfire tracing enabled | service=%s", service_name)
    except ImportError:
        logger.warning("Logfire not installed. Tracing disabled.")
        _context.enabled = False
    except Exception as e:
        logger.error("Failed to configure Logfire: %s", e)
        _context.enabled = False

    return _context


@contextmanager
def trace_operation(
    name: str,
    attributes: dict[str, Any] | None = None,
) -> Generator[dict[str, Any], None, None]:
    """Trace a block of work.

    Args:
        name: Span name
        attributes: Attributes set when the span opens

    Yields:
        Dict whose entries are added to the span when the block exits
    """
    result_attrs: dict[str, Any] = {}
    start = time.monotonic()
    try:
        if _context.enabled and _context.configured:
            import logfire

            with logfire.span(name, **(attributes or {})) as span:
                yield result_attrs
                for key, value in result_attrs.items():
                    span.set_attribute(key, value)
        else:
            yield result_attrs
    finally:
        logger.debug("Operation '%s' completed in %.2fs", name, time.monotonic() - start)
