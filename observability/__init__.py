"""Logging and optional tracing for the digest pipeline.

setup_logging:
    Console + rotating file logging, text or JSON, with run-id context.

setup_tracing / trace_operation:
    Optional Logfire spans (ENABLE_LOGFIRE=true, pip install logfire).
"""

from observability.logging import setup_logging, set_run_context, clear_context
from observability.tracing import setup_tracing, trace_operation, TracingContext

__all__ = [
    "setup_logging",
    "set_run_context",
    "clear_context",
    "setup_tracing",
    "trace_operation",
    "TracingContext",
]
