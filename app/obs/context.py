"""Request-scoped context helpers using ContextVars.

request_id is set by the middleware; hub is set by the orchestrator while a
hub's tuples are being priced so provider-call logs carry it.
"""

from contextvars import ContextVar
from typing import Optional


# Public ContextVars (names are stable API)
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
hub_var: ContextVar[Optional[str]] = ContextVar("hub", default=None)


def clear_context() -> None:
    """Reset context variables to defaults."""
    request_id_var.set(None)
    hub_var.set(None)
