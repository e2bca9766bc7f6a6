"""
debug_trace.py

Debug instrumentation for following parse and layout calls.
Enable by setting the SEQLAYOUT_TRACE environment variable (any value
other than empty or "0") before import, or by flipping DEBUG_TRACE.
Records go to the "seqlayout.trace" logger at DEBUG level.
"""

import logging
import os
from functools import wraps

# Set to True to enable debug tracing
DEBUG_TRACE = os.environ.get("SEQLAYOUT_TRACE", "") not in ("", "0")

# Set to True to trace per-event layout steps (very verbose)
TRACE_EVENTS = False

log = logging.getLogger("seqlayout.trace")


def trace(msg: str, category: str = "INFO"):
    """Emit a trace message tagged with *category*."""
    if not DEBUG_TRACE:
        return
    if category == "EVENT" and not TRACE_EVENTS:
        return
    log.debug("[%s] %s", category, msg)


def trace_call(category: str = "CALL"):
    """Decorator to trace function calls.

    Tracing is decided when the function is decorated; with tracing off
    the function is returned unchanged.
    """
    def decorator(func):
        if not DEBUG_TRACE:
            return func

        @wraps(func)
        def wrapper(*args, **kwargs):
            name = func.__qualname__
            trace(f">>> {name}", category)
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                trace(f"!!! {name} raised {type(e).__name__}: {e}", "ERROR")
                raise
            trace(f"<<< {name}", category)
            return result
        return wrapper
    return decorator
