"""Context management for structured logging and tracing.

This module provides context variables for propagating request context
(request id, action, and the subnet/device being operated on) through
async call chains into every log record.
"""

import contextvars
from contextlib import contextmanager
from typing import Optional, Any, Dict
from opentelemetry import trace

# Context variables for request/operation tracking
request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_id", default=None
)
action_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "action", default=None
)
subnet_id_var: contextvars.ContextVar[Optional[int]] = contextvars.ContextVar(
    "subnet_id", default=None
)
device_id_var: contextvars.ContextVar[Optional[int]] = contextvars.ContextVar(
    "device_id", default=None
)

_VARS: Dict[str, contextvars.ContextVar] = {
    "request_id": request_id_var,
    "action": action_var,
    "subnet_id": subnet_id_var,
    "device_id": device_id_var,
}


def set_context(
    request_id: Optional[str] = None,
    action: Optional[str] = None,
    subnet_id: Optional[int] = None,
    device_id: Optional[int] = None,
) -> None:
    """Set context variables.

    Args:
        request_id: Unique request identifier
        action: Operation being performed (e.g., 'ipam.assign')
        subnet_id: Subnet being operated on
        device_id: Device being operated on
    """
    if request_id is not None:
        request_id_var.set(request_id)
    if action is not None:
        action_var.set(action)
    if subnet_id is not None:
        subnet_id_var.set(subnet_id)
    if device_id is not None:
        device_id_var.set(device_id)


def get_context() -> Dict[str, Any]:
    """Get all current context values as a dictionary.

    Returns:
        Dictionary with all non-None context values
    """
    context = {}
    for key, var in _VARS.items():
        value = var.get()
        if value is not None:
            context[key] = value
    return context


def clear_context() -> None:
    """Clear all context variables."""
    for var in _VARS.values():
        var.set(None)


@contextmanager
def operation_context(
    action: str,
    subnet_id: Optional[int] = None,
    device_id: Optional[int] = None,
):
    """Context manager for setting operation context with automatic cleanup.

    The action and ids are also recorded on the current span if one is
    recording.

    Example:
        with operation_context("ipam.assign", subnet_id=3):
            logger.info("Assigning address")
    """
    old_context = get_context()

    try:
        set_context(action=action, subnet_id=subnet_id, device_id=device_id)

        span = trace.get_current_span()
        if span.is_recording():
            span.set_attribute("action", action)
            if subnet_id is not None:
                span.set_attribute("subnet.id", subnet_id)
            if device_id is not None:
                span.set_attribute("device.id", device_id)

        yield

    finally:
        # Restore previous context
        clear_context()
        for key, value in old_context.items():
            _VARS[key].set(value)


def get_trace_context() -> Dict[str, str]:
    """Get current OpenTelemetry trace context.

    Returns:
        Dictionary with trace_id and span_id (if available)
    """
    context = {}

    span = trace.get_current_span()
    if span.is_recording():
        span_context = span.get_span_context()
        if span_context.is_valid:
            context["trace_id"] = format(span_context.trace_id, "032x")
            context["span_id"] = format(span_context.span_id, "016x")

    return context
