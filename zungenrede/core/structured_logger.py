"""
Structured lifecycle logging.

Single contract for startup, request and persistence logs:
- component
- operation
- correlation_id (optional)
- outcome
- duration_ms (optional, omitted if None)
- reason (optional)

Never log the bot token or translation payloads.
"""
from logging import Logger
from typing import Optional


def log_event(
    logger: Logger,
    *,
    component: str,
    operation: str,
    outcome: str,
    correlation_id: Optional[str] = None,
    duration_ms: Optional[float] = None,
    reason: Optional[str] = None,
    level: str = "info",
    message: Optional[str] = None,
) -> None:
    """
    Emit a structured log event.

    Args:
        logger: Logger instance
        component: "store", "dispatcher", "startup", "shutdown", "polling", ...
        operation: "put", "remove", "load", "lookup", ...
        outcome: "success", "denied", "invalid", "failed", "cancelled"
        correlation_id: Update or message id (optional)
        duration_ms: Duration in milliseconds (omitted if None)
        reason: Short non-PII explanation (optional)
        level: "debug", "info", "warning", "error" or "critical"
        message: Override for the default "<component> <operation> outcome=<outcome>"
    """
    extra: dict = {
        "component": component,
        "operation": operation,
        "outcome": outcome,
    }
    if correlation_id is not None:
        extra["correlation_id"] = str(correlation_id)
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)
    if reason is not None:
        extra["reason"] = reason

    msg = message or f"{component} {operation} outcome={outcome}"
    if duration_ms is not None:
        msg = f"{msg} duration_ms={extra['duration_ms']}"
    if reason is not None:
        msg = f"{msg} reason={reason}"
    log_method = getattr(logger, level.lower(), logger.info)
    log_method(msg, extra=extra)
