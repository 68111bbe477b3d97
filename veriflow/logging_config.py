"""
Logging configuration for the Veriflow SDK runtime.

The SDK only emits structlog events under the ``veriflow`` namespace; it
never installs handlers on import. Applications (and the ``veriflow`` CLI)
opt in through :func:`setup_logging`.

The active correlation ID is attached to every event and sent to the API as
the ``X-Request-ID`` header, so one ID follows a call across both sides.
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Dict, Optional, Union

import structlog
from structlog.types import EventDict

LOGGER_NAMESPACE = "veriflow"

_correlation_id: ContextVar[Optional[str]] = ContextVar("veriflow_correlation_id", default=None)


def add_correlation_id(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """structlog processor that stamps the current correlation ID, if any."""
    correlation_id = _correlation_id.get()
    if correlation_id:
        event_dict.setdefault("correlation_id", correlation_id)
    return event_dict


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """
    Bind a correlation ID to the current task context.

    Args:
        correlation_id: ID to bind. A random UUID4 is generated when omitted.

    Returns:
        The bound correlation ID.
    """
    value = correlation_id or str(uuid.uuid4())
    _correlation_id.set(value)
    return value


def get_correlation_id() -> Optional[str]:
    return _correlation_id.get()


def clear_correlation_id() -> None:
    _correlation_id.set(None)


def _build_handler(log_file: Optional[Union[str, Path]], level: int) -> logging.Handler:
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(path)
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    json_format: bool = True,
) -> None:
    """
    Route structlog output through the standard library root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Write events to this file instead of stderr.
        json_format: Render JSON lines; otherwise use the console renderer.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()
    root_logger.addHandler(_build_handler(log_file, numeric_level))

    renderer = (
        structlog.processors.JSONRenderer()
        if json_format
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty() and not log_file)
    )

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            add_correlation_id,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def setup_stderr_logging(level: str = "WARNING") -> None:
    """
    Send events to stderr at ``level`` until :func:`setup_logging` runs.

    Used while the configuration that decides the real logging setup is
    still being loaded; stdout stays reserved for command output.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.WARNING

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            add_correlation_id,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a logger named ``veriflow.<name>``."""
    return structlog.get_logger(f"{LOGGER_NAMESPACE}.{name}")


# Convenience functions for common logging patterns

def log_token_exchange(
    logger: structlog.stdlib.BoundLogger,
    kind: str,
    success: bool,
    reason: Optional[str] = None,
    **kwargs: Any,
) -> None:
    """
    Log an access token exchange.

    Args:
        logger: Logger instance
        kind: Exchange kind ("api_key" or "refresh")
        success: Whether the exchange produced a token pair
        reason: Reason for failure if not successful
        **kwargs: Additional context to log
    """
    log_data: Dict[str, Any] = {
        "event_type": "token_exchange",
        "kind": kind,
        "success": success,
    }

    if reason is not None:
        log_data["reason"] = reason

    log_data.update(kwargs)

    if success:
        logger.info("token_exchange", **log_data)
    else:
        logger.warning("token_exchange", **log_data)


def log_request_retry(
    logger: structlog.stdlib.BoundLogger,
    method: str,
    path: str,
    attempt: int,
    max_attempts: int,
    delay_seconds: float,
    reason: str,
    **kwargs: Any,
) -> None:
    """
    Log a retried HTTP request.

    Args:
        logger: Logger instance
        method: HTTP method
        path: Request path
        attempt: Attempt number that failed (1-based)
        max_attempts: Attempt ceiling for this request
        delay_seconds: Backoff delay before the next attempt
        reason: Why the attempt failed (status code or error class)
        **kwargs: Additional context to log
    """
    log_data: Dict[str, Any] = {
        "event_type": "request_retry",
        "method": method,
        "path": path,
        "attempt": attempt,
        "max_attempts": max_attempts,
        "delay_seconds": round(delay_seconds, 3),
        "reason": reason,
    }

    log_data.update(kwargs)

    logger.warning("request_retry", **log_data)


def log_websocket_transition(
    logger: structlog.stdlib.BoundLogger,
    url: str,
    from_state: str,
    to_state: str,
    attempts: int,
    **kwargs: Any,
) -> None:
    """
    Log a WebSocket session state transition.

    Args:
        logger: Logger instance
        url: WebSocket endpoint
        from_state: Previous session state
        to_state: New session state
        attempts: Reconnect attempt counter after the transition
        **kwargs: Additional context to log
    """
    log_data: Dict[str, Any] = {
        "event_type": "websocket_transition",
        "url": url,
        "from_state": from_state,
        "to_state": to_state,
        "attempts": attempts,
    }

    log_data.update(kwargs)

    if to_state == "closed":
        logger.info("websocket_transition", **log_data)
    else:
        logger.debug("websocket_transition", **log_data)
