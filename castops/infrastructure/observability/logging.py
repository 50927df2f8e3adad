"""
Structured logging setup for the casting operations service.
Provides JSON-formatted logs with consistent fields for production monitoring.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import LoggerFactory


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging with JSON output for production.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            _add_service_context,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    # Adapter traffic is logged by the clients themselves
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def _add_service_context(logger, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Tag every entry with the service name."""
    event_dict.setdefault("service", "castops")
    return event_dict


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Structlog logger for ``name`` (usually __name__)."""
    return structlog.get_logger(name)


def log_request(
    method: str, path: str, status_code: int, duration_ms: float, member_id: str | None = None
) -> None:
    """One line per HTTP request; 4xx at warning, 5xx at error."""
    logger = get_logger("http").bind(
        method=method, path=path, status_code=status_code, duration_ms=duration_ms
    )
    if member_id:
        logger = logger.bind(member_id=member_id)

    if status_code >= 500:
        logger.error("Request errored")
    elif status_code >= 400:
        logger.warning("Request rejected")
    else:
        logger.info("Request served")


def log_side_effect(step: str, ok: bool, error: str | None = None, **context: Any) -> None:
    """Log the outcome of a best-effort workflow step (Slack reply, hold, Notion sync...)."""
    logger = get_logger("side_effects")

    if ok:
        logger.debug("Side effect step completed", step=step, **context)
    else:
        logger.warning("Side effect step failed", step=step, error=error, **context)
