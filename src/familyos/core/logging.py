"""
Structured logging configuration with member/session correlation.

Provides centralized logging configuration so that every decision, audit
flush and crypto failure can be traced back to the family member session
that caused it.
"""

import logging
import uuid
from contextvars import ContextVar
from typing import Any, Dict, List, Optional

import structlog
from structlog.stdlib import LoggerFactory

# Context variables for session correlation
member_id_var: ContextVar[Optional[str]] = ContextVar("member_id", default=None)
session_id_var: ContextVar[Optional[str]] = ContextVar("session_id", default=None)


class StructuredLogger:
    """Structured logger with member/session correlation support."""

    def __init__(self, name: str):
        self.name = name
        self.logger = structlog.get_logger(name)

    def _get_context(self) -> Dict[str, Any]:
        """Get current session context for logging."""
        context = {}

        if member_id := member_id_var.get():
            context["member_id"] = member_id
        if session_id := session_id_var.get():
            context["session_id"] = session_id

        return context

    def _merge(self, kwargs: Dict[str, Any]) -> Dict[str, Any]:
        merged = self._get_context()
        merged.update(kwargs)
        return merged

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message with context."""
        self.logger.debug(message, **self._merge(kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message with context."""
        self.logger.info(message, **self._merge(kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message with context."""
        self.logger.warning(message, **self._merge(kwargs))

    def error(self, message: str, **kwargs: Any) -> None:
        """Log error message with context."""
        self.logger.error(message, **self._merge(kwargs))

    def critical(self, message: str, **kwargs: Any) -> None:
        """Log critical message with context."""
        self.logger.critical(message, **self._merge(kwargs))

    def log_policy_decision(
        self,
        kind: str,
        member_id: str,
        resource: str,
        allowed: bool,
        source: str,
        **kwargs: Any,
    ) -> None:
        """Log an access decision together with where it came from."""
        self.logger.debug(
            f"Policy decision: {kind}",
            kind=kind,
            decision_member=member_id,
            resource=resource,
            allowed=allowed,
            source=source,
            **self._merge(kwargs),
        )

    def log_security_event(self, event_type: str, **kwargs: Any) -> None:
        """Log security-related events."""
        self.logger.warning(
            f"Security event: {event_type}",
            event_type=event_type,
            **self._merge(kwargs),
        )


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger instance."""
    return StructuredLogger(name)


def set_member_context(
    member_id: Optional[str] = None, session_id: Optional[str] = None
) -> None:
    """Set member/session context for correlation."""
    if member_id:
        member_id_var.set(member_id)
    if session_id:
        session_id_var.set(session_id)


def clear_member_context() -> None:
    """Clear member/session context."""
    member_id_var.set(None)
    session_id_var.set(None)


def generate_session_id() -> str:
    """Generate a unique session ID."""
    return str(uuid.uuid4())


def configure_logging(level: str = "INFO", json_format: bool = True) -> None:
    """Configure structured logging for the application."""

    processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.add_log_level,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Configure standard library logging
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(message)s",
        handlers=[logging.StreamHandler()],
    )


# Initialize logging configuration
configure_logging()
