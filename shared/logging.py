"""
Shared logging configuration for the authorization core.

Events are rendered as JSON lines. Every event carries the service name, the
request id of the HTTP call being served and the masked subject (client id or
username) being authenticated. Secret-bearing fields are replaced before
rendering, so a careless ``logger.info(..., client_secret=...)`` never
reaches the output.
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

import structlog

REDACTED = "[REDACTED]"

# Field names whose values are never written out
SECRET_FIELDS = frozenset({
    "authorization",
    "client_secret",
    "password",
    "secret",
    "secret_hash",
    "password_hash",
    "access_token",
    "token",
    "admin_token",
})

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
subject_var: ContextVar[Optional[str]] = ContextVar("subject", default=None)


def configure_logging(service_name: str, log_level: str = "info") -> None:
    """Configure structured logging for a service."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            add_service_context,
            add_correlation_context,
            redact_secrets,
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )


def add_service_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    # Logger names are "<service>.<component>"
    logger_name = event_dict.get("logger", "")
    if "." in logger_name:
        event_dict.setdefault("service", logger_name.split(".")[0])
    return event_dict


def add_correlation_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Attach the request id and masked subject of the current request."""
    request_id = request_id_var.get()
    if request_id:
        event_dict["request_id"] = request_id

    subject = subject_var.get()
    if subject:
        event_dict.setdefault("subject", subject)

    return event_dict


def redact_secrets(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Replace the values of secret-bearing fields, including nested dicts."""
    return _redact(event_dict)


def _redact(values: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in values.items():
        if key.lower() in SECRET_FIELDS and value is not None:
            values[key] = REDACTED
        elif isinstance(value, dict):
            values[key] = _redact(dict(value))
    return values


def set_request_id(request_id: Optional[str] = None) -> str:
    """Set request ID in context, generating one when absent."""
    if not request_id:
        request_id = str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


def set_subject_context(subject: Optional[str] = None):
    """Set the masked subject being authenticated."""
    if subject:
        subject_var.set(mask_identifier(subject))


def clear_context():
    request_id_var.set(None)
    subject_var.set(None)


def mask_identifier(value: Optional[str]) -> str:
    """Mask a client id or username: first and last character only."""
    if value is None or len(value) <= 2:
        return "***"
    return f"{value[0]}***{value[-1]}"


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
