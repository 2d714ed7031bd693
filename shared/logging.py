"""
Structured logging for the storefront services.

Events are rendered as JSON by structlog. Request and client identifiers
are carried in context variables so every event emitted while a request is
being handled is correlated without passing loggers around.
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

import structlog


request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
client_id_var: ContextVar[Optional[str]] = ContextVar("client_id", default=None)

# Keys never written to the log, whatever a caller binds
REDACTED_KEYS = frozenset({"authorization", "password", "admin_password", "credentials", "postgres_dsn"})
REDACTED = "[redacted]"


def configure_logging(service_name: str, log_level: str = "info") -> None:
    """Configure structlog and the stdlib root logger for one service."""
    level = getattr(logging, log_level.upper())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            add_service_context,
            add_correlation_context,
            redact_sensitive,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    logging.getLogger().setLevel(level)


def add_service_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Tag events with the top-level component (``storefront.cache`` -> ``storefront``)."""
    logger_name = event_dict.get("logger", "")
    if "." in logger_name:
        event_dict.setdefault("service", logger_name.split(".", 1)[0])
    return event_dict


def add_correlation_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    for key, var in (("request_id", request_id_var), ("client_id", client_id_var)):
        value = var.get()
        if value:
            event_dict.setdefault(key, value)
    return event_dict


def redact_sensitive(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    for key in list(event_dict):
        if key.lower() in REDACTED_KEYS:
            event_dict[key] = REDACTED
    return event_dict


def set_request_id(request_id: Optional[str] = None) -> str:
    """Bind the request id for the current request, generating one if absent."""
    request_id = request_id or str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


def set_client_context(client_id: Optional[str] = None) -> None:
    if client_id:
        client_id_var.set(client_id)


def clear_context() -> None:
    request_id_var.set(None)
    client_id_var.set(None)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
