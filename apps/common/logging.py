"""
Logging infrastructure for the settlement ledger.

- Request context stored in thread-local storage by RequestIDMiddleware
- RequestIDFilter: injects request correlation fields into every record

Usage (settings LOGGING):
    'filters': {'request_id': {'()': 'apps.common.logging.RequestIDFilter'}}
"""

from __future__ import annotations

import logging
import threading
from typing import Any

# Thread-local storage for request context
_request_context = threading.local()

_CONTEXT_FIELDS = ("request_id", "ip_address")


# =============================================================================
# REQUEST CONTEXT FUNCTIONS
# =============================================================================


def set_request_context(**kwargs: Any) -> None:
    """Set request context for the current thread"""
    for key, value in kwargs.items():
        setattr(_request_context, key, value)


def get_request_context() -> dict[str, Any]:
    """Get request context for the current thread"""
    return {
        "request_id": getattr(_request_context, "request_id", "-"),
        "ip_address": getattr(_request_context, "ip_address", None),
    }


def clear_request_context() -> None:
    """Clear request context for the current thread"""
    for attr in _CONTEXT_FIELDS:
        if hasattr(_request_context, attr):
            delattr(_request_context, attr)


# =============================================================================
# REQUEST ID FILTER - Structured Logging with Request Correlation
# =============================================================================


class RequestIDFilter(logging.Filter):
    """
    Add request ID and context to log records.

    Records logged outside a request (django-q2 workers, management
    commands) get "-" as request id.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        context = get_request_context()
        for key, value in context.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True
