"""
Common utilities for the settlement ledger
Token generation, masking, and the best-effort side effect boundary.
"""

from __future__ import annotations

import logging
import secrets
import string
from collections.abc import Callable
from typing import Any, TypeVar

from django.db import transaction

from apps.common.constants import ORDER_REFERENCE_LENGTH

logger = logging.getLogger(__name__)

R = TypeVar("R")

_REFERENCE_ALPHABET = string.ascii_uppercase + string.digits

# ===============================================================================
# TOKENS & MASKING
# ===============================================================================


def generate_reference(length: int = ORDER_REFERENCE_LENGTH) -> str:
    """Short human readable token, random but not guaranteed unique"""
    return "".join(secrets.choice(_REFERENCE_ALPHABET) for _ in range(length))


def generate_code(prefix: str, length: int = 8) -> str:
    """Voucher style code: PREFIX-XXXXXXXX"""
    return f"{prefix}-{generate_reference(length)}"


def mask_email(email: str | None) -> str:
    """Mask an email for logs: jo***@example.com"""
    if not email or "@" not in email:
        return "***"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


# ===============================================================================
# BEST-EFFORT SIDE EFFECTS
# ===============================================================================


def run_best_effort(label: str, func: Callable[..., R], *args: Any, **kwargs: Any) -> R | None:
    """
    Run a side effect in its own error boundary.

    Any exception is logged with traceback and swallowed; the caller gets
    None back. Used for every collaborator call that must never fail the
    operation that triggered it (rewards, notifications, emails). The call
    runs inside a savepoint so a failed query does not poison the
    surrounding transaction.
    """
    try:
        with transaction.atomic():
            return func(*args, **kwargs)
    except Exception as e:
        logger.exception(f"⚠️ [BestEffort] {label} failed: {e}")
        return None
