"""
Settlement error taxonomy.

Services never raise these across their public boundary: they are returned
inside ``Err(...)`` and the API layer maps ``code``/``http_status`` onto the
response. Raising them is still fine inside a service (see the voucher
ledger snapshot read).
"""

from __future__ import annotations

from typing import Any, ClassVar


class SettlementError(Exception):
    """Base class for every typed settlement failure"""

    code: ClassVar[str] = 'settlement_error'
    http_status: ClassVar[int] = 400

    def __init__(self, message: str = '', **context: Any) -> None:
        super().__init__(message or self.default_message())
        self.message = message or self.default_message()
        self.context = context

    @classmethod
    def default_message(cls) -> str:
        return cls.code.replace('_', ' ').capitalize()

    def to_dict(self) -> dict[str, Any]:
        return {'success': False, 'error': self.message, 'code': self.code}


class ValidationError(SettlementError):
    """Malformed or missing input, rejected before any mutation"""

    code = 'validation_error'
    http_status = 400


class VoucherNotFound(SettlementError):  # noqa: N818
    code = 'voucher_not_found'
    http_status = 404


class VoucherExhausted(SettlementError):  # noqa: N818
    code = 'voucher_exhausted'
    http_status = 409


class VoucherRedemptionConflict(SettlementError):  # noqa: N818
    """Lost a concurrent race on the voucher usage counter"""

    code = 'voucher_redemption_conflict'
    http_status = 409


class DuplicateReferral(ValidationError):  # noqa: N818
    """Referred user already has a referral, or the referrer was already linked"""

    code = 'referral_exists'
    http_status = 409


class AuthorizationError(SettlementError):
    code = 'not_authorized'
    http_status = 403

    @classmethod
    def default_message(cls) -> str:
        return 'Not authorized'


class OrderNotFound(SettlementError):  # noqa: N818
    code = 'order_not_found'
    http_status = 404


class IllegalTransition(SettlementError):  # noqa: N818
    code = 'illegal_transition'
    http_status = 409


class PersistenceFailure(SettlementError):  # noqa: N818
    """Underlying store error on a critical write"""

    code = 'persistence_failure'
    http_status = 500
