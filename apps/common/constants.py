"""
Settlement Ledger Constants

Centralized constants for incentive thresholds, voucher defaults, and notification windows.
This file is the single source of truth for business rules that span the orders,
promotions and notifications apps. Amounts are whole currency units (NGN).
"""

from decimal import Decimal
from typing import Final

from django.conf import settings

# ===============================================================================
# REFERRAL PROGRAM 🤝
# ===============================================================================

# Cumulative referred spend that qualifies the referrer for a reward
DEFAULT_REFERRAL_QUALIFICATION_AMOUNT: Final[Decimal] = Decimal('20000')
DEFAULT_REFERRER_REWARD_AMOUNT: Final[Decimal] = Decimal('1000')
DEFAULT_REFERRAL_SIGNUP_DISCOUNT: Final[Decimal] = Decimal('1000')

# ===============================================================================
# ORDER REWARDS 🎁
# ===============================================================================

CASHBACK_SPEND_STEP: Final[Decimal] = Decimal('100000')   # Every 100k spent...
CASHBACK_REWARD_PER_STEP: Final[Decimal] = Decimal('2000')  # ...earns 2k wallet credit
FREE_DELIVERY_MIN_SPEND: Final[Decimal] = Decimal('50000')
DEFAULT_FREE_DELIVERY_VOUCHER_VALUE: Final[Decimal] = Decimal('2500')
DEFAULT_FREE_DELIVERY_VOUCHER_DAYS: Final[int] = 14

# ===============================================================================
# VOUCHERS & NOTIFICATIONS
# ===============================================================================

VOUCHER_CODE_PREFIX: Final[str] = 'REF'
FREE_DELIVERY_CODE_PREFIX: Final[str] = 'FREE-DELIV-NEXT'
ORDER_REFERENCE_LENGTH: Final[int] = 8
NOTIFICATION_TTL_DAYS: Final[int] = 30
PUSH_REQUEST_TIMEOUT_SECONDS: Final[int] = 10

# ===============================================================================
# SETTINGS ACCESSORS ⚙️
# ===============================================================================


def _decimal_setting(name: str, default: Decimal) -> Decimal:
    return Decimal(str(getattr(settings, name, default)))


def referral_qualification_amount() -> Decimal:
    return _decimal_setting('REFERRAL_QUALIFICATION_AMOUNT', DEFAULT_REFERRAL_QUALIFICATION_AMOUNT)


def referrer_reward_amount() -> Decimal:
    return _decimal_setting('REFERRER_REWARD_AMOUNT', DEFAULT_REFERRER_REWARD_AMOUNT)


def referral_signup_discount() -> Decimal:
    return _decimal_setting('REFERRAL_SIGNUP_DISCOUNT', DEFAULT_REFERRAL_SIGNUP_DISCOUNT)


def free_delivery_voucher_value() -> Decimal:
    return _decimal_setting('FREE_DELIVERY_VOUCHER_VALUE', DEFAULT_FREE_DELIVERY_VOUCHER_VALUE)


def free_delivery_voucher_days() -> int:
    return int(getattr(settings, 'FREE_DELIVERY_VOUCHER_DAYS', DEFAULT_FREE_DELIVERY_VOUCHER_DAYS))
