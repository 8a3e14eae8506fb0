"""
Promotions models for the settlement ledger.

Supports:
- Vouchers with a shared usage counter (optimistic concurrency, never decremented)
- Per-user voucher usage records (append-only)
- Referral relationships advanced by the referred user's orders
- Per-order referral contributions (idempotent cumulative spend)
- Per-order loyalty tier grants (idempotent grant and retraction)
- Cashback wallets with a unique-reference transaction ledger
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import ClassVar

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

# ===============================================================================
# Enumerations
# ===============================================================================


class DiscountType(StrEnum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class VoucherSource(StrEnum):
    MANUAL = "manual"
    REFERRAL_SIGNUP = "referral_signup"
    REFERRAL_REWARD = "referral_reward"
    FREE_DELIVERY_REWARD = "free_delivery_reward"


class ReferralStatus(StrEnum):
    """Referral lifecycle, declared in forward order"""

    APPLIED = "applied"
    QUALIFIED = "qualified"
    COMPLETED = "completed"

    @property
    def rank(self) -> int:
        return list(ReferralStatus).index(self)

    def can_advance_to(self, target: ReferralStatus) -> bool:
        return target in REFERRAL_TRANSITIONS[self]


# Explicit table: status never regresses, applied may jump straight to completed
REFERRAL_TRANSITIONS: dict[ReferralStatus, frozenset[ReferralStatus]] = {
    ReferralStatus.APPLIED: frozenset({ReferralStatus.QUALIFIED, ReferralStatus.COMPLETED}),
    ReferralStatus.QUALIFIED: frozenset({ReferralStatus.COMPLETED}),
    ReferralStatus.COMPLETED: frozenset(),
}

MONEY_FIELD_OPTIONS = {"max_digits": 12, "decimal_places": 2}


# ===============================================================================
# Voucher Model
# ===============================================================================


class Voucher(models.Model):
    """
    Redeemable discount code.

    ``used_count`` is only ever changed by VoucherLedgerService through a
    conditional UPDATE on its previously read value.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    code = models.CharField(max_length=50, unique=True, help_text=_("Code typed at checkout"))
    name = models.CharField(max_length=200, blank=True)
    description = models.TextField(blank=True)

    DISCOUNT_TYPE_CHOICES: ClassVar[tuple[tuple[str, str], ...]] = (
        (DiscountType.PERCENTAGE.value, _("Percentage")),
        (DiscountType.FIXED.value, _("Fixed Amount")),
    )
    discount_type = models.CharField(max_length=20, choices=DISCOUNT_TYPE_CHOICES, default=DiscountType.FIXED.value)
    discount_value = models.DecimalField(**MONEY_FIELD_OPTIONS, default=Decimal("0.00"))
    min_order_amount = models.DecimalField(
        **MONEY_FIELD_OPTIONS,
        null=True,
        blank=True,
        help_text=_("Minimum order total required, empty for none"),
    )

    max_uses = models.PositiveIntegerField(null=True, blank=True, help_text=_("Empty means unlimited"))
    used_count = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    valid_from = models.DateTimeField(null=True, blank=True)
    valid_to = models.DateTimeField(null=True, blank=True)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="vouchers",
        help_text=_("Owner of a user-specific voucher, empty for public codes"),
    )

    SOURCE_CHOICES: ClassVar[tuple[tuple[str, str], ...]] = (
        (VoucherSource.MANUAL.value, _("Manual")),
        (VoucherSource.REFERRAL_SIGNUP.value, _("Referral Signup Discount")),
        (VoucherSource.REFERRAL_REWARD.value, _("Referrer Reward")),
        (VoucherSource.FREE_DELIVERY_REWARD.value, _("Free Delivery Reward")),
    )
    source = models.CharField(max_length=30, choices=SOURCE_CHOICES, default=VoucherSource.MANUAL.value)
    source_order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reward_vouchers",
        help_text=_("Order whose reward issued this voucher"),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "promotion_vouchers"
        verbose_name = _("Voucher")
        verbose_name_plural = _("Vouchers")
        ordering: ClassVar[tuple[str, ...]] = ("-created_at",)
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=["is_active", "valid_to"], name="promotion_v_is_acti_1a2b3c_idx"),
            models.Index(fields=["user", "is_active"], name="promotion_v_user_id_4d5e6f_idx"),
            models.Index(fields=["source_order"], name="promotion_v_source__7a8b9c_idx"),
        )
        constraints: ClassVar[tuple[models.CheckConstraint, ...]] = (
            models.CheckConstraint(
                condition=Q(max_uses__isnull=True) | Q(used_count__lte=models.F("max_uses")),
                name="voucher_used_count_within_max_uses",
            ),
        )

    def __str__(self) -> str:
        return self.code

    @property
    def is_exhausted(self) -> bool:
        return self.max_uses is not None and self.used_count >= self.max_uses

    @property
    def remaining_uses(self) -> int | None:
        if self.max_uses is None:
            return None
        return max(self.max_uses - self.used_count, 0)

    def is_within_validity_window(self, now: datetime | None = None) -> bool:
        now = now or timezone.now()
        if self.valid_from and self.valid_from > now:
            return False
        return not (self.valid_to and self.valid_to < now)

    def discount_for(self, order_total: Decimal) -> Decimal:
        """Discount amount this voucher grants on ``order_total``, never above the total"""
        if self.discount_type == DiscountType.PERCENTAGE:
            discount = (order_total * self.discount_value / Decimal("100")).quantize(Decimal("0.01"))
        else:
            discount = self.discount_value
        return min(discount, order_total)


class VoucherUsage(models.Model):
    """One successful redemption of a voucher by a user. Append-only."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    voucher = models.ForeignKey(Voucher, on_delete=models.PROTECT, related_name="usages")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="voucher_usages",
        help_text=_("Empty for guest checkouts"),
    )
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="voucher_usages",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "promotion_voucher_usages"
        verbose_name = _("Voucher Usage")
        verbose_name_plural = _("Voucher Usages")
        ordering: ClassVar[tuple[str, ...]] = ("-created_at",)
        constraints: ClassVar[tuple[models.UniqueConstraint, ...]] = (
            # One-time use per user; guests (NULL user) are not constrained
            models.UniqueConstraint(fields=["voucher", "user"], name="unique_voucher_usage_per_user"),
        )

    def __str__(self) -> str:
        return f"{self.voucher.code} used by {self.user_id or 'guest'}"


# ===============================================================================
# Referral Models
# ===============================================================================


class Referral(models.Model):
    """
    Tracks one referrer -> referred user relationship.

    ``referred_purchase_amount`` only grows and ``status`` only moves forward
    (see REFERRAL_TRANSITIONS). Both are written by ReferralService with
    conditional F() updates.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    referrer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="referrals_made",
    )
    referrer_email = models.EmailField()
    referred_user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="referral",
        help_text=_("A user can be referred only once"),
    )
    referred_user_email = models.EmailField()

    STATUS_CHOICES: ClassVar[tuple[tuple[str, str], ...]] = (
        (ReferralStatus.APPLIED.value, _("Applied (discount granted, awaiting spend)")),
        (ReferralStatus.QUALIFIED.value, _("Qualified (referrer rewarded)")),
        (ReferralStatus.COMPLETED.value, _("Completed (referral discount consumed)")),
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=ReferralStatus.APPLIED.value)

    referred_purchase_amount = models.DecimalField(**MONEY_FIELD_OPTIONS, default=Decimal("0.00"))
    discount_given = models.BooleanField(
        default=False,
        help_text=_("Referred user's signup discount has been consumed in an order"),
    )
    discount_voucher = models.ForeignKey(
        Voucher,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="signup_referrals",
    )
    referrer_discount_amount = models.DecimalField(**MONEY_FIELD_OPTIONS, default=Decimal("0.00"))
    referrer_voucher = models.ForeignKey(
        Voucher,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reward_referrals",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    qualified_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "promotion_referrals"
        verbose_name = _("Referral")
        verbose_name_plural = _("Referrals")
        ordering: ClassVar[tuple[str, ...]] = ("-created_at",)
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=["referrer", "status"], name="promotion_r_referre_2c3d4e_idx"),
            models.Index(fields=["status", "-created_at"], name="promotion_r_status_5f6a7b_idx"),
        )

    def __str__(self) -> str:
        return f"Referral: {self.referred_user_email} via {self.referrer_email}"

    @property
    def status_enum(self) -> ReferralStatus:
        return ReferralStatus(self.status)


class ReferralContribution(models.Model):
    """Records that an order's total has been added to a referral"""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    referral = models.ForeignKey(Referral, on_delete=models.CASCADE, related_name="contributions")
    order = models.ForeignKey("orders.Order", on_delete=models.CASCADE, related_name="referral_contributions")
    amount = models.DecimalField(**MONEY_FIELD_OPTIONS)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "promotion_referral_contributions"
        verbose_name = _("Referral Contribution")
        verbose_name_plural = _("Referral Contributions")
        constraints: ClassVar[tuple[models.UniqueConstraint, ...]] = (
            models.UniqueConstraint(fields=["referral", "order"], name="unique_referral_contribution_per_order"),
        )

    def __str__(self) -> str:
        return f"{self.amount} to {self.referral_id}"


# ===============================================================================
# Loyalty Grant Model
# ===============================================================================


class LoyaltyGrant(models.Model):
    """
    The single loyalty tier awarded for an order.

    One row per order; ``retracted_at`` is set exactly once by the
    conditional update that performs the retraction.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.OneToOneField("orders.Order", on_delete=models.CASCADE, related_name="loyalty_grant")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="loyalty_grants")

    tier_label = models.CharField(max_length=50)
    points = models.PositiveIntegerField(default=0)
    spin_credits = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    retracted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "promotion_loyalty_grants"
        verbose_name = _("Loyalty Grant")
        verbose_name_plural = _("Loyalty Grants")
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=["user", "-created_at"], name="promotion_l_user_id_8c9d0e_idx"),
        )

    def __str__(self) -> str:
        return f"{self.tier_label} for order {self.order_id}"

    @property
    def is_retracted(self) -> bool:
        return self.retracted_at is not None


# ===============================================================================
# Wallet Models
# ===============================================================================


class Wallet(models.Model):
    """Cashback wallet. ``balance`` is only changed through WalletService F() updates."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="wallet")
    balance = models.DecimalField(**MONEY_FIELD_OPTIONS, default=Decimal("0.00"))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "promotion_wallets"
        verbose_name = _("Wallet")
        verbose_name_plural = _("Wallets")

    def __str__(self) -> str:
        return f"Wallet {self.user_id}: {self.balance}"


class WalletTransaction(models.Model):
    """Signed wallet movement; ``reference`` makes credits and reversals idempotent"""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    wallet = models.ForeignKey(Wallet, on_delete=models.CASCADE, related_name="transactions")
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="wallet_transactions",
    )
    amount = models.DecimalField(**MONEY_FIELD_OPTIONS)
    reference = models.CharField(max_length=100, unique=True)
    description = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "promotion_wallet_transactions"
        verbose_name = _("Wallet Transaction")
        verbose_name_plural = _("Wallet Transactions")
        ordering: ClassVar[tuple[str, ...]] = ("-created_at",)

    def __str__(self) -> str:
        return f"{self.reference}: {self.amount}"
