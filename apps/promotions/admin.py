"""
Django admin for promotions app.
Counters (used_count, purchase amounts, balances) are read-only here: they
are only changed by the promotion services.
"""

from __future__ import annotations

from typing import ClassVar

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from .models import LoyaltyGrant, Referral, Voucher, VoucherUsage, Wallet, WalletTransaction

# ===============================================================================
# VOUCHER ADMIN
# ===============================================================================


class VoucherUsageInline(admin.TabularInline):
    model = VoucherUsage
    extra = 0
    can_delete = False
    readonly_fields: ClassVar[list[str]] = ("user", "order", "created_at")


@admin.register(Voucher)
class VoucherAdmin(admin.ModelAdmin):
    list_display: ClassVar[list[str]] = (
        "code", "discount_type", "discount_value", "used_count", "max_uses",
        "is_active", "source", "valid_to",
    )
    list_filter: ClassVar[list[str]] = ("is_active", "discount_type", "source")
    search_fields: ClassVar[list[str]] = ("code", "name", "user__email")
    readonly_fields: ClassVar[list[str]] = ("used_count", "source_order", "created_at", "updated_at")
    inlines: ClassVar[list] = [VoucherUsageInline]

    fieldsets: ClassVar[tuple] = (
        (_("Voucher"), {"fields": ("code", "name", "description", "is_active", "source", "source_order")}),
        (_("Discount"), {"fields": ("discount_type", "discount_value", "min_order_amount")}),
        (_("Limits"), {"fields": ("max_uses", "used_count", "user", "valid_from", "valid_to")}),
        (_("Timestamps"), {"fields": ("created_at", "updated_at"), "classes": ("collapse",)}),
    )


# ===============================================================================
# REFERRAL ADMIN
# ===============================================================================


@admin.register(Referral)
class ReferralAdmin(admin.ModelAdmin):
    list_display: ClassVar[list[str]] = (
        "referred_user_email", "referrer_email", "status", "referred_purchase_amount",
        "discount_given", "referrer_discount_amount", "created_at",
    )
    list_filter: ClassVar[list[str]] = ("status", "discount_given")
    search_fields: ClassVar[list[str]] = ("referrer_email", "referred_user_email")
    readonly_fields: ClassVar[list[str]] = (
        "status", "referred_purchase_amount", "discount_given", "discount_voucher",
        "referrer_discount_amount", "referrer_voucher", "qualified_at", "completed_at",
        "created_at", "updated_at",
    )


# ===============================================================================
# LOYALTY & WALLET ADMIN
# ===============================================================================


@admin.register(LoyaltyGrant)
class LoyaltyGrantAdmin(admin.ModelAdmin):
    list_display: ClassVar[list[str]] = ("order", "user", "tier_label", "points", "spin_credits", "retracted_at")
    list_filter: ClassVar[list[str]] = ("tier_label",)
    search_fields: ClassVar[list[str]] = ("order__reference", "user__email")
    readonly_fields: ClassVar[list[str]] = (
        "order", "user", "tier_label", "points", "spin_credits", "created_at", "retracted_at",
    )


class WalletTransactionInline(admin.TabularInline):
    model = WalletTransaction
    extra = 0
    can_delete = False
    readonly_fields: ClassVar[list[str]] = ("reference", "amount", "description", "order", "created_at")


@admin.register(Wallet)
class WalletAdmin(admin.ModelAdmin):
    list_display: ClassVar[list[str]] = ("user", "balance", "updated_at")
    search_fields: ClassVar[list[str]] = ("user__email",)
    readonly_fields: ClassVar[list[str]] = ("user", "balance", "created_at", "updated_at")
    inlines: ClassVar[list] = [WalletTransactionInline]
