"""
Order models for the settlement ledger.
Orders are immutable after settlement except for status, payment status
and the voucher reference, which is cleared when redemption does not go through.
"""

import uuid
from decimal import Decimal
from typing import Any, ClassVar

from django.core.validators import MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

# ===============================================================================
# ENUMERATIONS
# ===============================================================================


class OrderStatus(models.TextChoices):
    CONFIRMED = 'order confirmed', _('Order Confirmed')
    IN_TRANSIT = 'In transit', _('In Transit')
    DELIVERED = 'order delivered', _('Order Delivered')
    CANCELLED = 'Cancelled', _('Cancelled')


class PaymentStatus(models.TextChoices):
    PENDING = 'Pending', _('Pending')
    PROCESSING = 'Processing', _('Processing')
    PAID = 'Paid', _('Paid')
    FAILED = 'Failed', _('Failed')


class PaymentMethod(models.TextChoices):
    PAYSTACK = 'paystack', _('Paystack')
    WALLET = 'wallet', _('Wallet')
    CASH_ON_DELIVERY = 'cash_on_delivery', _('Cash on Delivery')
    BANK_TRANSFER = 'bank_transfer', _('Bank Transfer')


# Terminal statuses map to an empty set
ORDER_STATUS_TRANSITIONS: dict[str, frozenset[str]] = {
    OrderStatus.CONFIRMED: frozenset({OrderStatus.IN_TRANSIT, OrderStatus.CANCELLED}),
    OrderStatus.IN_TRANSIT: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def is_valid_status_transition(current_status: str, new_status: str) -> bool:
    return new_status in ORDER_STATUS_TRANSITIONS.get(current_status, frozenset())


# ===============================================================================
# ORDER MODELS
# ===============================================================================


class Order(models.Model):
    """
    Storefront order.
    Guests are allowed (``user`` empty). ``is_first_order`` is captured at
    settlement so the loyalty grant and its retraction evaluate the same tier.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    reference = models.CharField(
        max_length=20,
        db_index=True,
        help_text=_("Short human-readable reference, not guaranteed unique")
    )

    user = models.ForeignKey(
        'users.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='orders',
        help_text=_("Empty for guest checkouts")
    )

    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.CONFIRMED,
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    payment_method = models.CharField(
        max_length=30,
        choices=PaymentMethod.choices,
        default=PaymentMethod.PAYSTACK,
    )

    total_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0'))],
    )
    delivery_fee = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0'))],
    )

    voucher = models.ForeignKey(
        'promotions.Voucher',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='orders',
        help_text=_("Cleared when the voucher could not be redeemed")
    )

    shipping_address = models.JSONField(default=dict, blank=True)
    note = models.TextField(blank=True)

    is_first_order = models.BooleanField(
        default=False,
        help_text=_("No earlier non-cancelled order existed for the user at settlement")
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'orders'
        verbose_name = _('Order')
        verbose_name_plural = _('Orders')
        ordering: ClassVar[tuple[str, ...]] = ('-created_at',)
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=['user', '-created_at'], name='orders_user_id_5c2f1e_idx'),
            models.Index(fields=['status', '-created_at'], name='orders_status_8d1b3a_idx'),
            models.Index(fields=['payment_status', '-created_at'], name='orders_payment_4e7a9c_idx'),
        )

    def __str__(self) -> str:
        return f"Order #{self.reference} ({self.status})"

    @property
    def is_cancelled(self) -> bool:
        return self.status == OrderStatus.CANCELLED

    @property
    def allowed_transitions(self) -> frozenset[str]:
        return ORDER_STATUS_TRANSITIONS.get(self.status, frozenset())

    @property
    def delivery_street(self) -> str:
        address: Any = self.shipping_address or {}
        return address.get('street', '') if isinstance(address, dict) else ''


class OrderItem(models.Model):
    """
    Line item snapshot.
    Exactly one of product, bundle or offer is referenced; the catalog itself is external.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name='items'
    )

    product_id = models.CharField(max_length=64, blank=True)
    bundle_id = models.CharField(max_length=64, blank=True)
    offer_id = models.CharField(max_length=64, blank=True)

    title = models.CharField(max_length=255, blank=True, help_text=_("Catalog title at time of order"))
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0'))],
        help_text=_("Unit price at time of order")
    )
    option = models.JSONField(default=dict, blank=True, help_text=_("Selected variant, e.g. {'name': 'Large'}"))

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'order_items'
        verbose_name = _('Order Item')
        verbose_name_plural = _('Order Items')
        ordering: ClassVar[tuple[str, ...]] = ('created_at',)
        constraints: ClassVar[tuple[models.CheckConstraint, ...]] = (
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name='order_item_quantity_positive',
            ),
        )

    def __str__(self) -> str:
        return f"{self.title or self.catalog_ref} x {self.quantity}"

    @property
    def catalog_ref(self) -> str:
        return self.product_id or self.bundle_id or self.offer_id

    @property
    def option_name(self) -> str:
        return (self.option or {}).get('name', '') if isinstance(self.option, dict) else ''

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


class OrderStatusHistory(models.Model):
    """Audit row per status change"""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name='status_history'
    )
    old_status = models.CharField(max_length=20, blank=True)
    new_status = models.CharField(max_length=20)
    changed_by = models.ForeignKey(
        'users.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        help_text=_("Empty for changes made by the system")
    )
    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'order_status_history'
        verbose_name = _('Order Status History')
        verbose_name_plural = _('Order Status Histories')
        ordering: ClassVar[tuple[str, ...]] = ('-created_at',)
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=['order', '-created_at'], name='order_statu_order_i_3f6d2b_idx'),
        )

    def __str__(self) -> str:
        return f"{self.order.reference}: {self.old_status or '-'} → {self.new_status}"
