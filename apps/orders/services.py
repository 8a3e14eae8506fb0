"""
Order Services for the settlement ledger
Order placement with voucher redemption and incentive fan-out, admin status
transitions with bonus retraction, and admin order queries.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, TypedDict

from django.db import DatabaseError, transaction
from django.utils import timezone

from apps.common.exceptions import (
    AuthorizationError,
    IllegalTransition,
    OrderNotFound,
    PersistenceFailure,
    SettlementError,
    ValidationError,
    VoucherExhausted,
    VoucherNotFound,
)
from apps.common.types import Err, Ok, Result
from apps.common.utils import generate_reference, run_best_effort
from apps.notifications.services import NotificationService
from apps.promotions.models import Voucher
from apps.promotions.services import (
    ReferralAdvance,
    ReferralService,
    RewardService,
    RewardSummary,
    VoucherLedgerService,
)

from .models import (
    Order,
    OrderItem,
    OrderStatus,
    OrderStatusHistory,
    PaymentMethod,
    PaymentStatus,
    is_valid_status_transition,
)

if TYPE_CHECKING:
    from apps.users.models import User

logger = logging.getLogger(__name__)

CATALOG_REF_FIELDS = ('product_id', 'bundle_id', 'offer_id')

# ===============================================================================
# ORDER SERVICE PARAMETER OBJECTS
# ===============================================================================


class OrderItemData(TypedDict, total=False):
    """One cart line; exactly one of product_id, bundle_id or offer_id is set"""
    product_id: str | None
    bundle_id: str | None
    offer_id: str | None
    quantity: int
    price: Decimal
    title: str
    option: dict[str, Any]


@dataclass
class PlaceOrderData:
    """Parameter object for order placement"""
    user: User | None
    items: list[OrderItemData]
    shipping_address: dict[str, Any]
    total_amount: Decimal
    delivery_fee: Decimal = Decimal('0')
    voucher_id: uuid.UUID | str | None = None
    payment_method: str = PaymentMethod.PAYSTACK
    note: str = ''


@dataclass
class SettlementOutcome:
    """What place_order did; voucher and incentive fields are best-effort"""
    order: Order
    voucher_applied: bool = False
    voucher_status: str | None = None
    referral: ReferralAdvance | None = None
    rewards: RewardSummary = field(default_factory=RewardSummary)

    @property
    def order_id(self) -> uuid.UUID:
        return self.order.pk

    @property
    def reference(self) -> str:
        return self.order.reference

    @property
    def tier_label(self) -> str | None:
        return self.rewards.tier_label


def _as_decimal(value: Any) -> Decimal | None:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return None


def _parse_uuid(value: Any) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def _is_admin(actor: User | None) -> bool:
    return actor is not None and bool(getattr(actor, 'is_admin_user', False))


# ===============================================================================
# ORDER SETTLEMENT SERVICE
# ===============================================================================


class OrderSettlementService:
    """
    Places an order and settles its incentives.

    Only input validation, voucher lookup and the order write can fail the
    call. Redemption, referral progress and rewards run afterwards, each in
    its own error boundary.
    """

    @classmethod
    def place_order(cls, data: PlaceOrderData) -> Result[SettlementOutcome, SettlementError]:
        validation_error = cls.validate(data)
        if validation_error is not None:
            logger.warning(f"🛒 [Order] Rejected order input: {validation_error.message}")
            return Err(validation_error)

        voucher: Voucher | None = None
        if data.voucher_id:
            voucher = Voucher.objects.filter(pk=_parse_uuid(data.voucher_id)).first()
            if voucher is None or not voucher.is_active:
                return Err(VoucherNotFound('Invalid or expired voucher.'))
            ineligible = VoucherLedgerService.check_eligibility(voucher, data.user, _as_decimal(data.total_amount))
            if ineligible is not None:
                logger.warning(f"🎟️ [Order] Voucher {voucher.code} rejected: {ineligible.message}")
                return Err(ineligible)
            if voucher.is_exhausted:
                return Err(VoucherExhausted('Voucher has reached its usage limit.'))

        reference = generate_reference()
        try:
            order = cls._persist_order(data, reference, voucher)
        except DatabaseError as e:
            logger.exception(f"🔥 [Order] Failed to persist order {reference}: {e}")
            return Err(PersistenceFailure('Failed to create order'))

        logger.info(
            f"🛒 [Order] Placed order #{order.reference} ({order.total_amount}) for "
            f"{'user ' + str(order.user_id) if order.user_id else 'guest'}",
            extra={'order_id': str(order.pk)},
        )

        outcome = SettlementOutcome(order=order)

        if voucher is not None:
            redemption = run_best_effort(
                'voucher_redemption',
                VoucherLedgerService.try_redeem,
                voucher.pk,
                user=data.user,
                order=order,
            )
            outcome.voucher_status = str(redemption.status) if redemption is not None else 'error'
            outcome.voucher_applied = redemption is not None and redemption.succeeded
            if not outcome.voucher_applied:
                logger.warning(
                    f"🎟️ [Order] Voucher {voucher.code} not applied to order #{order.reference} "
                    f"({outcome.voucher_status})"
                )
                run_best_effort('clear_order_voucher', cls._clear_voucher, order)

        advance = run_best_effort('referral_progress', ReferralService.record_order, order)
        outcome.referral = advance

        rewards = run_best_effort('order_rewards', RewardService.process_order_rewards, order)
        if rewards is not None:
            outcome.rewards = rewards

        return Ok(outcome)

    @staticmethod
    def validate(data: PlaceOrderData) -> ValidationError | None:
        """Input checks run before anything is written"""
        if not data.items:
            return ValidationError('Order must contain at least one item')

        for index, item in enumerate(data.items, start=1):
            refs = [name for name in CATALOG_REF_FIELDS if item.get(name)]
            if len(refs) != 1:
                return ValidationError(f'Item {index} must reference exactly one product, bundle or offer')
            quantity = item.get('quantity')
            if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
                return ValidationError(f'Item {index} quantity must be at least 1')
            price = _as_decimal(item.get('price'))
            if price is None or price < 0:
                return ValidationError(f'Item {index} price must be a non-negative amount')

        total = _as_decimal(data.total_amount)
        if total is None or total < 0:
            return ValidationError('Invalid total order amount')
        delivery_fee = _as_decimal(data.delivery_fee)
        if delivery_fee is None or delivery_fee < 0:
            return ValidationError('Invalid delivery fee')

        if data.payment_method not in PaymentMethod.values:
            return ValidationError(f'Unknown payment method: {data.payment_method}')
        if not isinstance(data.shipping_address, dict) or not data.shipping_address:
            return ValidationError('Shipping address is required')
        if data.voucher_id and _parse_uuid(data.voucher_id) is None:
            return ValidationError('Malformed voucher id')
        return None

    @staticmethod
    def is_first_order(user: User | None) -> bool:
        if user is None:
            return False
        return not Order.objects.filter(user=user).exclude(status=OrderStatus.CANCELLED).exists()

    @classmethod
    @transaction.atomic
    def _persist_order(cls, data: PlaceOrderData, reference: str, voucher: Voucher | None) -> Order:
        order = Order.objects.create(
            reference=reference,
            user=data.user,
            status=OrderStatus.CONFIRMED,
            payment_status=PaymentStatus.PENDING,
            payment_method=data.payment_method,
            total_amount=_as_decimal(data.total_amount),
            delivery_fee=_as_decimal(data.delivery_fee),
            voucher=voucher,
            shipping_address=dict(data.shipping_address),
            note=data.note or '',
            is_first_order=cls.is_first_order(data.user),
        )
        OrderItem.objects.bulk_create([
            OrderItem(
                order=order,
                product_id=item.get('product_id') or '',
                bundle_id=item.get('bundle_id') or '',
                offer_id=item.get('offer_id') or '',
                title=item.get('title', ''),
                quantity=item['quantity'],
                price=_as_decimal(item['price']),
                option=item.get('option') or {},
            )
            for item in data.items
        ])
        OrderStatusHistory.objects.create(
            order=order,
            old_status='',
            new_status=OrderStatus.CONFIRMED,
            changed_by=data.user,
            notes='Order placed',
        )
        return order

    @staticmethod
    def _clear_voucher(order: Order) -> None:
        Order.objects.filter(pk=order.pk).update(voucher=None, updated_at=timezone.now())
        order.voucher = None


# ===============================================================================
# ORDER STATUS SERVICE
# ===============================================================================


class OrderStatusService:
    """Admin-driven status and payment-status changes"""

    @classmethod
    def update_order_status(
        cls,
        order_id: uuid.UUID | str,
        new_status: str,
        actor: User | None,
        notes: str = '',
    ) -> Result[Order, SettlementError]:
        """
        Move an order along the status table and run the follow-ups.

        Cancellation retracts the order's bonuses before notifying. Other
        transitions notify, then email the customer.
        """
        if not _is_admin(actor):
            return Err(AuthorizationError())
        if new_status not in OrderStatus.values:
            return Err(ValidationError(f'Unknown order status: {new_status}'))

        order = cls._get_order(order_id)
        if order is None:
            return Err(OrderNotFound('Order not found'))

        old_status = order.status
        if not is_valid_status_transition(old_status, new_status):
            return Err(IllegalTransition(f"Cannot change order status from '{old_status}' to '{new_status}'"))

        try:
            with transaction.atomic():
                updated = Order.objects.filter(pk=order.pk, status=old_status).update(
                    status=new_status,
                    updated_at=timezone.now(),
                )
                if updated:
                    OrderStatusHistory.objects.create(
                        order=order,
                        old_status=old_status,
                        new_status=new_status,
                        changed_by=actor,
                        notes=notes,
                    )
        except DatabaseError as e:
            logger.exception(f"🔥 [Order] Failed to update status of #{order.reference}: {e}")
            return Err(PersistenceFailure('Failed to update order status'))

        if not updated:
            return Err(IllegalTransition(f'Order #{order.reference} status was changed concurrently'))

        order.refresh_from_db()
        logger.info(f"🔄 [Order] #{order.reference}: {old_status} → {new_status} by {actor.email}")

        if new_status == OrderStatus.CANCELLED:
            run_best_effort('bonus_retraction', RewardService.retract_order_bonuses, order)
            run_best_effort('status_notification', NotificationService.notify_order_status, order)
        else:
            run_best_effort('status_notification', NotificationService.notify_order_status, order)
            if new_status != OrderStatus.CONFIRMED:
                run_best_effort('status_email', NotificationService.send_order_status_email, order)

        return Ok(order)

    @classmethod
    def update_payment_status(
        cls,
        order_id: uuid.UUID | str,
        payment_status: str,
        actor: User | None,
    ) -> Result[Order, SettlementError]:
        if not _is_admin(actor):
            return Err(AuthorizationError())
        if payment_status not in PaymentStatus.values:
            return Err(ValidationError(f'Unknown payment status: {payment_status}'))

        order = cls._get_order(order_id)
        if order is None:
            return Err(OrderNotFound('Order not found'))

        try:
            Order.objects.filter(pk=order.pk).update(payment_status=payment_status, updated_at=timezone.now())
        except DatabaseError as e:
            logger.exception(f"🔥 [Order] Failed to update payment status of #{order.reference}: {e}")
            return Err(PersistenceFailure('Failed to update payment status'))

        order.refresh_from_db()
        logger.info(f"💳 [Order] #{order.reference} payment status → {payment_status} by {actor.email}")
        return Ok(order)

    @staticmethod
    def _get_order(order_id: uuid.UUID | str) -> Order | None:
        parsed = _parse_uuid(order_id)
        if parsed is None:
            return None
        return Order.objects.select_related('user').filter(pk=parsed).first()


# ===============================================================================
# ORDER QUERY SERVICE
# ===============================================================================


class OrderQueryService:
    """Service for order lookups"""

    @staticmethod
    def get_order_details(order_id: uuid.UUID | str, actor: User | None) -> Result[Order, SettlementError]:
        """Admin view of an order with items and status history"""
        if not _is_admin(actor):
            return Err(AuthorizationError())

        parsed = _parse_uuid(order_id)
        order = None
        if parsed is not None:
            order = (
                Order.objects.select_related('user', 'voucher')
                .prefetch_related('items', 'status_history__changed_by')
                .filter(pk=parsed)
                .first()
            )
        if order is None:
            return Err(OrderNotFound('Order not found'))
        return Ok(order)
