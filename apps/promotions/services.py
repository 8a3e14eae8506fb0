"""
Promotion services for the settlement ledger.
Voucher ledger (optimistic redemption), referral state machine, loyalty grants,
cashback wallet and the reward fan-out run after an order is placed.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from decimal import Decimal
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from django.contrib.auth import get_user_model
from django.db import IntegrityError, models, transaction
from django.db.models import F, Q, Value
from django.db.models.functions import Greatest
from django.utils import timezone

from apps.common.constants import (
    FREE_DELIVERY_CODE_PREFIX,
    VOUCHER_CODE_PREFIX,
    free_delivery_voucher_days,
    free_delivery_voucher_value,
    referral_qualification_amount,
    referral_signup_discount,
    referrer_reward_amount,
)
from apps.common.exceptions import (
    DuplicateReferral,
    SettlementError,
    ValidationError,
    VoucherExhausted,
    VoucherNotFound,
    VoucherRedemptionConflict,
)
from apps.common.types import Err, Ok, Result
from apps.common.utils import generate_code, mask_email, run_best_effort
from apps.notifications.services import NotificationService
from apps.users.models import UserProfile

from .models import (
    DiscountType,
    LoyaltyGrant,
    Referral,
    ReferralContribution,
    ReferralStatus,
    Voucher,
    VoucherSource,
    VoucherUsage,
    Wallet,
    WalletTransaction,
)
from .tiers import cashback_for, qualifies_for_free_delivery, tier_for

if TYPE_CHECKING:
    from apps.orders.models import Order
    from apps.users.models import User

logger = logging.getLogger(__name__)


# ===============================================================================
# Constants
# ===============================================================================

MAX_CODE_GENERATION_ATTEMPTS = 100  # Prevent infinite loops in code generation (structural safety limit)


# ===============================================================================
# Data Classes for Results
# ===============================================================================


class RedemptionStatus(StrEnum):
    REDEEMED = "redeemed"
    CONFLICT = "conflict"
    EXHAUSTED = "exhausted"
    ALREADY_USED = "already_used"


@dataclass(frozen=True)
class VoucherSnapshot:
    """Counter state as read before a conditional update"""

    voucher_id: uuid.UUID
    code: str
    used_count: int
    max_uses: int | None
    is_active: bool

    @property
    def is_exhausted(self) -> bool:
        return self.max_uses is not None and self.used_count >= self.max_uses


@dataclass(frozen=True)
class RedemptionResult:
    """
    Outcome of one redemption attempt.

    Attributes:
        status: REDEEMED, CONFLICT (lost the compare-and-swap), EXHAUSTED
            (no capacity when first read) or ALREADY_USED (per-user limit).
        used_count: counter value written by this redemption, when it succeeded.
        attempts: conditional updates issued (at most 2).
    """

    status: RedemptionStatus
    voucher_id: uuid.UUID
    used_count: int | None = None
    attempts: int = 1

    @property
    def succeeded(self) -> bool:
        return self.status == RedemptionStatus.REDEEMED

    def as_error(self) -> SettlementError | None:
        if self.status == RedemptionStatus.CONFLICT:
            return VoucherRedemptionConflict("Voucher was redeemed concurrently, please retry")
        if self.status == RedemptionStatus.EXHAUSTED:
            return VoucherExhausted("Voucher has reached its usage limit.")
        if self.status == RedemptionStatus.ALREADY_USED:
            return ValidationError("You have already used this voucher.")
        return None


@dataclass(frozen=True)
class VoucherQuote:
    """Checkout preview of a voucher for a given order total"""

    voucher_id: uuid.UUID
    code: str
    discount_type: str
    discount_value: Decimal
    discount_amount: Decimal
    remaining_uses: int | None


@dataclass(frozen=True)
class ReferralAdvance:
    referral_id: uuid.UUID
    previous_status: ReferralStatus
    status: ReferralStatus
    referred_purchase_amount: Decimal
    reward_triggered: bool = False
    duplicate: bool = False


@dataclass(frozen=True)
class RetractionResult:
    tier_label: str
    points: int
    spin_credits: int


@dataclass
class RewardSummary:
    """What process_order_rewards granted; every field is best-effort"""

    tier_label: str | None = None
    points: int = 0
    spin_credits: int = 0
    cashback: Decimal = Decimal("0")
    free_delivery_voucher: str | None = None


@dataclass
class RetractionSummary:
    loyalty: RetractionResult | None = None
    cashback_reversed: Decimal = Decimal("0")
    vouchers_deactivated: int = 0


# ===============================================================================
# Voucher Ledger
# ===============================================================================


class VoucherLedgerService:
    """
    Owns voucher usage counters and per-user usage records.

    Redemption never locks the voucher row: it reads ``used_count`` and then
    increments it with a single UPDATE conditioned on that value. A zero row
    count means another redemption won the race.
    """

    @staticmethod
    def read_snapshot(voucher_id: uuid.UUID | str) -> VoucherSnapshot:
        row = (
            Voucher.objects.filter(pk=voucher_id)
            .values("id", "code", "used_count", "max_uses", "is_active")
            .first()
        )
        if row is None:
            raise VoucherNotFound(f"Voucher {voucher_id} not found")
        return VoucherSnapshot(
            voucher_id=row["id"],
            code=row["code"],
            used_count=row["used_count"],
            max_uses=row["max_uses"],
            is_active=row["is_active"],
        )

    @classmethod
    def try_redeem(
        cls,
        voucher_id: uuid.UUID | str,
        user: User | None = None,
        order: Order | None = None,
    ) -> RedemptionResult:
        """Read the counter, then redeem from that snapshot"""
        return cls.redeem_from_snapshot(cls.read_snapshot(voucher_id), user=user, order=order)

    @classmethod
    def redeem_from_snapshot(
        cls,
        snapshot: VoucherSnapshot,
        user: User | None = None,
        order: Order | None = None,
    ) -> RedemptionResult:
        """
        Redeem one slot given a previously read snapshot.

        On a lost race the counter is re-read once: the slot is retried only
        if capacity remains, and never more than once.
        """
        if snapshot.is_exhausted:
            return RedemptionResult(RedemptionStatus.EXHAUSTED, snapshot.voucher_id, attempts=0)

        result = cls._claim_slot(snapshot, user, order)
        if result is not None:
            return result

        fresh = cls.read_snapshot(snapshot.voucher_id)
        if fresh.is_exhausted or not fresh.is_active:
            logger.warning(
                f"⚔️ [Voucher] Lost redemption race on {snapshot.code}, no capacity left "
                f"({fresh.used_count}/{fresh.max_uses})"
            )
            return RedemptionResult(RedemptionStatus.CONFLICT, snapshot.voucher_id, attempts=1)

        result = cls._claim_slot(fresh, user, order)
        if result is not None:
            return replace(result, attempts=2)

        logger.warning(f"⚔️ [Voucher] Lost redemption race twice on {snapshot.code}")
        return RedemptionResult(RedemptionStatus.CONFLICT, snapshot.voucher_id, attempts=2)

    @staticmethod
    def _claim_slot(
        snapshot: VoucherSnapshot,
        user: User | None,
        order: Order | None,
    ) -> RedemptionResult | None:
        """
        One compare-and-swap on ``used_count`` plus the usage record, in one transaction.

        Returns None when the conditional update matched no row.
        """
        try:
            with transaction.atomic():
                updated = (
                    Voucher.objects.filter(pk=snapshot.voucher_id, used_count=snapshot.used_count)
                    .filter(Q(max_uses__isnull=True) | Q(used_count__lt=F("max_uses")))
                    .update(used_count=F("used_count") + 1, updated_at=timezone.now())
                )
                if updated == 0:
                    return None
                VoucherUsage.objects.create(voucher_id=snapshot.voucher_id, user=user, order=order)
        except IntegrityError:
            # Increment rolled back together with the usage insert
            if user is not None and VoucherUsage.objects.filter(voucher_id=snapshot.voucher_id, user=user).exists():
                logger.info(f"🎟️ [Voucher] {snapshot.code} already used by user {user.pk}")
                return RedemptionResult(RedemptionStatus.ALREADY_USED, snapshot.voucher_id)
            logger.warning(f"⚔️ [Voucher] Integrity conflict redeeming {snapshot.code}")
            return RedemptionResult(RedemptionStatus.CONFLICT, snapshot.voucher_id)

        logger.info(
            f"🎟️ [Voucher] Redeemed {snapshot.code} ({snapshot.used_count + 1}/{snapshot.max_uses or '∞'})",
            extra={"voucher_id": str(snapshot.voucher_id), "order_id": str(order.pk) if order else None},
        )
        return RedemptionResult(RedemptionStatus.REDEEMED, snapshot.voucher_id, used_count=snapshot.used_count + 1)

    @staticmethod
    def check_eligibility(
        voucher: Voucher,
        user: User | None,
        order_total: Decimal,
        now: datetime | None = None,
    ) -> ValidationError | None:
        """Owner, validity window and minimum spend. Shared by checkout validation and order placement."""
        if voucher.user_id and (user is None or voucher.user_id != user.pk):
            return ValidationError("This voucher is not valid for your account.")

        now = now or timezone.now()
        if voucher.valid_from and voucher.valid_from > now:
            return ValidationError("Voucher is not yet valid.")
        if voucher.valid_to and voucher.valid_to < now:
            return ValidationError("Voucher has expired.")

        if voucher.min_order_amount is not None and order_total < voucher.min_order_amount:
            return ValidationError(f"Order total must be at least {voucher.min_order_amount} to use this voucher.")
        return None

    @classmethod
    def validate_for_checkout(
        cls,
        code: str,
        user: User | None,
        order_total: Decimal,
    ) -> Result[VoucherQuote, SettlementError]:
        """Pre-checkout validation: the same checks the cart runs before placing an order"""
        if not code or not code.strip():
            return Err(ValidationError("Voucher code is missing."))
        if order_total is None or order_total < 0:
            return Err(ValidationError("Invalid total order amount."))

        voucher = Voucher.objects.filter(code=code.strip(), is_active=True).first()
        if voucher is None:
            return Err(VoucherNotFound("Invalid or expired voucher."))

        ineligible = cls.check_eligibility(voucher, user, order_total)
        if ineligible is not None:
            return Err(ineligible)

        if user is not None and VoucherUsage.objects.filter(voucher=voucher, user=user).exists():
            return Err(ValidationError("You have already used this voucher."))

        if voucher.is_exhausted:
            return Err(VoucherExhausted("Voucher has reached its usage limit."))

        return Ok(
            VoucherQuote(
                voucher_id=voucher.id,
                code=voucher.code,
                discount_type=voucher.discount_type,
                discount_value=voucher.discount_value,
                discount_amount=voucher.discount_for(order_total),
                remaining_uses=voucher.remaining_uses,
            )
        )

    @staticmethod
    def create_voucher(
        *,
        discount_type: str,
        discount_value: Decimal,
        name: str,
        user: User | None = None,
        code: str | None = None,
        description: str = "",
        min_order_amount: Decimal | None = None,
        max_uses: int | None = 1,
        valid_from: datetime | None = None,
        valid_to: datetime | None = None,
        source: str = VoucherSource.MANUAL.value,
        source_order: Order | None = None,
        code_prefix: str = VOUCHER_CODE_PREFIX,
    ) -> Voucher:
        """Create a voucher, generating a unique PREFIX-XXXXXXXX code when none is given"""
        if code is None:
            for _ in range(MAX_CODE_GENERATION_ATTEMPTS):
                candidate = generate_code(code_prefix)
                if not Voucher.objects.filter(code=candidate).exists():
                    code = candidate
                    break
            else:
                raise RuntimeError("Could not generate a unique voucher code")

        voucher = Voucher.objects.create(
            code=code,
            name=name,
            description=description,
            discount_type=discount_type,
            discount_value=discount_value,
            min_order_amount=min_order_amount,
            max_uses=max_uses,
            valid_from=valid_from,
            valid_to=valid_to,
            user=user,
            source=source,
            source_order=source_order,
        )
        logger.info(f"🎟️ [Voucher] Created {voucher.code} ({source}) for user {user.pk if user else 'any'}")
        return voucher

    @staticmethod
    def cleanup_vouchers(now: datetime | None = None) -> dict[str, int]:
        """Deactivate expired and fully used vouchers. Usage counters are left untouched."""
        now = now or timezone.now()
        expired = Voucher.objects.filter(is_active=True, valid_to__lt=now).update(is_active=False, updated_at=now)
        used_up = Voucher.objects.filter(
            is_active=True,
            max_uses__isnull=False,
            used_count__gte=F("max_uses"),
        ).update(is_active=False, updated_at=now)
        logger.info(f"🧹 [Voucher] Cleanup deactivated {expired} expired and {used_up} fully used vouchers")
        return {"expired": expired, "used_up": used_up}


# ===============================================================================
# Discount Issuance
# ===============================================================================


class DiscountIssuanceService:
    """Issues the discount vouchers the referral program promises"""

    @staticmethod
    def issue_signup_discount(referred_user: User, referrer_email: str) -> Voucher:
        return VoucherLedgerService.create_voucher(
            discount_type=DiscountType.FIXED.value,
            discount_value=referral_signup_discount(),
            name=f"Referral discount from {referrer_email}",
            description="Welcome discount for joining through a referral",
            user=referred_user,
            max_uses=1,
            source=VoucherSource.REFERRAL_SIGNUP.value,
        )

    @staticmethod
    @transaction.atomic
    def issue_referrer_discount(referral: Referral, amount: Decimal | None = None) -> Voucher | None:
        """
        Create the referrer's single-use reward voucher.

        At most once per referral: the ``referrer_discount_amount`` marker is
        claimed with a conditional update before the voucher is created.
        """
        amount = amount if amount is not None else referrer_reward_amount()
        claimed = (
            Referral.objects.filter(pk=referral.pk, referrer_discount_amount=0)
            .exclude(status=ReferralStatus.APPLIED.value)
            .update(referrer_discount_amount=amount, updated_at=timezone.now())
        )
        if claimed == 0:
            logger.info(f"🤝 [Referral] Reward for {referral.pk} already issued or not qualified")
            return None

        voucher = VoucherLedgerService.create_voucher(
            discount_type=DiscountType.FIXED.value,
            discount_value=amount,
            name=f"Referral Reward for {referral.referrer_email}",
            description=f"Discount for referring a qualified user (Referral ID: {str(referral.pk)[:8]}...)",
            user=referral.referrer,
            max_uses=1,
            source=VoucherSource.REFERRAL_REWARD.value,
        )
        Referral.objects.filter(pk=referral.pk).update(referrer_voucher=voucher)

        run_best_effort(
            "referrer_reward_notification",
            NotificationService.notify_user,
            referral.referrer_id,
            title="Referral Reward!",
            body=f"Your friend qualified. Use {voucher.code} for {amount} off your next order.",
            link="/account/referral",
            kind="reward",
        )
        logger.info(
            f"🤝 [Referral] Issued {voucher.code} ({amount}) to referrer {mask_email(referral.referrer_email)}"
        )
        return voucher


# ===============================================================================
# Referral State Machine
# ===============================================================================


class ReferralService:
    """Links referred signups and advances referrals with each of their orders"""

    @staticmethod
    def link_referral(referrer_email: str, referred_user: User) -> Result[Referral, SettlementError]:
        """Create an ``applied`` referral and grant the referred user's signup discount"""
        user_model = get_user_model()

        if not referrer_email or not referrer_email.strip():
            return Err(ValidationError("Missing required referral parameters."))

        referrer = user_model.objects.filter(email__iexact=referrer_email.strip(), is_active=True).first()
        if referrer is None:
            return Err(ValidationError("Invalid referral code (referrer email not found)."))
        if referrer.pk == referred_user.pk:
            return Err(ValidationError("You cannot use your own referral code."))
        if Referral.objects.filter(referred_user=referred_user).exists():
            return Err(DuplicateReferral("This user has already applied a referral code."))

        try:
            with transaction.atomic():
                voucher = DiscountIssuanceService.issue_signup_discount(referred_user, referrer.email)
                referral = Referral.objects.create(
                    referrer=referrer,
                    referrer_email=referrer.email,
                    referred_user=referred_user,
                    referred_user_email=referred_user.email,
                    status=ReferralStatus.APPLIED.value,
                    discount_voucher=voucher,
                )
        except IntegrityError:
            return Err(DuplicateReferral("This user has already applied a referral code."))

        logger.info(
            f"🤝 [Referral] {mask_email(referred_user.email)} linked to referrer {mask_email(referrer.email)}",
            extra={"referral_id": str(referral.pk)},
        )
        return Ok(referral)

    @classmethod
    def record_order(cls, order: Order) -> ReferralAdvance | None:
        """
        Advance the referred user's active referral with ``order``.

        Safe to retry: an order contributes to a referral at most once.
        The referrer reward is issued only by the call whose conditional
        update moved the referral out of ``applied``.
        """
        if order.user_id is None:
            return None

        referral = (
            Referral.objects.filter(referred_user_id=order.user_id)
            .exclude(status=ReferralStatus.COMPLETED.value)
            .first()
        )
        if referral is None:
            return None

        previous = referral.status_enum
        reward_due = False

        with transaction.atomic():
            try:
                with transaction.atomic():
                    ReferralContribution.objects.create(referral=referral, order=order, amount=order.total_amount)
            except IntegrityError:
                logger.info(f"🤝 [Referral] Order {order.reference} already counted for referral {referral.pk}")
                return ReferralAdvance(
                    referral_id=referral.pk,
                    previous_status=previous,
                    status=previous,
                    referred_purchase_amount=referral.referred_purchase_amount,
                    duplicate=True,
                )

            now = timezone.now()
            Referral.objects.filter(pk=referral.pk).update(
                referred_purchase_amount=F("referred_purchase_amount") + order.total_amount,
                updated_at=now,
            )
            referral.refresh_from_db()
            current = referral.status_enum

            consumed_discount = (
                order.voucher_id is not None
                and order.voucher_id == referral.discount_voucher_id
                and not referral.discount_given
            )
            qualifies = (
                current == ReferralStatus.APPLIED
                and referral.referred_purchase_amount >= referral_qualification_amount()
            )

            target = current
            if qualifies:
                target = ReferralStatus.QUALIFIED
            if consumed_discount:
                target = ReferralStatus.COMPLETED

            if target != current and current.can_advance_to(target):
                updates: dict[str, Any] = {"status": target.value, "updated_at": now}
                if consumed_discount:
                    updates["discount_given"] = True
                if qualifies:
                    updates["qualified_at"] = now
                if target == ReferralStatus.COMPLETED:
                    updates["completed_at"] = now
                moved = Referral.objects.filter(pk=referral.pk, status=current.value).update(**updates)
                if moved:
                    reward_due = qualifies
                    referral.refresh_from_db()

        if reward_due:
            run_best_effort(
                "referrer_reward",
                DiscountIssuanceService.issue_referrer_discount,
                referral,
                referrer_reward_amount(),
            )

        logger.info(
            f"🤝 [Referral] {referral.pk}: {previous} -> {referral.status} "
            f"(cumulative {referral.referred_purchase_amount})"
        )
        return ReferralAdvance(
            referral_id=referral.pk,
            previous_status=previous,
            status=referral.status_enum,
            referred_purchase_amount=referral.referred_purchase_amount,
            reward_triggered=reward_due,
        )


# ===============================================================================
# Loyalty
# ===============================================================================


class LoyaltyService:
    """Grants and retracts the single loyalty tier an order earned"""

    @staticmethod
    def grant_for_order(order: Order) -> LoyaltyGrant | None:
        if order.user_id is None:
            return None

        tier = tier_for(order.total_amount, is_first_order=order.is_first_order)
        if tier is None or not tier.grants_anything:
            return None

        spins = 1 if tier.unlocks_spin else 0
        with transaction.atomic():
            grant, created = LoyaltyGrant.objects.get_or_create(
                order=order,
                defaults={
                    "user_id": order.user_id,
                    "tier_label": tier.label,
                    "points": tier.points,
                    "spin_credits": spins,
                },
            )
            if not created:
                return grant

            profile, _ = UserProfile.objects.get_or_create(user_id=order.user_id)
            UserProfile.objects.filter(pk=profile.pk).update(
                loyalty_points=F("loyalty_points") + tier.points,
                spin_credits=F("spin_credits") + spins,
                updated_at=timezone.now(),
            )

        logger.info(f"⭐ [Loyalty] Granted '{tier.label}' for order {order.reference} to user {order.user_id}")
        return grant

    @staticmethod
    def retract_for_order(order: Order) -> RetractionResult | None:
        """
        Undo the tier granted for ``order``.

        The amounts come from re-evaluating the tier table on the order's
        stored total. Counters are floored at zero and a second call is a no-op.
        """
        if order.user_id is None:
            return None

        tier = tier_for(order.total_amount, is_first_order=order.is_first_order)
        if tier is None or not tier.grants_anything:
            return None

        spins = 1 if tier.unlocks_spin else 0
        with transaction.atomic():
            claimed = LoyaltyGrant.objects.filter(order=order, retracted_at__isnull=True).update(
                retracted_at=timezone.now()
            )
            if claimed == 0:
                logger.info(f"⭐ [Loyalty] Nothing to retract for order {order.reference}")
                return None

            UserProfile.objects.filter(user_id=order.user_id).update(
                loyalty_points=Greatest(F("loyalty_points") - tier.points, Value(0), output_field=models.IntegerField()),
                spin_credits=Greatest(F("spin_credits") - spins, Value(0), output_field=models.IntegerField()),
                updated_at=timezone.now(),
            )

        logger.info(f"⭐ [Loyalty] Retracted '{tier.label}' for cancelled order {order.reference}")
        return RetractionResult(tier_label=tier.label, points=tier.points, spin_credits=spins)


# ===============================================================================
# Wallet
# ===============================================================================


class WalletService:
    """Cashback wallet. Every movement has a unique reference, so replays are no-ops."""

    @staticmethod
    def credit(
        user_id: Any,
        amount: Decimal,
        reference: str,
        description: str = "",
        order: Order | None = None,
    ) -> WalletTransaction | None:
        with transaction.atomic():
            wallet, _ = Wallet.objects.get_or_create(user_id=user_id)
            try:
                with transaction.atomic():
                    entry = WalletTransaction.objects.create(
                        wallet=wallet,
                        order=order,
                        amount=amount,
                        reference=reference,
                        description=description,
                    )
            except IntegrityError:
                logger.info(f"👛 [Wallet] {reference} already recorded, skipping")
                return None
            Wallet.objects.filter(pk=wallet.pk).update(balance=F("balance") + amount, updated_at=timezone.now())

        logger.info(f"👛 [Wallet] {reference}: {amount:+} for user {user_id}")
        return entry

    @classmethod
    def reverse(cls, reference: str, reversal_reference: str, description: str = "") -> WalletTransaction | None:
        original = WalletTransaction.objects.select_related("wallet").filter(reference=reference).first()
        if original is None:
            return None
        return cls.credit(
            original.wallet.user_id,
            -original.amount,
            reversal_reference,
            description=description,
            order=original.order,
        )


# ===============================================================================
# Order Rewards
# ===============================================================================


class RewardService:
    """Bonus fan-out after placement and its symmetric retraction on cancellation"""

    @staticmethod
    def cashback_reference(order: Order) -> str:
        return f"CASHBACK-{order.pk}"

    @staticmethod
    def reversal_reference(order: Order) -> str:
        return f"REVERSAL-{order.pk}"

    @classmethod
    def process_order_rewards(cls, order: Order) -> RewardSummary:
        """
        Grant the order's tier, cashback and free-delivery voucher.

        Each reward runs in its own error boundary; guests earn nothing.
        """
        summary = RewardSummary()
        if order.user_id is None:
            return summary

        grant = run_best_effort("loyalty_grant", LoyaltyService.grant_for_order, order)
        if grant is not None:
            summary.tier_label = grant.tier_label
            summary.points = grant.points
            summary.spin_credits = grant.spin_credits
            if grant.points:
                body = f"You've been awarded {grant.points} loyalty points for your purchase."
            else:
                body = f"You unlocked the {grant.tier_label} with order #{order.reference}."
            run_best_effort(
                "loyalty_notification",
                NotificationService.notify_user,
                order.user_id,
                title="Loyalty Reward!",
                body=body,
                link="/account/rewards",
                kind="reward",
            )

        cashback = cashback_for(order.total_amount)
        if cashback > 0:
            entry = run_best_effort(
                "cashback_credit",
                WalletService.credit,
                order.user_id,
                cashback,
                cls.cashback_reference(order),
                description="Cash Back: Spend Reward",
                order=order,
            )
            if entry is not None:
                summary.cashback = cashback
                run_best_effort(
                    "cashback_notification",
                    NotificationService.notify_user,
                    order.user_id,
                    title="Cashback Earned!",
                    body=f"You earned ₦{cashback:,.0f} cashback from your order #{order.reference}.",
                    link="/account/wallet",
                    kind="reward",
                )

        if qualifies_for_free_delivery(order.total_amount):
            voucher = run_best_effort("free_delivery_voucher", cls.issue_free_delivery_voucher, order)
            if voucher is not None:
                summary.free_delivery_voucher = voucher.code
                run_best_effort(
                    "free_delivery_notification",
                    NotificationService.notify_user,
                    order.user_id,
                    title="Free Delivery Reward!",
                    body="Congrats! You've unlocked Free Delivery for your next order.",
                    link="/account/notifications",
                    kind="reward",
                )

        return summary

    @staticmethod
    def issue_free_delivery_voucher(order: Order) -> Voucher | None:
        if Voucher.objects.filter(source_order=order, source=VoucherSource.FREE_DELIVERY_REWARD.value).exists():
            return None
        return VoucherLedgerService.create_voucher(
            discount_type=DiscountType.FIXED.value,
            discount_value=free_delivery_voucher_value(),
            name="Reward: Free Delivery (Next Order)",
            description="Free delivery on next order if you shop above ₦50,000",
            user=order.user,
            max_uses=1,
            valid_to=timezone.now() + timedelta(days=free_delivery_voucher_days()),
            source=VoucherSource.FREE_DELIVERY_REWARD.value,
            source_order=order,
            code_prefix=FREE_DELIVERY_CODE_PREFIX,
        )

    @classmethod
    def retract_order_bonuses(cls, order: Order) -> RetractionSummary:
        """Undo every bonus ``order`` earned. Each part is independently fail-soft."""
        summary = RetractionSummary()

        summary.loyalty = run_best_effort("loyalty_retraction", LoyaltyService.retract_for_order, order)

        reversal = run_best_effort(
            "cashback_reversal",
            WalletService.reverse,
            cls.cashback_reference(order),
            cls.reversal_reference(order),
            f"Cashback Retraction for cancelled order {order.reference}",
        )
        if reversal is not None:
            summary.cashback_reversed = -reversal.amount

        deactivated = run_best_effort("reward_voucher_deactivation", cls._deactivate_unused_reward_vouchers, order)
        summary.vouchers_deactivated = deactivated or 0

        logger.info(
            f"↩️ [Rewards] Retracted bonuses for order {order.reference}: "
            f"loyalty={summary.loyalty.tier_label if summary.loyalty else None}, "
            f"cashback={summary.cashback_reversed}, vouchers={summary.vouchers_deactivated}"
        )
        return summary

    @staticmethod
    def _deactivate_unused_reward_vouchers(order: Order) -> int:
        return Voucher.objects.filter(
            source_order=order,
            source=VoucherSource.FREE_DELIVERY_REWARD.value,
            used_count=0,
            is_active=True,
        ).update(is_active=False, updated_at=timezone.now())
