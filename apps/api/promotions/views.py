"""
Promotion API Views for the settlement ledger
Voucher checkout validation and referral linking.
"""

import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import UserRateThrottle

from apps.api.responses import error_response, invalid_input_response
from apps.common.request_ip import get_safe_client_ip
from apps.promotions.services import ReferralService, VoucherLedgerService

from .serializers import ReferralLinkInputSerializer, VoucherValidateInputSerializer

logger = logging.getLogger(__name__)


class VoucherValidateThrottle(UserRateThrottle):
    """Throttling for voucher code guessing"""
    scope = "voucher_validate"


@api_view(["POST"])
@permission_classes([AllowAny])
@throttle_classes([VoucherValidateThrottle])
def validate_voucher(request: Request) -> Response:
    """Preview a voucher against a cart total without redeeming it"""
    serializer = VoucherValidateInputSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input_response(serializer.errors)

    user = request.user if request.user.is_authenticated else None
    result = VoucherLedgerService.validate_for_checkout(
        serializer.validated_data["code"],
        user,
        serializer.validated_data["order_total"],
    )
    if result.is_err():
        logger.info(f"🎟️ [API] Voucher rejected ({result.error.code}) for {get_safe_client_ip(request)}")
        return error_response(result.error)

    quote = result.unwrap()
    return Response({
        "success": True,
        "voucherId": str(quote.voucher_id),
        "code": quote.code,
        "discountType": quote.discount_type,
        "discountValue": quote.discount_value,
        "discountAmount": quote.discount_amount,
        "remainingUses": quote.remaining_uses,
    })


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def link_referral(request: Request) -> Response:
    """Attach the signed-in user to a referrer and issue their signup discount"""
    serializer = ReferralLinkInputSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input_response(serializer.errors)

    result = ReferralService.link_referral(serializer.validated_data["referrer_email"], request.user)
    if result.is_err():
        return error_response(result.error)

    referral = result.unwrap()
    return Response(
        {
            "success": True,
            "referralId": str(referral.pk),
            "discountCode": referral.discount_voucher.code if referral.discount_voucher else None,
        },
        status=status.HTTP_201_CREATED,
    )
