"""
Order API Views for the settlement ledger
DRF views for order placement and admin order management.
"""

import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import UserRateThrottle

from apps.api.responses import error_response, invalid_input_response
from apps.common.request_ip import get_safe_client_ip
from apps.orders.services import (
    OrderQueryService,
    OrderSettlementService,
    OrderStatusService,
    PlaceOrderData,
)

from .serializers import (
    OrderDetailSerializer,
    OrderStatusUpdateSerializer,
    PaymentStatusUpdateSerializer,
    PlaceOrderInputSerializer,
)

logger = logging.getLogger(__name__)


class OrderCreateThrottle(UserRateThrottle):
    """Throttling for order placement"""
    scope = "order_create"


class OrderAdminThrottle(UserRateThrottle):
    """Throttling for admin order endpoints"""
    scope = "order_admin"


def _caller(request: Request):
    return request.user if request.user.is_authenticated else None


@api_view(["POST"])
@permission_classes([AllowAny])
@throttle_classes([OrderCreateThrottle])
def place_order(request: Request) -> Response:
    """
    Place an order for the signed-in user or a guest.
    A voucher that cannot be redeemed does not fail the order: see voucherApplied.
    """
    serializer = PlaceOrderInputSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input_response(serializer.errors)

    data = serializer.validated_data
    result = OrderSettlementService.place_order(
        PlaceOrderData(
            user=_caller(request),
            items=[dict(item) for item in data["items"]],
            shipping_address=data["shipping_address"],
            total_amount=data["total_amount"],
            delivery_fee=data["delivery_fee"],
            voucher_id=data.get("voucher_id"),
            payment_method=data["payment_method"],
            note=data.get("note", ""),
        )
    )
    if result.is_err():
        logger.warning(f"⚠️ [API] Order placement failed from {get_safe_client_ip(request)}: {result.error.code}")
        return error_response(result.error)

    outcome = result.unwrap()
    return Response(
        {
            "success": True,
            "orderId": str(outcome.order_id),
            "reference": outcome.reference,
            "voucherApplied": outcome.voucher_applied,
            "tier": outcome.tier_label,
        },
        status=status.HTTP_201_CREATED,
    )


@api_view(["GET"])
@permission_classes([AllowAny])
@throttle_classes([OrderAdminThrottle])
def order_detail(request: Request, order_id) -> Response:
    """Admin order detail with items and status history"""
    result = OrderQueryService.get_order_details(order_id, _caller(request))
    if result.is_err():
        return error_response(result.error)
    return Response({"success": True, "order": OrderDetailSerializer(result.unwrap()).data})


@api_view(["POST"])
@permission_classes([AllowAny])
@throttle_classes([OrderAdminThrottle])
def update_order_status(request: Request, order_id) -> Response:
    serializer = OrderStatusUpdateSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input_response(serializer.errors)

    result = OrderStatusService.update_order_status(
        order_id,
        serializer.validated_data["status"],
        _caller(request),
        notes=serializer.validated_data["notes"],
    )
    if result.is_err():
        logger.warning(
            f"⚠️ [API] Status update on {order_id} rejected ({result.error.code}) from {get_safe_client_ip(request)}"
        )
        return error_response(result.error)
    return Response({"success": True})


@api_view(["POST"])
@permission_classes([AllowAny])
@throttle_classes([OrderAdminThrottle])
def update_payment_status(request: Request, order_id) -> Response:
    serializer = PaymentStatusUpdateSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input_response(serializer.errors)

    result = OrderStatusService.update_payment_status(
        order_id,
        serializer.validated_data["payment_status"],
        _caller(request),
    )
    if result.is_err():
        return error_response(result.error)
    return Response({"success": True})
