"""
Order API Serializers for the settlement ledger
Input validation for order placement and admin updates, and the admin order detail payload.
"""

from decimal import Decimal

from rest_framework import serializers

from apps.orders.models import Order, OrderItem, OrderStatusHistory, PaymentMethod


class OrderItemInputSerializer(serializers.Serializer):
    """One cart line; exactly one catalog reference"""

    productId = serializers.CharField(source="product_id", required=False, allow_blank=True, allow_null=True)
    bundleId = serializers.CharField(source="bundle_id", required=False, allow_blank=True, allow_null=True)
    offerId = serializers.CharField(source="offer_id", required=False, allow_blank=True, allow_null=True)
    quantity = serializers.IntegerField(min_value=1)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0"))
    title = serializers.CharField(required=False, allow_blank=True, default="")
    option = serializers.JSONField(required=False, default=dict)

    def validate(self, attrs):
        refs = [name for name in ("product_id", "bundle_id", "offer_id") if attrs.get(name)]
        if len(refs) != 1:
            raise serializers.ValidationError("Each item must reference exactly one product, bundle or offer")
        return attrs


class PlaceOrderInputSerializer(serializers.Serializer):
    items = OrderItemInputSerializer(many=True, allow_empty=False)
    shippingAddress = serializers.JSONField(source="shipping_address")
    totalAmount = serializers.DecimalField(source="total_amount", max_digits=12, decimal_places=2, min_value=Decimal("0"))
    deliveryFee = serializers.DecimalField(
        source="delivery_fee", max_digits=12, decimal_places=2, min_value=Decimal("0"), default=Decimal("0")
    )
    voucherId = serializers.UUIDField(source="voucher_id", required=False, allow_null=True)
    paymentMethod = serializers.ChoiceField(
        source="payment_method", choices=PaymentMethod.choices, default=PaymentMethod.PAYSTACK
    )
    note = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_shippingAddress(self, value):
        if not isinstance(value, dict) or not value:
            raise serializers.ValidationError("Shipping address is required")
        return value


class OrderStatusUpdateSerializer(serializers.Serializer):
    # Checked against the status table by the service, after authorization
    status = serializers.CharField(max_length=50)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class PaymentStatusUpdateSerializer(serializers.Serializer):
    paymentStatus = serializers.CharField(source="payment_status", max_length=50)


class OrderItemSerializer(serializers.ModelSerializer):
    optionName = serializers.CharField(source="option_name", read_only=True)
    lineTotal = serializers.DecimalField(source="line_total", max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = OrderItem
        fields = ["id", "product_id", "bundle_id", "offer_id", "title", "quantity", "price", "optionName", "lineTotal"]


class OrderStatusHistorySerializer(serializers.ModelSerializer):
    changed_by = serializers.EmailField(source="changed_by.email", read_only=True, default=None)

    class Meta:
        model = OrderStatusHistory
        fields = ["old_status", "new_status", "changed_by", "notes", "created_at"]


class OrderDetailSerializer(serializers.ModelSerializer):
    """Admin order detail with items and status history"""

    items = OrderItemSerializer(many=True, read_only=True)
    status_history = OrderStatusHistorySerializer(many=True, read_only=True)
    user_email = serializers.EmailField(source="user.email", read_only=True, default=None)
    voucher_code = serializers.CharField(source="voucher.code", read_only=True, default=None)

    class Meta:
        model = Order
        fields = [
            "id", "reference", "user_email", "status", "payment_status", "payment_method",
            "total_amount", "delivery_fee", "voucher_code", "shipping_address", "note",
            "is_first_order", "items", "status_history", "created_at", "updated_at",
        ]
