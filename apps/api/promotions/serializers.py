"""
Promotion API Serializers for the settlement ledger
"""

from decimal import Decimal

from rest_framework import serializers


class VoucherValidateInputSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=50)
    orderTotal = serializers.DecimalField(
        source="order_total", max_digits=12, decimal_places=2, min_value=Decimal("0")
    )


class ReferralLinkInputSerializer(serializers.Serializer):
    referrerEmail = serializers.EmailField(source="referrer_email")
