"""
Promotion API URLs for the settlement ledger
"""

from django.urls import path

from . import views

urlpatterns = [
    path("vouchers/validate/", views.validate_voucher, name="validate_voucher"),
    path("referrals/", views.link_referral, name="link_referral"),
]
