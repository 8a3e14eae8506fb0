# ===============================================================================
# SETTLEMENT LEDGER API URLS 🚀
# ===============================================================================
#
# URL Structure:
#   /api/orders/     → Order placement and admin order management
#   /api/vouchers/   → Voucher checkout validation
#   /api/referrals/  → Referral linking
#

from django.urls import include, path

from .orders import urls as order_urls
from .promotions import urls as promotion_urls

app_name = "api"

urlpatterns = [
    path("orders/", include(order_urls)),
    path("", include(promotion_urls)),
]
