# ===============================================================================
# SETTLEMENT LEDGER API APP CONFIGURATION 🛠️
# ===============================================================================

from django.apps import AppConfig


class ApiConfig(AppConfig):
    """
    Thin JSON API over the settlement services:
    - Order placement, admin detail, status and payment-status updates
    - Voucher checkout validation
    - Referral linking
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.api"
    label = "ledger_api"
    verbose_name = "Settlement Ledger API"
