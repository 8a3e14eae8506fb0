# ===============================================================================
# PYTEST CONFIGURATION FOR THE SETTLEMENT LEDGER
# ===============================================================================
"""
Global test configuration for the settlement ledger.

Test Structure:
- tests/ mirrors apps/ structure for app-specific tests
- tests/factories/ holds plain factory functions shared by all apps
- Naming convention: test_{app}_{feature}.py

Run specific app tests: pytest tests/promotions/
"""

import pytest


@pytest.fixture
def customer(db):
    """Create a regular storefront customer"""
    from tests.factories.ledger import create_customer  # noqa: PLC0415

    return create_customer()


@pytest.fixture
def admin_user(db):
    """Create a shop administrator"""
    from tests.factories.ledger import create_admin  # noqa: PLC0415

    return create_admin()


@pytest.fixture
def api_client():
    from rest_framework.test import APIClient  # noqa: PLC0415

    return APIClient()
