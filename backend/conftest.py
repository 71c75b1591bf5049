"""
Root conftest.py for all backend tests.

This file makes fixtures available to all test files across all apps.
"""
import pytest


# ============================================================================
# AUTO-USE FIXTURES (Run automatically for every test)
# ============================================================================

@pytest.fixture(autouse=True)
def gateway_settings(settings):
    """
    Keep every test away from real gateway credentials.

    Individual tests override these through the ``settings`` fixture when
    they need a specific value.
    """
    settings.STRIPE_SECRET_KEY = 'sk_test_dummy'
    settings.STRIPE_WEBHOOK_SECRET = 'whsec_test_dummy'
    settings.PAYMOB_HMAC_SECRET = 'hmac_test_secret'
    settings.QR_CODE_HMAC_SECRET = 'qr_test_secret'
    settings.FRONTEND_URL = 'http://frontend.test'
    settings.BACKEND_BASE_URL = 'http://backend.test'
    yield


# ============================================================================
# IMPORT ALL FIXTURES FROM core_backend/tests/fixtures.py
# ============================================================================
from core_backend.tests.fixtures import *  # noqa: E402,F401,F403
