"""Common test fixtures and configuration for pytest.

Required settings get test values before any ``tapbridge`` module is imported, so
importing the application never needs a real environment.
"""

import os

os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_tapbridge")
os.environ.setdefault("JWT_SECRET", "test-secret-that-is-long-enough-for-hs256-signing")
os.environ.setdefault("STRIPE_CLIENT_ID", "ca_test_tapbridge")
os.environ.setdefault("LOCAL_DEVELOPMENT", "true")

# Import all fixtures so they are automatically available for all tests
from tests.fixtures.common import (  # noqa: E402, F401
    active_user_row,
    mock_ctx,
    mock_db,
    mock_stripe,
    mock_user,
)
