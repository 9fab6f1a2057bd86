"""Common test fixtures."""

import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
import stripe
from sqlalchemy.ext.asyncio import AsyncSession

from tapbridge import schemas
from tapbridge.api.context import ApiContext
from tapbridge.core.logging import logger
from tapbridge.integrations.stripe_client import StripeClient

TEST_ACCOUNT_ID = "acct_test_123"


def stripe_object(resource: type, values: dict) -> stripe.StripeObject:
    """Build an SDK object the way the Stripe client returns it, nested objects included."""
    return resource.construct_from(values, "sk_test_tapbridge")


@pytest.fixture
def mock_user():
    """Create a merchant with an active connected account."""
    return schemas.User(
        id=uuid.uuid4(),
        email="merchant@example.com",
        display_name="Corner Cafe",
        stripe_account_id=TEST_ACCOUNT_ID,
        stripe_account_status="active",
    )


@pytest.fixture
def active_user_row(mock_user):
    """A database row for the merchant, as returned by the CRUD layer."""
    return SimpleNamespace(**mock_user.model_dump())


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    return AsyncMock(spec=AsyncSession)


@pytest.fixture
def mock_stripe():
    """A Stripe client double; every API method is an AsyncMock."""
    return AsyncMock(spec=StripeClient)


@pytest.fixture
def mock_ctx(mock_user):
    """An authenticated API context."""
    return ApiContext(request_id="test-request", user=mock_user, logger=logger)
