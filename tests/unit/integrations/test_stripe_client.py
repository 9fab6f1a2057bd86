"""Unit tests for the Stripe client wrapper."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
import stripe

from tapbridge.core.exceptions import ErrorKind, ExternalServiceError
from tapbridge.integrations.stripe_client import StripeClient, get_field, to_plain_dict

ACCOUNT_ID = "acct_test_123"


@pytest.fixture
def client():
    return StripeClient(api_key="sk_test_123", api_version="2025-03-31.basil")


def test_requires_api_key():
    with pytest.raises(ValueError):
        StripeClient(api_key="")


@pytest.mark.asyncio
async def test_list_charges_scopes_to_account(client):
    page = SimpleNamespace(data=[{"id": "ch_1"}, {"id": "ch_2"}], has_more=True)

    with patch.object(stripe.Charge, "list_async", AsyncMock(return_value=page)) as list_async:
        result = await client.list_charges(
            ACCOUNT_ID, gte=100, lte=200, limit=2, starting_after="ch_0"
        )

    list_async.assert_awaited_once_with(
        created={"gte": 100, "lte": 200},
        limit=2,
        starting_after="ch_0",
        api_key="sk_test_123",
        stripe_version="2025-03-31.basil",
        stripe_account=ACCOUNT_ID,
    )
    assert [charge["id"] for charge in result.items] == ["ch_1", "ch_2"]
    assert result.has_more is True


@pytest.mark.asyncio
async def test_first_page_sends_no_cursor(client):
    page = SimpleNamespace(data=[], has_more=False)

    with patch.object(stripe.Charge, "list_async", AsyncMock(return_value=page)) as list_async:
        await client.list_charges(ACCOUNT_ID, gte=100, lte=200)

    assert "starting_after" not in list_async.call_args.kwargs
    assert list_async.call_args.kwargs["limit"] == 100


@pytest.mark.asyncio
async def test_stripe_errors_are_wrapped(client):
    error = stripe.InvalidRequestError("No such charge: 'ch_missing'", param="id")

    with patch.object(stripe.Charge, "retrieve_async", AsyncMock(side_effect=error)):
        with pytest.raises(ExternalServiceError) as exc_info:
            await client.retrieve_charge(ACCOUNT_ID, "ch_missing")

    assert exc_info.value.service_name == "Stripe"
    assert exc_info.value.kind == ErrorKind.INTERNAL
    assert "No such charge" in exc_info.value.message


@pytest.mark.asyncio
async def test_invoice_item_from_price(client):
    with patch.object(
        stripe.InvoiceItem, "create_async", AsyncMock(return_value={"id": "ii_1"})
    ) as create_async:
        await client.create_invoice_item(
            ACCOUNT_ID,
            invoice_id="in_1",
            customer_id=None,
            metadata={"userId": "u1"},
            price_id="price_1",
            quantity=2,
        )

    kwargs = create_async.call_args.kwargs
    assert kwargs["pricing"] == {"price": "price_1"}
    assert kwargs["quantity"] == 2
    assert "customer" not in kwargs
    assert "amount" not in kwargs


@pytest.mark.asyncio
async def test_payment_intent_is_card_present(client):
    with patch.object(
        stripe.PaymentIntent, "create_async", AsyncMock(return_value={"id": "pi_1"})
    ) as create_async:
        await client.create_payment_intent(
            ACCOUNT_ID,
            amount=1500,
            currency="usd",
            metadata={"userId": "u1"},
            application_fee_amount=5,
            customer_id="cus_1",
        )

    kwargs = create_async.call_args.kwargs
    assert kwargs["payment_method_types"] == ["card_present"]
    assert kwargs["capture_method"] == "automatic"
    assert kwargs["customer"] == "cus_1"
    assert kwargs["stripe_account"] == ACCOUNT_ID
    assert "receipt_email" not in kwargs


@pytest.mark.asyncio
async def test_retrieve_account_is_platform_scoped(client):
    with patch.object(
        stripe.Account, "retrieve_async", AsyncMock(return_value={"id": ACCOUNT_ID})
    ) as retrieve_async:
        await client.retrieve_account(ACCOUNT_ID)

    assert "stripe_account" not in retrieve_async.call_args.kwargs


@pytest.mark.asyncio
async def test_find_customer_by_email(client):
    found = SimpleNamespace(data=[SimpleNamespace(id="cus_1")])
    empty = SimpleNamespace(data=[])

    with patch.object(stripe.Customer, "list_async", AsyncMock(side_effect=[found, empty])):
        assert await client.find_customer_by_email(ACCOUNT_ID, "a@example.com") == "cus_1"
        assert await client.find_customer_by_email(ACCOUNT_ID, "b@example.com") is None


class TestFieldAccess:
    """Reading response fields from SDK objects and plain dicts alike."""

    @pytest.fixture
    def location(self):
        return stripe.terminal.Location.construct_from(
            {
                "id": "tml_1",
                "object": "terminal.location",
                "display_name": None,
                "address": {"line1": "1 Market St", "country": "US"},
            },
            "sk_test_123",
        )

    def test_sdk_object(self, location):
        assert get_field(location, "id") == "tml_1"
        assert get_field(get_field(location, "address"), "country") == "US"

    def test_missing_and_null_fields_use_default(self, location):
        assert get_field(location, "configuration_overrides", "none") == "none"
        assert get_field(location, "display_name", "") == ""
        assert get_field(None, "id") is None

    def test_plain_dict(self):
        assert get_field({"id": "ch_1", "amount": None}, "amount", 0) == 0
        assert get_field({"id": "ch_1"}, "id") == "ch_1"

    def test_to_plain_dict(self, location):
        address = to_plain_dict(get_field(location, "address"))
        assert address == {"line1": "1 Market St", "country": "US"}
        assert type(address) is dict
        assert to_plain_dict(None) is None
        assert to_plain_dict({"tip": {"amount": 100}}) == {"tip": {"amount": 100}}
