"""Unit tests for payment intent creation, direct and invoice based."""

from decimal import Decimal
from unittest.mock import call

import pytest
import stripe
from pydantic import ValidationError

from tapbridge import schemas
from tapbridge.core.exceptions import (
    ErrorKind,
    ExternalServiceError,
    InvoiceConstructionError,
    TapbridgeException,
)
from tapbridge.core.intent_service import IntentService, build_payment_metadata, to_minor_units
from tests.fixtures.common import TEST_ACCOUNT_ID, stripe_object

USER_ID = "3f1c2a4e-0000-4000-8000-000000000001"


def one_time(price_id, unit_amount):
    return {"id": price_id, "type": "one_time", "unit_amount": unit_amount}


@pytest.fixture
def prices():
    return {
        "price_coffee": one_time("price_coffee", 450),
        "price_bagel": one_time("price_bagel", 300),
        "price_sub": {"id": "price_sub", "type": "recurring", "unit_amount": 999},
    }


@pytest.fixture
def invoice_stripe(mock_stripe, prices):
    """A Stripe double that builds an invoice from the items created on it."""
    created_items = []

    async def retrieve_price(account_id, price_id):
        if price_id not in prices:
            raise ExternalServiceError("Stripe", f"No such price: '{price_id}'")
        return prices[price_id]

    async def create_invoice_item(account_id, **kwargs):
        item_id = f"ii_{len(created_items) + 1}"
        if kwargs.get("price_id"):
            amount = prices[kwargs["price_id"]]["unit_amount"] * kwargs["quantity"]
        else:
            amount = kwargs["amount"]
        created_items.append({"id": item_id, "amount": amount})
        return {"id": item_id}

    async def finalize_invoice(account_id, invoice_id):
        return {
            "id": invoice_id,
            "currency": "usd",
            "total": sum(item["amount"] for item in created_items),
            "lines": {"data": list(created_items)},
        }

    mock_stripe.find_customer_by_email.return_value = None
    mock_stripe.create_customer.return_value = "cus_new"
    mock_stripe.create_invoice.return_value = {"id": "in_1", "currency": "usd"}
    mock_stripe.retrieve_price.side_effect = retrieve_price
    mock_stripe.create_invoice_item.side_effect = create_invoice_item
    mock_stripe.finalize_invoice.side_effect = finalize_invoice
    mock_stripe.create_payment_intent.return_value = {
        "id": "pi_1",
        "client_secret": "pi_1_secret_abc",
    }
    return mock_stripe


def cart(*items, **kwargs):
    return schemas.CreateIntentFromProductsRequest(
        cart_items=[schemas.CartItem(price_id=p, quantity=q) for p, q in items], **kwargs
    )


class TestMetadata:
    """Payment metadata construction."""

    def test_always_carries_user_id(self):
        assert build_payment_metadata(USER_ID) == {"userId": USER_ID}

    def test_customer_fields_and_tip(self):
        customer = schemas.CustomerDetails(
            email="ada@example.com", name="Ada", phone="+15550100", zip="94110"
        )
        metadata = build_payment_metadata(
            USER_ID,
            {"invoiceId": "in_1"},
            customer,
            tip_amount=200,
            tipping_method=schemas.TippingMethod.ON_READER,
        )
        assert metadata == {
            "invoiceId": "in_1",
            "userId": USER_ID,
            "customerEmail": "ada@example.com",
            "customerName": "Ada",
            "customerPhone": "+15550100",
            "customerZip": "94110",
            "tipAmount": "200",
            "tippingMethod": "on_reader",
        }

    def test_user_id_cannot_be_overridden(self):
        assert build_payment_metadata(USER_ID, {"userId": "someone-else"})["userId"] == USER_ID


@pytest.mark.parametrize(
    "amount, expected", [("10", 1000), ("10.5", 1050), ("0.015", 2), ("19.99", 1999)]
)
def test_to_minor_units(amount, expected):
    assert to_minor_units(Decimal(amount)) == expected


@pytest.mark.asyncio
async def test_direct_intent(mock_stripe):
    """A plain amount is converted to cents and sent with the card-present constraints."""
    mock_stripe.create_payment_intent.return_value = {"id": "pi_9", "client_secret": "sec"}
    request = schemas.CreatePaymentIntentRequest(
        amount=Decimal("12.34"), customer_details={"email": "ada@example.com"}
    )

    result = await IntentService(mock_stripe).create_direct_intent(
        TEST_ACCOUNT_ID, USER_ID, request
    )

    assert result.client_secret == "sec"
    assert result.payment_intent_id == "pi_9"
    kwargs = mock_stripe.create_payment_intent.call_args.kwargs
    assert kwargs["amount"] == 1234
    assert kwargs["currency"] == "usd"
    assert kwargs["application_fee_amount"] == 5
    assert kwargs["receipt_email"] == "ada@example.com"
    assert kwargs["metadata"]["userId"] == USER_ID


@pytest.mark.asyncio
async def test_direct_intent_without_client_secret(mock_stripe):
    mock_stripe.create_payment_intent.return_value = {"id": "pi_9", "client_secret": None}
    request = schemas.CreatePaymentIntentRequest(amount=Decimal("1"))

    with pytest.raises(TapbridgeException, match="missing client secret"):
        await IntentService(mock_stripe).create_direct_intent(TEST_ACCOUNT_ID, USER_ID, request)


@pytest.mark.asyncio
async def test_cart_with_tip_charges_invoice_total(invoice_stripe):
    """Two items plus a $2.00 tip: the intent amount is exactly the invoice total."""
    request = cart(("price_coffee", 2), ("price_bagel", 1), tip_amount=200)

    result = await IntentService(invoice_stripe).create_intent_from_products(
        TEST_ACCOUNT_ID, USER_ID, request
    )

    assert result.invoice_id == "in_1"
    assert result.payment_intent_id == "pi_1"
    intent_kwargs = invoice_stripe.create_payment_intent.call_args.kwargs
    assert intent_kwargs["amount"] == 450 * 2 + 300 + 200
    assert intent_kwargs["currency"] == "usd"
    assert intent_kwargs["customer_id"] is None
    assert intent_kwargs["metadata"]["invoiceId"] == "in_1"
    assert intent_kwargs["metadata"]["paymentType"] == "products"
    assert intent_kwargs["metadata"]["tipAmount"] == "200"

    tip_call = invoice_stripe.create_invoice_item.call_args_list[-1]
    assert tip_call.kwargs["amount"] == 200
    assert tip_call.kwargs["description"] == "Tip"
    invoice_stripe.attach_payment_to_invoice.assert_awaited_once_with(
        TEST_ACCOUNT_ID, "in_1", "pi_1"
    )


@pytest.mark.asyncio
async def test_line_items_created_in_cart_order(invoice_stripe):
    request = cart(("price_bagel", 3), ("price_coffee", 1))

    await IntentService(invoice_stripe).create_intent_from_products(
        TEST_ACCOUNT_ID, USER_ID, request
    )

    price_ids = [c.kwargs["price_id"] for c in invoice_stripe.create_invoice_item.call_args_list]
    assert price_ids == ["price_bagel", "price_coffee"]
    assert invoice_stripe.create_invoice_item.call_args_list[0].kwargs["quantity"] == 3


@pytest.mark.asyncio
async def test_failure_rolls_back_earlier_items(invoice_stripe):
    """An unknown third price deletes the first two items, in creation order."""
    request = cart(("price_coffee", 1), ("price_bagel", 1), ("price_missing", 1))

    with pytest.raises(InvoiceConstructionError) as exc_info:
        await IntentService(invoice_stripe).create_intent_from_products(
            TEST_ACCOUNT_ID, USER_ID, request
        )

    assert exc_info.value.message.startswith("Invalid priceId: price_missing.")
    assert exc_info.value.kind == ErrorKind.INTERNAL
    assert invoice_stripe.delete_invoice_item.call_args_list == [
        call(TEST_ACCOUNT_ID, "ii_1"),
        call(TEST_ACCOUNT_ID, "ii_2"),
    ]
    invoice_stripe.finalize_invoice.assert_not_called()
    invoice_stripe.create_payment_intent.assert_not_called()


@pytest.mark.asyncio
async def test_recurring_price_rejected_without_creating_its_item(invoice_stripe):
    request = cart(("price_coffee", 1), ("price_sub", 1))

    with pytest.raises(InvoiceConstructionError, match="price_sub is a recurring price"):
        await IntentService(invoice_stripe).create_intent_from_products(
            TEST_ACCOUNT_ID, USER_ID, request
        )

    assert invoice_stripe.create_invoice_item.await_count == 1
    invoice_stripe.delete_invoice_item.assert_awaited_once_with(TEST_ACCOUNT_ID, "ii_1")
    invoice_stripe.create_payment_intent.assert_not_called()


@pytest.mark.asyncio
async def test_failed_delete_does_not_mask_original_error(invoice_stripe):
    invoice_stripe.delete_invoice_item.side_effect = ExternalServiceError("Stripe", "gone")
    request = cart(("price_coffee", 1), ("price_bagel", 1), ("price_sub", 1))

    with pytest.raises(InvoiceConstructionError, match="recurring price"):
        await IntentService(invoice_stripe).create_intent_from_products(
            TEST_ACCOUNT_ID, USER_ID, request
        )

    assert invoice_stripe.delete_invoice_item.await_count == 2


@pytest.mark.asyncio
async def test_first_item_failure_deletes_nothing(invoice_stripe):
    request = cart(("price_sub", 1))

    with pytest.raises(InvoiceConstructionError):
        await IntentService(invoice_stripe).create_intent_from_products(
            TEST_ACCOUNT_ID, USER_ID, request
        )

    invoice_stripe.delete_invoice_item.assert_not_called()


@pytest.mark.asyncio
async def test_empty_finalized_invoice(invoice_stripe):
    invoice_stripe.finalize_invoice.side_effect = None
    invoice_stripe.finalize_invoice.return_value = {
        "id": "in_1",
        "total": 0,
        "lines": {"data": []},
    }

    with pytest.raises(InvoiceConstructionError, match="not attached to invoice"):
        await IntentService(invoice_stripe).create_intent_from_products(
            TEST_ACCOUNT_ID, USER_ID, cart(("price_coffee", 1))
        )
    invoice_stripe.create_payment_intent.assert_not_called()


@pytest.mark.asyncio
async def test_zero_total_invoice(invoice_stripe):
    invoice_stripe.finalize_invoice.side_effect = None
    invoice_stripe.finalize_invoice.return_value = {
        "id": "in_1",
        "total": 0,
        "lines": {"data": [{"id": "il_1"}]},
    }

    with pytest.raises(InvoiceConstructionError, match="Invoice total is zero"):
        await IntentService(invoice_stripe).create_intent_from_products(
            TEST_ACCOUNT_ID, USER_ID, cart(("price_coffee", 1))
        )


@pytest.mark.asyncio
async def test_attach_failure_is_tolerated(invoice_stripe):
    invoice_stripe.attach_payment_to_invoice.side_effect = ExternalServiceError(
        "Stripe", "Invoice already paid"
    )

    result = await IntentService(invoice_stripe).create_intent_from_products(
        TEST_ACCOUNT_ID, USER_ID, cart(("price_coffee", 1))
    )

    assert result.client_secret == "pi_1_secret_abc"


@pytest.mark.asyncio
async def test_existing_customer_is_reused(invoice_stripe):
    invoice_stripe.find_customer_by_email.return_value = "cus_existing"
    request = cart(("price_coffee", 1), customer_details={"email": "ada@example.com"})

    await IntentService(invoice_stripe).create_intent_from_products(
        TEST_ACCOUNT_ID, USER_ID, request
    )

    invoice_stripe.create_customer.assert_not_called()
    assert invoice_stripe.create_invoice.call_args.kwargs["customer_id"] == "cus_existing"
    assert invoice_stripe.create_payment_intent.call_args.kwargs["customer_id"] == "cus_existing"


@pytest.mark.asyncio
async def test_new_customer_carries_user_id(invoice_stripe):
    request = cart(
        ("price_coffee", 1),
        customer_details={"email": "ada@example.com", "name": "Ada", "zip": "94110"},
    )

    await IntentService(invoice_stripe).create_intent_from_products(
        TEST_ACCOUNT_ID, USER_ID, request
    )

    invoice_stripe.create_customer.assert_awaited_once_with(
        TEST_ACCOUNT_ID,
        email="ada@example.com",
        name="Ada",
        phone=None,
        postal_code="94110",
        metadata={"userId": USER_ID},
    )


@pytest.mark.asyncio
async def test_no_email_means_no_customer(invoice_stripe):
    await IntentService(invoice_stripe).create_intent_from_products(
        TEST_ACCOUNT_ID, USER_ID, cart(("price_coffee", 1))
    )

    invoice_stripe.find_customer_by_email.assert_not_called()
    invoice_stripe.create_customer.assert_not_called()
    assert invoice_stripe.create_invoice.call_args.kwargs["customer_id"] is None


@pytest.mark.asyncio
async def test_tip_failure_rolls_back_cart_items(invoice_stripe):
    """A failing tip item deletes the cart items already on the invoice."""
    create_item = invoice_stripe.create_invoice_item.side_effect

    async def fail_on_tip(account_id, **kwargs):
        if kwargs.get("description") == "Tip":
            raise ExternalServiceError("Stripe", "Amount must be positive")
        return await create_item(account_id, **kwargs)

    invoice_stripe.create_invoice_item.side_effect = fail_on_tip
    request = cart(("price_coffee", 1), ("price_bagel", 1), tip_amount=200)

    with pytest.raises(InvoiceConstructionError, match="Failed to add tip"):
        await IntentService(invoice_stripe).create_intent_from_products(
            TEST_ACCOUNT_ID, USER_ID, request
        )

    assert invoice_stripe.delete_invoice_item.call_args_list == [
        call(TEST_ACCOUNT_ID, "ii_1"),
        call(TEST_ACCOUNT_ID, "ii_2"),
    ]
    invoice_stripe.finalize_invoice.assert_not_called()
    invoice_stripe.create_payment_intent.assert_not_called()


@pytest.mark.asyncio
async def test_sdk_objects_from_stripe(mock_stripe):
    """Responses shaped as SDK objects, not dicts, go through the whole cart flow."""
    mock_stripe.create_invoice.return_value = stripe_object(
        stripe.Invoice, {"id": "in_1", "object": "invoice", "currency": "usd"}
    )
    mock_stripe.retrieve_price.return_value = stripe_object(
        stripe.Price, {"id": "price_coffee", "object": "price", "type": "one_time"}
    )
    mock_stripe.create_invoice_item.side_effect = [
        stripe_object(stripe.InvoiceItem, {"id": "ii_1", "object": "invoiceitem"}),
        stripe_object(stripe.InvoiceItem, {"id": "ii_tip", "object": "invoiceitem"}),
    ]
    mock_stripe.finalize_invoice.return_value = stripe_object(
        stripe.Invoice,
        {
            "id": "in_1",
            "object": "invoice",
            "currency": "usd",
            "total": 1100,
            "lines": {
                "object": "list",
                "data": [
                    {"id": "il_1", "object": "line_item"},
                    {"id": "il_2", "object": "line_item"},
                ],
                "has_more": False,
            },
        },
    )
    mock_stripe.create_payment_intent.return_value = stripe_object(
        stripe.PaymentIntent,
        {"id": "pi_1", "object": "payment_intent", "client_secret": "pi_1_secret"},
    )

    result = await IntentService(mock_stripe).create_intent_from_products(
        TEST_ACCOUNT_ID, USER_ID, cart(("price_coffee", 2), tip_amount=200)
    )

    assert result.client_secret == "pi_1_secret"
    assert result.invoice_id == "in_1"
    assert mock_stripe.create_payment_intent.call_args.kwargs["amount"] == 1100
    mock_stripe.attach_payment_to_invoice.assert_awaited_once_with(TEST_ACCOUNT_ID, "in_1", "pi_1")


@pytest.mark.asyncio
async def test_recurring_sdk_price_rolls_back(mock_stripe):
    mock_stripe.create_invoice.return_value = stripe_object(
        stripe.Invoice, {"id": "in_1", "object": "invoice"}
    )
    mock_stripe.retrieve_price.side_effect = [
        stripe_object(stripe.Price, {"id": "price_coffee", "object": "price", "type": "one_time"}),
        stripe_object(stripe.Price, {"id": "price_sub", "object": "price", "type": "recurring"}),
    ]
    mock_stripe.create_invoice_item.return_value = stripe_object(
        stripe.InvoiceItem, {"id": "ii_1", "object": "invoiceitem"}
    )

    with pytest.raises(InvoiceConstructionError, match="price_sub is a recurring price"):
        await IntentService(mock_stripe).create_intent_from_products(
            TEST_ACCOUNT_ID, USER_ID, cart(("price_coffee", 1), ("price_sub", 1))
        )

    mock_stripe.delete_invoice_item.assert_awaited_once_with(TEST_ACCOUNT_ID, "ii_1")


@pytest.mark.asyncio
async def test_direct_intent_amount_already_includes_tip(mock_stripe):
    mock_stripe.create_payment_intent.return_value = stripe_object(
        stripe.PaymentIntent, {"id": "pi_9", "object": "payment_intent", "client_secret": "sec"}
    )
    request = schemas.CreatePaymentIntentRequest(
        amount=Decimal("12.00"), tip_amount=200, tipping_method="on_screen"
    )

    result = await IntentService(mock_stripe).create_direct_intent(
        TEST_ACCOUNT_ID, USER_ID, request
    )

    kwargs = mock_stripe.create_payment_intent.call_args.kwargs
    assert kwargs["amount"] == 1200
    assert kwargs["metadata"]["tipAmount"] == "200"
    assert kwargs["metadata"]["tippingMethod"] == "on_screen"
    assert result.payment_intent_id == "pi_9"


def test_direct_intent_tip_cannot_exceed_amount():
    with pytest.raises(ValidationError, match="cannot exceed"):
        schemas.CreatePaymentIntentRequest(amount=Decimal("1.50"), tip_amount=151)
