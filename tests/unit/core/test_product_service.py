"""Unit tests for the product catalog."""

import pytest
import stripe

from tapbridge.core.product_service import ProductService, to_product
from tests.fixtures.common import TEST_ACCOUNT_ID, stripe_object


def product(product_id, default_price, **fields):
    return {"id": product_id, "name": product_id.title(), "default_price": default_price, **fields}


@pytest.mark.asyncio
async def test_only_one_time_prices_are_listed(mock_stripe):
    mock_stripe.list_products.return_value = [
        product("coffee", {"id": "price_1", "type": "one_time", "unit_amount": 450}),
        product("membership", {"id": "price_2", "type": "recurring", "unit_amount": 999}),
        product("unpriced", None),
        product("legacy", "price_3"),
    ]

    products = await ProductService(mock_stripe).list_products(TEST_ACCOUNT_ID)

    assert [p.id for p in products] == ["coffee", "legacy"]
    mock_stripe.list_products.assert_awaited_once_with(TEST_ACCOUNT_ID, limit=100)


def test_expanded_price():
    result = to_product(
        product(
            "coffee",
            {"id": "price_1", "type": "one_time", "unit_amount": 450, "currency": "eur"},
            description="Flat white",
            images=["https://img.example/coffee.png", "https://img.example/alt.png"],
        )
    )

    assert result.model_dump(by_alias=True) == {
        "id": "coffee",
        "name": "Coffee",
        "description": "Flat white",
        "price": 450,
        "currency": "eur",
        "priceId": "price_1",
        "image": "https://img.example/coffee.png",
    }


def test_unexpanded_price():
    result = to_product(product("legacy", "price_3"))

    assert result.price_id == "price_3"
    assert result.price == 0
    assert result.currency == "usd"
    assert result.image == ""


@pytest.mark.asyncio
async def test_sdk_products_with_expanded_prices(mock_stripe):
    mock_stripe.list_products.return_value = [
        stripe_object(
            stripe.Product,
            {
                "id": "coffee",
                "object": "product",
                "name": "Coffee",
                "images": [],
                "default_price": {
                    "id": "price_1",
                    "object": "price",
                    "type": "one_time",
                    "unit_amount": 450,
                    "currency": "usd",
                },
            },
        ),
        stripe_object(
            stripe.Product,
            {
                "id": "membership",
                "object": "product",
                "name": "Membership",
                "default_price": {"id": "price_2", "object": "price", "type": "recurring"},
            },
        ),
    ]

    products = await ProductService(mock_stripe).list_products(TEST_ACCOUNT_ID)

    assert [(p.id, p.price_id, p.price) for p in products] == [("coffee", "price_1", 450)]
