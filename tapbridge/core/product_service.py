"""Product catalog of a connected account."""

from typing import Any, List

from tapbridge import schemas
from tapbridge.integrations.stripe_client import StripeClient, get_field

PRODUCT_LIST_LIMIT = 100


def _sellable(product: Any) -> bool:
    """Keep products whose default price is one-time.

    A price that was not expanded is only an id; it is kept and checked when the
    cart is turned into an invoice.
    """
    price = get_field(product, "default_price")
    if not price:
        return False
    if isinstance(price, str):
        return True
    return get_field(price, "type") == "one_time"


def to_product(product: Any) -> schemas.Product:
    """Shape a Stripe product for the point-of-sale catalog."""
    price = get_field(product, "default_price")
    images = get_field(product, "images") or []

    if isinstance(price, str):
        price_id, unit_amount, currency = price, 0, "usd"
    else:
        price_id = get_field(price, "id")
        unit_amount = get_field(price, "unit_amount") or 0
        currency = get_field(price, "currency") or "usd"

    return schemas.Product(
        id=get_field(product, "id"),
        name=get_field(product, "name") or "",
        description=get_field(product, "description"),
        price=unit_amount,
        currency=currency,
        price_id=price_id,
        image=images[0] if images else "",
    )


class ProductService:
    """Service listing the products sellable through the reader."""

    def __init__(self, stripe_client: StripeClient):
        """Initialize the service with the shared Stripe client."""
        self.stripe = stripe_client

    async def list_products(self, account_id: str) -> List[schemas.Product]:
        """List products that have a one-time default price."""
        products = await self.stripe.list_products(account_id, limit=PRODUCT_LIST_LIMIT)
        return [to_product(product) for product in products if _sellable(product)]
