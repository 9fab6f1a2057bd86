"""Product catalog schemas."""

from typing import Optional

from tapbridge.schemas.response import CamelModel


class Product(CamelModel):
    """A product sellable through the reader (one-time price only)."""

    id: str
    name: str
    description: Optional[str] = None
    price: int = 0
    currency: str = "usd"
    price_id: str
    image: str = ""
