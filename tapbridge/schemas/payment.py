"""Payment intent and refund schemas."""

from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from pydantic import AliasChoices, Field, model_validator

from tapbridge.schemas.response import CamelModel


class CustomerDetails(CamelModel):
    """Optional customer information collected at the point of sale."""

    email: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    postal_code: Optional[str] = Field(
        None, validation_alias=AliasChoices("zip", "postalCode", "postal_code")
    )


class TippingMethod(str, Enum):
    """How the tip was collected."""

    ON_READER = "on_reader"
    ON_SCREEN = "on_screen"
    CUSTOM = "custom"


class CreatePaymentIntentRequest(CamelModel):
    """Direct-amount payment intent, no line items.

    ``amount`` is the full charge, tip included. ``tip_amount`` only records which part
    of it is the tip, so statistics can report tips separately; it is never added on top.
    """

    amount: Decimal = Field(..., gt=0, description="Charge in major currency units, tip included")
    currency: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)
    customer_details: CustomerDetails = Field(default_factory=CustomerDetails)
    tip_amount: Optional[int] = Field(
        None, ge=0, description="Part of the amount that is tip, in minor units"
    )
    tipping_method: Optional[TippingMethod] = None

    @model_validator(mode="after")
    def check_tip_within_amount(self) -> "CreatePaymentIntentRequest":
        """Reject a tip larger than the charge it is part of."""
        if self.tip_amount and self.tip_amount > self.amount * 100:
            raise ValueError("tipAmount cannot exceed the amount it is part of")
        return self


class CartItem(CamelModel):
    """One priced line of the cart."""

    price_id: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)


class CreateIntentFromProductsRequest(CamelModel):
    """Invoice-backed payment intent built from cart items."""

    cart_items: List[CartItem] = Field(..., min_length=1)
    customer_details: CustomerDetails = Field(default_factory=CustomerDetails)
    tip_amount: Optional[int] = Field(None, ge=0, description="Tip in minor units")
    tipping_method: Optional[TippingMethod] = None


class PaymentIntentResponse(CamelModel):
    """Client secret handed to the Terminal SDK."""

    client_secret: str
    payment_intent_id: str


class ProductPaymentIntentResponse(PaymentIntentResponse):
    """Payment intent plus the invoice that itemizes it."""

    invoice_id: str


class RefundReason(str, Enum):
    """Reasons Stripe accepts for a refund."""

    DUPLICATE = "duplicate"
    FRAUDULENT = "fraudulent"
    REQUESTED_BY_CUSTOMER = "requested_by_customer"


class RefundRequest(CamelModel):
    """Refund the remaining balance of a charge."""

    charge_id: str = Field(..., min_length=1)
    reason: Optional[RefundReason] = None


class RefundResponse(CamelModel):
    """Summary of an issued refund."""

    id: str
    amount: int
    currency: str
    status: Optional[str] = None
    charge_id: str
    created: int
    reason: Optional[RefundReason] = None
