"""Stripe API client for connected-account operations.

This module provides a clean interface to the Stripe API, handling all direct
Stripe interactions without business logic. Every call except the OAuth exchange is
scoped to one connected account through the ``stripe_account`` request option.

The client never touches the process-wide ``stripe.api_key``: the secret key and API
version are held by the instance and sent with every request, so tests can inject a
double without patching module state.
"""

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import stripe

from tapbridge.core.exceptions import ExternalServiceError


def get_field(obj: Any, name: str, default: Any = None) -> Any:
    """Read a field from a Stripe object or a plain mapping.

    Services read every response field through here; a Stripe object is not a dict
    on current SDK releases. A missing or null field yields ``default``.
    """
    if obj is None:
        return default
    if isinstance(obj, Mapping):
        value = obj.get(name, default)
    else:
        value = getattr(obj, name, default)
    return default if value is None else value


def to_plain_dict(obj: Any) -> Optional[Dict[str, Any]]:
    """Convert a Stripe object (or mapping) to a plain, recursively converted dict."""
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return {key: _plain(value) for key, value in obj.items()}
    return obj.to_dict()


def _plain(value: Any) -> Any:
    if isinstance(value, Mapping) or hasattr(value, "to_dict"):
        return to_plain_dict(value)
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


@dataclass
class ChargePage:
    """One page of a cursor-paginated charge listing."""

    items: List[Any] = field(default_factory=list)
    has_more: bool = False


class StripeClient:
    """Client for Stripe API operations."""

    def __init__(self, api_key: str, api_version: Optional[str] = None):
        """Initialize the client.

        Args:
            api_key: The platform secret key.
            api_version: Optional pinned Stripe API version.
        """
        if not api_key:
            raise ValueError("A Stripe secret key is required")
        self._api_key = api_key
        self._api_version = api_version

    def _options(self, account_id: Optional[str] = None) -> Dict[str, Any]:
        """Request options sent with every call."""
        options: Dict[str, Any] = {"api_key": self._api_key}
        if self._api_version:
            options["stripe_version"] = self._api_version
        if account_id:
            options["stripe_account"] = account_id
        return options

    @staticmethod
    def _error(action: str, error: stripe.StripeError) -> ExternalServiceError:
        return ExternalServiceError(
            service_name="Stripe",
            message=getattr(error, "user_message", None) or str(error) or f"Error {action}",
        )

    # Charges

    async def list_charges(
        self,
        account_id: str,
        *,
        gte: int,
        lte: int,
        limit: int = 100,
        starting_after: Optional[str] = None,
    ) -> ChargePage:
        """List one page of charges created within [gte, lte] (unix seconds, inclusive)."""
        params: Dict[str, Any] = {"created": {"gte": gte, "lte": lte}, "limit": limit}
        if starting_after:
            params["starting_after"] = starting_after

        try:
            page = await stripe.Charge.list_async(**params, **self._options(account_id))
        except stripe.StripeError as e:
            raise self._error("listing charges", e) from e

        return ChargePage(items=list(page.data), has_more=bool(page.has_more))

    async def retrieve_charge(self, account_id: str, charge_id: str) -> stripe.Charge:
        """Retrieve a single charge."""
        try:
            return await stripe.Charge.retrieve_async(charge_id, **self._options(account_id))
        except stripe.StripeError as e:
            raise self._error("retrieving charge", e) from e

    async def create_refund(
        self,
        account_id: str,
        *,
        charge_id: str,
        amount: int,
        reason: Optional[str] = None,
    ) -> stripe.Refund:
        """Refund an amount (minor units) of a charge."""
        params: Dict[str, Any] = {"charge": charge_id, "amount": amount}
        if reason:
            params["reason"] = reason

        try:
            return await stripe.Refund.create_async(**params, **self._options(account_id))
        except stripe.StripeError as e:
            raise self._error("creating refund", e) from e

    # Customers

    async def find_customer_by_email(self, account_id: str, email: str) -> Optional[str]:
        """Return the id of the first customer with exactly this email, if any."""
        try:
            customers = await stripe.Customer.list_async(
                email=email, limit=1, **self._options(account_id)
            )
        except stripe.StripeError as e:
            raise self._error("searching customers", e) from e

        return customers.data[0].id if customers.data else None

    async def create_customer(
        self,
        account_id: str,
        *,
        email: str,
        name: Optional[str] = None,
        phone: Optional[str] = None,
        postal_code: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> str:
        """Create a customer and return its id."""
        params: Dict[str, Any] = {"email": email, "metadata": metadata or {}}
        if name:
            params["name"] = name
        if phone:
            params["phone"] = phone
        if postal_code:
            params["address"] = {"postal_code": postal_code}

        try:
            customer = await stripe.Customer.create_async(**params, **self._options(account_id))
        except stripe.StripeError as e:
            raise self._error("creating customer", e) from e

        return customer.id

    # Prices and products

    async def retrieve_price(self, account_id: str, price_id: str) -> stripe.Price:
        """Retrieve a price."""
        try:
            return await stripe.Price.retrieve_async(price_id, **self._options(account_id))
        except stripe.StripeError as e:
            raise self._error("retrieving price", e) from e

    async def list_products(self, account_id: str, limit: int = 100) -> List[stripe.Product]:
        """List products with their default price expanded."""
        try:
            products = await stripe.Product.list_async(
                limit=limit, expand=["data.default_price"], **self._options(account_id)
            )
        except stripe.StripeError as e:
            raise self._error("listing products", e) from e

        return list(products.data)

    # Invoices

    async def create_invoice(
        self,
        account_id: str,
        *,
        customer_id: Optional[str],
        due_date: int,
        metadata: Dict[str, str],
    ) -> stripe.Invoice:
        """Create a draft invoice that is only finalized explicitly."""
        params: Dict[str, Any] = {
            "pending_invoice_items_behavior": "include",
            "auto_advance": False,
            "collection_method": "send_invoice",
            "due_date": due_date,
            "metadata": metadata,
        }
        if customer_id:
            params["customer"] = customer_id

        try:
            return await stripe.Invoice.create_async(**params, **self._options(account_id))
        except stripe.StripeError as e:
            raise self._error("creating invoice", e) from e

    async def create_invoice_item(
        self,
        account_id: str,
        *,
        invoice_id: str,
        customer_id: Optional[str],
        metadata: Dict[str, str],
        price_id: Optional[str] = None,
        quantity: Optional[int] = None,
        amount: Optional[int] = None,
        currency: Optional[str] = None,
        description: Optional[str] = None,
    ) -> stripe.InvoiceItem:
        """Create an invoice item, either from a price and quantity or a raw amount."""
        params: Dict[str, Any] = {"invoice": invoice_id, "metadata": metadata}
        if customer_id:
            params["customer"] = customer_id
        if price_id:
            params["pricing"] = {"price": price_id}
            params["quantity"] = quantity
        else:
            params["amount"] = amount
            params["currency"] = currency
        if description:
            params["description"] = description

        try:
            return await stripe.InvoiceItem.create_async(**params, **self._options(account_id))
        except stripe.StripeError as e:
            raise self._error("creating invoice item", e) from e

    async def delete_invoice_item(self, account_id: str, item_id: str) -> None:
        """Delete an invoice item that has not been finalized yet."""
        try:
            await stripe.InvoiceItem.delete_async(item_id, **self._options(account_id))
        except stripe.StripeError as e:
            raise self._error("deleting invoice item", e) from e

    async def finalize_invoice(self, account_id: str, invoice_id: str) -> stripe.Invoice:
        """Finalize an invoice, locking its line items and total."""
        try:
            return await stripe.Invoice.finalize_invoice_async(
                invoice_id, **self._options(account_id)
            )
        except stripe.StripeError as e:
            raise self._error("finalizing invoice", e) from e

    async def attach_payment_to_invoice(
        self, account_id: str, invoice_id: str, payment_intent_id: str
    ) -> None:
        """Record a payment intent as the payment of an invoice."""
        try:
            await stripe.Invoice.attach_payment_async(
                invoice_id, payment_intent=payment_intent_id, **self._options(account_id)
            )
        except stripe.StripeError as e:
            raise self._error("attaching payment to invoice", e) from e

    # Payment intents

    async def create_payment_intent(
        self,
        account_id: str,
        *,
        amount: int,
        currency: str,
        metadata: Dict[str, str],
        application_fee_amount: int,
        customer_id: Optional[str] = None,
        receipt_email: Optional[str] = None,
    ) -> stripe.PaymentIntent:
        """Create a card-present payment intent with automatic capture."""
        params: Dict[str, Any] = {
            "amount": amount,
            "currency": currency,
            "payment_method_types": ["card_present"],
            "capture_method": "automatic",
            "metadata": metadata,
            "application_fee_amount": application_fee_amount,
        }
        if customer_id:
            params["customer"] = customer_id
        if receipt_email:
            params["receipt_email"] = receipt_email

        try:
            return await stripe.PaymentIntent.create_async(**params, **self._options(account_id))
        except stripe.StripeError as e:
            raise self._error("creating payment intent", e) from e

    # Terminal

    async def create_connection_token(self, account_id: str) -> stripe.terminal.ConnectionToken:
        """Create a connection token for the Terminal SDK."""
        try:
            return await stripe.terminal.ConnectionToken.create_async(
                **self._options(account_id)
            )
        except stripe.StripeError as e:
            raise self._error("creating connection token", e) from e

    async def list_locations(self, account_id: str) -> List[stripe.terminal.Location]:
        """List Terminal locations."""
        try:
            locations = await stripe.terminal.Location.list_async(**self._options(account_id))
        except stripe.StripeError as e:
            raise self._error("listing locations", e) from e

        return list(locations.data)

    async def create_location(
        self, account_id: str, *, display_name: str, address: Dict[str, Any]
    ) -> stripe.terminal.Location:
        """Create a Terminal location."""
        try:
            return await stripe.terminal.Location.create_async(
                display_name=display_name, address=address, **self._options(account_id)
            )
        except stripe.StripeError as e:
            raise self._error("creating location", e) from e

    async def update_location(
        self, account_id: str, location_id: str, **params: Any
    ) -> stripe.terminal.Location:
        """Update a Terminal location."""
        try:
            return await stripe.terminal.Location.modify_async(
                location_id, **params, **self._options(account_id)
            )
        except stripe.StripeError as e:
            raise self._error("updating location", e) from e

    async def create_terminal_configuration(
        self, account_id: str, **params: Any
    ) -> stripe.terminal.Configuration:
        """Create a Terminal reader configuration."""
        try:
            return await stripe.terminal.Configuration.create_async(
                **params, **self._options(account_id)
            )
        except stripe.StripeError as e:
            raise self._error("creating terminal configuration", e) from e

    async def create_reader(
        self, account_id: str, *, registration_code: str, location_id: str, label: str
    ) -> stripe.terminal.Reader:
        """Register a Terminal reader at a location."""
        try:
            return await stripe.terminal.Reader.create_async(
                registration_code=registration_code,
                location=location_id,
                label=label,
                **self._options(account_id),
            )
        except stripe.StripeError as e:
            raise self._error("registering reader", e) from e

    # Connect

    async def exchange_oauth_code(self, code: str) -> stripe.StripeObject:
        """Exchange an OAuth authorization code for the connected account's tokens."""
        try:
            # The OAuth resource has no async variant
            return await asyncio.to_thread(
                stripe.OAuth.token,
                api_key=self._api_key,
                grant_type="authorization_code",
                code=code,
            )
        except stripe.StripeError as e:
            raise self._error("exchanging OAuth code", e) from e

    async def retrieve_account(self, account_id: str) -> stripe.Account:
        """Retrieve a connected account."""
        try:
            return await stripe.Account.retrieve_async(account_id, **self._options())
        except stripe.StripeError as e:
            raise self._error("retrieving account", e) from e
