"""Card-present payment intents, direct or itemized through an invoice.

The itemized flow builds a draft invoice from the cart so the receipt lists products,
finalizes it, and charges its total through a payment intent. Line items are created
in cart order; when one fails, every item created before it is deleted again.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, Sequence

from tapbridge import schemas
from tapbridge.core.config import settings
from tapbridge.core.datetime_utils import SECONDS_PER_DAY, to_unix_seconds, utc_now
from tapbridge.core.exceptions import InvoiceConstructionError, TapbridgeException
from tapbridge.core.logging import ContextualLogger, logger
from tapbridge.integrations.stripe_client import StripeClient, get_field

PAYMENT_TYPE_PRODUCTS = "products"
ONE_TIME_PRICE = "one_time"
TIP_DESCRIPTION = "Tip"


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount to minor units, rounding half up."""
    return int((amount * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def build_payment_metadata(
    user_id: str,
    extra: Optional[Dict[str, str]] = None,
    customer: Optional[schemas.CustomerDetails] = None,
    tip_amount: Optional[int] = None,
    tipping_method: Optional[schemas.TippingMethod] = None,
) -> Dict[str, str]:
    """Build the flat metadata attached to a payment intent.

    Always carries ``userId``; customer fields, the tip and the tipping method are
    added only when present. The owning user id cannot be overridden by ``extra``.
    """
    metadata: Dict[str, str] = {**(extra or {}), "userId": str(user_id)}

    if customer is not None:
        if customer.email:
            metadata["customerEmail"] = customer.email
        if customer.name:
            metadata["customerName"] = customer.name
        if customer.phone:
            metadata["customerPhone"] = customer.phone
        if customer.postal_code:
            metadata["customerZip"] = customer.postal_code

    if tip_amount:
        metadata["tipAmount"] = str(tip_amount)
        if tipping_method is not None:
            metadata["tippingMethod"] = tipping_method.value

    return metadata


def _invoice_lines(invoice: Any) -> List[Any]:
    lines = get_field(invoice, "lines") or {}
    return list(get_field(lines, "data") or [])


class IntentService:
    """Service creating payment intents on a connected account."""

    def __init__(self, stripe_client: StripeClient):
        """Initialize the service with the shared Stripe client."""
        self.stripe = stripe_client

    async def create_direct_intent(
        self,
        account_id: str,
        user_id: str,
        request: schemas.CreatePaymentIntentRequest,
        log: ContextualLogger = logger,
    ) -> schemas.PaymentIntentResponse:
        """Create a payment intent for a plain amount, without line items."""
        metadata = build_payment_metadata(
            user_id,
            request.metadata,
            request.customer_details,
            request.tip_amount,
            request.tipping_method,
        )
        amount = to_minor_units(request.amount)

        intent = await self.stripe.create_payment_intent(
            account_id,
            amount=amount,
            currency=request.currency or settings.DEFAULT_CURRENCY,
            metadata=metadata,
            application_fee_amount=settings.APPLICATION_FEE_AMOUNT,
            receipt_email=request.customer_details.email,
        )
        intent_id = get_field(intent, "id")
        client_secret = get_field(intent, "client_secret")
        if not client_secret:
            raise TapbridgeException("Failed to create payment intent: missing client secret")

        log.with_context(stripe_account_id=account_id).info(
            f"Created payment intent {intent_id} for {amount}"
        )
        return schemas.PaymentIntentResponse(
            client_secret=client_secret, payment_intent_id=intent_id
        )

    async def resolve_customer(
        self, account_id: str, user_id: str, customer: schemas.CustomerDetails
    ) -> Optional[str]:
        """Find a customer by exact email or create one; None when no email is given."""
        if not customer.email:
            return None

        existing = await self.stripe.find_customer_by_email(account_id, customer.email)
        if existing:
            return existing

        return await self.stripe.create_customer(
            account_id,
            email=customer.email,
            name=customer.name,
            phone=customer.phone,
            postal_code=customer.postal_code,
            metadata={"userId": str(user_id)},
        )

    async def _rollback_items(
        self, account_id: str, item_ids: Sequence[str], log: ContextualLogger
    ) -> None:
        """Delete invoice items in creation order; a failed delete is logged and skipped."""
        for item_id in item_ids:
            try:
                await self.stripe.delete_invoice_item(account_id, item_id)
            except TapbridgeException as e:
                log.error(f"Error deleting invoice item {item_id}: {e.message}")

    async def create_line_items(
        self,
        account_id: str,
        user_id: str,
        invoice_id: str,
        customer_id: Optional[str],
        cart_items: Sequence[schemas.CartItem],
        log: ContextualLogger = logger,
    ) -> List[str]:
        """Create one invoice item per cart item, in order, all or nothing.

        Each price is retrieved first and must be one-time. On the first failure the
        items created so far are deleted and the error is raised with the offending
        price id in its message.

        Returns:
        -------
            List[str]: The created invoice item ids, in cart order.

        """
        created: List[str] = []

        for item in cart_items:
            try:
                price = await self.stripe.retrieve_price(account_id, item.price_id)
                if get_field(price, "type") != ONE_TIME_PRICE:
                    raise InvoiceConstructionError(
                        f"Price {item.price_id} is a recurring price. "
                        "Only one-time prices are supported for Terminal payments."
                    )

                invoice_item = await self.stripe.create_invoice_item(
                    account_id,
                    invoice_id=invoice_id,
                    customer_id=customer_id,
                    price_id=item.price_id,
                    quantity=item.quantity,
                    metadata={"userId": str(user_id)},
                )
                created.append(get_field(invoice_item, "id"))
            except TapbridgeException as e:
                log.warning(
                    f"Line item for price {item.price_id} failed, rolling back "
                    f"{len(created)} item(s): {e.message}"
                )
                await self._rollback_items(account_id, created, log)
                raise InvoiceConstructionError(
                    f"Invalid priceId: {item.price_id}. {e.message}", kind=e.kind
                ) from e

        return created

    async def add_tip_item(
        self,
        account_id: str,
        user_id: str,
        invoice_id: str,
        customer_id: Optional[str],
        tip_amount: int,
        currency: str,
        item_ids: Sequence[str],
        log: ContextualLogger = logger,
    ) -> str:
        """Add the tip as the last invoice item; on failure the cart items are deleted."""
        try:
            tip_item = await self.stripe.create_invoice_item(
                account_id,
                invoice_id=invoice_id,
                customer_id=customer_id,
                amount=tip_amount,
                currency=currency,
                description=TIP_DESCRIPTION,
                metadata={"userId": str(user_id), "type": "tip"},
            )
        except TapbridgeException as e:
            log.warning(f"Tip item failed, rolling back {len(item_ids)} item(s): {e.message}")
            await self._rollback_items(account_id, item_ids, log)
            raise InvoiceConstructionError(f"Failed to add tip: {e.message}", kind=e.kind) from e

        return get_field(tip_item, "id")

    async def finalize(self, account_id: str, invoice_id: str) -> Any:
        """Finalize the invoice and make sure it carries a chargeable total."""
        finalized = await self.stripe.finalize_invoice(account_id, invoice_id)

        if not _invoice_lines(finalized):
            raise InvoiceConstructionError(
                "Invoice items were created but not attached to invoice. Please try again."
            )
        if not get_field(finalized, "total"):
            raise InvoiceConstructionError(
                "Invoice total is zero. Please ensure invoice has valid line items "
                "with one-time prices."
            )
        return finalized

    async def create_intent_from_products(
        self,
        account_id: str,
        user_id: str,
        request: schemas.CreateIntentFromProductsRequest,
        log: ContextualLogger = logger,
    ) -> schemas.ProductPaymentIntentResponse:
        """Create a payment intent for the total of an invoice built from the cart.

        Args:
        ----
            account_id (str): The connected account.
            user_id (str): The merchant the intent is created for.
            request (schemas.CreateIntentFromProductsRequest): Cart, customer and tip.
            log (ContextualLogger): Request-scoped logger.

        Returns:
        -------
            schemas.ProductPaymentIntentResponse: Client secret, intent id and invoice id.

        Raises:
        ------
            InvoiceConstructionError: If a line item fails (after rollback), or the
                finalized invoice is empty or zero.
            ExternalServiceError: If Stripe rejects any other step.

        """
        log = log.with_context(stripe_account_id=account_id)

        customer_id = await self.resolve_customer(account_id, user_id, request.customer_details)

        invoice = await self.stripe.create_invoice(
            account_id,
            customer_id=customer_id,
            due_date=to_unix_seconds(utc_now()) + SECONDS_PER_DAY,
            metadata={"userId": str(user_id), "paymentType": PAYMENT_TYPE_PRODUCTS},
        )
        invoice_id = get_field(invoice, "id")
        log = log.with_context(invoice_id=invoice_id)

        item_ids = await self.create_line_items(
            account_id, user_id, invoice_id, customer_id, request.cart_items, log
        )

        if request.tip_amount and request.tip_amount > 0:
            await self.add_tip_item(
                account_id,
                user_id,
                invoice_id,
                customer_id,
                request.tip_amount,
                get_field(invoice, "currency") or settings.DEFAULT_CURRENCY,
                item_ids,
                log,
            )

        finalized = await self.finalize(account_id, invoice_id)
        total = get_field(finalized, "total")

        metadata = build_payment_metadata(
            user_id,
            {"invoiceId": invoice_id, "paymentType": PAYMENT_TYPE_PRODUCTS},
            request.customer_details,
            request.tip_amount,
            request.tipping_method,
        )

        intent = await self.stripe.create_payment_intent(
            account_id,
            amount=total,
            currency=get_field(finalized, "currency") or settings.DEFAULT_CURRENCY,
            metadata=metadata,
            application_fee_amount=settings.APPLICATION_FEE_AMOUNT,
            customer_id=customer_id,
        )
        intent_id = get_field(intent, "id")
        client_secret = get_field(intent, "client_secret")
        if not client_secret:
            raise InvoiceConstructionError("PaymentIntent created but missing client_secret")

        try:
            await self.stripe.attach_payment_to_invoice(account_id, invoice_id, intent_id)
        except TapbridgeException as e:
            log.warning(f"Failed to attach PaymentIntent {intent_id} to invoice: {e.message}")

        log.info(f"Created payment intent {intent_id} for invoice total {total}")
        return schemas.ProductPaymentIntentResponse(
            client_secret=client_secret,
            payment_intent_id=intent_id,
            invoice_id=invoice_id,
        )
