"""Refunds of card-present charges."""

from typing import Optional

from tapbridge import schemas
from tapbridge.core.exceptions import FailedPreconditionError
from tapbridge.core.logging import ContextualLogger, logger
from tapbridge.integrations.stripe_client import StripeClient, get_field


class RefundService:
    """Service refunding the remaining balance of a charge."""

    def __init__(self, stripe_client: StripeClient):
        """Initialize the service with the shared Stripe client."""
        self.stripe = stripe_client

    async def refund_charge(
        self,
        account_id: str,
        charge_id: str,
        reason: Optional[schemas.RefundReason] = None,
        log: ContextualLogger = logger,
    ) -> schemas.RefundResponse:
        """Refund everything still refundable on a charge.

        The refunded amount is the charge amount minus what was already refunded; a
        caller cannot choose a smaller amount.

        Raises:
        ------
            FailedPreconditionError: If nothing is left to refund.

        """
        log = log.with_context(stripe_account_id=account_id, charge_id=charge_id)

        charge = await self.stripe.retrieve_charge(account_id, charge_id)
        amount = int(get_field(charge, "amount", 0))
        refundable = amount - int(get_field(charge, "amount_refunded", 0))
        if refundable <= 0:
            raise FailedPreconditionError(f"Charge {charge_id} has no refundable balance")

        refund = await self.stripe.create_refund(
            account_id,
            charge_id=charge_id,
            amount=refundable,
            reason=reason.value if reason else None,
        )
        log.info(f"Refunded {refundable} of charge {charge_id}")

        return schemas.RefundResponse(
            id=get_field(refund, "id"),
            amount=get_field(refund, "amount", refundable),
            currency=get_field(refund, "currency") or get_field(charge, "currency") or "",
            status=get_field(refund, "status"),
            charge_id=charge_id,
            created=get_field(refund, "created") or 0,
            reason=reason,
        )
