"""Payment endpoints: intents, refunds and statistics.

Every endpoint here requires an active connected account; the check runs before any
call to Stripe.
"""

from typing import Optional

from fastapi import Depends, Query

from tapbridge import schemas
from tapbridge.api import deps
from tapbridge.api.context import ApiContext
from tapbridge.api.router import TrailingSlashRouter
from tapbridge.core.intent_service import IntentService
from tapbridge.core.payment_stats_service import PaymentStatsService
from tapbridge.core.refund_service import RefundService

router = TrailingSlashRouter()


@router.post("/create-intent", response_model=schemas.ApiResponse[schemas.PaymentIntentResponse])
async def create_payment_intent(
    *,
    intent_in: schemas.CreatePaymentIntentRequest,
    account_id: str = Depends(deps.get_active_account_id),
    ctx: ApiContext = Depends(deps.get_context),
    intent_service: IntentService = Depends(deps.get_intent_service),
) -> schemas.ApiResponse[schemas.PaymentIntentResponse]:
    """Create a card-present payment intent for a plain amount."""
    result = await intent_service.create_direct_intent(
        account_id, str(ctx.user_id), intent_in, ctx.logger
    )
    return schemas.success(result, "Payment intent created successfully")


@router.post(
    "/create-intent-from-products",
    response_model=schemas.ApiResponse[schemas.ProductPaymentIntentResponse],
)
async def create_payment_intent_from_products(
    *,
    cart_in: schemas.CreateIntentFromProductsRequest,
    account_id: str = Depends(deps.get_active_account_id),
    ctx: ApiContext = Depends(deps.get_context),
    intent_service: IntentService = Depends(deps.get_intent_service),
) -> schemas.ApiResponse[schemas.ProductPaymentIntentResponse]:
    """Create a payment intent for a cart, itemized through an invoice for the receipt."""
    result = await intent_service.create_intent_from_products(
        account_id, str(ctx.user_id), cart_in, ctx.logger
    )
    return schemas.success(result, "Payment intent created from products successfully")


@router.post("/refund", response_model=schemas.ApiResponse[schemas.RefundResponse])
async def refund_payment(
    *,
    refund_in: schemas.RefundRequest,
    account_id: str = Depends(deps.get_active_account_id),
    ctx: ApiContext = Depends(deps.get_context),
    refund_service: RefundService = Depends(deps.get_refund_service),
) -> schemas.ApiResponse[schemas.RefundResponse]:
    """Refund the remaining balance of a charge."""
    result = await refund_service.refund_charge(
        account_id, refund_in.charge_id, refund_in.reason, ctx.logger
    )
    return schemas.success(result, "Refund created successfully")


@router.get("/stats", response_model=schemas.ApiResponse[schemas.PaymentStats])
async def get_payment_stats(
    *,
    date: Optional[str] = Query(None, description="YYYY-MM-DD, UTC; defaults to today"),
    include_trend: Optional[str] = Query(None, alias="includeTrend"),
    days: Optional[str] = Query(None, description="Trend window length, default 7"),
    account_id: str = Depends(deps.get_active_account_id),
    ctx: ApiContext = Depends(deps.get_context),
    stats_service: PaymentStatsService = Depends(deps.get_stats_service),
) -> schemas.ApiResponse[schemas.PaymentStats]:
    """Per-day payment statistics for a date, with an optional trailing trend window."""
    stats = await stats_service.get_payment_stats(
        account_id, date, include_trend, days, ctx.logger
    )
    return schemas.success(stats, "Payment statistics retrieved successfully")
