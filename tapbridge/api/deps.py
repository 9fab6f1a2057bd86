"""Dependencies that are used in the API endpoints."""

import uuid
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from tapbridge import crud, schemas
from tapbridge.api.context import ApiContext
from tapbridge.core import account_service
from tapbridge.core.account_service import AccountService
from tapbridge.core.exceptions import AuthenticationError, TapbridgeException
from tapbridge.core.intent_service import IntentService
from tapbridge.core.logging import logger
from tapbridge.core.payment_stats_service import PaymentStatsService
from tapbridge.core.product_service import ProductService
from tapbridge.core.refund_service import RefundService
from tapbridge.core.security import decode_access_token
from tapbridge.core.terminal_service import TerminalService
from tapbridge.db.session import get_db
from tapbridge.integrations.stripe_client import StripeClient


def get_stripe_client(request: Request) -> StripeClient:
    """Return the Stripe client created at startup."""
    stripe_client = getattr(request.app.state, "stripe_client", None)
    if stripe_client is None:
        raise TapbridgeException("Stripe client is not initialized")
    return stripe_client


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[len("Bearer ") :].strip() or None


async def _load_user(db: AsyncSession, token: str) -> schemas.User:
    """Resolve a token to the user it was issued to."""
    payload = decode_access_token(token)
    try:
        user_id = UUID(str(payload["userId"]))
    except ValueError as e:
        raise AuthenticationError("Invalid token. Please log in again.") from e

    user = await crud.user.get(db, id=user_id)
    if user is None:
        raise AuthenticationError("User not found. Please log in again.")
    return schemas.User.model_validate(user)


async def get_current_user(
    db: AsyncSession = Depends(get_db),
    authorization: Optional[str] = Header(None),
) -> schemas.User:
    """Require a valid ``Authorization: Bearer <token>`` header.

    Raises:
    ------
        AuthenticationError: If the header is missing, the token does not verify, or
            the user no longer exists.

    """
    token = _bearer_token(authorization)
    if token is None:
        raise AuthenticationError("Authentication required. Please provide a valid token.")
    return await _load_user(db, token)


async def get_optional_user(
    db: AsyncSession = Depends(get_db),
    authorization: Optional[str] = Header(None),
) -> Optional[schemas.User]:
    """Like ``get_current_user``, but anonymous callers get None instead of an error."""
    token = _bearer_token(authorization)
    if token is None:
        return None
    try:
        return await _load_user(db, token)
    except AuthenticationError:
        return None


def _build_context(request: Request, user: Optional[schemas.User]) -> ApiContext:
    request_id = getattr(request.state, "request_id", str(uuid.uuid4()))

    base_logger = logger.with_context(request_id=request_id, context_base="api")
    if user:
        base_logger = base_logger.with_context(user_id=str(user.id))

    return ApiContext(request_id=request_id, user=user, logger=base_logger)


async def get_context(
    request: Request,
    user: schemas.User = Depends(get_current_user),
) -> ApiContext:
    """Create the API context for an authenticated request.

    Args:
    ----
        request (Request): The FastAPI request object.
        user (schemas.User): The authenticated merchant.

    Returns:
    -------
        ApiContext: Request id, user and a contextual logger.

    """
    return _build_context(request, user)


async def get_optional_context(
    request: Request,
    user: Optional[schemas.User] = Depends(get_optional_user),
) -> ApiContext:
    """Create the API context for an endpoint that also serves anonymous callers."""
    return _build_context(request, user)


async def get_active_account_id(
    ctx: ApiContext = Depends(get_context),
    db: AsyncSession = Depends(get_db),
) -> str:
    """Return the caller's connected account, rejecting the request unless it is active."""
    return await account_service.get_active_account_id(db, ctx.user.id)


def get_account_service(stripe_client: StripeClient = Depends(get_stripe_client)) -> AccountService:
    """Account onboarding service bound to the shared Stripe client."""
    return AccountService(stripe_client)


def get_stats_service(
    stripe_client: StripeClient = Depends(get_stripe_client),
) -> PaymentStatsService:
    """Payment statistics service bound to the shared Stripe client."""
    return PaymentStatsService(stripe_client)


def get_intent_service(stripe_client: StripeClient = Depends(get_stripe_client)) -> IntentService:
    """Payment intent service bound to the shared Stripe client."""
    return IntentService(stripe_client)


def get_refund_service(stripe_client: StripeClient = Depends(get_stripe_client)) -> RefundService:
    """Refund service bound to the shared Stripe client."""
    return RefundService(stripe_client)


def get_terminal_service(
    stripe_client: StripeClient = Depends(get_stripe_client),
) -> TerminalService:
    """Terminal service bound to the shared Stripe client."""
    return TerminalService(stripe_client)


def get_product_service(stripe_client: StripeClient = Depends(get_stripe_client)) -> ProductService:
    """Product catalog service bound to the shared Stripe client."""
    return ProductService(stripe_client)
