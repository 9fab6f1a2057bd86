"""Stripe Connect onboarding endpoints.

The OAuth callback is the only way a merchant signs in: it creates or updates the
user for the connected account and returns an access token.
"""

from typing import Optional

from fastapi import Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tapbridge import schemas
from tapbridge.api import deps
from tapbridge.api.context import ApiContext
from tapbridge.api.router import TrailingSlashRouter
from tapbridge.core.account_service import AccountService
from tapbridge.core.terminal_service import TerminalService
from tapbridge.db.session import get_db

router = TrailingSlashRouter()


@router.get("/oauth-url", response_model=schemas.ApiResponse[schemas.OAuthUrlResponse])
async def get_oauth_url(
    *,
    return_url: Optional[str] = Query(None, alias="returnUrl"),
    db: AsyncSession = Depends(get_db),
    ctx: ApiContext = Depends(deps.get_optional_context),
    account_service: AccountService = Depends(deps.get_account_service),
) -> schemas.ApiResponse[schemas.OAuthUrlResponse]:
    """Return the Stripe Connect authorization URL.

    An authenticated merchant whose account is already active gets that account
    instead of a URL.
    """
    result = await account_service.get_oauth_url(db, ctx.user_id, return_url, ctx.logger)
    if result.already_connected:
        return schemas.success(result, "Stripe account already connected")
    return schemas.success(result, "OAuth URL generated successfully")


@router.post(
    "/oauth-callback", response_model=schemas.ApiResponse[schemas.OAuthCallbackResponse]
)
async def oauth_callback(
    *,
    callback: schemas.OAuthCallbackRequest,
    db: AsyncSession = Depends(get_db),
    ctx: ApiContext = Depends(deps.get_optional_context),
    account_service: AccountService = Depends(deps.get_account_service),
) -> schemas.ApiResponse[schemas.OAuthCallbackResponse]:
    """Complete Stripe Connect onboarding and sign the merchant in."""
    result = await account_service.handle_oauth_callback(
        db, callback.code, callback.state, ctx.logger
    )
    return schemas.success(result, "Stripe account connected successfully")


@router.get("/account-status", response_model=schemas.ApiResponse[schemas.AccountStatusResponse])
async def get_account_status(
    *,
    db: AsyncSession = Depends(get_db),
    ctx: ApiContext = Depends(deps.get_context),
    account_service: AccountService = Depends(deps.get_account_service),
) -> schemas.ApiResponse[schemas.AccountStatusResponse]:
    """Refresh and return the status of the merchant's connected account."""
    result = await account_service.get_account_status(db, ctx.user_id, ctx.logger)
    if not result.connected:
        return schemas.success(result, "Stripe account not connected")
    return schemas.success(result, "Stripe account status retrieved successfully")


@router.post(
    "/connection-token", response_model=schemas.ApiResponse[schemas.ConnectionTokenResponse]
)
async def create_connection_token(
    *,
    account_id: str = Depends(deps.get_active_account_id),
    terminal_service: TerminalService = Depends(deps.get_terminal_service),
) -> schemas.ApiResponse[schemas.ConnectionTokenResponse]:
    """Issue a Terminal SDK connection token for the connected account."""
    result = await terminal_service.create_connection_token(account_id)
    return schemas.success(result, "Connection token created successfully")
