"""Stripe Connect onboarding and the active-account check guarding every payment operation."""

import base64
import json
from typing import Any, Optional
from urllib.parse import quote
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from tapbridge import crud, schemas
from tapbridge.core.config import settings
from tapbridge.core.datetime_utils import utc_now
from tapbridge.core.exceptions import (
    AuthenticationError,
    FailedPreconditionError,
    InvalidArgumentError,
    TapbridgeException,
)
from tapbridge.core.logging import ContextualLogger, logger
from tapbridge.core.security import create_access_token
from tapbridge.integrations.stripe_client import StripeClient, get_field

STRIPE_OAUTH_AUTHORIZE_URL = "https://connect.stripe.com/oauth/authorize"

ACCOUNT_ACTIVE = "active"
ACCOUNT_DISABLED = "disabled"
ACCOUNT_PENDING = "pending"
ACCOUNT_NOT_CONNECTED = "not_connected"


async def get_active_account_id(db: AsyncSession, user_id: UUID) -> str:
    """Return the connected account of a user, provided it is active.

    Raises:
    ------
        FailedPreconditionError: If no account is connected or it has not finished
            onboarding. No Stripe call is made in either case.

    """
    user = await crud.user.get(db, id=user_id)

    if user is None or not user.stripe_account_id:
        raise FailedPreconditionError(
            "Stripe account not connected. Please connect your Stripe account first."
        )

    if user.stripe_account_status != ACCOUNT_ACTIVE:
        raise FailedPreconditionError(
            "Stripe account is not active. Please complete the onboarding process."
        )

    return user.stripe_account_id


def determine_account_status(account: Any) -> str:
    """Map a Stripe account onto active, disabled or pending."""
    details_submitted = bool(get_field(account, "details_submitted"))
    charges_enabled = bool(get_field(account, "charges_enabled"))

    if details_submitted and charges_enabled:
        return ACCOUNT_ACTIVE
    if details_submitted:
        return ACCOUNT_DISABLED
    return ACCOUNT_PENDING


class AccountService:
    """Connects merchants to the platform through Stripe Connect OAuth."""

    def __init__(self, stripe_client: StripeClient):
        """Initialize the service with the shared Stripe client."""
        self.stripe = stripe_client

    def build_oauth_url(self, return_url: Optional[str] = None) -> str:
        """Build the Stripe Connect authorization URL.

        The state parameter is base64-encoded JSON carrying the issue time in
        milliseconds.
        """
        if not settings.oauth_enabled:
            raise TapbridgeException("Stripe Client ID not configured")

        redirect_uri = return_url or settings.OAUTH_DEFAULT_REDIRECT_URI
        timestamp_ms = int(utc_now().timestamp() * 1000)
        state = base64.b64encode(json.dumps({"timestamp": timestamp_ms}).encode()).decode()

        return (
            f"{STRIPE_OAUTH_AUTHORIZE_URL}?"
            f"response_type=code&"
            f"client_id={settings.STRIPE_CLIENT_ID}&"
            f"redirect_uri={quote(redirect_uri, safe='')}&"
            f"scope=read_write&"
            f"state={state}"
        )

    async def get_oauth_url(
        self,
        db: AsyncSession,
        user_id: Optional[UUID],
        return_url: Optional[str],
        log: ContextualLogger = logger,
    ) -> schemas.OAuthUrlResponse:
        """Return the authorization URL, or the account an authenticated caller already has."""
        if not settings.oauth_enabled:
            raise TapbridgeException("Stripe Client ID not configured")

        if user_id is not None:
            user = await crud.user.get(db, id=user_id)
            if user and user.stripe_account_id and user.stripe_account_status == ACCOUNT_ACTIVE:
                log.info("User already has an active Stripe account")
                return schemas.OAuthUrlResponse(
                    already_connected=True, account_id=user.stripe_account_id
                )

        return schemas.OAuthUrlResponse(url=self.build_oauth_url(return_url))

    async def handle_oauth_callback(
        self,
        db: AsyncSession,
        code: Optional[str],
        state: Optional[str],
        log: ContextualLogger = logger,
    ) -> schemas.OAuthCallbackResponse:
        """Complete onboarding: exchange the code, sync the account, and sign the merchant in.

        Args:
        ----
            db (AsyncSession): The database session.
            code (str): Authorization code returned by Stripe.
            state (str): State parameter issued with the authorization URL.
            log (ContextualLogger): Request-scoped logger.

        Returns:
        -------
            schemas.OAuthCallbackResponse: The account, its status, and an access token.

        """
        if not code or not state:
            raise InvalidArgumentError("Missing code or state parameter")

        oauth = await self.stripe.exchange_oauth_code(code)
        account_id = get_field(oauth, "stripe_user_id")
        if not account_id:
            raise TapbridgeException("Failed to retrieve Stripe account ID")

        account = await self.stripe.retrieve_account(account_id)
        status = determine_account_status(account)
        log = log.with_context(stripe_account_id=account_id)

        tokens = {
            "stripe_account_status": status,
            "stripe_access_token": get_field(oauth, "access_token") or "",
            "stripe_refresh_token": get_field(oauth, "refresh_token") or "",
            "stripe_scope": get_field(oauth, "scope") or "",
            "stripe_token_type": get_field(oauth, "token_type") or "",
            "stripe_publishable_key": get_field(oauth, "stripe_publishable_key"),
        }

        user = await crud.user.get_by_stripe_account_id(db, stripe_account_id=account_id)
        if user is not None:
            user = await crud.user.update(
                db, db_obj=user, obj_in=schemas.UserUpdate(stripe_account_status=status)
            )
            details = await crud.stripe_details.get_by_user_id(db, user_id=user.id)
            if details is not None:
                await crud.stripe_details.update(
                    db, db_obj=details, obj_in=schemas.StripeDetailsUpdate(**tokens)
                )
            log.info(f"Reconnected Stripe account with status {status}")
        else:
            business_profile = get_field(account, "business_profile") or {}
            user = await crud.user.create(
                db,
                obj_in=schemas.UserCreate(
                    email=get_field(account, "email") or f"stripe_{account_id}@temp.com",
                    display_name=get_field(business_profile, "name"),
                    stripe_account_id=account_id,
                    stripe_account_status=status,
                ),
            )
            await crud.stripe_details.create(
                db,
                obj_in=schemas.StripeDetailsCreate(
                    user_id=user.id, stripe_account_id=account_id, **tokens
                ),
            )
            log.info(f"Created user {user.id} for Stripe account with status {status}")

        return schemas.OAuthCallbackResponse(
            account_id=account_id,
            user_id=str(user.id),
            email=user.email,
            status=status,
            charges_enabled=bool(get_field(account, "charges_enabled")),
            details_submitted=bool(get_field(account, "details_submitted")),
            token=create_access_token(str(user.id), user.email),
        )

    async def get_account_status(
        self, db: AsyncSession, user_id: UUID, log: ContextualLogger = logger
    ) -> schemas.AccountStatusResponse:
        """Refresh the connected account's status from Stripe and persist it."""
        user = await crud.user.get(db, id=user_id)
        if user is None:
            raise AuthenticationError("User not found")

        if not user.stripe_account_id:
            return schemas.AccountStatusResponse(connected=False, status=ACCOUNT_NOT_CONNECTED)

        account = await self.stripe.retrieve_account(user.stripe_account_id)
        status = determine_account_status(account)

        if status != user.stripe_account_status:
            log.info(f"Stripe account status changed from {user.stripe_account_status} to {status}")

        await crud.user.update(
            db, db_obj=user, obj_in=schemas.UserUpdate(stripe_account_status=status)
        )
        details = await crud.stripe_details.get_by_user_id(db, user_id=user.id)
        if details is not None:
            await crud.stripe_details.update(
                db, db_obj=details, obj_in=schemas.StripeDetailsUpdate(stripe_account_status=status)
            )

        return schemas.AccountStatusResponse(
            connected=True,
            status=status,
            account_id=user.stripe_account_id,
            charges_enabled=bool(get_field(account, "charges_enabled")),
            details_submitted=bool(get_field(account, "details_submitted")),
        )


async def get_user_profile(db: AsyncSession, user_id: UUID) -> schemas.UserProfile:
    """Return the profile of the authenticated user."""
    user = await crud.user.get(db, id=user_id)
    if user is None:
        raise AuthenticationError("User not found")

    return schemas.UserProfile(
        user_id=str(user.id),
        email=user.email,
        display_name=user.display_name,
        stripe_account_id=user.stripe_account_id,
        stripe_account_status=user.stripe_account_status,
    )
