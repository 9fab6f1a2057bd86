"""Stripe Connect onboarding schemas."""

from typing import Optional

from pydantic import Field

from tapbridge.schemas.response import CamelModel


class OAuthUrlResponse(CamelModel):
    """Authorization URL, or the already-connected account."""

    url: Optional[str] = None
    already_connected: bool = False
    account_id: Optional[str] = None


class OAuthCallbackRequest(CamelModel):
    """Authorization code returned by Stripe Connect."""

    code: Optional[str] = None
    state: Optional[str] = None


class OAuthCallbackResponse(CamelModel):
    """Connected account plus an access token for the new session."""

    account_id: str
    user_id: str
    email: str
    status: str
    charges_enabled: bool
    details_submitted: bool
    token: str


class AccountStatusResponse(CamelModel):
    """Connection state of the caller's Stripe account."""

    connected: bool
    status: str = Field(..., description="active, disabled, pending or not_connected")
    account_id: Optional[str] = None
    charges_enabled: Optional[bool] = None
    details_submitted: Optional[bool] = None


class ConnectionTokenResponse(CamelModel):
    """Terminal SDK connection token."""

    secret: str
