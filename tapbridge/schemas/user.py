"""User schema module."""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from tapbridge.schemas.response import CamelModel


class UserBase(BaseModel):
    """Base schema for User."""

    email: str
    display_name: Optional[str] = None
    stripe_account_id: Optional[str] = None
    stripe_account_status: str = "not_connected"

    model_config = ConfigDict(from_attributes=True)


class UserCreate(UserBase):
    """Schema for creating a User object."""

    pass


class UserUpdate(BaseModel):
    """Schema for updating a User object."""

    display_name: Optional[str] = None
    stripe_account_status: Optional[str] = None


class User(UserBase):
    """User as loaded from the database."""

    id: UUID


class UserProfile(CamelModel):
    """Profile returned to the authenticated user."""

    user_id: str
    email: str
    display_name: Optional[str] = None
    stripe_account_id: Optional[str] = None
    stripe_account_status: Optional[str] = None


class StripeDetailsBase(BaseModel):
    """OAuth tokens and status of a connected account."""

    stripe_account_status: str = "not_connected"
    stripe_publishable_key: Optional[str] = None
    stripe_access_token: str
    stripe_refresh_token: str
    stripe_scope: str
    stripe_token_type: str

    model_config = ConfigDict(from_attributes=True)


class StripeDetailsCreate(StripeDetailsBase):
    """Schema for creating a StripeDetails row."""

    user_id: UUID
    stripe_account_id: str


class StripeDetailsUpdate(BaseModel):
    """Schema for updating a StripeDetails row."""

    stripe_account_status: Optional[str] = None
    stripe_publishable_key: Optional[str] = None
    stripe_access_token: Optional[str] = None
    stripe_refresh_token: Optional[str] = None
    stripe_scope: Optional[str] = None
    stripe_token_type: Optional[str] = None
