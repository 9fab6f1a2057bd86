"""Stripe details model."""

from typing import TYPE_CHECKING, Optional
from uuid import UUID

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tapbridge.models._base import Base

if TYPE_CHECKING:
    from tapbridge.models.user import User


class StripeDetails(Base):
    """OAuth tokens issued when a merchant connected their Stripe account."""

    __tablename__ = "stripe_details"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    stripe_account_id: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    stripe_account_status: Mapped[str] = mapped_column(
        String, default="not_connected", nullable=False
    )
    stripe_publishable_key: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    stripe_access_token: Mapped[str] = mapped_column(String, nullable=False)
    stripe_refresh_token: Mapped[str] = mapped_column(String, nullable=False)
    stripe_scope: Mapped[str] = mapped_column(String, nullable=False)
    stripe_token_type: Mapped[str] = mapped_column(String, nullable=False)

    user: Mapped["User"] = relationship("User", back_populates="stripe_details", lazy="noload")
