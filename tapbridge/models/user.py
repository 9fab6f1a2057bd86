"""User model."""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tapbridge.models._base import Base

if TYPE_CHECKING:
    from tapbridge.models.stripe_details import StripeDetails


class User(Base):
    """Merchant operating one or more readers, identified by their connected account."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    stripe_account_id: Mapped[Optional[str]] = mapped_column(String, unique=True, nullable=True)
    stripe_account_status: Mapped[str] = mapped_column(
        String, default="not_connected", nullable=False
    )

    stripe_details: Mapped[Optional["StripeDetails"]] = relationship(
        "StripeDetails",
        back_populates="user",
        cascade="all, delete-orphan",
        uselist=False,
        lazy="noload",
    )
