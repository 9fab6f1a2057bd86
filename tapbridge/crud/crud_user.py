"""The CRUD operations for the User model."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tapbridge.crud._base import CRUDBase
from tapbridge.models.user import User
from tapbridge.schemas.user import UserCreate, UserUpdate


class CRUDUser(CRUDBase[User, UserCreate, UserUpdate]):
    """CRUD operations for the User model."""

    async def get_by_email(self, db: AsyncSession, *, email: str) -> Optional[User]:
        """Get a user by email.

        Args:
            db (AsyncSession): The database session.
            email (str): The email of the user to get.

        Returns:
            Optional[User]: The user with the given email.
        """
        result = await db.execute(select(User).where(User.email == email))
        return result.unique().scalar_one_or_none()

    async def get_by_stripe_account_id(
        self, db: AsyncSession, *, stripe_account_id: str
    ) -> Optional[User]:
        """Get the user that owns a connected Stripe account."""
        result = await db.execute(select(User).where(User.stripe_account_id == stripe_account_id))
        return result.unique().scalar_one_or_none()


user = CRUDUser(User)
