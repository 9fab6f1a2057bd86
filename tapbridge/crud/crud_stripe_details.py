"""The CRUD operations for the StripeDetails model."""

from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tapbridge.crud._base import CRUDBase
from tapbridge.models.stripe_details import StripeDetails
from tapbridge.schemas.user import StripeDetailsCreate, StripeDetailsUpdate


class CRUDStripeDetails(CRUDBase[StripeDetails, StripeDetailsCreate, StripeDetailsUpdate]):
    """CRUD operations for the StripeDetails model."""

    async def get_by_user_id(self, db: AsyncSession, *, user_id: UUID) -> Optional[StripeDetails]:
        """Get the OAuth record of a user, if they ever connected an account."""
        result = await db.execute(select(StripeDetails).where(StripeDetails.user_id == user_id))
        return result.unique().scalar_one_or_none()


stripe_details = CRUDStripeDetails(StripeDetails)
