"""The API module that contains the endpoints for users."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tapbridge import schemas
from tapbridge.api import deps
from tapbridge.api.context import ApiContext
from tapbridge.api.router import TrailingSlashRouter
from tapbridge.core.account_service import get_user_profile
from tapbridge.db.session import get_db

router = TrailingSlashRouter()


@router.get("/me", response_model=schemas.ApiResponse[schemas.UserProfile])
async def read_current_user(
    *,
    db: AsyncSession = Depends(get_db),
    ctx: ApiContext = Depends(deps.get_context),
) -> schemas.ApiResponse[schemas.UserProfile]:
    """Get the authenticated merchant's profile.

    Returns:
    -------
        schemas.ApiResponse[schemas.UserProfile]: The profile in the success envelope.

    """
    profile = await get_user_profile(db, ctx.user_id)
    return schemas.success(profile, "User profile retrieved successfully")
