"""Terminal reader and location endpoints."""

from fastapi import Depends

from tapbridge import schemas
from tapbridge.api import deps
from tapbridge.api.context import ApiContext
from tapbridge.api.router import TrailingSlashRouter
from tapbridge.core.terminal_service import TerminalService

router = TrailingSlashRouter()


@router.post("/register", response_model=schemas.ApiResponse[schemas.Reader])
async def register_reader(
    *,
    reader_in: schemas.ReaderRegisterRequest,
    account_id: str = Depends(deps.get_active_account_id),
    ctx: ApiContext = Depends(deps.get_context),
    terminal_service: TerminalService = Depends(deps.get_terminal_service),
) -> schemas.ApiResponse[schemas.Reader]:
    """Register a reader at one of the account's locations."""
    reader = await terminal_service.register_reader(account_id, reader_in)
    ctx.logger.with_context(stripe_account_id=account_id).info(
        f"Registered reader {reader.reader_id} at {reader.location_id}"
    )
    return schemas.success(reader, "Reader registered successfully")


@router.get("/locations", response_model=schemas.ApiResponse[schemas.LocationList])
async def list_locations(
    *,
    account_id: str = Depends(deps.get_active_account_id),
    terminal_service: TerminalService = Depends(deps.get_terminal_service),
) -> schemas.ApiResponse[schemas.LocationList]:
    """List the account's Terminal locations."""
    locations = await terminal_service.list_locations(account_id)
    return schemas.success(
        schemas.LocationList(locations=locations), "Locations retrieved successfully"
    )


@router.post("/locations", response_model=schemas.ApiResponse[schemas.LocationResult])
async def create_location(
    *,
    location_in: schemas.LocationCreate,
    account_id: str = Depends(deps.get_active_account_id),
    ctx: ApiContext = Depends(deps.get_context),
    terminal_service: TerminalService = Depends(deps.get_terminal_service),
) -> schemas.ApiResponse[schemas.LocationResult]:
    """Create a Terminal location."""
    location = await terminal_service.create_location(
        account_id, location_in, ctx.logger.with_context(stripe_account_id=account_id)
    )
    return schemas.success(location, "Location created successfully")


@router.get("/locations/get-or-create", response_model=schemas.ApiResponse[schemas.LocationResult])
async def get_or_create_location(
    *,
    account_id: str = Depends(deps.get_active_account_id),
    ctx: ApiContext = Depends(deps.get_context),
    terminal_service: TerminalService = Depends(deps.get_terminal_service),
) -> schemas.ApiResponse[schemas.LocationResult]:
    """Return the account's first location, creating a default one if it has none."""
    location = await terminal_service.get_or_create_location(
        account_id, ctx.logger.with_context(stripe_account_id=account_id)
    )
    return schemas.success(location, "Location retrieved successfully")
