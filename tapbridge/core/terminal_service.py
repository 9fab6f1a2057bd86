"""Stripe Terminal: connection tokens, locations, readers and the tipping setup."""

from typing import Any, Dict, List, Optional

from tapbridge import schemas
from tapbridge.core.config import settings
from tapbridge.core.exceptions import TapbridgeException
from tapbridge.core.logging import ContextualLogger, logger
from tapbridge.integrations.stripe_client import StripeClient, get_field, to_plain_dict

DEFAULT_READER_LABEL = "Terminal Reader"
DEFAULT_LOCATION_NAME = "Default Location"
DEFAULT_LOCATION_ADDRESS = {
    "line1": "123 Main St",
    "city": "San Francisco",
    "state": "CA",
    "country": "US",
    "postal_code": "94102",
}


def _address(location: Any) -> Optional[Dict[str, Any]]:
    return to_plain_dict(get_field(location, "address"))


class TerminalService:
    """Service for Terminal readers and their locations."""

    def __init__(self, stripe_client: StripeClient):
        """Initialize the service with the shared Stripe client."""
        self.stripe = stripe_client

    async def create_connection_token(self, account_id: str) -> schemas.ConnectionTokenResponse:
        """Issue a connection token for the Terminal SDK."""
        token = await self.stripe.create_connection_token(account_id)
        if not get_field(token, "secret"):
            raise TapbridgeException("Failed to create connection token: missing secret")
        return schemas.ConnectionTokenResponse(secret=get_field(token, "secret"))

    async def list_locations(self, account_id: str) -> List[schemas.Location]:
        """List the account's Terminal locations."""
        locations = await self.stripe.list_locations(account_id)
        return [
            schemas.Location(
                id=get_field(location, "id"),
                display_name=get_field(location, "display_name"),
                address=_address(location),
            )
            for location in locations
        ]

    async def create_location(
        self,
        account_id: str,
        location_in: schemas.LocationCreate,
        log: ContextualLogger = logger,
    ) -> schemas.LocationResult:
        """Create a location and set up on-reader tipping for it."""
        location = await self.stripe.create_location(
            account_id,
            display_name=location_in.display_name,
            address=location_in.address.model_dump(exclude_none=True),
        )
        await self.configure_tipping(account_id, get_field(location, "id"), log)
        return schemas.LocationResult(
            location_id=get_field(location, "id"),
            display_name=get_field(location, "display_name"),
            address=_address(location),
        )

    async def get_or_create_location(
        self, account_id: str, log: ContextualLogger = logger
    ) -> schemas.LocationResult:
        """Return the first existing location, creating a default one when there is none."""
        locations = await self.stripe.list_locations(account_id)
        if locations:
            location = locations[0]
        else:
            log.info("No Terminal location found, creating the default one")
            location = await self.stripe.create_location(
                account_id,
                display_name=DEFAULT_LOCATION_NAME,
                address=dict(DEFAULT_LOCATION_ADDRESS),
            )

        await self.configure_tipping(account_id, get_field(location, "id"), log)
        return schemas.LocationResult(
            location_id=get_field(location, "id"),
            display_name=get_field(location, "display_name"),
            address=_address(location),
        )

    async def register_reader(
        self,
        account_id: str,
        request: schemas.ReaderRegisterRequest,
    ) -> schemas.Reader:
        """Register a reader at a location."""
        reader = await self.stripe.create_reader(
            account_id,
            registration_code=request.registration_code,
            location_id=request.location_id,
            label=request.label or DEFAULT_READER_LABEL,
        )
        return schemas.Reader(
            reader_id=get_field(reader, "id"),
            serial_number=get_field(reader, "serial_number"),
            label=get_field(reader, "label"),
            device_type=get_field(reader, "device_type"),
            location_id=get_field(reader, "location"),
        )

    async def configure_tipping(
        self, account_id: str, location_id: str, log: ContextualLogger = logger
    ) -> None:
        """Enable percentage tipping on the readers of a location.

        Creates a reader configuration and assigns it to the location, replacing any
        configuration it had. Never raises: failures are logged and the calling
        operation carries on.
        """
        try:
            configuration = await self.stripe.create_terminal_configuration(
                account_id,
                tipping={
                    settings.DEFAULT_CURRENCY: {
                        "percentages": list(settings.TIPPING_PERCENTAGES),
                        "smart_tip_threshold": settings.TIPPING_SMART_THRESHOLD,
                    }
                },
            )
            configuration_id = get_field(configuration, "id")
            await self.stripe.update_location(
                account_id, location_id, configuration_overrides=configuration_id
            )
            log.info(f"Tipping configuration {configuration_id} assigned to {location_id}")
        except Exception as e:
            log.warning(f"Could not configure tipping for location {location_id}: {e}")
