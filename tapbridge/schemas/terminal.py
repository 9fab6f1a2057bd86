"""Terminal location and reader schemas."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from tapbridge.schemas.response import CamelModel


class Address(BaseModel):
    """Postal address in Stripe's own field names."""

    line1: str = Field(..., min_length=1)
    line2: Optional[str] = None
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)
    postal_code: str = Field(..., min_length=1)


class LocationCreate(CamelModel):
    """Location creation request."""

    display_name: str = Field(..., min_length=1)
    address: Address


class Location(CamelModel):
    """Location as listed."""

    id: str
    display_name: Optional[str] = None
    address: Optional[Dict[str, Any]] = None


class LocationResult(CamelModel):
    """Location as created or resolved."""

    location_id: str
    display_name: Optional[str] = None
    address: Optional[Dict[str, Any]] = None


class ReaderRegisterRequest(CamelModel):
    """Reader registration request."""

    registration_code: str = Field(..., min_length=1)
    location_id: str = Field(..., min_length=1)
    label: Optional[str] = None


class Reader(CamelModel):
    """Registered reader."""

    reader_id: str
    serial_number: Optional[str] = None
    label: Optional[str] = None
    device_type: Optional[str] = None
    location_id: Optional[str] = None


class LocationList(CamelModel):
    """Locations of the connected account."""

    locations: List[Location]
