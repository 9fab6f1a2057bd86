"""Response envelope and the camelCase base model shared by request/response schemas."""

from typing import Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

DataT = TypeVar("DataT")


class CamelModel(BaseModel):
    """Base schema exchanged with the mobile client in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiResponse(BaseModel, Generic[DataT]):
    """Envelope wrapping every successful response."""

    status: Literal["success"] = "success"
    message: str = "Success"
    data: Optional[DataT] = None


class ErrorResponse(BaseModel):
    """Envelope wrapping every error response."""

    status: Literal["error"] = "error"
    message: str
    code: str
    trace: Optional[str] = None


def success(data: DataT, message: str = "Success") -> ApiResponse[DataT]:
    """Wrap a payload in the success envelope."""
    return ApiResponse(data=data, message=message)
