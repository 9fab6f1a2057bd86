"""Shared exceptions module.

Every error the service raises on purpose carries a ``kind``: the stable machine code
returned to the client, from which the HTTP status is derived. Handlers switch on the
kind, never on message text.
"""

from enum import Enum
from typing import Optional

from pydantic import ValidationError


class ErrorKind(str, Enum):
    """Stable machine codes exposed in the error envelope."""

    INVALID_ARGUMENT = "invalid-argument"
    FAILED_PRECONDITION = "failed-precondition"
    UNAUTHENTICATED = "unauthenticated"
    NOT_FOUND = "not-found"
    INTERNAL = "internal-error"


_STATUS_BY_KIND = {
    ErrorKind.INVALID_ARGUMENT: 400,
    ErrorKind.FAILED_PRECONDITION: 400,
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INTERNAL: 500,
}


class TapbridgeException(Exception):
    """Base exception for Tapbridge services."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: Optional[str] = None, kind: Optional[ErrorKind] = None):
        """Create a new TapbridgeException instance.

        Args:
        ----
            message (str, optional): The error message.
            kind (ErrorKind, optional): Overrides the class-level kind.

        """
        if kind is not None:
            self.kind = kind
        self.message = message or "Internal server error"
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        """HTTP status derived from the error kind."""
        return _STATUS_BY_KIND[self.kind]

    @property
    def code(self) -> str:
        """Machine code for the error envelope."""
        return self.kind.value


class InvalidArgumentError(TapbridgeException):
    """Raised when request input is missing or malformed. No remote call has been made."""

    kind = ErrorKind.INVALID_ARGUMENT


class FailedPreconditionError(TapbridgeException):
    """Raised when the caller's state does not allow the operation (e.g. no active account)."""

    kind = ErrorKind.FAILED_PRECONDITION


class AuthenticationError(TapbridgeException):
    """Raised when the request carries no valid access token."""

    kind = ErrorKind.UNAUTHENTICATED

    def __init__(self, message: Optional[str] = "Authentication required"):
        """Create a new AuthenticationError instance."""
        super().__init__(message)


class NotFoundException(TapbridgeException):
    """Exception raised when an object is not found."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: Optional[str] = "Object not found"):
        """Create a new NotFoundException instance."""
        super().__init__(message)


class InvoiceConstructionError(TapbridgeException):
    """Raised when an invoice cannot be turned into a chargeable total.

    Covers a finalized invoice without line items, a zero total, or a payment intent
    returned without a client secret.
    """

    kind = ErrorKind.INTERNAL


class ExternalServiceError(TapbridgeException):
    """Exception raised when an external service fails."""

    kind = ErrorKind.INTERNAL

    def __init__(self, service_name: str, message: Optional[str] = "External service failed"):
        """Create a new ExternalServiceError instance.

        Args:
        ----
            service_name (str): The name of the external service.
            message (str, optional): The upstream error message.

        """
        self.service_name = service_name
        super().__init__(message)


def unpack_validation_error(exc: ValidationError) -> str:
    """Flatten a Pydantic validation error into a single readable message.

    Args:
    ----
        exc (ValidationError): The Pydantic validation error.

    Returns:
    -------
        str: One ``field: message`` pair per error, joined by semicolons.

    """
    error_messages = []
    for error in exc.errors():
        location = [str(loc) for loc in error["loc"] if loc not in ("body", "query")]
        field = ".".join(location)
        error_messages.append(f"{field}: {error['msg']}" if field else error["msg"])

    return "; ".join(error_messages)
