"""Request context injected into the API endpoints.

Bundles the authenticated merchant, the request id and a logger that already carries
both as dimensions.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from tapbridge import schemas
from tapbridge.core.logging import ContextualLogger


class ApiContext(BaseModel):
    """Unified context for API requests."""

    model_config = ConfigDict(arbitrary_types_allowed=True)  # For ContextualLogger

    request_id: str
    user: Optional[schemas.User] = None

    # Contextual logger with all dimensions pre-configured
    logger: ContextualLogger

    @property
    def user_id(self) -> Optional[UUID]:
        """User ID if available."""
        return self.user.id if self.user else None

    def __str__(self) -> str:
        """String representation for logging."""
        if self.user:
            return f"ApiContext(request_id={self.request_id[:8]}..., user={self.user.email})"
        return f"ApiContext(request_id={self.request_id[:8]}..., anonymous)"
