"""CRUD operations for the application."""

from .crud_stripe_details import stripe_details
from .crud_user import user

__all__ = ["stripe_details", "user"]
