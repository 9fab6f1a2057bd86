"""Models for the application."""

from .stripe_details import StripeDetails
from .user import User

__all__ = ["StripeDetails", "User"]
