# flake8: noqa: F401
"""Schemas for the application."""

from .account import (
    AccountStatusResponse,
    ConnectionTokenResponse,
    OAuthCallbackRequest,
    OAuthCallbackResponse,
    OAuthUrlResponse,
)
from .payment import (
    CartItem,
    CreateIntentFromProductsRequest,
    CreatePaymentIntentRequest,
    CustomerDetails,
    PaymentIntentResponse,
    ProductPaymentIntentResponse,
    RefundReason,
    RefundRequest,
    RefundResponse,
    TippingMethod,
)
from .product import Product
from .response import ApiResponse, CamelModel, ErrorResponse, success
from .stats import DailyStatOut, PaymentStats, SingleDayStats, SummaryOut, TrendStats
from .terminal import (
    Address,
    Location,
    LocationCreate,
    LocationList,
    LocationResult,
    Reader,
    ReaderRegisterRequest,
)
from .user import (
    StripeDetailsCreate,
    StripeDetailsUpdate,
    User,
    UserCreate,
    UserProfile,
    UserUpdate,
)
