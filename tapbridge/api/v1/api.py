"""API routes for the FastAPI application."""

from tapbridge.api.router import TrailingSlashRouter
from tapbridge.api.v1.endpoints import payments, products, readers, stripe_connect, users

api_router = TrailingSlashRouter(prefix="/api")
api_router.include_router(stripe_connect.router, prefix="/stripe", tags=["stripe"])
api_router.include_router(readers.router, prefix="/readers", tags=["readers"])
api_router.include_router(payments.router, prefix="/payments", tags=["payments"])
api_router.include_router(products.router, prefix="/products", tags=["products"])
api_router.include_router(users.router, prefix="/user", tags=["user"])
