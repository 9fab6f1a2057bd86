"""Product catalog endpoints."""

from typing import List

from fastapi import Depends

from tapbridge import schemas
from tapbridge.api import deps
from tapbridge.api.router import TrailingSlashRouter
from tapbridge.core.product_service import ProductService

router = TrailingSlashRouter()


@router.get("", response_model=schemas.ApiResponse[List[schemas.Product]])
async def list_products(
    *,
    account_id: str = Depends(deps.get_active_account_id),
    product_service: ProductService = Depends(deps.get_product_service),
) -> schemas.ApiResponse[List[schemas.Product]]:
    """List the products sellable through the reader."""
    products = await product_service.list_products(account_id)
    return schemas.success(products, "Stripe products fetched successfully")
