from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from storefront.api.deps import (
    get_category_service,
    get_product_service,
    require_superadmin,
)
from storefront.schemas.product_schema import CategoryIn, ProductIn
from storefront.services.category_service import CategoryService, DuplicateCategory
from storefront.services.product_service import ProductNotFound, ProductService

router = APIRouter(tags=["catalogue"])


def _check_category(categories: CategoryService, payload: ProductIn):
    if payload.category and not categories.category_exists(payload.category):
        raise HTTPException(
            status_code=400, detail=f"Unknown category: {payload.category}"
        )


@router.get("", summary="List products")
def list_products(
    category: Optional[str] = Query(None),
    svc: ProductService = Depends(get_product_service),
):
    return svc.list_products(category)


@router.get("/new", summary="Newest products")
def list_new_products(
    limit: int = Query(12),
    svc: ProductService = Depends(get_product_service),
):
    return svc.list_recent_products(max(1, min(limit, 50)))


@router.get("/categories", summary="Categories with product counts")
def list_categories(svc: CategoryService = Depends(get_category_service)):
    return svc.list_category_summaries()


@router.post(
    "/categories",
    status_code=201,
    summary="Create category",
    dependencies=[Depends(require_superadmin)],
)
def create_category(
    payload: CategoryIn, svc: CategoryService = Depends(get_category_service)
):
    try:
        return svc.create_category(payload)
    except DuplicateCategory as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("/{product_id}", summary="Get product")
def get_product(product_id: str, svc: ProductService = Depends(get_product_service)):
    product = svc.get_product_by_id(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.post(
    "",
    status_code=201,
    summary="Create product",
    dependencies=[Depends(require_superadmin)],
)
def create_product(
    payload: ProductIn,
    svc: ProductService = Depends(get_product_service),
    categories: CategoryService = Depends(get_category_service),
):
    _check_category(categories, payload)
    return svc.create_product(payload)


@router.put(
    "/{product_id}",
    summary="Replace product",
    dependencies=[Depends(require_superadmin)],
)
def update_product(
    product_id: str,
    payload: ProductIn,
    svc: ProductService = Depends(get_product_service),
    categories: CategoryService = Depends(get_category_service),
):
    _check_category(categories, payload)
    try:
        return svc.update_product(product_id, payload)
    except ProductNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete(
    "/{product_id}",
    status_code=204,
    summary="Delete product",
    dependencies=[Depends(require_superadmin)],
)
def delete_product(product_id: str, svc: ProductService = Depends(get_product_service)):
    try:
        svc.delete_product_by_id(product_id)
    except ProductNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(status_code=204)
