import logging
import os

from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.responses import FileResponse

from storefront.api.deps import (
    get_invoice_service,
    get_order_service,
    require_superadmin,
)
from storefront.schemas.order_schema import OrderCreateIn, StatusUpdateIn
from storefront.services.inventory_service import InventoryException
from storefront.services.invoice_service import InvoiceService
from storefront.services.order_service import (
    OrderNotFound,
    OrderService,
    OrderServiceException,
)

log = logging.getLogger("storefront.orders")

router = APIRouter(tags=["orders"])


def _invoice_download(svc: InvoiceService, order):
    path = svc.invoice_file_for(order)
    if path is None or not os.path.exists(path):
        raise HTTPException(status_code=404, detail="Invoice not found")
    return FileResponse(
        path, media_type="application/pdf", filename=os.path.basename(path)
    )


@router.get("", summary="List orders, newest first")
def list_orders(svc: OrderService = Depends(get_order_service)):
    return svc.list_orders()


@router.get("/transaction/{transaction_id}", summary="Get order by transaction id")
def get_order_by_transaction(
    transaction_id: str, svc: OrderService = Depends(get_order_service)
):
    order = svc.find_order_by_transaction(transaction_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.get("/{order_id}", summary="Get order")
def get_order(order_id: str, svc: OrderService = Depends(get_order_service)):
    order = svc.find_order_by_id(order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.post(
    "",
    status_code=201,
    summary="Create order (checkout)",
    dependencies=[Depends(require_superadmin)],
)
def create_order(payload: OrderCreateIn, svc: OrderService = Depends(get_order_service)):
    try:
        return svc.create_order(payload)
    except (OrderServiceException, InventoryException) as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch(
    "/{order_id}/status",
    summary="Change order status",
    dependencies=[Depends(require_superadmin)],
)
def update_status(
    order_id: str,
    payload: StatusUpdateIn,
    svc: OrderService = Depends(get_order_service),
):
    try:
        return svc.update_order_status(order_id, payload.status, actor=payload.actor)
    except OrderNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except OrderServiceException as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete(
    "/{order_id}",
    status_code=204,
    summary="Delete order",
    dependencies=[Depends(require_superadmin)],
)
def delete_order(order_id: str, svc: OrderService = Depends(get_order_service)):
    try:
        svc.delete_order(order_id)
    except OrderNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(status_code=204)


@router.post(
    "/transaction/{transaction_id}/invoices",
    status_code=201,
    summary="Generate invoice by transaction id",
    dependencies=[Depends(require_superadmin)],
)
def generate_invoice_by_transaction(
    transaction_id: str, svc: InvoiceService = Depends(get_invoice_service)
):
    try:
        return svc.upsert_invoice_by_transaction(transaction_id)["invoice"]
    except OrderNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post(
    "/{order_id}/invoices",
    status_code=201,
    summary="Generate invoice",
    dependencies=[Depends(require_superadmin)],
)
def generate_invoice(order_id: str, svc: InvoiceService = Depends(get_invoice_service)):
    try:
        return svc.upsert_invoice_for_order(order_id)["invoice"]
    except OrderNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/transaction/{transaction_id}/invoice", summary="Download invoice PDF")
def download_invoice_by_transaction(
    transaction_id: str, svc: InvoiceService = Depends(get_invoice_service)
):
    return _invoice_download(svc, svc.orders.find_order_by_transaction(transaction_id))


@router.get("/{order_id}/invoice", summary="Download invoice PDF")
def download_invoice(order_id: str, svc: InvoiceService = Depends(get_invoice_service)):
    return _invoice_download(svc, svc.orders.find_order_by_id(order_id))
