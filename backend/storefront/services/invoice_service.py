import logging
import os
from datetime import datetime, timezone
from typing import Dict, Optional

from sqlalchemy.orm import sessionmaker

from storefront.adapters.invoice_pdf import InvoicePdfRenderer
from storefront.config import Settings
from storefront.db import dialect_insert
from storefront.models.invoice import Invoice
from storefront.services.order_service import (
    OrderNotFound,
    OrderService,
    record_order_event,
)
from storefront.utils.filesystem import ensure_directory
from storefront.utils.ids import gen_invoice_number
from storefront.utils.transactions import scoped_transaction

log = logging.getLogger("storefront.invoices")

INVOICES_SUBDIR = "invoices"


class InvoiceService:
    def __init__(
        self,
        session_factory: sessionmaker,
        settings: Settings,
        renderer: Optional[InvoicePdfRenderer] = None,
    ):
        self.session_factory = session_factory
        self.settings = settings
        self.orders = OrderService(session_factory, settings)
        self.renderer = renderer or InvoicePdfRenderer()

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def upsert_invoice_for_order(self, order_id: str) -> Dict:
        """
        Render the order's invoice PDF and upsert its invoice row. The invoice
        number is generated once and reused on every regeneration; the file is
        overwritten and generated_at refreshed.
        """
        order = self.orders.find_order_by_id(order_id)
        if order is None:
            raise OrderNotFound("Order not found")

        if order["invoice"]:
            invoice_number = order["invoice"]["invoiceNumber"]
        else:
            invoice_number = gen_invoice_number(
                datetime.fromisoformat(order["placedAt"])
            )

        relative_path = os.path.join(INVOICES_SUBDIR, f"{invoice_number}.pdf")
        ensure_directory(self.settings.invoices_dir)
        self.renderer.render(
            order, invoice_number, self.settings.resolve_upload_path(relative_path)
        )

        with scoped_transaction(self.session_factory) as db:
            stmt = dialect_insert(db, Invoice).values(
                order_id=order["id"],
                invoice_number=invoice_number,
                pdf_path=relative_path,
                generated_at=self._now(),
                total_amount=order["totalAmount"],
                currency=order["currency"],
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["order_id"],
                set_={
                    "invoice_number": stmt.excluded.invoice_number,
                    "pdf_path": stmt.excluded.pdf_path,
                    "generated_at": stmt.excluded.generated_at,
                    "total_amount": stmt.excluded.total_amount,
                    "currency": stmt.excluded.currency,
                },
            )
            db.execute(stmt)
            record_order_event(
                db,
                order["id"],
                "INVOICE_GENERATED",
                metadata={"invoiceNumber": invoice_number, "pdfPath": relative_path},
            )

        log.info(f"invoice {invoice_number} generated for order {order['orderNumber']}")
        return self.orders.find_order_by_id(order["id"])

    def upsert_invoice_by_transaction(self, transaction_id: str) -> Dict:
        order = self.orders.find_order_by_transaction(transaction_id)
        if order is None:
            raise OrderNotFound("Order not found for transaction")
        return self.upsert_invoice_for_order(order["id"])

    def invoice_file_for(self, order: Optional[Dict]) -> Optional[str]:
        """Absolute path of the order's rendered invoice, None when there is none."""
        if not order or not order.get("invoice"):
            return None
        return self.settings.resolve_upload_path(order["invoice"]["pdfPath"])
