from datetime import datetime
from decimal import Decimal
from typing import Dict, List

from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

MARGIN = 48
ROW_HEIGHT = 18
LINE_LEADING = 13
ITEM_FONT = ("Helvetica", 11)
# column anchors, in points from the left edge
COL_SKU = 72
COL_PRODUCT = 140
PRODUCT_WIDTH = 200
COL_QTY_RIGHT = 400
COL_UNIT_RIGHT = 490
COL_TOTAL_RIGHT = 560


def money(currency: str, amount) -> str:
    return f"{currency} {Decimal(str(amount or 0)):.2f}"


def line_total(item: Dict) -> Decimal:
    return (
        Decimal(str(item["unitPrice"])) * item["quantity"]
        - Decimal(str(item.get("discount") or 0))
        + Decimal(str(item.get("tax") or 0))
    )


def wrap_product_name(name) -> List[str]:
    """Split a product name into lines that fit the product column."""
    font, size = ITEM_FONT
    return simpleSplit(str(name or ""), font, size, PRODUCT_WIDTH) or [""]


def _format_placed_at(value: str) -> str:
    try:
        return datetime.fromisoformat(value).strftime("%d %b %Y %H:%M")
    except (TypeError, ValueError):
        return str(value)


class InvoicePdfRenderer:
    """
    Renders an aggregated order view to an A4 invoice: header, bill-to,
    ship-to, the item table and the stored order total. Long item tables
    continue on further pages.
    """

    def __init__(self, pagesize=A4):
        self.pagesize = pagesize

    def render(self, order: Dict, invoice_number: str, file_path: str) -> str:
        width, height = self.pagesize
        pdf = canvas.Canvas(file_path, pagesize=self.pagesize)
        pdf.setTitle(f"Invoice {invoice_number}")
        currency = order["currency"]

        y = height - MARGIN
        pdf.setFont("Helvetica-Bold", 20)
        pdf.drawRightString(width - MARGIN, y - 20, "Invoice")
        y -= 48

        pdf.setFont("Helvetica", 12)
        for text in (
            f"Invoice Number: {invoice_number}",
            f"Order Number: {order['orderNumber']}",
            f"Transaction ID: {order['transactionId']}",
            f"Placed At: {_format_placed_at(order['placedAt'])}",
        ):
            pdf.drawString(COL_SKU, y, text)
            y -= ROW_HEIGHT
        y -= ROW_HEIGHT / 2

        customer = order["customer"]
        bill_to = [
            f"{customer['firstName']} {customer['lastName']}",
            customer["email"],
        ]
        if customer.get("phone"):
            bill_to.append(customer["phone"])
        y = self._block(pdf, y, "Bill To:", bill_to)

        ship = order.get("shippingAddress")
        if ship:
            locality = ", ".join(
                part for part in (ship["city"], ship["state"], ship["postalCode"]) if part
            )
            lines = [
                part
                for part in (ship["line1"], ship["line2"], locality, ship["country"])
                if part
            ]
            y = self._block(pdf, y, "Ship To:", lines)

        pdf.setFont("Helvetica-Bold", 12)
        pdf.drawString(COL_SKU, y, "Items:")
        y -= ROW_HEIGHT
        y = self._table_header(pdf, y)

        for item in order["items"]:
            name_lines = wrap_product_name(item["productName"])
            row_height = ROW_HEIGHT + LINE_LEADING * (len(name_lines) - 1)
            if y - row_height < MARGIN + ROW_HEIGHT:
                pdf.showPage()
                y = self._table_header(pdf, height - MARGIN)
            pdf.setFont(*ITEM_FONT)
            pdf.drawString(COL_SKU, y, str(item["sku"]))
            for n, text in enumerate(name_lines):
                pdf.drawString(COL_PRODUCT, y - n * LINE_LEADING, text)
            pdf.drawRightString(COL_QTY_RIGHT, y, str(item["quantity"]))
            pdf.drawRightString(COL_UNIT_RIGHT, y, money(currency, item["unitPrice"]))
            pdf.drawRightString(COL_TOTAL_RIGHT, y, money(currency, line_total(item)))
            y -= row_height

        if y < MARGIN + ROW_HEIGHT:
            pdf.showPage()
            y = height - MARGIN
        pdf.line(COL_SKU, y + 10, COL_TOTAL_RIGHT, y + 10)
        pdf.setFont("Helvetica-Bold", 12)
        pdf.drawRightString(
            COL_TOTAL_RIGHT, y - 8, f"Total: {money(currency, order['totalAmount'])}"
        )

        pdf.showPage()
        pdf.save()
        return file_path

    def _block(self, pdf, y: float, title: str, lines) -> float:
        pdf.setFont("Helvetica-Bold", 12)
        pdf.drawString(COL_SKU, y, title)
        y -= ROW_HEIGHT
        pdf.setFont("Helvetica", 12)
        for text in lines:
            pdf.drawString(COL_SKU, y, str(text))
            y -= ROW_HEIGHT
        return y - ROW_HEIGHT / 2

    def _table_header(self, pdf, y: float) -> float:
        pdf.setFont("Helvetica-Bold", 11)
        pdf.drawString(COL_SKU, y, "SKU")
        pdf.drawString(COL_PRODUCT, y, "Product")
        pdf.drawRightString(COL_QTY_RIGHT, y, "Qty")
        pdf.drawRightString(COL_UNIT_RIGHT, y, "Unit Price")
        pdf.drawRightString(COL_TOTAL_RIGHT, y, "Line Total")
        pdf.line(COL_SKU, y - 6, COL_TOTAL_RIGHT, y - 6)
        return y - ROW_HEIGHT - 6
