from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String

from storefront.db import Base
from storefront.utils.ids import new_id


class Invoice(Base):
    __tablename__ = "invoices"
    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(
        String(36),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    invoice_number = Column(String(32), unique=True, nullable=False)
    # relative to the uploads root, e.g. invoices/INV-2026-1A2B3C.pdf
    pdf_path = Column(String(512), nullable=False)
    generated_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    total_amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False)
