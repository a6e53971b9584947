from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4


def new_id() -> str:
    return str(uuid4())


def gen_order_number(now: Optional[datetime] = None) -> str:
    year = (now or datetime.now(timezone.utc)).year
    return f"ORD-{year}-{uuid4().hex[:8].upper()}"


def gen_invoice_number(placed_at: datetime) -> str:
    return f"INV-{placed_at.year}-{uuid4().hex[:6].upper()}"
