import math
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from storefront.db import dialect_insert
from storefront.models.inventory import InventoryEvent, InventoryItem


class InventoryException(Exception):
    pass


class InventoryRecordMissing(InventoryException):
    pass


def default_reorder_point(on_hand: int) -> int:
    # quarter of the opening stock, rounded half-up, never below 1
    return max(math.floor(on_hand * 0.25 + 0.5), 1)


class InventoryService:
    """
    Inventory counters and their audit log. Operates on the caller's session
    and never commits: every mutation belongs to the caller's transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def record_event(
        self,
        product_id: str,
        event_type: str,
        delta: int,
        source: str,
        metadata: Optional[Dict] = None,
        order_id: Optional[str] = None,
    ) -> InventoryEvent:
        ev = InventoryEvent(
            product_id=product_id,
            order_id=order_id,
            event_type=event_type,
            delta=delta,
            source=source,
            data=metadata,
        )
        self.db.add(ev)
        self.db.flush()
        return ev

    def allocate(
        self, order_id: str, order_item_id: str, product_id: str, sku: str, qty: int
    ) -> Tuple[int, int]:
        """
        Move `qty` units from on-hand to reserved in a single UPDATE ... RETURNING
        and append an ORDER_ALLOCATED event. No sufficiency check: on_hand may go
        negative. Returns (on_hand, reserved) after the update.
        """
        stmt = (
            update(InventoryItem)
            .where(InventoryItem.product_id == product_id)
            .values(
                on_hand=InventoryItem.on_hand - qty,
                reserved=InventoryItem.reserved + qty,
                updated_at=self._now(),
            )
            .returning(InventoryItem.on_hand, InventoryItem.reserved)
            .execution_options(synchronize_session=False)
        )
        row = self.db.execute(stmt).first()
        if row is None:
            raise InventoryRecordMissing(
                f"Inventory record missing for product {product_id}"
            )

        self.record_event(
            product_id,
            "ORDER_ALLOCATED",
            -abs(qty),
            "order.create",
            {"orderItemId": order_item_id, "sku": sku, "quantity": qty},
            order_id=order_id,
        )
        return row.on_hand, row.reserved

    def get_on_hand(self, product_id: str) -> Optional[int]:
        return self.db.execute(
            select(InventoryItem.on_hand).where(InventoryItem.product_id == product_id)
        ).scalar_one_or_none()

    def upsert_stock(
        self,
        product_id: str,
        on_hand: int,
        reserved: Optional[int] = None,
        safety_stock: Optional[int] = None,
        reorder_point: Optional[int] = None,
    ) -> Dict:
        """Insert or fully replace the inventory counters of a product."""
        values = {
            "product_id": product_id,
            "on_hand": on_hand,
            "reserved": reserved if reserved is not None else 0,
            "safety_stock": safety_stock if safety_stock is not None else 0,
            "reorder_point": (
                reorder_point
                if reorder_point is not None
                else default_reorder_point(on_hand)
            ),
            "updated_at": self._now(),
        }
        stmt = dialect_insert(self.db, InventoryItem).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["product_id"],
            set_={
                "on_hand": stmt.excluded.on_hand,
                "reserved": stmt.excluded.reserved,
                "safety_stock": stmt.excluded.safety_stock,
                "reorder_point": stmt.excluded.reorder_point,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        self.db.execute(stmt)
        return values
