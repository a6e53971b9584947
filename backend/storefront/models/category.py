from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, Text

from storefront.db import Base


class Category(Base):
    __tablename__ = "product_categories"
    id = Column(String(64), primary_key=True)  # slug, immutable after creation
    label = Column(String(128), nullable=False)
    nav_label = Column(String(128), nullable=False)
    description = Column(Text, nullable=False, default="")
    sort_order = Column(Integer, nullable=False, default=100)
    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self):
        return f"<Category id={self.id} label={self.label}>"
