from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Text,
)

from storefront.db import Base
from storefront.utils.ids import new_id

PRODUCT_STATUSES = ("draft", "active", "inactive")


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'active', 'inactive')", name="products_status_check"
        ),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    sku = Column(String(64), unique=True, index=True, nullable=False)
    name = Column(String(256), nullable=False)
    description = Column(Text, nullable=True)
    product_details = Column(JSON, nullable=False, default=list)
    product_story = Column(Text, nullable=True)
    material_info = Column(Text, nullable=True)
    care_instructions = Column(JSON, nullable=False, default=list)
    features = Column(JSON, nullable=False, default=list)
    price = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    status = Column(String(16), nullable=False, default="active")
    image_primary_path = Column(String(512), nullable=True)
    image_primary_alt = Column(String(256), nullable=True)
    colorways = Column(JSON, nullable=False, default=list)
    size_scale = Column(JSON, nullable=False, default=list)
    category = Column(
        String(64),
        ForeignKey("product_categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self):
        return f"<Product sku={self.sku} name={self.name}>"


class ProductMedia(Base):
    __tablename__ = "product_media"
    id = Column(String(36), primary_key=True, default=new_id)
    product_id = Column(
        String(36),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    media_type = Column(String(16), nullable=False, default="image")
    file_path = Column(String(512), nullable=False)
    alt_text = Column(String(256), nullable=True)
    is_primary = Column(Boolean, nullable=False, default=False)
    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
