from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, String

from storefront.db import Base
from storefront.utils.ids import new_id

ADMIN_ROLES = ("superadmin", "viewer")


class AdminUser(Base):
    __tablename__ = "admin_users"
    __table_args__ = (
        CheckConstraint(
            "role IN ('superadmin', 'viewer')", name="admin_users_role_check"
        ),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(256), unique=True, nullable=False, index=True)
    password_hash = Column(String(128), nullable=False)
    role = Column(String(16), nullable=False, default="viewer")
    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
