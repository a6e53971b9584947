import logging
from typing import Dict, Optional

import bcrypt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from storefront.config import Settings
from storefront.models.admin_user import ADMIN_ROLES, AdminUser
from storefront.utils.transactions import scoped_transaction

log = logging.getLogger("storefront.admin")

# bcrypt only considers the first 72 bytes and newer releases reject longer input
MAX_PASSWORD_BYTES = 72


class AdminServiceException(Exception):
    pass


class DuplicateAdmin(AdminServiceException):
    pass


def _admin_record(admin: AdminUser) -> Dict:
    return {"id": admin.id, "email": admin.email, "role": admin.role}


class AdminService:
    def __init__(self, session_factory: sessionmaker, settings: Settings):
        self.session_factory = session_factory
        self.settings = settings

    def hash_password(self, password: str) -> str:
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise AdminServiceException("Password must be at most 72 bytes")
        salt = bcrypt.gensalt(rounds=self.settings.BCRYPT_ROUNDS)
        return bcrypt.hashpw(encoded, salt).decode("ascii")

    def find_admin_by_email(self, email: str) -> Optional[AdminUser]:
        with self.session_factory() as db:
            return db.execute(
                select(AdminUser).where(AdminUser.email == email)
            ).scalar_one_or_none()

    def authenticate_admin(self, email: str, password: str) -> Optional[Dict]:
        admin = self.find_admin_by_email(email)
        if admin is None:
            return None
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            return None
        if not bcrypt.checkpw(encoded, admin.password_hash.encode("ascii")):
            return None
        return _admin_record(admin)

    def create_admin_user(self, email: str, password: str, role: str = "viewer") -> Dict:
        if role not in ADMIN_ROLES:
            raise AdminServiceException(f"Unknown admin role: {role}")
        password_hash = self.hash_password(password)
        try:
            with scoped_transaction(self.session_factory) as db:
                admin = AdminUser(email=email, password_hash=password_hash, role=role)
                db.add(admin)
                db.flush()
                record = _admin_record(admin)
        except IntegrityError:
            raise DuplicateAdmin("An admin with that email already exists")
        log.info(f"admin {email} created with role {role}")
        return record

    def ensure_bootstrap_admin(self) -> Optional[Dict]:
        """
        Make sure the configured admin account exists as a superadmin; an
        existing account with that email is promoted.
        """
        email = self.settings.ADMIN_EMAIL
        password = self.settings.ADMIN_PASSWORD
        if not email or not password:
            return None
        with scoped_transaction(self.session_factory) as db:
            admin = db.execute(
                select(AdminUser).where(AdminUser.email == email)
            ).scalar_one_or_none()
            if admin is None:
                admin = AdminUser(
                    email=email,
                    password_hash=self.hash_password(password),
                    role="superadmin",
                )
                db.add(admin)
                log.info(f"seeded superadmin {email}")
            else:
                admin.role = "superadmin"
            db.flush()
            return _admin_record(admin)
