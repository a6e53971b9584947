import logging
import os

from sqlalchemy import create_engine, event
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from storefront.config import settings

log = logging.getLogger("storefront.db")

DATABASE_URL = settings.DATABASE_URL
engine = create_engine(DATABASE_URL, future=True, echo=False)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# every module declaring tables; add new modules here
MODEL_MODULES = [
    "storefront.models.category",
    "storefront.models.product",
    "storefront.models.inventory",
    "storefront.models.customer",
    "storefront.models.order",
    "storefront.models.invoice",
    "storefront.models.admin_user",
]


@event.listens_for(engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # cascades on orders/products rely on enforced foreign keys
    if engine.dialect.name != "sqlite":
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def dialect_insert(session: Session, model):
    """
    Return an INSERT construct for `model` that supports ON CONFLICT clauses
    on the dialect the session is bound to.
    """
    if session.get_bind().dialect.name == "postgresql":
        return pg_insert(model)
    return sqlite_insert(model)


def init_db(reset: bool = False):
    """
    Initialize DB schema and seed the bootstrap admin account.

    Behavior:
      - If `reset` is true or RESET_DB env var is set to 1/true/yes, drop & recreate tables.
      - Otherwise, leave existing tables in place and only create missing ones.

    Model modules are imported here so metadata is populated.
    """
    import importlib

    for mod in MODEL_MODULES:
        importlib.import_module(mod)

    env_reset = os.environ.get("RESET_DB", "false").lower() in ("1", "true", "yes")
    if reset or env_reset:
        log.info("Resetting database schema")
        Base.metadata.drop_all(bind=engine)

    Base.metadata.create_all(bind=engine)
    log.info("Database initialized")

    from storefront.services.admin_service import AdminService

    AdminService(SessionLocal, settings).ensure_bootstrap_admin()

