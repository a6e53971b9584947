from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session, sessionmaker


@contextmanager
def scoped_transaction(session_factory: sessionmaker) -> Iterator[Session]:
    """
    Open a session and begin its transaction together. Commits on normal
    exit, rolls back and re-raises on any exception, and always releases the
    session. A caller that decides nothing should be written may call
    `db.rollback()` and leave the block early; nothing is committed then.
    Usage:
        with scoped_transaction(self.session_factory) as db:
            ... DB work ...
    """
    with session_factory() as db:
        tx = db.begin()
        try:
            yield db
        except Exception:
            if tx.is_active:
                tx.rollback()
            raise
        if tx.is_active:
            tx.commit()
