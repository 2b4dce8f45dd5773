# Overview: Transaction and row-locking helpers shared by the services.

from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from ..errors import PersistenceFailure
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    Stock writes therefore never rely on the lock alone; see
    catalog_service.decrement_quantity.
    """
    return query.with_for_update()


@contextmanager
def atomic():
    """
    Run the enclosed block as one all-or-nothing unit of work.

    Commits on normal exit. Any exception rolls the session back before it
    propagates; storage-layer errors surface as PersistenceFailure. There is
    no retry: the caller decides whether to resubmit.
    """
    try:
        yield db.session
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise PersistenceFailure(details={"cause": exc.__class__.__name__}) from exc
    except Exception:
        db.session.rollback()
        raise
