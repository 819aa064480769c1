# Overview: Transactional scope for compound writes (stock + ledger).

from __future__ import annotations

import threading
from contextlib import contextmanager

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import StorageError
from ..extensions import db

# One writer at a time inside this process. Re-entrant so a unit of work can
# call helpers that open their own (nested) unit.
_write_lock = threading.RLock()
_state = threading.local()


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    On SQLite the process-wide write lock is what serializes writers.
    """
    return query.with_for_update()


@contextmanager
def unit_of_work():
    """
    Run a check-then-write sequence as one indivisible unit.

    Holds the process write lock for the whole body, commits on normal exit
    and rolls back on any exception. SQLAlchemy failures are re-raised as
    StorageError; business errors (ProductNotFound, InsufficientStock, ...)
    propagate unchanged after the rollback.

    Nested units join the outermost one: only the outermost commits.

    Usage:
        with unit_of_work() as session:
            product = lock_for_update(session.query(Product).filter_by(id=pid)).first()
            product.stock_level -= qty
            session.add(Sale(...))
    """
    with _write_lock:
        depth = getattr(_state, "depth", 0)
        if depth:
            _state.depth = depth + 1
            try:
                yield db.session
            finally:
                _state.depth = depth
            return

        _state.depth = 1
        try:
            yield db.session
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.warning("Unit of work rolled back after storage failure", exc_info=True)
            raise StorageError(
                "Storage failure; no changes were saved",
                details={"error": exc.__class__.__name__},
            ) from exc
        except Exception:
            db.session.rollback()
            raise
        finally:
            _state.depth = 0
