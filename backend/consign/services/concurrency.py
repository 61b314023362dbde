# Overview: Service-layer operations for concurrency; encapsulates business logic and database work.

from __future__ import annotations

import time

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import ConflictError


class TransactionFailedError(RuntimeError):
    """
    The store was unavailable or the transaction aborted.

    Nothing from the operation was committed, so the caller may retry.
    """


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts).
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def run_in_transaction(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run func as one unit of work and commit it.

    - Domain errors roll the session back and propagate unchanged.
    - Unique-constraint violations become ConflictError.
    - Any other SQLAlchemyError (after retries) becomes TransactionFailedError.

    Either every row written by func is committed or none is.
    """
    def _op():
        result = func()
        db.session.commit()
        return result

    try:
        return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError(f"conflicting record: {exc.orig}") from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise TransactionFailedError(f"transaction failed: {exc.__class__.__name__}") from exc
    except Exception:
        db.session.rollback()
        raise
