# Overview: Service-layer operations for concurrency; encapsulates business logic and database work.

from __future__ import annotations

import time

from sqlalchemy import update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import InvalidStateTransition
from ..extensions import db


def compare_and_set_status(model, entity_id: int, *, expected: str, new: str, **values) -> None:
    """
    Atomically move a row from one status to the next.

    Issues UPDATE ... SET status=:new WHERE id=:id AND status=:expected.
    When no row matches, another writer got there first (or the row was
    never in the expected state) and InvalidStateTransition is raised.

    Extra column values (timestamps, actor ids) are written in the same
    statement so the transition and its attribution land together.
    """
    stmt = (
        update(model)
        .where(model.id == entity_id, model.status == expected)
        .values(status=new, **values)
    )
    result = db.session.execute(stmt)
    if result.rowcount != 1:
        current = db.session.query(model.status).filter(model.id == entity_id).scalar()
        raise InvalidStateTransition(
            f"Cannot move {model.__tablename__} {entity_id} to {new}: "
            f"status is {current}, expected {expected}"
        )


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Domain errors are never retried.
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


def commit_with_retry(*, attempts: int = 3, backoff_base: float = 0.1):
    """Commit current session with retry handling."""
    def _op():
        db.session.commit()
    return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
