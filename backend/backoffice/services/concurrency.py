# Overview: Row-locking and insert-race helpers shared by the ledger services.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db


def lock_for_update(query):
    """
    Hold the selected inventory or counter rows until the atomic unit ends.

    PostgreSQL and MySQL emit SELECT ... FOR UPDATE; SQLite drops the clause
    and serializes writers on its database lock.
    """
    return query.with_for_update()


def insert_if_absent(obj) -> bool:
    """
    Insert obj inside a SAVEPOINT.

    Returns False when a concurrent writer inserted the same unique key
    first; the outer transaction stays usable either way.
    """
    try:
        with db.session.begin_nested():
            db.session.add(obj)
        return True
    except IntegrityError:
        return False
