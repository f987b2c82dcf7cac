# Overview: Transaction and row-locking helpers shared by the write paths.

from __future__ import annotations

from contextlib import contextmanager

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_write() covers it there.
    """
    return query.with_for_update()


def begin_write() -> None:
    """
    Open the write transaction for a stock-affecting operation.

    On SQLite this issues BEGIN IMMEDIATE so the database write lock is taken
    up front and concurrent writers queue at the store instead of interleaving
    reads and writes. Other dialects rely on lock_for_update().
    """
    if db.engine.dialect.name != "sqlite":
        return
    conn = db.session.connection()
    if not conn.connection.dbapi_connection.in_transaction:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


@contextmanager
def write_transaction():
    """
    One atomic unit of work: everything inside commits together or is rolled
    back together. Failures are re-raised and never retried.
    """
    begin_write()
    try:
        yield
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
