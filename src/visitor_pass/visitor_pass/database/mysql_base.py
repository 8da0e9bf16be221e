from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import PersistenceError
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transaction:
    """An open connection + cursor shared by several repository calls."""

    conn: Any
    cur: Any


def _store_failure(err: Exception) -> PersistenceError:
    logger.exception("Database operation failed: %s", err)
    return PersistenceError("Storage failure, please retry later")


@contextmanager
def db_cursor(
    conn_factory: DatabaseConnection,
    *,
    tx: Optional[Transaction] = None,
    dictionary: bool = True,
) -> Iterator[tuple[Any, Any]]:
    """Yield ``(conn, cursor)``.

    Joins ``tx`` when given (commit/rollback is then left to its owner),
    otherwise opens a short-lived connection and commits on success.
    Driver errors leave as :class:`PersistenceError`.
    """
    if tx is not None:
        try:
            yield tx.conn, tx.cur
        except mysql.connector.Error as err:
            raise _store_failure(err) from err
        return

    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as err:
        raise _store_failure(err) from err

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as err:
        conn.rollback()
        raise _store_failure(err) from err
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


class MySQLTransactionManager:
    """Unit of work: every repository call given the yielded ``tx`` commits or rolls back together."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @contextmanager
    def atomic(self) -> Iterator[Transaction]:
        try:
            conn = self._conn_factory.connect()
        except mysql.connector.Error as err:
            raise _store_failure(err) from err

        cur = conn.cursor(dictionary=True)
        try:
            conn.start_transaction()
            yield Transaction(conn=conn, cur=cur)
            conn.commit()
        except mysql.connector.Error as err:
            conn.rollback()
            raise _store_failure(err) from err
        except Exception:
            conn.rollback()
            raise
        finally:
            cur.close()
            conn.close()


def is_duplicate_key(err: Exception) -> bool:
    return isinstance(err, mysql.connector.IntegrityError) and getattr(err, "errno", None) == errorcode.ER_DUP_ENTRY


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])
