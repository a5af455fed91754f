"""Postgres store – bulk inserts sample batches with psycopg2."""

from __future__ import annotations

import logging
from typing import Any, Sequence

import psycopg2
from psycopg2 import extras, sql

from ..errors import PersistenceError, TransientStoreError
from .base import Batch, BaseStore

logger = logging.getLogger(__name__)

_TRANSIENT = (psycopg2.OperationalError, psycopg2.InterfaceError)


class PostgresStore(BaseStore):
    """Writes batches to Postgres over one long-lived connection.

    All batches handed to :meth:`insert_batches` go in a single
    transaction, one ``execute_values`` per table. A lost connection is
    closed and reopened on the next call.
    """

    def __init__(self, dsn: str, connect_timeout: int = 10) -> None:
        self._dsn = dsn
        self._connect_timeout = connect_timeout
        self._conn: Any = None

    @property
    def connected(self) -> bool:
        return self._conn is not None and not self._conn.closed

    def connect(self) -> None:
        if self.connected:
            return
        try:
            self._conn = psycopg2.connect(self._dsn, connect_timeout=self._connect_timeout)
        except _TRANSIENT as exc:
            self._conn = None
            raise TransientStoreError(f"cannot connect to store: {exc}") from exc
        except psycopg2.Error as exc:
            self._conn = None
            raise PersistenceError(f"cannot connect to store: {exc}") from exc
        logger.info("Connected to metrics store")

    def insert_batches(self, batches: Sequence[Batch]) -> None:
        batches = [b for b in batches if b.rows]
        if not batches:
            return
        self.connect()
        try:
            with self._conn:
                with self._conn.cursor() as cur:
                    for batch in batches:
                        statement = sql.SQL("INSERT INTO {} ({}) VALUES %s").format(
                            sql.Identifier(batch.table),
                            sql.SQL(", ").join(sql.Identifier(c) for c in batch.columns),
                        )
                        extras.execute_values(cur, statement, batch.rows, page_size=len(batch.rows))
        except _TRANSIENT as exc:
            self._drop_connection()
            raise TransientStoreError(f"store connection failed: {exc}") from exc
        except psycopg2.Error as exc:
            raise PersistenceError(f"insert rejected: {exc}") from exc

    def _drop_connection(self) -> None:
        if self._conn is not None:
            try:
                self._conn.close()
            except psycopg2.Error:
                logger.debug("Ignoring error while closing store connection")
        self._conn = None

    def close(self) -> None:
        self._drop_connection()
        logger.info("Store connection closed")
