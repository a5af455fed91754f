"""Collectors for a monitored Postgres instance."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any

import psycopg2

from ..errors import CollectionError
from ..rate import RateTracker
from ..samples import PostgresDatabaseSample, PostgresTableSample
from .base import BaseCollector

logger = logging.getLogger(__name__)

DATABASE_STATS_QUERY = """
SELECT tup_returned, tup_fetched, tup_inserted, tup_updated, tup_deleted
  FROM pg_stat_database
 WHERE datname = %s
 LIMIT 1
"""

TABLE_STATS_QUERY = """
SELECT c.relname, c.reltuples, pg_total_relation_size(c.oid)
  FROM pg_class c
  LEFT JOIN pg_namespace n ON n.oid = c.relnamespace
 WHERE c.relkind = 'r'
   AND n.nspname NOT IN ('pg_catalog', 'information_schema')
   AND c.relname NOT LIKE 'pg\\_%'
   AND c.relname NOT LIKE 'sql\\_%'
"""


class PostgresConnection:
    """Long-lived connection to the monitored instance.

    Shared by the database and table collectors. The connection is opened
    lazily and dropped after any error so the next tick reconnects.
    """

    def __init__(self, dsn: str, connect_timeout: int = 10) -> None:
        self._dsn = dsn
        self._connect_timeout = connect_timeout
        self._conn: Any = None
        self._lock = threading.Lock()

    def query(self, sql: str, params: tuple[Any, ...] | None = None) -> list[tuple[Any, ...]]:
        with self._lock:
            try:
                if self._conn is None or self._conn.closed:
                    self._conn = psycopg2.connect(self._dsn, connect_timeout=self._connect_timeout)
                    self._conn.autocommit = True
                with self._conn.cursor() as cur:
                    cur.execute(sql, params)
                    return cur.fetchall()
            except psycopg2.Error:
                self._reset()
                raise

    def _reset(self) -> None:
        if self._conn is not None:
            try:
                self._conn.close()
            except psycopg2.Error:
                logger.debug("Ignoring error while closing monitored connection")
            self._conn = None

    def close(self) -> None:
        with self._lock:
            self._reset()


class PostgresDatabaseCollector(BaseCollector):
    """Tuple counter deltas for one database from ``pg_stat_database``."""

    def __init__(self, hostname: str, tracker: RateTracker, connection: PostgresConnection, database: str) -> None:
        super().__init__(hostname)
        self._tracker = tracker
        self._connection = connection
        self._database = database

    @property
    def name(self) -> str:
        return "postgres_database"

    def collect(self, timestamp: datetime) -> list[PostgresDatabaseSample]:
        try:
            rows = self._connection.query(DATABASE_STATS_QUERY, (self._database,))
        except psycopg2.Error as exc:
            raise CollectionError(self.name, f"statistics query failed: {exc}") from exc
        if not rows:
            raise CollectionError(self.name, f"database {self._database!r} not found in pg_stat_database")

        counters = tuple(int(v or 0) for v in rows[0])
        delta = self._tracker.update(self.name, self._database, counters, timestamp)
        if delta is None:
            return []
        returned, fetched, inserted, updated, deleted = (int(v) for v in delta.values)
        return [PostgresDatabaseSample(
            self.hostname, timestamp, returned, fetched, inserted, updated, deleted,
        )]

    def close(self) -> None:
        self._connection.close()


class PostgresTablesCollector(BaseCollector):
    """Estimated row count and total size for every user table."""

    def __init__(self, hostname: str, connection: PostgresConnection) -> None:
        super().__init__(hostname)
        self._connection = connection

    @property
    def name(self) -> str:
        return "postgres_tables"

    def collect(self, timestamp: datetime) -> list[PostgresTableSample]:
        try:
            rows = self._connection.query(TABLE_STATS_QUERY)
        except psycopg2.Error as exc:
            raise CollectionError(self.name, f"table size query failed: {exc}") from exc

        # reltuples is -1 for tables never analyzed
        return [
            PostgresTableSample(self.hostname, timestamp, name, max(int(reltuples or 0), 0), int(total or 0))
            for name, reltuples, total in rows
        ]

    def close(self) -> None:
        self._connection.close()
