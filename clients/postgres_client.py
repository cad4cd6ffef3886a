"""
PostgreSQL access for the services.

psycopg2 ThreadedConnectionPool, one pool per database URL. Rows come back
as plain dicts (RealDictCursor). UUID parameters are passed as strings.

Every statement runs inside a Transaction. The convenience methods on
PostgresClient open a one-statement transaction; services doing
read-check-write work open one explicitly with transaction() and may take an
advisory lock on it to serialize with concurrent requests.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, List, Tuple
from uuid import UUID

import psycopg2
import psycopg2.extras
import psycopg2.pool

logger = logging.getLogger(__name__)

Params = Tuple | Dict | None

_jsonb_registered = False


def _adapt(value: Any) -> Any:
    """Stringify UUIDs, including inside lists (for ANY(%s::uuid[])) and tuples."""
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (list, tuple)):
        return type(value)(_adapt(v) for v in value)
    if isinstance(value, dict):
        return {k: _adapt(v) for k, v in value.items()}
    return value


class Transaction:
    """
    An open connection on which statements run until the owning
    ``PostgresClient.transaction()`` block commits or rolls back.
    """

    def __init__(self, conn):
        self._conn = conn

    def execute(self, query: str, params: Params = None) -> List[Dict[str, Any]]:
        """Run a statement. Returns its rows as dicts, [] when it yields none."""
        with self._conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
            cur.execute(query, _adapt(params))
            if cur.description is None:
                return []
            return [dict(row) for row in cur.fetchall()]

    def execute_single(self, query: str, params: Params = None) -> Dict[str, Any] | None:
        """First row of the statement, or None."""
        rows = self.execute(query, params)
        return rows[0] if rows else None

    def execute_returning(self, query: str, params: Params = None) -> List[Dict[str, Any]]:
        """INSERT/UPDATE/DELETE ... RETURNING; the returned rows."""
        return self.execute(query, params)

    def lock(self, key: str) -> None:
        """
        Block until this transaction holds the advisory lock for ``key``.

        Released automatically at commit or rollback.
        """
        with self._conn.cursor() as cur:
            cur.execute("SELECT pg_advisory_xact_lock(hashtext(%s))", (key,))


class PostgresClient:
    """
    Pooled PostgreSQL client.

    Usage:
        db = PostgresClient(database_url)

        row = db.execute_single("SELECT * FROM invoices WHERE id = %s", (invoice_id,))

        with db.transaction() as tx:
            tx.lock(f"invoices:{org_id}")
            last = tx.execute_single("SELECT invoice_no FROM invoices ...")
            tx.execute_single("INSERT INTO invoices ... RETURNING *", (...))
    """

    _pools: Dict[str, psycopg2.pool.ThreadedConnectionPool] = {}
    _pools_lock = threading.RLock()

    def __init__(self, database_url: str, min_connections: int = 2, max_connections: int = 20):
        self._database_url = database_url
        self._min_connections = min_connections
        self._max_connections = max_connections
        self._pool()

    def _pool(self) -> psycopg2.pool.ThreadedConnectionPool:
        """The pool for this URL, created on first use."""
        global _jsonb_registered
        with self._pools_lock:
            pool = self._pools.get(self._database_url)
            if pool is None:
                pool = psycopg2.pool.ThreadedConnectionPool(
                    minconn=self._min_connections,
                    maxconn=self._max_connections,
                    dsn=self._database_url,
                    connect_timeout=30,
                )
                if not _jsonb_registered:
                    psycopg2.extras.register_default_jsonb(globally=True)
                    _jsonb_registered = True
                self._pools[self._database_url] = pool
                logger.info(
                    "Connection pool created (%d-%d connections)",
                    self._min_connections, self._max_connections,
                )
            return pool

    @contextmanager
    def transaction(self):
        """
        Unit of work on one pooled connection.

        Commits when the block exits normally; rolls back and re-raises on
        any exception. The connection goes back to the pool either way.
        """
        pool = self._pool()
        conn = pool.getconn()
        try:
            yield Transaction(conn)
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            pool.putconn(conn)

    def execute(self, query: str, params: Params = None) -> List[Dict[str, Any]]:
        """Run one statement in its own transaction. Returns rows as dicts."""
        with self.transaction() as tx:
            return tx.execute(query, params)

    def execute_single(self, query: str, params: Params = None) -> Dict[str, Any] | None:
        """First row of one statement, or None."""
        with self.transaction() as tx:
            return tx.execute_single(query, params)

    def execute_returning(self, query: str, params: Params = None) -> List[Dict[str, Any]]:
        """One INSERT/UPDATE/DELETE ... RETURNING in its own transaction."""
        with self.transaction() as tx:
            return tx.execute_returning(query, params)

    def close(self) -> None:
        """Close every connection of this URL's pool."""
        with self._pools_lock:
            pool = self._pools.pop(self._database_url, None)
            if pool is not None:
                pool.closeall()
                logger.info("Connection pool closed")
