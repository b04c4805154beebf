# ============================================================================
# CLAUDE CONTEXT - POSTGRESQL REPOSITORY
# ============================================================================
# STATUS: Core Infrastructure - PostgreSQL connection management
# PURPOSE: PostgreSQL access for the map features module (reads and atomic writes)
# LAST_REVIEWED: Current
# EXPORTS: PostgreSQLRepository
# DEPENDENCIES: psycopg, config
# SCOPE: Connection lifecycle, transactions, schema/table checks
# PATTERNS: Repository pattern, Per-request connections, Managed identity
# ============================================================================

"""
PostgreSQL Repository - Base Database Access

Provides PostgreSQL connection management with support for:
- Password-based and managed identity authentication (via config module)
- Per-operation connection creation (no pooling; serverless friendly)
- All-or-nothing transactions for multi-statement writes
- Safe SQL execution with psycopg.sql composition

Usage:
    from infrastructure.postgresql import PostgreSQLRepository

    repo = PostgreSQLRepository(schema_name='public')
    with repo._transaction() as cursor:
        cursor.execute(...)
        cursor.execute(...)
    # committed here, or rolled back if the block raised
"""

import logging
from contextlib import contextmanager
from typing import Optional, Tuple, Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row

from config import get_postgres_connection_string

logger = logging.getLogger(__name__)


class PostgreSQLRepository:
    """
    PostgreSQL repository base class with connection management.

    Connection Strategy:
    -------------------
    Each operation creates a NEW connection and closes it immediately after
    use. Autocommit is off: reads run in an implicit transaction that is
    closed with the connection, writes go through ``_transaction()``.
    """

    def __init__(self, connection_string: Optional[str] = None,
                 schema_name: str = 'public'):
        """
        Initialize PostgreSQL repository.

        Parameters:
        ----------
        connection_string : Optional[str]
            Explicit PostgreSQL connection string. If not provided,
            uses get_postgres_connection_string() from config module.

        schema_name : str
            Database schema the repository works in.
        """
        self.schema_name = schema_name
        self._conn_string = connection_string

    @property
    def conn_string(self) -> str:
        # Resolved lazily so managed identity tokens are fetched per use
        return self._conn_string or get_postgres_connection_string()

    @contextmanager
    def _get_connection(self):
        """
        Context manager for PostgreSQL database connections.

        1. Create connection (dict_row factory)
        2. Yield connection to caller
        3. On error: rollback pending transaction and re-raise
        4. Always: close connection

        Raises:
        ------
        psycopg.Error
            On connection or statement failures
        """
        conn = None
        try:
            logger.debug(f"Opening PostgreSQL connection (schema: {self.schema_name})")
            conn = psycopg.connect(self.conn_string, row_factory=dict_row)
            yield conn

        except psycopg.Error as e:
            logger.error(f"PostgreSQL error: {type(e).__name__}: {e}")
            if conn is not None:
                try:
                    conn.rollback()
                except psycopg.Error as rollback_error:
                    logger.warning(f"Rollback after error failed: {rollback_error}")
            raise

        finally:
            if conn is not None:
                conn.close()
                logger.debug("Connection closed")

    @contextmanager
    def _get_cursor(self, conn=None):
        """
        Context manager for cursors.

        - With conn: caller controls the transaction
        - Without conn: a new connection is opened and committed on success
        """
        if conn is not None:
            with conn.cursor() as cursor:
                yield cursor
        else:
            with self._get_connection() as new_conn:
                with new_conn.cursor() as cursor:
                    yield cursor
                new_conn.commit()

    @contextmanager
    def _transaction(self):
        """
        All-or-nothing transaction on a fresh connection.

        Every statement executed on the yielded cursor commits together when
        the block exits normally. Any exception (database or not) rolls the
        whole transaction back before propagating.
        """
        with self._get_connection() as conn:
            try:
                with conn.cursor() as cursor:
                    yield cursor
                conn.commit()
                logger.debug("Transaction committed")
            except Exception:
                conn.rollback()
                logger.warning("Transaction rolled back")
                raise

    def _execute_query(self, query: sql.Composable, params: Optional[Tuple] = None,
                       fetch: Optional[str] = None) -> Optional[Any]:
        """
        Execute a single composed query and commit.

        Parameters:
        ----------
        query : sql.Composable
            SQL built with psycopg.sql composition.
        params : Optional[Tuple]
            Values for %s placeholders.
        fetch : Optional[str]
            None | 'one' | 'all'

        Raises:
        ------
        TypeError
            If query is not a psycopg.sql object
        ValueError
            If fetch mode is invalid
        RuntimeError
            For any database operation failure
        """
        if not isinstance(query, sql.Composable):
            raise TypeError(f"Query must be sql.Composable, got {type(query)}")

        if fetch not in (None, 'one', 'all'):
            raise ValueError(f"Invalid fetch mode: {fetch}")

        try:
            with self._get_cursor() as cursor:
                cursor.execute(query, params)
                if fetch == 'one':
                    return cursor.fetchone()
                if fetch == 'all':
                    return cursor.fetchall()
                return cursor.rowcount if cursor.rowcount >= 0 else None

        except psycopg.Error as e:
            raise RuntimeError(f"Database query failed: {e}") from e

    def _table_exists(self, table_name: str) -> bool:
        """
        Check if a table exists in the repository schema.
        """
        try:
            with self._get_cursor() as cursor:
                cursor.execute("""
                    SELECT EXISTS (
                        SELECT FROM information_schema.tables
                        WHERE table_schema = %s
                        AND table_name = %s
                    ) as exists
                """, (self.schema_name, table_name))
                result = cursor.fetchone()
                return bool(result['exists']) if result else False
        except psycopg.Error as e:
            logger.error(f"Error checking table existence: {e}")
            return False
