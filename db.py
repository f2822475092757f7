"""
Database connection utilities for MowerManager.
Supports both SQLite (local dev) and PostgreSQL (production).

When DATABASE_URL is set, uses PostgreSQL with connection pooling.
Otherwise, falls back to SQLite with WAL mode. All modules write
SQLite-flavoured SQL; it is translated on the fly for PostgreSQL.
"""

import os
import re
import sqlite3
import logging
from contextlib import contextmanager

logger = logging.getLogger(__name__)

DATA_DIR = os.environ.get('DATA_DIR', 'data' if os.path.exists('data') else '.')
MOWER_DB = os.path.join(DATA_DIR, 'mowermanager.db')

_DATABASE_URL = os.environ.get('DATABASE_URL')
_pg_pool = None


def _get_pg_pool():
    """Lazily initialize the PostgreSQL connection pool."""
    global _pg_pool
    if _pg_pool is None and _DATABASE_URL:
        from psycopg2 import pool
        _pg_pool = pool.ThreadedConnectionPool(
            minconn=1,
            maxconn=10,
            dsn=_DATABASE_URL
        )
        logger.info("PostgreSQL connection pool initialized (1-10 connections)")
    return _pg_pool


def is_postgres():
    """Check if we're using PostgreSQL."""
    return bool(_DATABASE_URL)


def sqlalchemy_url():
    """SQLAlchemy URL for the database get_db() opens, used by Alembic.

    postgres:// URLs are rewritten to postgresql://, which SQLAlchemy 2.x
    requires.
    """
    if _DATABASE_URL:
        if _DATABASE_URL.startswith('postgres://'):
            return _DATABASE_URL.replace('postgres://', 'postgresql://', 1)
        return _DATABASE_URL
    return f'sqlite:///{MOWER_DB}'


# ---------------------------------------------------------------------------
# SQL Conversion: SQLite → PostgreSQL
# ---------------------------------------------------------------------------

def _convert_sqlite_to_pg(sql):
    """Convert the SQLite dialect used by the managers to PostgreSQL.

    Handles:
    - ? → %s parameter placeholders
    - INTEGER PRIMARY KEY AUTOINCREMENT → SERIAL PRIMARY KEY
    - DATE('now') → CURRENT_DATE
    - INSERT ... VALUES gets RETURNING id (for lastrowid support)
    """
    sql = sql.replace('?', '%s')
    sql = sql.replace('INTEGER PRIMARY KEY AUTOINCREMENT', 'SERIAL PRIMARY KEY')
    sql = re.sub(r"[Dd][Aa][Tt][Ee]\(\s*'now'\s*\)", 'CURRENT_DATE', sql)

    stripped = sql.strip()
    upper = stripped.upper()
    if (upper.startswith('INSERT') and 'VALUES' in upper
            and 'RETURNING' not in upper):
        sql = stripped.rstrip(';') + ' RETURNING id'

    return sql


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def reset_id_sequence(conn, table):
    """Resync a SERIAL sequence after rows were inserted with explicit ids.

    SQLite tracks AUTOINCREMENT from the max rowid on its own, so this is a
    no-op there.
    """
    if not is_postgres():
        return
    conn.execute(
        f"SELECT setval(pg_get_serial_sequence('{table}', 'id'), "
        f"COALESCE((SELECT MAX(id) FROM {table}), 0) + 1, false)"
    )


def rows_to_dicts(rows):
    return [dict(row) for row in rows]


# ---------------------------------------------------------------------------
# PostgreSQL Row/Cursor/Connection Wrappers
# ---------------------------------------------------------------------------

class _PgRowWrapper:
    """Make psycopg2 rows behave like sqlite3.Row (dict-like access)."""

    def __init__(self, cursor, row):
        self._data = {}
        if cursor.description and row:
            for i, col in enumerate(cursor.description):
                self._data[col.name] = row[i]

    def __getitem__(self, key):
        if isinstance(key, int):
            return list(self._data.values())[key]
        return self._data[key]

    def __contains__(self, key):
        return key in self._data

    def get(self, key, default=None):
        return self._data.get(key, default)

    def keys(self):
        return self._data.keys()

    def items(self):
        return self._data.items()


class _PgCursorWrapper:
    """Wrap a psycopg2 cursor so callers can treat it like a sqlite3 cursor."""

    def __init__(self, cursor):
        self._cursor = cursor
        self._lastrowid = None

    def execute(self, sql, params=None):
        converted = _convert_sqlite_to_pg(sql)
        self._cursor.execute(converted, params)
        if 'RETURNING ID' in converted.upper():
            row = self._cursor.fetchone()
            self._lastrowid = row[0] if row else None
        return self

    def fetchone(self):
        row = self._cursor.fetchone()
        if row is None:
            return None
        return _PgRowWrapper(self._cursor, row)

    def fetchall(self):
        rows = self._cursor.fetchall()
        return [_PgRowWrapper(self._cursor, r) for r in rows]

    @property
    def lastrowid(self):
        return self._lastrowid

    @property
    def rowcount(self):
        return self._cursor.rowcount


class _PgConnWrapper:
    """Wrap psycopg2 connection to provide sqlite3-compatible interface."""

    def __init__(self, conn):
        self._conn = conn

    def execute(self, sql, params=None):
        if sql.strip().upper().startswith('PRAGMA'):
            return _PgCursorWrapper(self._conn.cursor())
        return _PgCursorWrapper(self._conn.cursor()).execute(sql, params)

    def cursor(self):
        return _PgCursorWrapper(self._conn.cursor())

    def commit(self):
        self._conn.commit()

    def rollback(self):
        self._conn.rollback()

    def close(self):
        # Return connection to pool instead of closing
        pool = _get_pg_pool()
        if pool:
            pool.putconn(self._conn)


# ---------------------------------------------------------------------------
# Connection Management
# ---------------------------------------------------------------------------

@contextmanager
def get_db(db_path=None):
    """
    Context manager for database connections.
    Commits when the block exits cleanly, rolls back on any exception.

    Usage:
        with get_db() as conn:
            conn.execute('SELECT ...')

    Args:
        db_path: Path to SQLite database. Ignored when using PostgreSQL.
                 Defaults to MOWER_DB.
    """
    if is_postgres():
        raw_conn = _get_pg_pool().getconn()
        conn = _PgConnWrapper(raw_conn)
    else:
        conn = sqlite3.connect(db_path or MOWER_DB)
        conn.execute('PRAGMA journal_mode=WAL')
        conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
