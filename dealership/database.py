"""Dealership Database Module.

Connection pool and cursor helpers shared by every repository.
"""
import os
import time
import logging
import threading

import psycopg2
from psycopg2 import pool
from psycopg2.extras import RealDictCursor


logger = logging.getLogger('dealership.database')

# PostgreSQL connection - DATABASE_URL is required
DATABASE_URL = os.environ.get('DATABASE_URL')

if not DATABASE_URL:
    raise ValueError("DATABASE_URL environment variable is required. Set it to your PostgreSQL connection string.")

_connection_pool = None
_pool_lock = threading.Lock()

POOL_MIN_CONN = int(os.environ.get('DB_POOL_MIN_CONN', '2'))
POOL_MAX_CONN = int(os.environ.get('DB_POOL_MAX_CONN', '8'))
POOL_GETCONN_TIMEOUT = int(os.environ.get('DB_POOL_TIMEOUT', '10'))


def _get_pool():
    """Get or create the connection pool (lazy initialization, thread-safe)."""
    global _connection_pool
    if _connection_pool is None:
        with _pool_lock:
            if _connection_pool is None:
                _connection_pool = pool.ThreadedConnectionPool(
                    minconn=POOL_MIN_CONN,
                    maxconn=POOL_MAX_CONN,
                    dsn=DATABASE_URL,
                    keepalives=1,
                    keepalives_idle=30,
                    keepalives_interval=10,
                    keepalives_count=5,
                    connect_timeout=5,
                )
                logger.info(f'Connection pool created: min={POOL_MIN_CONN}, max={POOL_MAX_CONN}')
    return _connection_pool


def _getconn_with_timeout(timeout=None):
    """Get connection from pool, failing after `timeout` seconds.

    ThreadedConnectionPool.getconn() blocks forever when the pool is exhausted,
    so the call runs in a helper thread that we stop waiting on. A connection
    the helper obtains after the caller gave up goes straight back to the pool.
    """
    if timeout is None:
        timeout = POOL_GETCONN_TIMEOUT

    result = [None]
    error = [None]
    timed_out = [False]
    handoff_lock = threading.Lock()

    def _get():
        try:
            conn = _get_pool().getconn()
        except Exception as e:
            error[0] = e
            return
        with handoff_lock:
            if not timed_out[0]:
                result[0] = conn
                return
        logger.warning('Returning connection obtained after getconn timeout')
        _get_pool().putconn(conn)

    t = threading.Thread(target=_get, daemon=True)
    t.start()
    t.join(timeout=timeout)

    with handoff_lock:
        if result[0] is None and error[0] is None:
            timed_out[0] = True
    if timed_out[0]:
        raise psycopg2.OperationalError(
            f"Connection pool exhausted, timed out after {timeout}s waiting for available connection"
        )
    if error[0]:
        raise error[0]
    return result[0]


def get_db():
    """Get a healthy connection from the pool in autocommit mode.

    Stale connections (closed by the server) are discarded; up to 3 attempts.
    """
    max_retries = 3
    last_error = None

    for attempt in range(max_retries):
        conn = _getconn_with_timeout()
        try:
            with conn.cursor() as cur:
                cur.execute('SELECT 1')
            conn.rollback()
            conn.autocommit = True
            return conn
        except (psycopg2.OperationalError, psycopg2.InterfaceError, psycopg2.DatabaseError) as e:
            last_error = e
            logger.warning(f'Stale connection discarded (attempt {attempt + 1}/{max_retries}): {e}')
            try:
                _get_pool().putconn(conn, close=True)
            except Exception:
                pass

    raise psycopg2.OperationalError(f"Failed to get valid connection after {max_retries} attempts: {last_error}")


def release_db(conn):
    """Return connection to pool, closing it instead if it is broken."""
    if conn and _connection_pool:
        try:
            if conn.closed:
                try:
                    _connection_pool.putconn(conn, close=True)
                except Exception:
                    pass
                return
            conn.autocommit = False
            _connection_pool.putconn(conn)
        except Exception:
            try:
                _connection_pool.putconn(conn, close=True)
            except Exception:
                pass


_ping_cache = {'ok': False, 'ts': 0}


def ping_db():
    """Ping the database. Successful pings are cached for 5 seconds.

    Returns True if successful, False otherwise.
    """
    now = time.time()
    if _ping_cache['ok'] and (now - _ping_cache['ts']) < 5:
        return True

    try:
        conn = get_db()
        try:
            with conn.cursor() as cur:
                cur.execute('SELECT 1')
            _ping_cache['ok'] = True
            _ping_cache['ts'] = now
            return True
        finally:
            release_db(conn)
    except psycopg2.Error as e:
        logger.warning(f'Database ping failed: {e}')
        _ping_cache['ok'] = False
        return False


def get_cursor(conn):
    """Get cursor with dict row factory."""
    return conn.cursor(cursor_factory=RealDictCursor)


def init_db(seed_demo=True):
    """Create the cars table and its indexes if needed.

    The statements live in migrations.init_schema and are idempotent, so
    every worker may call this on start-up.
    """
    from migrations.init_schema import create_schema

    conn = get_db()
    try:
        conn.autocommit = False
        cursor = get_cursor(conn)
        create_schema(cursor, seed_demo=seed_demo)
        conn.commit()
        logger.info('Database schema initialized successfully')
    except Exception:
        conn.rollback()
        raise
    finally:
        release_db(conn)


def dict_from_row(row):
    """Convert a database row to a dictionary with ISO-formatted dates."""
    if row is None:
        return None
    result = dict(row)
    for key, value in result.items():
        if hasattr(value, 'isoformat'):
            result[key] = value.isoformat()
    return result
