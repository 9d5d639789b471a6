"""Base Repository — connection handling shared by all repositories.

Provides query_one(), query_all(), execute() and execute_values() which take
a pooled connection, run the statement and release the connection again.

Usage:
    class CarRepository(BaseRepository):
        def get(self, sku):
            return self.query_one('SELECT * FROM cars WHERE sku = %s', (sku,))

        def insert_many(self, rows):
            return self.execute_values(
                'INSERT INTO cars (sku, model) VALUES %s RETURNING sku', rows
            )
"""

from psycopg2.extras import execute_values

from database import get_db, get_cursor, release_db, dict_from_row


class BaseRepository:

    # Rows per multi-row VALUES statement
    BATCH_PAGE_SIZE = 500

    def query_one(self, sql, params=None):
        """Execute a SELECT and return a single row as dict, or None."""
        conn = get_db()
        try:
            cursor = get_cursor(conn)
            cursor.execute(sql, params or ())
            row = cursor.fetchone()
            return dict_from_row(row) if row else None
        finally:
            release_db(conn)

    def query_all(self, sql, params=None):
        """Execute a SELECT and return all rows as list of dicts."""
        conn = get_db()
        try:
            cursor = get_cursor(conn)
            cursor.execute(sql, params or ())
            return [dict_from_row(r) for r in cursor.fetchall()]
        finally:
            release_db(conn)

    def execute(self, sql, params=None, returning=False):
        """Execute an INSERT/UPDATE with auto-commit.

        Args:
            sql: SQL statement
            params: Query parameters
            returning: If True, fetchone() and return dict. If False, return rowcount.

        Returns:
            dict (or None) if returning=True, else int (rowcount)
        """
        conn = get_db()
        try:
            cursor = get_cursor(conn)
            cursor.execute(sql, params or ())
            if returning:
                result = cursor.fetchone()
                conn.commit()
                return dict_from_row(result) if result else None
            conn.commit()
            return cursor.rowcount
        except Exception:
            conn.rollback()
            raise
        finally:
            release_db(conn)

    def execute_values(self, sql, rows, template=None):
        """Run a multi-row statement in a single transaction.

        `sql` must contain one `VALUES %s` placeholder and a RETURNING clause;
        the rows are sent in pages of BATCH_PAGE_SIZE. Either every page
        commits or none does.

        Returns:
            list of dicts, one per row returned by the statement
        """
        conn = get_db()
        try:
            conn.autocommit = False
            cursor = get_cursor(conn)
            returned = execute_values(
                cursor, sql, rows, template=template,
                page_size=self.BATCH_PAGE_SIZE, fetch=True,
            )
            conn.commit()
            return [dict_from_row(r) for r in returned]
        except Exception:
            conn.rollback()
            raise
        finally:
            release_db(conn)
