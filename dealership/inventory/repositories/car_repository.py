"""Car Repository — CRUD, soft delete, search and bulk writes for the cars table."""

import logging
from datetime import datetime, timezone

import psycopg2
import psycopg2.errors

from core.base_repository import BaseRepository
from core.exceptions import NotFoundError, DuplicateError
from core.utils.logging_config import log_with_context
from ..config import get_config
from ..constants import SORT_COLUMNS

logger = logging.getLogger('dealership.inventory.repositories.car')

_COLUMNS = 'sku, model, make, price, year, color, created_at, updated_at, deleted_at'

SKU_EXISTS_MESSAGE = 'This SKU already exists in the database'
NOT_INSERTED_MESSAGE = 'Car could not be inserted'
NOT_UPDATED_MESSAGE = 'Update was not applied'

# Statement-level failures of a batch. The batch is rolled back and its
# outcome re-derived from the table; anything else propagates.
_BATCH_ERRORS = (psycopg2.IntegrityError, psycopg2.DataError)


def _to_car(row):
    """Map a cars row to the API shape. The internal id is never exposed."""
    if row is None:
        return None
    return {
        'sku': row['sku'],
        'model': row['model'],
        'make': row['make'],
        'price': row['price'],
        'year': row['year'],
        'color': row['color'],
        'createdAt': row['created_at'],
        'updatedAt': row['updated_at'],
        'deletedAt': row['deleted_at'],
    }


def _like(value):
    """Substring pattern with LIKE wildcards escaped."""
    escaped = value.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
    return f'%{escaped}%'


def _empty_batch_result():
    return {'inserted': 0, 'updated': 0, 'failed': []}


class CarRepository(BaseRepository):

    # ============== Queries ==============

    def _where(self, filters):
        conditions, params = ['deleted_at IS NULL'], []
        filters = filters or {}
        for key in ('sku', 'model', 'make'):
            if filters.get(key):
                conditions.append(f'{key} ILIKE %s')
                params.append(_like(filters[key]))
        if filters.get('price_min') is not None:
            conditions.append('price >= %s')
            params.append(filters['price_min'])
        if filters.get('price_max') is not None:
            conditions.append('price <= %s')
            params.append(filters['price_max'])
        if filters.get('year_min') is not None:
            conditions.append('year >= %s')
            params.append(filters['year_min'])
        if filters.get('year_max') is not None:
            conditions.append('year <= %s')
            params.append(filters['year_max'])
        if filters.get('color'):
            conditions.append('color = %s')
            params.append(filters['color'])
        return ' AND '.join(conditions), params

    def _order_by(self, sort):
        """ORDER BY from [(field, direction), ...]; insertion order breaks ties."""
        parts = []
        for field, direction in sort or ():
            column = SORT_COLUMNS.get(field)
            if column is None:
                continue
            parts.append(f"{column} {'DESC' if direction == 'desc' else 'ASC'}")
        parts.append('id ASC')
        return ', '.join(parts)

    def list_active(self, offset=0, limit=None, sort=None, filters=None):
        """One page of active cars plus the total number of matches.

        Args:
            offset: Rows to skip
            limit: Page size, capped at the configured maximum
            sort: [(field, 'asc'|'desc'), ...] applied in order
            filters: dict with sku/model/make (substring), price_min/price_max,
                     year_min/year_max (inclusive ranges), color (exact)

        Returns:
            (cars, total) tuple
        """
        cfg = get_config()
        limit = min(limit or cfg.DEFAULT_PAGE_SIZE, cfg.MAX_PAGE_SIZE)
        offset = max(offset or 0, 0)
        where, params = self._where(filters)
        rows = self.query_all(
            f'''SELECT {_COLUMNS} FROM cars
                WHERE {where}
                ORDER BY {self._order_by(sort)}
                LIMIT %s OFFSET %s''',
            tuple(params) + (limit, offset)
        )
        count_row = self.query_one(f'SELECT COUNT(*) as count FROM cars WHERE {where}', tuple(params))
        return [_to_car(r) for r in rows], count_row['count']

    def export_rows(self, sort=None, filters=None, limit=None):
        """All active cars matching filters, for spreadsheet export."""
        limit = limit or get_config().EXPORT_MAX_ROWS
        where, params = self._where(filters)
        rows = self.query_all(
            f'''SELECT {_COLUMNS} FROM cars
                WHERE {where}
                ORDER BY {self._order_by(sort)}
                LIMIT %s''',
            tuple(params) + (limit,)
        )
        return [_to_car(r) for r in rows]

    def get_by_sku(self, sku):
        """The active car with this SKU, or None."""
        row = self.query_one(
            f'SELECT {_COLUMNS} FROM cars WHERE sku = %s AND deleted_at IS NULL',
            (sku,)
        )
        return _to_car(row)

    def count_active(self):
        return self.query_one('SELECT COUNT(*) as count FROM cars WHERE deleted_at IS NULL')['count']

    # ============== Single writes ==============

    def create(self, car):
        """Insert a car. The active-SKU unique index rejects collisions.

        Raises:
            DuplicateError: an active car already uses the SKU
        """
        try:
            row = self.execute(
                f'''INSERT INTO cars (sku, model, make, price, year, color, created_at, updated_at)
                    VALUES (%s, %s, %s, %s, %s, %s, NOW(), NOW())
                    RETURNING {_COLUMNS}''',
                (car['sku'], car['model'], car['make'], car['price'], car['year'], car['color']),
                returning=True
            )
        except psycopg2.errors.UniqueViolation:
            raise DuplicateError(car['sku'])
        logger.info(f'Car created: {car["sku"]}')
        return _to_car(row)

    def update(self, sku, data):
        """Replace the editable fields of the active car with this SKU.

        Raises:
            NotFoundError: no active car has the SKU
        """
        row = self.execute(
            f'''UPDATE cars
                SET model = %s, make = %s, price = %s, year = %s, color = %s, updated_at = NOW()
                WHERE sku = %s AND deleted_at IS NULL
                RETURNING {_COLUMNS}''',
            (data['model'], data['make'], data['price'], data['year'], data['color'], sku),
            returning=True
        )
        if not row:
            raise NotFoundError(sku)
        logger.info(f'Car updated: {sku}')
        return _to_car(row)

    def soft_delete(self, sku):
        """Stamp deleted_at on the active car and return the deleted snapshot.

        Raises:
            NotFoundError: no active car has the SKU
        """
        row = self.execute(
            f'''UPDATE cars
                SET deleted_at = NOW(), updated_at = NOW()
                WHERE sku = %s AND deleted_at IS NULL
                RETURNING {_COLUMNS}''',
            (sku,),
            returning=True
        )
        if not row:
            raise NotFoundError(sku)
        logger.info(f'Car soft-deleted: {sku}')
        return _to_car(row)

    # ============== Bulk writes ==============

    def bulk_insert(self, cars):
        """Insert validated cars as one unordered batch.

        Rows whose SKU is already active are skipped by the store instead of
        failing the batch. When fewer rows come back than were sent, the
        outcome of every item is re-derived from the table: the per-row
        result of a multi-row statement is not used for attribution.

        Returns:
            {'inserted': int, 'updated': 0, 'failed': [{'sku', 'errors'}]}
        """
        result = _empty_batch_result()
        if not cars:
            return result

        batch_ts = datetime.now(timezone.utc)
        rows = [
            (c['sku'], c['model'], c['make'], c['price'], c['year'], c['color'], batch_ts, batch_ts)
            for c in cars
        ]

        stored, batch_error = 0, None
        try:
            returned = self.execute_values(
                f'''INSERT INTO cars (sku, model, make, price, year, color, created_at, updated_at)
                    VALUES %s
                    ON CONFLICT (sku) WHERE deleted_at IS NULL DO NOTHING
                    RETURNING sku''',
                rows
            )
            stored = len(returned)
        except _BATCH_ERRORS as e:
            batch_error = e
            logger.warning(f'Bulk insert of {len(cars)} cars rejected by the database: {e}')

        if batch_error is None and stored == len(cars):
            result['inserted'] = stored
        else:
            result['inserted'], result['failed'] = self._reconcile_inserts(cars, batch_ts)
            if batch_error is None and result['inserted'] != stored:
                logger.warning(f'Bulk insert reconciliation mismatch: store reported {stored}, '
                               f'table shows {result["inserted"]}')

        log_with_context(logger, logging.INFO, 'Bulk insert finished',
                         submitted=len(cars), inserted=result['inserted'], failed=len(result['failed']))
        return result

    def _reconcile_inserts(self, cars, batch_ts):
        """Attribute each submitted car by reading the active rows for its SKU.

        A SKU held by a row stamped with this batch's timestamp was inserted
        by the first item carrying it; every other item with that SKU, and
        every item whose SKU belongs to an older row, is a duplicate.
        """
        skus = list({c['sku'] for c in cars})
        rows = self.query_all(
            '''SELECT sku, created_at = %s AS from_batch
               FROM cars
               WHERE sku = ANY(%s) AND deleted_at IS NULL''',
            (batch_ts, skus)
        )
        owners = {r['sku']: r['from_batch'] for r in rows}

        inserted, failures, claimed = 0, [], set()
        for car in cars:
            sku = car['sku']
            if owners.get(sku) and sku not in claimed:
                claimed.add(sku)
                inserted += 1
            elif sku in owners:
                failures.append({'sku': sku, 'errors': [SKU_EXISTS_MESSAGE]})
            else:
                failures.append({'sku': sku, 'errors': [NOT_INSERTED_MESSAGE]})
        return inserted, failures

    def bulk_update(self, cars):
        """Replace the editable fields of many active cars as one batch.

        Items whose SKU matches no active car are reported as not found;
        soft-deleted cars count as not found.

        Returns:
            {'inserted': 0, 'updated': int, 'failed': [{'sku', 'errors'}]}
        """
        result = _empty_batch_result()
        if not cars:
            return result

        batch_ts = datetime.now(timezone.utc)
        rows = [
            (c['sku'], c['model'], c['make'], c['price'], c['year'], c['color'], batch_ts)
            for c in cars
        ]

        batch_error = None
        try:
            returned = self.execute_values(
                '''UPDATE cars AS c
                   SET model = v.model, make = v.make, price = v.price,
                       year = v.year, color = v.color, updated_at = v.updated_at
                   FROM (VALUES %s) AS v (sku, model, make, price, year, color, updated_at)
                   WHERE c.sku = v.sku AND c.deleted_at IS NULL
                   RETURNING c.sku''',
                rows,
                template='(%s, %s, %s, %s::double precision, %s::integer, %s, %s::timestamptz)'
            )
            result['updated'] = len(returned)
        except _BATCH_ERRORS as e:
            batch_error = e
            logger.warning(f'Bulk update of {len(cars)} cars rejected by the database: {e}')

        if batch_error is not None or result['updated'] < len(cars):
            result['failed'] = self._reconcile_updates(cars, rolled_back=batch_error is not None)

        log_with_context(logger, logging.INFO, 'Bulk update finished',
                         submitted=len(cars), updated=result['updated'], failed=len(result['failed']))
        return result

    def _reconcile_updates(self, cars, rolled_back=False):
        """Report submitted SKUs that are not active; after a rollback, the
        ones that are active get a 'not applied' failure instead."""
        skus = list({c['sku'] for c in cars})
        rows = self.query_all(
            'SELECT sku FROM cars WHERE sku = ANY(%s) AND deleted_at IS NULL',
            (skus,)
        )
        active = {r['sku'] for r in rows}

        failures = []
        for car in cars:
            sku = car['sku']
            if sku not in active:
                failures.append({'sku': sku, 'errors': [str(NotFoundError(sku))]})
            elif rolled_back:
                failures.append({'sku': sku, 'errors': [NOT_UPDATED_MESSAGE]})
        return failures
