"""Database schema initialization.

CREATE TABLE / CREATE INDEX statements and demo seed data for the
dealership database. Called by database.init_db() on start-up.
"""


def create_schema(cursor, seed_demo=True):
    """Create the inventory tables, indexes, and seed data.

    Args:
        cursor: Database cursor from get_cursor(conn)
        seed_demo: Keep the demo DeLorean record present
    """
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS cars (
            id SERIAL PRIMARY KEY,
            sku TEXT NOT NULL,
            model TEXT NOT NULL,
            make TEXT NOT NULL,
            price DOUBLE PRECISION NOT NULL CHECK (price > 0),
            year INTEGER NOT NULL CHECK (year >= 1900),
            color TEXT NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            deleted_at TIMESTAMPTZ
        )
    ''')

    # SKU is unique among active cars only, so a deleted car's SKU can be reused
    cursor.execute('CREATE UNIQUE INDEX IF NOT EXISTS idx_cars_sku_active ON cars(sku) WHERE deleted_at IS NULL')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_cars_active ON cars(deleted_at) WHERE deleted_at IS NULL')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_cars_active_created ON cars(created_at DESC) WHERE deleted_at IS NULL')

    if seed_demo:
        cursor.execute('''
            INSERT INTO cars (sku, model, make, price, year, color)
            VALUES ('Delorean-DMC-12', 'DMC-12', 'Delorean', 100000, 1981, 'silver')
            ON CONFLICT (sku) WHERE deleted_at IS NULL DO NOTHING
        ''')
