"""
PostgreSQL access: the connection pool, the schema, and one store per table.

The stores own every SQL statement in the service. They return plain dict
rows and raise PersistenceError instead of driver exceptions.
"""

import logging
from contextlib import contextmanager

import psycopg2
import psycopg2.errors
import psycopg2.extras
from psycopg2.pool import SimpleConnectionPool

from . import config
from .errors import DuplicateRecordError, PersistenceError

logger = logging.getLogger(__name__)


class Database:
    _pool = None

    @classmethod
    def initialize(cls, dsn=None):
        """Initialize database connection pool"""
        if not cls._pool:
            cls._pool = SimpleConnectionPool(
                minconn=1,
                maxconn=10,
                dsn=dsn or config.DATABASE_URL
            )
            cls._create_tables()
            logger.info("Connected to PostgreSQL, tables ready")

    @classmethod
    def close(cls):
        if cls._pool:
            cls._pool.closeall()
            cls._pool = None

    @classmethod
    def _create_tables(cls):
        with cls.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("""
                    CREATE TABLE IF NOT EXISTS menu_items (
                        id SERIAL PRIMARY KEY,
                        name VARCHAR(255) UNIQUE NOT NULL,
                        price NUMERIC(10,2) NOT NULL,
                        image TEXT
                    )
                """)

                cur.execute("""
                    CREATE TABLE IF NOT EXISTS inventory (
                        id SERIAL PRIMARY KEY,
                        name VARCHAR(255) NOT NULL,
                        price NUMERIC(10,2) NOT NULL,
                        quantity INTEGER NOT NULL,
                        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    )
                """)

                cur.execute("""
                    CREATE TABLE IF NOT EXISTS orders (
                        id SERIAL PRIMARY KEY,
                        item TEXT,
                        phone TEXT,
                        amount NUMERIC(10,2),
                        date TEXT,
                        time TEXT,
                        status TEXT DEFAULT 'pending',
                        token TEXT,
                        payment_id TEXT,
                        payment_status TEXT DEFAULT 'pending',
                        priority_level TEXT DEFAULT 'normal'
                    )
                """)

                cur.execute("CREATE UNIQUE INDEX IF NOT EXISTS idx_orders_token ON orders(token)")
                cur.execute("CREATE INDEX IF NOT EXISTS idx_orders_status ON orders(status)")

    @classmethod
    @contextmanager
    def get_connection(cls):
        if cls._pool is None:
            raise PersistenceError("Database not initialized")
        conn = cls._pool.getconn()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cls._pool.putconn(conn)

    @classmethod
    def execute_query(cls, query, params=None, fetch_one=False, fetch_all=False):
        try:
            with cls.get_connection() as conn:
                with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                    cur.execute(query, params or ())
                    if fetch_one:
                        row = cur.fetchone()
                        return dict(row) if row else None
                    elif fetch_all:
                        return [dict(row) for row in cur.fetchall()]
                    return cur.rowcount
        except psycopg2.errors.UniqueViolation as e:
            raise DuplicateRecordError(str(e).strip()) from e
        except psycopg2.Error as e:
            logger.error("Database error: %s", e)
            raise PersistenceError("Database error") from e


class MenuStore:
    def list_items(self):
        return Database.execute_query("SELECT * FROM menu_items ORDER BY id", fetch_all=True)

    def get_item(self, item_id):
        return Database.execute_query(
            "SELECT * FROM menu_items WHERE id = %s", (item_id,), fetch_one=True
        )

    def find_by_names(self, names):
        rows = Database.execute_query(
            "SELECT * FROM menu_items WHERE name = ANY(%s)", (list(names),), fetch_all=True
        )
        return {row["name"]: row for row in rows}

    def create_item(self, name, price, image):
        return Database.execute_query(
            "INSERT INTO menu_items (name, price, image) VALUES (%s, %s, %s) RETURNING *",
            (name, price, image),
            fetch_one=True
        )

    def update_item(self, item_id, name, price, image):
        return Database.execute_query(
            "UPDATE menu_items SET name = %s, price = %s, image = %s WHERE id = %s RETURNING *",
            (name, price, image, item_id),
            fetch_one=True
        )

    def delete_item(self, item_id):
        return Database.execute_query(
            "DELETE FROM menu_items WHERE id = %s RETURNING *", (item_id,), fetch_one=True
        )


class InventoryStore:
    FIELDS = ("name", "price", "quantity")

    def list_items(self):
        return Database.execute_query("SELECT * FROM inventory ORDER BY name ASC", fetch_all=True)

    def create_item(self, name, price, quantity):
        return Database.execute_query(
            "INSERT INTO inventory (name, price, quantity) VALUES (%s, %s, %s) RETURNING *",
            (name, price, quantity),
            fetch_one=True
        )

    def update_item(self, item_id, changes):
        parts = [f"{column} = %s" for column in self.FIELDS if column in changes]
        values = [changes[column] for column in self.FIELDS if column in changes]
        parts.append("updated_at = CURRENT_TIMESTAMP")
        values.append(item_id)
        return Database.execute_query(
            f"UPDATE inventory SET {', '.join(parts)} WHERE id = %s RETURNING *",
            tuple(values),
            fetch_one=True
        )

    def delete_item(self, item_id):
        return Database.execute_query(
            "DELETE FROM inventory WHERE id = %s RETURNING id", (item_id,), fetch_one=True
        )


class OrderStore:
    def insert_order(self, order):
        """Insert an order row and return its id. Raises DuplicateRecordError on a token clash."""
        row = Database.execute_query("""
            INSERT INTO orders (item, phone, amount, date, time, token, payment_id,
                                payment_status, status, priority_level)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id
        """, (
            order["item"], order["phone"], order["amount"], order["date"], order["time"],
            order["token"], order["payment_id"], order["payment_status"], order["status"],
            order["priority_level"]
        ), fetch_one=True)
        return row["id"]

    def list_orders(self):
        return Database.execute_query("SELECT * FROM orders", fetch_all=True)

    def get_order(self, order_id):
        return Database.execute_query(
            "SELECT * FROM orders WHERE id = %s", (order_id,), fetch_one=True
        )

    def get_by_token(self, token):
        return Database.execute_query(
            "SELECT * FROM orders WHERE token = %s", (token,), fetch_one=True
        )

    def set_status(self, order_id, status, from_statuses=None):
        """Set the status, optionally only when the current status is one of ``from_statuses``."""
        if from_statuses:
            return Database.execute_query(
                "UPDATE orders SET status = %s WHERE id = %s AND status = ANY(%s) RETURNING *",
                (status, order_id, list(from_statuses)),
                fetch_one=True
            )
        return Database.execute_query(
            "UPDATE orders SET status = %s WHERE id = %s RETURNING *",
            (status, order_id),
            fetch_one=True
        )
