"""
SQLite adapter for the catalog, tenant config and order ports.

Use ":memory:" for tests, a file path for production.
"""

import json
import sqlite3
from datetime import datetime, timezone

from src.domain.catalog import CatalogEntry, CatalogReader, CatalogWriter
from src.domain.order import FinalizedOrder, OrderItem, OrderStore
from src.domain.tenant import BusinessInfo, TenantConfig, TenantConfigStore

_SCHEMA = """
CREATE TABLE IF NOT EXISTS tenants (
    tenant_id       TEXT PRIMARY KEY,
    is_active       INTEGER NOT NULL DEFAULT 0,
    menu_url        TEXT NOT NULL DEFAULT '',
    restaurant_name TEXT NOT NULL DEFAULT '',
    welcome_message TEXT NOT NULL DEFAULT '',
    opening_hours   TEXT NOT NULL DEFAULT '',
    address         TEXT NOT NULL DEFAULT '',
    contact_phone   TEXT NOT NULL DEFAULT '',
    updated_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS products (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    tenant_id   TEXT NOT NULL,
    name        TEXT NOT NULL,
    price       REAL NOT NULL
);

CREATE TABLE IF NOT EXISTS orders (
    tenant_id       TEXT NOT NULL,
    tracking_code   TEXT NOT NULL,
    customer_name   TEXT NOT NULL,
    phone           TEXT NOT NULL DEFAULT '',
    address         TEXT NOT NULL DEFAULT '',
    items_json      TEXT NOT NULL,
    total           REAL NOT NULL,
    status          TEXT NOT NULL DEFAULT 'new',
    payment_method  TEXT NOT NULL DEFAULT '',
    observations    TEXT NOT NULL DEFAULT '',
    delivery_type   TEXT NOT NULL DEFAULT 'delivery',
    table_number    TEXT,
    source          TEXT NOT NULL DEFAULT 'chat',
    sender_id       TEXT NOT NULL,
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL,
    PRIMARY KEY (tenant_id, tracking_code)
);

CREATE INDEX IF NOT EXISTS idx_orders_sender ON orders (tenant_id, sender_id, created_at);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_dt(s: str) -> datetime:
    return datetime.fromisoformat(s)


class SqliteStore(CatalogReader, CatalogWriter, TenantConfigStore, OrderStore):

    def __init__(self, db_path: str = "orders.db"):
        # Built on the main thread, used from the event loop's thread.
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)

    # -- catalog -------------------------------------------------------------

    async def get_catalog(self, tenant_id: str) -> list[CatalogEntry]:
        rows = self._conn.execute(
            "SELECT name, price FROM products WHERE tenant_id = ? ORDER BY id",
            (tenant_id,),
        ).fetchall()
        return [CatalogEntry(name=r["name"], price=r["price"]) for r in rows]

    async def save_catalog(self, tenant_id: str, entries: list[CatalogEntry]) -> None:
        with self._conn:
            self._conn.execute("DELETE FROM products WHERE tenant_id = ?", (tenant_id,))
            self._conn.executemany(
                "INSERT INTO products (tenant_id, name, price) VALUES (?, ?, ?)",
                [(tenant_id, e.name, e.price) for e in entries],
            )

    # -- tenant config -------------------------------------------------------

    async def get_tenant_config(self, tenant_id: str) -> TenantConfig | None:
        row = self._conn.execute(
            "SELECT * FROM tenants WHERE tenant_id = ?", (tenant_id,)
        ).fetchone()
        if not row:
            return None
        return TenantConfig(
            tenant_id=row["tenant_id"],
            is_active=bool(row["is_active"]),
            menu_url=row["menu_url"],
            business=BusinessInfo(
                restaurant_name=row["restaurant_name"],
                welcome_message=row["welcome_message"],
                opening_hours=row["opening_hours"],
                address=row["address"],
                contact_phone=row["contact_phone"],
            ),
        )

    async def save_tenant_config(self, config: TenantConfig) -> None:
        b = config.business
        self._conn.execute(
            "INSERT OR REPLACE INTO tenants"
            " (tenant_id, is_active, menu_url, restaurant_name, welcome_message,"
            "  opening_hours, address, contact_phone, updated_at)"
            " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (config.tenant_id, int(config.is_active), config.menu_url,
             b.restaurant_name, b.welcome_message, b.opening_hours,
             b.address, b.contact_phone, _now()),
        )
        self._conn.commit()

    async def set_active(self, tenant_id: str, active: bool) -> None:
        self._conn.execute(
            "INSERT INTO tenants (tenant_id, is_active, updated_at) VALUES (?, ?, ?)"
            " ON CONFLICT(tenant_id) DO UPDATE SET"
            " is_active = excluded.is_active, updated_at = excluded.updated_at",
            (tenant_id, int(active), _now()),
        )
        self._conn.commit()

    # -- orders --------------------------------------------------------------

    async def create_order(self, tenant_id: str, order: FinalizedOrder) -> bool:
        items = [
            {"name": i.name, "quantity": i.quantity, "size": i.size, "price": i.price or 0.0}
            for i in order.items
        ]
        try:
            self._conn.execute(
                "INSERT INTO orders"
                " (tenant_id, tracking_code, customer_name, phone, address, items_json,"
                "  total, status, payment_method, observations, delivery_type,"
                "  table_number, source, sender_id, created_at, updated_at)"
                " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (tenant_id, order.tracking_code, order.customer_name, order.phone,
                 order.address, json.dumps(items, ensure_ascii=False), order.total,
                 order.status, order.payment_method, order.observations,
                 order.delivery_type, order.table_number, order.source,
                 order.sender_id, order.created_at.isoformat(),
                 order.updated_at.isoformat()),
            )
        except sqlite3.IntegrityError:
            # Tracking code already taken: never overwrite an existing order.
            return False
        self._conn.commit()
        return True

    async def order_exists(self, tenant_id: str, tracking_code: str) -> bool:
        row = self._conn.execute(
            "SELECT 1 FROM orders WHERE tenant_id = ? AND tracking_code = ?",
            (tenant_id, tracking_code),
        ).fetchone()
        return row is not None

    async def get_order(self, tenant_id: str, tracking_code: str) -> FinalizedOrder | None:
        row = self._conn.execute(
            "SELECT * FROM orders WHERE tenant_id = ? AND tracking_code = ?",
            (tenant_id, tracking_code),
        ).fetchone()
        if not row:
            return None
        return self._row_to_order(row)

    async def get_last_order(self, tenant_id: str, sender_id: str) -> FinalizedOrder | None:
        row = self._conn.execute(
            "SELECT * FROM orders WHERE tenant_id = ? AND sender_id = ?"
            " ORDER BY created_at DESC LIMIT 1",
            (tenant_id, sender_id),
        ).fetchone()
        if not row:
            return None
        return self._row_to_order(row)

    @staticmethod
    def _row_to_order(row) -> FinalizedOrder:
        items = [
            OrderItem(
                name=i["name"],
                quantity=i["quantity"],
                size=i.get("size"),
                price=i.get("price", 0.0),
            )
            for i in json.loads(row["items_json"])
        ]
        return FinalizedOrder(
            tracking_code=row["tracking_code"],
            customer_name=row["customer_name"],
            phone=row["phone"],
            address=row["address"],
            items=items,
            total=row["total"],
            payment_method=row["payment_method"],
            sender_id=row["sender_id"],
            status=row["status"],
            source=row["source"],
            observations=row["observations"],
            delivery_type=row["delivery_type"],
            table_number=row["table_number"],
            created_at=_parse_dt(row["created_at"]),
            updated_at=_parse_dt(row["updated_at"]),
        )
