#!/usr/bin/env python3
"""
Operator CLI — inspect and configure a tenant in the SQLite store.

Usage (from project root):
    python scripts/manage_tenant.py show pizzaria            # settings + catalog
    python scripts/manage_tenant.py on pizzaria              # enable the bot
    python scripts/manage_tenant.py off pizzaria             # disable the bot
    python scripts/manage_tenant.py catalog pizzaria menu.json
    python scripts/manage_tenant.py config pizzaria tenant.json
    python scripts/manage_tenant.py order pizzaria AB12CD34  # show one order

menu.json is a list of {"name": ..., "price": ...}.
tenant.json holds menu_url, restaurant_name, welcome_message,
opening_hours, address and contact_phone (all optional).

DB_PATH selects the database (default: data/orders.db).
"""

import asyncio
import json
import os
import sys

# Allow running as `python scripts/manage_tenant.py` from project root.
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from src.adapters.sqlite_store import SqliteStore
from src.domain.catalog import CatalogEntry
from src.domain.tenant import BusinessInfo, TenantConfig

DB_PATH = os.environ.get("DB_PATH", "data/orders.db")


async def show_tenant(store: SqliteStore, tenant_id: str) -> None:
    config = await store.get_tenant_config(tenant_id)
    if config is None:
        print(f"Tenant {tenant_id!r} not found.")
        return

    b = config.business
    print(f"\n{'=' * 60}")
    print(f"  Tenant: {config.tenant_id}  |  bot {'ON' if config.is_active else 'OFF'}")
    print(f"  Name:     {b.restaurant_name or '-'}")
    print(f"  Menu:     {config.menu_url or '(default storefront link)'}")
    print(f"  Hours:    {b.opening_hours or '-'}")
    print(f"  Address:  {b.address or '-'}")
    print(f"  Phone:    {b.contact_phone or '-'}")
    print(f"  Welcome:  {b.welcome_message or '-'}")
    print(f"{'=' * 60}")

    catalog = await store.get_catalog(tenant_id)
    if not catalog:
        print("  (empty catalog)\n")
        return
    for entry in catalog:
        print(f"  {entry.name:<40}  R$ {entry.price:>8.2f}")
    print()


async def import_catalog(store: SqliteStore, tenant_id: str, path: str) -> None:
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)
    entries = [CatalogEntry(name=str(p["name"]), price=float(p["price"])) for p in raw]
    await store.save_catalog(tenant_id, entries)
    print(f"Imported {len(entries)} product(s) for {tenant_id!r}.")


async def import_config(store: SqliteStore, tenant_id: str, path: str) -> None:
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)
    existing = await store.get_tenant_config(tenant_id)
    config = TenantConfig(
        tenant_id=tenant_id,
        is_active=existing.is_active if existing else False,
        menu_url=raw.get("menu_url", ""),
        business=BusinessInfo(
            restaurant_name=raw.get("restaurant_name", ""),
            welcome_message=raw.get("welcome_message", ""),
            opening_hours=raw.get("opening_hours", ""),
            address=raw.get("address", ""),
            contact_phone=raw.get("contact_phone", ""),
        ),
    )
    await store.save_tenant_config(config)
    print(f"Saved settings for {tenant_id!r}.")


async def show_order(store: SqliteStore, tenant_id: str, code: str) -> None:
    order = await store.get_order(tenant_id, code.upper())
    if order is None:
        print(f"Order {code!r} not found.")
        return
    print(f"\n  Order {order.tracking_code}  |  {order.status}  |  {order.created_at:%Y-%m-%d %H:%M}")
    print(f"  Customer: {order.customer_name} ({order.phone})")
    print(f"  Address:  {order.address}")
    print(f"  Payment:  {order.payment_method}")
    for item in order.items:
        print(f"    {item.quantity}x {item.name:<34}  R$ {item.line_total:>8.2f}")
    print(f"  Total:    R$ {order.total:.2f}\n")


async def main() -> None:
    args = sys.argv[1:]
    if len(args) < 2:
        print(__doc__)
        sys.exit(1)

    cmd, tenant_id = args[0], args[1]
    if os.path.dirname(DB_PATH):
        os.makedirs(os.path.dirname(DB_PATH), exist_ok=True)
    store = SqliteStore(db_path=DB_PATH)

    if cmd == "show":
        await show_tenant(store, tenant_id)
    elif cmd in ("on", "off"):
        await store.set_active(tenant_id, cmd == "on")
        print(f"Bot {'enabled' if cmd == 'on' else 'disabled'} for {tenant_id!r}.")
    elif cmd == "catalog" and len(args) == 3:
        await import_catalog(store, tenant_id, args[2])
    elif cmd == "config" and len(args) == 3:
        await import_config(store, tenant_id, args[2])
    elif cmd == "order" and len(args) == 3:
        await show_order(store, tenant_id, args[2])
    else:
        print(__doc__)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
