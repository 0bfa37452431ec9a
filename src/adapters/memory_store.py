"""In-memory adapter for the catalog, tenant config and order ports — for tests and local development."""

from dataclasses import replace

from src.domain.catalog import CatalogEntry, CatalogReader, CatalogWriter
from src.domain.order import FinalizedOrder, OrderStore
from src.domain.tenant import TenantConfig, TenantConfigStore


class InMemoryStore(CatalogReader, CatalogWriter, TenantConfigStore, OrderStore):
    """
    Test helpers:
        fail_writes   — make create_order() report failure
        orders        — {(tenant_id, tracking_code): FinalizedOrder}
    """

    def __init__(self):
        self._catalogs: dict[str, list[CatalogEntry]] = {}
        self._configs: dict[str, TenantConfig] = {}
        self.orders: dict[tuple[str, str], FinalizedOrder] = {}
        self.fail_writes = False

    # -- catalog -------------------------------------------------------------

    async def get_catalog(self, tenant_id: str) -> list[CatalogEntry]:
        return list(self._catalogs.get(tenant_id, []))

    async def save_catalog(self, tenant_id: str, entries: list[CatalogEntry]) -> None:
        self._catalogs[tenant_id] = list(entries)

    # -- tenant config -------------------------------------------------------

    async def get_tenant_config(self, tenant_id: str) -> TenantConfig | None:
        return self._configs.get(tenant_id)

    async def save_tenant_config(self, config: TenantConfig) -> None:
        self._configs[config.tenant_id] = config

    async def set_active(self, tenant_id: str, active: bool) -> None:
        config = self._configs.get(tenant_id) or TenantConfig(tenant_id=tenant_id)
        self._configs[tenant_id] = replace(config, is_active=active)

    # -- orders --------------------------------------------------------------

    async def create_order(self, tenant_id: str, order: FinalizedOrder) -> bool:
        key = (tenant_id, order.tracking_code)
        if self.fail_writes or key in self.orders:
            return False
        self.orders[key] = order
        return True

    async def order_exists(self, tenant_id: str, tracking_code: str) -> bool:
        return (tenant_id, tracking_code) in self.orders

    async def get_order(self, tenant_id: str, tracking_code: str) -> FinalizedOrder | None:
        return self.orders.get((tenant_id, tracking_code))

    async def get_last_order(self, tenant_id: str, sender_id: str) -> FinalizedOrder | None:
        mine = [
            o for (t, _), o in self.orders.items()
            if t == tenant_id and o.sender_id == sender_id
        ]
        if not mine:
            return None
        return max(mine, key=lambda o: o.created_at)
