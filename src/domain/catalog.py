"""
Catalog ports — what a tenant sells and for how much.

The catalog is owned by the admin dashboard; this core only reads it
(prices for order enrichment, names for the classifier prompt).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class CatalogEntry:
    name: str
    price: float


def price_map(entries: list[CatalogEntry]) -> dict[str, float]:
    """Lower-cased product name → price. Entries with a negative price are skipped."""
    return {
        e.name.strip().lower(): float(e.price)
        for e in entries
        if e.name and e.price is not None and e.price >= 0
    }


def catalog_summary(entries: list[CatalogEntry]) -> str:
    """Comma-separated product names, as shown to the classifier."""
    return ", ".join(e.name for e in entries if e.name)


class CatalogReader(ABC):

    @abstractmethod
    async def get_catalog(self, tenant_id: str) -> list[CatalogEntry]:
        """Return the tenant's products. Empty list if the tenant has none."""
        ...


class CatalogWriter(ABC):

    @abstractmethod
    async def save_catalog(self, tenant_id: str, entries: list[CatalogEntry]) -> None:
        """Replace the tenant's product list."""
        ...
