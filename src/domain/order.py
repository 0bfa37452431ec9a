"""
Orders — the draft the AI extracts and the record we persist.

Prices never come from the AI: every item is re-priced from the tenant's
catalog before the customer sees a total.
"""

import math
import re
import secrets
import string
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

from src.domain.catalog import CatalogEntry, price_map

TRACKING_CODE_ALPHABET = string.ascii_uppercase + string.digits
TRACKING_CODE_LENGTH = 8

DEFAULT_CUSTOMER_NAME = "Cliente WhatsApp"
DEFAULT_ADDRESS = "Não informado"
DEFAULT_PAYMENT_METHOD = "Não especificado"


@dataclass
class OrderItem:
    name: str
    quantity: int = 1
    size: str | None = None
    price: float | None = None   # None = not found in the catalog

    @property
    def line_total(self) -> float:
        return (self.price or 0.0) * self.quantity


@dataclass
class PendingOrder:
    """Unconfirmed order extracted by the classifier."""
    items: list[OrderItem]
    customer_name: str | None = None
    address: str | None = None
    phone: str | None = None
    payment_method: str | None = None
    observations: str | None = None
    delivery_type: str = "delivery"   # "delivery" or "dine_in"
    table_number: str | None = None

    @property
    def total(self) -> float:
        return sum(item.line_total for item in self.items)


@dataclass
class FinalizedOrder:
    tracking_code: str
    customer_name: str
    phone: str
    address: str
    items: list[OrderItem]
    total: float
    payment_method: str
    sender_id: str
    status: str = "new"
    source: str = "chat"
    observations: str = ""
    delivery_type: str = "delivery"
    table_number: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def coerce_quantity(value) -> int:
    """Integer quantity, at least 1. "2", 2.0 and "2 unidades" all give 2."""
    if isinstance(value, bool):
        return 1
    if isinstance(value, float) and not math.isfinite(value):
        # json.loads accepts Infinity and NaN
        return 1
    if isinstance(value, (int, float)):
        qty = int(value)
    else:
        m = re.match(r"\s*(\d+)", str(value or ""))
        qty = int(m.group(1)) if m else 1
    return max(qty, 1)


def enrich_order(order: PendingOrder, catalog: list[CatalogEntry]) -> PendingOrder:
    """Return a copy with quantities normalised and prices taken from the catalog."""
    prices = price_map(catalog)
    items = [
        replace(
            item,
            quantity=coerce_quantity(item.quantity),
            price=prices.get(item.name.strip().lower()),
        )
        for item in order.items
    ]
    return replace(order, items=items)


def generate_tracking_code() -> str:
    return "".join(secrets.choice(TRACKING_CODE_ALPHABET) for _ in range(TRACKING_CODE_LENGTH))


def phone_from_sender(sender_id: str) -> str:
    """'5511999990000@c.us' -> '5511999990000'."""
    return re.sub(r"\D", "", sender_id.split("@", 1)[0])


def finalize(order: PendingOrder, tracking_code: str, sender_id: str) -> FinalizedOrder:
    """Build the persisted record. Unpriced items are stored at 0."""
    items = [replace(item, price=item.price or 0.0) for item in order.items]
    now = datetime.now(timezone.utc)
    return FinalizedOrder(
        tracking_code=tracking_code,
        customer_name=order.customer_name or DEFAULT_CUSTOMER_NAME,
        phone=order.phone or phone_from_sender(sender_id),
        address=order.address or DEFAULT_ADDRESS,
        items=items,
        total=sum(item.line_total for item in items),
        payment_method=order.payment_method or DEFAULT_PAYMENT_METHOD,
        sender_id=sender_id,
        observations=order.observations or "",
        delivery_type=order.delivery_type or "delivery",
        table_number=order.table_number,
        created_at=now,
        updated_at=now,
    )


class OrderStore(ABC):
    """
    Port: where finalized orders live.

    Orders are keyed by tracking code inside the tenant's scope.
    """

    @abstractmethod
    async def create_order(self, tenant_id: str, order: FinalizedOrder) -> bool:
        """Persist the order. Returns False if the write failed or the code is taken."""
        ...

    @abstractmethod
    async def order_exists(self, tenant_id: str, tracking_code: str) -> bool:
        ...

    @abstractmethod
    async def get_order(self, tenant_id: str, tracking_code: str) -> FinalizedOrder | None:
        ...

    @abstractmethod
    async def get_last_order(self, tenant_id: str, sender_id: str) -> FinalizedOrder | None:
        """Most recent order placed by this sender, or None for a new customer."""
        ...
