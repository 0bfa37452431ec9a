"""
TenantConfigStore port — per-restaurant bot settings.

Settings live in the external store, not in environment variables, so an
operator can switch the bot on or off without restarting the process.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass
class BusinessInfo:
    """Store identity fed into the classifier prompt."""
    restaurant_name: str = ""
    welcome_message: str = ""
    opening_hours: str = ""
    address: str = ""
    contact_phone: str = ""


@dataclass
class TenantConfig:
    tenant_id: str
    is_active: bool = False
    menu_url: str = ""
    business: BusinessInfo = field(default_factory=BusinessInfo)


class TenantConfigStore(ABC):

    @abstractmethod
    async def get_tenant_config(self, tenant_id: str) -> TenantConfig | None:
        """Return the tenant's settings, or None if the tenant is unknown."""
        ...

    @abstractmethod
    async def save_tenant_config(self, config: TenantConfig) -> None:
        """Create or replace the tenant's settings."""
        ...

    @abstractmethod
    async def set_active(self, tenant_id: str, active: bool) -> None:
        """Flip the bot on or off. Creates a default config if none exists."""
        ...
