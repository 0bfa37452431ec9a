"""
ConversationStore port — what the bot is waiting for from each customer.

State is keyed by (tenant, sender).  Entries are not evicted in the
background: whoever reads one checks it with is_expired() first.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Literal

from src.domain.order import PendingOrder

STATE_TTL = timedelta(minutes=5)

AFFIRMATIVE_REPLIES = frozenset({"sim", "s", "isso", "correto", "pode confirmar"})


@dataclass
class ConversationState:
    status: Literal["awaiting_confirmation", "awaiting_clarification"]
    pending_order: PendingOrder | None = None
    last_bot_message: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def is_expired(state: ConversationState, now: datetime) -> bool:
    return now - state.created_at > STATE_TTL


def is_affirmative(text: str) -> bool:
    return text.strip().lower() in AFFIRMATIVE_REPLIES


class ConversationStore(ABC):
    """
    Port: pending conversation state plus the AI-outage notice set.

    Only the message router writes here.
    """

    @abstractmethod
    def get(self, tenant_id: str, sender_id: str) -> ConversationState | None:
        """Raw read — no expiry check."""
        ...

    @abstractmethod
    def set(self, tenant_id: str, sender_id: str, state: ConversationState) -> None:
        ...

    @abstractmethod
    def delete(self, tenant_id: str, sender_id: str) -> None:
        """Remove the entry. No-op if absent."""
        ...

    @abstractmethod
    def was_notified(self, tenant_id: str, sender_id: str) -> bool:
        """True if this sender already got the 'AI unavailable' notice."""
        ...

    @abstractmethod
    def mark_notified(self, tenant_id: str, sender_id: str) -> None:
        ...
