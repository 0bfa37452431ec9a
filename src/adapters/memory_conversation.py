"""In-memory adapter for ConversationStore — the live set is bounded by customers currently chatting."""

from src.domain.conversation import ConversationState, ConversationStore


class InMemoryConversationStore(ConversationStore):

    def __init__(self):
        self._states: dict[tuple[str, str], ConversationState] = {}
        self._notified: set[tuple[str, str]] = set()

    def get(self, tenant_id: str, sender_id: str) -> ConversationState | None:
        return self._states.get((tenant_id, sender_id))

    def set(self, tenant_id: str, sender_id: str, state: ConversationState) -> None:
        self._states[(tenant_id, sender_id)] = state

    def delete(self, tenant_id: str, sender_id: str) -> None:
        self._states.pop((tenant_id, sender_id), None)

    def was_notified(self, tenant_id: str, sender_id: str) -> bool:
        return (tenant_id, sender_id) in self._notified

    def mark_notified(self, tenant_id: str, sender_id: str) -> None:
        self._notified.add((tenant_id, sender_id))
