from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable, Literal


@dataclass
class InboundMessage:
    """A message delivered by the chat transport."""

    message_id: str
    sender_id: str       # e.g. "5511999990000@c.us"
    body: str
    from_me: bool = False
    type: str = "chat"   # "chat" = plain text; anything else is media/system


@dataclass
class TransportEvent:
    """A connection lifecycle event raised by the transport."""

    kind: Literal["qr", "authenticated", "ready", "auth_failure", "disconnected"]
    detail: str | None = None   # QR payload for "qr", reason otherwise


MessageCallback = Callable[[InboundMessage], Awaitable[None]]
StatusCallback = Callable[[TransportEvent], Awaitable[None]]


class ChatTransport(ABC):
    """
    Port: one tenant's chat connection.

    The router and session manager depend ONLY on this interface.
    They don't know whether messages travel through a WhatsApp-Web
    gateway or an in-memory simulator.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Start the connect handshake. Progress is reported through on_status_change."""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Tear the connection down. Safe to call more than once."""
        ...

    @abstractmethod
    async def send_message(self, chat_id: str, text: str) -> None:
        """Send a plain-text message to a chat peer."""
        ...

    @abstractmethod
    def on_message(self, callback: MessageCallback) -> None:
        """Register a handler for inbound messages."""
        ...

    @abstractmethod
    def on_status_change(self, callback: StatusCallback) -> None:
        """Register a handler for lifecycle events."""
        ...


class CallbackTransport(ChatTransport):
    """Holds registered callbacks and fans events out to them."""

    def __init__(self):
        self._message_callbacks: list[MessageCallback] = []
        self._status_callbacks: list[StatusCallback] = []

    def on_message(self, callback: MessageCallback) -> None:
        self._message_callbacks.append(callback)

    def on_status_change(self, callback: StatusCallback) -> None:
        self._status_callbacks.append(callback)

    async def _emit_status(self, event: TransportEvent) -> None:
        for callback in list(self._status_callbacks):
            await callback(event)

    async def _emit_message(self, message: InboundMessage) -> None:
        for callback in list(self._message_callbacks):
            await callback(message)


class ChatGateway(ABC):
    """
    Port: creates per-tenant transports and accepts events pushed to us.

    Gateways that deliver events over HTTP hand them to handle_webhook().
    """

    @abstractmethod
    def create_transport(self, tenant_id: str) -> ChatTransport:
        ...

    @abstractmethod
    async def handle_webhook(self, payload: dict) -> None:
        """Route one pushed event to the transport it belongs to."""
        ...
