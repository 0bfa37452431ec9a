"""
SimulatorChatGateway — in-memory chat transport for tests and local development.

No browser, no phone, no network.  Lifecycle events and customer messages
are injected through test helpers or through handle_webhook(), so the whole
bot can be driven over HTTP in dev mode.
"""

import itertools
import logging

from .ports import CallbackTransport, ChatGateway, InboundMessage, TransportEvent

log = logging.getLogger(__name__)


class SimulatorChatTransport(CallbackTransport):
    """
    Test helpers:
        simulate_qr() / simulate_authenticated() / simulate_ready()
        simulate_auth_failure() / simulate_disconnect()
        inject_message()   — a customer message, delivered synchronously
        sent               — list of (chat_id, text) recorded by send_message()
    """

    def __init__(self, tenant_id: str):
        super().__init__()
        self.tenant_id = tenant_id
        self.sent: list[tuple[str, str]] = []
        self.connect_calls = 0
        self.disconnected = False
        self.fail_connect: Exception | None = None
        self.fail_send: Exception | None = None
        self._ids = itertools.count(1)

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.fail_connect is not None:
            raise self.fail_connect

    async def disconnect(self) -> None:
        self.disconnected = True

    async def send_message(self, chat_id: str, text: str) -> None:
        if self.fail_send is not None:
            raise self.fail_send
        if self.disconnected:
            raise RuntimeError(f"transport for {self.tenant_id!r} is disconnected")
        self.sent.append((chat_id, text))
        log.info("tenant=%s → %s: %.80r", self.tenant_id, chat_id, text)

    def messages_to(self, chat_id: str) -> list[str]:
        return [text for to, text in self.sent if to == chat_id]

    # -- lifecycle helpers ---------------------------------------------------

    async def simulate_qr(self, payload: str = "simulated-qr") -> None:
        await self._emit_status(TransportEvent("qr", payload))

    async def simulate_authenticated(self) -> None:
        await self._emit_status(TransportEvent("authenticated"))

    async def simulate_ready(self) -> None:
        await self._emit_status(TransportEvent("ready"))

    async def simulate_auth_failure(self, reason: str = "simulated auth failure") -> None:
        await self._emit_status(TransportEvent("auth_failure", reason))

    async def simulate_disconnect(self, reason: str = "simulated disconnect") -> None:
        self.disconnected = True
        await self._emit_status(TransportEvent("disconnected", reason))

    async def simulate_login(self) -> None:
        """qr → authenticated → ready, the happy path."""
        await self.simulate_qr()
        await self.simulate_authenticated()
        await self.simulate_ready()

    async def inject_message(
        self,
        sender_id: str,
        body: str,
        from_me: bool = False,
        type: str = "chat",
    ) -> None:
        message = InboundMessage(
            message_id=f"sim-{next(self._ids)}",
            sender_id=sender_id,
            body=body,
            from_me=from_me,
            type=type,
        )
        await self._emit_message(message)


class SimulatorChatGateway(ChatGateway):
    """
    Hands out SimulatorChatTransports and remembers every one of them.

    handle_webhook() accepts:
        {"tenant": "pizzaria", "event": "qr", "payload": "..."}
        {"tenant": "pizzaria", "event": "message",
         "payload": {"from": "5511...@c.us", "body": "oi"}}
    """

    def __init__(self):
        self.created: dict[str, list[SimulatorChatTransport]] = {}

    def create_transport(self, tenant_id: str) -> SimulatorChatTransport:
        transport = SimulatorChatTransport(tenant_id)
        self.created.setdefault(tenant_id, []).append(transport)
        return transport

    def latest(self, tenant_id: str) -> SimulatorChatTransport | None:
        transports = self.created.get(tenant_id)
        return transports[-1] if transports else None

    async def handle_webhook(self, payload: dict) -> None:
        tenant_id = payload.get("tenant")
        event = payload.get("event")
        transport = self.latest(tenant_id) if tenant_id else None
        if transport is None or transport.disconnected:
            log.warning("simulator event %r for unknown tenant %r ignored", event, tenant_id)
            return

        data = payload.get("payload")
        if event == "message":
            data = data or {}
            await transport.inject_message(
                sender_id=data.get("from", ""),
                body=data.get("body", ""),
                from_me=bool(data.get("fromMe", False)),
                type=data.get("type", "chat"),
            )
        elif event == "disconnected":
            await transport.simulate_disconnect(data or "webhook")
        elif event in ("qr", "authenticated", "ready", "auth_failure"):
            await transport._emit_status(TransportEvent(event, data))
        else:
            log.warning("unknown simulator event %r ignored", event)
