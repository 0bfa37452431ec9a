"""
WAHA adapter — WhatsApp Web through a self-hosted WAHA gateway.

WAHA (WhatsApp HTTP API) runs the browser session; we drive it over HTTP
and it pushes events back to our webhook.  One WAHA session per tenant,
named after the tenant id.

Outbound calls use requests and run in a worker thread so the event loop
keeps serving other tenants while the gateway answers.
"""

import asyncio
import base64
import logging

import requests

from .ports import CallbackTransport, ChatGateway, InboundMessage, TransportEvent

log = logging.getLogger(__name__)

_WEBHOOK_EVENTS = ["message", "session.status"]
_STARTED_STATUSES = ("STARTING", "SCAN_QR_CODE", "WORKING")


class WahaChatTransport(CallbackTransport):
    """Adapter: one WAHA session."""

    def __init__(self, gateway: "WahaGateway", tenant_id: str):
        super().__init__()
        self._gateway = gateway
        self.tenant_id = tenant_id
        self._closed = False
        # Set once WAHA reports this session coming up; a STOPPED seen before
        # then belongs to the previous transport under the same session name.
        self._started = False

    async def connect(self) -> None:
        await asyncio.to_thread(self._gateway.start_session, self.tenant_id)

    async def disconnect(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._gateway.forget(self)
        await asyncio.to_thread(self._gateway.stop_session, self.tenant_id)

    async def send_message(self, chat_id: str, text: str) -> None:
        await asyncio.to_thread(self._gateway.send_text, self.tenant_id, chat_id, text)

    async def handle_status(self, status: str) -> None:
        if status in _STARTED_STATUSES:
            self._started = True

        if status == "SCAN_QR_CODE":
            try:
                qr = await asyncio.to_thread(self._gateway.fetch_qr, self.tenant_id)
            except requests.RequestException as exc:
                log.error("tenant=%s failed to fetch QR code: %s", self.tenant_id, exc)
                return
            await self._emit_status(TransportEvent("qr", qr))
        elif status == "WORKING":
            await self._emit_status(TransportEvent("authenticated"))
            await self._emit_status(TransportEvent("ready"))
        elif status == "FAILED":
            await self._emit_status(TransportEvent("auth_failure", status))
        elif status == "STOPPED":
            if not self._started:
                log.info("tenant=%s STOPPED from the previous session ignored", self.tenant_id)
                return
            self._closed = True
            self._gateway.forget(self)
            await self._emit_status(TransportEvent("disconnected", status))
        else:
            log.debug("tenant=%s status %s", self.tenant_id, status)

    async def handle_message(self, message: InboundMessage) -> None:
        await self._emit_message(message)


class WahaGateway(ChatGateway):
    """
    Real WAHA HTTP client plus the registry of live per-tenant transports.

    Inbound message handlers are scheduled as independent tasks: a slow
    classifier call for one message never delays the next webhook.
    """

    def __init__(self, base_url: str, webhook_url: str, api_key: str | None = None):
        self._base_url = base_url.rstrip("/")
        self._webhook_url = webhook_url
        self.session = requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if api_key:
            self.session.headers.update({"X-Api-Key": api_key})
        self._transports: dict[str, WahaChatTransport] = {}
        self._tasks: set[asyncio.Task] = set()

    def create_transport(self, tenant_id: str) -> WahaChatTransport:
        transport = WahaChatTransport(self, tenant_id)
        self._transports[tenant_id] = transport
        return transport

    def forget(self, transport: WahaChatTransport) -> None:
        if self._transports.get(transport.tenant_id) is transport:
            del self._transports[transport.tenant_id]

    # -- HTTP calls (blocking, run via asyncio.to_thread) --------------------

    def start_session(self, name: str) -> None:
        body = {
            "name": name,
            "start": True,
            "config": {"webhooks": [{"url": self._webhook_url, "events": _WEBHOOK_EVENTS}]},
        }
        resp = self.session.post(f"{self._base_url}/api/sessions", json=body)
        if resp.status_code == 422:
            # Session already exists on the gateway: just start it again.
            resp = self.session.post(f"{self._base_url}/api/sessions/{name}/start")
        resp.raise_for_status()

    def stop_session(self, name: str) -> None:
        resp = self.session.post(f"{self._base_url}/api/sessions/{name}/stop")
        if resp.status_code == 404:
            return
        resp.raise_for_status()

    def fetch_qr(self, name: str) -> str:
        """QR code as a data URL the dashboard can drop into an <img>."""
        resp = self.session.get(
            f"{self._base_url}/api/{name}/auth/qr",
            headers={"Accept": "image/png"},
        )
        resp.raise_for_status()
        encoded = base64.b64encode(resp.content).decode("ascii")
        return f"data:image/png;base64,{encoded}"

    def send_text(self, name: str, chat_id: str, text: str) -> None:
        resp = self.session.post(
            f"{self._base_url}/api/sendText",
            json={"session": name, "chatId": chat_id, "text": text},
        )
        resp.raise_for_status()

    # -- inbound events ------------------------------------------------------

    async def handle_webhook(self, payload: dict) -> None:
        event = payload.get("event")
        name = payload.get("session")
        transport = self._transports.get(name)
        if transport is None:
            log.warning("WAHA event %r for unknown session %r ignored", event, name)
            return

        data = payload.get("payload") or {}
        if event == "session.status":
            await transport.handle_status(data.get("status", ""))
        elif event == "message":
            message = parse_waha_message(data)
            if message is None:
                log.debug("session=%s unusable message payload ignored", name)
                return
            task = asyncio.create_task(transport.handle_message(message))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        else:
            log.debug("session=%s event %r ignored", name, event)


def parse_waha_message(data: dict) -> InboundMessage | None:
    sender = data.get("from")
    if not sender:
        return None
    return InboundMessage(
        message_id=str(data.get("id", "")),
        sender_id=sender,
        body=data.get("body") or "",
        from_me=bool(data.get("fromMe", False)),
        type="media" if data.get("hasMedia") else "chat",
    )
