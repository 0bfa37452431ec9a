"""
Session manager — one chat connection per tenant, many tenants per process.

Lifecycle of a tenant session:

  disconnected → initializing → qr_pending → authenticated → connected
                              ↘ auth_failed
  initializing → error            (the connect handshake itself raised)
  any state    → disconnected     (stop(), or the transport dropped)

Only a connected session routes inbound messages.  auth_failed and error
tear the connection down, but stay visible through get_status() until the
next start() or stop() for that tenant.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Literal

from src.router import MessageRouter
from src.transport.ports import ChatGateway, ChatTransport, InboundMessage, TransportEvent

log = logging.getLogger(__name__)

SessionState = Literal[
    "disconnected",
    "initializing",
    "qr_pending",
    "authenticated",
    "connected",
    "auth_failed",
    "error",
]


@dataclass
class TenantSession:
    tenant_id: str
    transport: ChatTransport
    state: SessionState = "initializing"
    auth_payload: str | None = None
    handler_registered: bool = False
    connect_task: asyncio.Task | None = None


class SessionManager:
    """Owns every TenantSession. Inject one per process (or per test)."""

    def __init__(self, gateway: ChatGateway, router: MessageRouter):
        self._gateway = gateway
        self._router = router
        self._sessions: dict[str, TenantSession] = {}
        self._terminal: dict[str, SessionState] = {}

    # -- public operations ---------------------------------------------------

    async def start(self, tenant_id: str) -> SessionState:
        """(Re)start the tenant's session. Returns as soon as the handshake is scheduled."""
        if await self._teardown(tenant_id):
            log.info("tenant=%s existing session torn down before restart", tenant_id)
        self._terminal.pop(tenant_id, None)

        transport = self._gateway.create_transport(tenant_id)
        session = TenantSession(tenant_id=tenant_id, transport=transport)
        transport.on_status_change(lambda event: self._on_status(session, event))
        self._sessions[tenant_id] = session

        session.connect_task = asyncio.create_task(self._connect(session))
        log.info("tenant=%s session initializing", tenant_id)
        return session.state

    async def stop(self, tenant_id: str) -> None:
        """Disconnect and forget the tenant's session. No-op for unknown tenants."""
        self._terminal.pop(tenant_id, None)
        if await self._teardown(tenant_id):
            log.info("tenant=%s session stopped", tenant_id)

    def get_status(self, tenant_id: str) -> dict:
        session = self._sessions.get(tenant_id)
        if session is not None:
            status = session.state
        else:
            status = self._terminal.get(tenant_id, "disconnected")
        return {
            "status": status,
            "isConnected": status == "connected",
            "hasScannableAuth": self.get_scannable_auth(tenant_id) is not None,
        }

    def get_scannable_auth(self, tenant_id: str) -> str | None:
        session = self._sessions.get(tenant_id)
        if session is None or session.state != "qr_pending":
            return None
        return session.auth_payload

    def tenants(self) -> list[str]:
        return sorted(self._sessions)

    async def shutdown(self) -> None:
        for tenant_id in list(self._sessions):
            await self._teardown(tenant_id)
        log.info("all sessions closed")

    # -- internals -----------------------------------------------------------

    def _is_current(self, session: TenantSession) -> bool:
        return self._sessions.get(session.tenant_id) is session

    async def _teardown(self, tenant_id: str) -> bool:
        session = self._sessions.pop(tenant_id, None)
        if session is None:
            return False
        task = session.connect_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        session.auth_payload = None
        session.state = "disconnected"
        try:
            await session.transport.disconnect()
        except Exception as exc:
            log.warning("tenant=%s disconnect failed: %s", tenant_id, exc)
        return True

    async def _fail(self, session: TenantSession, state: SessionState) -> None:
        """Destroy the session but keep its terminal state visible."""
        if not self._is_current(session):
            return
        await self._teardown(session.tenant_id)
        self._terminal[session.tenant_id] = state

    async def _connect(self, session: TenantSession) -> None:
        try:
            await session.transport.connect()
        except asyncio.CancelledError:
            raise
        except Exception:
            log.exception("tenant=%s connect handshake failed", session.tenant_id)
            await self._fail(session, "error")

    async def _on_status(self, session: TenantSession, event: TransportEvent) -> None:
        tenant_id = session.tenant_id
        if not self._is_current(session):
            log.debug("tenant=%s event %s from a replaced session ignored", tenant_id, event.kind)
            return

        if event.kind == "qr":
            session.state = "qr_pending"
            session.auth_payload = event.detail
            log.info("tenant=%s QR code received, waiting for scan", tenant_id)
        elif event.kind == "authenticated":
            session.state = "authenticated"
            session.auth_payload = None
            log.info("tenant=%s authenticated", tenant_id)
        elif event.kind == "ready":
            session.state = "connected"
            session.auth_payload = None
            if not session.handler_registered:
                session.transport.on_message(
                    lambda message: self._on_message(session, message)
                )
                session.handler_registered = True
            log.info("tenant=%s connected", tenant_id)
        elif event.kind == "auth_failure":
            log.error("tenant=%s authentication failed: %s", tenant_id, event.detail)
            await self._fail(session, "auth_failed")
        elif event.kind == "disconnected":
            log.warning("tenant=%s disconnected: %s", tenant_id, event.detail)
            # The transport is already gone; only the record needs clearing.
            self._sessions.pop(tenant_id, None)
            session.state = "disconnected"
            session.auth_payload = None

    async def _on_message(self, session: TenantSession, message: InboundMessage) -> None:
        if not self._is_current(session) or session.state != "connected":
            log.debug("tenant=%s message while %s dropped", session.tenant_id, session.state)
            return
        result = await self._router.handle(session.tenant_id, message, session.transport)
        log.debug(
            "tenant=%s from=%s action=%s %s",
            session.tenant_id, message.sender_id, result.action, result.details[:60],
        )
