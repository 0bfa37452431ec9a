"""
Message router — turns one inbound chat message into at most one reply.

Wires together all ports following the plan principle:
  AI → data → code

The classifier only interprets the message.  Prices, totals, tracking
codes and persistence are decided here, in code.

Flow:
  1. Gate: inactive tenant, own messages, media, empty bodies → silence
  2. Load the conversation state for (tenant, sender), drop it if expired
  3. "sim" while awaiting confirmation → finalize without calling the AI
  4. AI: classify the message → Intent
  5. Code: dispatch on the intent, update conversation state, reply
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Literal

from src import replies
from src.domain.catalog import CatalogReader, catalog_summary
from src.domain.conversation import (
    ConversationState,
    ConversationStore,
    is_affirmative,
    is_expired,
)
from src.domain.intent import (
    ClarificationIntent,
    ClassificationContext,
    IntentClassifier,
    OrderIntent,
    ReplyIntent,
)
from src.domain.order import (
    OrderStore,
    PendingOrder,
    enrich_order,
    finalize,
    generate_tracking_code,
)
from src.domain.tenant import TenantConfigStore
from src.transport.ports import ChatTransport, InboundMessage

log = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 5


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RouterConfig:
    catalog: CatalogReader
    tenants: TenantConfigStore
    orders: OrderStore
    classifier: IntentClassifier
    conversations: ConversationStore
    public_base_url: str = "http://localhost:3000"
    clock: Callable[[], datetime] = field(default=_utcnow)


@dataclass
class RouteResult:
    action: Literal[
        "ignored",                 # gated: inactive tenant, own message, media, empty
        "confirmation_requested",  # order summary sent, awaiting "sim"
        "clarification_sent",      # AI asked a follow-up question
        "reply_sent",              # AI answered directly
        "order_finalized",         # order persisted, tracking code sent
        "finalize_failed",         # persistence failed, apology sent
        "ai_unavailable",          # classifier returned nothing
        "fallback_sent",           # classifier output matched no known shape
        "error",                   # unexpected exception, generic apology sent
    ]
    details: str = ""
    tracking_code: str = ""


class MessageRouter:
    """
    Stateless with respect to the process: all per-customer state lives in
    the injected ConversationStore.

    Call handle() for every inbound message of a connected tenant.
    """

    def __init__(self, config: RouterConfig):
        self._cfg = config

    def menu_url(self, tenant_id: str, configured: str = "") -> str:
        return configured or f"{self._cfg.public_base_url}/pedido/{tenant_id}"

    def tracking_url(self, tracking_code: str) -> str:
        return f"{self._cfg.public_base_url}/rastreamento/{tracking_code}"

    async def handle(
        self, tenant_id: str, message: InboundMessage, transport: ChatTransport
    ) -> RouteResult:
        """Process one message. Never raises."""
        try:
            return await self._route(tenant_id, message, transport)
        except Exception as exc:
            log.exception("tenant=%s from=%s routing failed", tenant_id, message.sender_id)
            try:
                await transport.send_message(message.sender_id, replies.GENERIC_ERROR)
            except Exception as send_exc:
                log.error(
                    "tenant=%s from=%s could not send error reply: %s",
                    tenant_id, message.sender_id, send_exc,
                )
            return RouteResult(action="error", details=str(exc))

    async def _route(
        self, tenant_id: str, message: InboundMessage, transport: ChatTransport
    ) -> RouteResult:
        sender = message.sender_id

        # Step 1: gate
        config = await self._cfg.tenants.get_tenant_config(tenant_id)
        if config is None or not config.is_active:
            log.info("tenant=%s from=%s skip: bot inactive", tenant_id, sender)
            return RouteResult(action="ignored", details="tenant inactive")
        if message.from_me:
            return RouteResult(action="ignored", details="own message")
        if message.type != "chat":
            log.debug("tenant=%s from=%s skip: type=%s", tenant_id, sender, message.type)
            return RouteResult(action="ignored", details=f"type={message.type}")
        body = message.body.strip()
        if not body:
            return RouteResult(action="ignored", details="empty body")

        log.debug("tenant=%s from=%s message=%.60r", tenant_id, sender, body)

        # Step 2: prior state, expired entries count as absent
        conversations = self._cfg.conversations
        state = conversations.get(tenant_id, sender)
        if state is not None and is_expired(state, self._cfg.clock()):
            log.info("tenant=%s from=%s stale %s state discarded", tenant_id, sender, state.status)
            conversations.delete(tenant_id, sender)
            state = None

        # Step 3: fast-path confirmation
        prior_question = None
        if state is not None and state.status == "awaiting_confirmation":
            if is_affirmative(body) and state.pending_order is not None:
                result = await self._finalize(tenant_id, sender, state.pending_order, transport)
                conversations.delete(tenant_id, sender)
                return result
            # Anything else is a modification: reclassify, state kept until replaced.
        elif state is not None and state.last_bot_message:
            prior_question = state.last_bot_message
            conversations.delete(tenant_id, sender)

        # Step 4: AI classifies
        catalog = await self._cfg.catalog.get_catalog(tenant_id)
        context = ClassificationContext(
            catalog_summary=catalog_summary(catalog),
            menu_url=self.menu_url(tenant_id, config.menu_url),
            business=config.business,
            last_order=await self._cfg.orders.get_last_order(tenant_id, sender),
            prior_bot_question=prior_question,
        )
        intent = await self._cfg.classifier.classify(body, context)

        if intent is None:
            if conversations.was_notified(tenant_id, sender):
                log.info("tenant=%s from=%s AI unavailable, already notified", tenant_id, sender)
                return RouteResult(action="ai_unavailable", details="already notified")
            conversations.mark_notified(tenant_id, sender)
            await transport.send_message(sender, replies.AI_UNAVAILABLE)
            log.warning("tenant=%s from=%s AI unavailable, notice sent", tenant_id, sender)
            return RouteResult(action="ai_unavailable", details="notice sent")

        log.info("tenant=%s from=%s classified → %s", tenant_id, sender, intent.tag)

        # Step 5: dispatch
        if isinstance(intent, OrderIntent):
            order = enrich_order(intent.order, catalog)
            conversations.set(tenant_id, sender, ConversationState(
                status="awaiting_confirmation",
                pending_order=order,
                created_at=self._cfg.clock(),
            ))
            await transport.send_message(sender, replies.render_confirmation(order))
            return RouteResult(
                action="confirmation_requested",
                details=f"items={len(order.items)} total={order.total:.2f}",
            )

        if isinstance(intent, ClarificationIntent):
            conversations.set(tenant_id, sender, ConversationState(
                status="awaiting_clarification",
                last_bot_message=intent.text,
                created_at=self._cfg.clock(),
            ))
            await transport.send_message(sender, intent.text)
            return RouteResult(action="clarification_sent", details=intent.text)

        if isinstance(intent, ReplyIntent):
            await transport.send_message(sender, intent.text)
            return RouteResult(action="reply_sent", details=intent.text)

        # UnrecognizedIntent
        log.warning(
            "tenant=%s from=%s unrecognized intent tag=%s (%s)",
            tenant_id, sender, intent.tag, intent.reason,
        )
        text = replies.NOT_UNDERSTOOD if intent.tag is None else replies.FALLBACK
        await transport.send_message(sender, text)
        return RouteResult(action="fallback_sent", details=intent.reason)

    async def _finalize(
        self,
        tenant_id: str,
        sender: str,
        order: PendingOrder,
        transport: ChatTransport,
    ) -> RouteResult:
        """Persist the confirmed order and send the tracking details."""
        orders = self._cfg.orders
        try:
            saved = None
            for _ in range(MAX_CODE_ATTEMPTS):
                code = generate_tracking_code()
                if await orders.order_exists(tenant_id, code):
                    log.info("tenant=%s tracking code %s taken, retrying", tenant_id, code)
                    continue
                record = finalize(order, code, sender)
                if await orders.create_order(tenant_id, record):
                    saved = record
                break
        except Exception:
            log.exception("tenant=%s from=%s order persistence raised", tenant_id, sender)
            saved = None

        if saved is None:
            log.error("tenant=%s from=%s order not saved", tenant_id, sender)
            await transport.send_message(sender, replies.SAVE_FAILED)
            return RouteResult(action="finalize_failed")

        log.info(
            "tenant=%s from=%s order %s saved total=%.2f",
            tenant_id, sender, saved.tracking_code, saved.total,
        )
        await transport.send_message(
            sender, replies.render_final(saved, self.tracking_url(saved.tracking_code))
        )
        return RouteResult(
            action="order_finalized",
            details=f"total={saved.total:.2f}",
            tracking_code=saved.tracking_code,
        )
