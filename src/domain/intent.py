"""
IntentClassifier port — understands what the customer is asking for.

AI is used here: the classifier reads one customer message and returns a
structured intent.  The router then operates on that data, never on raw
model output.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Union

from src.domain.order import FinalizedOrder, OrderItem, PendingOrder
from src.domain.tenant import BusinessInfo

log = logging.getLogger(__name__)


@dataclass
class ClassificationContext:
    """Everything the classifier needs besides the message itself."""
    catalog_summary: str
    menu_url: str
    business: BusinessInfo
    last_order: FinalizedOrder | None = None
    prior_bot_question: str | None = None


@dataclass(frozen=True)
class OrderIntent:
    order: PendingOrder
    tag = "order"


@dataclass(frozen=True)
class ReplyIntent:
    text: str
    tag = "reply"


@dataclass(frozen=True)
class ClarificationIntent:
    text: str
    tag = "clarification"


@dataclass(frozen=True)
class UnrecognizedIntent:
    """Well-formed JSON that matches none of the known shapes."""
    tag: str | None
    reason: str = ""


Intent = Union[OrderIntent, ReplyIntent, ClarificationIntent, UnrecognizedIntent]


def extract_json_object(raw: str) -> str | None:
    """
    Return the first balanced {...} block in *raw*, or None.

    Models sometimes wrap the JSON in prose or markdown fences despite
    instructions; braces inside JSON strings are not counted.
    """
    start = raw.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(raw)):
            ch = raw[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return raw[start:i + 1]
        start = raw.find("{", start + 1)
    return None


def _text(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_order(data) -> PendingOrder | None:
    if not isinstance(data, dict):
        return None
    raw_items = data.get("items")
    if not isinstance(raw_items, list) or not raw_items:
        return None

    items = []
    for raw in raw_items:
        if not isinstance(raw, dict) or not _text(raw.get("name")):
            return None
        items.append(OrderItem(
            name=_text(raw["name"]),
            quantity=raw.get("quantity", 1),   # coerced during enrichment
            size=_text(raw.get("size")),
        ))

    delivery_type = _text(data.get("deliveryType")) or "delivery"
    if delivery_type not in ("delivery", "dine_in"):
        delivery_type = "delivery"

    return PendingOrder(
        items=items,
        customer_name=_text(data.get("customerName")),
        address=_text(data.get("address")),
        phone=_text(data.get("phone")),
        payment_method=_text(data.get("paymentMethod")),
        observations=_text(data.get("observations")),
        delivery_type=delivery_type,
        table_number=_text(data.get("tableNumber")),
    )


def parse_intent(payload) -> Intent:
    """Validate a decoded {"type": ..., "data": ...} object into an Intent."""
    if not isinstance(payload, dict):
        return UnrecognizedIntent(tag=None, reason="not an object")

    tag = payload.get("type")
    data = payload.get("data")
    if not tag or not data:
        return UnrecognizedIntent(tag=None, reason="missing type or data")

    if tag == "order":
        order = _parse_order(data)
        if order is None:
            return UnrecognizedIntent(tag=tag, reason="malformed order data")
        return OrderIntent(order)

    if tag in ("reply", "clarification"):
        if not isinstance(data, str) or not data.strip():
            return UnrecognizedIntent(tag=tag, reason="data is not text")
        if tag == "reply":
            return ReplyIntent(data.strip())
        return ClarificationIntent(data.strip())

    return UnrecognizedIntent(tag=str(tag), reason="unknown type")


def parse_model_output(raw: str) -> Intent | None:
    """Raw model text → Intent, or None if no JSON object can be decoded."""
    block = extract_json_object(raw)
    if block is None:
        log.warning("no JSON object in model output: %.120r", raw)
        return None
    try:
        payload = json.loads(block)
    except json.JSONDecodeError as exc:
        log.warning("unparsable JSON in model output (%s): %.120r", exc, block)
        return None
    return parse_intent(payload)


class IntentClassifier(ABC):
    """
    Port: classify one customer message into a structured intent.

    Implementations may use an LLM (ClaudeIntentClassifier) or
    deterministic keyword matching (SimulatorIntentClassifier).
    Both must satisfy the same contract.

    Returns None when the model is unreachable or its output cannot be
    parsed; callers must tell that apart from a valid ReplyIntent.
    """

    @abstractmethod
    async def classify(
        self, message: str, context: ClassificationContext
    ) -> Intent | None:
        ...
