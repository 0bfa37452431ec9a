"""
SimulatorIntentClassifier — deterministic keyword-based classifier for tests.

No LLM calls, no network. Recognises the most common Portuguese phrases
customers send to a restaurant on WhatsApp.
"""

import re
import unicodedata

from src.domain.intent import (
    ClarificationIntent,
    ClassificationContext,
    Intent,
    IntentClassifier,
    OrderIntent,
    ReplyIntent,
)
from src.domain.order import OrderItem, PendingOrder

_GREETINGS = [r"^oi\b", r"^ola\b", r"^bom dia\b", r"^boa tarde\b", r"^boa noite\b", r"^e ai\b"]

_MENU_REQUEST = [r"\bcardapio\b", r"\bmenu\b", r"\bquero pedir\b", r"\bfazer um pedido\b"]

_HOURS_QUESTION = [r"\bhorario\b", r"\babre\b", r"\bfecha\b", r"\bfuncionamento\b"]

_ADDRESS_QUESTION = [r"\bonde fica\b", r"\bendereco de voces\b", r"\bqual o endereco\b"]

_SOCIAL = [r"^obrigad[oa]\b", r"^valeu\b", r"^ok\b", r"^blz\b", r"^beleza\b"]

_PAYMENTS = {"dinheiro": "Dinheiro", "cartao": "Cartão", "pix": "Pix"}

# "entregar na Rua das Flores, 123" / "endereço: Av. Brasil 10"
_ADDRESS = re.compile(r"(?:entregar (?:na|no|em)|endereco:?)\s+(.+?)(?:$|\n| pagamento| nome)")

_NUMBER_WORDS = {"um": 1, "uma": 1, "dois": 2, "duas": 2, "tres": 3, "quatro": 4, "cinco": 5}

ASK_ADDRESS = "Entendi seu pedido! Para qual endereço será a entrega?"
ASK_PAYMENT = "Pedido quase pronto! Qual a forma de pagamento (Dinheiro, Cartão, Pix)?"


def _fold(text: str) -> str:
    """Lower-case and strip accents so 'Cardápio' matches 'cardapio'."""
    decomposed = unicodedata.normalize("NFKD", text.lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).strip()


def _match_any(text: str, patterns: list[str]) -> bool:
    return any(re.search(p, text) for p in patterns)


def _quantity_before(text: str, start: int) -> int:
    words = text[:start].split()
    if not words:
        return 1
    last = words[-1]
    if last.isdigit():
        return int(last)
    return _NUMBER_WORDS.get(last, 1)


def _find_items(text: str, context: ClassificationContext) -> list[OrderItem]:
    items = []
    for name in [n.strip() for n in context.catalog_summary.split(",") if n.strip()]:
        pos = text.find(_fold(name))
        if pos == -1:
            # "pizza calabresa" in the catalog, "pizza de calabresa" in the message
            pattern = r"\s+(?:de\s+|da\s+|do\s+)?".join(map(re.escape, _fold(name).split()))
            m = re.search(pattern, text)
            if not m:
                continue
            pos = m.start()
        items.append(OrderItem(name=name, quantity=_quantity_before(text, pos)))
    return items


def _find_payment(text: str) -> str | None:
    for key, label in _PAYMENTS.items():
        if re.search(rf"\b{key}\b", text):
            return label
    return None


def _find_address(text: str) -> str | None:
    m = _ADDRESS.search(text)
    return m.group(1).strip(" ,.") if m else None


class SimulatorIntentClassifier(IntentClassifier):
    """
    Keyword-based intent classifier for tests.

    Test helpers:
        fail        — classify() returns None, as when the AI is unreachable
        calls       — list of (message, context) seen by classify()
        scripted    — queue of intents returned before any keyword matching
    """

    def __init__(self):
        self.fail = False
        self.calls: list[tuple[str, ClassificationContext]] = []
        self.scripted: list[Intent] = []

    async def classify(
        self, message: str, context: ClassificationContext
    ) -> Intent | None:
        self.calls.append((message, context))
        if self.fail:
            return None
        if self.scripted:
            return self.scripted.pop(0)

        text = _fold(message)
        items = _find_items(text, context)

        if items:
            address = _find_address(text)
            payment = _find_payment(text)
            if address is None:
                return ClarificationIntent(ASK_ADDRESS)
            if payment is None:
                return ClarificationIntent(ASK_PAYMENT)
            return OrderIntent(PendingOrder(items=items, address=address, payment_method=payment))

        if context.prior_bot_question:
            prior = _fold(context.prior_bot_question)
            if "pagamento" in prior and _find_payment(text):
                return ReplyIntent(f"Anotado: {_find_payment(text)}. O que mais deseja pedir?")
            if "endereco" in prior:
                return ReplyIntent(f"Anotado o endereço: {message.strip()}. O que mais deseja pedir?")

        if _match_any(text, _MENU_REQUEST):
            return ReplyIntent(
                f"Claro! Veja nosso cardápio completo e faça seu pedido por aqui: {context.menu_url}"
            )

        if _match_any(text, _HOURS_QUESTION):
            hours = context.business.opening_hours or "não informado"
            return ReplyIntent(f"Nosso horário de funcionamento: {hours}")

        if _match_any(text, _ADDRESS_QUESTION):
            address = context.business.address or "não informado"
            return ReplyIntent(f"Estamos em: {address}")

        if _match_any(text, _GREETINGS):
            if context.last_order is not None and context.last_order.items:
                last = context.last_order.items[0].name
                return ReplyIntent(
                    f"Que bom te ver de novo! 😊 Da última vez você pediu {last}. "
                    "O que vamos pedir hoje?"
                )
            return ReplyIntent(
                context.business.welcome_message or "Olá! Bem-vindo ao nosso restaurante."
            )

        if _match_any(text, _SOCIAL):
            return ReplyIntent("Por nada! Qualquer coisa é só chamar 😊")

        return ReplyIntent("Não entendi muito bem 😅 Quer ver nosso cardápio? É só pedir!")
