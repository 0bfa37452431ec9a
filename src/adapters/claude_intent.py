"""
ClaudeIntentClassifier — uses the Claude API to classify customer messages.

The system prompt (src/prompts/classify_order.txt) is the source of truth
for the decision rules.  The model must answer with one JSON object that
parse_model_output() maps onto the Intent union.
"""

import logging
import os

import anthropic

from src.domain.intent import (
    ClassificationContext,
    Intent,
    IntentClassifier,
    parse_model_output,
)
from src.prompts import load_prompt

log = logging.getLogger(__name__)


def _last_order_summary(context: ClassificationContext) -> str:
    order = context.last_order
    if order is None or not order.items:
        return "Este é um cliente novo."
    names = ", ".join(item.name for item in order.items)
    return f"O cliente pediu {names} em {order.created_at.strftime('%d/%m/%Y')}."


def build_user_content(message: str, context: ClassificationContext) -> str:
    b = context.business
    content = (
        "Informações da loja:\n"
        f"  Nome: {b.restaurant_name or 'Não informado'}\n"
        f"  Mensagem de boas-vindas: {b.welcome_message or 'Olá! Bem-vindo ao nosso restaurante.'}\n"
        f"  Horário: {b.opening_hours or 'Não informado'}\n"
        f"  Endereço: {b.address or 'Não informado'}\n"
        f"  Telefone: {b.contact_phone or 'Não informado'}\n"
        f"Link do cardápio: {context.menu_url}\n"
        f"Cardápio: [{context.catalog_summary or 'Cardápio indisponível'}]\n"
        f"Último pedido: {_last_order_summary(context)}\n"
    )
    if context.prior_bot_question:
        content += (
            f'\nVocê perguntou ao cliente: "{context.prior_bot_question}". '
            "A mensagem abaixo é a resposta dele.\n"
        )
    content += f'\nMensagem do cliente:\n"{message}"'
    return content


class ClaudeIntentClassifier(IntentClassifier):
    """Intent classifier backed by Claude claude-haiku-4-5-20251001 (fast + cheap)."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "claude-haiku-4-5-20251001",
        max_tokens: int = 1024,
    ):
        self._client = anthropic.AsyncAnthropic(
            api_key=api_key or os.environ["ANTHROPIC_API_KEY"]
        )
        self._model = model
        self._max_tokens = max_tokens

    async def classify(
        self, message: str, context: ClassificationContext
    ) -> Intent | None:
        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                system=load_prompt("classify_order"),
                messages=[{"role": "user", "content": build_user_content(message, context)}],
            )
        except anthropic.APIError as exc:
            log.error("classifier call failed: %s", exc)
            return None

        raw = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        ).strip()
        log.debug("raw classifier output: %.300r", raw)
        return parse_model_output(raw)
