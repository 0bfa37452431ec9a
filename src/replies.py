"""
Outbound message texts.

Everything the bot says on its own (as opposed to text written by the
classifier) lives here, so the router only decides *which* message to send.
"""

from src.domain.order import FinalizedOrder, OrderItem, PendingOrder

AI_UNAVAILABLE = (
    "🤖 Nosso assistente de IA está temporariamente indisponível. "
    "Por favor, aguarde que um atendente humano responderá em breve."
)

NOT_UNDERSTOOD = (
    "Desculpe, não consegui entender seu pedido. Por favor, tente novamente "
    "com mais detalhes sobre os itens que deseja pedir.\n\n"
    "Exemplo:\n"
    '"Quero 1 pizza grande de calabresa e 1 coca-cola 2L\n'
    "Entregar na Rua das Flores, 123\n"
    "Nome: João\n"
    'Pagamento: Dinheiro"'
)

FALLBACK = "Desculpe, não consegui processar a resposta. Poderia tentar novamente?"

GENERIC_ERROR = (
    "Desculpe, ocorreu um erro ao processar sua mensagem. "
    "Por favor, tente novamente mais tarde."
)

SAVE_FAILED = "Desculpe, ocorreu um erro ao salvar seu pedido. Por favor, tente novamente."

TO_BE_DEFINED = "A definir"


def _money(value: float) -> str:
    return f"R$ {value:.2f}"


def _item_line(item: OrderItem) -> str:
    size = f" ({item.size})" if item.size else ""
    price = _money(item.price) if item.price is not None else "R$ ??"
    return f"- {item.quantity}x {item.name}{size} ({price})"


def render_confirmation(order: PendingOrder) -> str:
    """Summary of an enriched order, asking the customer to answer "sim"."""
    lines = ["Confirme seu pedido, por favor:", "", "*Itens:*"]
    lines += [_item_line(item) for item in order.items]
    lines += [
        "",
        f"*Total estimado: {_money(order.total)}*",
        "",
        'Está correto? (Responda com "sim" para confirmar)',
    ]
    return "\n".join(lines)


def render_final(order: FinalizedOrder, tracking_url: str) -> str:
    lines = [
        "✅ *Pedido confirmado!*",
        "",
        f"*Código de rastreamento:* {order.tracking_code}",
        "",
        "*Itens:*",
    ]
    lines += [_item_line(item) for item in order.items]
    lines += [
        "",
        f"*Total: {_money(order.total)}*",
        "",
        f"*Endereço:* {order.address or TO_BE_DEFINED}",
        f"*Pagamento:* {order.payment_method or TO_BE_DEFINED}",
        "",
        "Seu pedido foi recebido e está sendo preparado! 🍕",
        "",
        f"Acompanhe seu pedido em: {tracking_url}",
        "",
        "Obrigado pela preferência! 😊",
    ]
    return "\n".join(lines)
