"""
Parsing raw model output into the Intent union.

No network: these exercise extract_json_object / parse_intent /
parse_model_output directly, plus the prompt content builder.
"""

from datetime import datetime, timezone

import pytest

from src.adapters.claude_intent import build_user_content
from src.adapters.factory import create_intent_classifier
from src.adapters.simulator_intent import SimulatorIntentClassifier
from src.domain.intent import (
    ClarificationIntent,
    ClassificationContext,
    OrderIntent,
    ReplyIntent,
    UnrecognizedIntent,
    extract_json_object,
    parse_intent,
    parse_model_output,
)
from src.domain.order import FinalizedOrder, OrderItem
from src.domain.tenant import BusinessInfo
from src.prompts import load_prompt


# ---------------------------------------------------------------------------
# JSON extraction
# ---------------------------------------------------------------------------


def test_extract_plain_object():
    assert extract_json_object('{"type": "reply", "data": "oi"}') == '{"type": "reply", "data": "oi"}'


def test_extract_from_markdown_fence():
    raw = 'Claro!\n```json\n{"type": "reply", "data": "oi"}\n```'
    assert extract_json_object(raw) == '{"type": "reply", "data": "oi"}'


def test_extract_nested_object():
    raw = 'x {"type": "order", "data": {"items": [{"name": "A"}]}} y {"other": 1}'
    assert extract_json_object(raw) == '{"type": "order", "data": {"items": [{"name": "A"}]}}'


def test_braces_inside_strings_are_ignored():
    raw = '{"type": "reply", "data": "use {chaves} e \\"aspas\\" à vontade"}'
    assert extract_json_object(raw) == raw


def test_no_object_returns_none():
    assert extract_json_object("sem json aqui") is None
    assert extract_json_object('{"aberto": ') is None


# ---------------------------------------------------------------------------
# Validation into the union
# ---------------------------------------------------------------------------


def test_reply_intent():
    assert parse_intent({"type": "reply", "data": " Olá! "}) == ReplyIntent("Olá!")


def test_clarification_intent():
    result = parse_intent({"type": "clarification", "data": "Qual o endereço?"})
    assert result == ClarificationIntent("Qual o endereço?")


def test_order_intent_reads_camel_case_fields():
    result = parse_intent({
        "type": "order",
        "data": {
            "customerName": "João",
            "address": "Rua das Flores, 123",
            "paymentMethod": "Dinheiro",
            "deliveryType": "dine_in",
            "tableNumber": "7",
            "items": [{"name": "Pizza Calabresa", "quantity": "2", "size": "grande"}],
        },
    })
    assert isinstance(result, OrderIntent)
    order = result.order
    assert order.customer_name == "João"
    assert order.address == "Rua das Flores, 123"
    assert order.payment_method == "Dinheiro"
    assert order.delivery_type == "dine_in"
    assert order.table_number == "7"
    assert order.items[0].name == "Pizza Calabresa"
    assert order.items[0].size == "grande"
    assert order.items[0].price is None


def test_unknown_delivery_type_falls_back_to_delivery():
    result = parse_intent({
        "type": "order",
        "data": {"deliveryType": "drone", "items": [{"name": "Esfiha"}]},
    })
    assert result.order.delivery_type == "delivery"


def test_missing_type_or_data_is_untagged():
    assert parse_intent({"type": "reply"}) == UnrecognizedIntent(tag=None, reason="missing type or data")
    assert parse_intent({"data": "oi"}).tag is None
    assert parse_intent(["not", "an", "object"]).tag is None


def test_unknown_type_keeps_its_tag():
    result = parse_intent({"type": "complaint", "data": "a pizza chegou fria"})
    assert isinstance(result, UnrecognizedIntent)
    assert result.tag == "complaint"


def test_order_without_items_is_unrecognized():
    result = parse_intent({"type": "order", "data": {"items": []}})
    assert isinstance(result, UnrecognizedIntent)
    assert result.tag == "order"


def test_order_item_without_name_is_unrecognized():
    result = parse_intent({"type": "order", "data": {"items": [{"quantity": 1}]}})
    assert isinstance(result, UnrecognizedIntent)


def test_reply_with_non_text_data_is_unrecognized():
    result = parse_intent({"type": "reply", "data": {"text": "oi"}})
    assert isinstance(result, UnrecognizedIntent)
    assert result.tag == "reply"


def test_model_output_without_json_is_none():
    assert parse_model_output("Desculpe, não entendi.") is None


def test_model_output_with_broken_json_is_none():
    assert parse_model_output('{"type": "reply", "data": oi}') is None


def test_model_output_with_prose_around_json():
    raw = 'Aqui está:\n{"type": "reply", "data": "Abrimos às 18h"}\nAté mais!'
    assert parse_model_output(raw) == ReplyIntent("Abrimos às 18h")


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------


def test_system_prompt_is_shipped():
    prompt = load_prompt("classify_order")
    assert '"type"' in prompt
    assert "clarification" in prompt


def test_user_content_embeds_context():
    last = FinalizedOrder(
        tracking_code="ABCD1234",
        customer_name="Maria",
        phone="5511999990000",
        address="Rua A, 1",
        items=[OrderItem("Pizza Calabresa", 1, price=30.0)],
        total=30.0,
        payment_method="Pix",
        sender_id="5511999990000@c.us",
        created_at=datetime(2026, 2, 14, 20, 0, tzinfo=timezone.utc),
    )
    ctx = ClassificationContext(
        catalog_summary="Pizza Calabresa, Coca-Cola 2L",
        menu_url="https://example.com/pedido/pizzaria",
        business=BusinessInfo(restaurant_name="Pizzaria Bella", opening_hours="18h às 23h"),
        last_order=last,
        prior_bot_question="Qual a forma de pagamento?",
    )
    content = build_user_content("pix", ctx)
    assert "Pizzaria Bella" in content
    assert "18h às 23h" in content
    assert "Pizza Calabresa, Coca-Cola 2L" in content
    assert "https://example.com/pedido/pizzaria" in content
    assert "14/02/2026" in content
    assert "Qual a forma de pagamento?" in content
    assert content.endswith('"pix"')


def test_user_content_for_new_customer():
    ctx = ClassificationContext(catalog_summary="", menu_url="u", business=BusinessInfo())
    content = build_user_content("oi", ctx)
    assert "cliente novo" in content
    assert "Você perguntou" not in content


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def test_factory_builds_simulator():
    assert isinstance(create_intent_classifier("simulator"), SimulatorIntentClassifier)


def test_factory_rejects_unknown_classifier():
    with pytest.raises(ValueError):
        create_intent_classifier("gemini")
