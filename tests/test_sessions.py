"""
Session manager lifecycle tests against the simulated chat gateway.

The connect handshake runs as a background task, so tests yield to the
event loop (asyncio.sleep(0)) before checking its effects.
"""

import asyncio

import pytest

from src.adapters.memory_conversation import InMemoryConversationStore
from src.adapters.memory_store import InMemoryStore
from src.adapters.simulator_intent import SimulatorIntentClassifier
from src.domain.catalog import CatalogEntry
from src.domain.tenant import TenantConfig
from src.router import MessageRouter, RouterConfig
from src.sessions import SessionManager
from src.transport.simulator import SimulatorChatGateway

TENANT = "pizzaria"
CUSTOMER = "5511999990000@c.us"


async def make_manager() -> tuple[SessionManager, SimulatorChatGateway]:
    store = InMemoryStore()
    await store.save_catalog(TENANT, [CatalogEntry("Pizza Calabresa", 30.0)])
    await store.save_tenant_config(TenantConfig(tenant_id=TENANT, is_active=True))
    router = MessageRouter(RouterConfig(
        catalog=store,
        tenants=store,
        orders=store,
        classifier=SimulatorIntentClassifier(),
        conversations=InMemoryConversationStore(),
        public_base_url="https://pedidos.example.com",
    ))
    gateway = SimulatorChatGateway()
    return SessionManager(gateway, router), gateway


async def connected_manager():
    manager, gateway = await make_manager()
    await manager.start(TENANT)
    await asyncio.sleep(0)
    transport = gateway.latest(TENANT)
    await transport.simulate_login()
    return manager, gateway, transport


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_unknown_tenant_is_disconnected():
    manager, _ = await make_manager()
    assert manager.get_status("nobody") == {
        "status": "disconnected",
        "isConnected": False,
        "hasScannableAuth": False,
    }
    assert manager.get_scannable_auth("nobody") is None


@pytest.mark.asyncio
async def test_start_returns_initializing_and_connects_in_background():
    manager, gateway = await make_manager()
    assert await manager.start(TENANT) == "initializing"
    await asyncio.sleep(0)
    assert gateway.latest(TENANT).connect_calls == 1
    assert manager.tenants() == [TENANT]


@pytest.mark.asyncio
async def test_qr_code_is_exposed_while_pending():
    manager, gateway = await make_manager()
    await manager.start(TENANT)
    await gateway.latest(TENANT).simulate_qr("qr-payload-1")

    status = manager.get_status(TENANT)
    assert status["status"] == "qr_pending"
    assert status["hasScannableAuth"] is True
    assert manager.get_scannable_auth(TENANT) == "qr-payload-1"


@pytest.mark.asyncio
async def test_login_reaches_connected_and_clears_qr():
    manager, _, _ = await connected_manager()
    status = manager.get_status(TENANT)
    assert status == {"status": "connected", "isConnected": True, "hasScannableAuth": False}
    assert manager.get_scannable_auth(TENANT) is None


@pytest.mark.asyncio
async def test_authenticated_is_not_connected():
    manager, gateway = await make_manager()
    await manager.start(TENANT)
    transport = gateway.latest(TENANT)
    await transport.simulate_qr()
    await transport.simulate_authenticated()
    assert manager.get_status(TENANT)["status"] == "authenticated"
    assert manager.get_status(TENANT)["isConnected"] is False


# ---------------------------------------------------------------------------
# Restart and teardown
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_second_start_replaces_first_session():
    manager, gateway, first = await connected_manager()

    await manager.start(TENANT)

    assert first.disconnected is True
    assert len(gateway.created[TENANT]) == 2
    assert manager.tenants() == [TENANT]
    assert manager.get_status(TENANT)["status"] == "initializing"


@pytest.mark.asyncio
async def test_events_from_replaced_transport_are_ignored():
    manager, gateway, first = await connected_manager()
    await manager.start(TENANT)

    await first.simulate_ready()

    assert manager.get_status(TENANT)["status"] == "initializing"


@pytest.mark.asyncio
async def test_stop_disconnects():
    manager, _, transport = await connected_manager()
    await manager.stop(TENANT)
    assert transport.disconnected is True
    assert manager.get_status(TENANT)["status"] == "disconnected"
    assert manager.tenants() == []


@pytest.mark.asyncio
async def test_stop_unknown_tenant_is_noop():
    manager, _ = await make_manager()
    await manager.stop("nobody")  # must not raise


@pytest.mark.asyncio
async def test_transport_disconnect_removes_session():
    manager, _, transport = await connected_manager()
    await transport.simulate_disconnect()
    assert manager.get_status(TENANT)["isConnected"] is False
    assert manager.get_status(TENANT)["status"] == "disconnected"
    assert manager.tenants() == []


@pytest.mark.asyncio
async def test_auth_failure_tears_down_and_stays_visible():
    manager, gateway = await make_manager()
    await manager.start(TENANT)
    transport = gateway.latest(TENANT)
    await transport.simulate_qr()

    await transport.simulate_auth_failure()

    assert transport.disconnected is True
    assert manager.tenants() == []
    assert manager.get_status(TENANT) == {
        "status": "auth_failed",
        "isConnected": False,
        "hasScannableAuth": False,
    }

    await manager.stop(TENANT)
    assert manager.get_status(TENANT)["status"] == "disconnected"


@pytest.mark.asyncio
async def test_connect_error_sets_error_until_restart():
    manager, gateway = await make_manager()
    original = gateway.create_transport

    def failing_transport(tenant_id):
        transport = original(tenant_id)
        transport.fail_connect = RuntimeError("gateway down")
        return transport

    gateway.create_transport = failing_transport
    await manager.start(TENANT)
    await asyncio.sleep(0)
    assert manager.get_status(TENANT)["status"] == "error"
    assert manager.tenants() == []

    gateway.create_transport = original
    await manager.start(TENANT)
    assert manager.get_status(TENANT)["status"] == "initializing"


@pytest.mark.asyncio
async def test_shutdown_stops_every_session():
    manager, gateway = await make_manager()
    await manager.start("a")
    await manager.start("b")
    await manager.shutdown()
    assert manager.tenants() == []
    assert gateway.latest("a").disconnected and gateway.latest("b").disconnected


# ---------------------------------------------------------------------------
# Message routing
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_connected_session_routes_messages():
    _, _, transport = await connected_manager()
    await transport.inject_message(CUSTOMER, "me manda o cardápio")
    [reply] = transport.messages_to(CUSTOMER)
    assert "https://pedidos.example.com/pedido/pizzaria" in reply


@pytest.mark.asyncio
async def test_messages_before_ready_are_not_routed():
    manager, gateway = await make_manager()
    await manager.start(TENANT)
    transport = gateway.latest(TENANT)
    await transport.simulate_qr()
    await transport.inject_message(CUSTOMER, "cardápio")
    assert transport.sent == []


@pytest.mark.asyncio
async def test_handler_registered_once_even_if_ready_repeats():
    _, _, transport = await connected_manager()
    await transport.simulate_ready()
    await transport.inject_message(CUSTOMER, "cardápio")
    assert len(transport.messages_to(CUSTOMER)) == 1
