"""
Process runner for the WhatsApp order bot.

Serves the REST control surface and the chat webhook with uvicorn.  Tenant
sessions are started on demand through POST /api/whatsapp/start/{tenant}.

Usage:
    source .env && python scripts/run.py

Environment variables (all optional unless noted):
    PORT              - HTTP port (default: 3001)
    LOG_LEVEL         - logging level (default: INFO)
    DB_PATH           - SQLite database path (default: data/orders.db)
    PUBLIC_BASE_URL   - storefront base URL for menu and tracking links
                        (default: http://localhost:3000)
    CLASSIFIER        - "claude" or "simulator" (default: claude)
    ANTHROPIC_API_KEY - required when CLASSIFIER=claude
    CHAT_TRANSPORT    - "waha" or "simulator" (default: simulator)
    CORS_ORIGINS      - comma-separated dashboard origins (default: *)

    # WAHA (only when CHAT_TRANSPORT=waha)
    WAHA_URL, WAHA_API_KEY, WEBHOOK_URL (required)
"""

import logging
import os
import sys

import uvicorn

# Make sure project root is on sys.path when run as a script
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.adapters.factory import create_intent_classifier
from src.adapters.memory_conversation import InMemoryConversationStore
from src.adapters.sqlite_store import SqliteStore
from src.api import create_app
from src.router import MessageRouter, RouterConfig
from src.sessions import SessionManager
from src.transport.factory import create_chat_gateway

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s  %(levelname)-7s  %(name)s  %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
log = logging.getLogger(__name__)


def _require_env(name: str) -> str:
    value = os.environ.get(name)
    if not value:
        print(f"ERROR: environment variable {name!r} is not set.", file=sys.stderr)
        sys.exit(1)
    return value


def build_app():
    if os.environ.get("CLASSIFIER", "claude") == "claude":
        _require_env("ANTHROPIC_API_KEY")
    if os.environ.get("CHAT_TRANSPORT", "simulator") == "waha":
        _require_env("WEBHOOK_URL")

    db_path = os.environ.get("DB_PATH", "data/orders.db")
    if os.path.dirname(db_path):
        os.makedirs(os.path.dirname(db_path), exist_ok=True)
    store = SqliteStore(db_path=db_path)

    router = MessageRouter(RouterConfig(
        catalog=store,
        tenants=store,
        orders=store,
        classifier=create_intent_classifier(),
        conversations=InMemoryConversationStore(),
        public_base_url=os.environ.get("PUBLIC_BASE_URL", "http://localhost:3000").rstrip("/"),
    ))
    gateway = create_chat_gateway()
    manager = SessionManager(gateway, router)
    return create_app(manager, gateway)


def main() -> None:
    port = int(os.environ.get("PORT", "3001"))
    app = build_app()
    log.info("Server starting on port %d", port)
    uvicorn.run(app, host="0.0.0.0", port=port, log_level=os.environ.get("LOG_LEVEL", "info").lower())


if __name__ == "__main__":
    main()
