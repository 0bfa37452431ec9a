"""
REST control surface for the admin dashboard, plus the webhook the chat
gateway pushes events to.

All endpoints are thin: they translate HTTP into SessionManager calls.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from src.sessions import SessionManager
from src.transport.ports import ChatGateway

log = logging.getLogger(__name__)


def cors_origins_from_env() -> list[str]:
    """CORS_ORIGINS is a comma-separated list; "*" (the default) allows any origin."""
    raw = os.environ.get("CORS_ORIGINS", "*")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def create_app(
    manager: SessionManager,
    gateway: ChatGateway,
    cors_origins: list[str] | None = None,
) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await manager.shutdown()

    app = FastAPI(title="WhatsApp order bot", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins if cors_origins is not None else cors_origins_from_env(),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    router = APIRouter(prefix="/api/whatsapp")

    @router.post("/start/{tenant_id}")
    async def start_session(tenant_id: str):
        try:
            status = await manager.start(tenant_id)
        except Exception as exc:
            log.exception("tenant=%s start failed", tenant_id)
            raise HTTPException(status_code=500, detail=f"Falha ao iniciar sessão: {exc}")
        return {"success": True, "message": "Sessão iniciada", "status": status}

    @router.get("/status/{tenant_id}")
    async def session_status(tenant_id: str):
        return manager.get_status(tenant_id)

    @router.get("/auth/{tenant_id}")
    async def scannable_auth(tenant_id: str):
        return {
            "authPayload": manager.get_scannable_auth(tenant_id),
            "status": manager.get_status(tenant_id)["status"],
        }

    @router.post("/disconnect/{tenant_id}")
    async def disconnect_session(tenant_id: str):
        await manager.stop(tenant_id)
        return {"success": True, "message": "Sessão desconectada"}

    app.include_router(router)

    @app.post("/webhooks/chat")
    async def chat_webhook(request: Request):
        try:
            payload = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="JSON inválido")
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="JSON inválido")
        await gateway.handle_webhook(payload)
        return {"status": "ok"}

    @app.get("/health")
    async def health():
        return {"status": "ok", "sessions": len(manager.tenants())}

    return app
