"""FastAPI entry point for the Cyber Advisor service."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.auth import router as auth_router
from api.conversation import router as conversation_router
from api.errors import register_exception_handlers
from api.health import router as health_router
from config.settings import get_settings
from services.conversation_store import RedisConversationStore, get_conversation_store
from services.middleware import RequestIdFilter, RequestIdMiddleware
from services.user_store import RedisUserStore, get_user_store

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s",
)
for handler in logging.getLogger().handlers:
    handler.addFilter(RequestIdFilter())

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle — verify and close shared resources."""
    store = get_conversation_store()
    if isinstance(store, RedisConversationStore):
        if await store.ping():
            logger.info("Redis connection verified")
        else:
            logger.warning("Redis connection failed — conversations may not persist")

    if not settings.credential_list():
        logger.warning("No provider API keys configured; chat turns will return 503")

    yield

    if isinstance(store, RedisConversationStore):
        await store.close()
    user_store = get_user_store()
    if isinstance(user_store, RedisUserStore):
        await user_store.close()


app = FastAPI(
    title="Cyber Advisor",
    description="Cybersecurity awareness assistant with multi-provider LLM fallback",
    version="1.0.0",
    lifespan=lifespan,
)

# ── Middleware stack (outermost first) ─────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIdMiddleware)

register_exception_handlers(app)

# ── Register routers ────────────────────────────────────────
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(conversation_router)


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.service_port,
        reload=settings.debug,
    )
