from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from openai import AsyncOpenAI

from .controllers.v1.router import api_router
from .core.config import Settings, get_settings
from .core.dependencies import ChatService
from .core.errors import register_exception_handlers
from .core.langfuse_client import build_langfuse
from .core.log import setup_logging
from .database.connection import Database
from .services.chat_relay_service import ChatRelayService, FixtureChatService


def build_chat_service(settings: Settings, langfuse) -> Optional[ChatService]:
    """Returns the relay to use, or None when the provider is not configured."""
    if settings.CHAT_MOCK:
        logger.info("CHAT_MOCK is enabled: /api/chat serves the fixture stream")
        return FixtureChatService()
    if not settings.provider_configured:
        logger.warning("OPENAI_API_KEY is not set: /api/chat will answer 503")
        return None
    client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY, timeout=settings.CHAT_MAX_DURATION)
    return ChatRelayService(
        client=client,
        langfuse=langfuse,
        model=settings.OPENAI_CHAT_MODEL,
        system_prompt=settings.CHAT_SYSTEM_PROMPT,
        max_duration=settings.CHAT_MAX_DURATION,
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.LOG_LEVEL)
        # On startup
        database = Database(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
        if database.is_configured:
            try:
                await database.create_all()
            except Exception:
                # Keep serving: storage routes answer 503 (or []) until the database comes back.
                logger.exception("Could not prepare the database schema at startup")
        else:
            logger.warning("DATABASE_URL is not set: conversation storage is unavailable")
        langfuse = build_langfuse(settings)

        app.state.settings = settings
        app.state.database = database
        app.state.langfuse = langfuse
        app.state.chat_service = build_chat_service(settings, langfuse)
        yield
        # On shutdown
        langfuse.flush()
        await database.dispose()

    app = FastAPI(title="Relaychat API", lifespan=lifespan)

    # Set up CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(api_router, prefix="/api")

    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    return app


app = create_app()
