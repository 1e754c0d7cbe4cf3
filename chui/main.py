import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .auth import routers as auth_router
from .profiles import routers as profiles_router
from .chat import routers as chat_router

from .chat.facade import Messenger
from .core.config import Settings, settings
from .core.middleware import logging_middleware
from .core.supabase_client import create_supabase
from .storage.memory_store import MemoryStore
from .storage.supabase_store import SupabaseStore
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


async def build_state(app: FastAPI, config: Settings):
    if config.storage == "memory":
        logger.warning("storage=memory, data is lost on restart and auth routes are disabled")
        app.state.supabase = None
        store = MemoryStore()
    else:
        app.state.supabase = await create_supabase(config)
        store = SupabaseStore(app.state.supabase)

    app.state.messenger = Messenger(store, allow_underscore=config.allow_underscore)


def create_app(config: Settings = settings) -> FastAPI:
    setup_logging(config.log_level, config.json_logs)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # tests install their own state before startup
        if getattr(app.state, "messenger", None) is None:
            await build_state(app, config)
        logger.info(f"chui_started storage={config.storage}")
        yield

    app = FastAPI(title="chui", lifespan=lifespan)
    app.include_router(auth_router.router, prefix="/auth", tags=["Authentication"])
    app.include_router(profiles_router.router, prefix="/profiles", tags=["Profiles"])
    app.include_router(chat_router.router, prefix="/chat", tags=["Chat"])

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(logging_middleware)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
