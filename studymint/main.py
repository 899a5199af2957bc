"""
Main FastAPI application for StudyMint API.
Serves health, account, documents, admin and metrics.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from studymint.api.errors import register_exception_handlers
from studymint.api.routes import account, admin, documents, health
from studymint.core.config import Settings, settings
from studymint.core.logging import configure_logging
from studymint.db.session import build_engine, build_session_factory, init_models
from studymint.services.container import Services, build_services
from studymint.storage.local import LocalBlobStore
from studymint.utils.metrics import router as metrics_router

logger = logging.getLogger(__name__)


def create_app(services: Services | None = None, cfg: Settings = settings) -> FastAPI:
    """
    services: готовый контейнер (тесты); иначе lifespan строит engine,
    blob store и сервисы из cfg и закрывает engine при остановке.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if services is not None:
            app.state.services = services
            yield
            return
        engine = build_engine(cfg=cfg)
        if cfg.auto_create_schema:
            await init_models(engine)
        app.state.services = build_services(build_session_factory(engine), LocalBlobStore(cfg.blob_storage_path), cfg)
        logger.info("app_started", extra={"status": cfg.app_env})
        try:
            yield
        finally:
            await engine.dispose()

    app = FastAPI(
        title="StudyMint API",
        description="Paywalled study documents: coins, previews, downloads, withdrawals",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.settings = cfg

    # CORS
    origins = cfg.cors_origins_list or ["http://localhost:3000", "http://127.0.0.1:3000"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Routers
    app.include_router(health.router, tags=["health"])
    app.include_router(account.router)
    app.include_router(documents.router)
    app.include_router(admin.router)
    app.include_router(metrics_router)
    return app


configure_logging(settings)
app = create_app()
