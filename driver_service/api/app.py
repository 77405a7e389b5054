# driver_service/api/app.py
"""
FastAPI приложение Driver Service.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncGenerator

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from driver_service.api.dependencies import get_database
from driver_service.api.errors import register_error_handlers
from driver_service.api.routes import router
from driver_service.common.constants import StorageBackend, TypeMsg
from driver_service.common.logger import log_info, setup_logging
from driver_service.config import settings
from driver_service.core.drivers.memory import InMemoryDriverRepository
from driver_service.core.drivers.repository import DriverRepository, PostgresDriverRepository
from driver_service.core.drivers.service import DriverService
from driver_service.infra.database import DatabaseManager, init_schema


async def _open_postgres() -> tuple[DatabaseManager, DriverRepository]:
    """Подключается к PostgreSQL и применяет схему."""
    db_settings = settings.database
    db = DatabaseManager(
        dsn=db_settings.dsn,
        min_size=db_settings.DB_MIN_POOL_SIZE,
        max_size=db_settings.DB_MAX_POOL_SIZE,
        command_timeout=db_settings.DB_COMMAND_TIMEOUT,
    )
    await db.connect(
        max_attempts=db_settings.DB_RETRY_ATTEMPTS,
        delay=db_settings.DB_RETRY_DELAY,
    )
    try:
        await init_schema(db)
    except BaseException:
        await db.disconnect()
        raise

    return db, PostgresDriverRepository(db, query_timeout=db_settings.DB_COMMAND_TIMEOUT)


def create_app(repository: DriverRepository | None = None) -> FastAPI:
    """
    Создаёт приложение.

    Args:
        repository: Готовое хранилище. Если не передано, выбирается
            по settings.server.STORAGE_BACKEND при старте.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Жизненный цикл приложения."""
        setup_logging()
        await log_info("Driver Service запускается...", type_msg=TypeMsg.INFO)

        db: DatabaseManager | None = None
        repo = repository
        if repo is None:
            if settings.server.STORAGE_BACKEND == StorageBackend.MEMORY.value:
                repo = InMemoryDriverRepository()
            else:
                db, repo = await _open_postgres()

        app.state.db = db
        app.state.driver_service = DriverService(
            repo,
            radius_km=settings.search.NEARBY_RADIUS_KM,
            nearby_limit=settings.search.NEARBY_LIMIT,
            max_page_size=settings.search.MAX_PAGE_SIZE,
        )
        await log_info(
            f"Хранилище: {type(repo).__name__}, порт {settings.server.PORT}",
            type_msg=TypeMsg.INFO,
        )

        try:
            yield
        finally:
            if db is not None:
                await db.disconnect()
            await log_info("Driver Service остановлен", type_msg=TypeMsg.INFO)

    app = FastAPI(
        title="TaxiHub Driver Service",
        description="Справочник водителей такси с поиском по геолокации",
        version=settings.system.VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Origin", "Content-Type", "Accept", "Authorization"],
    )

    register_error_handlers(app)
    app.include_router(router)

    @app.get("/health", tags=["Health"])
    async def health_check(db: DatabaseManager | None = Depends(get_database)) -> dict[str, Any]:
        """Проверка здоровья сервиса."""
        if db is None:
            database = "memory"
        else:
            database = "healthy" if await db.health_check() else "unhealthy"

        return {
            "status": "ok",
            "service": "driver-service",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "database": database,
            "version": settings.system.VERSION,
        }

    @app.get("/", tags=["Health"])
    async def root() -> dict[str, Any]:
        return {
            "message": "TaxiHub Driver Service",
            "version": settings.system.VERSION,
            "endpoints": {"health": "/health", "api": "/api/v1"},
        }

    return app


app = create_app()
