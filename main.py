#!/usr/bin/env python3
# main.py
"""
Точка входа TaxiHub Driver Service.
Запускает HTTP сервер или применяет схему БД в зависимости от аргументов.
"""

from __future__ import annotations

import asyncio
import sys

from driver_service.common.constants import TypeMsg
from driver_service.common.logger import log_error, log_info, setup_logging
from driver_service.config import settings
from driver_service.infra.database import DatabaseManager, init_schema


async def run_server() -> None:
    """Запускает HTTP сервер (uvicorn)."""
    import uvicorn

    await log_info(
        f"Запуск Driver Service на {settings.server.HOST}:{settings.server.PORT}...",
        type_msg=TypeMsg.INFO,
    )

    config = uvicorn.Config(
        "driver_service.api.app:app",
        host=settings.server.HOST,
        port=settings.server.PORT,
        log_level="debug" if settings.system.DEBUG else "info",
    )

    server = uvicorn.Server(config)
    try:
        await server.serve()
    except asyncio.CancelledError:
        await log_info("Driver Service: graceful shutdown", type_msg=TypeMsg.DEBUG)
        await server.shutdown()


async def run_migrate() -> None:
    """Применяет migrations/init.sql и завершается."""
    db = DatabaseManager(
        dsn=settings.database.dsn,
        min_size=1,
        max_size=2,
        command_timeout=settings.database.DB_COMMAND_TIMEOUT,
    )
    await db.connect(
        max_attempts=settings.database.DB_RETRY_ATTEMPTS,
        delay=settings.database.DB_RETRY_DELAY,
    )
    try:
        await init_schema(db)
    finally:
        await db.disconnect()


async def main(mode: str = "serve") -> None:
    """
    Главная функция запуска.

    Args:
        mode: Режим запуска (serve, migrate)
    """
    setup_logging()

    await log_info(
        f"Driver Service v{settings.system.VERSION}, режим '{mode}' "
        f"(окружение: {settings.system.ENVIRONMENT})",
        type_msg=TypeMsg.INFO,
    )

    try:
        if mode == "migrate":
            await run_migrate()
        else:
            await run_server()
    except Exception as e:
        await log_error(f"Критическая ошибка: {e}", exc_info=True)
        raise


def print_usage() -> None:
    """Выводит справку по использованию."""
    print("""
TaxiHub Driver Service

Использование:
    python main.py [режим]

Режимы:
    serve      HTTP API на SERVER_HOST:SERVER_PORT (по умолчанию)
    migrate    Применить migrations/init.sql и выйти

Переменные окружения:
    STORAGE_BACKEND=memory   Хранилище в памяти (без PostgreSQL)
    DB_HOST, DB_PORT, DB_NAME, DB_USER, DB_PASSWORD
    """)


if __name__ == "__main__":
    mode = "serve"

    if len(sys.argv) > 1:
        arg = sys.argv[1].lower()
        if arg in ("--help", "-h"):
            print_usage()
            sys.exit(0)
        elif arg in ("serve", "migrate"):
            mode = arg
        else:
            print(f"Ошибка: неизвестный режим '{arg}'")
            print_usage()
            sys.exit(1)

    try:
        asyncio.run(main(mode))
    except KeyboardInterrupt:
        pass
