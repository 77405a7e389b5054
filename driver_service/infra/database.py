# driver_service/infra/database.py
"""
Менеджер базы данных PostgreSQL.
Пул соединений, ретрай при подключении и применение схемы.

Экземпляр создаётся слоем запуска приложения и передаётся в репозитории
через конструктор. Запросы не повторяются автоматически: ошибка или отмена
сразу уходит вызывающему коду.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from functools import wraps
from pathlib import Path
from typing import Any, AsyncGenerator, Awaitable, Callable, TypeVar

import asyncpg
from asyncpg import Connection, Pool, Record

from driver_service.common.constants import TypeMsg
from driver_service.common.logger import log_error, log_info

T = TypeVar("T")

# Произвольный ключ advisory lock для миграций
SCHEMA_LOCK_KEY = 736451902


def retry_on_connection_error(
    max_attempts: int = 3,
    delay: float = 1.0,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Декоратор для повторных попыток при ошибках подключения.

    Args:
        max_attempts: Максимальное количество попыток
        delay: Базовая задержка между попытками (секунды), растёт линейно
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            last_error: Exception | None = None

            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except (
                    asyncpg.PostgresConnectionError,
                    asyncpg.InterfaceError,
                    ConnectionRefusedError,
                    OSError,
                ) as e:
                    last_error = e
                    if attempt < max_attempts:
                        await log_info(
                            f"Ошибка подключения к БД (попытка {attempt}/{max_attempts}): {e}",
                            type_msg=TypeMsg.WARNING,
                        )
                        await asyncio.sleep(delay * attempt)
                    else:
                        await log_error(f"Не удалось подключиться к БД после {max_attempts} попыток: {e}")

            raise last_error  # type: ignore[misc]

        return wrapper

    return decorator


class DatabaseManager:
    """Менеджер пула соединений к PostgreSQL."""

    def __init__(self, dsn: str, min_size: int = 5, max_size: int = 10, command_timeout: float = 30) -> None:
        """
        Args:
            dsn: DSN строка подключения
            min_size: Минимальный размер пула
            max_size: Максимальный размер пула
            command_timeout: Таймаут команд по умолчанию (секунды)
        """
        self._dsn = dsn
        self._min_size = min_size
        self._max_size = max_size
        self._command_timeout = command_timeout
        self._pool: Pool | None = None

    @property
    def pool(self) -> Pool:
        """Возвращает пул соединений."""
        if self._pool is None:
            raise RuntimeError("Пул соединений не инициализирован. Вызовите connect() сначала.")
        return self._pool

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def connect(self, max_attempts: int = 3, delay: float = 1.0) -> None:
        """
        Создаёт пул соединений к PostgreSQL (с повторными попытками).

        Args:
            max_attempts: Количество попыток подключения
            delay: Базовая задержка между попытками
        """
        if self._pool is not None:
            return

        await log_info("Подключение к PostgreSQL...", type_msg=TypeMsg.INFO)

        @retry_on_connection_error(max_attempts=max_attempts, delay=delay)
        async def _create() -> Pool:
            return await asyncpg.create_pool(
                dsn=self._dsn,
                min_size=self._min_size,
                max_size=self._max_size,
                command_timeout=self._command_timeout,
            )

        self._pool = await _create()

        await log_info("Подключение к PostgreSQL установлено", type_msg=TypeMsg.INFO)

    async def disconnect(self) -> None:
        """Закрывает пул соединений."""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            await log_info("Соединение с PostgreSQL закрыто", type_msg=TypeMsg.INFO)

    @asynccontextmanager
    async def acquire(self) -> AsyncGenerator[Connection, None]:
        """
        Контекстный менеджер для получения соединения из пула.

        Example:
            async with db.acquire() as conn:
                result = await conn.fetch("SELECT * FROM drivers")
        """
        async with self.pool.acquire() as connection:
            yield connection

    @asynccontextmanager
    async def transaction(
        self,
        isolation: str | None = None,
        readonly: bool = False,
    ) -> AsyncGenerator[Connection, None]:
        """
        Контекстный менеджер для транзакции.
        Commit при успехе, rollback при ошибке.

        Example:
            async with db.transaction(isolation="repeatable_read", readonly=True) as conn:
                total = await conn.fetchval("SELECT COUNT(*) FROM drivers")
                rows = await conn.fetch("SELECT ... LIMIT $1", 20)
        """
        async with self.pool.acquire() as connection:
            async with connection.transaction(isolation=isolation, readonly=readonly):
                yield connection

    async def execute(self, query: str, *args: Any, timeout: float | None = None) -> str:
        """
        Выполняет SQL запрос без возврата данных.

        Returns:
            Статус выполнения (например, "UPDATE 1")
        """
        async with self.acquire() as conn:
            return await conn.execute(query, *args, timeout=timeout)

    async def fetch(self, query: str, *args: Any, timeout: float | None = None) -> list[Record]:
        """Выполняет SQL запрос и возвращает все строки."""
        async with self.acquire() as conn:
            return await conn.fetch(query, *args, timeout=timeout)

    async def fetchrow(self, query: str, *args: Any, timeout: float | None = None) -> Record | None:
        """Выполняет SQL запрос и возвращает одну строку."""
        async with self.acquire() as conn:
            return await conn.fetchrow(query, *args, timeout=timeout)

    async def fetchval(self, query: str, *args: Any, column: int = 0, timeout: float | None = None) -> Any:
        """Выполняет SQL запрос и возвращает одно значение."""
        async with self.acquire() as conn:
            return await conn.fetchval(query, *args, column=column, timeout=timeout)

    async def health_check(self) -> bool:
        """
        Проверяет здоровье подключения к БД.

        Returns:
            True если подключение работает
        """
        try:
            result = await self.fetchval("SELECT 1", timeout=5)
            return result == 1
        except Exception as e:
            await log_error(f"Health check PostgreSQL failed: {e}")
            return False


def get_schema_path() -> Path:
    """Путь к SQL-схеме сервиса."""
    from driver_service.config.loader import get_project_root

    return get_project_root() / "migrations" / "init.sql"


async def init_schema(db: DatabaseManager, schema_path: Path | None = None) -> None:
    """
    Применяет SQL-схему (идемпотентна).
    Advisory lock не даёт нескольким процессам мигрировать одновременно.
    """
    path = schema_path or get_schema_path()
    if not path.exists():
        raise FileNotFoundError(f"Файл схемы БД не найден: {path}")

    schema_sql = path.read_text(encoding="utf-8")

    await log_info("Применение схемы БД...", type_msg=TypeMsg.INFO)

    async with db.acquire() as conn:
        async with conn.transaction():
            await conn.execute(f"SELECT pg_advisory_xact_lock({SCHEMA_LOCK_KEY})")
            await conn.execute(schema_sql)

    await log_info("Схема БД успешно применена", type_msg=TypeMsg.INFO)
