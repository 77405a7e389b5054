# driver_service/core/drivers/repository.py
"""
Репозиторий водителей.
Абстрактный контракт хранилища и реализация на PostgreSQL + PostGIS.
"""

from __future__ import annotations

import asyncio
import uuid
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

import asyncpg
from pydantic import ValidationError

from driver_service.common.constants import NEARBY_LIMIT, TaxiType
from driver_service.common.logger import log_error
from driver_service.core.drivers.errors import (
    DriverConflictError,
    DriverNotFoundError,
    InvalidDriverIDError,
    StorageError,
)
from driver_service.core.drivers.models import Driver, DriverWithDistance, Location
from driver_service.infra.database import DatabaseManager


class DriverRepository(ABC):
    """
    Контракт хранилища водителей.

    Реализации обязаны:
    - обеспечивать уникальность номера (DriverConflictError);
    - отличать неверный формат ID (InvalidDriverIDError) от отсутствия записи
      (DriverNotFoundError);
    - возвращать ближайших водителей по возрастанию расстояния, не более 50.
    """

    @abstractmethod
    async def create(self, driver: Driver) -> str:
        """Сохраняет водителя и возвращает назначенный идентификатор."""

    @abstractmethod
    async def update(self, driver_id: str, driver: Driver) -> None:
        """Перезаписывает поля водителя."""

    @abstractmethod
    async def find_by_id(self, driver_id: str) -> Driver:
        """Получает водителя по идентификатору."""

    @abstractmethod
    async def find_by_plate(self, plate: str) -> Driver:
        """Получает водителя по номеру автомобиля."""

    @abstractmethod
    async def find_all(self, page: int, page_size: int) -> tuple[list[Driver], int]:
        """Страница водителей (новые первыми) и общее количество."""

    @abstractmethod
    async def find_nearby(
        self,
        lat: float,
        lon: float,
        radius_km: float,
        taxi_type: Optional[TaxiType] = None,
        limit: int = NEARBY_LIMIT,
    ) -> list[DriverWithDistance]:
        """Водители в радиусе, по возрастанию расстояния."""

    @abstractmethod
    async def delete(self, driver_id: str) -> None:
        """Удаляет водителя."""


def parse_driver_id(driver_id: str) -> uuid.UUID:
    """
    Разбирает идентификатор водителя.

    Raises:
        InvalidDriverIDError: если строка не является UUID
    """
    if not isinstance(driver_id, str) or not driver_id:
        raise InvalidDriverIDError(str(driver_id))
    try:
        return uuid.UUID(driver_id)
    except ValueError:
        raise InvalidDriverIDError(driver_id) from None


_DRIVER_COLUMNS = """
    d.id::text AS id, d.first_name, d.last_name, d.plate, d.taxi_type,
    d.car_brand, d.car_model, d.latitude, d.longitude, d.created_at, d.updated_at
"""

_POINT_SQL = "ST_SetSRID(ST_MakePoint({lon}, {lat}), 4326)::geography"


def _affected_rows(status: str) -> int:
    """Количество строк из статуса команды ("UPDATE 1", "DELETE 0")."""
    try:
        return int(status.split()[-1])
    except (AttributeError, IndexError, ValueError):
        return 0


class PostgresDriverRepository(DriverRepository):
    """Репозиторий водителей на PostgreSQL с геоиндексом PostGIS."""

    def __init__(self, db: DatabaseManager, query_timeout: float | None = None) -> None:
        """
        Args:
            db: Менеджер базы данных (Dependency Injection)
            query_timeout: Таймаут одного запроса (секунды); None: таймаут пула
        """
        self._db = db
        self._timeout = query_timeout

    @asynccontextmanager
    async def _storage_errors(self, operation: str) -> AsyncGenerator[None, None]:
        """Переводит низкоуровневые ошибки в StorageError. Отмена задачи не перехватывается."""
        try:
            yield
        except (
            asyncpg.PostgresError,
            asyncpg.InterfaceError,
            asyncio.TimeoutError,
            OSError,
            ValidationError,
        ) as e:
            await log_error(f"Ошибка хранилища ({operation}): {e!r}")
            raise StorageError(operation) from e

    @staticmethod
    def _row_to_driver(row: Any) -> Driver:
        return Driver(
            id=row["id"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            plate=row["plate"],
            taxi_type=TaxiType(row["taxi_type"]),
            car_brand=row["car_brand"],
            car_model=row["car_model"],
            location=Location(lat=row["latitude"], lon=row["longitude"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    async def create(self, driver: Driver) -> str:
        async with self._storage_errors("create"):
            try:
                driver_id = await self._db.fetchval(
                    f"""
                    INSERT INTO drivers (first_name, last_name, plate, taxi_type, car_brand, car_model,
                                         latitude, longitude, location, created_at, updated_at)
                    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, {_POINT_SQL.format(lat="$7", lon="$8")}, $9, $10)
                    RETURNING id::text
                    """,
                    driver.first_name,
                    driver.last_name,
                    driver.plate,
                    driver.taxi_type.value,
                    driver.car_brand,
                    driver.car_model,
                    driver.location.lat,
                    driver.location.lon,
                    driver.created_at,
                    driver.updated_at,
                    timeout=self._timeout,
                )
            except asyncpg.UniqueViolationError:
                raise DriverConflictError(driver.plate) from None

        return driver_id

    async def update(self, driver_id: str, driver: Driver) -> None:
        uid = parse_driver_id(driver_id)

        async with self._storage_errors("update"):
            try:
                status = await self._db.execute(
                    f"""
                    UPDATE drivers
                    SET first_name = $2, last_name = $3, plate = $4, taxi_type = $5,
                        car_brand = $6, car_model = $7, latitude = $8, longitude = $9,
                        location = {_POINT_SQL.format(lat="$8", lon="$9")}, updated_at = $10
                    WHERE id = $1
                    """,
                    uid,
                    driver.first_name,
                    driver.last_name,
                    driver.plate,
                    driver.taxi_type.value,
                    driver.car_brand,
                    driver.car_model,
                    driver.location.lat,
                    driver.location.lon,
                    driver.updated_at,
                    timeout=self._timeout,
                )
            except asyncpg.UniqueViolationError:
                raise DriverConflictError(driver.plate) from None

        if _affected_rows(status) == 0:
            raise DriverNotFoundError("ID", driver_id)

    async def find_by_id(self, driver_id: str) -> Driver:
        uid = parse_driver_id(driver_id)

        async with self._storage_errors("find_by_id"):
            row = await self._db.fetchrow(
                f"SELECT {_DRIVER_COLUMNS} FROM drivers d WHERE d.id = $1",
                uid,
                timeout=self._timeout,
            )
            if row is None:
                raise DriverNotFoundError("ID", driver_id)
            return self._row_to_driver(row)

    async def find_by_plate(self, plate: str) -> Driver:
        async with self._storage_errors("find_by_plate"):
            row = await self._db.fetchrow(
                f"SELECT {_DRIVER_COLUMNS} FROM drivers d WHERE d.plate = $1",
                plate,
                timeout=self._timeout,
            )
            if row is None:
                raise DriverNotFoundError("plate", plate)
            return self._row_to_driver(row)

    async def find_all(self, page: int, page_size: int) -> tuple[list[Driver], int]:
        offset = (page - 1) * page_size

        async with self._storage_errors("find_all"):
            # Счётчик и страница читаются из одного снимка
            async with self._db.transaction(isolation="repeatable_read", readonly=True) as conn:
                total = int(await conn.fetchval("SELECT COUNT(*) FROM drivers", timeout=self._timeout) or 0)
                # Страница за концом списка пуста; OFFSET может не поместиться в bigint
                if offset >= total:
                    return [], total

                rows = await conn.fetch(
                    f"""
                    SELECT {_DRIVER_COLUMNS}
                    FROM drivers d
                    ORDER BY d.created_at DESC, d.id ASC
                    LIMIT $1 OFFSET $2
                    """,
                    page_size,
                    offset,
                    timeout=self._timeout,
                )
            return [self._row_to_driver(row) for row in rows], total

    async def find_nearby(
        self,
        lat: float,
        lon: float,
        radius_km: float,
        taxi_type: Optional[TaxiType] = None,
        limit: int = NEARBY_LIMIT,
    ) -> list[DriverWithDistance]:
        async with self._storage_errors("find_nearby"):
            # use_spheroid = false: расстояние по большому кругу на сфере
            rows = await self._db.fetch(
                f"""
                WITH point AS (SELECT {_POINT_SQL.format(lat="$1", lon="$2")} AS geog)
                SELECT {_DRIVER_COLUMNS},
                       ST_Distance(d.location, point.geog, false) / 1000.0 AS distance_km
                FROM drivers d, point
                WHERE ST_DWithin(d.location, point.geog, $3, false)
                  AND ($4::text IS NULL OR d.taxi_type = $4)
                ORDER BY distance_km ASC, d.created_at ASC, d.id ASC
                LIMIT $5
                """,
                lat,
                lon,
                radius_km * 1000.0,
                taxi_type.value if taxi_type else None,
                limit,
                timeout=self._timeout,
            )
            return [
                DriverWithDistance(
                    **self._row_to_driver(row).model_dump(),
                    distance_km=float(row["distance_km"]),
                )
                for row in rows
            ]

    async def delete(self, driver_id: str) -> None:
        uid = parse_driver_id(driver_id)

        async with self._storage_errors("delete"):
            status = await self._db.execute(
                "DELETE FROM drivers WHERE id = $1",
                uid,
                timeout=self._timeout,
            )

        if _affected_rows(status) == 0:
            raise DriverNotFoundError("ID", driver_id)
