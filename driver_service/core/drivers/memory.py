# driver_service/core/drivers/memory.py
"""
Репозиторий водителей в памяти процесса.
Используется для локального запуска (STORAGE_BACKEND=memory) и в тестах.
Контракт тот же, что у PostgresDriverRepository.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import Optional

from driver_service.common.constants import NEARBY_LIMIT, TaxiType
from driver_service.common.geo import calculate_distance
from driver_service.core.drivers.errors import DriverConflictError, DriverNotFoundError
from driver_service.core.drivers.models import Driver, DriverWithDistance
from driver_service.core.drivers.repository import DriverRepository, parse_driver_id


class InMemoryDriverRepository(DriverRepository):
    """Хранилище водителей на словаре с блокировкой."""

    def __init__(self) -> None:
        self._drivers: dict[str, Driver] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._drivers)

    def _plate_taken(self, plate: str, exclude_id: str | None = None) -> bool:
        return any(
            d.plate == plate and d.id != exclude_id
            for d in self._drivers.values()
        )

    async def create(self, driver: Driver) -> str:
        async with self._lock:
            if self._plate_taken(driver.plate):
                raise DriverConflictError(driver.plate)

            driver_id = str(uuid.uuid4())
            self._drivers[driver_id] = driver.model_copy(update={"id": driver_id})
            return driver_id

    async def update(self, driver_id: str, driver: Driver) -> None:
        key = str(parse_driver_id(driver_id))

        async with self._lock:
            existing = self._drivers.get(key)
            if existing is None:
                raise DriverNotFoundError("ID", driver_id)
            if self._plate_taken(driver.plate, exclude_id=key):
                raise DriverConflictError(driver.plate)

            # created_at не перезаписывается
            self._drivers[key] = driver.model_copy(
                update={"id": key, "created_at": existing.created_at}
            )

    async def find_by_id(self, driver_id: str) -> Driver:
        key = str(parse_driver_id(driver_id))

        async with self._lock:
            driver = self._drivers.get(key)
            if driver is None:
                raise DriverNotFoundError("ID", driver_id)
            return driver.model_copy()

    async def find_by_plate(self, plate: str) -> Driver:
        async with self._lock:
            for driver in self._drivers.values():
                if driver.plate == plate:
                    return driver.model_copy()
        raise DriverNotFoundError("plate", plate)

    async def find_all(self, page: int, page_size: int) -> tuple[list[Driver], int]:
        async with self._lock:
            # Новые первыми, при равенстве времени по id
            ordered = sorted(self._drivers.values(), key=lambda d: d.id)
            ordered.sort(key=lambda d: d.created_at, reverse=True)
            total = len(ordered)

        offset = (page - 1) * page_size
        return [d.model_copy() for d in ordered[offset:offset + page_size]], total

    async def find_nearby(
        self,
        lat: float,
        lon: float,
        radius_km: float,
        taxi_type: Optional[TaxiType] = None,
        limit: int = NEARBY_LIMIT,
    ) -> list[DriverWithDistance]:
        async with self._lock:
            candidates = list(self._drivers.values())

        found: list[DriverWithDistance] = []
        for driver in candidates:
            if taxi_type is not None and driver.taxi_type != taxi_type:
                continue
            distance = calculate_distance(lat, lon, driver.location.lat, driver.location.lon)
            if distance <= radius_km:
                found.append(DriverWithDistance(**driver.model_dump(), distance_km=distance))

        found.sort(key=lambda d: (d.distance_km, d.created_at, d.id))
        return found[:limit]

    async def delete(self, driver_id: str) -> None:
        key = str(parse_driver_id(driver_id))

        async with self._lock:
            if self._drivers.pop(key, None) is None:
                raise DriverNotFoundError("ID", driver_id)
