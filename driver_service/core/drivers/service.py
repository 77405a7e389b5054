# driver_service/core/drivers/service.py
"""
Сервис справочника водителей.
Координирует валидацию, правила обновления и обращения к репозиторию.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Any

from driver_service.common.constants import (
    MAX_PAGE_SIZE,
    NEARBY_LIMIT,
    NEARBY_RADIUS_KM,
    TaxiType,
    TypeMsg,
)
from driver_service.common.geo import is_valid_latitude, is_valid_longitude
from driver_service.common.logger import log_info, log_warning
from driver_service.core.drivers.errors import (
    DriverNotFoundError,
    InvalidLocationError,
    InvalidTaxiTypeError,
)
from driver_service.core.drivers.models import Driver, DriverWithDistance, PaginatedDrivers
from driver_service.core.drivers.repository import DriverRepository
from driver_service.core.drivers.validation import (
    validate_create,
    validate_location,
    validate_plate_query,
    validate_update,
)

_MIN_TICK = timedelta(microseconds=1)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _next_timestamp(previous: datetime) -> datetime:
    """Текущее время, но строго позже previous."""
    now = _utcnow()
    return now if now > previous else previous + _MIN_TICK


def clamp_pagination(page: int, page_size: int, max_page_size: int = MAX_PAGE_SIZE) -> tuple[int, int]:
    """
    Нормализует параметры страницы.

    Returns:
        (page >= 1, 1 <= page_size <= max_page_size)
    """
    return max(page, 1), min(max(page_size, 1), max_page_size)


class DriverService:
    """
    Сервис водителей.
    Не хранит состояния кроме ссылки на репозиторий.
    """

    def __init__(
        self,
        repository: DriverRepository,
        radius_km: float = NEARBY_RADIUS_KM,
        nearby_limit: int = NEARBY_LIMIT,
        max_page_size: int = MAX_PAGE_SIZE,
    ) -> None:
        """
        Args:
            repository: Хранилище водителей (Dependency Injection)
            radius_km: Радиус поиска ближайших водителей
            nearby_limit: Максимум водителей в ответе поиска
            max_page_size: Верхняя граница размера страницы
        """
        self._repo = repository
        self._radius_km = radius_km
        self._nearby_limit = nearby_limit
        self._max_page_size = max_page_size

    # =========================================================================
    # СОЗДАНИЕ И ЧТЕНИЕ
    # =========================================================================

    async def create_driver(self, payload: Mapping[str, Any]) -> str:
        """
        Регистрирует нового водителя.

        Args:
            payload: Тело запроса (ещё не проверенное)

        Returns:
            Идентификатор, назначенный хранилищем

        Raises:
            ValidationFailedError: данные не прошли проверку
            DriverConflictError: номер уже зарегистрирован
        """
        request = validate_create(payload)

        now = _utcnow()
        driver = Driver(
            first_name=request.first_name,
            last_name=request.last_name,
            plate=request.plate,
            taxi_type=request.taxi_type,
            car_brand=request.car_brand,
            car_model=request.car_model,
            location=request.location,
            created_at=now,
            updated_at=now,
        )

        driver_id = await self._repo.create(driver)

        await log_info(
            f"Водитель зарегистрирован: {driver_id} ({driver.full_name}, {driver.plate})",
            type_msg=TypeMsg.INFO,
        )
        return driver_id

    async def get_driver_by_id(self, driver_id: str) -> Driver:
        """
        Получает водителя по ID.

        Raises:
            InvalidDriverIDError: ID неверного формата
            DriverNotFoundError: водитель не найден
        """
        return await self._repo.find_by_id(driver_id)

    async def get_driver_by_plate(self, plate: str) -> Driver:
        """Получает водителя по номеру (номер нормализуется как при создании)."""
        normalized = validate_plate_query(plate)
        return await self._repo.find_by_plate(normalized)

    async def list_drivers(self, page: int, page_size: int) -> PaginatedDrivers:
        """
        Возвращает страницу водителей, новые первыми.
        Некорректные page/page_size приводятся к допустимому диапазону.
        """
        page, page_size = clamp_pagination(page, page_size, self._max_page_size)
        items, total = await self._repo.find_all(page, page_size)
        return PaginatedDrivers.create(items, total, page, page_size)

    # =========================================================================
    # ИЗМЕНЕНИЕ
    # =========================================================================

    async def update_driver(self, driver_id: str, payload: Mapping[str, Any]) -> Driver:
        """
        Частично обновляет профиль водителя.

        Меняются только присутствующие в запросе поля. Координаты меняются,
        только если переданы обе. updated_at обновляется всегда.

        Returns:
            Обновлённый водитель
        """
        request = validate_update(payload)
        current = await self._repo.find_by_id(driver_id)

        changes: dict[str, Any] = request.changes()
        if request.has_location:
            changes["location"] = request.location
        changes["updated_at"] = _next_timestamp(current.updated_at)

        updated = current.model_copy(update=changes)
        await self._repo.update(driver_id, updated)

        await log_info(
            f"Водитель {driver_id} обновлён: {', '.join(sorted(changes))}",
            type_msg=TypeMsg.INFO,
        )
        return updated

    async def update_driver_location(self, driver_id: str, payload: Mapping[str, Any]) -> None:
        """Заменяет геолокацию водителя целиком."""
        request = validate_location(payload)
        current = await self._repo.find_by_id(driver_id)

        updated = current.model_copy(
            update={
                "location": request.location,
                "updated_at": _next_timestamp(current.updated_at),
            }
        )
        await self._repo.update(driver_id, updated)

        await log_info(
            f"Геолокация водителя {driver_id}: {request.lat}, {request.lon}",
            type_msg=TypeMsg.DEBUG,
        )

    async def delete_driver(self, driver_id: str) -> None:
        """
        Удаляет водителя.

        Raises:
            InvalidDriverIDError: ID неверного формата
            DriverNotFoundError: водитель не найден
        """
        try:
            await self._repo.find_by_id(driver_id)
        except DriverNotFoundError:
            await log_warning(f"Удаление несуществующего водителя: {driver_id}")
            raise

        await self._repo.delete(driver_id)
        await log_info(f"Водитель удалён: {driver_id}", type_msg=TypeMsg.INFO)

    # =========================================================================
    # ПОИСК
    # =========================================================================

    async def find_nearby_drivers(
        self,
        lat: float,
        lon: float,
        taxi_type: str = "",
    ) -> list[DriverWithDistance]:
        """
        Ищет водителей в фиксированном радиусе от точки.

        Args:
            lat: Широта точки
            lon: Долгота точки
            taxi_type: Фильтр по категории (пустая строка: без фильтра)

        Returns:
            Водители по возрастанию расстояния (не более nearby_limit)

        Raises:
            InvalidLocationError: координаты вне диапазона
            InvalidTaxiTypeError: неизвестная категория
        """
        if not is_valid_latitude(lat) or not is_valid_longitude(lon):
            await log_warning(f"Некорректные координаты поиска: {lat}, {lon}")
            raise InvalidLocationError(
                f"invalid coordinates: lat={lat}, lon={lon} "
                "(lat must be in [-90, 90], lon in [-180, 180])"
            )

        type_filter: TaxiType | None = None
        if taxi_type:
            if not TaxiType.is_valid(taxi_type):
                await log_warning(f"Некорректная категория такси: {taxi_type}")
                raise InvalidTaxiTypeError(taxi_type, TaxiType.values())
            type_filter = TaxiType(taxi_type)

        return await self._repo.find_nearby(
            lat,
            lon,
            self._radius_km,
            taxi_type=type_filter,
            limit=self._nearby_limit,
        )
