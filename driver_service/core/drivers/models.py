# driver_service/core/drivers/models.py
"""
Модели данных водителей и DTO запросов.
"""

from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError

from driver_service.common.constants import TaxiType
from driver_service.common.geo import round_distance


PLATE_PATTERN = re.compile(r"^[0-9]{2}[A-Za-z]{1,3}[0-9]{1,4}$")
_WHITESPACE = re.compile(r"\s+")

PLATE_HINT = "plate must be a valid Turkish license plate (e.g., 34 ABC 123)"


def normalize_plate(plate: str) -> str:
    """Удаляет пробельные символы и приводит буквы к верхнему регистру."""
    return _WHITESPACE.sub("", plate).upper()


# =============================================================================
# ДОМЕННЫЕ МОДЕЛИ
# =============================================================================

class Location(BaseModel):
    """Геолокация (неизменяемая, заменяется целиком)."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90, description="Широта")
    lon: float = Field(..., ge=-180, le=180, description="Долгота")


class Driver(BaseModel):
    """Профиль водителя."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field("", description="Идентификатор, назначается хранилищем (пустой до сохранения)")
    first_name: str = Field(..., description="Имя")
    last_name: str = Field(..., description="Фамилия")
    plate: str = Field(..., description="Номер автомобиля (уникальный)")
    taxi_type: TaxiType = Field(..., description="Категория такси")
    car_brand: str = Field(..., description="Марка автомобиля")
    car_model: str = Field(..., description="Модель автомобиля")
    location: Location = Field(..., description="Текущая геолокация")
    created_at: datetime = Field(..., description="Дата создания")
    updated_at: datetime = Field(..., description="Дата последнего изменения")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_response(self) -> dict[str, Any]:
        """Представление для API."""
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "plate": self.plate,
            "taxi_type": self.taxi_type.value,
            "car_brand": self.car_brand,
            "car_model": self.car_model,
            "location": {"lat": self.location.lat, "lon": self.location.lon},
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


class DriverWithDistance(Driver):
    """Водитель с расстоянием до точки запроса (только для чтения, не сохраняется)."""

    distance_km: float = Field(..., ge=0, description="Расстояние по большому кругу, км")

    @property
    def display_distance_km(self) -> float:
        """Расстояние, округлённое до 0.1 км."""
        return round_distance(self.distance_km)

    def to_response(self) -> dict[str, Any]:
        data = super().to_response()
        del data["created_at"]
        del data["updated_at"]
        data["distance_km"] = self.display_distance_km
        return data


class PaginatedDrivers(BaseModel):
    """Страница списка водителей."""

    items: list[Driver]
    page: int
    page_size: int
    total_count: int
    total_pages: int

    @classmethod
    def create(cls, items: list[Driver], total_count: int, page: int, page_size: int) -> "PaginatedDrivers":
        """Создаёт страницу, вычисляя количество страниц."""
        return cls(
            items=items,
            page=page,
            page_size=page_size,
            total_count=total_count,
            total_pages=math.ceil(total_count / page_size) if page_size > 0 else 0,
        )

    def to_response(self) -> dict[str, Any]:
        return {
            "data": [driver.to_response() for driver in self.items],
            "page": self.page,
            "page_size": self.page_size,
            "total_count": self.total_count,
            "total_pages": self.total_pages,
        }


# =============================================================================
# DTO ЗАПРОСОВ
# =============================================================================

def _check_plate(value: str) -> str:
    plate = normalize_plate(value)
    if not PLATE_PATTERN.match(plate):
        raise PydanticCustomError("plate_format", PLATE_HINT)
    return plate


class CreateDriverRequest(BaseModel):
    """Запрос на создание водителя."""

    model_config = ConfigDict(extra="ignore")

    first_name: str = Field(..., strict=True, min_length=2, max_length=50)
    last_name: str = Field(..., strict=True, min_length=2, max_length=50)
    plate: str = Field(..., strict=True)
    taxi_type: TaxiType
    car_brand: str = Field(..., strict=True, min_length=2, max_length=30)
    car_model: str = Field(..., strict=True, min_length=1, max_length=30)
    lat: float = Field(..., strict=True, ge=-90, le=90)
    lon: float = Field(..., strict=True, ge=-180, le=180)

    @field_validator("plate")
    @classmethod
    def validate_plate(cls, v: str) -> str:
        """Нормализует номер и проверяет формат."""
        return _check_plate(v)

    @property
    def location(self) -> Location:
        return Location(lat=self.lat, lon=self.lon)


class UpdateDriverRequest(BaseModel):
    """
    Частичное обновление водителя.

    Присутствие поля определяется по model_fields_set, а не по значению None.
    Номер автомобиля через этот запрос не меняется.
    """

    model_config = ConfigDict(extra="ignore")

    first_name: Optional[str] = Field(None, strict=True, min_length=2, max_length=50)
    last_name: Optional[str] = Field(None, strict=True, min_length=2, max_length=50)
    taxi_type: Optional[TaxiType] = None
    car_brand: Optional[str] = Field(None, strict=True, min_length=2, max_length=30)
    car_model: Optional[str] = Field(None, strict=True, min_length=1, max_length=30)
    lat: Optional[float] = Field(None, strict=True, ge=-90, le=90)
    lon: Optional[float] = Field(None, strict=True, ge=-180, le=180)

    @field_validator("*", mode="before")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        """Явный null не означает «очистить поле»: поля водителя обязательны."""
        if v is None:
            raise PydanticCustomError("not_null", "must not be null")
        return v

    @property
    def has_location(self) -> bool:
        return {"lat", "lon"} <= self.model_fields_set

    @property
    def location(self) -> Location | None:
        if not self.has_location:
            return None
        return Location(lat=self.lat, lon=self.lon)

    def changes(self) -> dict[str, Any]:
        """Поля профиля (без координат), присутствующие в запросе."""
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if name not in ("lat", "lon")
        }


class UpdateLocationRequest(BaseModel):
    """Запрос на обновление только геолокации."""

    model_config = ConfigDict(extra="ignore")

    lat: float = Field(..., strict=True, ge=-90, le=90)
    lon: float = Field(..., strict=True, ge=-180, le=180)

    @property
    def location(self) -> Location:
        return Location(lat=self.lat, lon=self.lon)
