# driver_service/api/routes.py
"""
HTTP маршруты справочника водителей (/api/v1/drivers).
Тела запросов передаются в сервис как есть, проверка выполняется в домене.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status

from driver_service.api.dependencies import get_driver_service
from driver_service.api.errors import ApiError
from driver_service.common.constants import DEFAULT_PAGE_SIZE
from driver_service.core.drivers.service import DriverService

router = APIRouter(prefix="/api/v1/drivers", tags=["drivers"])


async def _read_json_object(request: Request) -> dict[str, Any]:
    """Читает тело запроса как JSON объект."""
    try:
        body = await request.json()
    except ValueError:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "Invalid JSON format") from None

    if not isinstance(body, dict):
        raise ApiError(status.HTTP_400_BAD_REQUEST, "Invalid JSON format")
    return body


def _parse_positive_int(raw: Optional[str], default: int) -> int:
    """Положительное целое из query параметра, иначе default."""
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _parse_coordinate(raw: str, name: str) -> float:
    try:
        return float(raw)
    except ValueError:
        raise ApiError(status.HTTP_400_BAD_REQUEST, f"Invalid {name} format") from None


# =============================================================================
# СОЗДАНИЕ И СПИСОК
# =============================================================================

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_driver(
    request: Request,
    service: DriverService = Depends(get_driver_service),
) -> dict[str, str]:
    """Регистрация водителя."""
    payload = await _read_json_object(request)
    driver_id = await service.create_driver(payload)
    return {"id": driver_id}


@router.get("")
async def list_drivers(
    page: Optional[str] = Query(None),
    page_size: Optional[str] = Query(None, alias="pageSize"),
    service: DriverService = Depends(get_driver_service),
) -> dict[str, Any]:
    """Список водителей с пагинацией (новые первыми)."""
    result = await service.list_drivers(
        _parse_positive_int(page, 1),
        _parse_positive_int(page_size, DEFAULT_PAGE_SIZE),
    )
    return result.to_response()


# =============================================================================
# ПОИСК
# =============================================================================

@router.get("/nearby")
async def find_nearby_drivers(
    lat: Optional[str] = Query(None),
    lon: Optional[str] = Query(None),
    taxi_type: str = Query("", alias="taxiType"),
    service: DriverService = Depends(get_driver_service),
) -> dict[str, Any]:
    """Водители в радиусе 5 км от точки."""
    if not lat or not lon:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "lat and lon query parameters are required")

    latitude = _parse_coordinate(lat, "latitude")
    longitude = _parse_coordinate(lon, "longitude")

    drivers = await service.find_nearby_drivers(latitude, longitude, taxi_type)
    return {
        "drivers": [driver.to_response() for driver in drivers],
        "location": {"lat": latitude, "lon": longitude},
    }


@router.get("/plate/{plate}")
async def get_driver_by_plate(
    plate: str,
    service: DriverService = Depends(get_driver_service),
) -> dict[str, Any]:
    driver = await service.get_driver_by_plate(plate)
    return driver.to_response()


# =============================================================================
# ОПЕРАЦИИ ПО ID
# =============================================================================

@router.get("/{driver_id}")
async def get_driver(
    driver_id: str,
    service: DriverService = Depends(get_driver_service),
) -> dict[str, Any]:
    driver = await service.get_driver_by_id(driver_id)
    return driver.to_response()


@router.put("/{driver_id}")
async def update_driver(
    driver_id: str,
    request: Request,
    service: DriverService = Depends(get_driver_service),
) -> dict[str, Any]:
    """Частичное обновление профиля. Возвращает обновлённого водителя."""
    payload = await _read_json_object(request)
    driver = await service.update_driver(driver_id, payload)
    return driver.to_response()


@router.put("/{driver_id}/location")
async def update_driver_location(
    driver_id: str,
    request: Request,
    service: DriverService = Depends(get_driver_service),
) -> dict[str, str]:
    payload = await _read_json_object(request)
    await service.update_driver_location(driver_id, payload)
    return {"message": "Location updated successfully"}


@router.delete("/{driver_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_driver(
    driver_id: str,
    service: DriverService = Depends(get_driver_service),
) -> Response:
    await service.delete_driver(driver_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
