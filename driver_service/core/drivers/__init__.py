# driver_service/core/drivers/__init__.py
"""
Домен водителей.
Модели, валидация, репозитории и сервис справочника водителей.
"""

from driver_service.core.drivers.errors import (
    DriverConflictError,
    DriverNotFoundError,
    DriverServiceError,
    FieldViolation,
    InvalidDriverIDError,
    InvalidLocationError,
    InvalidTaxiTypeError,
    StorageError,
    ValidationFailedError,
)
from driver_service.core.drivers.memory import InMemoryDriverRepository
from driver_service.core.drivers.models import Driver, DriverWithDistance, Location, PaginatedDrivers
from driver_service.core.drivers.repository import DriverRepository, PostgresDriverRepository
from driver_service.core.drivers.service import DriverService

__all__ = [
    "Driver",
    "DriverWithDistance",
    "Location",
    "PaginatedDrivers",
    "DriverRepository",
    "PostgresDriverRepository",
    "InMemoryDriverRepository",
    "DriverService",
    "DriverServiceError",
    "FieldViolation",
    "ValidationFailedError",
    "DriverNotFoundError",
    "DriverConflictError",
    "InvalidDriverIDError",
    "InvalidLocationError",
    "InvalidTaxiTypeError",
    "StorageError",
]
