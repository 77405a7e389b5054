# driver_service/core/__init__.py
"""
Доменный слой (Core Domain).
Бизнес-логика справочника водителей, независимая от HTTP.
"""

from driver_service.core.drivers import Driver, DriverService, DriverRepository

__all__ = [
    "Driver",
    "DriverService",
    "DriverRepository",
]
