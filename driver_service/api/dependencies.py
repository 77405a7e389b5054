# driver_service/api/dependencies.py
"""
Зависимости FastAPI.
Экземпляры создаются в lifespan и хранятся в app.state.
"""

from __future__ import annotations

from fastapi import Request

from driver_service.core.drivers.service import DriverService
from driver_service.infra.database import DatabaseManager


def get_driver_service(request: Request) -> DriverService:
    """Сервис водителей текущего приложения."""
    return request.app.state.driver_service


def get_database(request: Request) -> DatabaseManager | None:
    """Менеджер БД (None для хранилища в памяти)."""
    return getattr(request.app.state, "db", None)
