# tests/conftest.py
"""
Общие фикстуры и настройки для тестов.
"""

from __future__ import annotations

import json
import os
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

# Устанавливаем переменные окружения перед импортом модулей
os.environ.setdefault("DB_PASSWORD", "test_password")
os.environ.setdefault("STORAGE_BACKEND", "memory")

from driver_service.common.constants import TaxiType  # noqa: E402
from driver_service.core.drivers.memory import InMemoryDriverRepository  # noqa: E402
from driver_service.core.drivers.models import Driver, Location  # noqa: E402
from driver_service.core.drivers.service import DriverService  # noqa: E402


# =============================================================================
# ФИКСТУРЫ КОНФИГУРАЦИИ
# =============================================================================

@pytest.fixture(scope="session")
def project_root() -> Path:
    """Корневая директория проекта."""
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def config_path(project_root: Path) -> Path:
    """Путь к файлу конфигурации."""
    return project_root / "config" / "config.json"


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Мок конфигурации для тестов."""
    return {
        "_comment_system": "Системные настройки",
        "PROJECT_NAME": "driver_service_test",
        "VERSION": "1.0.0-test",
        "DEBUG": True,
        "ENVIRONMENT": "test",
        "LOG_LEVEL": "DEBUG",
        "LOG_FORMAT": "json",
        "LOG_TO_FILE": False,
        "LOG_FILE_PATH": "logs/test.log",
        "DB_HOST": "db.local",
        "DB_PORT": 5433,
        "DB_NAME": "taxihub_test",
        "DB_USER": "tester",
        "DB_MIN_POOL_SIZE": 1,
        "DB_MAX_POOL_SIZE": 4,
        "DB_COMMAND_TIMEOUT": 10,
        "SERVER_HOST": "127.0.0.1",
        "SERVER_PORT": 9100,
        "STORAGE_BACKEND": "memory",
        "NEARBY_RADIUS_KM": 5.0,
        "NEARBY_LIMIT": 50,
        "DEFAULT_PAGE_SIZE": 20,
        "MAX_PAGE_SIZE": 100,
    }


@pytest.fixture
def temp_config_file(tmp_path: Path, mock_config: dict[str, Any]) -> Path:
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps(mock_config, ensure_ascii=False, indent=2))
    return config_file


# =============================================================================
# ФИКСТУРЫ ИНФРАСТРУКТУРЫ (МОКИ)
# =============================================================================

def async_cm(value: Any) -> Any:
    """Асинхронный контекстный менеджер, возвращающий value."""
    @asynccontextmanager
    async def _cm(*args: Any, **kwargs: Any):
        yield value

    return _cm()


@pytest.fixture
def mock_conn() -> AsyncMock:
    conn = AsyncMock()
    conn.fetch = AsyncMock(return_value=[])
    conn.fetchval = AsyncMock(return_value=0)
    return conn


@pytest.fixture
def mock_db(mock_conn: AsyncMock) -> AsyncMock:
    db = AsyncMock()
    db.fetchrow = AsyncMock(return_value=None)
    db.fetch = AsyncMock(return_value=[])
    db.execute = AsyncMock(return_value="UPDATE 1")
    db.fetchval = AsyncMock(return_value=None)
    db.transaction = MagicMock(side_effect=lambda *a, **kw: async_cm(mock_conn))
    return db


# =============================================================================
# ФИКСТУРЫ МОДЕЛЕЙ
# =============================================================================

@pytest.fixture
def sample_create_payload() -> dict[str, Any]:
    return {
        "first_name": "Ahmet",
        "last_name": "Yilmaz",
        "plate": "34 ABC 123",
        "taxi_type": "sari",
        "car_brand": "Fiat",
        "car_model": "Egea",
        "lat": 41.0082,
        "lon": 28.9784,
    }


@pytest.fixture
def make_driver() -> Callable[..., Driver]:
    """Фабрика водителей с заполненными полями."""
    base = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def _make(**overrides: Any) -> Driver:
        data: dict[str, Any] = {
            "id": "",
            "first_name": "Mehmet",
            "last_name": "Demir",
            "plate": "34XYZ99",
            "taxi_type": TaxiType.SARI,
            "car_brand": "Renault",
            "car_model": "Clio",
            "location": Location(lat=41.0, lon=29.0),
            "created_at": base,
            "updated_at": base,
        }
        if "minutes" in overrides:
            shifted = base + timedelta(minutes=overrides.pop("minutes"))
            data["created_at"] = data["updated_at"] = shifted
        data.update(overrides)
        return Driver(**data)

    return _make


@pytest.fixture
def memory_repo() -> InMemoryDriverRepository:
    return InMemoryDriverRepository()


@pytest.fixture
def service(memory_repo: InMemoryDriverRepository) -> DriverService:
    """Сервис поверх хранилища в памяти."""
    return DriverService(memory_repo)
