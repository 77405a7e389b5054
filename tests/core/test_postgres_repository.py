# tests/core/test_postgres_repository.py
"""
Тесты для PostgresDriverRepository (с моком DatabaseManager).
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Any, Callable
from unittest.mock import AsyncMock

import asyncpg
import pytest

from driver_service.common.constants import TaxiType
from driver_service.core.drivers.errors import (
    DriverConflictError,
    DriverNotFoundError,
    InvalidDriverIDError,
    StorageError,
)
from driver_service.core.drivers.models import Driver
from driver_service.core.drivers.repository import PostgresDriverRepository, parse_driver_id

DRIVER_ID = "0b6f8e6e-3c1a-4a57-9a53-0f3c1b2d7e11"


def _row(**overrides: Any) -> dict[str, Any]:
    ts = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    row = {
        "id": DRIVER_ID,
        "first_name": "Ahmet",
        "last_name": "Yilmaz",
        "plate": "34ABC123",
        "taxi_type": "sari",
        "car_brand": "Fiat",
        "car_model": "Egea",
        "latitude": 41.0,
        "longitude": 29.0,
        "created_at": ts,
        "updated_at": ts,
    }
    row.update(overrides)
    return row


@pytest.fixture
def repo(mock_db: AsyncMock) -> PostgresDriverRepository:
    return PostgresDriverRepository(mock_db, query_timeout=5.0)


class TestParseDriverId:
    """Тесты разбора идентификатора."""

    def test_valid(self) -> None:
        assert parse_driver_id(DRIVER_ID) == uuid.UUID(DRIVER_ID)

    @pytest.mark.parametrize("value", ["", "123", "not-a-uuid", "507f1f77bcf86cd799439011"])
    def test_invalid(self, value: str) -> None:
        with pytest.raises(InvalidDriverIDError):
            parse_driver_id(value)


class TestCreate:
    """Тесты для create."""

    @pytest.mark.asyncio
    async def test_returns_db_id(
        self, repo: PostgresDriverRepository, mock_db: AsyncMock, make_driver: Callable[..., Driver]
    ) -> None:
        # Arrange
        mock_db.fetchval.return_value = DRIVER_ID
        driver = make_driver(plate="34ABC123")

        # Act
        result = await repo.create(driver)

        # Assert
        assert result == DRIVER_ID
        args = mock_db.fetchval.call_args
        assert "INSERT INTO drivers" in args.args[0]
        assert "34ABC123" in args.args
        assert "sari" in args.args
        assert args.kwargs["timeout"] == 5.0

    @pytest.mark.asyncio
    async def test_unique_violation_is_conflict(
        self, repo: PostgresDriverRepository, mock_db: AsyncMock, make_driver: Callable[..., Driver]
    ) -> None:
        mock_db.fetchval.side_effect = asyncpg.UniqueViolationError("duplicate key")

        with pytest.raises(DriverConflictError) as exc_info:
            await repo.create(make_driver(plate="34ABC123"))

        assert exc_info.value.plate == "34ABC123"

    @pytest.mark.asyncio
    async def test_connection_failure_is_storage_error(
        self, repo: PostgresDriverRepository, mock_db: AsyncMock, make_driver: Callable[..., Driver]
    ) -> None:
        cause = ConnectionRefusedError("refused")
        mock_db.fetchval.side_effect = cause

        with pytest.raises(StorageError) as exc_info:
            await repo.create(make_driver())

        assert exc_info.value.__cause__ is cause
        assert "refused" not in exc_info.value.message

    @pytest.mark.asyncio
    async def test_timeout_is_storage_error(
        self, repo: PostgresDriverRepository, mock_db: AsyncMock, make_driver: Callable[..., Driver]
    ) -> None:
        mock_db.fetchval.side_effect = asyncio.TimeoutError()

        with pytest.raises(StorageError):
            await repo.create(make_driver())

    @pytest.mark.asyncio
    async def test_cancellation_propagates(
        self, repo: PostgresDriverRepository, mock_db: AsyncMock, make_driver: Callable[..., Driver]
    ) -> None:
        mock_db.fetchval.side_effect = asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await repo.create(make_driver())


class TestFindById:
    """Тесты для find_by_id."""

    @pytest.mark.asyncio
    async def test_found(self, repo: PostgresDriverRepository, mock_db: AsyncMock) -> None:
        mock_db.fetchrow.return_value = _row(taxi_type="turkuaz")

        driver = await repo.find_by_id(DRIVER_ID)

        assert driver.id == DRIVER_ID
        assert driver.taxi_type is TaxiType.TURKUAZ
        assert driver.location.lat == 41.0
        assert mock_db.fetchrow.call_args.args[1] == uuid.UUID(DRIVER_ID)

    @pytest.mark.asyncio
    async def test_not_found(self, repo: PostgresDriverRepository, mock_db: AsyncMock) -> None:
        mock_db.fetchrow.return_value = None

        with pytest.raises(DriverNotFoundError):
            await repo.find_by_id(DRIVER_ID)

    @pytest.mark.asyncio
    async def test_malformed_id_skips_query(self, repo: PostgresDriverRepository, mock_db: AsyncMock) -> None:
        with pytest.raises(InvalidDriverIDError):
            await repo.find_by_id("abc")

        mock_db.fetchrow.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_undecodable_row_is_storage_error(
        self, repo: PostgresDriverRepository, mock_db: AsyncMock
    ) -> None:
        mock_db.fetchrow.return_value = _row(latitude=500.0)

        with pytest.raises(StorageError):
            await repo.find_by_id(DRIVER_ID)


class TestFindByPlate:
    """Тесты для find_by_plate."""

    @pytest.mark.asyncio
    async def test_found(self, repo: PostgresDriverRepository, mock_db: AsyncMock) -> None:
        mock_db.fetchrow.return_value = _row()

        driver = await repo.find_by_plate("34ABC123")

        assert driver.plate == "34ABC123"
        assert mock_db.fetchrow.call_args.args[1] == "34ABC123"

    @pytest.mark.asyncio
    async def test_not_found(self, repo: PostgresDriverRepository, mock_db: AsyncMock) -> None:
        with pytest.raises(DriverNotFoundError):
            await repo.find_by_plate("34ABC123")


class TestFindAll:
    """Тесты для find_all."""

    @pytest.mark.asyncio
    async def test_page_from_single_snapshot(
        self, repo: PostgresDriverRepository, mock_db: AsyncMock, mock_conn: AsyncMock
    ) -> None:
        # Arrange
        mock_conn.fetchval.return_value = 42
        mock_conn.fetch.return_value = [_row()]

        # Act
        items, total = await repo.find_all(3, 10)

        # Assert
        assert total == 42
        assert len(items) == 1
        mock_db.transaction.assert_called_once_with(isolation="repeatable_read", readonly=True)
        query, limit, offset = mock_conn.fetch.call_args.args
        assert "ORDER BY d.created_at DESC, d.id ASC" in query
        assert (limit, offset) == (10, 20)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("page", [5, 10**20])
    async def test_page_beyond_end_is_empty(
        self, repo: PostgresDriverRepository, mock_conn: AsyncMock, page: int
    ) -> None:
        # Arrange
        mock_conn.fetchval.return_value = 3

        # Act
        items, total = await repo.find_all(page, 20)

        # Assert
        assert (items, total) == ([], 3)
        mock_conn.fetch.assert_not_called()


class TestFindNearby:
    """Тесты для find_nearby."""

    @pytest.mark.asyncio
    async def test_query_parameters(self, repo: PostgresDriverRepository, mock_db: AsyncMock) -> None:
        mock_db.fetch.return_value = [_row(distance_km=0.0), _row(id=str(uuid.uuid4()), distance_km=0.139)]

        result = await repo.find_nearby(41.0, 29.0, 5.0, taxi_type=TaxiType.SIYAH)

        query, lat, lon, radius_m, taxi_type, limit = mock_db.fetch.call_args.args
        assert "ST_DWithin" in query
        assert "ORDER BY distance_km ASC, d.created_at ASC, d.id ASC" in query
        assert (lat, lon) == (41.0, 29.0)
        assert radius_m == 5000.0
        assert taxi_type == "siyah"
        assert limit == 50
        assert [d.distance_km for d in result] == [0.0, 0.139]

    @pytest.mark.asyncio
    async def test_without_filter(self, repo: PostgresDriverRepository, mock_db: AsyncMock) -> None:
        await repo.find_nearby(41.0, 29.0, 5.0)

        assert mock_db.fetch.call_args.args[4] is None

    @pytest.mark.asyncio
    async def test_postgres_error_is_storage_error(
        self, repo: PostgresDriverRepository, mock_db: AsyncMock
    ) -> None:
        mock_db.fetch.side_effect = asyncpg.PostgresError("boom")

        with pytest.raises(StorageError):
            await repo.find_nearby(41.0, 29.0, 5.0)


class TestUpdateAndDelete:
    """Тесты для update и delete."""

    @pytest.mark.asyncio
    async def test_update(
        self, repo: PostgresDriverRepository, mock_db: AsyncMock, make_driver: Callable[..., Driver]
    ) -> None:
        mock_db.execute.return_value = "UPDATE 1"

        await repo.update(DRIVER_ID, make_driver(taxi_type=TaxiType.TURKUAZ))

        args = mock_db.execute.call_args.args
        assert args[1] == uuid.UUID(DRIVER_ID)
        assert "turkuaz" in args

    @pytest.mark.asyncio
    async def test_update_missing(
        self, repo: PostgresDriverRepository, mock_db: AsyncMock, make_driver: Callable[..., Driver]
    ) -> None:
        mock_db.execute.return_value = "UPDATE 0"

        with pytest.raises(DriverNotFoundError):
            await repo.update(DRIVER_ID, make_driver())

    @pytest.mark.asyncio
    async def test_update_conflict(
        self, repo: PostgresDriverRepository, mock_db: AsyncMock, make_driver: Callable[..., Driver]
    ) -> None:
        mock_db.execute.side_effect = asyncpg.UniqueViolationError("duplicate key")

        with pytest.raises(DriverConflictError):
            await repo.update(DRIVER_ID, make_driver())

    @pytest.mark.asyncio
    async def test_delete(self, repo: PostgresDriverRepository, mock_db: AsyncMock) -> None:
        mock_db.execute.return_value = "DELETE 1"

        await repo.delete(DRIVER_ID)

        assert "DELETE FROM drivers" in mock_db.execute.call_args.args[0]

    @pytest.mark.asyncio
    async def test_delete_missing(self, repo: PostgresDriverRepository, mock_db: AsyncMock) -> None:
        mock_db.execute.return_value = "DELETE 0"

        with pytest.raises(DriverNotFoundError):
            await repo.delete(DRIVER_ID)
