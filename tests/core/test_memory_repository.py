# tests/core/test_memory_repository.py
"""
Тесты для InMemoryDriverRepository.
"""

from __future__ import annotations

import uuid
from typing import Callable

import pytest

from driver_service.common.constants import NEARBY_LIMIT, TaxiType
from driver_service.core.drivers.errors import (
    DriverConflictError,
    DriverNotFoundError,
    InvalidDriverIDError,
)
from driver_service.core.drivers.memory import InMemoryDriverRepository
from driver_service.core.drivers.models import Driver, Location


class TestCreate:
    """Тесты сохранения."""

    @pytest.mark.asyncio
    async def test_assigns_uuid(
        self, memory_repo: InMemoryDriverRepository, make_driver: Callable[..., Driver]
    ) -> None:
        driver_id = await memory_repo.create(make_driver())

        assert uuid.UUID(driver_id)
        assert (await memory_repo.find_by_id(driver_id)).id == driver_id

    @pytest.mark.asyncio
    async def test_unique_plate(
        self, memory_repo: InMemoryDriverRepository, make_driver: Callable[..., Driver]
    ) -> None:
        await memory_repo.create(make_driver(plate="34ABC123"))

        with pytest.raises(DriverConflictError):
            await memory_repo.create(make_driver(plate="34ABC123", first_name="Other"))

        assert len(memory_repo) == 1


class TestUpdate:
    """Тесты перезаписи."""

    @pytest.mark.asyncio
    async def test_keeps_id_and_created_at(
        self, memory_repo: InMemoryDriverRepository, make_driver: Callable[..., Driver]
    ) -> None:
        driver_id = await memory_repo.create(make_driver())
        stored = await memory_repo.find_by_id(driver_id)

        await memory_repo.update(driver_id, make_driver(first_name="Kemal", minutes=30))
        updated = await memory_repo.find_by_id(driver_id)

        assert updated.id == driver_id
        assert updated.first_name == "Kemal"
        assert updated.created_at == stored.created_at
        assert updated.updated_at > stored.updated_at

    @pytest.mark.asyncio
    async def test_plate_taken_by_other(
        self, memory_repo: InMemoryDriverRepository, make_driver: Callable[..., Driver]
    ) -> None:
        await memory_repo.create(make_driver(plate="34AAA1"))
        second = await memory_repo.create(make_driver(plate="34AAA2"))

        with pytest.raises(DriverConflictError):
            await memory_repo.update(second, make_driver(plate="34AAA1"))

    @pytest.mark.asyncio
    async def test_missing(
        self, memory_repo: InMemoryDriverRepository, make_driver: Callable[..., Driver]
    ) -> None:
        with pytest.raises(DriverNotFoundError):
            await memory_repo.update(str(uuid.uuid4()), make_driver())

    @pytest.mark.asyncio
    async def test_malformed_id(
        self, memory_repo: InMemoryDriverRepository, make_driver: Callable[..., Driver]
    ) -> None:
        with pytest.raises(InvalidDriverIDError):
            await memory_repo.update("zzz", make_driver())


class TestQueries:
    """Тесты чтения."""

    @pytest.mark.asyncio
    async def test_find_by_plate(
        self, memory_repo: InMemoryDriverRepository, make_driver: Callable[..., Driver]
    ) -> None:
        driver_id = await memory_repo.create(make_driver(plate="06XYZ456"))

        assert (await memory_repo.find_by_plate("06XYZ456")).id == driver_id
        with pytest.raises(DriverNotFoundError):
            await memory_repo.find_by_plate("06XYZ457")

    @pytest.mark.asyncio
    async def test_find_all_newest_first(
        self, memory_repo: InMemoryDriverRepository, make_driver: Callable[..., Driver]
    ) -> None:
        old = await memory_repo.create(make_driver(plate="34AAA1", minutes=0))
        new = await memory_repo.create(make_driver(plate="34AAA2", minutes=10))
        mid = await memory_repo.create(make_driver(plate="34AAA3", minutes=5))

        items, total = await memory_repo.find_all(1, 10)

        assert total == 3
        assert [d.id for d in items] == [new, mid, old]

    @pytest.mark.asyncio
    async def test_find_all_ties_by_id(
        self, memory_repo: InMemoryDriverRepository, make_driver: Callable[..., Driver]
    ) -> None:
        ids = [await memory_repo.create(make_driver(plate=f"34AAA{i}")) for i in range(1, 4)]

        items, _ = await memory_repo.find_all(1, 10)

        assert [d.id for d in items] == sorted(ids)

    @pytest.mark.asyncio
    async def test_find_all_offset(
        self, memory_repo: InMemoryDriverRepository, make_driver: Callable[..., Driver]
    ) -> None:
        for i in range(5):
            await memory_repo.create(make_driver(plate=f"34AAA{i}", minutes=i))

        items, total = await memory_repo.find_all(3, 2)

        assert total == 5
        assert len(items) == 1
        assert items[0].plate == "34AAA0"


class TestFindNearby:
    """Тесты геопоиска."""

    @pytest.mark.asyncio
    async def test_ordering_and_ties(
        self, memory_repo: InMemoryDriverRepository, make_driver: Callable[..., Driver]
    ) -> None:
        far = await memory_repo.create(
            make_driver(plate="34AAA1", location=Location(lat=41.01, lon=29.0), minutes=0)
        )
        newer_same_spot = await memory_repo.create(make_driver(plate="34AAA2", minutes=10))
        older_same_spot = await memory_repo.create(make_driver(plate="34AAA3", minutes=1))

        result = await memory_repo.find_nearby(41.0, 29.0, 5.0)

        assert [d.id for d in result] == [older_same_spot, newer_same_spot, far]
        assert result[2].distance_km == pytest.approx(1.112, abs=0.01)

    @pytest.mark.asyncio
    async def test_radius_boundary(
        self, memory_repo: InMemoryDriverRepository, make_driver: Callable[..., Driver]
    ) -> None:
        # 0.05° широты ≈ 5.56 км
        await memory_repo.create(make_driver(location=Location(lat=41.05, lon=29.0)))

        assert await memory_repo.find_nearby(41.0, 29.0, 5.0) == []

    @pytest.mark.asyncio
    async def test_taxi_type_filter(
        self, memory_repo: InMemoryDriverRepository, make_driver: Callable[..., Driver]
    ) -> None:
        await memory_repo.create(make_driver(plate="34AAA1", taxi_type=TaxiType.SARI))
        blue = await memory_repo.create(make_driver(plate="34AAA2", taxi_type=TaxiType.TURKUAZ))

        result = await memory_repo.find_nearby(41.0, 29.0, 5.0, taxi_type=TaxiType.TURKUAZ)

        assert [d.id for d in result] == [blue]

    @pytest.mark.asyncio
    async def test_default_cap(
        self, memory_repo: InMemoryDriverRepository, make_driver: Callable[..., Driver]
    ) -> None:
        for i in range(NEARBY_LIMIT + 5):
            await memory_repo.create(
                make_driver(plate=f"34A{i}", location=Location(lat=41.0 + i * 0.0001, lon=29.0))
            )

        result = await memory_repo.find_nearby(41.0, 29.0, 5.0)

        assert len(result) == NEARBY_LIMIT
        assert result[-1].plate == f"34A{NEARBY_LIMIT - 1}"

    @pytest.mark.asyncio
    async def test_antipodal_driver_skipped(
        self, memory_repo: InMemoryDriverRepository, make_driver: Callable[..., Driver]
    ) -> None:
        # Arrange
        await memory_repo.create(make_driver(plate="34ANT1", location=Location(lat=87.5, lon=0.0)))
        near = await memory_repo.create(make_driver(plate="34ANT2", location=Location(lat=-87.5, lon=-180.0)))

        # Act
        result = await memory_repo.find_nearby(-87.5, -180.0, 5.0)

        # Assert
        assert [d.id for d in result] == [near]


class TestDelete:
    """Тесты удаления."""

    @pytest.mark.asyncio
    async def test_delete(
        self, memory_repo: InMemoryDriverRepository, make_driver: Callable[..., Driver]
    ) -> None:
        driver_id = await memory_repo.create(make_driver())

        await memory_repo.delete(driver_id)

        assert len(memory_repo) == 0
        with pytest.raises(DriverNotFoundError):
            await memory_repo.delete(driver_id)
