# driver_service/common/geo.py
"""
Геометрия на сфере: проверка координат и расстояние по большому кругу.
"""

from __future__ import annotations

import math

from driver_service.common.constants import EARTH_RADIUS_KM


def is_valid_latitude(latitude: float) -> bool:
    """Широта в диапазоне [-90, 90]."""
    return -90.0 <= latitude <= 90.0


def is_valid_longitude(longitude: float) -> bool:
    """Долгота в диапазоне [-180, 180]."""
    return -180.0 <= longitude <= 180.0


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Вычисляет расстояние между двумя точками (в км) по формуле Haversine.
    """
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = (math.sin(dlat / 2) ** 2 +
         math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) *
         math.sin(dlon / 2) ** 2)

    # Для антиподов погрешность округления даёт a > 1
    c = 2 * math.asin(math.sqrt(min(1.0, max(0.0, a))))

    return EARTH_RADIUS_KM * c


def round_distance(distance_km: float) -> float:
    """Округляет расстояние до одного знака после запятой (для отображения)."""
    return round(distance_km, 1)
