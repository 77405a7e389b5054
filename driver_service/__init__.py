# driver_service/__init__.py
"""TaxiHub Driver Service: справочник водителей такси с поиском по геолокации."""

__version__ = "1.0.0"
