# driver_service/api/__init__.py
"""
HTTP слой (FastAPI).
"""

from driver_service.api.app import create_app

__all__ = ["create_app"]
