"""
Stations Module

Read-only station and gate directory, plus nearest-station lookup by
coordinates.
"""

from .router import router
from .service import StationService, haversine_km

__all__ = [
    "router",
    "StationService",
    "haversine_km"
]
