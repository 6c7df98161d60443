"""
Route Planning Module

This module answers "how far is this trip" for the fare settlement core.
It includes:

- The static metro line definitions (main lines and line-3 branches)
- Minimum-transfer route search over the line multigraph
- Station-count based fare tiers and the tier price lookup

Key Components:
- network.py: Ordered station lists for every line
- service.py: RouteGraph, the 0-1 transfer-minimising search and trip summaries
- fare_service.py: Fare tier thresholds and TicketPriceProvider
- router.py: FastAPI endpoints for trip info, station lines and fares
- schemas.py: Pydantic models for route steps, trip info and prices
"""

from .router import router
from .service import RouteGraph, get_route_graph
from .fare_service import TicketPriceProvider, resolve_fare_tier
from .schemas import FareTier, RouteStep, TripInfo, StationLines, TicketPrice

__all__ = [
    "router",
    "RouteGraph",
    "get_route_graph",
    "TicketPriceProvider",
    "resolve_fare_tier",
    "FareTier",
    "RouteStep",
    "TripInfo",
    "StationLines",
    "TicketPrice"
]
