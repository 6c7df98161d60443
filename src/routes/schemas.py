from pydantic import BaseModel
from typing import List, Optional
from decimal import Decimal
from enum import Enum

class FareTier(str, Enum):
    """Fare brackets keyed by number of stations travelled, cheapest first"""
    SAME_STATION = "Same Station"
    SHORT = "Short Distance"
    MEDIUM = "Medium Distance"
    LONG = "Long Distance"
    EXTENDED = "Extended Distance"

class RouteStep(BaseModel):
    """One station on a path and the line used to arrive there (None at the origin)"""
    station_id: int
    line: Optional[int] = None

    class Config:
        frozen = True

class TripInfo(BaseModel):
    """Summary of the minimum-transfer route between two stations"""
    start_station_id: int
    end_station_id: int
    route: List[RouteStep]
    station_count: int
    ticket_type: FareTier
    lines_used: List[int]
    has_transfer: bool
    transfer_count: int
    transfer_stations: List[int]

class StationLines(BaseModel):
    station_id: int
    lines: List[int]

class TicketPrice(BaseModel):
    ticket_type_id: int
    ticket_type: FareTier
    price: Decimal
