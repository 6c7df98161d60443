from pydantic import BaseModel
from typing import List, Optional
from decimal import Decimal

class Station(BaseModel):
    id: int
    name_en: str
    name_ar: Optional[str] = None
    latitude: Optional[Decimal] = None
    longitude: Optional[Decimal] = None
    line_number: Optional[int] = None

    class Config:
        from_attributes = True

class Gate(BaseModel):
    id: int
    station_id: int
    gate_number: int
    type: str
    is_operational: bool

    class Config:
        from_attributes = True

class StationDetail(Station):
    lines: List[int] = []
    gates: List[Gate] = []

class StationSearchResult(BaseModel):
    stations: List[Station]
    total: int
    page: int
    per_page: int

class NearestStation(Station):
    distance_km: float

class RoutePathStation(BaseModel):
    station_id: int
    name_en: Optional[str] = None
    name_ar: Optional[str] = None
    line: Optional[int] = None

class RouteInfo(BaseModel):
    """Route between the nearest stations; fields are empty when it cannot be computed"""
    total_stations: Optional[int] = None
    ticket_type: Optional[str] = None
    lines_used: List[int] = []
    has_transfer: Optional[bool] = None
    transfer_stations: List[int] = []
    route_path: List[RoutePathStation] = []
    error: Optional[str] = None

class NearestStationsResponse(BaseModel):
    departure_station: NearestStation
    destination_station: NearestStation
    route_info: RouteInfo
