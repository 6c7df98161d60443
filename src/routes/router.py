from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List

from src.database import get_db
from src.exceptions import NotFound
from src.routes.fare_service import TicketPriceProvider, FARE_TIER_ORDER
from src.routes.schemas import TripInfo, StationLines, TicketPrice
from src.routes.service import get_route_graph

router = APIRouter()

@router.get("/trip-info", response_model=TripInfo)
def get_trip_info(
    start_station_id: int = Query(..., description="Origin station ID"),
    end_station_id: int = Query(..., description="Destination station ID")
):
    """Minimum-transfer route between two stations with its fare tier"""
    graph = get_route_graph()
    for station_id in (start_station_id, end_station_id):
        if not graph.station_exists(station_id):
            raise NotFound(f"Station {station_id} is not served by any line")

    return graph.trip_info(start_station_id, end_station_id)

@router.get("/stations/{station_id}/lines", response_model=StationLines)
def get_station_lines(station_id: int):
    """Lines serving a station"""
    graph = get_route_graph()
    if not graph.station_exists(station_id):
        raise NotFound(f"Station {station_id} is not served by any line")

    return StationLines(station_id=station_id, lines=graph.station_lines(station_id))

@router.get("/fares", response_model=List[TicketPrice])
def get_fares(db: Session = Depends(get_db)):
    """Configured price for every fare tier, cheapest first"""
    provider = TicketPriceProvider(db)
    table = provider.fare_table()
    return [
        provider.ticket_type_of(tier)
        for tier in FARE_TIER_ORDER
        if tier in table
    ]
