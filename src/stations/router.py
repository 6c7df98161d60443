from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from src.database import get_db
from src.exceptions import NotFound
from src.routes.service import get_route_graph
from src.stations.schemas import StationDetail, StationSearchResult, Station, Gate
from src.stations.service import StationService

router = APIRouter()

@router.get("/", response_model=StationSearchResult)
def get_stations(
    skip: int = Query(0, ge=0, description="Number of stations to skip"),
    limit: int = Query(50, ge=1, le=100, description="Number of stations to return"),
    query: Optional[str] = Query(None, description="Search by station name"),
    line_number: Optional[int] = Query(None, description="Filter by home line"),
    db: Session = Depends(get_db)
):
    """Get stations with optional search and filters"""
    stations, total = StationService.get_stations(
        db, skip=skip, limit=limit, query=query, line_number=line_number
    )

    return StationSearchResult(
        stations=[Station.model_validate(s) for s in stations],
        total=total,
        page=skip // limit + 1,
        per_page=limit
    )

@router.get("/{station_id}", response_model=StationDetail)
def get_station(station_id: int, db: Session = Depends(get_db)):
    """Get a station with the lines serving it and its gates"""
    station = StationService.get_station_by_id(db, station_id)
    if not station:
        raise NotFound(f"Station with ID {station_id} not found")

    return StationDetail(
        **Station.model_validate(station).model_dump(),
        lines=get_route_graph().station_lines(station.id),
        gates=[Gate.model_validate(g) for g in station.gates]
    )
