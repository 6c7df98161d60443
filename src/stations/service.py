from sqlalchemy.orm import Session, joinedload
from typing import Dict, List, Optional, Tuple
import logging
import math

from src.exceptions import NoRouteFound, NotFound
from src.models import Station
from src.routes.schemas import FareTier
from src.routes.service import RouteGraph
from src.stations.schemas import (
    NearestStation, NearestStationsResponse, RouteInfo, RoutePathStation
)

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371

def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates"""
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = (math.sin(dlat/2) * math.sin(dlat/2) +
         math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) *
         math.sin(dlon/2) * math.sin(dlon/2))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1-a))
    return EARTH_RADIUS_KM * c

class StationService:
    @staticmethod
    def get_station_by_id(db: Session, station_id: int) -> Optional[Station]:
        """Get station by ID with its gates"""
        return db.query(Station).options(
            joinedload(Station.gates)
        ).filter(Station.id == station_id).first()

    @staticmethod
    def get_stations(
        db: Session,
        skip: int = 0,
        limit: int = 50,
        query: Optional[str] = None,
        line_number: Optional[int] = None
    ) -> Tuple[List[Station], int]:
        """Get stations with optional name and line filters"""
        stations = db.query(Station)

        if query:
            stations = stations.filter(Station.name_en.ilike(f"%{query}%"))

        if line_number is not None:
            stations = stations.filter(Station.line_number == line_number)

        total = stations.count()
        return stations.order_by(Station.id).offset(skip).limit(limit).all(), total

    @staticmethod
    def find_nearest_stations(
        db: Session,
        graph: RouteGraph,
        start_lat: float,
        start_long: float,
        arrival_lat: float,
        arrival_long: float
    ) -> NearestStationsResponse:
        """Nearest departure and destination stations and the route between them"""
        stations = [
            s for s in db.query(Station).all()
            if s.latitude is not None and s.longitude is not None
        ]
        if not stations:
            raise NotFound("No stations with valid coordinates found")

        def nearest(lat: float, lng: float) -> NearestStation:
            station, distance = min(
                (
                    (s, haversine_km(lat, lng, float(s.latitude), float(s.longitude)))
                    for s in stations
                ),
                key=lambda pair: pair[1]
            )
            return NearestStation(
                id=station.id,
                name_en=station.name_en,
                name_ar=station.name_ar,
                latitude=station.latitude,
                longitude=station.longitude,
                line_number=station.line_number,
                distance_km=round(distance, 2)
            )

        departure = nearest(start_lat, start_long)
        destination = nearest(arrival_lat, arrival_long)
        station_map: Dict[int, Station] = {s.id: s for s in stations}

        return NearestStationsResponse(
            departure_station=departure,
            destination_station=destination,
            route_info=StationService._route_info(graph, departure, destination, station_map)
        )

    @staticmethod
    def _route_info(
        graph: RouteGraph,
        departure: NearestStation,
        destination: NearestStation,
        station_map: Dict[int, Station]
    ) -> RouteInfo:
        if departure.id == destination.id:
            return RouteInfo(
                total_stations=0,
                ticket_type=FareTier.SAME_STATION.value,
                lines_used=[departure.line_number] if departure.line_number else [],
                has_transfer=False,
                route_path=[
                    RoutePathStation(
                        station_id=departure.id,
                        name_en=departure.name_en,
                        name_ar=departure.name_ar
                    )
                ]
            )

        try:
            trip_info = graph.trip_info(departure.id, destination.id)
        except NoRouteFound as e:
            logger.error("Route info unavailable: %s", e.message)
            return RouteInfo(
                ticket_type="Route calculation unavailable",
                error=f"Unable to calculate route between stations, {e.message}"
            )

        route_path = []
        for step in trip_info.route:
            station = station_map.get(step.station_id)
            route_path.append(RoutePathStation(
                station_id=step.station_id,
                name_en=station.name_en if station else None,
                name_ar=station.name_ar if station else None,
                line=step.line
            ))

        return RouteInfo(
            total_stations=trip_info.station_count,
            ticket_type=trip_info.ticket_type.value,
            lines_used=trip_info.lines_used,
            has_transfer=trip_info.has_transfer,
            transfer_stations=trip_info.transfer_stations,
            route_path=route_path
        )
