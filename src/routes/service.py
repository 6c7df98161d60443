from typing import List, Dict, Optional, Tuple, Sequence
from collections import deque
from functools import lru_cache
import logging

from src.exceptions import NoRouteFound
from src.routes.fare_service import resolve_fare_tier
from src.routes.network import METRO_LINES
from src.routes.schemas import FareTier, RouteStep, TripInfo

logger = logging.getLogger(__name__)

# (station_id, arrival line); the origin arrives on no line
RouteState = Tuple[int, Optional[int]]


class RouteGraph:
    """Undirected multigraph of stations built from ordered line definitions.

    Built once at process start and never mutated, so a single instance is
    shared by every request without locking.
    """

    def __init__(self, lines: Sequence[Sequence[int]] = METRO_LINES):
        self.lines: Tuple[Tuple[int, ...], ...] = tuple(tuple(line) for line in lines)
        self.adjacency: Dict[int, List[Tuple[int, int]]] = {}
        self._build_graph()

    def _build_graph(self):
        """Insert a bidirectional edge for every consecutive pair on every line"""
        for line_index, line in enumerate(self.lines):
            line_number = line_index + 1
            for i, station_id in enumerate(line):
                self.adjacency.setdefault(station_id, [])
                if i > 0:
                    previous = line[i - 1]
                    self.adjacency[station_id].append((previous, line_number))
                    self.adjacency[previous].append((station_id, line_number))

    def station_exists(self, station_id: int) -> bool:
        """Check whether any line serves the station"""
        return station_id in self.adjacency

    def station_lines(self, station_id: int) -> List[int]:
        """Line numbers serving a station, in definition order"""
        return [
            index + 1
            for index, line in enumerate(self.lines)
            if station_id in line
        ]

    def route(self, start_station_id: int, end_station_id: int) -> List[RouteStep]:
        """Find the path with the fewest line transfers between two stations.

        0-1 search on a deque: staying on the arrival line costs nothing and is
        pushed to the front, switching lines costs one transfer and is pushed to
        the back. States are (station, arrival line) so a transfer station
        reached on different lines is kept apart. Labels are
        (transfers, stations) and a state is only re-queued when its label
        improves, so the result has minimum transfers and, among those, the
        fewest stations.
        """
        if not self.station_exists(start_station_id) or not self.station_exists(end_station_id):
            raise NoRouteFound(start_station_id, end_station_id)

        origin: RouteState = (start_station_id, None)
        labels: Dict[RouteState, Tuple[int, int]] = {origin: (0, 0)}
        parents: Dict[RouteState, Optional[RouteState]] = {origin: None}
        queue = deque([origin])

        while queue:
            state = queue.popleft()
            station_id, arrival_line = state
            transfers, stations = labels[state]

            for neighbor, edge_line in self.adjacency[station_id]:
                is_transfer = arrival_line is not None and edge_line != arrival_line
                label = (transfers + int(is_transfer), stations + 1)
                next_state = (neighbor, edge_line)

                best = labels.get(next_state)
                if best is not None and best <= label:
                    continue

                labels[next_state] = label
                parents[next_state] = state
                if is_transfer:
                    queue.append(next_state)
                else:
                    queue.appendleft(next_state)

        arrivals = [state for state in labels if state[0] == end_station_id]
        if not arrivals:
            raise NoRouteFound(start_station_id, end_station_id)

        best_arrival = min(
            arrivals,
            key=lambda s: (labels[s], s[1] if s[1] is not None else 0)
        )
        return self._reconstruct_path(parents, best_arrival)

    @staticmethod
    def _reconstruct_path(
        parents: Dict[RouteState, Optional[RouteState]],
        arrival: RouteState
    ) -> List[RouteStep]:
        path = []
        state: Optional[RouteState] = arrival
        while state is not None:
            path.append(RouteStep(station_id=state[0], line=state[1]))
            state = parents[state]
        path.reverse()
        return path

    def trip_info(self, start_station_id: int, end_station_id: int) -> TripInfo:
        """Route summary: station count, fare tier, lines used and transfers"""
        if start_station_id == end_station_id:
            return TripInfo(
                start_station_id=start_station_id,
                end_station_id=end_station_id,
                route=[RouteStep(station_id=start_station_id)],
                station_count=0,
                ticket_type=FareTier.SAME_STATION,
                lines_used=[],
                has_transfer=False,
                transfer_count=0,
                transfer_stations=[]
            )

        route = self.route(start_station_id, end_station_id)
        station_count = len(route) - 1

        lines_used: List[int] = []
        for step in route:
            if step.line is not None and step.line not in lines_used:
                lines_used.append(step.line)

        transfer_stations = self.find_transfer_stations(route)

        return TripInfo(
            start_station_id=start_station_id,
            end_station_id=end_station_id,
            route=route,
            station_count=station_count,
            ticket_type=resolve_fare_tier(station_count),
            lines_used=lines_used,
            has_transfer=len(lines_used) > 1,
            transfer_count=len(transfer_stations),
            transfer_stations=transfer_stations
        )

    def station_count(self, start_station_id: int, end_station_id: int) -> int:
        """Number of stations travelled, excluding the start station"""
        return self.trip_info(start_station_id, end_station_id).station_count

    @staticmethod
    def find_transfer_stations(route: List[RouteStep]) -> List[int]:
        """Stations where the path leaves one line for another"""
        transfers = []
        for i in range(1, len(route)):
            previous, current = route[i - 1], route[i]
            if previous.line is not None and current.line != previous.line:
                transfers.append(previous.station_id)
        return transfers


@lru_cache(maxsize=1)
def get_route_graph() -> RouteGraph:
    """Process-wide metro graph"""
    graph = RouteGraph(METRO_LINES)
    logger.info(
        "Route graph built: %d stations on %d lines",
        len(graph.adjacency), len(graph.lines)
    )
    return graph
