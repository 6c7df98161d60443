"""Tests for minimum-transfer routing, fare tiers and tier prices."""

from decimal import Decimal
from itertools import combinations

import pytest

from src.exceptions import NoRouteFound, NotFound
from src.models import TicketType
from src.routes.fare_service import TicketPriceProvider, resolve_fare_tier
from src.routes.network import METRO_LINES
from src.routes.schemas import FareTier
from src.routes.service import RouteGraph, get_route_graph


@pytest.fixture
def graph():
    return get_route_graph()


class TestFareTiers:
    @pytest.mark.parametrize("station_count, tier", [
        (0, FareTier.SAME_STATION),
        (1, FareTier.SHORT),
        (9, FareTier.SHORT),
        (10, FareTier.MEDIUM),
        (16, FareTier.MEDIUM),
        (17, FareTier.LONG),
        (23, FareTier.LONG),
        (24, FareTier.EXTENDED),
        (60, FareTier.EXTENDED),
    ])
    def test_tier_boundaries(self, station_count, tier):
        assert resolve_fare_tier(station_count) == tier

    def test_tiers_never_get_cheaper_with_distance(self):
        order = list(FareTier)
        tiers = [resolve_fare_tier(n) for n in range(0, 40)]
        assert [order.index(t) for t in tiers] == sorted(order.index(t) for t in tiers)


class TestRouteGraph:
    def test_every_line_station_is_known(self, graph):
        for line in METRO_LINES:
            for station_id in line:
                assert graph.station_exists(station_id)
        assert not graph.station_exists(999)

    def test_station_lines(self, graph):
        assert graph.station_lines(42) == [1]
        assert graph.station_lines(1) == [1, 3]
        assert graph.station_lines(72) == [3, 4, 5]
        assert graph.station_lines(999) == []

    def test_same_line_trip(self, graph):
        info = graph.trip_info(42, 35)
        assert info.station_count == 4
        assert info.ticket_type == FareTier.SHORT
        assert info.lines_used == [1]
        assert info.has_transfer is False
        assert info.transfer_stations == []
        assert [step.station_id for step in info.route] == [42, 8, 43, 70, 35]

    def test_same_station_trip(self, graph):
        info = graph.trip_info(42, 42)
        assert info.station_count == 0
        assert info.ticket_type == FareTier.SAME_STATION
        assert info.transfer_count == 0
        assert [step.station_id for step in info.route] == [42]

    def test_route_to_itself(self, graph):
        assert [step.station_id for step in graph.route(42, 42)] == [42]

    def test_one_transfer_trip(self, graph):
        info = graph.trip_info(42, 19)
        assert info.transfer_stations == [62]
        assert info.transfer_count == 1
        assert info.lines_used == [1, 2]
        assert info.station_count == 27
        assert info.ticket_type == FareTier.EXTENDED

    def test_branch_transfer_at_junction(self, graph):
        info = graph.trip_info(64, 74)
        assert info.transfer_stations == [72]
        assert info.lines_used == [3, 4]
        assert info.station_count == 2

    def test_route_follows_track(self, graph):
        route = graph.route(56, 79)
        assert route[0].station_id == 56 and route[0].line is None
        assert route[-1].station_id == 79
        for previous, current in zip(route, route[1:]):
            line = METRO_LINES[current.line - 1]
            i, j = line.index(previous.station_id), line.index(current.station_id)
            assert abs(i - j) == 1

    def test_counts_are_symmetric(self, graph):
        sample = [42, 19, 4, 79, 83, 3, 56, 12, 72, 1, 25, 62]
        for a, b in combinations(sample, 2):
            forward = graph.trip_info(a, b)
            backward = graph.trip_info(b, a)
            assert forward.station_count == backward.station_count, (a, b)
            assert forward.transfer_count == backward.transfer_count, (a, b)
            assert forward.ticket_type == backward.ticket_type, (a, b)

    def test_station_count_matches_trip_info(self, graph):
        assert graph.station_count(42, 19) == graph.trip_info(42, 19).station_count

    def test_unknown_station_has_no_route(self, graph):
        with pytest.raises(NoRouteFound) as excinfo:
            graph.route(42, 999)
        assert excinfo.value.start_station_id == 42
        assert excinfo.value.end_station_id == 999

    def test_disconnected_lines_have_no_route(self):
        with pytest.raises(NoRouteFound):
            RouteGraph([[1, 2], [3, 4]]).trip_info(1, 4)


class TestMinimumTransfers:
    def test_fewer_transfers_beats_fewer_stations(self):
        # 1 -> 5 along line 1 is four stations with no transfer;
        # 1 -> 6 -> 5 is two stations but changes line at 6
        graph = RouteGraph([[1, 2, 3, 4, 5], [1, 6], [6, 5]])
        info = graph.trip_info(1, 5)
        assert info.transfer_count == 0
        assert info.station_count == 4
        assert info.lines_used == [1]

        back = graph.trip_info(5, 1)
        assert back.transfer_count == 0
        assert back.station_count == 4

    def test_fewest_stations_among_equal_transfers(self):
        graph = RouteGraph([[1, 2, 3, 4, 5], [1, 5]])
        info = graph.trip_info(1, 5)
        assert info.transfer_count == 0
        assert info.station_count == 1
        assert info.lines_used == [2]

    def test_transfer_counted_where_line_changes(self):
        graph = RouteGraph([[1, 2, 3], [3, 4, 5], [5, 6]])
        info = graph.trip_info(1, 6)
        assert info.transfer_stations == [3, 5]
        assert info.transfer_count == 2
        assert info.lines_used == [1, 2, 3]
        assert info.has_transfer is True


class TestTicketPrices:
    def test_prices_come_from_ticket_types(self, db, fare_table):
        provider = TicketPriceProvider(db)
        assert provider.price_of(FareTier.EXTENDED) == Decimal("10")
        price = provider.ticket_type_of(FareTier.SHORT)
        assert price.ticket_type == FareTier.SHORT
        assert price.ticket_type_id == fare_table[FareTier.SHORT.value]
        assert provider.is_monotonic()

    def test_missing_tier_is_not_found(self, db):
        with pytest.raises(NotFound) as excinfo:
            TicketPriceProvider(db).ticket_type_of(FareTier.LONG)
        assert "Long Distance" in excinfo.value.message

    def test_price_inversion_is_detected(self, db, fare_table):
        db.query(TicketType).filter(
            TicketType.type_name == FareTier.SHORT.value
        ).update({"price": Decimal("15.00")})
        db.commit()
        assert not TicketPriceProvider(db).is_monotonic()
