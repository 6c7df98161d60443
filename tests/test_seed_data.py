"""Tests for the reference data seeder."""

from decimal import Decimal

import pytest

from seed_data import FARE_TABLE, create_seed_data, gate_id_for, schematic_coordinates
from src.models import Gate, Station, TicketType, Transaction, Trip
from src.routes.network import METRO_LINES
from src.routes.service import RouteGraph
from src.stations.service import StationService
from src.trips.access_key import AccessKeyCodec
from src.trips.ledger import TripLedger

ALL_STATIONS = {station_id for line in METRO_LINES for station_id in line}


@pytest.fixture
def seeded(db):
    create_seed_data()
    db.expire_all()
    return db


class TestSeedData:
    def test_seeds_reference_tables(self, seeded):
        assert seeded.query(TicketType).count() == len(FARE_TABLE)
        assert {s.id for s in seeded.query(Station)} == ALL_STATIONS
        assert seeded.query(Gate).count() == 2 * len(ALL_STATIONS)

        gate = seeded.query(Gate).filter(Gate.id == gate_id_for(42, 1)).one()
        assert (gate.station_id, gate.type) == (42, "entry")
        gate = seeded.query(Gate).filter(Gate.id == gate_id_for(42, 2)).one()
        assert (gate.station_id, gate.type) == (42, "exit")

    def test_every_station_has_coordinates(self, seeded):
        for station in seeded.query(Station):
            assert station.latitude is not None, station.id
            assert station.longitude is not None, station.id

    def test_nearest_stations_resolve_on_seeded_data(self, seeded):
        coordinates = schematic_coordinates(METRO_LINES)
        start = [float(c) for c in coordinates[42]]
        arrival = [float(c) for c in coordinates[19]]

        result = StationService.find_nearest_stations(seeded, RouteGraph(), *start, *arrival)
        assert result.departure_station.id == 42
        assert result.destination_station.id == 19

    def test_shared_station_keeps_one_position(self):
        coordinates = schematic_coordinates(METRO_LINES)
        assert set(coordinates) == ALL_STATIONS

        # 72 closes the main branch of line 3 and opens both line-3 branches
        north = schematic_coordinates(METRO_LINES[:4])
        assert north[72] == coordinates[72]

    def test_reseeding_is_idempotent(self, seeded):
        seeded.query(Station).filter(Station.id == 42).update({"name_en": "Helwan"})
        seeded.commit()

        create_seed_data()
        seeded.expire_all()

        assert seeded.query(TicketType).count() == len(FARE_TABLE)
        assert seeded.query(Station).count() == len(ALL_STATIONS)
        assert seeded.query(Gate).count() == 2 * len(ALL_STATIONS)
        assert seeded.query(Station).filter(Station.id == 42).one().name_en == "Helwan"

    def test_reseeding_restores_fare_prices(self, seeded):
        seeded.query(TicketType).update({"price": Decimal("1.00")})
        seeded.commit()

        create_seed_data()
        seeded.expire_all()

        prices = {t.type_name: Decimal(t.price) for t in seeded.query(TicketType)}
        assert prices == {tier.value: price for tier, price in FARE_TABLE.items()}

    def test_reseeding_keeps_open_trips_and_holds(self, seeded, rider, balance_of):
        ledger = TripLedger(seeded, codec=AccessKeyCodec(secret="seed-test-secret", salt="seed-test-salt"))
        access_key = ledger.start_trip(rider, 2).access_key
        started = ledger.begin_at_gate(access_key, 42, gate_id_for(42, 1))
        before = balance_of(rider)

        create_seed_data()
        seeded.expire_all()

        trip = seeded.query(Trip).filter(Trip.id == started.trip_id).one()
        assert trip.is_ended is False
        assert seeded.query(Transaction).count() == 1
        assert balance_of(rider) == before

        ended = ledger.end_at_gate(started.trip_id, 35, gate_id_for(35, 2))
        assert ended.refund > 0
        assert balance_of(rider)[1] == Decimal("0")
