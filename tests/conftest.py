"""Shared fixtures: an in-memory SQLite database, a seeded fare table and an API client."""

import os

# Settings are read at import time, so the test environment goes in first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-rider-secret"
os.environ["TRIP_KEY_SECRET"] = "test-trip-key-secret"
os.environ["TRIP_KEY_SALT"] = "test-salt"
os.environ["STATION_AUTH_TOKEN"] = "test-station-token"
os.environ["WEBHOOK_SECRET"] = "test-webhook-secret"
os.environ["ACCESS_KEY_SINGLE_USE"] = "false"
os.environ["LOG_LEVEL"] = "DEBUG"

from decimal import Decimal

import pytest

from src.database import Base, SessionLocal, engine
from src.models import Gate, Station, TicketType, User
from src.routes.schemas import FareTier

# Extended Distance sizes the hold; every other tier is cheaper
PRICES = {
    FareTier.SAME_STATION: Decimal("1.00"),
    FareTier.SHORT: Decimal("2.00"),
    FareTier.MEDIUM: Decimal("4.00"),
    FareTier.LONG: Decimal("7.00"),
    FareTier.EXTENDED: Decimal("10.00"),
}


@pytest.fixture
def db():
    """A fresh schema and session per test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fare_table(db):
    rows = [TicketType(type_name=tier.value, price=price) for tier, price in PRICES.items()]
    db.add_all(rows)
    db.commit()
    return {row.type_name: row.id for row in rows}


@pytest.fixture
def rider(db):
    user = User(
        name="Test Rider",
        email="rider@example.com",
        available_balance=Decimal("100.00"),
        holding_balance=Decimal("0.00"),
    )
    db.add(user)
    db.commit()
    return user.id


@pytest.fixture
def stations(db):
    """Stations 42 and 35 on line 1 and 19 on line 2, each with an entry and an exit gate"""
    gates = {}
    for station_id, line_number in ((42, 1), (35, 1), (19, 2)):
        db.add(Station(id=station_id, name_en=f"Station {station_id}", line_number=line_number,
                       latitude=Decimal("30.0") + Decimal(station_id) / 100,
                       longitude=Decimal("31.0")))
    db.flush()
    for station_id in (42, 35, 19):
        entry = Gate(station_id=station_id, gate_number=1, type="entry", is_operational=True)
        exit_gate = Gate(station_id=station_id, gate_number=2, type="exit", is_operational=True)
        db.add_all([entry, exit_gate])
        db.flush()
        gates[station_id] = {"entry": entry.id, "exit": exit_gate.id}
    db.commit()
    return gates


@pytest.fixture
def balance_of(db):
    """Read (available, holding) straight from the database"""
    def read(rider_id):
        db.expire_all()
        user = db.query(User).filter(User.id == rider_id).one()
        return Decimal(user.available_balance), Decimal(user.holding_balance)
    return read
