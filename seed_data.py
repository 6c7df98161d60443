#!/usr/bin/env python3

from decimal import Decimal
from typing import Dict, Sequence, Tuple
import math

from src.database import Base, SessionLocal, engine
from src.models import TicketType, Station, Gate
from src.routes.network import METRO_LINES
from src.routes.schemas import FareTier

# Prices must never decrease with distance; holds are sized at Extended Distance
FARE_TABLE = {
    FareTier.SAME_STATION: Decimal("5.00"),
    FareTier.SHORT: Decimal("8.00"),
    FareTier.MEDIUM: Decimal("10.00"),
    FareTier.LONG: Decimal("15.00"),
    FareTier.EXTENDED: Decimal("20.00"),
}

# Schematic layout: every line runs straight from the network centre along its
# own bearing, one station per STATION_SPACING_DEG. Replace with surveyed
# coordinates when they are available.
NETWORK_CENTRE = (30.0444, 31.2357)
STATION_SPACING_DEG = 0.01
LINE_BEARINGS_DEG = (0, 90, 45, 135, 315)

ENTRY_GATE_NUMBER = 1
EXIT_GATE_NUMBER = 2

def schematic_coordinates(lines: Sequence[Sequence[int]]) -> Dict[int, Tuple[Decimal, Decimal]]:
    """Place every station of every line; a shared station keeps its first position"""
    placed: Dict[int, Tuple[float, float]] = {}

    for line_index, line in enumerate(lines):
        bearing = math.radians(LINE_BEARINGS_DEG[line_index % len(LINE_BEARINGS_DEG)])
        d_lat = STATION_SPACING_DEG * math.cos(bearing)
        d_lng = STATION_SPACING_DEG * math.sin(bearing)

        # Anchor the line on a station another line already placed
        anchor_index = next((i for i, s in enumerate(line) if s in placed), None)
        if anchor_index is None:
            anchor_index = len(line) // 2
            anchor = NETWORK_CENTRE
        else:
            anchor = placed[line[anchor_index]]

        for i, station_id in enumerate(line):
            if station_id not in placed:
                offset = i - anchor_index
                placed[station_id] = (anchor[0] + offset * d_lat, anchor[1] + offset * d_lng)

    return {
        station_id: (Decimal(f"{lat:.6f}"), Decimal(f"{lng:.6f}"))
        for station_id, (lat, lng) in placed.items()
    }

def gate_id_for(station_id: int, gate_number: int) -> int:
    return station_id * 10 + gate_number

def create_seed_data():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    try:
        print("Seeding reference data for the metro fare settlement service...")
        # Reference tables are upserted; riders, trips and transactions are never touched

        # 1. Fare table
        print("Upserting ticket types...")
        for tier, price in FARE_TABLE.items():
            ticket_type = db.query(TicketType).filter(TicketType.type_name == tier.value).first()
            if ticket_type:
                ticket_type.price = price
            else:
                db.add(TicketType(type_name=tier.value, price=price))
        db.flush()

        # 2. One station row per station id on the lines, homed on the first line serving it
        print("Upserting stations...")
        coordinates = schematic_coordinates(METRO_LINES)
        home_lines = {}
        for line_index, line in enumerate(METRO_LINES):
            for station_id in line:
                home_lines.setdefault(station_id, line_index + 1)

        for station_id, line_number in home_lines.items():
            existing = db.query(Station).filter(Station.id == station_id).first()
            latitude, longitude = coordinates[station_id]
            db.merge(Station(
                id=station_id,
                name_en=existing.name_en if existing else f"Station {station_id}",
                name_ar=existing.name_ar if existing else None,
                latitude=latitude,
                longitude=longitude,
                line_number=line_number
            ))
        db.flush()

        # 3. An entry and an exit gate at every station
        print("Upserting gates...")
        for station_id in sorted(home_lines):
            for gate_number, gate_type in ((ENTRY_GATE_NUMBER, "entry"), (EXIT_GATE_NUMBER, "exit")):
                db.merge(Gate(
                    id=gate_id_for(station_id, gate_number),
                    station_id=station_id,
                    gate_number=gate_number,
                    type=gate_type,
                    is_operational=True
                ))

        # Commit all changes
        db.commit()
        print("Successfully seeded reference data!")
        print(f"Seeded:")
        print(f"  - {len(FARE_TABLE)} ticket types")
        print(f"  - {len(home_lines)} stations")
        print(f"  - {len(home_lines) * 2} gates")

    except Exception as e:
        print(f"Error creating seed data: {e}")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == "__main__":
    create_seed_data()
