from dataclasses import dataclass
from typing import Optional
import hmac

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from src.config import settings
from src.database import get_db
from src.exceptions import Unauthorized
from src.models import Gate, Station


@dataclass(frozen=True)
class GateContext:
    """The calling gate and the station it belongs to"""
    gate_id: int
    gate_number: int
    gate_type: str
    station_id: int
    station_name_en: str
    station_name_ar: Optional[str]


def get_gate_context(
    x_station_token: Optional[str] = Header(None),
    x_gate_id: Optional[int] = Header(None),
    db: Session = Depends(get_db)
) -> GateContext:
    """Authenticate a gate request from its station token and gate id headers"""
    if x_gate_id is None:
        raise Unauthorized("Gate ID header is required")

    gate = db.query(Gate).filter(
        Gate.id == x_gate_id,
        Gate.is_operational.is_(True)
    ).first()
    if not gate:
        raise Unauthorized("Gate not found or inactive")

    expected_token = settings.STATION_AUTH_TOKEN
    if not expected_token or not x_station_token or not hmac.compare_digest(
        x_station_token.encode("utf-8"), expected_token.encode("utf-8")
    ):
        raise Unauthorized("Invalid station token")

    station = db.query(Station).filter(Station.id == gate.station_id).first()
    if not station:
        raise Unauthorized("Station not found")

    return GateContext(
        gate_id=gate.id,
        gate_number=gate.gate_number,
        gate_type=gate.type,
        station_id=station.id,
        station_name_en=station.name_en,
        station_name_ar=station.name_ar
    )
