from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from src.database import get_db
from src.exceptions import InvalidState
from src.gates.dependencies import GateContext, get_gate_context
from src.trips.access_key import get_consumed_key_registry
from src.trips.ledger import TripLedger
from src.trips.schemas import GateStartRequest, GateEndRequest

router = APIRouter()

@router.post("/trips/start")
def start_trip_at_gate(
    request: GateStartRequest,
    gate: GateContext = Depends(get_gate_context),
    db: Session = Depends(get_db)
):
    """Open a trip at an entry gate and hold the maximum fare"""
    if gate.gate_type != "entry":
        raise InvalidState("This gate is not an entry gate")

    ledger = TripLedger(db, consumed_keys=get_consumed_key_registry())
    result = ledger.begin_at_gate(request.access_key, gate.station_id, gate.gate_id)

    return {
        "success": True,
        "message": "Trip started successfully at gate",
        "data": {
            **result.model_dump(),
            "gate_number": gate.gate_number,
            "station_name": gate.station_name_en
        }
    }

@router.post("/trips/end")
def end_trip_at_gate(
    request: GateEndRequest,
    gate: GateContext = Depends(get_gate_context),
    db: Session = Depends(get_db)
):
    """Close a trip at an exit gate and settle its fare"""
    if gate.gate_type != "exit":
        raise InvalidState("This gate is not an exit gate")

    ledger = TripLedger(db)
    result = ledger.end_at_gate(request.trip_id, gate.station_id, gate.gate_id)

    return {
        "success": True,
        "message": "Trip ended successfully at gate",
        "data": {
            **result.model_dump(),
            "gate_number": gate.gate_number,
            "station_name": gate.station_name_en
        }
    }
