from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal

from src.routes.schemas import FareTier

class StartTripRequest(BaseModel):
    """Rider asks for an access key for a party of riders"""
    number_of_clients: int = Field(1, ge=1, le=10)

class StartTripResponse(BaseModel):
    access_key: str
    expires_at: datetime
    total_cost: Decimal

class GateStartRequest(BaseModel):
    access_key: str = Field(..., min_length=1)

class GateEndRequest(BaseModel):
    trip_id: int

class BeginTripResult(BaseModel):
    """Outcome of starting a trip at an entry gate"""
    trip_id: int
    user_id: int
    transaction_id: int
    amount_held: Decimal
    remaining_available_balance: Decimal
    start_station_id: int
    start_gate_id: int
    started_at: datetime
    number_of_clients: int

class EndTripResult(BaseModel):
    """Outcome of ending a trip at an exit gate"""
    trip_id: int
    user_id: int
    start_station_id: int
    end_station_id: int
    start_gate_id: int
    end_gate_id: int
    started_at: datetime
    ended_at: datetime
    number_of_stations: int
    ticket_type: FareTier
    fare: Decimal
    refund: Decimal

class BalanceResponse(BaseModel):
    user_id: int
    available_balance: Decimal
    holding_balance: Decimal
    active_trip_id: Optional[int] = None
