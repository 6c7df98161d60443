"""
Error taxonomy for fare settlement.

Each error carries the HTTP status and a stable error code so the request layer
can render it without knowing where it came from. Precondition errors
(Unauthorized, NotFound, InvalidState, Conflict, InsufficientFunds) are raised
before anything is written. PersistenceError means the storage layer failed and
the unit of work was rolled back; ReconciliationRequired means the outcome of a
money-moving commit is unknown and an operator has to look at it.
"""

from typing import Optional


class ErrorCode:
    """Stable error codes returned to clients"""

    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    INVALID_STATE = "INVALID_STATE"
    CONFLICT = "CONFLICT"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"
    RECONCILIATION_REQUIRED = "RECONCILIATION_REQUIRED"
    NO_ROUTE_FOUND = "NO_ROUTE_FOUND"


class FareSettlementError(Exception):
    status_code = 500
    error_code = ErrorCode.PERSISTENCE_ERROR

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        error = {"code": self.error_code, "message": self.message}
        if self.details:
            error["details"] = self.details
        return error


class Unauthorized(FareSettlementError):
    status_code = 401
    error_code = ErrorCode.UNAUTHORIZED


class NotFound(FareSettlementError):
    status_code = 404
    error_code = ErrorCode.NOT_FOUND


class InvalidState(FareSettlementError):
    status_code = 400
    error_code = ErrorCode.INVALID_STATE


class Conflict(FareSettlementError):
    status_code = 409
    error_code = ErrorCode.CONFLICT


class TripAlreadyActive(Conflict):
    def __init__(self, rider_id: int):
        super().__init__("User already has an active trip", {"user_id": rider_id})


class InsufficientFunds(FareSettlementError):
    status_code = 400
    error_code = ErrorCode.INSUFFICIENT_FUNDS


class PersistenceError(FareSettlementError):
    status_code = 500
    error_code = ErrorCode.PERSISTENCE_ERROR


class ReconciliationRequired(PersistenceError):
    error_code = ErrorCode.RECONCILIATION_REQUIRED


class NoRouteFound(FareSettlementError):
    status_code = 500
    error_code = ErrorCode.NO_ROUTE_FOUND

    def __init__(self, start_station_id: int, end_station_id: int):
        super().__init__(
            f"No route found between station {start_station_id} and station {end_station_id}",
            {"start_station_id": start_station_id, "end_station_id": end_station_id},
        )
        self.start_station_id = start_station_id
        self.end_station_id = end_station_id
