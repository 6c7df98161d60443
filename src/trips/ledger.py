from typing import Optional
from datetime import datetime, timezone
from decimal import Decimal
import logging

from sqlalchemy.orm import Session

from src.exceptions import (
    FareSettlementError, InsufficientFunds, InvalidState, NoRouteFound, NotFound,
    TripAlreadyActive, Unauthorized
)
from src.routes.fare_service import TicketPriceProvider
from src.routes.schemas import FareTier
from src.routes.service import RouteGraph, get_route_graph
from src.trips.access_key import AccessKeyCodec, ConsumedKeyRegistry, get_access_key_codec
from src.trips.schemas import BeginTripResult, EndTripResult, StartTripResponse
from src.trips.stores import LedgerStores

logger = logging.getLogger(__name__)


class TripLedger:
    """Hold-at-entry / settle-at-exit ledger for metro trips.

    A rider is either idle or has exactly one open trip backed by a hold.
    Entry moves party_size x Extended Distance price from available to holding;
    exit charges the fare for the distance actually travelled and returns the
    rest of the hold. All precondition checks run before anything is written,
    and the writes of each phase form a single unit of work.
    """

    def __init__(
        self,
        db: Session,
        route_graph: Optional[RouteGraph] = None,
        codec: Optional[AccessKeyCodec] = None,
        consumed_keys: Optional[ConsumedKeyRegistry] = None
    ):
        self.db = db
        self.stores = LedgerStores(db)
        self.prices = TicketPriceProvider(db)
        self.route_graph = route_graph or get_route_graph()
        self.codec = codec or get_access_key_codec()
        self.consumed_keys = consumed_keys

    def _hold_amount(self, party_size: int) -> Decimal:
        """Holds are always sized at the most expensive tier"""
        return party_size * self.prices.price_of(FareTier.EXTENDED)

    def _ensure_no_open_trip(self, rider_id: int):
        if self.stores.trips.find_open_trip_for_rider(rider_id) is not None:
            raise TripAlreadyActive(rider_id)

    def start_trip(self, rider_id: int, party_size: int) -> StartTripResponse:
        """Check the rider can afford a trip and issue an access key"""
        balance = self.stores.accounts.get_balance(rider_id)
        total_cost = self._hold_amount(party_size)

        if balance.available < total_cost:
            raise InsufficientFunds(
                f"Insufficient balance. Required: {total_cost}, Available: {balance.available}"
            )

        self._ensure_no_open_trip(rider_id)

        issued = self.codec.issue(rider_id, party_size)
        logger.info("Issued access key for user %s, party of %d", rider_id, party_size)

        return StartTripResponse(
            access_key=issued.access_key,
            expires_at=issued.expires_at,
            total_cost=total_cost
        )

    def begin_at_gate(self, access_key: str, station_id: int, gate_id: int) -> BeginTripResult:
        """Validate an access key, hold funds and open a trip"""
        payload = self.codec.validate(access_key)
        if payload is None:
            raise Unauthorized("Invalid or expired access key")

        rider_id = payload.rider_id
        party_size = payload.party_size

        balance = self.stores.accounts.get_balance(rider_id)
        total_cost = self._hold_amount(party_size)

        if balance.available < total_cost:
            raise InsufficientFunds(
                f"Insufficient balance. Required: {total_cost}, Available: {balance.available}"
            )

        self._ensure_no_open_trip(rider_id)

        if self.consumed_keys is not None and not self.consumed_keys.consume(access_key, payload.expires_at):
            raise Unauthorized("Access key has already been used")

        started_at = datetime.now(timezone.utc)
        try:
            with self.stores.atomic("trip hold"):
                transaction = self.stores.transactions.insert(
                    rider_id=rider_id,
                    amount=total_cost,
                    is_debit=True,
                    is_hold=True
                )
                transaction_id = transaction.id

                new_balance = self.stores.accounts.adjust_balance(
                    rider_id,
                    available_delta=-total_cost,
                    holding_delta=total_cost
                )

                trip = self.stores.trips.insert(
                    rider_id=rider_id,
                    start_station_id=station_id,
                    start_gate_id=gate_id,
                    transaction_id=transaction_id,
                    party_size=party_size,
                    started_at=started_at
                )
                trip_id = trip.id
        except FareSettlementError as e:
            if self.consumed_keys is not None:
                self.consumed_keys.release(access_key)
            logger.warning("Trip start for user %s rolled back: %s", rider_id, e.message)
            raise

        logger.info(
            "Trip %s started for user %s at station %s gate %s, held %s",
            trip_id, rider_id, station_id, gate_id, total_cost
        )

        return BeginTripResult(
            trip_id=trip_id,
            user_id=rider_id,
            transaction_id=transaction_id,
            amount_held=total_cost,
            remaining_available_balance=new_balance.available,
            start_station_id=station_id,
            start_gate_id=gate_id,
            started_at=started_at,
            number_of_clients=party_size
        )

    def end_at_gate(self, trip_id: int, station_id: int, gate_id: int) -> EndTripResult:
        """Charge the fare for the distance travelled and release the rest of the hold"""
        trip = self.stores.trips.find_by_id(trip_id)
        if trip is None:
            raise NotFound("Trip not found", {"trip_id": trip_id})
        if trip.is_ended:
            raise InvalidState("Trip is already ended", {"trip_id": trip_id})

        rider_id = trip.user_id
        party_size = trip.number_of_clients
        start_station_id = trip.start_station_id
        start_gate_id = trip.start_gate_id
        started_at = trip.start_at
        transaction_id = trip.transaction_id

        try:
            trip_info = self.route_graph.trip_info(start_station_id, station_id)
        except NoRouteFound:
            logger.error(
                "No route between station %s and station %s for trip %s; line data is incomplete",
                start_station_id, station_id, trip_id
            )
            raise

        ticket_type = self.prices.ticket_type_of(trip_info.ticket_type)

        transaction = self.stores.transactions.find_by_id(transaction_id)
        if transaction is None:
            raise NotFound("Original transaction not found", {"transaction_id": transaction_id})
        if not transaction.is_hold:
            raise InvalidState("Transaction is not in hold status", {"transaction_id": transaction_id})

        balance = self.stores.accounts.get_balance(rider_id)

        held_amount = Decimal(transaction.amount)
        actual_fare = party_size * ticket_type.price
        refund = held_amount - actual_fare

        if balance.holding < held_amount:
            raise InvalidState(
                "Holding balance is smaller than the trip hold",
                {"user_id": rider_id, "holding": str(balance.holding), "held": str(held_amount)}
            )
        if refund < 0:
            logger.warning(
                "Fare %s exceeds hold %s for trip %s; tier prices exceed the Extended Distance price",
                actual_fare, held_amount, trip_id
            )
            if balance.available + refund < 0:
                raise InsufficientFunds(
                    f"Fare exceeds hold by {-refund} and available balance is {balance.available}"
                )

        ended_at = datetime.now(timezone.utc)
        with self.stores.atomic("trip settle"):
            self.stores.trips.end_trip(
                trip_id,
                end_station_id=station_id,
                end_gate_id=gate_id,
                end_at=ended_at,
                ticket_type_id=ticket_type.ticket_type_id,
                number_of_stations=trip_info.station_count
            )
            self.stores.transactions.settle_hold(transaction_id, actual_fare, ended_at)
            self.stores.accounts.adjust_balance(
                rider_id,
                available_delta=refund,
                holding_delta=-held_amount
            )

        logger.info(
            "Trip %s ended for user %s at station %s: %d stations, %s, fare %s, refund %s",
            trip_id, rider_id, station_id, trip_info.station_count,
            trip_info.ticket_type.value, actual_fare, refund
        )

        return EndTripResult(
            trip_id=trip_id,
            user_id=rider_id,
            start_station_id=start_station_id,
            end_station_id=station_id,
            start_gate_id=start_gate_id,
            end_gate_id=gate_id,
            started_at=started_at,
            ended_at=ended_at,
            number_of_stations=trip_info.station_count,
            ticket_type=trip_info.ticket_type,
            fare=actual_fare,
            refund=refund
        )
