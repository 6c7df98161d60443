"""
SQL storage for the trip ledger.

The three stores share one SQLAlchemy session. Their methods only flush; the
ledger decides where a unit of work starts and ends through
``LedgerStores.atomic()``, so a hold (transaction row, balance move, trip row)
or a settle (trip ended, transaction settled, balance released) is committed
or rolled back as a whole.

Concurrency is closed at the database, never by a prior read:
- balance changes are single guarded delta UPDATEs, so a concurrent recharge is
  never overwritten and neither balance can go negative;
- the partial unique index ``uq_trips_open_rider`` makes the trip insert the
  serialization point for "one open trip per rider".
"""

from typing import Iterator, Optional
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from src.exceptions import (
    FareSettlementError, InsufficientFunds, InvalidState, NotFound, PersistenceError,
    ReconciliationRequired, TripAlreadyActive
)
from src.models import User, Transaction, Trip

logger = logging.getLogger(__name__)

OPEN_TRIP_INDEX = "uq_trips_open_rider"


def _violates_open_trip_index(error: IntegrityError) -> bool:
    # PostgreSQL names the index; SQLite names the indexed column
    message = str(error.orig)
    return OPEN_TRIP_INDEX in message or "trips.user_id" in message


@dataclass(frozen=True)
class Balance:
    available: Decimal
    holding: Decimal


class AccountStore:
    """Rider balances"""

    def __init__(self, db: Session):
        self.db = db

    def get_balance(self, rider_id: int) -> Balance:
        try:
            row = self.db.query(
                User.available_balance, User.holding_balance
            ).filter(User.id == rider_id).first()
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to read user balance") from e

        if row is None:
            raise NotFound("User not found", {"user_id": rider_id})

        return Balance(available=Decimal(row[0]), holding=Decimal(row[1]))

    def adjust_balance(
        self,
        rider_id: int,
        available_delta: Decimal,
        holding_delta: Decimal
    ) -> Balance:
        """Apply deltas atomically; refuses any change that would go negative"""
        statement = (
            update(User)
            .where(User.id == rider_id)
            .where(User.available_balance + available_delta >= 0)
            .where(User.holding_balance + holding_delta >= 0)
            .values(
                available_balance=User.available_balance + available_delta,
                holding_balance=User.holding_balance + holding_delta,
            )
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.db.execute(statement)
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to update user balance") from e

        if result.rowcount != 1:
            # Either the rider vanished or a concurrent change left too little
            self.get_balance(rider_id)
            raise InsufficientFunds(
                "Balance change would make a balance negative",
                {
                    "user_id": rider_id,
                    "available_delta": str(available_delta),
                    "holding_delta": str(holding_delta),
                }
            )

        return self.get_balance(rider_id)


class TransactionStore:
    """Ledger rows: trip holds/settlements and recharge credits"""

    def __init__(self, db: Session):
        self.db = db

    def insert(
        self,
        rider_id: int,
        amount: Decimal,
        is_debit: bool,
        is_hold: bool = False,
        reference_id: Optional[str] = None,
        payment_method: Optional[str] = None
    ) -> Transaction:
        transaction = Transaction(
            user_id=rider_id,
            amount=amount,
            is_debit=is_debit,
            is_hold=is_hold,
            reference_id=reference_id,
            payment_method=payment_method,
            created_at=datetime.now(timezone.utc),
        )
        try:
            self.db.add(transaction)
            self.db.flush()
        except IntegrityError as e:
            raise PersistenceError(
                "Failed to create transaction record",
                {"reference_id": reference_id}
            ) from e
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to create transaction record") from e
        return transaction

    def settle_hold(self, transaction_id: int, amount: Decimal, settled_at: datetime):
        """Turn a hold into a final charge; only a row still on hold is changed"""
        statement = (
            update(Transaction)
            .where(Transaction.id == transaction_id)
            .where(Transaction.is_hold.is_(True))
            .values(is_hold=False, amount=amount, created_at=settled_at)
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.db.execute(statement)
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to update transaction record") from e

        if result.rowcount != 1:
            raise InvalidState(
                "Transaction is not in hold status",
                {"transaction_id": transaction_id}
            )

    def find_by_id(self, transaction_id: int) -> Optional[Transaction]:
        try:
            return self.db.query(Transaction).filter(Transaction.id == transaction_id).first()
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to read transaction") from e

    def find_by_reference_id(self, reference_id: str) -> Optional[Transaction]:
        try:
            return self.db.query(Transaction).filter(
                Transaction.reference_id == reference_id
            ).first()
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to read transaction") from e


class TripStore:
    """Trip rows"""

    def __init__(self, db: Session):
        self.db = db

    def insert(
        self,
        rider_id: int,
        start_station_id: int,
        start_gate_id: int,
        transaction_id: int,
        party_size: int,
        started_at: datetime
    ) -> Trip:
        trip = Trip(
            user_id=rider_id,
            start_station_id=start_station_id,
            start_gate_id=start_gate_id,
            start_at=started_at,
            transaction_id=transaction_id,
            number_of_clients=party_size,
            is_ended=False,
        )
        try:
            self.db.add(trip)
            self.db.flush()
        except IntegrityError as e:
            if _violates_open_trip_index(e):
                # another start for this rider got there first
                raise TripAlreadyActive(rider_id) from e
            raise PersistenceError("Failed to create trip record") from e
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to create trip record") from e
        return trip

    def end_trip(self, trip_id: int, **fields):
        """Close a trip; a trip that is already ended is left untouched"""
        statement = (
            update(Trip)
            .where(Trip.id == trip_id)
            .where(Trip.is_ended.is_(False))
            .values(is_ended=True, **fields)
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.db.execute(statement)
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to update trip record") from e

        if result.rowcount != 1:
            raise InvalidState("Trip is already ended", {"trip_id": trip_id})

    def find_by_id(self, trip_id: int) -> Optional[Trip]:
        try:
            return self.db.query(Trip).filter(Trip.id == trip_id).first()
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to read trip") from e

    def find_open_trip_for_rider(self, rider_id: int) -> Optional[Trip]:
        try:
            return self.db.query(Trip).filter(
                Trip.user_id == rider_id,
                Trip.is_ended.is_(False)
            ).first()
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to read active trip") from e


class LedgerStores:
    """The stores the ledger coordinates, bound to one session"""

    def __init__(self, db: Session):
        self.db = db
        self.accounts = AccountStore(db)
        self.transactions = TransactionStore(db)
        self.trips = TripStore(db)

    @contextmanager
    def atomic(self, operation: str) -> Iterator[None]:
        """Run a unit of work: commit on success, roll everything back on failure.

        A failing commit leaves the outcome unknown, which is reported as
        ReconciliationRequired instead of PersistenceError.
        """
        try:
            yield
        except FareSettlementError:
            self._rollback(operation)
            raise
        except SQLAlchemyError as e:
            self._rollback(operation)
            raise PersistenceError(f"Storage failure during {operation}") from e
        except Exception:
            self._rollback(operation)
            raise

        try:
            self.db.commit()
        except SQLAlchemyError as e:
            logger.critical("Commit of %s failed, outcome unknown: %s", operation, e)
            self._rollback(operation)
            raise ReconciliationRequired(
                f"Commit of {operation} failed; outcome must be reconciled"
            ) from e

    def _rollback(self, operation: str):
        logger.warning("Rolling back %s", operation)
        try:
            self.db.rollback()
        except SQLAlchemyError:
            logger.exception("Rollback of %s failed", operation)

