from typing import Dict, List, Tuple
from decimal import Decimal
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from src.exceptions import NotFound, PersistenceError
from src.models import TicketType
from src.routes.schemas import FareTier, TicketPrice

# Upper bound (inclusive) of stations travelled for each tier; anything above
# the last bound is Extended Distance.
FARE_TIER_THRESHOLDS: Tuple[Tuple[int, FareTier], ...] = (
    (0, FareTier.SAME_STATION),
    (9, FareTier.SHORT),
    (16, FareTier.MEDIUM),
    (23, FareTier.LONG),
)

FARE_TIER_ORDER: List[FareTier] = [
    FareTier.SAME_STATION,
    FareTier.SHORT,
    FareTier.MEDIUM,
    FareTier.LONG,
    FareTier.EXTENDED,
]


def resolve_fare_tier(station_count: int) -> FareTier:
    """Map the number of stations travelled to its fare tier"""
    for upper_bound, tier in FARE_TIER_THRESHOLDS:
        if station_count <= upper_bound:
            return tier
    return FareTier.EXTENDED


class TicketPriceProvider:
    """Looks up tier prices from the ticket_type table"""

    def __init__(self, db: Session):
        self.db = db

    def ticket_type_of(self, tier: FareTier) -> TicketPrice:
        """Get the ticket type row for a tier"""
        try:
            ticket_type = self.db.query(TicketType).filter(
                TicketType.type_name == tier.value
            ).first()
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to load ticket type") from e

        if not ticket_type:
            raise NotFound(f"Ticket type '{tier.value}' not found")

        return TicketPrice(
            ticket_type_id=ticket_type.id,
            ticket_type=tier,
            price=Decimal(ticket_type.price)
        )

    def price_of(self, tier: FareTier) -> Decimal:
        """Unit price for a tier"""
        return self.ticket_type_of(tier).price

    def fare_table(self) -> Dict[FareTier, Decimal]:
        """All configured tier prices"""
        try:
            rows = self.db.query(TicketType).all()
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to load fare table") from e

        known = {tier.value: tier for tier in FareTier}
        return {
            known[row.type_name]: Decimal(row.price)
            for row in rows
            if row.type_name in known
        }

    def is_monotonic(self) -> bool:
        """Check that configured prices never decrease with distance"""
        table = self.fare_table()
        prices = [table[tier] for tier in FARE_TIER_ORDER if tier in table]
        return all(a <= b for a, b in zip(prices, prices[1:]))
