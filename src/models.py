from sqlalchemy import Column, Integer, BigInteger, String, Boolean, DateTime, ForeignKey, Numeric, Index, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from src.database import Base

# ================================
# Riders
# ================================
class User(Base):
    __tablename__ = "users"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    available_balance = Column(Numeric(10, 2), nullable=False, default=0)
    holding_balance = Column(Numeric(10, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    trips = relationship("Trip", back_populates="user")
    transactions = relationship("Transaction", back_populates="user")

# ================================
# Station & Gate Directory
# ================================
class Station(Base):
    __tablename__ = "stations"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    name_en = Column(String(255), nullable=False, index=True)
    name_ar = Column(String(255))
    latitude = Column(Numeric(10, 6))
    longitude = Column(Numeric(10, 6))
    line_number = Column(Integer)

    # Relationships
    gates = relationship("Gate", back_populates="station")

class Gate(Base):
    __tablename__ = "gates"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    station_id = Column(BigInteger, ForeignKey("stations.id"), nullable=False, index=True)
    gate_number = Column(Integer, nullable=False)
    type = Column(String(20), nullable=False)  # entry / exit
    is_operational = Column(Boolean, default=True, nullable=False)

    # Relationships
    station = relationship("Station", back_populates="gates")

# ================================
# Fare Table
# ================================
class TicketType(Base):
    __tablename__ = "ticket_type"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    type_name = Column(String(50), unique=True, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

# ================================
# Ledger
# ================================
class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    user_id = Column(BigInteger, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    is_debit = Column(Boolean, nullable=False)
    is_hold = Column(Boolean, default=False, nullable=False)
    payment_method = Column(String(50))
    reference_id = Column(String(100), unique=True)  # payment id for recharges
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    user = relationship("User", back_populates="transactions")

class Trip(Base):
    __tablename__ = "trips"
    __table_args__ = (
        # At most one open trip per rider; the insert is the serialization point
        Index(
            "uq_trips_open_rider",
            "user_id",
            unique=True,
            postgresql_where=text("NOT is_ended"),
            sqlite_where=text("NOT is_ended"),
        ),
    )

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    user_id = Column(BigInteger, ForeignKey("users.id"), nullable=False)
    start_station_id = Column(BigInteger, ForeignKey("stations.id"), nullable=False)
    start_gate_id = Column(BigInteger, ForeignKey("gates.id"), nullable=False)
    end_station_id = Column(BigInteger, ForeignKey("stations.id"))
    end_gate_id = Column(BigInteger, ForeignKey("gates.id"))
    start_at = Column(DateTime(timezone=True), nullable=False)
    end_at = Column(DateTime(timezone=True))
    transaction_id = Column(BigInteger, ForeignKey("transactions.id"), nullable=False)
    number_of_clients = Column(Integer, nullable=False, default=1)
    ticket_type_id = Column(BigInteger, ForeignKey("ticket_type.id"))
    number_of_stations = Column(Integer)
    is_ended = Column(Boolean, default=False, nullable=False)

    # Relationships
    user = relationship("User", back_populates="trips")
    transaction = relationship("Transaction")
    ticket_type = relationship("TicketType")
