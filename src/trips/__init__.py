"""
Trips Module

The fare settlement core: access keys, the hold/settle ledger and its storage.

Key Components:
- access_key.py: AES-GCM sealed, time-boxed trip access keys
- ledger.py: TripLedger, start trip / begin at gate / end at gate
- stores.py: Account, transaction and trip storage with atomic units of work
- schemas.py: Pydantic models for ledger requests and results
"""

from .access_key import AccessKeyCodec, AccessKeyPayload, ConsumedKeyRegistry
from .ledger import TripLedger
from .stores import AccountStore, Balance, LedgerStores, TransactionStore, TripStore
from .schemas import BeginTripResult, EndTripResult, StartTripResponse

__all__ = [
    "AccessKeyCodec",
    "AccessKeyPayload",
    "ConsumedKeyRegistry",
    "TripLedger",
    "AccountStore",
    "Balance",
    "LedgerStores",
    "TransactionStore",
    "TripStore",
    "BeginTripResult",
    "EndTripResult",
    "StartTripResponse"
]
