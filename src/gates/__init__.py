"""
Gates Module

Entry and exit gate endpoints. Gates authenticate with the shared station token
and their gate id; the station they belong to is where the trip starts or ends.
"""

from .router import router
from .dependencies import GateContext, get_gate_context

__all__ = [
    "router",
    "GateContext",
    "get_gate_context"
]
