"""
Users Module

Rider-facing endpoints: request a trip access key, check balances and find the
nearest stations.
"""

from .router import router

__all__ = ["router"]
