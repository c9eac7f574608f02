"""
Store matching for delivery addresses: eligible stores, area pricing and the
central dispatch fallback.
"""

from .models import (
    Address,
    DeliveryArea,
    AreaPricing,
    Store,
    MatchWarning,
    StoreMatchResult,
)

__all__ = [
    "Address",
    "DeliveryArea",
    "AreaPricing",
    "Store",
    "MatchWarning",
    "StoreMatchResult",
]
