"""
Order pricing and confirmation

- Points discount capped by subtotal + fee and by the available balance
- Idempotent confirmation keyed by the payment transaction id
- Store-side commission entries
"""

from .models import (
    ProductLine,
    OrderRequest,
    PricedOrder,
    OrderRecord,
    OrderConfirmation,
    StoreSettlementEntry,
)

__all__ = [
    "ProductLine",
    "OrderRequest",
    "PricedOrder",
    "OrderRecord",
    "OrderConfirmation",
    "StoreSettlementEntry",
]
