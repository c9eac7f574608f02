"""
Points ledger for the flower shop

This module provides:
- Append-only coupon entries that expire 30 days after grant
- Exactly-once consumption against an order or withdrawal
- Balance breakdown by origin (purchase / referral / welcome)
- In-memory and SQLAlchemy storage behind one interface
"""

from .models import (
    OriginType,
    LedgerEntry,
    LedgerEntryInput,
    CouponBalance,
    BalanceBreakdown,
)
from .service import LedgerService

__all__ = [
    "OriginType",
    "LedgerEntry",
    "LedgerEntryInput",
    "CouponBalance",
    "BalanceBreakdown",
    "LedgerService",
]
