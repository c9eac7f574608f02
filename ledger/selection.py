"""
Choosing which coupons pay for an amount.

Coupons are spent whole, so an amount can only be covered by a subset of
entries whose amounts add up to it. Among subsets with the same sum the one
built from the oldest-expiring entries wins.
"""
from typing import Iterable, Optional

from .models import LedgerEntry


def expiry_order(entries: Iterable[LedgerEntry]) -> list[LedgerEntry]:
    """Oldest-expiring first, ties broken by creation time then code."""
    return sorted(entries, key=lambda e: (e.expires_at, e.created_at, e.code))


def _reachable_sums(entries: list[LedgerEntry], limit: int) -> dict[int, tuple[int, ...]]:
    # sum -> indexes of the entries producing it; first writer wins, and entries
    # are visited oldest-expiring first
    reachable: dict[int, tuple[int, ...]] = {0: ()}
    for index, entry in enumerate(entries):
        for total, picked in list(reachable.items()):
            candidate = total + entry.amount
            if candidate <= limit and candidate not in reachable:
                reachable[candidate] = picked + (index,)
        if limit in reachable:
            break
    return reachable


def best_subset(entries: Iterable[LedgerEntry], cap: int) -> list[LedgerEntry]:
    """Largest whole-entry sum that does not exceed ``cap``."""
    ordered = expiry_order(entries)
    if cap <= 0 or not ordered:
        return []
    reachable = _reachable_sums(ordered, cap)
    best = max(reachable)
    return [ordered[i] for i in reachable[best]]


def exact_subset(entries: Iterable[LedgerEntry], amount: int) -> Optional[list[LedgerEntry]]:
    """Entries summing to exactly ``amount``, or None when no combination does."""
    ordered = expiry_order(entries)
    if amount <= 0:
        return []
    reachable = _reachable_sums(ordered, amount)
    picked = reachable.get(amount)
    if picked is None:
        return None
    return [ordered[i] for i in picked]
