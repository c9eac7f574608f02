"""
Order pricing. Pure functions only: callers pass in the balance they read.
"""
from ledger.models import CouponBalance, LedgerEntry
from ledger.selection import best_subset

from .errors import DiscountExceedsBalanceError, NegativeTotalError
from .models import OrderRequest, PricedOrder


def discount_for(balance: CouponBalance, requested: int, gross: int) -> list[LedgerEntry]:
    """Coupons paying for the discount.

    The discount is capped by the request, the available balance and the
    order amount, then snapped down to what whole coupons can make up.
    """
    cap = min(requested, balance.available, gross)
    return best_subset(balance.coupons, cap)


def price(order: OrderRequest, balance: CouponBalance) -> PricedOrder:
    subtotal = order.subtotal
    gross = subtotal + order.additional_fee

    entries = discount_for(balance, order.points_requested, gross)
    discount = sum(e.amount for e in entries)

    if discount > balance.available:
        raise DiscountExceedsBalanceError()
    total = gross - discount
    if total < 0:
        raise NegativeTotalError()

    return PricedOrder(
        order=order,
        subtotal=subtotal,
        additional_fee=order.additional_fee,
        discount_amount=discount,
        total_amount=total,
        available_balance=balance.available,
        discount_entry_ids=[e.id for e in entries],
    )
