import secrets
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_FLOOR
from typing import Callable, Optional
from uuid import UUID, uuid4
from zoneinfo import ZoneInfo

from common.config import Settings, get_settings
from common.events import EventBus, ledger_changed
from common.logger import get_logger
from common.phone import normalize_optional_phone, normalize_phone
from ledger.aggregator import CouponAggregator
from ledger.errors import DuplicateTransactionError, LedgerError
from ledger.models import LedgerEntryInput, OriginType
from ledger.service import LedgerService, utc_now
from ledger.storage import LedgerStorage
from referrals.stats import ReferralService
from referrals.tiers import RewardPolicy, ensure_not_self_referral, reward_split
from stores.matcher import StoreMatcher
from stores.models import Store

from .errors import (
    ConfirmError,
    DiscountExceedsBalanceError,
    DiscountNotCoverableError,
    PriceMismatchError,
    ProductUnavailableError,
    StoreNotFoundError,
    StoreUnavailableError,
)
from .models import (
    OrderConfirmation,
    OrderRecord,
    OrderRequest,
    OrderValidation,
    PricedOrder,
    StoreSettlementEntry,
)
from .pricing import discount_for, price

logger = get_logger(__name__)


def commission_for(gross_amount: int, rate: Decimal) -> int:
    return int((Decimal(gross_amount) * rate).to_integral_value(rounding=ROUND_FLOOR))


class OrderService:
    def __init__(
        self,
        storage: LedgerStorage,
        ledger: Optional[LedgerService] = None,
        settings: Optional[Settings] = None,
        events: Optional[EventBus] = None,
        clock: Optional[Callable[[], datetime]] = None,
        policy: Optional[RewardPolicy] = None,
    ):
        self.storage = storage
        self.settings = settings or get_settings()
        self.events = events
        self.clock = clock or utc_now
        self.ledger = ledger or LedgerService(storage, self.settings, events, self.clock)
        self.aggregator = CouponAggregator(storage, self.clock)
        self.matcher = StoreMatcher(storage, self.settings)
        self.referrals = ReferralService(storage, self.settings, self.clock)
        self.policy = policy or RewardPolicy.from_settings(self.settings)

    # -------- pricing --------

    def price_order(self, order: OrderRequest, now: Optional[datetime] = None) -> PricedOrder:
        """Price an order against the customer's current balance.

        When a store is chosen its area price replaces the catalogue price.
        """
        now = now or self.clock()
        phone = normalize_phone(order.customer_phone)
        referrer = normalize_optional_phone(order.referrer_phone)
        ensure_not_self_referral(phone, referrer)

        updates = {
            "customer_phone": phone,
            "recipient_phone": normalize_phone(order.recipient_phone),
            "referrer_phone": referrer,
        }
        warnings = []
        if order.receiver_store_id:
            store = self._deliverable_store(order)
            resolved = self.matcher.resolve_price(
                store, order.product.product_type, order.product.unit_price
            )
            if resolved.warning:
                warnings.append(resolved.warning)
            updates["product"] = order.product.model_copy(update={"unit_price": resolved.price})
        order = order.model_copy(update=updates)

        balance = self.aggregator.get_balance(phone, now)
        priced = price(order, balance)
        priced.warnings = warnings
        return priced

    def _deliverable_store(self, order: OrderRequest) -> Store:
        store = self.storage.get_store(order.receiver_store_id)
        if store is None:
            raise StoreNotFoundError(f"Store {order.receiver_store_id} not found")
        if not store.is_open or self.matcher.delivery_area_for(store, order.address) is None:
            raise StoreUnavailableError()
        return store

    def validate(
        self,
        product_id: str,
        quantity: int,
        customer_phone: str,
        points_to_use: int = 0,
        referrer_phone: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> OrderValidation:
        """Pre-payment check of a catalogue order and the points it wants to spend."""
        product = self.storage.get_product(product_id)
        if product is None or not product.is_active:
            raise ProductUnavailableError()
        if quantity < 1:
            raise ValueError("Quantity must be at least 1")

        phone = normalize_phone(customer_phone)
        ensure_not_self_referral(phone, referrer_phone)

        base_amount = product.customer_price * quantity
        balance = self.aggregator.get_balance(phone, now or self.clock())
        if points_to_use > balance.available:
            raise DiscountExceedsBalanceError(
                f"Not enough points: {balance.available} available, {points_to_use} requested"
            )

        discount = sum(e.amount for e in discount_for(balance, points_to_use, base_amount))
        if discount != min(points_to_use, base_amount):
            raise DiscountNotCoverableError(
                f"Coupons are used whole: {discount} of the {points_to_use} points can be applied",
                achievable=discount,
            )
        return OrderValidation(
            valid=True,
            base_amount=base_amount,
            discount_amount=discount,
            final_amount=base_amount - discount,
            points_verified=discount > 0,
        )

    # -------- confirmation --------

    def confirm(
        self, priced: PricedOrder, transaction_id: str, now: Optional[datetime] = None
    ) -> OrderConfirmation:
        """Record a paid order exactly once per payment transaction.

        Consuming the discount, granting accruals, the store settlement entry
        and the order itself commit together or not at all. A repeated
        ``transaction_id`` returns the original confirmation unchanged, also
        when two confirmations of the same payment race each other.
        """
        now = now or self.clock()
        try:
            record, replayed = self._record_order(priced, transaction_id, now)
        except DuplicateTransactionError:
            # The other confirmation committed first; ours rolled back
            record = self.storage.get_order_by_transaction(transaction_id)
            if record is None:
                raise
            replayed = True

        if replayed:
            logger.info(
                "Replayed order confirmation",
                extra={"transaction_id": transaction_id, "order_id": str(record.id)},
            )
            return OrderConfirmation.from_record(record)

        logger.info(
            "Confirmed order %s", record.order_number,
            extra={
                "order_id": str(record.id),
                "transaction_id": transaction_id,
                "phone": record.customer_phone,
                "amount": record.total_amount,
            },
        )
        ledger_changed(self.events, [record.customer_phone, record.referrer_phone], "order")
        return OrderConfirmation.from_record(record)

    def _record_order(
        self, priced: PricedOrder, transaction_id: str, now: datetime
    ) -> tuple[OrderRecord, bool]:
        order = priced.order
        with self.storage.transaction():
            existing = self.storage.get_order_by_transaction(transaction_id)
            if existing is not None:
                return existing, True

            order_id = uuid4()
            consumed_ids = self._consume_discount(priced, order_id, now)
            points_earned, referrer_points, granted_ids = self._grant_rewards(priced, order_id, now)

            dispatch_deadline = None
            if order.receiver_store_id:
                self._record_settlement(priced, order_id, now)
            else:
                dispatch_deadline = now + timedelta(minutes=self.settings.CENTRAL_DISPATCH_SLA_MINUTES)

            record = OrderRecord(
                id=order_id,
                order_number=self._order_number(now),
                transaction_id=transaction_id,
                customer_name=order.customer_name,
                customer_phone=order.customer_phone,
                customer_is_member=order.customer_is_member,
                recipient_name=order.recipient_name,
                recipient_phone=order.recipient_phone,
                address=order.address,
                product=order.product,
                additional_fee=order.additional_fee,
                additional_fee_reason=order.additional_fee_reason,
                receiver_store_id=order.receiver_store_id,
                referrer_phone=order.referrer_phone,
                subtotal=priced.subtotal,
                discount_amount=priced.discount_amount,
                total_amount=priced.total_amount,
                points_earned=points_earned,
                referrer_points=referrer_points,
                consumed_entry_ids=consumed_ids,
                granted_entry_ids=granted_ids,
                dispatch_deadline=dispatch_deadline,
                created_at=now,
            )
            self.storage.insert_order(record)
        return record, False

    def place_order(
        self,
        order: OrderRequest,
        transaction_id: str,
        claimed_discount: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> OrderConfirmation:
        """Reprice on the server and confirm; the client's discount is only a claim."""
        existing = self.storage.get_order_by_transaction(transaction_id)
        if existing is not None:
            return OrderConfirmation.from_record(existing)

        now = now or self.clock()
        priced = self.price_order(order, now)
        if claimed_discount is not None and claimed_discount != priced.discount_amount:
            logger.warning(
                "Claimed discount %s does not match %s", claimed_discount, priced.discount_amount,
                extra={"transaction_id": transaction_id, "phone": priced.order.customer_phone},
            )
            raise PriceMismatchError()
        return self.confirm(priced, transaction_id, now)

    def _consume_discount(self, priced: PricedOrder, order_id: UUID, now: datetime) -> list[UUID]:
        if not priced.discount_entry_ids:
            return []

        balance = self.aggregator.get_balance(priced.order.customer_phone, now, for_update=True)
        available = {c.id for c in balance.coupons}
        if not set(priced.discount_entry_ids) <= available:
            raise ConfirmError("Your points changed since checkout, please try again")

        consumed = []
        try:
            for entry_id in priced.discount_entry_ids:
                consumed.append(self.ledger.consume(entry_id, order_id, now, notify=False))
        except LedgerError as e:
            raise ConfirmError(e.message) from e

        if sum(e.amount for e in consumed) != priced.discount_amount:
            raise ConfirmError()
        return [e.id for e in consumed]

    def _grant_rewards(
        self, priced: PricedOrder, order_id: UUID, now: datetime
    ) -> tuple[int, int, list[UUID]]:
        order = priced.order
        if priced.discount_amount and not self.settings.ACCRUE_ON_DISCOUNTED_ORDERS:
            return 0, 0, []

        referrer_tier = None
        if order.referrer_phone:
            referrer_tier = self.referrals.get_stats(order.referrer_phone, now).current_tier
        split = reward_split(priced.total_amount, referrer_tier, order.customer_is_member, self.policy)

        granted = []
        if split.buyer_points > 0:
            granted.append(self.ledger.grant(
                LedgerEntryInput(
                    customer_phone=order.customer_phone,
                    amount=split.buyer_points,
                    origin_type=OriginType.PURCHASE,
                    source_order_id=order_id,
                ),
                now=now,
                notify=False,
            ).id)
        if order.referrer_phone and split.referrer_points > 0:
            granted.append(self.ledger.grant(
                LedgerEntryInput(
                    customer_phone=order.referrer_phone,
                    amount=split.referrer_points,
                    origin_type=OriginType.REFERRAL,
                    source_order_id=order_id,
                ),
                now=now,
                notify=False,
            ).id)
        referrer_points = split.referrer_points if order.referrer_phone else 0
        return split.buyer_points, referrer_points, granted

    def _record_settlement(self, priced: PricedOrder, order_id: UUID, now: datetime) -> None:
        store = self.storage.get_store(priced.order.receiver_store_id)
        if store is None:
            raise ConfirmError(f"Store {priced.order.receiver_store_id} no longer exists")

        rate = store.commission_rate if store.commission_rate is not None else self.settings.COMMISSION_RATE
        gross = priced.subtotal + priced.additional_fee
        commission = commission_for(gross, rate)
        self.storage.insert_settlement(StoreSettlementEntry(
            id=uuid4(),
            store_id=store.id,
            order_id=order_id,
            gross_amount=gross,
            commission_rate=rate,
            commission=commission,
            net_amount=gross - commission,
            created_at=now,
        ))

    def _order_number(self, now: datetime) -> str:
        local = now.astimezone(ZoneInfo(self.settings.TIMEZONE))
        return f"ORD-{local:%Y%m%d}-{secrets.randbelow(10000):04d}"
