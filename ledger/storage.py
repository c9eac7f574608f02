from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from threading import RLock
from typing import ContextManager, Iterator, Optional, Protocol
from uuid import UUID

from orders.models import OrderRecord, Product, StoreSettlementEntry
from stores.models import AreaPricing, DeliveryArea, Store
from withdrawals.models import WithdrawalRequest

from .errors import DuplicateCodeError, DuplicateTransactionError
from .models import LedgerEntry


class LedgerStorage(Protocol):
    """Contract every persistence backend satisfies.

    Services depend on this interface only. ``transaction()`` groups calls into
    one all-or-nothing unit; ``mark_entry_used`` is the only mutation of an
    existing ledger entry and must behave as a compare-and-set on ``used_at``.
    """

    def transaction(self) -> ContextManager[None]:  # pragma: no cover - Protocol
        ...

    def insert_entry(self, entry: LedgerEntry) -> LedgerEntry:  # pragma: no cover - Protocol
        ...

    def get_entry(self, entry_id: UUID) -> Optional[LedgerEntry]:  # pragma: no cover - Protocol
        ...

    def list_entries(
        self, customer_phone: str, for_update: bool = False
    ) -> list[LedgerEntry]:  # pragma: no cover - Protocol
        ...

    def mark_entry_used(
        self, entry_id: UUID, order_id: UUID, used_at: datetime
    ) -> bool:  # pragma: no cover - Protocol
        ...

    def get_order_by_transaction(
        self, transaction_id: str
    ) -> Optional[OrderRecord]:  # pragma: no cover - Protocol
        ...

    def insert_order(self, order: OrderRecord) -> OrderRecord:  # pragma: no cover - Protocol
        ...

    def list_orders_by_referrer(
        self, referrer_phone: str
    ) -> list[OrderRecord]:  # pragma: no cover - Protocol
        ...

    def insert_settlement(
        self, entry: StoreSettlementEntry
    ) -> StoreSettlementEntry:  # pragma: no cover - Protocol
        ...

    def list_settlements(self, store_id: str) -> list[StoreSettlementEntry]:  # pragma: no cover - Protocol
        ...

    def insert_withdrawal(
        self, withdrawal: WithdrawalRequest
    ) -> WithdrawalRequest:  # pragma: no cover - Protocol
        ...

    def list_withdrawals(self, customer_phone: str) -> list[WithdrawalRequest]:  # pragma: no cover - Protocol
        ...

    def get_product(self, product_id: str) -> Optional[Product]:  # pragma: no cover - Protocol
        ...

    def save_product(self, product: Product) -> Product:  # pragma: no cover - Protocol
        ...

    def get_store(self, store_id: str) -> Optional[Store]:  # pragma: no cover - Protocol
        ...

    def list_stores(self) -> list[Store]:  # pragma: no cover - Protocol
        ...

    def save_store(self, store: Store) -> Store:  # pragma: no cover - Protocol
        ...


# Catalogue shipped with a fresh storage: (id, product_type, name, customer_price)
SEED_PRODUCTS = [
    ("celebration-basic", "celebration_wreath", "실속 축하화환", 55000),
    ("celebration-60", "celebration_wreath", "60송이 축하화환", 67000),
    ("celebration-100", "celebration_wreath", "100송이 축하화환", 95000),
    ("condolence-basic", "condolence_wreath", "실속 근조화환", 55000),
    ("condolence-60", "condolence_wreath", "60송이 근조화환", 67000),
    ("condolence-basket", "condolence_basket", "근조꽃바구니", 55000),
]


class InMemoryStorage:
    def __init__(self, seed: bool = True):
        self._lock = RLock()
        self._depth = 0
        self.ledger_entries: dict[UUID, LedgerEntry] = {}
        self.code_index: dict[str, UUID] = {}
        self.orders: dict[UUID, OrderRecord] = {}
        self.transaction_index: dict[str, UUID] = {}
        self.settlements: dict[UUID, StoreSettlementEntry] = {}
        self.withdrawals: dict[UUID, WithdrawalRequest] = {}
        self.products: dict[str, Product] = {}
        self.stores: dict[str, Store] = {}
        if seed:
            self._seed_data()

    def _seed_data(self):
        for product_id, product_type, name, price in SEED_PRODUCTS:
            self.products[product_id] = Product(
                id=product_id, product_type=product_type, name=name, customer_price=price
            )
        self.stores["store-gangnam"] = Store(
            id="store-gangnam",
            business_name="강남 플라워",
            delivery_areas=[
                DeliveryArea(sido="서울특별시", sigungu="강남구", min_amount=50000),
                DeliveryArea(sido="서울특별시", sigungu="서초구", min_amount=50000),
            ],
            area_pricing=[
                AreaPricing(product_type="celebration_wreath", price_basic=60000, price_premium=80000),
            ],
        )

    # -------- transactions --------

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            snapshot = self._snapshot()
            self._depth = 1
            try:
                yield
            except BaseException:
                self._restore(snapshot)
                raise
            finally:
                self._depth = 0

    def _snapshot(self) -> tuple[dict, ...]:
        # values are never mutated in place, so shallow copies are enough
        return (
            dict(self.ledger_entries),
            dict(self.code_index),
            dict(self.orders),
            dict(self.transaction_index),
            dict(self.settlements),
            dict(self.withdrawals),
            dict(self.products),
            dict(self.stores),
        )

    def _restore(self, snapshot: tuple[dict, ...]) -> None:
        (
            self.ledger_entries,
            self.code_index,
            self.orders,
            self.transaction_index,
            self.settlements,
            self.withdrawals,
            self.products,
            self.stores,
        ) = snapshot

    # -------- ledger entries --------

    def insert_entry(self, entry: LedgerEntry) -> LedgerEntry:
        with self._lock:
            if entry.code in self.code_index:
                raise DuplicateCodeError(f"Coupon code {entry.code} already exists")
            self.ledger_entries[entry.id] = entry
            self.code_index[entry.code] = entry.id
            return entry

    def get_entry(self, entry_id: UUID) -> Optional[LedgerEntry]:
        with self._lock:
            return self.ledger_entries.get(entry_id)

    def list_entries(self, customer_phone: str, for_update: bool = False) -> list[LedgerEntry]:
        with self._lock:
            entries = [
                e for e in self.ledger_entries.values()
                if e.customer_phone == customer_phone
            ]
        entries.sort(key=lambda e: e.created_at, reverse=True)
        return entries

    def mark_entry_used(self, entry_id: UUID, order_id: UUID, used_at: datetime) -> bool:
        with self._lock:
            entry = self.ledger_entries.get(entry_id)
            if entry is None or entry.used_at is not None:
                return False
            self.ledger_entries[entry_id] = entry.model_copy(
                update={"used_at": used_at, "consumed_by_order_id": order_id}
            )
            return True

    # -------- orders & settlements --------

    def get_order_by_transaction(self, transaction_id: str) -> Optional[OrderRecord]:
        with self._lock:
            order_id = self.transaction_index.get(transaction_id)
            return self.orders.get(order_id) if order_id else None

    def insert_order(self, order: OrderRecord) -> OrderRecord:
        with self._lock:
            if order.transaction_id in self.transaction_index:
                raise DuplicateTransactionError(f"Transaction {order.transaction_id} already has an order")
            self.orders[order.id] = order
            self.transaction_index[order.transaction_id] = order.id
            return order

    def list_orders_by_referrer(self, referrer_phone: str) -> list[OrderRecord]:
        with self._lock:
            orders = [o for o in self.orders.values() if o.referrer_phone == referrer_phone]
        orders.sort(key=lambda o: o.created_at, reverse=True)
        return orders

    def insert_settlement(self, entry: StoreSettlementEntry) -> StoreSettlementEntry:
        with self._lock:
            self.settlements[entry.id] = entry
            return entry

    def list_settlements(self, store_id: str) -> list[StoreSettlementEntry]:
        with self._lock:
            return [s for s in self.settlements.values() if s.store_id == store_id]

    # -------- withdrawals --------

    def insert_withdrawal(self, withdrawal: WithdrawalRequest) -> WithdrawalRequest:
        with self._lock:
            self.withdrawals[withdrawal.id] = withdrawal
            return withdrawal

    def list_withdrawals(self, customer_phone: str) -> list[WithdrawalRequest]:
        with self._lock:
            return [w for w in self.withdrawals.values() if w.customer_phone == customer_phone]

    # -------- catalogue --------

    def get_product(self, product_id: str) -> Optional[Product]:
        with self._lock:
            return self.products.get(product_id)

    def save_product(self, product: Product) -> Product:
        with self._lock:
            self.products[product.id] = product
            return product

    def get_store(self, store_id: str) -> Optional[Store]:
        with self._lock:
            return self.stores.get(store_id)

    def list_stores(self) -> list[Store]:
        with self._lock:
            return list(self.stores.values())

    def save_store(self, store: Store) -> Store:
        with self._lock:
            self.stores[store.id] = store
            return store
