"""
SQLAlchemy implementation of LedgerStorage.

A transaction binds one Session to the calling thread; storage calls made
inside it share that session, calls made outside run in their own short
transaction. Consumption is a conditional UPDATE so two racing consumers
cannot both claim the same entry.
"""
from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional
from uuid import UUID

from sqlalchemy import create_engine, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from common.logger import get_logger
from orders.models import OrderRecord, Product, StoreSettlementEntry
from stores.models import Store
from withdrawals.models import BankInfo, WithdrawalRequest

from .errors import DuplicateCodeError, DuplicateTransactionError
from .models import LedgerEntry
from .storage import SEED_PRODUCTS
from .tables import (
    Base,
    LedgerEntryRow,
    OrderRow,
    ProductRow,
    StoreRow,
    StoreSettlementRow,
    WithdrawalRow,
)

logger = get_logger(__name__)


def _utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything we write is UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _entry_from_row(row: LedgerEntryRow) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,
        customer_phone=row.customer_phone,
        code=row.code,
        amount=row.amount,
        origin_type=row.origin_type,
        created_at=_utc(row.created_at),
        expires_at=_utc(row.expires_at),
        used_at=_utc(row.used_at),
        consumed_by_order_id=row.consumed_by_order_id,
        source_order_id=row.source_order_id,
    )


def _settlement_from_row(row: StoreSettlementRow) -> StoreSettlementEntry:
    return StoreSettlementEntry(
        id=row.id,
        store_id=row.store_id,
        order_id=row.order_id,
        gross_amount=row.gross_amount,
        commission_rate=row.commission_rate,
        commission=row.commission,
        net_amount=row.net_amount,
        created_at=_utc(row.created_at),
    )


def _withdrawal_from_row(row: WithdrawalRow) -> WithdrawalRequest:
    return WithdrawalRequest(
        id=row.id,
        customer_phone=row.customer_phone,
        amount=row.amount,
        bank_info=BankInfo(
            bank_name=row.bank_name,
            account_number=row.account_number,
            account_holder=row.account_holder,
        ),
        status=row.status,
        consumed_entry_ids=[UUID(value) for value in row.consumed_entry_ids],
        created_at=_utc(row.created_at),
    )


def _store_from_row(row: StoreRow) -> Store:
    return Store(
        id=row.id,
        business_name=row.business_name,
        is_open=row.is_open,
        commission_rate=row.commission_rate,
        delivery_areas=row.delivery_areas,
        area_pricing=row.area_pricing,
    )


class SqlStorage:
    def __init__(self, engine: Engine, create_schema: bool = True, seed: bool = False):
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
        self._local = threading.local()
        if create_schema:
            Base.metadata.create_all(engine)
            logger.info("Ledger schema ready on %s", engine.url.render_as_string(hide_password=True))
        if seed:
            self._seed_products()

    @classmethod
    def from_url(cls, url: str, echo: bool = False, **kwargs) -> "SqlStorage":
        engine_kwargs = {"echo": echo, "pool_pre_ping": True}
        if url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if url in ("sqlite://", "sqlite:///:memory:"):
                # one shared connection, otherwise every checkout sees an empty database
                engine_kwargs["poolclass"] = StaticPool
        return cls(create_engine(url, **engine_kwargs), **kwargs)

    def _seed_products(self) -> None:
        with self._scope() as session:
            for product_id, product_type, name, price in SEED_PRODUCTS:
                if session.get(ProductRow, product_id) is None:
                    session.add(ProductRow(
                        id=product_id, product_type=product_type, name=name,
                        customer_price=price, is_active=True,
                    ))

    # -------- transactions --------

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if getattr(self._local, "session", None) is not None:
            yield
            return

        session = self._session_factory()
        self._local.session = session
        try:
            with session.begin():
                yield
        finally:
            self._local.session = None
            session.close()

    @contextmanager
    def _scope(self) -> Iterator[Session]:
        current = getattr(self._local, "session", None)
        if current is not None:
            yield current
            return
        with self._session_factory.begin() as session:
            yield session

    # -------- ledger entries --------

    def insert_entry(self, entry: LedgerEntry) -> LedgerEntry:
        with self._scope() as session:
            taken = session.scalar(
                select(LedgerEntryRow.id).where(LedgerEntryRow.code == entry.code)
            )
            if taken is not None:
                raise DuplicateCodeError(f"Coupon code {entry.code} already exists")
            session.add(LedgerEntryRow(
                id=entry.id,
                customer_phone=entry.customer_phone,
                code=entry.code,
                amount=entry.amount,
                origin_type=entry.origin_type.value,
                created_at=_utc(entry.created_at),
                expires_at=_utc(entry.expires_at),
                used_at=_utc(entry.used_at),
                consumed_by_order_id=entry.consumed_by_order_id,
                source_order_id=entry.source_order_id,
            ))
            try:
                session.flush()
            except IntegrityError as e:
                raise DuplicateCodeError(f"Coupon code {entry.code} already exists") from e
        return entry

    def get_entry(self, entry_id: UUID) -> Optional[LedgerEntry]:
        with self._scope() as session:
            row = session.get(LedgerEntryRow, entry_id, populate_existing=True)
            return _entry_from_row(row) if row else None

    def list_entries(self, customer_phone: str, for_update: bool = False) -> list[LedgerEntry]:
        stmt = (
            select(LedgerEntryRow)
            .where(LedgerEntryRow.customer_phone == customer_phone)
            .order_by(LedgerEntryRow.created_at.desc())
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        with self._scope() as session:
            return [_entry_from_row(row) for row in session.scalars(stmt)]

    def mark_entry_used(self, entry_id: UUID, order_id: UUID, used_at: datetime) -> bool:
        stmt = (
            update(LedgerEntryRow)
            .where(LedgerEntryRow.id == entry_id, LedgerEntryRow.used_at.is_(None))
            .values(used_at=_utc(used_at), consumed_by_order_id=order_id)
            .execution_options(synchronize_session=False)
        )
        with self._scope() as session:
            result = session.execute(stmt)
            return result.rowcount == 1

    # -------- orders & settlements --------

    def get_order_by_transaction(self, transaction_id: str) -> Optional[OrderRecord]:
        with self._scope() as session:
            row = session.scalar(
                select(OrderRow).where(OrderRow.transaction_id == transaction_id)
            )
            return OrderRecord.model_validate(row.payload) if row else None

    def insert_order(self, order: OrderRecord) -> OrderRecord:
        with self._scope() as session:
            session.add(OrderRow(
                id=order.id,
                order_number=order.order_number,
                transaction_id=order.transaction_id,
                customer_phone=order.customer_phone,
                referrer_phone=order.referrer_phone,
                total_amount=order.total_amount,
                created_at=_utc(order.created_at),
                payload=order.model_dump(mode="json"),
            ))
            try:
                session.flush()
            except IntegrityError as e:
                raise DuplicateTransactionError(
                    f"Transaction {order.transaction_id} already has an order"
                ) from e
        return order

    def list_orders_by_referrer(self, referrer_phone: str) -> list[OrderRecord]:
        stmt = (
            select(OrderRow)
            .where(OrderRow.referrer_phone == referrer_phone)
            .order_by(OrderRow.created_at.desc())
        )
        with self._scope() as session:
            return [OrderRecord.model_validate(row.payload) for row in session.scalars(stmt)]

    def insert_settlement(self, entry: StoreSettlementEntry) -> StoreSettlementEntry:
        with self._scope() as session:
            session.add(StoreSettlementRow(
                id=entry.id,
                store_id=entry.store_id,
                order_id=entry.order_id,
                gross_amount=entry.gross_amount,
                commission_rate=entry.commission_rate,
                commission=entry.commission,
                net_amount=entry.net_amount,
                created_at=_utc(entry.created_at),
            ))
            session.flush()
        return entry

    def list_settlements(self, store_id: str) -> list[StoreSettlementEntry]:
        stmt = (
            select(StoreSettlementRow)
            .where(StoreSettlementRow.store_id == store_id)
            .order_by(StoreSettlementRow.created_at)
        )
        with self._scope() as session:
            return [_settlement_from_row(row) for row in session.scalars(stmt)]

    # -------- withdrawals --------

    def insert_withdrawal(self, withdrawal: WithdrawalRequest) -> WithdrawalRequest:
        with self._scope() as session:
            session.add(WithdrawalRow(
                id=withdrawal.id,
                customer_phone=withdrawal.customer_phone,
                amount=withdrawal.amount,
                bank_name=withdrawal.bank_info.bank_name,
                account_number=withdrawal.bank_info.account_number,
                account_holder=withdrawal.bank_info.account_holder,
                status=withdrawal.status.value,
                consumed_entry_ids=[str(value) for value in withdrawal.consumed_entry_ids],
                created_at=_utc(withdrawal.created_at),
            ))
            session.flush()
        return withdrawal

    def list_withdrawals(self, customer_phone: str) -> list[WithdrawalRequest]:
        stmt = (
            select(WithdrawalRow)
            .where(WithdrawalRow.customer_phone == customer_phone)
            .order_by(WithdrawalRow.created_at)
        )
        with self._scope() as session:
            return [_withdrawal_from_row(row) for row in session.scalars(stmt)]

    # -------- catalogue --------

    def get_product(self, product_id: str) -> Optional[Product]:
        with self._scope() as session:
            row = session.get(ProductRow, product_id, populate_existing=True)
            return Product.model_validate(row) if row else None

    def save_product(self, product: Product) -> Product:
        with self._scope() as session:
            session.merge(ProductRow(**product.model_dump()))
        return product

    def get_store(self, store_id: str) -> Optional[Store]:
        with self._scope() as session:
            row = session.get(StoreRow, store_id, populate_existing=True)
            return _store_from_row(row) if row else None

    def list_stores(self) -> list[Store]:
        with self._scope() as session:
            return [_store_from_row(row) for row in session.scalars(select(StoreRow))]

    def save_store(self, store: Store) -> Store:
        data = store.model_dump(mode="json")
        with self._scope() as session:
            session.merge(StoreRow(
                id=store.id,
                business_name=store.business_name,
                is_open=store.is_open,
                commission_rate=store.commission_rate,
                delivery_areas=data["delivery_areas"],
                area_pricing=data["area_pricing"],
            ))
        return store
