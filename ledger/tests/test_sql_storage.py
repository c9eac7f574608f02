"""
Tests for the SQLAlchemy storage, run against in-memory SQLite
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from common.config import Settings
from ledger.errors import AlreadyUsedError, DuplicateCodeError
from ledger.models import LedgerEntry, LedgerEntryInput, OriginType
from ledger.service import LedgerService
from ledger.sql_storage import SqlStorage
from orders.models import Product, StoreSettlementEntry
from stores.models import AreaPricing, DeliveryArea, Store
from withdrawals.models import BankInfo, WithdrawalRequest


PHONE = "01012345678"
NOW = datetime(2026, 3, 15, 3, 0, tzinfo=timezone.utc)


@pytest.fixture
def storage():
    return SqlStorage.from_url("sqlite://", seed=True)


def make_entry(code="CPTEST0001", amount=3000) -> LedgerEntry:
    return LedgerEntry(
        id=uuid4(),
        customer_phone=PHONE,
        code=code,
        amount=amount,
        origin_type=OriginType.PURCHASE,
        created_at=NOW,
        expires_at=NOW + timedelta(days=30),
    )


class TestLedgerEntries:
    """Tests for entry persistence."""

    def test_insert_and_read_back(self, storage):
        """Test an entry round-trips with timezone-aware timestamps."""
        entry = make_entry()
        storage.insert_entry(entry)

        loaded = storage.get_entry(entry.id)

        assert loaded == entry
        assert loaded.created_at.tzinfo is not None

    def test_duplicate_code_rejected(self, storage):
        """Test the unique code constraint."""
        storage.insert_entry(make_entry(code="CPSAME"))

        with pytest.raises(DuplicateCodeError):
            storage.insert_entry(make_entry(code="CPSAME"))

    def test_mark_entry_used_is_compare_and_set(self, storage):
        """Test only the first mark succeeds."""
        entry = make_entry()
        storage.insert_entry(entry)
        first_order, second_order = uuid4(), uuid4()

        assert storage.mark_entry_used(entry.id, first_order, NOW) is True
        assert storage.mark_entry_used(entry.id, second_order, NOW) is False

        loaded = storage.get_entry(entry.id)
        assert loaded.consumed_by_order_id == first_order
        assert loaded.used_at == NOW

    def test_list_entries_newest_first(self, storage):
        """Test listing order for one customer."""
        older = make_entry(code="CPOLD")
        newer = make_entry(code="CPNEW").model_copy(update={"created_at": NOW + timedelta(hours=1)})
        storage.insert_entry(older)
        storage.insert_entry(newer)

        assert [e.code for e in storage.list_entries(PHONE)] == ["CPNEW", "CPOLD"]

    def test_transaction_rolls_back_on_error(self, storage):
        """Test that a failing transaction leaves nothing behind."""
        entry = make_entry()

        with pytest.raises(RuntimeError):
            with storage.transaction():
                storage.insert_entry(entry)
                raise RuntimeError("boom")

        assert storage.get_entry(entry.id) is None

    def test_ledger_service_on_sql(self, storage):
        """Test grant/consume through the service on the SQL backend."""
        service = LedgerService(storage, Settings(), clock=lambda: NOW)
        entry = service.grant(LedgerEntryInput(
            customer_phone=PHONE, amount=2500, origin_type=OriginType.REFERRAL,
        ))

        service.consume(entry.id, uuid4())

        with pytest.raises(AlreadyUsedError):
            service.consume(entry.id, uuid4())


class TestCatalogue:
    """Tests for products, stores, settlements and withdrawals."""

    def test_seeded_products(self, storage):
        """Test the default catalogue is present."""
        product = storage.get_product("celebration-basic")

        assert product is not None
        assert product.customer_price == 55000

    def test_save_product_updates_catalogue(self, storage):
        """Test a saved product replaces the seeded one."""
        storage.save_product(Product(
            id="celebration-basic", product_type="celebration_wreath",
            name="실속 축하화환", customer_price=58000, is_active=False,
        ))

        product = storage.get_product("celebration-basic")

        assert product.customer_price == 58000
        assert not product.is_active

    def test_store_round_trip(self, storage):
        """Test stores keep their embedded areas and pricing."""
        store = Store(
            id="store-1",
            business_name="해운대 꽃집",
            delivery_areas=[DeliveryArea(sido="부산광역시", sigungu="해운대구", min_amount=40000)],
            area_pricing=[AreaPricing(product_type="celebration_wreath", price_basic=65000)],
            commission_rate=Decimal("0.2"),
        )
        storage.save_store(store)

        loaded = storage.get_store("store-1")

        assert loaded == store
        assert [s.id for s in storage.list_stores()] == ["store-1"]

    def test_settlements_and_withdrawals(self, storage):
        """Test settlement and withdrawal rows read back as models."""
        settlement = StoreSettlementEntry(
            id=uuid4(), store_id="store-1", order_id=uuid4(), gross_amount=70000,
            commission_rate=Decimal("0.25"), commission=17500, net_amount=52500, created_at=NOW,
        )
        storage.insert_settlement(settlement)
        withdrawal = WithdrawalRequest(
            id=uuid4(),
            customer_phone=PHONE,
            amount=5000,
            bank_info=BankInfo(bank_name="국민은행", account_number="123-456", account_holder="홍길동"),
            consumed_entry_ids=[uuid4()],
            created_at=NOW,
        )
        storage.insert_withdrawal(withdrawal)

        assert storage.list_settlements("store-1") == [settlement]
        assert storage.list_withdrawals(PHONE) == [withdrawal]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
