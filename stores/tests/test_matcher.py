"""
Unit Tests for the Store Matcher

Tests cover:
1. Eligible store lookup (open, area, minimum order)
2. Area price resolution
3. Ranking, warnings and the central dispatch fallback
"""

import pytest

from common.config import Settings
from ledger.storage import InMemoryStorage
from stores.matcher import StoreMatcher
from stores.models import (
    AreaPricing,
    DeliveryArea,
    MatchWarning,
    PriceSource,
    Store,
)


def gangnam() -> DeliveryArea:
    return DeliveryArea(sido="서울", sigungu="강남")


def make_matcher() -> StoreMatcher:
    storage = InMemoryStorage(seed=False)
    storage.save_store(Store(
        id="store-b",
        business_name="나무 꽃집",
        delivery_areas=[DeliveryArea(sido="서울특별시", sigungu="강남구", min_amount=70000)],
        area_pricing=[AreaPricing(product_type="celebration_wreath", price_basic=62000)],
    ))
    storage.save_store(Store(
        id="store-a",
        business_name="가나 플라워",
        delivery_areas=[DeliveryArea(sido="서울", sigungu="강남구")],
    ))
    storage.save_store(Store(
        id="store-c",
        business_name="다온 플라워",
        delivery_areas=[DeliveryArea(sido="서울특별시", sigungu="강남구")],
        area_pricing=[AreaPricing(product_type="celebration_wreath", price_basic=58000)],
    ))
    storage.save_store(Store(
        id="store-closed",
        business_name="라임 꽃집",
        is_open=False,
        delivery_areas=[DeliveryArea(sido="서울특별시", sigungu="강남구")],
    ))
    storage.save_store(Store(
        id="store-busan",
        business_name="마린 플라워",
        delivery_areas=[DeliveryArea(sido="부산광역시", sigungu="해운대구")],
    ))
    return StoreMatcher(storage, Settings())


class TestFindStores:
    """Tests for the eligible store lookup."""

    def test_open_stores_in_area_sorted_by_name(self):
        """Test closed and out-of-area stores are left out."""
        matcher = make_matcher()

        stores = matcher.find_stores(gangnam())

        assert [s.id for s in stores] == ["store-a", "store-b", "store-c"]

    def test_abbreviated_busan_district(self):
        """Test "부산 해운대" finds a store registered for 해운대구."""
        matcher = make_matcher()

        stores = matcher.find_stores(DeliveryArea(sido="부산", sigungu="해운대"))

        assert [s.id for s in stores] == ["store-busan"]

    def test_minimum_order_filters(self):
        """Test stores whose minimum exceeds the order are dropped."""
        matcher = make_matcher()

        stores = matcher.find_stores(gangnam(), order_amount=60000)

        assert "store-b" not in [s.id for s in stores]

    def test_exclude_store(self):
        """Test a store can be excluded (reassignment)."""
        matcher = make_matcher()

        stores = matcher.find_stores(gangnam(), exclude_store_id="store-a")

        assert [s.id for s in stores] == ["store-b", "store-c"]


class TestResolvePrice:
    """Tests for area price resolution."""

    def test_store_override(self):
        """Test the store's basic price wins."""
        matcher = make_matcher()
        store = matcher.storage.get_store("store-c")

        resolved = matcher.resolve_price(store, "celebration_wreath", 55000)

        assert resolved.price == 58000
        assert resolved.source == PriceSource.AREA_PRICING
        assert resolved.warning is None

    def test_fallback_warns(self):
        """Test a store without pricing falls back with NO_AREA_PRICING."""
        matcher = make_matcher()
        store = matcher.storage.get_store("store-a")

        resolved = matcher.resolve_price(store, "celebration_wreath", 55000)

        assert resolved.price == 55000
        assert resolved.source == PriceSource.BASE_PRICE
        assert resolved.warning == MatchWarning.NO_AREA_PRICING

    def test_central_dispatch_uses_base_price(self):
        """Test no store means catalogue price without a warning."""
        resolved = make_matcher().resolve_price(None, "celebration_wreath", 55000)

        assert resolved.price == 55000
        assert resolved.warning is None


class TestMatch:
    """Tests for the full match result."""

    def test_ranking_and_central_dispatch(self):
        """Test overrides first, cheaper first, central dispatch always offered."""
        matcher = make_matcher()

        result = matcher.match(gangnam(), product_type="celebration_wreath", base_price=55000)

        assert [c.store_id for c in result.candidates] == ["store-c", "store-b", "store-a"]
        assert result.sido == "서울특별시"
        assert result.sigungu == "강남구"
        assert result.central_dispatch.receiver_store_id is None
        assert result.central_dispatch.sla_minutes == 30
        assert MatchWarning.NO_AREA_PRICING in result.warnings
        assert MatchWarning.NO_ELIGIBLE_STORE not in result.warnings

    def test_no_eligible_store_is_a_warning(self):
        """Test an uncovered area still gets central dispatch."""
        matcher = make_matcher()

        result = matcher.match(DeliveryArea(sido="제주", sigungu="서귀포"))

        assert result.candidates == []
        assert result.warnings == [MatchWarning.NO_ELIGIBLE_STORE]
        assert result.central_dispatch.label == "본사 발주"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
