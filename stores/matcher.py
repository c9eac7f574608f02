from typing import Optional, Protocol

from common.config import Settings, get_settings
from common.logger import get_logger
from ledger.storage import LedgerStorage

from .areas import areas_match, canonical_sido, canonical_sigungu
from .models import (
    CentralDispatchOption,
    DeliveryArea,
    MatchWarning,
    PriceSource,
    ResolvedPrice,
    Store,
    StoreCandidate,
    StoreMatchResult,
)

logger = get_logger(__name__)

CENTRAL_DISPATCH_LABEL = "본사 발주"


class AreaLike(Protocol):
    sido: str
    sigungu: str


class StoreMatcher:
    def __init__(self, storage: LedgerStorage, settings: Optional[Settings] = None):
        self.storage = storage
        self.settings = settings or get_settings()

    def delivery_area_for(self, store: Store, area: AreaLike) -> Optional[DeliveryArea]:
        for delivery_area in store.delivery_areas:
            if areas_match(delivery_area.sido, delivery_area.sigungu, area.sido, area.sigungu):
                return delivery_area
        return None

    def find_stores(
        self,
        area: AreaLike,
        exclude_store_id: Optional[str] = None,
        order_amount: Optional[int] = None,
    ) -> list[Store]:
        """Open stores delivering to ``area``, ordered by business name.

        A store whose minimum order for the area exceeds ``order_amount`` is
        left out; with no amount given minimums are not checked.
        """
        eligible = []
        for store in self.storage.list_stores():
            if not store.is_open or store.id == exclude_store_id:
                continue
            delivery_area = self.delivery_area_for(store, area)
            if delivery_area is None:
                continue
            if (
                order_amount is not None
                and delivery_area.min_amount is not None
                and order_amount < delivery_area.min_amount
            ):
                continue
            eligible.append(store)

        eligible.sort(key=lambda s: s.business_name)
        return eligible

    def resolve_price(
        self, store: Optional[Store], product_type: str, base_price: Optional[int]
    ) -> Optional[ResolvedPrice]:
        """Store-specific basic price, or the catalogue price flagged NO_AREA_PRICING."""
        if store is not None:
            pricing = store.pricing_for(product_type)
            if pricing is not None:
                return ResolvedPrice(price=pricing.price_basic, source=PriceSource.AREA_PRICING)
        if base_price is None:
            return None
        warning = MatchWarning.NO_AREA_PRICING if store is not None else None
        return ResolvedPrice(price=base_price, source=PriceSource.BASE_PRICE, warning=warning)

    def central_dispatch(self) -> CentralDispatchOption:
        return CentralDispatchOption(
            label=CENTRAL_DISPATCH_LABEL,
            sla_minutes=self.settings.CENTRAL_DISPATCH_SLA_MINUTES,
        )

    def match(
        self,
        area: AreaLike,
        product_type: Optional[str] = None,
        base_price: Optional[int] = None,
        exclude_store_id: Optional[str] = None,
        order_amount: Optional[int] = None,
    ) -> StoreMatchResult:
        stores = self.find_stores(area, exclude_store_id=exclude_store_id, order_amount=order_amount)

        candidates = []
        for store in stores:
            delivery_area = self.delivery_area_for(store, area)
            price = (
                self.resolve_price(store, product_type, base_price) if product_type else None
            )
            candidates.append(StoreCandidate(
                store_id=store.id,
                business_name=store.business_name,
                min_amount=delivery_area.min_amount if delivery_area else None,
                price=price,
            ))

        # stores with their own price first, then cheapest, then by name
        candidates.sort(key=lambda c: (
            0 if c.price and c.price.source == PriceSource.AREA_PRICING else 1,
            c.price.price if c.price else float("inf"),
            c.business_name,
        ))

        warnings = []
        if not candidates:
            warnings.append(MatchWarning.NO_ELIGIBLE_STORE)
            logger.info(
                "No eligible store for %s %s, falling back to central dispatch",
                area.sido, area.sigungu,
            )
        if any(c.price and c.price.warning == MatchWarning.NO_AREA_PRICING for c in candidates):
            warnings.append(MatchWarning.NO_AREA_PRICING)

        return StoreMatchResult(
            sido=canonical_sido(area.sido),
            sigungu=canonical_sigungu(area.sigungu),
            candidates=candidates,
            central_dispatch=self.central_dispatch(),
            warnings=warnings,
        )
